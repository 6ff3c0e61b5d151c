"""
Heron Faults - typed failure signals.

Two families matter at runtime:

- HttpFault and its subclasses are *declared* failures. They carry a status
  code, a message and optional details, and are always safe to expose.
- Everything else raised while handling a request is *undeclared* and is
  surfaced to the caller as a generic 500.

RegistrationError and its subclasses report bootstrap misconfiguration.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    HttpFault,
    BadRequestError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    MethodNotAllowedError,
    ConflictError,
    TooManyRequestsError,
    InternalServerError,
    RegistrationError,
    DuplicateRegistrationError,
    UnknownOwnerError,
    InvalidRoutePathError,
    InvalidRouteError,
    RegistryFrozenError,
    ChannelNotFoundError,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Declared HTTP failures
    "HttpFault",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "MethodNotAllowedError",
    "ConflictError",
    "TooManyRequestsError",
    "InternalServerError",

    # Registry
    "RegistrationError",
    "DuplicateRegistrationError",
    "UnknownOwnerError",
    "InvalidRoutePathError",
    "InvalidRouteError",
    "RegistryFrozenError",

    # Channels
    "ChannelNotFoundError",
]
