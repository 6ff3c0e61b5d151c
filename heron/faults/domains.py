"""
Heron Faults - Domain-specific fault types.

Provides concrete fault classes for:
- HTTP faults (declared failures, safe to expose to the caller)
- REGISTRY faults (bootstrap misconfiguration)
- CHANNEL faults (message-channel routing)
"""

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# HTTP Faults
# ============================================================================

class HttpFault(Fault):
    """
    Declared failure carrying an HTTP status code.

    Raised intentionally by handlers, middleware or the validation steps.
    The message and details are always safe to send to the caller.
    """

    status_code: int = 500
    code: str = "HTTP_ERROR"
    default_message: str = "Internal Server Error"
    default_domain: FaultDomain = FaultDomain.FLOW

    def __init__(
        self,
        message: Optional[str] = None,
        details: Any = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        if status_code is not None:
            self.status_code = status_code
        super().__init__(
            code=code or self.code,
            message=message if message is not None else self.default_message,
            domain=self.default_domain,
            public=True,
            metadata=metadata,
        )
        self.details = details

    def to_envelope(self) -> dict[str, Any]:
        """Error envelope sent on the wire."""
        return {
            "success": False,
            "error": self.message,
            "details": self.details,
        }

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        data["details"] = self.details
        return data


class BadRequestError(HttpFault):
    """The request did not satisfy its declared contract."""
    status_code = 400
    code = "BAD_REQUEST"
    default_message = "Bad Request"
    default_domain = FaultDomain.VALIDATION


class UnauthorizedError(HttpFault):
    """Missing or invalid credentials."""
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"
    default_domain = FaultDomain.SECURITY


class ForbiddenError(HttpFault):
    """Authenticated but not allowed."""
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"
    default_domain = FaultDomain.SECURITY


class NotFoundError(HttpFault):
    """Requested resource does not exist."""
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not Found"
    default_domain = FaultDomain.ROUTING


class MethodNotAllowedError(HttpFault):
    """Path exists but not for this verb."""
    status_code = 405
    code = "METHOD_NOT_ALLOWED"
    default_message = "Method Not Allowed"
    default_domain = FaultDomain.ROUTING


class ConflictError(HttpFault):
    """Request conflicts with current resource state."""
    status_code = 409
    code = "CONFLICT"
    default_message = "Conflict"


class TooManyRequestsError(HttpFault):
    """Caller exceeded a rate limit."""
    status_code = 429
    code = "TOO_MANY_REQUESTS"
    default_message = "Too Many Requests"
    default_domain = FaultDomain.SECURITY


class InternalServerError(HttpFault):
    """Declared server-side failure (e.g. a broken response contract)."""
    status_code = 500
    code = "INTERNAL_SERVER_ERROR"
    default_message = "Internal Server Error"
    default_domain = FaultDomain.SYSTEM


# ============================================================================
# REGISTRY Faults
# ============================================================================

class RegistrationError(Fault):
    """Base class for registry misconfiguration detected at bootstrap."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.REGISTRY,
            severity=severity,
            public=False,
            metadata=metadata,
        )


class DuplicateRegistrationError(RegistrationError):
    """The same owner was registered twice."""

    def __init__(self, owner_name: str, **kwargs):
        super().__init__(
            code="DUPLICATE_OWNER",
            message=f"Owner '{owner_name}' is already registered",
            metadata={"owner": owner_name, **kwargs.get("metadata", {})},
        )


class UnknownOwnerError(RegistrationError):
    """A declaration referenced an owner that was never registered."""

    def __init__(self, owner_name: str, **kwargs):
        super().__init__(
            code="UNKNOWN_OWNER",
            message=f"Owner '{owner_name}' is not registered",
            metadata={"owner": owner_name, **kwargs.get("metadata", {})},
        )


class InvalidRoutePathError(RegistrationError):
    """A base path or sub-path has malformed placeholder syntax."""

    def __init__(self, path: str, reason: str, **kwargs):
        super().__init__(
            code="INVALID_ROUTE_PATH",
            message=f"Invalid route path '{path}': {reason}",
            metadata={"path": path, "reason": reason, **kwargs.get("metadata", {})},
        )


class InvalidRouteError(RegistrationError):
    """A route declaration is unusable (bad verb, missing handler)."""

    def __init__(self, owner_name: str, reason: str, **kwargs):
        super().__init__(
            code="INVALID_ROUTE",
            message=f"Invalid route on '{owner_name}': {reason}",
            metadata={"owner": owner_name, "reason": reason, **kwargs.get("metadata", {})},
        )


class RegistryFrozenError(RegistrationError):
    """Mutation attempted after the build phase ended."""

    def __init__(self, operation: str, **kwargs):
        super().__init__(
            code="REGISTRY_FROZEN",
            message=f"Registry is frozen; '{operation}' is not allowed after bootstrap",
            metadata={"operation": operation, **kwargs.get("metadata", {})},
        )


# ============================================================================
# CHANNEL Faults
# ============================================================================

class ChannelNotFoundError(NotFoundError):
    """No message channel is registered at the requested path."""
    code = "CHANNEL_NOT_FOUND"
    default_domain = FaultDomain.CHANNEL

    def __init__(self, path: str, **kwargs):
        super().__init__(
            "No channel handler found",
            {"path": path},
            metadata=kwargs.get("metadata"),
        )
        self.path = path
