"""
Heron Faults - Core types.

A fault is an exception that is also a structured value: a stable code, a
message, the functional area it belongs to and how loudly to report it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    """How loudly a fault is reported."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain(str, Enum):
    """Functional area a fault originates from."""
    REGISTRY = "registry"
    ROUTING = "routing"
    VALIDATION = "validation"
    SECURITY = "security"
    FLOW = "flow"
    CHANNEL = "channel"
    SYSTEM = "system"


DOMAIN_DEFAULTS = {
    FaultDomain.REGISTRY: Severity.FATAL,
    FaultDomain.ROUTING: Severity.WARN,
    FaultDomain.VALIDATION: Severity.WARN,
    FaultDomain.SECURITY: Severity.WARN,
    FaultDomain.FLOW: Severity.ERROR,
    FaultDomain.CHANNEL: Severity.WARN,
    FaultDomain.SYSTEM: Severity.ERROR,
}


class Fault(Exception):
    """
    Base class of every Heron fault.

    Attributes:
        code: Stable machine-readable identifier (e.g. "DUPLICATE_OWNER")
        message: Human-readable summary
        domain: Functional area
        severity: Defaults per domain
        public: Whether the message may be shown to a caller
        metadata: Extra context for logs
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain,
        severity: Optional[Severity] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = domain
        self.severity = severity or DOMAIN_DEFAULTS.get(domain, Severity.ERROR)
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Log-friendly representation."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "public": self.public,
            "metadata": self.metadata,
        }
