"""
Controller Metadata

Plain data describing what was declared: owners, route declarations,
per-handler contracts and middleware descriptors. Also the path helpers
shared by the route compiler and the documentation generator.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..faults import InvalidRoutePathError


class HTTPVerb(str, Enum):
    """Supported HTTP verbs."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: Any) -> "HTTPVerb":
        """
        Coerce ``"get"``, ``"GET"`` or ``HTTPVerb.GET`` to a verb.

        Raises:
            ValueError: If the value is not a supported verb
        """
        if isinstance(value, cls):
            return value
        return cls(str(value).upper())


# ─── Path helpers ────────────────────────────────────────────────────────────

_PLACEHOLDER = re.compile(r"^:([A-Za-z_][A-Za-z0-9_]*)$")
_PLACEHOLDER_ANYWHERE = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")
_REPEATED_SLASHES = re.compile(r"/+")


def check_path(path: str) -> List[str]:
    """
    Validate placeholder syntax and return the placeholder names in order.

    A segment is either static (no ``:``, ``{`` or ``}``) or exactly one
    ``:name`` placeholder. Names must be unique within the path.

    Raises:
        InvalidRoutePathError: On malformed segments or duplicate names
    """
    if not isinstance(path, str):
        raise InvalidRoutePathError(repr(path), "path must be a string")

    names: List[str] = []
    for segment in path.split("/"):
        if not segment:
            continue
        if segment.startswith(":"):
            match = _PLACEHOLDER.match(segment)
            if match is None:
                raise InvalidRoutePathError(path, f"malformed placeholder '{segment}'")
            name = match.group(1)
            if name in names:
                raise InvalidRoutePathError(path, f"duplicate placeholder '{name}'")
            names.append(name)
        elif any(ch in segment for ch in ":{}"):
            raise InvalidRoutePathError(
                path, f"placeholders must span a whole segment, got '{segment}'",
            )
    return names


def join_path(base_path: Optional[str], sub_path: str) -> str:
    """
    Compose base path and sub-path into a normalized full path.

    Repeated separators collapse, a leading ``/`` is ensured and a trailing
    ``/`` is dropped (except for the root path).
    """
    full = _REPEATED_SLASHES.sub("/", f"/{base_path or ''}/{sub_path or ''}")
    if full != "/":
        full = full.rstrip("/") or "/"
    return full


def placeholder_names(path: str) -> List[str]:
    """Names of ``:name`` placeholders in ``path``, in order."""
    return _PLACEHOLDER_ANYWHERE.findall(path)


def to_openapi_path(path: str) -> str:
    """Rewrite ``/users/:id`` to ``/users/{id}``."""
    return _PLACEHOLDER_ANYWHERE.sub(lambda m: "{" + m.group(1) + "}", path)


# ─── Declarations ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MiddlewareDescriptor:
    """
    A middleware step attached to a handler.

    Attributes:
        step: ``step(ctx)``, sync or async. Raise an HttpFault to reject the
              request; return ``None`` or a replacement context otherwise.
        header_key: Header the step requires (documentation only)
        description: Human description of the header (documentation only)
        name: Display name for logs
    """
    step: Callable[..., Any]
    header_key: Optional[str] = None
    description: Optional[str] = None
    name: str = ""

    def __post_init__(self):
        if not callable(self.step):
            raise TypeError(f"Middleware step must be callable, got {type(self.step).__name__}")
        if not self.name:
            object.__setattr__(
                self, "name", getattr(self.step, "__name__", type(self.step).__name__),
            )


@dataclass(frozen=True)
class RouteDeclaration:
    """One verb + sub-path bound to a named handler."""
    verb: HTTPVerb
    sub_path: str
    handler_id: str

    @property
    def key(self) -> Tuple[HTTPVerb, str]:
        return (self.verb, self.sub_path)


@dataclass(frozen=True)
class HandlerMetadata:
    """
    Optional contracts of one handler.

    A shape that is ``None`` means no validation and no documentation for
    that channel.
    """
    query: Any = None
    body: Any = None
    response: Any = None
    middleware: Tuple[MiddlewareDescriptor, ...] = ()

    @property
    def has_query(self) -> bool:
        return self.query is not None

    @property
    def has_body(self) -> bool:
        return self.body is not None

    @property
    def has_response(self) -> bool:
        return self.response is not None

    @property
    def has_middleware(self) -> bool:
        return bool(self.middleware)

    @property
    def required_headers(self) -> List[MiddlewareDescriptor]:
        return [m for m in self.middleware if m.header_key]

    def merged(self, **changes: Any) -> "HandlerMetadata":
        return replace(self, **changes)


EMPTY_METADATA = HandlerMetadata()


class HandlerOwner:
    """
    Registry record for one owner (a "controller").

    Created by ``Registry.register_owner``. Only the registry appends routes
    and metadata; readers get immutable views.
    """

    __slots__ = ("name", "base_path", "target", "_routes", "_metadata")

    def __init__(self, name: str, base_path: Optional[str], target: Any):
        self.name = name
        self.base_path = base_path
        self.target = target
        self._routes: List[RouteDeclaration] = []
        self._metadata: Dict[str, HandlerMetadata] = {}

    @property
    def routes(self) -> Tuple[RouteDeclaration, ...]:
        return tuple(self._routes)

    @property
    def metadata(self) -> Mapping[str, HandlerMetadata]:
        return MappingProxyType(self._metadata)

    @property
    def is_routable(self) -> bool:
        """Owners without a base path or without routes are skipped."""
        return bool(self.base_path) and bool(self._routes)

    def metadata_for(self, handler_id: str) -> HandlerMetadata:
        return self._metadata.get(handler_id, EMPTY_METADATA)

    def resolve(self, handler_id: str) -> Callable[..., Any]:
        return getattr(self.target, handler_id)

    def full_path(self, route: RouteDeclaration) -> str:
        return join_path(self.base_path, route.sub_path)

    def unique_routes(self) -> List[RouteDeclaration]:
        """
        Routes with re-declared (verb, sub-path) pairs collapsed.

        The last declaration wins but keeps the position of the first.
        """
        latest: Dict[Tuple[HTTPVerb, str], RouteDeclaration] = {}
        for route in self._routes:
            latest[route.key] = route
        return list(latest.values())

    def __repr__(self) -> str:
        return f"HandlerOwner(name={self.name!r}, base_path={self.base_path!r}, routes={len(self._routes)})"


__all__ = [
    "HTTPVerb",
    "MiddlewareDescriptor",
    "RouteDeclaration",
    "HandlerMetadata",
    "HandlerOwner",
    "EMPTY_METADATA",
    "check_path",
    "join_path",
    "placeholder_names",
    "to_openapi_path",
]
