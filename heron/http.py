"""
Transport-neutral request and response objects.

The transport (ASGI adapter, test client, any external router) builds a
``Request`` with the body already decoded and hands it to a compiled route.
The route answers with a ``Response`` whose body is already encoded.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .schema import to_jsonable


JSON_MEDIA_TYPE = "application/json; charset=utf-8"


@dataclass
class Request:
    """
    Inbound request as seen by the dispatch pipeline.

    Attributes:
        method: HTTP verb (upper case)
        path: Request path as received
        path_params: Values captured by ``:name`` placeholders
        query: Raw query mapping (single values as str, repeats as list)
        body: Decoded body (usually parsed JSON), ``None`` when empty
        headers: Header mapping with lower-cased names
        client: Client address, if known
    """
    method: str
    path: str
    path_params: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    client: Optional[str] = None

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)


@dataclass
class Response:
    """Outbound response with an encoded body."""
    status: int = 200
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def json(
        cls,
        obj: Any,
        status: int = 200,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "Response":
        """
        Create JSON response.

        Raises:
            TypeError/ValueError: If ``obj`` cannot be serialized
        """
        content = json.dumps(obj, default=to_jsonable).encode("utf-8")
        merged = {"content-type": JSON_MEDIA_TYPE}
        if headers:
            merged.update({k.lower(): v for k, v in headers.items()})
        return cls(status=status, body=content, headers=merged)

    @classmethod
    def html(cls, content: str, status: int = 200) -> "Response":
        return cls(
            status=status,
            body=content.encode("utf-8"),
            headers={"content-type": "text/html; charset=utf-8"},
        )

    @classmethod
    def empty(cls, status: int = 204) -> "Response":
        """Response without a body (e.g. 204 No Content)."""
        return cls(status=status)

    def parse_json(self) -> Any:
        """Decode the body as JSON (``None`` for an empty body)."""
        if not self.body:
            return None
        return json.loads(self.body)
