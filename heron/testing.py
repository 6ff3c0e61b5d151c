"""
Heron Testing - in-process ASGI test client.

``TestClient`` invokes the ASGI application directly, captures the response
events and returns a :class:`TestResponse`. No socket is opened.

    client = TestClient(HeronServer(registry))
    resp = await client.post("/users", json={"name": "Ada"})
    assert resp.status_code == 201
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode


def _latin1(value: Any) -> bytes:
    return value.encode("latin-1") if isinstance(value, str) else value


def make_test_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    client: Optional[tuple] = None,
    scope_type: str = "http",
) -> dict:
    """Build a minimal ASGI scope for testing."""
    raw_headers: List[Tuple[bytes, bytes]] = [
        (_latin1(name), _latin1(value)) for name, value in headers or ()
    ]

    scope = {
        "type": scope_type,
        "asgi": {"version": "3.0"},
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("latin-1"),
        "headers": raw_headers,
        "client": client or ("127.0.0.1", 12345),
        "server": ("testserver", 80),
    }
    if scope_type == "http":
        scope["method"] = method.upper()
        scope["http_version"] = "1.1"
        scope["scheme"] = "http"
    return scope


def make_test_receive(body: bytes = b""):
    """Receive callable delivering ``body`` in a single message."""
    sent = False

    async def receive() -> dict:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    return receive


class TestResponse:
    """Status, lowercased headers and raw body captured from one request."""

    __test__ = False

    def __init__(self, status_code: int, headers: Dict[str, str], body: bytes):
        self.status_code = status_code
        self.headers = headers
        self.body = body

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").partition(";")[0].strip()

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        return stdlib_json.loads(self.body)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    def __repr__(self) -> str:
        return f"<TestResponse [{self.status_code}] {self.content_type or '-'} {len(self.body)}B>"


class TestClient:
    """
    In-process ASGI test client.

    Args:
        server_or_app: A ``HeronServer`` (anything with ``.app``) or a raw
            ASGI app callable
        default_headers: Headers injected into every request
    """

    __test__ = False

    def __init__(
        self,
        server_or_app: Any,
        *,
        default_headers: Optional[Dict[str, str]] = None,
    ):
        self._app = server_or_app.app if hasattr(server_or_app, "app") else server_or_app
        self._default_headers = default_headers or {}

    def set_bearer_token(self, token: str) -> None:
        """Set Authorization: Bearer <token> header for all requests."""
        self._default_headers["authorization"] = f"Bearer {token}"

    # ------------------------------------------------------------------
    # HTTP verbs
    # ------------------------------------------------------------------

    async def get(self, path: str, **kw) -> TestResponse:
        return await self.request("GET", path, **kw)

    async def post(self, path: str, json: Any = None, **kw) -> TestResponse:
        return await self.request("POST", path, json=json, **kw)

    async def put(self, path: str, json: Any = None, **kw) -> TestResponse:
        return await self.request("PUT", path, json=json, **kw)

    async def patch(self, path: str, json: Any = None, **kw) -> TestResponse:
        return await self.request("PATCH", path, json=json, **kw)

    async def delete(self, path: str, **kw) -> TestResponse:
        return await self.request("DELETE", path, **kw)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        body: bytes = b"",
        client: Optional[tuple] = None,
    ) -> TestResponse:
        """Issue a single in-process ASGI request."""
        combined_headers: List[Tuple[str, str]] = [
            (k.lower(), v) for k, v in self._default_headers.items()
        ]
        if headers:
            combined_headers.extend((k.lower(), v) for k, v in headers.items())

        if json is not None:
            body = stdlib_json.dumps(json).encode("utf-8")
            combined_headers.append(("content-type", "application/json"))
        if body:
            combined_headers.append(("content-length", str(len(body))))

        scope = make_test_scope(
            method=method,
            path=path,
            query_string=urlencode(params or {}, doseq=True),
            headers=combined_headers,
            client=client,
        )

        status_code = 200
        resp_headers: Dict[str, str] = {}
        body_parts: List[bytes] = []

        async def send(event: dict):
            nonlocal status_code
            if event["type"] == "http.response.start":
                status_code = event["status"]
                for name, value in event.get("headers", []):
                    resp_headers[name.decode("latin-1").lower()] = value.decode("latin-1")
            elif event["type"] == "http.response.body":
                body_parts.append(event.get("body", b""))

        await self._app(scope, make_test_receive(body), send)
        return TestResponse(status_code, resp_headers, b"".join(body_parts))

    # ------------------------------------------------------------------
    # WebSocket
    # ------------------------------------------------------------------

    async def websocket(
        self,
        path: str,
        messages: List[Any],
    ) -> Tuple[List[Any], Optional[int]]:
        """
        Connect, send ``messages`` (dicts are JSON-encoded), then disconnect.

        Returns:
            (decoded replies, close code or ``None``)
        """
        incoming: List[dict] = [{"type": "websocket.connect"}]
        for message in messages:
            text = message if isinstance(message, str) else stdlib_json.dumps(message)
            incoming.append({"type": "websocket.receive", "text": text})
        incoming.append({"type": "websocket.disconnect", "code": 1000})

        replies: List[Any] = []
        close_code: Optional[int] = None

        async def receive() -> dict:
            return incoming.pop(0)

        async def send(event: dict):
            nonlocal close_code
            if event["type"] == "websocket.send":
                replies.append(stdlib_json.loads(event["text"]))
            elif event["type"] == "websocket.close":
                close_code = event.get("code", 1000)

        await self._app(make_test_scope(path=path, scope_type="websocket"), receive, send)
        return replies, close_code


__all__ = [
    "TestClient",
    "TestResponse",
    "make_test_scope",
    "make_test_receive",
]
