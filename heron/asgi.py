"""
ASGI adapter - bridges the ASGI protocol to Heron's router and channels.

HTTP requests are decoded into a transport-neutral ``Request`` (JSON body,
query mapping, lower-cased headers, client address) and dispatched through
the router. The adapter can also serve the OpenAPI document and a Swagger UI
page, answer lifespan events and run websocket message channels.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qs

from .channels import ChannelRegistry
from .contract import INTERNAL_ERROR_MESSAGE, error_envelope
from .controller.router import Router
from .faults import BadRequestError
from .http import Request, Response
from .pipeline import call_step
from .schema import to_jsonable


INVALID_JSON_MESSAGE = "Invalid JSON body"
CHANNEL_NOT_FOUND_CLOSE_CODE = 1008


def parse_query(query_string: bytes) -> Dict[str, Union[str, List[str]]]:
    """Parse a raw query string; single values collapse to ``str``."""
    parsed = parse_qs(query_string.decode("latin-1"), keep_blank_values=True)
    return {k: v[0] if len(v) == 1 else v for k, v in parsed.items()}


def decode_headers(raw_headers: List[Tuple[bytes, bytes]]) -> Dict[str, str]:
    return {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in raw_headers}


def client_address(scope: dict, headers: Dict[str, str]) -> Optional[str]:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    client = scope.get("client")
    if client:
        return str(client[0])
    return None


class WebSocketConnection:
    """Handle given to channel handlers for pushing extra messages."""

    __slots__ = ("path", "client", "_send")

    def __init__(self, path: str, client: Optional[str], send: Callable):
        self.path = path
        self.client = client
        self._send = send

    async def send_json(self, data: Any) -> None:
        await self._send({
            "type": "websocket.send",
            "text": json.dumps(data, default=to_jsonable),
        })


class ASGIAdapter:
    """
    ASGI 3 application.

    Args:
        router: Router holding the compiled routes
        channels: Optional message-channel registry for websockets
        openapi: Callable returning the OpenAPI document (served at
                 ``openapi_path``); ``None`` disables the docs routes
        openapi_path: Path of the JSON document
        docs_path: Path of the Swagger UI page, ``None`` to disable
        docs_html: Pre-rendered Swagger UI page
        on_startup / on_shutdown: Lifespan callbacks, sync or async
    """

    __slots__ = (
        'router', 'channels', 'openapi', 'openapi_path', 'docs_path',
        'docs_html', 'on_startup', 'on_shutdown', 'logger',
    )

    def __init__(
        self,
        router: Router,
        *,
        channels: Optional[ChannelRegistry] = None,
        openapi: Optional[Callable[[], Dict[str, Any]]] = None,
        openapi_path: str = "/openapi.json",
        docs_path: Optional[str] = "/docs",
        docs_html: Optional[str] = None,
        on_startup: Optional[Callable[[], Any]] = None,
        on_shutdown: Optional[Callable[[], Any]] = None,
    ):
        self.router = router
        self.channels = channels
        self.openapi = openapi
        self.openapi_path = openapi_path
        self.docs_path = docs_path
        self.docs_html = docs_html
        self.on_startup = on_startup
        self.on_shutdown = on_shutdown
        self.logger = logging.getLogger("heron.asgi")

    # ------------------------------------------------------------------
    # ASGI entry point
    # ------------------------------------------------------------------

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "websocket":
            await self.handle_websocket(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)

    async def handle_http(self, scope: dict, receive: Callable, send: Callable):
        method = scope.get("method", "GET").upper()
        path = scope.get("path", "/")

        response = self._serve_docs(method, path)
        if response is None:
            raw_body = await self._read_body(receive)
            try:
                response = await self._dispatch(scope, method, path, raw_body)
            except Exception as e:
                self.logger.error(f"Critical error in request pipeline: {e}", exc_info=True)
                response = Response.json(error_envelope(INTERNAL_ERROR_MESSAGE), status=500)

        await self._send_response(response, send)

    def _serve_docs(self, method: str, path: str) -> Optional[Response]:
        if self.openapi is None or method != "GET":
            return None
        if path == self.openapi_path:
            return Response.json(self.openapi())
        if self.docs_path and path == self.docs_path and self.docs_html is not None:
            return Response.html(self.docs_html)
        return None

    async def _dispatch(self, scope: dict, method: str, path: str, raw_body: bytes) -> Response:
        headers = decode_headers(scope.get("headers", []))

        body = None
        if raw_body:
            try:
                body = json.loads(raw_body)
            except ValueError:
                fault = BadRequestError(INVALID_JSON_MESSAGE)
                return Response.json(fault.to_envelope(), fault.status_code)

        request = Request(
            method=method,
            path=path,
            query=parse_query(scope.get("query_string", b"")),
            body=body,
            headers=headers,
            client=client_address(scope, headers),
        )
        return await self.router.dispatch(request)

    @staticmethod
    async def _read_body(receive: Callable) -> bytes:
        chunks = []
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        return b"".join(chunks)

    @staticmethod
    async def _send_response(response: Response, send: Callable):
        headers = [(k.encode("latin-1"), v.encode("latin-1")) for k, v in response.headers.items()]
        if response.status != 204:
            headers.append((b"content-length", str(len(response.body)).encode("latin-1")))
        await send({
            "type": "http.response.start",
            "status": response.status,
            "headers": headers,
        })
        await send({
            "type": "http.response.body",
            "body": response.body,
        })

    # ------------------------------------------------------------------
    # WebSocket channels
    # ------------------------------------------------------------------

    async def handle_websocket(self, scope: dict, receive: Callable, send: Callable):
        path = scope.get("path", "/")
        message = await receive()
        if message["type"] != "websocket.connect":
            return

        await send({"type": "websocket.accept"})

        if self.channels is None or path not in self.channels:
            self.logger.warning(f"No channel handler found for {path}")
            await send({
                "type": "websocket.close",
                "code": CHANNEL_NOT_FOUND_CLOSE_CODE,
                "reason": "No channel handler found",
            })
            return

        headers = decode_headers(scope.get("headers", []))
        connection = WebSocketConnection(path, client_address(scope, headers), send)

        while True:
            message = await receive()
            if message["type"] == "websocket.disconnect":
                break
            if message["type"] != "websocket.receive":
                continue

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            reply = await self.channels.dispatch(path, raw, connection)
            if reply is not None:
                await connection.send_json(reply)

    # ------------------------------------------------------------------
    # Lifespan
    # ------------------------------------------------------------------

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable):
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    if self.on_startup is not None:
                        await call_step(self.on_startup)
                    self.logger.debug("Server startup complete")
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    self.logger.error(f"Startup error: {e}", exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise

            elif message["type"] == "lifespan.shutdown":
                try:
                    if self.on_shutdown is not None:
                        await call_step(self.on_shutdown)
                    self.logger.debug("Server shutdown complete")
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    self.logger.error(f"Shutdown error: {e}", exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                break


__all__ = [
    "ASGIAdapter",
    "WebSocketConnection",
    "parse_query",
]
