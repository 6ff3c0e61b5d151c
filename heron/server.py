"""
HeronServer - wires a registry into a runnable ASGI application.

    server = HeronServer(registry, config=HeronConfig(title="Shop API"))
    app = server.app          # hand to any ASGI server
    server.run()              # or run it with uvicorn

Building the server compiles every routable owner, binds the compiled routes
to a router and freezes the registry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .accesslog import AccessLog, setup_logging
from .asgi import ASGIAdapter
from .channels import ChannelRegistry
from .config import HeronConfig
from .controller.compiler import CompiledRoute, RouteCompiler
from .controller.openapi import OpenAPIConfig, OpenAPIGenerator, generate_swagger_html
from .controller.router import Router, bind
from .registry import Registry, get_default_registry


class HeronServer:
    """
    Facade over compilation, routing, documentation and serving.

    Args:
        registry: Registry to serve (defaults to the process-wide one)
        config: Server settings
        channels: Optional websocket message channels
    """

    def __init__(
        self,
        registry: Optional[Registry] = None,
        config: Optional[HeronConfig] = None,
        channels: Optional[ChannelRegistry] = None,
    ):
        self.registry = registry if registry is not None else get_default_registry()
        self.config = config or HeronConfig()
        self.channels = channels
        self.logger = logging.getLogger("heron.server")

        self.access_log = AccessLog(
            format=self.config.log_format,
            slow_threshold_ms=self.config.slow_threshold_ms,
            enabled=self.config.access_log,
        )
        self.openapi_config = OpenAPIConfig(
            title=self.config.title,
            docs_path=self.config.docs_path,
            openapi_json_path=self.config.openapi_path,
            enabled=self.config.docs_enabled,
        )

        self.routes: List[CompiledRoute] = RouteCompiler(self.registry, self.access_log).compile()
        self.router: Router = bind(self.routes, Router())
        self.registry.freeze()

        self._openapi: Optional[Dict[str, Any]] = None
        self.app = self._build_app()

    def openapi(self) -> Dict[str, Any]:
        """The OpenAPI document (built once, the registry is frozen)."""
        if self._openapi is None:
            self._openapi = OpenAPIGenerator(config=self.openapi_config).build(self.registry)
        return self._openapi

    def _build_app(self) -> ASGIAdapter:
        docs_enabled = self.openapi_config.enabled
        return ASGIAdapter(
            self.router,
            channels=self.channels,
            openapi=self.openapi if docs_enabled else None,
            openapi_path=self.openapi_config.openapi_json_path,
            docs_path=self.openapi_config.docs_path if docs_enabled else None,
            docs_html=generate_swagger_html(
                self.openapi_config.title, self.openapi_config.openapi_json_path,
            ) if docs_enabled else None,
            on_startup=self._on_startup,
        )

    def _on_startup(self) -> None:
        self.logger.info(
            f"{self.config.title}: {len(self.routes)} route(s) ready"
            + (f", docs at {self.openapi_config.docs_path}" if self.openapi_config.enabled else "")
        )

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Run the server with uvicorn.

        Args:
            host: Host to bind to (defaults to the config)
            port: Port to bind to (defaults to the config)
        """
        import uvicorn

        setup_logging(self.config.log_level)
        host = host or self.config.host
        port = port or self.config.port

        self.logger.info(f"Starting uvicorn server on {host}:{port}")
        uvicorn.run(
            self.app,
            host=host,
            port=port,
            log_level=self.config.log_level,
        )


__all__ = ["HeronServer"]
