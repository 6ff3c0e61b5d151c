"""
Route Compiler - folds the registry into executable routes.

Each compiled route owns its step pipeline and is the single place where a
request failure, declared or not, becomes a wire response:

    await route(request) -> Response
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..accesslog import AccessLog
from ..contract import (
    INTERNAL_ERROR_MESSAGE,
    ResponseEntry,
    error_envelope,
    response_entries,
    success_entry,
    success_envelope,
)
from ..faults import HttpFault
from ..http import Request, Response
from ..pipeline import Pipeline, build_pipeline
from .base import RequestCtx
from .metadata import (
    HandlerMetadata,
    HandlerOwner,
    HTTPVerb,
    MiddlewareDescriptor,
    placeholder_names,
)


logger = logging.getLogger("heron.compiler")


@dataclass
class CompiledRoute:
    """A declared route with its pipeline, ready to dispatch."""

    owner_name: str
    handler_id: str
    verb: HTTPVerb
    full_path: str
    status: int
    responses: Dict[int, ResponseEntry]
    middleware: Tuple[MiddlewareDescriptor, ...]
    pipeline: Pipeline
    access_log: Optional[AccessLog] = field(default=None, repr=False)

    @property
    def method(self) -> str:
        return self.verb.value

    @property
    def path_params(self) -> List[str]:
        return placeholder_names(self.full_path)

    async def __call__(self, request: Request) -> Response:
        """
        Dispatch one request through the pipeline.

        Declared failures answer with their own status and envelope. Anything
        else is logged and answered with a generic 500. Cancellation is left
        to the transport.
        """
        start = time.perf_counter()
        ctx = RequestCtx(
            request=request,
            route_path=self.full_path,
            path_params=dict(request.path_params),
            query=request.query,
            body=request.body,
        )

        try:
            ctx = await self.pipeline.run(ctx)
            if not self.responses[self.status].has_body:
                response = Response.empty(self.status)
            else:
                response = Response.json(success_envelope(ctx.result), self.status)
        except asyncio.CancelledError:
            raise
        except HttpFault as fault:
            response = Response.json(fault.to_envelope(), fault.status_code)
        except Exception:
            logger.exception(
                f"Unhandled error in {self.owner_name}.{self.handler_id} "
                f"({self.method} {self.full_path})"
            )
            response = Response.json(error_envelope(INTERNAL_ERROR_MESSAGE), 500)

        if self.access_log is not None:
            self.access_log.record(
                client=request.client,
                method=self.method,
                path=self.full_path,
                status=response.status,
                duration_ms=(time.perf_counter() - start) * 1000,
                content_length=len(response.body),
            )
        return response

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner_name,
            "handler": self.handler_id,
            "method": self.method,
            "path": self.full_path,
            "status": self.status,
            "middleware": [m.name for m in self.middleware],
        }


class RouteCompiler:
    """
    Compiles every routable owner of a registry into ``CompiledRoute``s.

    Owners without a base path or without routes are skipped with a
    warning; the rest still compile.
    """

    def __init__(self, registry: Any, access_log: Optional[AccessLog] = None):
        self.registry = registry
        self.access_log = access_log

    def compile(self) -> List[CompiledRoute]:
        global_start = time.perf_counter()
        compiled: List[CompiledRoute] = []
        owner_count = 0

        for owner in self.registry.owners():
            if not owner.is_routable:
                logger.warning(
                    f'Owner "{owner.name}" is missing a base path or routes and will be skipped'
                )
                continue

            start = time.perf_counter()
            routes = self.compile_owner(owner)
            compiled.extend(routes)
            owner_count += 1

            elapsed = (time.perf_counter() - start) * 1000
            logger.info(
                f"{owner.name} {{{owner.base_path}}} "
                f"({len(routes)} route{'s' if len(routes) != 1 else ''}): +{elapsed:.0f}ms"
            )
            for route in routes:
                logger.info(f"{route.method:7} {route.full_path}")

        total = (time.perf_counter() - global_start) * 1000
        logger.info(
            f"All routes compiled ({owner_count} owners, {len(compiled)} routes): +{total:.0f}ms"
        )
        return compiled

    def compile_owner(self, owner: HandlerOwner) -> List[CompiledRoute]:
        """One compiled route per distinct (verb, sub-path) of the owner."""
        compiled = []
        for declaration in owner.unique_routes():
            metadata = owner.metadata_for(declaration.handler_id)
            full_path = owner.full_path(declaration)
            compiled.append(self._compile_route(
                owner,
                declaration.verb,
                full_path,
                declaration.handler_id,
                owner.resolve(declaration.handler_id),
                metadata,
            ))
        return compiled

    def _compile_route(
        self,
        owner: HandlerOwner,
        verb: HTTPVerb,
        full_path: str,
        handler_id: str,
        handler: Callable[..., Any],
        metadata: HandlerMetadata,
    ) -> CompiledRoute:
        entries = response_entries(
            verb,
            has_body=metadata.has_body,
            has_query=metadata.has_query,
            has_middleware=metadata.has_middleware,
            has_path_params=bool(placeholder_names(full_path)),
        )
        return CompiledRoute(
            owner_name=owner.name,
            handler_id=handler_id,
            verb=verb,
            full_path=full_path,
            status=success_entry(entries).status,
            responses=entries,
            middleware=metadata.middleware,
            pipeline=build_pipeline(handler, metadata, handler_name=handler_id),
            access_log=self.access_log,
        )


def compile_routes(registry: Any, access_log: Optional[AccessLog] = None) -> List[CompiledRoute]:
    """Shortcut for ``RouteCompiler(registry, access_log).compile()``."""
    return RouteCompiler(registry, access_log).compile()


__all__ = [
    "CompiledRoute",
    "RouteCompiler",
    "compile_routes",
]
