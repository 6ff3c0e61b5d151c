"""
Heron Controller System

Declaration sugar, metadata types, route compilation, routing and OpenAPI
generation.

Example:
    from heron.controller import Controller, GET, POST, body, response

    class UsersController(Controller):
        prefix = "/users"

        @GET("/:id")
        @response(User)
        async def get_user(self, ctx):
            return repo.get(ctx.param("id"))

        @POST("/")
        @body(CreateUser)
        async def create_user(self, ctx):
            return repo.create(ctx.body)
"""

from .base import Controller, RequestCtx
from .metadata import (
    HTTPVerb,
    HandlerMetadata,
    HandlerOwner,
    MiddlewareDescriptor,
    RouteDeclaration,
    EMPTY_METADATA,
    check_path,
    join_path,
    placeholder_names,
    to_openapi_path,
)
from .decorators import (
    GET,
    POST,
    PUT,
    PATCH,
    DELETE,
    route,
    body,
    query,
    response,
    middleware,
    collect_declarations,
)
from .compiler import CompiledRoute, RouteCompiler, compile_routes
from .router import Router, RouteMatch, bind
from .openapi import (
    OpenAPIConfig,
    OpenAPIGenerator,
    build_openapi,
    generate_swagger_html,
    humanize_handler_name,
)

__all__ = [
    # Base
    "Controller",
    "RequestCtx",

    # Metadata
    "HTTPVerb",
    "HandlerMetadata",
    "HandlerOwner",
    "MiddlewareDescriptor",
    "RouteDeclaration",
    "EMPTY_METADATA",
    "check_path",
    "join_path",
    "placeholder_names",
    "to_openapi_path",

    # Decorators
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "route",
    "body",
    "query",
    "response",
    "middleware",
    "collect_declarations",

    # Compilation & routing
    "CompiledRoute",
    "RouteCompiler",
    "compile_routes",
    "Router",
    "RouteMatch",
    "bind",

    # OpenAPI
    "OpenAPIConfig",
    "OpenAPIGenerator",
    "build_openapi",
    "generate_swagger_html",
    "humanize_handler_name",
]
