"""
Heron - declarative API registration.

Handlers are declared once with routing, validation and documentation
metadata. The registry that holds those declarations drives two independent
views: compiled routes that validate and dispatch requests, and an OpenAPI
3.1 document built without running any handler.

Example:
    from pydantic import BaseModel
    from heron import Controller, GET, POST, body, response, Registry, HeronServer

    class User(BaseModel):
        id: int
        name: str

    class UsersController(Controller):
        prefix = "/users"

        @GET("/:id")
        @response(User)
        async def get_user(self, ctx):
            return {"id": int(ctx.param("id")), "name": "Ada"}

    registry = Registry()
    registry.include(UsersController)
    app = HeronServer(registry).app
"""

__version__ = "0.1.0"

from .faults import (
    Fault,
    HttpFault,
    BadRequestError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    TooManyRequestsError,
    InternalServerError,
    RegistrationError,
    DuplicateRegistrationError,
    InvalidRoutePathError,
    InvalidRouteError,
    RegistryFrozenError,
)
from .controller import (
    Controller,
    RequestCtx,
    HTTPVerb,
    HandlerMetadata,
    HandlerOwner,
    MiddlewareDescriptor,
    RouteDeclaration,
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
    CompiledRoute,
    RouteCompiler,
    compile_routes,
    Router,
    bind,
    OpenAPIGenerator,
    build_openapi,
)
from .registry import Registry, get_default_registry, reset_default_registry
from .pipeline import Pipeline, validate_inbound, validate_outbound
from .contract import response_entries, default_status
from .http import Request, Response
from .channels import ChannelRegistry, on_event
from .config import HeronConfig, ConfigLoader, load_config
from .server import HeronServer

__all__ = [
    "__version__",

    # Faults
    "Fault",
    "HttpFault",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "TooManyRequestsError",
    "InternalServerError",
    "RegistrationError",
    "DuplicateRegistrationError",
    "InvalidRoutePathError",
    "InvalidRouteError",
    "RegistryFrozenError",

    # Declaration
    "Controller",
    "RequestCtx",
    "HTTPVerb",
    "HandlerMetadata",
    "HandlerOwner",
    "MiddlewareDescriptor",
    "RouteDeclaration",
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

    # Registry
    "Registry",
    "get_default_registry",
    "reset_default_registry",

    # Dispatch
    "Pipeline",
    "validate_inbound",
    "validate_outbound",
    "response_entries",
    "default_status",
    "CompiledRoute",
    "RouteCompiler",
    "compile_routes",
    "Router",
    "bind",
    "Request",
    "Response",

    # Docs
    "OpenAPIGenerator",
    "build_openapi",

    # Channels
    "ChannelRegistry",
    "on_event",

    # Serving
    "HeronConfig",
    "ConfigLoader",
    "load_config",
    "HeronServer",
]
