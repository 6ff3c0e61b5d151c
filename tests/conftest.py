"""
Shared test fixtures and helpers for the Heron test suite.
"""

import asyncio
from typing import List, Optional

import pytest
from pydantic import BaseModel

from heron import (
    Controller,
    GET,
    POST,
    PUT,
    DELETE,
    body,
    query,
    response,
    middleware,
    NotFoundError,
    UnauthorizedError,
    Registry,
    Request,
    reset_default_registry,
)


# ============================================================================
# Models
# ============================================================================


class Address(BaseModel):
    street: str
    city: str


class User(BaseModel):
    id: int
    name: str
    address: Optional[Address] = None


class CreateUser(BaseModel):
    name: str
    address: Optional[Address] = None


class ListQuery(BaseModel):
    limit: int = 10
    search: Optional[str] = None


# ============================================================================
# Middleware
# ============================================================================


def require_token(ctx):
    """Reject requests without ``Authorization: Bearer secret``."""
    if ctx.header("authorization") != "Bearer secret":
        raise UnauthorizedError("Missing or invalid token")
    ctx.state["user"] = "ada"


# ============================================================================
# Controllers
# ============================================================================


class UsersController(Controller):
    prefix = "/users"

    def __init__(self):
        self.users = {1: {"id": 1, "name": "Ada"}}

    @GET("/")
    @query(ListQuery)
    @response(List[User])
    async def list_users(self, ctx):
        users = list(self.users.values())
        if ctx.query.search:
            users = [u for u in users if ctx.query.search in u["name"]]
        return users[:ctx.query.limit]

    @GET("/:id")
    @response(User)
    async def getUserById(self, ctx):
        user = self.users.get(int(ctx.param("id")))
        if user is None:
            raise NotFoundError("User not found", {"id": ctx.param("id")})
        return user

    @POST("/")
    @middleware(require_token, header_key="Authorization", description="Bearer token")
    @body(CreateUser)
    @response(User)
    async def create_user(self, ctx):
        await asyncio.sleep(0)
        new_id = max(self.users) + 1
        user = {"id": new_id, **ctx.body.model_dump()}
        self.users[new_id] = user
        return user

    @PUT("/:id")
    @body(CreateUser)
    def replace_user(self, ctx):
        return {"id": int(ctx.param("id")), "name": ctx.body.name}

    @DELETE("/:id")
    async def delete_user(self, ctx):
        self.users.pop(int(ctx.param("id")), None)


class HealthController(Controller):
    prefix = "/health"

    @GET("/")
    def health(self, ctx):
        return {"status": "ok"}


class NoPrefixController(Controller):
    @GET("/orphan")
    def orphan(self, ctx):
        return "never served"


class EmptyController(Controller):
    prefix = "/empty"


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _fresh_default_registry():
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture
def registry():
    return Registry()


@pytest.fixture
def users_registry(registry):
    registry.include(UsersController)
    registry.include(HealthController)
    return registry


# ============================================================================
# Request Helpers
# ============================================================================


def make_request(
    method: str = "GET",
    path: str = "/",
    *,
    path_params=None,
    query=None,
    body=None,
    headers=None,
    client: Optional[str] = "127.0.0.1",
) -> Request:
    return Request(
        method=method,
        path=path,
        path_params=path_params or {},
        query=query or {},
        body=body,
        headers=headers or {},
        client=client,
    )


def route_for(routes, method: str, path: str):
    """Pick one compiled route by verb and full path."""
    for r in routes:
        if r.method == method and r.full_path == path:
            return r
    raise LookupError(f"{method} {path} not compiled")
