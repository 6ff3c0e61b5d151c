"""
Tests for the route compiler and compiled route dispatch.
"""

import asyncio
import logging

import pytest
from pydantic import BaseModel

from heron import (
    Controller,
    GET,
    POST,
    DELETE,
    body,
    response,
    middleware,
    HttpFault,
    RouteCompiler,
    compile_routes,
)
from heron.contract import INTERNAL_ERROR_MESSAGE
from heron.pipeline import INVALID_BODY_MESSAGE, INVALID_RESPONSE_MESSAGE
from tests.conftest import (
    EmptyController,
    HealthController,
    NoPrefixController,
    User,
    UsersController,
    make_request,
    route_for,
)


class Echo(BaseModel):
    value: int


# ============================================================================
# Compilation
# ============================================================================


class TestCompile:

    def test_one_route_per_declaration(self, users_registry):
        routes = compile_routes(users_registry)
        assert [(r.method, r.full_path) for r in routes] == [
            ("GET", "/users"),
            ("GET", "/users/:id"),
            ("POST", "/users"),
            ("PUT", "/users/:id"),
            ("DELETE", "/users/:id"),
            ("GET", "/health"),
        ]

    def test_success_status(self, users_registry):
        routes = compile_routes(users_registry)
        assert route_for(routes, "POST", "/users").status == 201
        assert route_for(routes, "DELETE", "/users/:id").status == 204
        assert route_for(routes, "GET", "/users/:id").status == 200

    def test_responses_match_contract(self, users_registry):
        create = route_for(compile_routes(users_registry), "POST", "/users")
        assert list(create.responses) == [500, 400, 401, 201]

    def test_route_metadata(self, users_registry):
        create = route_for(compile_routes(users_registry), "POST", "/users")
        assert create.owner_name == "UsersController"
        assert create.handler_id == "create_user"
        assert create.path_params == []
        assert create.to_dict() == {
            "owner": "UsersController",
            "handler": "create_user",
            "method": "POST",
            "path": "/users",
            "status": 201,
            "middleware": ["require_token"],
        }
        assert create.pipeline.names == (
            "require_token", "validate_request", "create_user", "validate_response",
        )

    def test_skips_owner_without_base_path_or_routes(self, registry, caplog):
        registry.include(NoPrefixController)
        registry.include(EmptyController)
        registry.include(HealthController)
        with caplog.at_level(logging.WARNING, logger="heron.compiler"):
            routes = RouteCompiler(registry).compile()
        assert [r.full_path for r in routes] == ["/health"]
        assert 'Owner "NoPrefixController" is missing a base path or routes' in caplog.text
        assert 'Owner "EmptyController" is missing a base path or routes' in caplog.text

    def test_redeclaration_collapses(self, registry):
        class Items:
            def first(self, ctx):
                return "first"

            def second(self, ctx):
                return "second"

        owner = registry.register_owner(Items(), base_path="/items")
        registry.declare_route(owner, "GET", "/", "first")
        registry.declare_route(owner, "POST", "/", "first")
        registry.declare_route(owner, "GET", "/", "second")
        routes = compile_routes(registry)
        assert [(r.method, r.handler_id) for r in routes] == [("GET", "second"), ("POST", "first")]

    def test_logs_summary(self, users_registry, caplog):
        with caplog.at_level(logging.INFO, logger="heron.compiler"):
            compile_routes(users_registry)
        assert "All routes compiled (2 owners, 6 routes)" in caplog.text
        assert "UsersController {/users} (5 routes)" in caplog.text

    def test_does_not_freeze(self, users_registry):
        compile_routes(users_registry)
        assert not users_registry.frozen


# ============================================================================
# Dispatch
# ============================================================================


class TestDispatch:

    @pytest.mark.asyncio
    async def test_success_envelope(self, users_registry):
        get_user = route_for(compile_routes(users_registry), "GET", "/users/:id")
        resp = await get_user(make_request("GET", "/users/1", path_params={"id": "1"}))
        assert resp.status == 200
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.parse_json() == {
            "success": True,
            "data": {"id": 1, "name": "Ada", "address": None},
        }

    @pytest.mark.asyncio
    async def test_declared_fault(self, users_registry):
        get_user = route_for(compile_routes(users_registry), "GET", "/users/:id")
        resp = await get_user(make_request("GET", "/users/9", path_params={"id": "9"}))
        assert resp.status == 404
        assert resp.parse_json() == {
            "success": False,
            "error": "User not found",
            "details": {"id": "9"},
        }

    @pytest.mark.asyncio
    async def test_delete_is_204_without_body(self, users_registry):
        delete = route_for(compile_routes(users_registry), "DELETE", "/users/:id")
        resp = await delete(make_request("DELETE", "/users/1", path_params={"id": "1"}))
        assert resp.status == 204
        assert resp.body == b""

    @pytest.mark.asyncio
    async def test_delete_drops_declared_response_data(self, registry):
        class Archive(Controller):
            prefix = "/archive"

            @DELETE("/:id")
            @response(Echo)
            def purge(self, ctx):
                return {"value": 1}

        registry.include(Archive)
        [purge] = compile_routes(registry)
        resp = await purge(make_request("DELETE", "/archive/1", path_params={"id": "1"}))
        assert resp.status == 204
        assert resp.body == b""

    @pytest.mark.asyncio
    async def test_post_is_201(self, users_registry):
        create = route_for(compile_routes(users_registry), "POST", "/users")
        resp = await create(make_request(
            "POST", "/users",
            body={"name": "Grace"},
            headers={"Authorization": "Bearer secret"},
        ))
        assert resp.status == 201
        assert resp.parse_json()["data"] == {"id": 2, "name": "Grace", "address": None}

    @pytest.mark.asyncio
    async def test_extra_body_field_is_400(self, users_registry):
        create = route_for(compile_routes(users_registry), "POST", "/users")
        resp = await create(make_request(
            "POST", "/users",
            body={"name": "Grace", "admin": True},
            headers={"Authorization": "Bearer secret"},
        ))
        assert resp.status == 400
        payload = resp.parse_json()
        assert payload["success"] is False
        assert payload["error"] == INVALID_BODY_MESSAGE
        assert payload["details"][0]["path"] == ["admin"]

    @pytest.mark.asyncio
    async def test_middleware_short_circuits_before_validation(self, users_registry):
        create = route_for(compile_routes(users_registry), "POST", "/users")
        resp = await create(make_request("POST", "/users", body={"bogus": 1}))
        assert resp.status == 401
        assert resp.parse_json()["error"] == "Missing or invalid token"

    @pytest.mark.asyncio
    async def test_broken_response_contract_is_500(self, registry):
        class Liar(Controller):
            prefix = "/liar"

            @GET("/")
            @response(User)
            def lie(self, ctx):
                return {"id": "not a number"}

        registry.include(Liar)
        resp = await compile_routes(registry)[0](make_request("GET", "/liar"))
        assert resp.status == 500
        payload = resp.parse_json()
        assert payload["error"] == INVALID_RESPONSE_MESSAGE
        assert payload["details"]

    @pytest.mark.asyncio
    async def test_undeclared_exception_is_generic_500(self, registry, caplog):
        class Boom(Controller):
            prefix = "/boom"

            @GET("/")
            def explode(self, ctx):
                raise RuntimeError("database password is hunter2")

        registry.include(Boom)
        with caplog.at_level(logging.ERROR, logger="heron.compiler"):
            resp = await compile_routes(registry)[0](make_request("GET", "/boom"))
        assert resp.status == 500
        assert resp.parse_json() == {
            "success": False,
            "error": INTERNAL_ERROR_MESSAGE,
            "details": None,
        }
        assert b"hunter2" not in resp.body
        assert "Unhandled error in Boom.explode" in caplog.text

    @pytest.mark.asyncio
    async def test_unserializable_result_is_500(self, registry):
        class Odd(Controller):
            prefix = "/odd"

            @GET("/")
            def odd(self, ctx):
                return object()

        registry.include(Odd)
        resp = await compile_routes(registry)[0](make_request("GET", "/odd"))
        assert resp.status == 500

    @pytest.mark.asyncio
    async def test_custom_fault_status(self, registry):
        class Teapot(Controller):
            prefix = "/tea"

            @GET("/")
            def brew(self, ctx):
                raise HttpFault("I'm a teapot", status_code=418)

        registry.include(Teapot)
        resp = await compile_routes(registry)[0](make_request("GET", "/tea"))
        assert resp.status == 418
        assert resp.parse_json()["error"] == "I'm a teapot"

    @pytest.mark.asyncio
    async def test_failures_after_await_are_handled_like_sync_ones(self, registry):
        async def slow_guard(ctx):
            await asyncio.sleep(0)
            if ctx.request.header("x-key") != "ok":
                raise HttpFault("Locked", status_code=423)

        class Vault(Controller):
            prefix = "/vault"

            @GET("/")
            @middleware(slow_guard)
            async def open(self, ctx):
                await asyncio.sleep(0)
                raise RuntimeError("combination is 1234")

        registry.include(Vault)
        [vault] = compile_routes(registry)

        locked = await vault(make_request("GET", "/vault"))
        assert locked.status == 423
        assert locked.parse_json() == {"success": False, "error": "Locked", "details": None}

        broken = await vault(make_request("GET", "/vault", headers={"x-key": "ok"}))
        assert broken.status == 500
        assert broken.parse_json()["error"] == INTERNAL_ERROR_MESSAGE
        assert b"1234" not in broken.body

    @pytest.mark.asyncio
    async def test_no_response_shape_passes_value_through(self, users_registry):
        health = route_for(compile_routes(users_registry), "GET", "/health")
        resp = await health(make_request("GET", "/health"))
        assert resp.parse_json() == {"success": True, "data": {"status": "ok"}}

    @pytest.mark.asyncio
    async def test_middleware_order_and_state(self, registry):
        calls = []

        def first(ctx):
            calls.append("first")
            ctx.state["user"] = "ada"

        async def second(ctx):
            calls.append("second")
            ctx.state["seen"] = ctx.state["user"]

        class Ordered(Controller):
            prefix = "/ordered"

            @POST("/")
            @middleware(first)
            @middleware(second)
            @body(Echo)
            def handle(self, ctx):
                calls.append("handler")
                return {"user": ctx.state["seen"], "value": ctx.body.value}

        registry.include(Ordered)
        resp = await compile_routes(registry)[0](
            make_request("POST", "/ordered", body={"value": 3})
        )
        assert calls == ["first", "second", "handler"]
        assert resp.parse_json()["data"] == {"user": "ada", "value": 3}

    @pytest.mark.asyncio
    async def test_concurrent_requests_do_not_share_state(self, registry):
        class Slow(Controller):
            prefix = "/slow"

            @POST("/")
            @middleware(lambda ctx: ctx.state.update(value=ctx.body["value"]))
            async def handle(self, ctx):
                await asyncio.sleep(0.01 * (5 - ctx.body["value"]))
                return ctx.state["value"]

        registry.include(Slow)
        slow = compile_routes(registry)[0]
        responses = await asyncio.gather(*(
            slow(make_request("POST", "/slow", body={"value": i})) for i in range(5)
        ))
        assert [r.parse_json()["data"] for r in responses] == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, registry):
        class Stuck(Controller):
            prefix = "/stuck"

            @GET("/")
            async def wait(self, ctx):
                await asyncio.sleep(10)

        registry.include(Stuck)
        task = asyncio.ensure_future(compile_routes(registry)[0](make_request("GET", "/stuck")))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_access_log_uses_route_path(self, users_registry, caplog):
        from heron.accesslog import AccessLog

        routes = compile_routes(users_registry, access_log=AccessLog(format="combined"))
        get_user = route_for(routes, "GET", "/users/:id")
        with caplog.at_level(logging.INFO, logger="heron.access"):
            await get_user(make_request("GET", "/users/1", path_params={"id": "1"}))
        record = [r for r in caplog.records if r.name == "heron.access"][0]
        assert record.path == "/users/:id"
        assert record.status == 200
        assert record.method == "GET"
