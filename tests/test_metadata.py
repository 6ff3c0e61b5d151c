"""
Tests for metadata types and path helpers.
"""

import pytest

from heron.controller.metadata import (
    EMPTY_METADATA,
    HTTPVerb,
    HandlerMetadata,
    HandlerOwner,
    MiddlewareDescriptor,
    RouteDeclaration,
    check_path,
    join_path,
    placeholder_names,
    to_openapi_path,
)
from heron.faults import InvalidRoutePathError


def auth_step(ctx):
    pass


# ============================================================================
# HTTPVerb
# ============================================================================


class TestHTTPVerb:

    @pytest.mark.parametrize("raw", ["get", "GET", "Get", HTTPVerb.GET])
    def test_parse(self, raw):
        assert HTTPVerb.parse(raw) is HTTPVerb.GET

    def test_parse_unsupported(self):
        with pytest.raises(ValueError):
            HTTPVerb.parse("TRACE")

    def test_is_str(self):
        assert HTTPVerb.DELETE == "DELETE"


# ============================================================================
# Path helpers
# ============================================================================


class TestCheckPath:

    def test_static(self):
        assert check_path("/users/all") == []

    def test_placeholders_in_order(self):
        assert check_path("/users/:id/orders/:orderId") == ["id", "orderId"]

    def test_empty(self):
        assert check_path("") == []

    def test_duplicate_placeholder(self):
        with pytest.raises(InvalidRoutePathError) as exc:
            check_path("/a/:id/b/:id")
        assert "duplicate placeholder 'id'" in exc.value.message

    @pytest.mark.parametrize("path", ["/a/:", "/a/:1x", "/a/:id-x", "/a/{id}", "/a/x:y"])
    def test_malformed(self, path):
        with pytest.raises(InvalidRoutePathError):
            check_path(path)

    def test_not_a_string(self):
        with pytest.raises(InvalidRoutePathError):
            check_path(None)


class TestJoinPath:

    @pytest.mark.parametrize("base, sub, expected", [
        ("/users", "/", "/users"),
        ("/users", "", "/users"),
        ("/users/", "/:id", "/users/:id"),
        ("users", "list", "/users/list"),
        ("/api//v1/", "//items//", "/api/v1/items"),
        ("/", "/", "/"),
        (None, "/x", "/x"),
    ])
    def test_join(self, base, sub, expected):
        assert join_path(base, sub) == expected


class TestPlaceholders:

    def test_names(self):
        assert placeholder_names("/api/users/:id/orders/:orderId") == ["id", "orderId"]
        assert placeholder_names("/health") == []

    def test_openapi_rewrite(self):
        assert to_openapi_path("/api/users/:id/orders/:orderId") == "/api/users/{id}/orders/{orderId}"
        assert to_openapi_path("/health") == "/health"


# ============================================================================
# Declarations
# ============================================================================


class TestMiddlewareDescriptor:

    def test_name_defaults_to_function_name(self):
        assert MiddlewareDescriptor(auth_step).name == "auth_step"

    def test_explicit_name(self):
        assert MiddlewareDescriptor(auth_step, name="auth").name == "auth"

    def test_step_must_be_callable(self):
        with pytest.raises(TypeError):
            MiddlewareDescriptor("not callable")


class TestHandlerMetadata:

    def test_empty(self):
        assert not EMPTY_METADATA.has_query
        assert not EMPTY_METADATA.has_body
        assert not EMPTY_METADATA.has_response
        assert not EMPTY_METADATA.has_middleware
        assert EMPTY_METADATA.required_headers == []

    def test_required_headers(self):
        meta = HandlerMetadata(middleware=(
            MiddlewareDescriptor(auth_step, header_key="Authorization"),
            MiddlewareDescriptor(auth_step),
        ))
        assert meta.has_middleware
        assert [m.header_key for m in meta.required_headers] == ["Authorization"]

    def test_merged_is_a_copy(self):
        meta = HandlerMetadata(body=dict)
        merged = meta.merged(response=list)
        assert merged.body is dict
        assert merged.response is list
        assert meta.response is None


class TestHandlerOwner:

    def make_owner(self, base_path="/users"):
        return HandlerOwner("Users", base_path, object())

    def test_routable(self):
        owner = self.make_owner()
        assert not owner.is_routable
        owner._routes.append(RouteDeclaration(HTTPVerb.GET, "/", "list"))
        assert owner.is_routable

    def test_not_routable_without_base_path(self):
        owner = self.make_owner(base_path=None)
        owner._routes.append(RouteDeclaration(HTTPVerb.GET, "/", "list"))
        assert not owner.is_routable

    def test_full_path(self):
        owner = self.make_owner()
        assert owner.full_path(RouteDeclaration(HTTPVerb.GET, "/:id", "get")) == "/users/:id"

    def test_unique_routes_last_wins_first_position(self):
        owner = self.make_owner()
        owner._routes.extend([
            RouteDeclaration(HTTPVerb.GET, "/", "first"),
            RouteDeclaration(HTTPVerb.POST, "/", "create"),
            RouteDeclaration(HTTPVerb.GET, "/", "second"),
        ])
        assert [r.handler_id for r in owner.unique_routes()] == ["second", "create"]

    def test_read_views(self):
        owner = self.make_owner()
        owner._routes.append(RouteDeclaration(HTTPVerb.GET, "/", "list"))
        assert isinstance(owner.routes, tuple)
        with pytest.raises(TypeError):
            owner.metadata["list"] = EMPTY_METADATA

    def test_metadata_for_unknown_handler(self):
        assert self.make_owner().metadata_for("nope") is EMPTY_METADATA
