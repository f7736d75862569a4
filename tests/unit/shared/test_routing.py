"""Unit tests for the route registry."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import JSONResponse

from src.control_server.shared.auth.enums import Role
from src.control_server.shared.errors import InvalidRoleError
from src.control_server.shared.routing import (
    DuplicateRouteError,
    Route,
    RouteRegistry,
)


async def ok_handler(request, session):
    return JSONResponse({"path_params": dict(request.path_params)})


def make_route(uri: str = "/user/{name}", method: str = "GET", **kwargs) -> Route:
    return Route(
        uri=uri,
        method=method,
        permissions=kwargs.pop("permissions", frozenset({Role.ADMIN})),
        self_access_allowed=kwargs.pop("self_access_allowed", False),
        handler=ok_handler,
        **kwargs,
    )


class TestRoute:
    def test_method_is_normalized(self) -> None:
        assert make_route(method="get").method == "GET"

    def test_role_strings_are_converted(self) -> None:
        route = make_route(permissions=["admin", "moderator"])
        assert route.permissions == frozenset({Role.ADMIN, Role.MODERATOR})

    def test_unknown_role_fails_at_construction(self) -> None:
        with pytest.raises(InvalidRoleError) as exc_info:
            make_route(permissions=["admin", "superuser"])

        assert exc_info.value.role == "superuser"

    def test_empty_permissions_is_public(self) -> None:
        assert make_route(permissions=frozenset()).is_public
        assert not make_route().is_public

    def test_route_is_immutable(self) -> None:
        route = make_route()
        with pytest.raises(AttributeError):
            route.uri = "/other"


class TestRegister:
    def test_preserves_order(self) -> None:
        registry = RouteRegistry()
        first = registry.register(make_route("/a"))
        second = registry.register(make_route("/b"))

        assert registry.routes == (first, second)

    def test_duplicate_method_and_uri_rejected(self) -> None:
        registry = RouteRegistry()
        registry.register(make_route("/user/{name}", "GET"))

        with pytest.raises(DuplicateRouteError):
            registry.register(make_route("/user/{name}", "get"))

    def test_same_uri_different_method_allowed(self) -> None:
        registry = RouteRegistry()
        registry.register(make_route("/user/{name}", "GET"))
        registry.register(make_route("/user/{name}", "DELETE"))

        assert len(registry.routes) == 2

    def test_routes_tuple_is_a_copy(self) -> None:
        registry = RouteRegistry()
        registry.register(make_route("/a"))

        assert isinstance(registry.routes, tuple)

    def test_add_builds_route(self) -> None:
        registry = RouteRegistry()
        route = registry.add(
            "/user/{name}/images/{image_name}",
            "GET",
            ("moderator",),
            ok_handler,
            self_access_allowed=True,
            description="List images by name",
        )

        assert route.permissions == frozenset({Role.MODERATOR})
        assert route.self_access_allowed
        assert route.owner_param == "name"


class TestMatch:
    @pytest.fixture
    def registry(self) -> RouteRegistry:
        registry = RouteRegistry()
        registry.register(make_route("/user/me", "GET"))
        registry.register(make_route("/user/{name}", "GET"))
        registry.register(make_route("/user/{name}/images/{image_name}", "GET"))
        return registry

    def test_extracts_parameters(self, registry) -> None:
        found = registry.match("GET", "/user/w.narchi/images/ubuntu")

        assert found is not None
        assert found.route.uri == "/user/{name}/images/{image_name}"
        assert found.path_params == {"name": "w.narchi", "image_name": "ubuntu"}

    def test_first_registered_wins(self, registry) -> None:
        found = registry.match("GET", "/user/me")

        assert found is not None
        assert found.route.uri == "/user/me"
        assert found.path_params == {}

    def test_method_must_match(self, registry) -> None:
        assert registry.match("DELETE", "/user/alice") is None

    def test_unknown_path(self, registry) -> None:
        assert registry.match("GET", "/nothing/here") is None


class TestMount:
    def test_mounted_routes_dispatch_with_path_params(self) -> None:
        registry = RouteRegistry()
        registry.register(
            make_route("/public/{name}", "GET", permissions=frozenset())
        )
        app = FastAPI()
        app.add_middleware(SessionMiddleware, secret_key="test")
        registry.mount(app)

        with TestClient(app) as client:
            response = client.get("/public/alice")

        assert response.status_code == 200
        assert response.json() == {"path_params": {"name": "alice"}}

    def test_mount_order_follows_registration(self) -> None:
        registry = RouteRegistry()
        registry.register(make_route("/user/me", "GET", permissions=frozenset()))
        registry.register(make_route("/user/{name}", "GET", permissions=frozenset()))
        app = FastAPI()
        app.add_middleware(SessionMiddleware, secret_key="test")
        registry.mount(app)

        with TestClient(app) as client:
            response = client.get("/user/me")

        assert response.json() == {"path_params": {}}
