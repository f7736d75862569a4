"""Route registry: the single table of URIs, methods and permitted roles.

Every API route is declared here with its permission set before it is
mounted on FastAPI, so authorization is decided from one place instead of
per-handler decorators. Registration happens at startup; the registry is
read-only afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from fastapi import APIRouter, FastAPI
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import compile_path

from src.control_server.shared.auth.enums import VALID_ROLES, Role
from src.control_server.shared.auth.session import Session
from src.control_server.shared.errors import InvalidRoleError
from src.control_server.shared.middleware.require_role import (
    require_route_permissions,
)

logger = logging.getLogger(__name__)

RouteHandler = Callable[[Request, Session], Awaitable[Response]]


class DuplicateRouteError(ValueError):
    """A route with the same method and URI is already registered."""

    def __init__(self, method: str, uri: str):
        self.method = method
        self.uri = uri
        super().__init__(f"Route already registered: {method} {uri}")


def _to_roles(permissions: Iterable[Any]) -> frozenset[Role]:
    roles = set()
    for permission in permissions:
        if isinstance(permission, Role):
            roles.add(permission)
        elif isinstance(permission, str) and permission in VALID_ROLES:
            roles.add(Role(permission))
        else:
            raise InvalidRoleError(permission, VALID_ROLES)
    return frozenset(roles)


@dataclass(frozen=True)
class Route:
    """One protected (or public) endpoint.

    Attributes:
        uri: Path pattern with ``{placeholders}``
        method: HTTP method, normalized to upper case
        permissions: Roles allowed to call the route; empty means public
        self_access_allowed: The owner named by ``owner_param`` may call the
            route whatever their role
        handler: ``async (request, session) -> Response``
        description: Shown in the OpenAPI summary
        owner_param: Path placeholder that names the target user
    """

    uri: str
    method: str
    permissions: frozenset[Role]
    self_access_allowed: bool
    handler: RouteHandler = field(compare=False)
    description: str = ""
    owner_param: str = "name"

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "permissions", _to_roles(self.permissions))

    @property
    def is_public(self) -> bool:
        return not self.permissions


@dataclass(frozen=True)
class RouteMatch:
    """A registered route together with the parameters extracted from a path."""

    route: Route
    path_params: dict[str, Any]


class RouteRegistry:
    """Ordered collection of routes, looked up by method and path."""

    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._compiled: list[tuple[Route, Any, dict[str, Any]]] = []

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    def register(self, route: Route) -> Route:
        """Append a route.

        Raises:
            DuplicateRouteError: (method, uri) is already registered
        """
        for existing in self._routes:
            if existing.method == route.method and existing.uri == route.uri:
                raise DuplicateRouteError(route.method, route.uri)

        path_regex, _, convertors = compile_path(route.uri)
        self._routes.append(route)
        self._compiled.append((route, path_regex, convertors))

        logger.debug(
            "Registered route",
            extra={
                "method": route.method,
                "uri": route.uri,
                "permissions": sorted(role.value for role in route.permissions),
                "self_access_allowed": route.self_access_allowed,
            },
        )
        return route

    def add(
        self,
        uri: str,
        method: str,
        permissions: Iterable[Role | str],
        handler: RouteHandler,
        *,
        self_access_allowed: bool = False,
        description: str = "",
        owner_param: str = "name",
    ) -> Route:
        """Build and register a Route in one call."""
        return self.register(
            Route(
                uri=uri,
                method=method,
                permissions=frozenset(permissions),
                self_access_allowed=self_access_allowed,
                handler=handler,
                description=description,
                owner_param=owner_param,
            )
        )

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Find the first registered route for a method and concrete path."""
        method = method.upper()
        for route, path_regex, convertors in self._compiled:
            if route.method != method:
                continue
            found = path_regex.match(path)
            if found is None:
                continue
            params = {
                key: convertors[key].convert(value)
                for key, value in found.groupdict().items()
            }
            return RouteMatch(route=route, path_params=params)
        return None

    def mount(self, router: FastAPI | APIRouter) -> None:
        """Install every route on FastAPI, in registration order."""
        for route in self._routes:
            router.add_api_route(
                route.uri,
                require_route_permissions(route),
                methods=[route.method],
                summary=route.description or None,
            )
        logger.info("Mounted routes", extra={"route_count": len(self._routes)})
