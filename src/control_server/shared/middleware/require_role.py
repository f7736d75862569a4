"""Role-based access control for registry routes.

Every route in the RouteRegistry is mounted through
require_route_permissions, which loads the caller's session and runs
authorize before the handler is awaited.

Decision order:
    1. Empty permission set: public route, allowed
    2. No authenticated session: 401
    3. Self-access route and the path names the caller: allowed
    4. Caller's role in the permission set: allowed, else 403

Security:
    - Generic error messages prevent role enumeration attacks
    - Roles are validated when the route is built, so typos fail startup
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from starlette.requests import Request
from starlette.responses import Response

from src.control_server.shared.auth.enums import Role, satisfies
from src.control_server.shared.auth.session import Session, load_session
from src.control_server.shared.errors import ForbiddenError, UnauthenticatedError
from src.control_server.shared.logging_utils import sanitize_for_log

if TYPE_CHECKING:
    from src.control_server.shared.routing import Route

logger = logging.getLogger(__name__)


def authorize(route: Route, session: Session, path_params: Mapping[str, Any]) -> None:
    """Decide whether the session may invoke the route.

    Args:
        route: The matched route
        session: Caller's session
        path_params: Parameters extracted from the request path

    Raises:
        UnauthenticatedError: Protected route and no authenticated session
        ForbiddenError: Authenticated, but neither owner nor permitted role
    """
    if route.is_public:
        return

    if not session.is_authenticated:
        logger.debug(
            "No authenticated session, returning 401",
            extra={"method": route.method, "uri": route.uri},
        )
        raise UnauthenticatedError()

    if route.self_access_allowed:
        target = path_params.get(route.owner_param)
        if target is not None and target == session.username:
            logger.debug(
                "Self access granted",
                extra={"method": route.method, "uri": route.uri},
            )
            return

    if not satisfies(route.permissions, session.role):
        # SECURITY: Generic message prevents role enumeration
        logger.info(
            "Role not permitted, returning 403",
            extra={
                "method": route.method,
                "uri": route.uri,
                "username": sanitize_for_log(session.username),
                "role": session.role.value if session.role else None,
            },
        )
        raise ForbiddenError()


def require_owner_or_admin(session: Session, username: str) -> None:
    """Handler-level check that the caller is an admin or owns ``username``.

    Runs inside the fetch, modify and delete handlers as a second line behind
    the route permissions, before any data is read.

    Raises:
        ForbiddenError: Caller is neither admin nor the owner
    """
    if session.role == Role.ADMIN or session.username == username:
        return
    logger.info(
        "Ownership check failed, returning 403",
        extra={
            "username": sanitize_for_log(session.username),
            "target": sanitize_for_log(username),
        },
    )
    raise ForbiddenError()


def require_route_permissions(
    route: Route,
) -> Callable[[Request], Awaitable[Response]]:
    """Build the FastAPI endpoint for a route.

    The endpoint takes only the Request, so FastAPI does not try to resolve
    the handler's own parameters.
    """

    async def endpoint(request: Request) -> Response:
        session = load_session(request)
        authorize(route, session, request.path_params)
        return await route.handler(request, session)

    endpoint.__name__ = getattr(route.handler, "__name__", "endpoint")
    endpoint.__doc__ = route.description or None
    return endpoint
