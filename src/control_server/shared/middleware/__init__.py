"""Shared middleware for the control server API."""

from src.control_server.shared.middleware.require_role import (
    authorize,
    require_owner_or_admin,
    require_route_permissions,
)

__all__ = [
    "authorize",
    "require_owner_or_admin",
    "require_route_permissions",
]
