"""Authentication and authorization error types.

UnauthenticatedError and ForbiddenError are raised by the permission
enforcer and by handler-level ownership checks. InvalidRoleError is raised
at route registration time and indicates a programming mistake.
"""

from __future__ import annotations

from src.control_server.shared.errors.api_errors import (
    ControlServerError,
    ErrorCode,
)


class UnauthenticatedError(ControlServerError):
    """No authenticated session for a route that requires one."""

    status_code = 401
    code = ErrorCode.UNAUTHORIZED

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class ForbiddenError(ControlServerError):
    """Authenticated, but the role or ownership check failed.

    The message stays generic to prevent role enumeration.
    """

    status_code = 403
    code = ErrorCode.FORBIDDEN

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class InvalidRoleError(ValueError):
    """Raised at registration time for an unknown role name.

    This should cause the application to fail to start.
    """

    def __init__(self, role: object, valid_roles: frozenset[str]) -> None:
        self.role = role
        self.valid_roles = valid_roles
        super().__init__(f"Invalid role '{role}'. Valid roles: {sorted(valid_roles)}")
