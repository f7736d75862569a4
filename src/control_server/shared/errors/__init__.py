"""Shared error types for the control server API."""

from src.control_server.shared.errors.api_errors import (
    BadRequestError,
    ControlServerError,
    ErrorCode,
    InternalError,
    NotFoundError,
    UpstreamError,
    error_response,
)
from src.control_server.shared.errors.auth_errors import (
    ForbiddenError,
    InvalidRoleError,
    UnauthenticatedError,
)
from src.control_server.shared.errors.store_errors import (
    RecordNotFoundError,
    StoreError,
    UserAlreadyExistsError,
)

__all__ = [
    # API errors
    "BadRequestError",
    "ControlServerError",
    "ErrorCode",
    "InternalError",
    "NotFoundError",
    "UpstreamError",
    "error_response",
    # Auth errors
    "ForbiddenError",
    "InvalidRoleError",
    "UnauthenticatedError",
    # Store errors
    "RecordNotFoundError",
    "StoreError",
    "UserAlreadyExistsError",
]
