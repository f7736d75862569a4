"""
Standardized API Error Types
============================

Every failure the API reports to a client is raised as a ControlServerError
subclass and rendered by a single exception handler in the application
factory.

For On-Call Engineers:
    Error codes and their meanings:
    - UNAUTHORIZED: No authenticated session for a protected route
    - FORBIDDEN: Authenticated, but role or ownership is insufficient
    - VALIDATION_ERROR: Malformed input, OAuth state mismatch, bad provider data
    - NOT_FOUND: The store has no matching record
    - UPSTREAM_ERROR: GitHub token exchange or profile fetch failed
    - INTERNAL_ERROR: Unexpected store failure

    Search logs by error code using the "error_code" extra field.

Security Notes:
    - Messages are short and safe to show to the caller
    - Internal details are logged server-side, never returned
"""

import logging
from enum import Enum
from typing import Any

from src.control_server.shared.logging_utils import sanitize_for_log

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes returned next to the message."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ControlServerError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class BadRequestError(ControlServerError):
    """Malformed input: missing fields, state mismatch, undecodable payload."""

    status_code = 400
    code = ErrorCode.VALIDATION_ERROR


class NotFoundError(ControlServerError):
    """The store reported no matching record."""

    status_code = 404
    code = ErrorCode.NOT_FOUND


class UpstreamError(ControlServerError):
    """The identity provider failed or rejected a request.

    The provider's message is surfaced to the caller, which is acceptable for
    an internal tool.
    """

    status_code = 502
    code = ErrorCode.UPSTREAM_ERROR


class InternalError(ControlServerError):
    """Unexpected store or codec failure."""

    status_code = 500
    code = ErrorCode.INTERNAL_ERROR


def error_response(error: ControlServerError) -> dict[str, Any]:
    """Build the JSON body for an error and log it.

    The body keeps FastAPI's ``detail`` key so clients handle our errors and
    framework-level HTTPExceptions the same way.

    Args:
        error: The raised ControlServerError

    Returns:
        Dict suitable for a JSONResponse body
    """
    log_level = logging.ERROR if error.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        sanitize_for_log(error.message),
        extra={"status_code": error.status_code, "error_code": error.code.value},
    )
    return {"detail": error.message, "code": error.code.value}
