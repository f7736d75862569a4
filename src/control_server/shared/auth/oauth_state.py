"""OAuth state generation and validation for CSRF protection.

The state lives in the signed session cookie between the login redirect and
the provider callback. It is single use: the callback consumes it before
comparing.
"""

from __future__ import annotations

import hmac
import logging
import secrets

from src.control_server.shared.logging_utils import mask_token

logger = logging.getLogger(__name__)

# 32 random bytes, 43 URL-safe characters
OAUTH_STATE_BYTES = 32


def generate_state() -> str:
    """Generate a cryptographically secure OAuth state string.

    Returns:
        43-character URL-safe base64 string (256 bits of entropy)
    """
    return secrets.token_urlsafe(OAUTH_STATE_BYTES)


def validate_state(stored: str | None, received: str | None) -> bool:
    """Compare the stored and received state in constant time.

    Args:
        stored: State consumed from the session, None if none was issued
        received: ``state`` query parameter from the callback

    Returns:
        True only if both are present and equal
    """
    if not stored or not received:
        logger.warning(
            "OAuth state missing",
            extra={"has_stored": bool(stored), "has_received": bool(received)},
        )
        return False

    if not hmac.compare_digest(stored.encode(), received.encode()):
        logger.warning(
            "OAuth state mismatch",
            extra={"stored_prefix": mask_token(stored)},
        )
        return False

    return True
