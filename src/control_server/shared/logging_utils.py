"""
Secure logging utilities to prevent log injection and sensitive data exposure.

This module provides functions to sanitize data before logging, preventing:
- Log injection attacks (CWE-117, CWE-93)
- Leaking OAuth state values, access tokens and session identifiers
- Stack trace leakage to external users

Usage:
    logger.info(
        "Provisioned user",
        extra={"username": sanitize_for_log(profile.login)},
    )

Security References:
- OWASP Logging Cheat Sheet: https://cheatsheetseries.owasp.org/cheatsheets/Logging_Cheat_Sheet.html
"""

import re
from typing import Any

# Maximum length for logged user input to prevent log flooding
MAX_LOG_INPUT_LENGTH = 200

# Characters of a secret kept when masking it for correlation
MASKED_PREFIX_LENGTH = 6

# Sensitive field names that should never be logged
SENSITIVE_FIELDS = {
    "password",
    "secret",
    "token",
    "state",
    "code",
    "authorization",
    "cookie",
    "session",
    "credential",
    "credentials",
}


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_INPUT_LENGTH) -> str:
    """
    Sanitize a value for safe logging by removing CRLF and limiting length.

    Args:
        value: Value to sanitize (will be converted to string)
        max_length: Maximum length of output (default: 200)

    Returns:
        Sanitized string safe for logging

    Example:
        >>> sanitize_for_log("error\\n[FAKE] Admin logged in")
        'error [FAKE] Admin logged in'
    """
    text = str(value)

    # Remove CRLF characters to prevent log injection
    text = text.replace("\r", " ").replace("\n", " ").replace("\t", " ")

    # Remove other control characters
    text = re.sub(r"[\x00-\x1f\x7f-\x9f]", " ", text)

    if len(text) > max_length:
        text = text[:max_length] + "..."

    return text


def mask_token(token: str | None) -> str:
    """
    Reduce a secret to a short prefix so log lines can be correlated.

    Example:
        >>> mask_token("q1w2e3r4t5y6u7i8")
        'q1w2e3...'
        >>> mask_token(None)
        '<none>'
    """
    if not token:
        return "<none>"
    return sanitize_for_log(token[:MASKED_PREFIX_LENGTH]) + "..."


def get_safe_error_info(exception: Exception) -> dict[str, str]:
    """
    Extract safe information from an exception for logging.

    Returns only the exception type, NOT the message, because provider and
    store messages may echo user-controlled data.

    Example:
        >>> try:
        ...     raise ValueError("user input here")
        ... except Exception as e:
        ...     get_safe_error_info(e)
        {'error_type': 'ValueError'}
    """
    return {"error_type": type(exception).__name__}


def redact_sensitive_fields(data: dict[str, Any]) -> dict[str, Any]:
    """
    Redact sensitive fields from a dictionary before logging.

    Args:
        data: Dictionary that may contain sensitive fields

    Returns:
        New dictionary with sensitive fields replaced with '***REDACTED***'

    Example:
        >>> redact_sensitive_fields({"code": "abc", "provider": "github"})
        {'code': '***REDACTED***', 'provider': 'github'}
    """
    result = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
            result[key] = "***REDACTED***"
        elif isinstance(value, dict):
            result[key] = redact_sensitive_fields(value)
        else:
            result[key] = value
    return result
