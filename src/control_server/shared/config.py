"""Application configuration loaded once from the environment.

The resulting AppConfig is immutable and passed explicitly into the
application factory and the login controller. Nothing reads os.environ
after startup.

For On-Call Engineers:
    - Startup fails with ConfigurationError when GITHUB_SECRET is missing
    - Without SESSION_SECRET every process signs cookies with its own random
      key, so sessions do not survive a restart or span instances
"""

from __future__ import annotations

import logging
import os
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"

DEFAULT_GITHUB_CLIENT_ID = "Ov23libSvpfP4mzgI5LD"
DEFAULT_REDIRECT_URL = "http://localhost:4848/login/github/callback"
DEFAULT_LANDING_URL = "http://localhost:9090/app"
DEFAULT_OAUTH_TIMEOUT_SECONDS = 10.0

DEFAULT_SESSION_COOKIE = "session-name"
DEFAULT_SESSION_MAX_AGE = 14 * 24 * 60 * 60  # 14 days

DEFAULT_USERS_TABLE = "control-server-users"


class ConfigurationError(Exception):
    """Required configuration is missing or malformed."""

    pass


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(environ: Mapping[str, str], key: str, default, cast):
    raw = environ.get(key)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class OAuthConfig:
    """GitHub OAuth application settings."""

    client_id: str
    client_secret: str
    redirect_url: str
    landing_url: str
    scopes: tuple[str, ...] = ("user",)
    authorize_url: str = GITHUB_AUTHORIZE_URL
    token_url: str = GITHUB_TOKEN_URL
    user_url: str = GITHUB_USER_URL
    timeout_seconds: float = DEFAULT_OAUTH_TIMEOUT_SECONDS

    def get_authorize_url(self, state: str) -> str:
        """Build the provider authorize URL carrying the anti-forgery state."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }
        return f"{self.authorize_url}?{urlencode(params)}"


@dataclass(frozen=True)
class SessionConfig:
    """Signed session cookie settings for Starlette's SessionMiddleware."""

    secret_key: str = field(repr=False)
    cookie_name: str = DEFAULT_SESSION_COOKIE
    max_age: int = DEFAULT_SESSION_MAX_AGE
    https_only: bool = False
    same_site: str = "lax"


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration for the control server."""

    oauth: OAuthConfig
    session: SessionConfig
    users_table: str = DEFAULT_USERS_TABLE
    environment: str = "dev"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Create config from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (tests)

        Raises:
            ConfigurationError: GITHUB_SECRET is unset or a number is malformed
        """
        env = os.environ if environ is None else environ

        client_secret = env.get("GITHUB_SECRET", "")
        if not client_secret:
            raise ConfigurationError("GITHUB_SECRET must be set")

        session_secret = env.get("SESSION_SECRET", "")
        if not session_secret:
            logger.warning(
                "SESSION_SECRET not set, using a random per-process key",
                extra={"environment": env.get("ENVIRONMENT", "dev")},
            )
            session_secret = secrets.token_urlsafe(32)

        oauth = OAuthConfig(
            client_id=env.get("GITHUB_CLIENT_ID") or DEFAULT_GITHUB_CLIENT_ID,
            client_secret=client_secret,
            redirect_url=env.get("GITHUB_REDIRECT_URL") or DEFAULT_REDIRECT_URL,
            landing_url=env.get("LOGIN_LANDING_URL") or DEFAULT_LANDING_URL,
            timeout_seconds=_env_number(
                env, "OAUTH_TIMEOUT_SECONDS", DEFAULT_OAUTH_TIMEOUT_SECONDS, float
            ),
        )
        session = SessionConfig(
            secret_key=session_secret,
            cookie_name=env.get("SESSION_COOKIE_NAME") or DEFAULT_SESSION_COOKIE,
            max_age=_env_number(
                env, "SESSION_MAX_AGE_SECONDS", DEFAULT_SESSION_MAX_AGE, int
            ),
            https_only=_env_bool(env.get("SESSION_HTTPS_ONLY"), False),
        )
        return cls(
            oauth=oauth,
            session=session,
            users_table=env.get("USERS_TABLE") or DEFAULT_USERS_TABLE,
            environment=env.get("ENVIRONMENT") or "dev",
        )
