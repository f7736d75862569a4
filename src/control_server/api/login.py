"""
GitHub OAuth login flow.

Two public routes drive the handshake:
    GET /login/github           issue a state, redirect to GitHub
    GET /login/github/callback  validate the state, exchange the code,
                                provision the user, open the session

Flow states (logged as ``login_state``):
    idle -> state_issued -> callback_pending -> authenticated
                                             \\-> rejected

For On-Call Engineers:
    - "Invalid OAuth state" means the callback did not carry the state issued
      to this browser: an expired cookie, a second tab, or a forged link
    - 502 responses carry GitHub's own error description
    - A login never half-succeeds: Username, Role and SessionID are written
      together, and only after provisioning succeeded

Security Notes:
    - The state is consumed before it is compared, so it cannot be replayed
    - State values and tokens are never logged, only a short state prefix
"""

from __future__ import annotations

import logging
import uuid
from enum import StrEnum

from fastapi.responses import RedirectResponse
from starlette.requests import Request
from starlette.responses import Response

from src.control_server.shared.auth.github import (
    GitHubOAuthClient,
    ProfileDecodeError,
    ProviderError,
    TokenError,
)
from src.control_server.shared.auth.oauth_state import generate_state, validate_state
from src.control_server.shared.auth.provisioning import get_or_create_user
from src.control_server.shared.auth.session import Session, save_session
from src.control_server.shared.config import OAuthConfig
from src.control_server.shared.errors import (
    BadRequestError,
    ControlServerError,
    InternalError,
    StoreError,
    UpstreamError,
)
from src.control_server.shared.logging_utils import (
    get_safe_error_info,
    mask_token,
    redact_sensitive_fields,
    sanitize_for_log,
)
from src.control_server.shared.models.user import User
from src.control_server.shared.routing import RouteRegistry
from src.control_server.shared.user_store import UserStore

logger = logging.getLogger(__name__)


class LoginState(StrEnum):
    """Position of one browser in the OAuth handshake."""

    IDLE = "idle"
    STATE_ISSUED = "state_issued"
    CALLBACK_PENDING = "callback_pending"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


def _reject(reason: str, error: Exception) -> Exception:
    logger.warning(
        "Login rejected",
        extra={"login_state": LoginState.REJECTED.value, "reason": reason},
    )
    return error


class LoginController:
    """Drives the GitHub OAuth web flow for one application.

    Args:
        config: OAuth settings (landing URL, redirect URL)
        store: User store used for provisioning
        client: GitHub client; built from config when omitted
    """

    def __init__(
        self,
        config: OAuthConfig,
        store: UserStore,
        client: GitHubOAuthClient | None = None,
    ):
        self._config = config
        self._store = store
        self._client = client or GitHubOAuthClient(config)

    def register_routes(self, registry: RouteRegistry) -> None:
        registry.add(
            "/login/github",
            "GET",
            frozenset(),
            self.login,
            description="Start GitHub login",
        )
        registry.add(
            "/login/github/callback",
            "GET",
            frozenset(),
            self.callback,
            description="GitHub OAuth callback",
        )

    async def login(self, request: Request, session: Session) -> Response:
        """Issue a fresh state and send the browser to GitHub."""
        state = generate_state()
        session.oauth_state = state
        save_session(request, session)

        logger.info(
            "OAuth state issued",
            extra={
                "login_state": LoginState.STATE_ISSUED.value,
                "state_prefix": mask_token(state),
            },
        )
        return RedirectResponse(self._client.authorize_url(state), status_code=302)

    async def callback(self, request: Request, session: Session) -> Response:
        """Complete the handshake and open an authenticated session."""
        params = request.query_params
        logger.debug(
            "OAuth callback received",
            extra={"params": redact_sensitive_fields(dict(params))},
        )

        # Single use: consume before any check so a failed attempt cannot retry
        stored_state = session.oauth_state
        session.oauth_state = None
        save_session(request, session)

        if not validate_state(stored_state, params.get("state")):
            raise _reject("state_mismatch", BadRequestError("Invalid OAuth state"))

        provider_error = params.get("error")
        if provider_error:
            description = params.get("error_description") or provider_error
            raise _reject(
                "provider_error",
                BadRequestError(f"GitHub login failed: {description}"),
            )

        code = params.get("code")
        if not code:
            raise _reject("missing_code", BadRequestError("No authorization code"))

        logger.info(
            "OAuth callback accepted",
            extra={"login_state": LoginState.CALLBACK_PENDING.value},
        )

        try:
            user = await self._authenticate(code)
        except ControlServerError:
            raise
        except Exception as e:
            # Only handled errors carry the consumed state out in the cookie
            logger.error("Unexpected error during login", extra=get_safe_error_info(e))
            raise _reject("unexpected", InternalError("Login failed")) from e

        session.username = user.username
        session.role = user.role
        session.session_id = str(uuid.uuid4())
        save_session(request, session)

        logger.info(
            "Login succeeded",
            extra={
                "login_state": LoginState.AUTHENTICATED.value,
                "username": sanitize_for_log(user.username),
                "role": user.role.value,
            },
        )
        return RedirectResponse(self._config.landing_url, status_code=302)

    async def _authenticate(self, code: str) -> User:
        """Exchange the code, fetch the profile and provision the local user."""
        try:
            token = await self._client.exchange_code(code)
        except TokenError as e:
            raise _reject("token_exchange", UpstreamError(e.message)) from e

        try:
            profile = await self._client.fetch_profile(token)
        except ProviderError as e:
            raise _reject("profile_fetch", UpstreamError(str(e))) from e
        except ProfileDecodeError as e:
            raise _reject(
                "profile_decode", BadRequestError("Cannot parse GitHub data")
            ) from e

        try:
            return get_or_create_user(self._store, profile)
        except StoreError as e:
            logger.error("User provisioning failed", extra=get_safe_error_info(e))
            raise _reject(
                "provisioning", InternalError("Failed to load user")
            ) from e
