"""GitHub OAuth provider client.

Handles:
- Building the authorize URL
- Exchanging the authorization code for an access token
- Fetching the authenticated user's profile

For On-Call Engineers:
    Common issues:
    1. bad_verification_code: the code expired or was already used
    2. redirect_uri_mismatch: GITHUB_REDIRECT_URL differs from the OAuth app
    3. network_error: GitHub unreachable or slower than OAUTH_TIMEOUT_SECONDS

Security Notes:
    - Access tokens are never logged
    - Calls are not retried; the user restarts the login instead
"""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, Field, ValidationError

from src.control_server.shared.config import OAuthConfig
from src.control_server.shared.logging_utils import (
    get_safe_error_info,
    sanitize_for_log,
)

logger = logging.getLogger(__name__)


class GitHubToken(BaseModel):
    """Token returned by the GitHub token endpoint."""

    access_token: str
    token_type: str = "bearer"
    scope: str = ""


class GitHubProfile(BaseModel):
    """Subset of https://api.github.com/user the server relies on."""

    login: str = Field(..., min_length=1)
    email: str | None = None
    name: str | None = None


class TokenError(Exception):
    """Token exchange failed."""

    def __init__(self, error: str, message: str):
        self.error = error
        self.message = message
        super().__init__(message)


class ProviderError(Exception):
    """GitHub API request failed at the transport or HTTP level."""

    pass


class ProfileDecodeError(Exception):
    """GitHub returned a profile payload that cannot be parsed."""

    pass


class GitHubOAuthClient:
    """Async client for the GitHub OAuth web flow.

    Args:
        config: OAuth application settings
        transport: Optional httpx transport, used by tests to stub GitHub
    """

    def __init__(
        self,
        config: OAuthConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = config
        self._transport = transport

    def authorize_url(self, state: str) -> str:
        return self._config.get_authorize_url(state)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._config.timeout_seconds, transport=self._transport
        )

    async def exchange_code(self, code: str) -> GitHubToken:
        """Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the OAuth callback

        Returns:
            GitHubToken

        Raises:
            TokenError: If the exchange fails for any reason
        """
        logger.info("Exchanging authorization code for token")

        data = {
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "code": code,
            "redirect_uri": self._config.redirect_url,
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    self._config.token_url,
                    headers={"Accept": "application/json"},
                    data=data,
                )
        except httpx.HTTPError as e:
            logger.error(
                "HTTP error during token exchange",
                extra=get_safe_error_info(e),
            )
            raise TokenError(
                "network_error", "Failed to connect to GitHub"
            ) from e

        try:
            token_data = response.json() if response.text else {}
        except ValueError:
            token_data = {}
        if not isinstance(token_data, dict):
            token_data = {}

        # GitHub reports most exchange failures with a 200 and an error body
        if response.status_code != 200 or "error" in token_data:
            error = token_data.get("error", "token_exchange_failed")
            message = token_data.get(
                "error_description", "Failed to exchange code for token"
            )
            logger.warning(
                "Token exchange failed",
                extra={
                    "error": sanitize_for_log(error),
                    "status": response.status_code,
                },
            )
            raise TokenError(str(error), str(message))

        try:
            return GitHubToken.model_validate(token_data)
        except ValidationError as e:
            logger.warning(
                "Token response missing access_token",
                extra=get_safe_error_info(e),
            )
            raise TokenError(
                "invalid_token_response", "GitHub returned no access token"
            ) from e

    async def fetch_profile(self, token: GitHubToken) -> GitHubProfile:
        """Fetch the profile of the user the token belongs to.

        Raises:
            ProviderError: Transport failure or non-200 response
            ProfileDecodeError: Payload is not a GitHub user object
        """
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token.access_token}",
        }
        try:
            async with self._client() as client:
                response = await client.get(self._config.user_url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(
                "HTTP error during profile fetch",
                extra=get_safe_error_info(e),
            )
            raise ProviderError("Failed to connect to GitHub") from e

        if response.status_code != 200:
            logger.warning(
                "Profile fetch failed",
                extra={"status": response.status_code},
            )
            raise ProviderError(
                f"GitHub profile request failed with status {response.status_code}"
            )

        try:
            return GitHubProfile.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning("Cannot decode GitHub profile", extra=get_safe_error_info(e))
            raise ProfileDecodeError("Cannot parse GitHub data") from e
