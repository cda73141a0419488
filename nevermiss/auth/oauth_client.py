"""HTTP client for the Google OAuth 2.0 endpoints.

Covers the three wire operations NeverMiss needs: building the
consent URL, exchanging/refreshing tokens, and fetching user info.
"""

from urllib.parse import urlencode

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from nevermiss.config import Settings, get_settings
from nevermiss.errors import (
    InvalidTokenResponseError,
    RefreshFailedError,
    RefreshRevokedError,
    TokenExchangeError,
    UserInfoError,
)

logger = structlog.get_logger()

# Token endpoint statuses that mean the refresh token is no longer valid
REVOKED_STATUSES = {400, 401}


class TokenResponse(BaseModel):
    """Parsed token endpoint response."""

    access_token: str
    expires_in: int
    refresh_token: str | None = None


class UserInfo(BaseModel):
    """Identity of the signed-in user."""

    email: str
    name: str


class OAuthClient:
    """Async client for authorization, token and user-info endpoints."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        config: Settings | None = None,
    ):
        """Initialize the client.

        Args:
            http_client: Optional httpx client for dependency injection.
                        If not provided, one is created from config.
            config: Application settings (defaults to cached settings)
        """
        self._config = config or get_settings()
        self._http = http_client or httpx.AsyncClient(
            timeout=self._config.http_timeout_seconds
        )

    def build_authorization_url(self, code_challenge: str) -> str:
        """Build the consent-screen URL for a PKCE challenge."""
        params = {
            "client_id": self._config.google_client_id,
            "redirect_uri": self._config.google_redirect_uri,
            "response_type": "code",
            "scope": " ".join(self._config.google_scopes),
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{self._config.google_auth_url}?{urlencode(params)}"

    def _with_secret(self, body: dict[str, str]) -> dict[str, str]:
        secret = self._config.effective_client_secret
        if secret:
            body["client_secret"] = secret
        return body

    async def exchange_code(self, code: str, code_verifier: str) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Raises:
            TokenExchangeError: Transport failure or non-200 response
            InvalidTokenResponseError: Response lacks required fields,
                including the refresh token
        """
        body = self._with_secret(
            {
                "client_id": self._config.google_client_id,
                "code": code,
                "code_verifier": code_verifier,
                "grant_type": "authorization_code",
                "redirect_uri": self._config.google_redirect_uri,
            }
        )
        try:
            response = await self._http.post(self._config.google_token_url, data=body)
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"Token exchange request failed: {e}") from e

        logger.info("token exchange response", status=response.status_code)
        if response.status_code != 200:
            raise TokenExchangeError(
                "Failed to exchange authorization code for tokens "
                f"(status {response.status_code})"
            )

        tokens = self._parse_tokens(response)
        if not tokens.refresh_token:
            raise InvalidTokenResponseError("Token exchange returned no refresh token")
        return tokens

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Trade a refresh token for a new access token.

        A single attempt; failures are surfaced to the caller untouched.

        Raises:
            RefreshRevokedError: Provider answered 400 or 401
            RefreshFailedError: Transport failure or other non-200 status
            InvalidTokenResponseError: 200 with an unusable body
        """
        body = self._with_secret(
            {
                "client_id": self._config.google_client_id,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            }
        )
        try:
            response = await self._http.post(self._config.google_token_url, data=body)
        except httpx.HTTPError as e:
            raise RefreshFailedError(f"Token refresh request failed: {e}") from e

        if response.status_code in REVOKED_STATUSES:
            raise RefreshRevokedError()
        if response.status_code != 200:
            raise RefreshFailedError(
                f"Failed to refresh access token (status {response.status_code})"
            )
        return self._parse_tokens(response)

    async def fetch_user_info(self, access_token: str) -> UserInfo:
        """Fetch the signed-in user's email and name.

        Raises:
            UserInfoError: Request failed or the response has no email
        """
        try:
            response = await self._http.get(
                self._config.google_userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise UserInfoError(f"Failed to fetch user information: {e}") from e

        if response.status_code != 200:
            raise UserInfoError(
                f"Failed to fetch user information (status {response.status_code})"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UserInfoError("Invalid user info response") from e

        email = data.get("email") if isinstance(data, dict) else None
        if not isinstance(email, str) or not email:
            raise UserInfoError("Invalid user info response")
        name = data.get("name")
        return UserInfo(email=email, name=name if isinstance(name, str) and name else email)

    def _parse_tokens(self, response: httpx.Response) -> TokenResponse:
        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise InvalidTokenResponseError("Invalid token response from Google") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
