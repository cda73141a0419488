"""Per-account OAuth token lifecycle.

TokenManager keeps access tokens fresh, detects revoked refresh
tokens, and runs the interactive PKCE sign-in through an injected
presenter.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlparse

import structlog

from nevermiss.auth.oauth_client import OAuthClient
from nevermiss.auth.pkce import generate_code_challenge, generate_code_verifier
from nevermiss.auth.presenter import AuthorizationPresenter
from nevermiss.errors import (
    InvalidCallbackError,
    NoRefreshTokenError,
    UserCancelledError,
)
from nevermiss.models.account import Account

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenManager:
    """Owns token refresh and sign-in for Google accounts."""

    def __init__(
        self,
        oauth_client: OAuthClient,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize with an OAuth client.

        Args:
            oauth_client: Wire client for the OAuth endpoints
            clock: Returns the current UTC time
        """
        self._oauth = oauth_client
        self._clock = clock

    async def ensure_valid(self, account: Account) -> Account:
        """Return the account with a usable access token.

        The account is returned as-is when its token is still valid
        (60 second buffer); otherwise it is refreshed.

        Raises:
            NoRefreshTokenError: Account must re-authenticate
            RefreshRevokedError: Provider rejected the refresh token
            RefreshFailedError: Any other refresh failure
            InvalidTokenResponseError: Malformed refresh response
        """
        if account.access_token and not account.is_token_expired(self._clock()):
            return account
        return await self.refresh(account)

    async def refresh(self, account: Account) -> Account:
        """Refresh the access token unconditionally.

        The refresh token is replaced only when the provider rotates it.
        """
        if not account.refresh_token:
            raise NoRefreshTokenError()

        tokens = await self._oauth.refresh(account.refresh_token)
        update = {
            "access_token": tokens.access_token,
            "token_expiry": self._clock() + timedelta(seconds=tokens.expires_in),
        }
        if tokens.refresh_token:
            update["refresh_token"] = tokens.refresh_token

        logger.info(
            "access token refreshed",
            account=account.email,
            rotated_refresh_token=bool(tokens.refresh_token),
        )
        return account.model_copy(update=update)

    async def authenticate(self, presenter: AuthorizationPresenter) -> Account:
        """Run the interactive PKCE authorization-code flow.

        Args:
            presenter: Shows the consent page and returns the callback URL

        Returns:
            A new Account carrying fresh tokens

        Raises:
            UserCancelledError: User abandoned or denied consent
            InvalidCallbackError: Callback carried no authorization code
            TokenExchangeError, InvalidTokenResponseError, UserInfoError
        """
        verifier = generate_code_verifier()
        url = self._oauth.build_authorization_url(generate_code_challenge(verifier))

        callback_url = await presenter.present(url)
        code = extract_authorization_code(callback_url)

        tokens = await self._oauth.exchange_code(code, verifier)
        user = await self._oauth.fetch_user_info(tokens.access_token)

        logger.info("account authenticated", account=user.email)
        return Account(
            email=user.email,
            display_name=user.name,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_expiry=self._clock() + timedelta(seconds=tokens.expires_in),
        )


def extract_authorization_code(callback_url: str) -> str:
    """Pull the ``code`` query parameter out of a redirect URL.

    Raises:
        UserCancelledError: The provider reported ``access_denied``
        InvalidCallbackError: No code present
    """
    query = parse_qs(urlparse(callback_url).query)
    error = query.get("error", [None])[0]
    if error == "access_denied":
        raise UserCancelledError()
    code = query.get("code", [None])[0]
    if not code:
        raise InvalidCallbackError(
            f"Invalid callback from Google{f': {error}' if error else ''}"
        )
    return code
