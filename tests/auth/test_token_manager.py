"""Tests for TokenManager."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import pytest

from nevermiss.auth.oauth_client import TokenResponse, UserInfo
from nevermiss.auth.pkce import generate_code_challenge
from nevermiss.auth.token_manager import TokenManager, extract_authorization_code
from nevermiss.errors import (
    InvalidCallbackError,
    NoRefreshTokenError,
    RefreshRevokedError,
    UserCancelledError,
)
from nevermiss.models.account import Account

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


@pytest.fixture
def oauth() -> MagicMock:
    client = MagicMock()
    client.refresh = AsyncMock(
        return_value=TokenResponse(access_token="fresh", expires_in=3600)
    )
    client.exchange_code = AsyncMock(
        return_value=TokenResponse(access_token="at", expires_in=3600, refresh_token="rt")
    )
    client.fetch_user_info = AsyncMock(
        return_value=UserInfo(email="me@example.com", name="Me")
    )
    client.build_authorization_url = MagicMock(
        side_effect=lambda challenge: f"https://auth.example/?code_challenge={challenge}"
    )
    return client


@pytest.fixture
def manager(oauth) -> TokenManager:
    return TokenManager(oauth, clock=lambda: NOW)


class FakePresenter:
    """Records the consent URL and answers with a canned callback."""

    def __init__(self, callback_url: str):
        self.callback_url = callback_url
        self.presented: list[str] = []

    async def present(self, url: str) -> str:
        self.presented.append(url)
        return self.callback_url


class TestEnsureValid:
    @pytest.mark.asyncio
    async def test_valid_token_returned_unchanged(self, manager, oauth):
        account = Account(
            email="a@example.com",
            access_token="at",
            refresh_token="rt",
            token_expiry=NOW + timedelta(minutes=10),
        )
        assert await manager.ensure_valid(account) is account
        oauth.refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_token_inside_buffer_is_refreshed(self, manager, oauth):
        account = Account(
            email="a@example.com",
            access_token="at",
            refresh_token="rt",
            token_expiry=NOW + timedelta(seconds=30),
        )
        refreshed = await manager.ensure_valid(account)

        oauth.refresh.assert_awaited_once_with("rt")
        assert refreshed.access_token == "fresh"
        assert refreshed.token_expiry == NOW + timedelta(seconds=3600)
        assert refreshed.id == account.id

    @pytest.mark.asyncio
    async def test_missing_access_token_is_refreshed(self, manager, oauth):
        account = Account(email="a@example.com", refresh_token="rt")
        refreshed = await manager.ensure_valid(account)
        assert refreshed.access_token == "fresh"


class TestRefresh:
    @pytest.mark.asyncio
    async def test_keeps_refresh_token_when_not_rotated(self, manager):
        account = Account(email="a@example.com", refresh_token="original")
        refreshed = await manager.refresh(account)
        assert refreshed.refresh_token == "original"

    @pytest.mark.asyncio
    async def test_replaces_rotated_refresh_token(self, manager, oauth):
        oauth.refresh.return_value = TokenResponse(
            access_token="fresh", expires_in=3600, refresh_token="rotated"
        )
        account = Account(email="a@example.com", refresh_token="original")
        refreshed = await manager.refresh(account)
        assert refreshed.refresh_token == "rotated"

    @pytest.mark.asyncio
    async def test_no_refresh_token(self, manager, oauth):
        with pytest.raises(NoRefreshTokenError):
            await manager.refresh(Account(email="a@example.com"))
        oauth.refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_revocation_propagates(self, manager, oauth):
        oauth.refresh.side_effect = RefreshRevokedError()
        with pytest.raises(RefreshRevokedError):
            await manager.refresh(Account(email="a@example.com", refresh_token="rt"))


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_successful_flow(self, manager, oauth):
        presenter = FakePresenter("http://127.0.0.1:8765/auth/callback?code=abc&scope=x")
        account = await manager.authenticate(presenter)

        assert account.email == "me@example.com"
        assert account.display_name == "Me"
        assert account.access_token == "at"
        assert account.refresh_token == "rt"
        assert account.token_expiry == NOW + timedelta(seconds=3600)
        assert account.is_enabled is True

        # The verifier sent to the token endpoint matches the presented challenge
        code, verifier = oauth.exchange_code.await_args.args
        assert code == "abc"
        challenge = parse_qs(urlparse(presenter.presented[0]).query)["code_challenge"][0]
        assert generate_code_challenge(verifier) == challenge

    @pytest.mark.asyncio
    async def test_access_denied_is_cancellation(self, manager, oauth):
        presenter = FakePresenter("http://127.0.0.1:8765/auth/callback?error=access_denied")
        with pytest.raises(UserCancelledError):
            await manager.authenticate(presenter)
        oauth.exchange_code.assert_not_called()


class TestExtractAuthorizationCode:
    def test_extracts_code(self):
        assert extract_authorization_code("http://localhost/cb?code=4%2Fxyz") == "4/xyz"

    def test_missing_code(self):
        with pytest.raises(InvalidCallbackError):
            extract_authorization_code("http://localhost/cb?state=1")

    def test_other_error_is_invalid_callback(self):
        with pytest.raises(InvalidCallbackError, match="server_error"):
            extract_authorization_code("http://localhost/cb?error=server_error")
