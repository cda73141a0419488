"""Tests for the browser sign-in endpoints."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from nevermiss.auth.oauth_client import TokenResponse, UserInfo
from nevermiss.auth.token_manager import TokenManager

CONSENT_URL = "https://accounts.example/o/oauth2/v2/auth?client_id=abc"


async def _drain(service) -> None:
    """Wait for the background sign-in flow and any sync it started."""
    while service._background:
        await asyncio.gather(*list(service._background), return_exceptions=True)
        await asyncio.sleep(0)


@pytest.fixture
def oauth(service, now) -> MagicMock:
    oauth = MagicMock()
    oauth.build_authorization_url = MagicMock(return_value=CONSENT_URL)
    oauth.exchange_code = AsyncMock(
        return_value=TokenResponse(access_token="at", expires_in=3600, refresh_token="rt")
    )
    oauth.fetch_user_info = AsyncMock(
        return_value=UserInfo(email="me@example.com", name="Me")
    )
    service.token_manager = TokenManager(oauth, clock=lambda: now)
    return oauth


@pytest.mark.asyncio
async def test_login_redirects_and_callback_adds_account(
    client: AsyncClient, service, oauth
):
    response = await client.get("/auth/login")
    assert response.status_code == 307
    assert response.headers["location"] == CONSENT_URL

    response = await client.get("/auth/callback", params={"code": "4/abc"})
    assert response.status_code == 200
    await _drain(service)

    assert oauth.exchange_code.await_args.args[0] == "4/abc"
    accounts = (await client.get("/accounts")).json()
    assert [a["email"] for a in accounts] == ["me@example.com"]
    service.orchestrator.sync.assert_awaited()


@pytest.mark.asyncio
async def test_second_login_while_pending_conflicts(client: AsyncClient, service, oauth):
    await client.get("/auth/login")

    response = await client.get("/auth/login")
    assert response.status_code == 409

    response = await client.post("/auth/cancel")
    assert response.json() == {"cancelled": True}
    await _drain(service)
    assert service.store.accounts == []


@pytest.mark.asyncio
async def test_access_denied_callback(client: AsyncClient, service, oauth):
    await client.get("/auth/login")

    response = await client.get("/auth/callback", params={"error": "access_denied"})
    assert response.status_code == 200
    await _drain(service)

    oauth.exchange_code.assert_not_called()
    assert service.store.accounts == []
    assert service.last_auth_error is None


@pytest.mark.asyncio
async def test_callback_without_pending_flow(client: AsyncClient):
    response = await client.get("/auth/callback", params={"code": "x"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancel_without_pending_flow(client: AsyncClient):
    response = await client.post("/auth/cancel")
    assert response.json() == {"cancelled": False}
