"""Tests for DatabaseTokenStore."""

from datetime import UTC, datetime

import pytest

from nevermiss.db.turso import TursoClient
from nevermiss.repositories.token_store import DatabaseTokenStore, TokenStore

EXPIRY = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)


@pytest.fixture
async def store(db_client: TursoClient) -> DatabaseTokenStore:
    store = DatabaseTokenStore(db_client)
    await store.initialize()
    return store


def test_satisfies_protocol(db_client: TursoClient):
    assert isinstance(DatabaseTokenStore(db_client), TokenStore)


@pytest.mark.asyncio
async def test_save_and_load(store: DatabaseTokenStore):
    await store.save("acct-1", access_token="at", refresh_token="rt", expiry=EXPIRY)

    tokens = await store.load("acct-1")

    assert tokens.access_token == "at"
    assert tokens.refresh_token == "rt"
    assert tokens.expiry == EXPIRY


@pytest.mark.asyncio
async def test_none_leaves_stored_value(store: DatabaseTokenStore):
    """Saving without a refresh token keeps the one already stored."""
    await store.save("acct-1", access_token="at", refresh_token="rt", expiry=EXPIRY)
    await store.save("acct-1", access_token="at-2")

    tokens = await store.load("acct-1")

    assert tokens.access_token == "at-2"
    assert tokens.refresh_token == "rt"
    assert tokens.expiry == EXPIRY


@pytest.mark.asyncio
async def test_load_unknown_account(store: DatabaseTokenStore):
    tokens = await store.load("missing")
    assert tokens.access_token is None
    assert tokens.refresh_token is None
    assert tokens.expiry is None


@pytest.mark.asyncio
async def test_delete(store: DatabaseTokenStore):
    await store.save("acct-1", access_token="at", refresh_token="rt")
    await store.delete("acct-1")
    assert (await store.load("acct-1")).refresh_token is None
