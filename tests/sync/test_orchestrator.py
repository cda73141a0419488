"""Tests for FetchOrchestrator."""

import logging
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from tenacity import before_sleep_log

from nevermiss.adapters.calendar_adapter import CalendarListEntry
from nevermiss.errors import (
    CalendarRequestError,
    RefreshFailedError,
    RefreshRevokedError,
    UnauthorizedError,
)
from nevermiss.models.account import Account
from nevermiss.sync.normalizer import EventNormalizer
from nevermiss.sync.orchestrator import FetchOrchestrator

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


def _raw_event(event_id: str, hour: int = 10) -> dict:
    return {
        "id": event_id,
        "summary": f"Meeting {event_id}",
        "start": {"dateTime": f"2025-03-10T{hour:02d}:00:00Z"},
        "end": {"dateTime": f"2025-03-10T{hour:02d}:30:00Z"},
    }


class FakeCalendar:
    """In-memory stand-in for CalendarAdapter."""

    def __init__(self, calendars=None, events=None, error=None):
        self.calendars = calendars or [
            CalendarListEntry(id="primary", summary="Me", primary=True, access_role="owner")
        ]
        self.events = events or {}
        self.error = error
        self.requested: list[tuple] = []

    async def list_calendars(self):
        if self.error is not None:
            raise self.error
        return self.calendars

    async def list_events(self, calendar_id, time_min, time_max):
        self.requested.append((calendar_id, time_min, time_max))
        return self.events.get(calendar_id, [])


def _account(email: str, token: str = "valid") -> Account:
    return Account(
        email=email,
        access_token=token,
        refresh_token=f"rt-{email}",
        token_expiry=NOW + timedelta(hours=1),
    )


@pytest.fixture
def token_manager() -> MagicMock:
    manager = MagicMock()
    manager.ensure_valid = AsyncMock(side_effect=lambda account: account)
    manager.refresh = AsyncMock(
        side_effect=lambda account: account.model_copy(update={"access_token": "fresh"})
    )
    return manager


def _orchestrator(token_manager, calendars: dict[str, FakeCalendar]) -> FetchOrchestrator:
    return FetchOrchestrator(
        token_manager,
        normalizer=EventNormalizer(local_tz=UTC),
        calendar_factory=lambda token: calendars[token],
        clock=lambda: NOW,
    )


class TestCalendarSelection:
    @pytest.mark.asyncio
    async def test_only_owned_selected_calendars_fetched(self, token_manager):
        calendar = FakeCalendar(
            calendars=[
                CalendarListEntry(id="primary", summary="Me", access_role="owner"),
                CalendarListEntry(id="team", summary="Team", access_role="reader"),
                CalendarListEntry(id="hidden", summary="Hidden", selected=False, access_role="owner"),
            ],
            events={
                "primary": [_raw_event("a")],
                "team": [_raw_event("b")],
                "hidden": [_raw_event("c")],
            },
        )
        account = _account("me@example.com")

        result = await _orchestrator(token_manager, {"valid": calendar}).sync([account])

        assert [e.id for e in result.events] == [f"{account.id}_a"]
        assert [r[0] for r in calendar.requested] == ["primary"]

    @pytest.mark.asyncio
    async def test_fetch_window_is_next_24_hours(self, token_manager):
        calendar = FakeCalendar()
        await _orchestrator(token_manager, {"valid": calendar}).sync([_account("me@example.com")])

        _, time_min, time_max = calendar.requested[0]
        assert time_min == NOW
        assert time_max == NOW + timedelta(hours=24)


class TestAccountIsolation:
    @pytest.mark.asyncio
    async def test_failing_account_does_not_affect_others(self, token_manager):
        good = _account("good@example.com", token="good")
        bad = _account("bad@example.com", token="bad")
        calendars = {
            "good": FakeCalendar(events={"primary": [_raw_event("g")]}),
            "bad": FakeCalendar(error=CalendarRequestError(500)),
        }

        result = await _orchestrator(token_manager, calendars).sync([good, bad])

        assert [e.account_id for e in result.events] == [good.id]
        assert bad.id in result.errors
        assert good.id not in result.errors
        assert result.reauth_required == []

    @pytest.mark.asyncio
    async def test_disabled_accounts_skipped(self, token_manager):
        account = _account("me@example.com").model_copy(update={"is_enabled": False})
        result = await _orchestrator(token_manager, {}).sync([account])

        assert result.events == []
        token_manager.ensure_valid.assert_not_called()

    @pytest.mark.asyncio
    async def test_unexpected_exception_isolated(self, token_manager):
        account = _account("me@example.com")
        calendars = {"valid": FakeCalendar(error=KeyError("boom"))}

        result = await _orchestrator(token_manager, calendars).sync([account])

        assert account.id in result.errors


class TestTokenHandling:
    @pytest.mark.asyncio
    async def test_revoked_refresh_flags_reauth(self, token_manager):
        account = _account("me@example.com")
        token_manager.ensure_valid.side_effect = RefreshRevokedError()

        result = await _orchestrator(token_manager, {}).sync([account])

        assert result.reauth_required == [account.id]
        assert result.errors == {}
        assert result.events == []

    @pytest.mark.asyncio
    async def test_missing_refresh_token_flags_reauth_without_network(self, token_manager):
        account = Account(email="me@example.com", access_token="valid")

        result = await _orchestrator(token_manager, {}).sync([account])

        assert result.reauth_required == [account.id]
        token_manager.ensure_valid.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_refresh_failure_is_an_error(self, token_manager):
        account = _account("me@example.com")
        token_manager.ensure_valid.side_effect = RefreshFailedError("timeout")

        result = await _orchestrator(token_manager, {}).sync([account])

        assert result.reauth_required == []
        assert result.errors[account.id] == "timeout"

    @pytest.mark.asyncio
    async def test_401_refreshes_and_retries_once(self, token_manager):
        account = _account("me@example.com", token="stale")
        calendars = {
            "stale": FakeCalendar(error=UnauthorizedError()),
            "fresh": FakeCalendar(events={"primary": [_raw_event("x")]}),
        }

        result = await _orchestrator(token_manager, calendars).sync([account])

        token_manager.refresh.assert_awaited_once()
        assert [e.id for e in result.events] == [f"{account.id}_x"]
        assert result.errors == {}
        assert [a.access_token for a in result.updated_accounts] == ["fresh"]

    @pytest.mark.asyncio
    async def test_retry_logged_at_info(self, token_manager):
        account = _account("me@example.com", token="stale")
        calendars = {
            "stale": FakeCalendar(error=UnauthorizedError()),
            "fresh": FakeCalendar(),
        }

        with patch(
            "nevermiss.sync.orchestrator.before_sleep_log", wraps=before_sleep_log
        ) as spy:
            await _orchestrator(token_manager, calendars).sync([account])

        assert spy.call_args.kwargs["log_level"] == logging.INFO

    @pytest.mark.asyncio
    async def test_second_401_is_reported_without_further_retry(self, token_manager):
        account = _account("me@example.com", token="stale")
        calendars = {
            "stale": FakeCalendar(error=UnauthorizedError()),
            "fresh": FakeCalendar(error=UnauthorizedError()),
        }

        result = await _orchestrator(token_manager, calendars).sync([account])

        token_manager.refresh.assert_awaited_once()
        assert account.id in result.errors
        assert result.events == []

    @pytest.mark.asyncio
    async def test_refreshed_account_reported_for_persistence(self, token_manager):
        account = _account("me@example.com", token="old")
        refreshed = account.model_copy(update={"access_token": "valid"})
        token_manager.ensure_valid.side_effect = None
        token_manager.ensure_valid.return_value = refreshed

        result = await _orchestrator(token_manager, {"valid": FakeCalendar()}).sync([account])

        assert result.updated_accounts == [refreshed]
        assert result.updated_accounts[0].refresh_token == account.refresh_token

    @pytest.mark.asyncio
    async def test_untouched_account_not_reported(self, token_manager):
        account = _account("me@example.com")
        result = await _orchestrator(token_manager, {"valid": FakeCalendar()}).sync([account])
        assert result.updated_accounts == []
