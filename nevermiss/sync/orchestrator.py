"""Multi-account calendar sync.

FetchOrchestrator runs one independent chain per enabled account
(ensure token, list calendars, fetch events, normalize) and merges the
successful chains into a single snapshot. Accounts run concurrently;
a failing account contributes nothing and never affects the others.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

import structlog
from pydantic import BaseModel, Field
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from nevermiss.adapters.calendar_adapter import CalendarAdapter
from nevermiss.auth.token_manager import TokenManager
from nevermiss.clock import local_now
from nevermiss.errors import (
    AuthError,
    CalendarError,
    NoRefreshTokenError,
    RefreshRevokedError,
    UnauthorizedError,
)
from nevermiss.models.account import Account
from nevermiss.models.event import CalendarEvent
from nevermiss.sync.normalizer import EventNormalizer

logger = structlog.get_logger()

SYNC_WINDOW = timedelta(hours=24)


class SyncResult(BaseModel):
    """Aggregated outcome of one sync cycle."""

    events: list[CalendarEvent] = Field(default_factory=list)
    updated_accounts: list[Account] = Field(
        default_factory=list,
        description="Accounts whose tokens were refreshed during the cycle",
    )
    reauth_required: list[str] = Field(
        default_factory=list,
        description="Account ids that need interactive sign-in",
    )
    errors: dict[str, str] = Field(
        default_factory=dict,
        description="Account id -> error message for failed accounts",
    )
    synced_at: datetime


class AccountSyncOutcome(BaseModel):
    """Result of a single account's chain."""

    account_id: str
    events: list[CalendarEvent] = Field(default_factory=list)
    updated_account: Account | None = None
    needs_reauth: bool = False
    error: str | None = None


class FetchOrchestrator:
    """Fetches and normalizes events for every enabled account."""

    def __init__(
        self,
        token_manager: TokenManager,
        normalizer: EventNormalizer | None = None,
        calendar_factory: Callable[[str | None], CalendarAdapter] = CalendarAdapter,
        clock: Callable[[], datetime] = local_now,
        window: timedelta = SYNC_WINDOW,
    ):
        """Initialize with collaborators.

        Args:
            token_manager: Keeps account tokens valid
            normalizer: Raw payload normalizer
            calendar_factory: Builds a CalendarAdapter for an access token
            clock: Returns the current time
            window: Length of the fetch window starting now
        """
        self._tokens = token_manager
        self._normalizer = normalizer or EventNormalizer()
        self._calendar_factory = calendar_factory
        self._clock = clock
        self._window = window

    async def sync(
        self,
        accounts: list[Account],
        now: datetime | None = None,
    ) -> SyncResult:
        """Sync all enabled accounts concurrently.

        Args:
            accounts: All known accounts; disabled ones are skipped
            now: Start of the fetch window (defaults to clock)

        Returns:
            SyncResult holding the full replacement event set
        """
        now = now or self._clock()
        enabled = [a for a in accounts if a.is_enabled]
        outcomes = await asyncio.gather(
            *(self.sync_account(account, now) for account in enabled)
        )

        result = SyncResult(synced_at=now)
        for outcome in outcomes:
            result.events.extend(outcome.events)
            if outcome.updated_account is not None:
                result.updated_accounts.append(outcome.updated_account)
            if outcome.needs_reauth:
                result.reauth_required.append(outcome.account_id)
            if outcome.error:
                result.errors[outcome.account_id] = outcome.error

        logger.info(
            "sync completed",
            accounts=len(enabled),
            events=len(result.events),
            failed=len(result.errors),
            reauth_required=len(result.reauth_required),
        )
        return result

    async def sync_account(self, account: Account, now: datetime) -> AccountSyncOutcome:
        """Run one account's chain: ensure token, list calendars, fetch events.

        A 401 during listing or fetching triggers one refresh-and-retry.
        """
        outcome = AccountSyncOutcome(account_id=account.id)
        if account.needs_reauthentication:
            logger.warning("account needs re-authentication", account=account.email)
            outcome.needs_reauth = True
            return outcome

        current = account
        try:
            current = await self._tokens.ensure_valid(account)
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(2),
                retry=retry_if_exception_type(UnauthorizedError),
                before_sleep=before_sleep_log(logger, log_level=logging.INFO),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        current = await self._tokens.refresh(current)
                    outcome.events = await self._fetch_events(current, now)
        except (RefreshRevokedError, NoRefreshTokenError) as e:
            logger.warning(
                "refresh token rejected, re-authentication required",
                account=account.email,
                error=str(e),
            )
            outcome.needs_reauth = True
        except (AuthError, CalendarError) as e:
            logger.warning("account sync failed", account=account.email, error=str(e))
            outcome.error = str(e)
        except Exception as e:
            logger.error("unexpected account sync error", account=account.email, error=str(e))
            outcome.error = str(e)

        if current is not account:
            outcome.updated_account = current
        if outcome.error or outcome.needs_reauth:
            outcome.events = []
        return outcome

    async def _fetch_events(self, account: Account, now: datetime) -> list[CalendarEvent]:
        calendar = self._calendar_factory(account.access_token)
        entries = await calendar.list_calendars()
        owned = [entry for entry in entries if entry.selected and entry.is_owned]
        logger.debug(
            "calendars listed",
            account=account.email,
            total=len(entries),
            owned=len(owned),
        )

        events: list[CalendarEvent] = []
        for entry in owned:
            raw_items = await calendar.list_events(
                calendar_id=entry.id,
                time_min=now,
                time_max=now + self._window,
            )
            for raw in raw_items:
                event = self._normalizer.normalize(raw, account.id, entry.id, account.email)
                if event is not None:
                    events.append(event)
        return events
