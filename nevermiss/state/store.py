"""Observable application state.

The StateStore holds every piece of shared state (accounts, event
snapshot, settings, dismissed set, derived view) and notifies
subscribers after each mutation. It is only touched from the event
loop thread, so readers never see a half-applied change.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from nevermiss.meetings.classifier import NO_MEETINGS_TITLE, RelevantView
from nevermiss.models.account import Account
from nevermiss.models.event import CalendarEvent
from nevermiss.models.settings import UserSettings
from nevermiss.state.events import (
    AccountsChanged,
    DismissedChanged,
    EventsChanged,
    ReauthenticationRequired,
    SettingsChanged,
    StateChange,
    ViewChanged,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=StateChange)
ChangeHandler = Callable[[StateChange], None] | Callable[[StateChange], Awaitable[None]]


class StateStore:
    """Explicit state container with a subscribe/notify contract.

    Features:
    - Type-safe subscriptions per change type
    - Sync and async handlers, both run on the loop thread
    - Error isolation (one handler failure doesn't affect others)
    """

    def __init__(self, settings: UserSettings | None = None):
        self._subscribers: dict[type[StateChange], list[ChangeHandler]] = {}
        self.accounts: list[Account] = []
        self.events: list[CalendarEvent] = []
        self.settings: UserSettings = settings or UserSettings()
        self.dismissed: frozenset[str] = frozenset()
        self.view: RelevantView = RelevantView()
        self.title: str = NO_MEETINGS_TITLE
        self.reauth_required: set[str] = set()
        self.sync_errors: dict[str, str] = {}
        self.last_synced_at: datetime | None = None
        self.applied_cycle: int = 0

    def subscribe(
        self,
        change_type: type[T],
        handler: Callable[[T], None] | Callable[[T], Awaitable[None]],
    ) -> None:
        """Subscribe a handler to a change type.

        Args:
            change_type: The StateChange subclass to subscribe to
            handler: Function to call after the change is applied
        """
        self._subscribers.setdefault(change_type, []).append(handler)
        logger.debug(f"Subscribed handler to {change_type.__name__}")

    def unsubscribe(self, change_type: type[T], handler: ChangeHandler) -> None:
        """Unsubscribe a handler from a change type."""
        if change_type in self._subscribers:
            try:
                self._subscribers[change_type].remove(handler)
            except ValueError:
                pass  # Handler wasn't subscribed

    async def publish(self, change: StateChange) -> None:
        """Notify all subscribers of a change.

        Sync handlers run inline; async handlers run concurrently.
        Handler errors are logged, never raised.
        """
        handlers = list(self._subscribers.get(type(change), []))
        logger.debug(f"Publishing {change.change_type} to {len(handlers)} handler(s)")

        tasks = []
        for handler in handlers:
            if inspect.iscoroutinefunction(handler):
                tasks.append(handler(change))
                continue
            try:
                handler(change)
            except Exception as e:
                logger.error(f"Handler error for {change.change_type}: {e}")

        if tasks:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Handler error for {change.change_type}: {result}")

    def subscriber_count(self, change_type: type[StateChange]) -> int:
        """Get number of subscribers for a change type."""
        return len(self._subscribers.get(change_type, []))

    # Mutations. Each applies the change, then notifies.

    async def set_accounts(self, accounts: list[Account]) -> None:
        self.accounts = list(accounts)
        known = {a.id for a in self.accounts}
        self.reauth_required &= known
        self.sync_errors = {k: v for k, v in self.sync_errors.items() if k in known}
        await self.publish(AccountsChanged(account_ids=sorted(known)))

    def get_account(self, account_id: str) -> Account | None:
        return next((a for a in self.accounts if a.id == account_id), None)

    async def apply_sync(
        self,
        cycle: int,
        accounts: list[Account],
        events: list[CalendarEvent],
        reauth_required: list[str],
        errors: dict[str, str],
        synced_at: datetime,
    ) -> bool:
        """Apply one sync cycle's results as a single batch.

        Results from a cycle older than the last applied one are dropped.

        Returns:
            True if the batch was applied
        """
        if cycle <= self.applied_cycle:
            logger.info(f"Discarding superseded sync cycle {cycle}")
            return False

        self.applied_cycle = cycle
        self.accounts = list(accounts)
        self.events = list(events)
        newly_flagged = set(reauth_required) - self.reauth_required
        self.reauth_required = set(reauth_required)
        self.sync_errors = dict(errors)
        self.last_synced_at = synced_at

        await self.publish(AccountsChanged(account_ids=[a.id for a in self.accounts]))
        for account_id in sorted(newly_flagged):
            account = self.get_account(account_id)
            if account is not None:
                await self.publish(
                    ReauthenticationRequired(account_id=account_id, email=account.email)
                )
        await self.publish(EventsChanged(event_count=len(self.events), cycle=cycle))
        return True

    async def purge_account(self, account_id: str) -> None:
        """Drop an account and every event it contributed."""
        self.accounts = [a for a in self.accounts if a.id != account_id]
        self.events = [e for e in self.events if e.account_id != account_id]
        self.reauth_required.discard(account_id)
        self.sync_errors.pop(account_id, None)
        await self.publish(AccountsChanged(account_ids=[a.id for a in self.accounts]))
        await self.publish(EventsChanged(event_count=len(self.events)))

    async def purge_account_events(self, account_id: str) -> None:
        """Drop the events of an account that stays connected but disabled."""
        self.events = [e for e in self.events if e.account_id != account_id]
        self.sync_errors.pop(account_id, None)
        await self.publish(EventsChanged(event_count=len(self.events)))

    async def set_settings(self, settings: UserSettings) -> None:
        previous = self.settings
        self.settings = settings
        await self.publish(SettingsChanged(previous=previous, current=settings))

    async def set_dismissed(self, dismissed: frozenset[str]) -> None:
        self.dismissed = frozenset(dismissed)
        await self.publish(DismissedChanged(dismissed_count=len(self.dismissed)))

    async def set_view(self, view: RelevantView, title: str) -> None:
        """Store a freshly derived view; notify only when its content changed."""
        changed = view != self.view
        self.view = view
        self.title = title
        if changed:
            await self.publish(ViewChanged(event_ids=view.event_ids))
