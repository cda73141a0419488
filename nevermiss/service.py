"""MeetingService coordinates sync, classification and reminders.

Wires the StateStore to its consumers, runs sync cycles and applies
their results atomically, and owns every user-initiated mutation
(accounts, settings, dismissals).
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from nevermiss.auth.presenter import AuthorizationPresenter, CallbackPresenter
from nevermiss.auth.token_manager import TokenManager
from nevermiss.clock import local_now
from nevermiss.errors import AuthError, UserCancelledError
from nevermiss.meetings.classifier import classify, menu_bar_title
from nevermiss.models.account import Account
from nevermiss.models.settings import SettingsUpdate, UserSettings
from nevermiss.notifications.popup import PopupPresenter
from nevermiss.notifications.scheduler import NotificationScheduler
from nevermiss.repositories.account_repo import AccountRepository
from nevermiss.repositories.dismissed_repo import DismissedRepository
from nevermiss.repositories.settings_repo import SettingsRepository
from nevermiss.repositories.token_store import TokenStore
from nevermiss.scheduling import reschedule_sync_job
from nevermiss.state.events import (
    DismissedChanged,
    EventsChanged,
    SettingsChanged,
    ViewChanged,
)
from nevermiss.state.store import StateStore
from nevermiss.sync.orchestrator import FetchOrchestrator, SyncResult

logger = structlog.get_logger()


class MeetingService:
    """Application coordinator.

    Singleton pattern with class-level instance for API access.
    """

    _instance: "MeetingService | None" = None

    def __init__(
        self,
        store: StateStore,
        orchestrator: FetchOrchestrator,
        token_manager: TokenManager,
        notifications: NotificationScheduler,
        popup: PopupPresenter,
        scheduler: AsyncIOScheduler,
        account_repo: AccountRepository,
        token_store: TokenStore,
        settings_repo: SettingsRepository,
        dismissed_repo: DismissedRepository,
        presenter: CallbackPresenter | None = None,
        clock: Callable[[], datetime] = local_now,
    ):
        """Initialize MeetingService with dependencies.

        Args:
            store: Shared observable state
            orchestrator: Multi-account fetcher
            token_manager: Token refresh and sign-in
            notifications: Reminder scheduler
            popup: Popup collaborator
            scheduler: APScheduler hosting the recurring jobs
            account_repo: Account metadata persistence
            token_store: Credential persistence
            settings_repo: Settings persistence
            dismissed_repo: Dismissed-set persistence
            presenter: Browser-driven sign-in presenter
            clock: Returns the current time
        """
        self.store = store
        self.orchestrator = orchestrator
        self.token_manager = token_manager
        self.notifications = notifications
        self.popup = popup
        self.scheduler = scheduler
        self._accounts = account_repo
        self._tokens = token_store
        self._settings = settings_repo
        self._dismissed = dismissed_repo
        self.presenter = presenter or CallbackPresenter()
        self.last_auth_error: str | None = None
        self.clock = clock
        self._cycle = 0
        self._sync_tasks: set[asyncio.Task] = set()
        self._background: set[asyncio.Task] = set()

        store.subscribe(EventsChanged, self._on_inputs_changed)
        store.subscribe(DismissedChanged, self._on_inputs_changed)
        store.subscribe(SettingsChanged, self._on_settings_changed)
        store.subscribe(ViewChanged, self._on_view_changed)

    @classmethod
    def get_instance(cls) -> "MeetingService":
        """Get the singleton instance.

        Raises:
            RuntimeError: If MeetingService not initialized
        """
        if cls._instance is None:
            raise RuntimeError("MeetingService not initialized")
        return cls._instance

    @classmethod
    def set_instance(cls, instance: "MeetingService") -> None:
        """Set the singleton instance."""
        cls._instance = instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    async def load(self) -> None:
        """Load persisted settings, dismissals and accounts into the store."""
        self.store.settings = await self._settings.load()
        self.store.dismissed = await self._dismissed.load()

        accounts = []
        for account in await self._accounts.list_all():
            tokens = await self._tokens.load(account.id)
            accounts.append(
                account.model_copy(
                    update={
                        "access_token": tokens.access_token,
                        "refresh_token": tokens.refresh_token,
                        "token_expiry": tokens.expiry,
                    }
                )
            )
        await self.store.set_accounts(accounts)
        await self.refresh_view(force_reschedule=True)
        logger.info(
            "state loaded",
            accounts=len(accounts),
            dismissed=len(self.store.dismissed),
        )

    # Subscriptions

    async def _on_inputs_changed(self, change) -> None:
        await self.refresh_view()

    async def _on_settings_changed(self, change: SettingsChanged) -> None:
        if change.previous.refresh_interval != change.current.refresh_interval:
            reschedule_sync_job(self.scheduler, change.current.refresh_interval)
        await self.refresh_view(force_reschedule=True)

    def _on_view_changed(self, change: ViewChanged) -> None:
        self.notifications.reschedule(self.store.view.timed, self.store.settings)

    async def refresh_view(self, force_reschedule: bool = False) -> None:
        """Re-derive the relevant-now view and the menu-bar title."""
        now = self.clock()
        view = classify(
            self.store.events,
            self.store.settings,
            self.store.dismissed,
            now,
        )
        changed = view != self.store.view
        await self.store.set_view(view, menu_bar_title(view, now))
        if force_reschedule and not changed:
            self.notifications.reschedule(view.timed, self.store.settings)

    async def refresh_display(self) -> None:
        """Once-a-minute tick: time moved, so the view and title may have too."""
        await self.refresh_view()

    # Sync

    async def sync_now(self) -> SyncResult | None:
        """Run one sync cycle and apply it unless a newer cycle won.

        Returns:
            The cycle's SyncResult, or None if it was superseded
        """
        self._cycle += 1
        cycle = self._cycle
        task = asyncio.create_task(self.orchestrator.sync(list(self.store.accounts)))
        self._sync_tasks.add(task)
        try:
            result = await task
        finally:
            self._sync_tasks.discard(task)

        if cycle < self._cycle:
            logger.info("discarding superseded sync cycle", cycle=cycle, latest=self._cycle)
            return None
        applied = await self._apply_sync(cycle, result)
        return result if applied else None

    async def run_scheduled_sync(self) -> None:
        """Scheduled job: sync all accounts."""
        try:
            await self.sync_now()
        except Exception as e:
            logger.error("scheduled sync failed", error=str(e))

    def request_sync(self) -> asyncio.Task:
        """Start a sync cycle in the background."""
        return self._spawn(self.run_scheduled_sync())

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _apply_sync(self, cycle: int, result: SyncResult) -> bool:
        # Merge into the accounts as they are now; the user may have
        # removed or toggled accounts while the cycle was in flight.
        updated = {a.id: a for a in result.updated_accounts}
        accounts = [
            account.model_copy(
                update={
                    "access_token": updated[account.id].access_token,
                    "refresh_token": updated[account.id].refresh_token,
                    "token_expiry": updated[account.id].token_expiry,
                }
            )
            if account.id in updated
            else account
            for account in self.store.accounts
        ]
        live = {a.id for a in accounts if a.is_enabled}
        events = [e for e in result.events if e.account_id in live]

        applied = await self.store.apply_sync(
            cycle=cycle,
            accounts=accounts,
            events=events,
            reauth_required=[i for i in result.reauth_required if i in live],
            errors={k: v for k, v in result.errors.items() if k in live},
            synced_at=result.synced_at,
        )
        if not applied:
            return False

        for account in accounts:
            if account.id in updated:
                await self._tokens.save(
                    account.id,
                    access_token=account.access_token,
                    refresh_token=account.refresh_token,
                    expiry=account.token_expiry,
                )
        return True

    # Accounts

    async def add_account(self, presenter: AuthorizationPresenter) -> Account | None:
        """Sign in a Google account interactively.

        An account with the same email is replaced in place (re-auth).

        Returns:
            The stored account, or None if the user cancelled
        """
        try:
            signed_in = await self.token_manager.authenticate(presenter)
        except UserCancelledError:
            logger.info("sign-in cancelled")
            return None

        existing = next(
            (a for a in self.store.accounts if a.email.lower() == signed_in.email.lower()),
            None,
        )
        accounts = list(self.store.accounts)
        if existing is not None:
            account = signed_in.model_copy(
                update={"id": existing.id, "is_enabled": existing.is_enabled}
            )
            accounts = [account if a.id == existing.id else a for a in accounts]
        else:
            account = signed_in
            accounts.append(account)

        await self._tokens.save(
            account.id,
            access_token=account.access_token,
            refresh_token=account.refresh_token,
            expiry=account.token_expiry,
        )
        await self._accounts.save_all(accounts)
        self.store.reauth_required.discard(account.id)
        await self.store.set_accounts(accounts)
        logger.info("account added", account=account.email, replaced=existing is not None)
        return account

    async def start_login(self) -> str | None:
        """Begin a browser sign-in and return the consent URL.

        The flow continues in the background until /auth/callback
        resolves the presenter.

        Raises:
            RuntimeError: If a sign-in is already pending
        """
        if self.presenter.pending:
            raise RuntimeError("An authorization flow is already pending")
        self.last_auth_error = None
        self._spawn(self._login_flow())
        return await self.presenter.wait_for_url()

    async def _login_flow(self) -> None:
        try:
            account = await self.add_account(self.presenter)
        except AuthError as e:
            self.last_auth_error = str(e)
            logger.warning("sign-in failed", error=str(e))
            return
        if account is not None:
            self.request_sync()

    async def remove_account(self, account_id: str) -> bool:
        """Remove an account, its stored credentials and its events."""
        if self.store.get_account(account_id) is None:
            return False
        await self._tokens.delete(account_id)
        await self._accounts.delete(account_id)
        await self._dismissed.purge_account(account_id)
        await self.store.purge_account(account_id)
        logger.info("account removed", account_id=account_id)
        return True

    async def set_account_enabled(self, account_id: str, enabled: bool) -> Account | None:
        account = self.store.get_account(account_id)
        if account is None:
            return None
        updated = account.model_copy(update={"is_enabled": enabled})
        accounts = [updated if a.id == account_id else a for a in self.store.accounts]
        await self._accounts.save_all(accounts)
        await self.store.set_accounts(accounts)
        if not enabled:
            await self.store.purge_account_events(account_id)
        return updated

    # Dismissal and settings

    async def dismiss(self, event_id: str) -> bool:
        """Hide an event from the view until dismissals are cleared."""
        event = next((e for e in self.store.events if e.id == event_id), None)
        if event is None:
            return False
        await self._dismissed.add(event_id, event.account_id)
        await self.store.set_dismissed(self.store.dismissed | {event_id})
        active = getattr(self.popup, "active", None)
        if active is not None and active.event.id == event_id:
            self.popup.close()
        return True

    async def clear_dismissed(self) -> None:
        await self._dismissed.clear()
        await self.store.set_dismissed(frozenset())

    async def update_settings(self, update: SettingsUpdate) -> UserSettings:
        settings = update.apply(self.store.settings)
        await self._settings.save(settings)
        await self.store.set_settings(settings)
        return settings

    async def shutdown(self) -> None:
        """Abandon in-flight syncs and cancel reminder timers."""
        self.presenter.cancel()
        tasks = [*self._sync_tasks, *self._background]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.notifications.cancel_all()
