"""Pytest configuration and fixtures."""

from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from nevermiss.db.turso import TursoClient
from nevermiss.main import app
from nevermiss.models.event import CalendarEvent, ResponseStatus
from nevermiss.notifications.popup import InMemoryPopupPresenter
from nevermiss.notifications.scheduler import NotificationScheduler
from nevermiss.repositories import (
    AccountRepository,
    DatabaseTokenStore,
    DismissedRepository,
    SettingsRepository,
)
from nevermiss.service import MeetingService
from nevermiss.state.store import StateStore
from nevermiss.sync.orchestrator import SyncResult

# Fixed reference time used across tests
NOW = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for normalized events relative to NOW."""

    def _make(
        event_id: str = "evt1",
        start_in: timedelta = timedelta(minutes=30),
        length: timedelta = timedelta(minutes=30),
        title: str = "Standup",
        account_id: str = "acct-1",
        response_status: ResponseStatus = ResponseStatus.ACCEPTED,
        is_all_day: bool = False,
        **kwargs,
    ) -> CalendarEvent:
        start = NOW + start_in
        return CalendarEvent(
            id=f"{account_id}_{event_id}",
            account_id=account_id,
            calendar_id="primary",
            title=title,
            start_time=start,
            end_time=start + length,
            is_all_day=is_all_day,
            response_status=response_status,
            **kwargs,
        )

    return _make


@pytest.fixture
async def db_client(tmp_path: Path) -> AsyncIterator[TursoClient]:
    """Create a temp file database client for testing."""
    db_path = tmp_path / "test_nevermiss.db"
    client = TursoClient(url=f"file:{db_path}")
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def mock_scheduler() -> MagicMock:
    """Stand-in for AsyncIOScheduler that records job registrations."""
    scheduler = MagicMock()
    scheduler.running = False
    scheduler.get_jobs.return_value = []
    return scheduler


@pytest.fixture
async def service(db_client: TursoClient, mock_scheduler: MagicMock) -> MeetingService:
    """MeetingService over a temp database with mocked sync collaborators."""
    account_repo = AccountRepository(db_client)
    token_store = DatabaseTokenStore(db_client)
    settings_repo = SettingsRepository(db_client)
    dismissed_repo = DismissedRepository(db_client)
    for repo in (account_repo, token_store, settings_repo, dismissed_repo):
        await repo.initialize()

    orchestrator = MagicMock()
    orchestrator.sync = AsyncMock(return_value=SyncResult(synced_at=NOW))
    token_manager = MagicMock()
    token_manager.authenticate = AsyncMock()

    popup = InMemoryPopupPresenter()
    return MeetingService(
        store=StateStore(),
        orchestrator=orchestrator,
        token_manager=token_manager,
        notifications=NotificationScheduler(mock_scheduler, popup, clock=lambda: NOW),
        popup=popup,
        scheduler=mock_scheduler,
        account_repo=account_repo,
        token_store=token_store,
        settings_repo=settings_repo,
        dismissed_repo=dismissed_repo,
        clock=lambda: NOW,
    )


@pytest.fixture
async def client(service: MeetingService) -> AsyncIterator[AsyncClient]:
    """Create async test client for FastAPI app backed by the test service."""
    MeetingService.set_instance(service)
    app.state.meeting_service = service
    app.state.db = service._accounts._db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up app state
    MeetingService.reset_instance()
    del app.state.meeting_service
    del app.state.db
