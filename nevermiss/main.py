"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI

from nevermiss.api.router import api_router
from nevermiss.config import settings
from nevermiss.db.turso import TursoClient

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def _initialize_meeting_service(app: FastAPI, db: TursoClient):
    """Build MeetingService and its collaborators, then load persisted state.

    Repositories create their tables; the service becomes the singleton
    the API routes resolve.
    """
    from nevermiss.auth.oauth_client import OAuthClient
    from nevermiss.auth.token_manager import TokenManager
    from nevermiss.notifications.popup import InMemoryPopupPresenter
    from nevermiss.notifications.scheduler import NotificationScheduler
    from nevermiss.repositories import (
        AccountRepository,
        DatabaseTokenStore,
        DismissedRepository,
        SettingsRepository,
    )
    from nevermiss.scheduling import get_scheduler
    from nevermiss.service import MeetingService
    from nevermiss.state.store import StateStore
    from nevermiss.sync.orchestrator import FetchOrchestrator

    account_repo = AccountRepository(db)
    token_store = DatabaseTokenStore(db)
    settings_repo = SettingsRepository(db)
    dismissed_repo = DismissedRepository(db)
    for repo in (account_repo, token_store, settings_repo, dismissed_repo):
        await repo.initialize()
    logger.info("Repositories initialized")

    oauth_client = OAuthClient()
    app.state.oauth_client = oauth_client
    token_manager = TokenManager(oauth_client)

    scheduler = get_scheduler()
    popup = InMemoryPopupPresenter()
    service = MeetingService(
        store=StateStore(),
        orchestrator=FetchOrchestrator(token_manager),
        token_manager=token_manager,
        notifications=NotificationScheduler(scheduler, popup),
        popup=popup,
        scheduler=scheduler,
        account_repo=account_repo,
        token_store=token_store,
        settings_repo=settings_repo,
        dismissed_repo=dismissed_repo,
    )
    await service.load()
    MeetingService.set_instance(service)
    app.state.meeting_service = service
    logger.info("MeetingService initialized")
    return service


def _get_scheduler_context(service):
    """Get timer scheduler lifespan context manager.

    Returns a no-op context if the scheduler is disabled via settings.
    """
    from nevermiss.scheduling import scheduler_lifespan

    # Allow disabling scheduler for tests
    if settings.disable_scheduler:

        @asynccontextmanager
        async def noop_context():
            yield

        return noop_context()

    return scheduler_lifespan(service)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management.

    Startup:
    - Initialize database connection
    - Load accounts, settings and dismissals
    - Start timers and kick off the first sync

    Shutdown:
    - Stop timers and abandon in-flight syncs
    - Close HTTP and database connections
    """
    from nevermiss.service import MeetingService

    # Startup
    logger.info("Starting NeverMiss...")

    db = TursoClient()
    await db.connect()
    app.state.db = db
    logger.info(f"Database connected: {db.url}")

    service = await _initialize_meeting_service(app, db)

    async with AsyncExitStack() as stack:
        await stack.enter_async_context(_get_scheduler_context(service))
        if not settings.disable_scheduler:
            service.request_sync()
        yield
        await service.shutdown()

    # Shutdown
    logger.info("Shutting down NeverMiss...")
    MeetingService.reset_instance()
    await app.state.oauth_client.aclose()
    await db.close()
    logger.info("Database connection closed")


app = FastAPI(
    title=settings.app_name,
    description="Meeting reminders across Google Calendar accounts",
    version=settings.app_version,
    lifespan=lifespan,
)

app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "nevermiss.main:app",
        host=settings.host,
        port=settings.port,
    )
