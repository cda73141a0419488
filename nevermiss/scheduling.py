"""APScheduler integration for NeverMiss timers.

Hosts the calendar sync interval, the once-a-minute display refresh,
the reminder catch-up sweep and the per-event reminder jobs on a single
AsyncIOScheduler, plus the FastAPI lifespan integration.
"""

from contextlib import asynccontextmanager
from datetime import UTC
from typing import TYPE_CHECKING

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from nevermiss.service import MeetingService

logger = structlog.get_logger()

SYNC_JOB_ID = "calendar_sync"
DISPLAY_JOB_ID = "display_refresh"
DISPLAY_REFRESH_SECONDS = 60

# Module-level scheduler instance
_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance.

    Returns:
        AsyncIOScheduler instance
    """
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=UTC)
    return _scheduler


def reset_scheduler() -> None:
    """Reset the scheduler instance (for testing)."""
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None


def register_service_jobs(
    scheduler: AsyncIOScheduler,
    service: "MeetingService",
) -> None:
    """Add the recurring sync and display-refresh jobs.

    Jobs are coroutines, so they run on the event loop thread.
    """
    scheduler.add_job(
        service.run_scheduled_sync,
        "interval",
        seconds=service.store.settings.refresh_interval,
        id=SYNC_JOB_ID,
        replace_existing=True,
        max_instances=1,  # Prevent overlap if a sync runs long
    )
    scheduler.add_job(
        service.refresh_display,
        "interval",
        seconds=DISPLAY_REFRESH_SECONDS,
        id=DISPLAY_JOB_ID,
        replace_existing=True,
        max_instances=1,
    )


def reschedule_sync_job(scheduler: AsyncIOScheduler, refresh_interval: int) -> None:
    """Re-arm the sync job after the refresh interval changed."""
    if scheduler.get_job(SYNC_JOB_ID) is None:
        return
    scheduler.reschedule_job(SYNC_JOB_ID, trigger="interval", seconds=refresh_interval)
    logger.info("sync interval changed", seconds=refresh_interval)


@asynccontextmanager
async def scheduler_lifespan(
    service: "MeetingService",
) -> "AsyncGenerator[AsyncIOScheduler, None]":
    """Lifespan context manager for the timer scheduler.

    Registers the service jobs and the reminder sweep, starts the
    scheduler, and shuts everything down on exit.

    Usage:
        async with scheduler_lifespan(service):
            # Timers are running
            yield
        # Timers stopped
    """
    scheduler = service.scheduler
    register_service_jobs(scheduler, service)
    service.notifications.start()

    logger.info("Starting timer scheduler")
    scheduler.start()

    try:
        yield scheduler
    finally:
        logger.info("Shutting down timer scheduler")
        service.notifications.shutdown()
        scheduler.shutdown(wait=False)
