"""At-most-once meeting reminders.

Each event id moves through ``unscheduled -> scheduled -> fired``.
``fired`` is terminal until the record is forgotten. Reminders are
armed as one-shot APScheduler date jobs; a periodic sweep re-checks
every candidate so a timer lost to sleep or drift still fires.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

import structlog
from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from nevermiss.clock import local_now
from nevermiss.models.event import CalendarEvent, ResponseStatus
from nevermiss.models.settings import UserSettings
from nevermiss.notifications.popup import PopupPresenter

logger = structlog.get_logger()

SWEEP_JOB_ID = "notification_sweep"
SWEEP_INTERVAL_SECONDS = 30


class NotificationState(str, Enum):
    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    FIRED = "fired"


@dataclass
class NotificationRecord:
    """Reminder bookkeeping for one event id."""

    event_id: str
    start_time: datetime
    state: NotificationState = NotificationState.UNSCHEDULED
    fire_at: datetime | None = None
    job: Job | None = None


def _job_id(event_id: str) -> str:
    return f"notify:{event_id}"


class NotificationScheduler:
    """Guarantees each qualifying meeting triggers exactly one popup.

    All methods must be called on the event loop thread; jobs are
    coroutines so APScheduler runs them there too.
    """

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        popup: PopupPresenter,
        clock: Callable[[], datetime] = local_now,
        sweep_interval_seconds: int = SWEEP_INTERVAL_SECONDS,
    ):
        """Initialize the notification scheduler.

        Args:
            scheduler: APScheduler instance hosting the timers
            popup: Collaborator that shows the reminder
            clock: Returns the current time
            sweep_interval_seconds: Catch-up sweep period
        """
        self._scheduler = scheduler
        self._popup = popup
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds
        self._records: dict[str, NotificationRecord] = {}
        self._candidates: dict[str, CalendarEvent] = {}
        self._settings: UserSettings | None = None

    def start(self) -> None:
        """Register the periodic catch-up sweep."""
        self._scheduler.add_job(
            self._run_sweep,
            "interval",
            seconds=self._sweep_interval,
            id=SWEEP_JOB_ID,
            replace_existing=True,
            max_instances=1,
        )

    def state_of(self, event_id: str) -> NotificationState:
        record = self._records.get(event_id)
        return record.state if record else NotificationState.UNSCHEDULED

    def pending_fire_times(self) -> dict[str, datetime]:
        """Event id -> armed fire time for scheduled reminders."""
        return {
            event_id: record.fire_at
            for event_id, record in self._records.items()
            if record.state == NotificationState.SCHEDULED and record.fire_at
        }

    def _eligible(self, event: CalendarEvent, settings: UserSettings) -> bool:
        if self.state_of(event.id) == NotificationState.FIRED:
            return False
        if settings.show_only_accepted and event.response_status != ResponseStatus.ACCEPTED:
            return False
        return True

    def reschedule(self, events: Iterable[CalendarEvent], settings: UserSettings) -> None:
        """Cancel every pending timer and re-arm from the given candidates.

        Called on every event-set or settings change. Reminders whose
        fire time already passed fire immediately if the meeting has
        not started yet.
        """
        self.cancel_all()
        self._settings = settings
        self._candidates = {e.id: e for e in events if not e.is_all_day}
        now = self._clock()
        self._prune_fired(now)

        if not settings.show_popup_notifications:
            logger.debug("popup notifications disabled, nothing scheduled")
            return

        armed = 0
        for event in self._candidates.values():
            if not self._eligible(event, settings):
                continue
            fire_at = event.start_time - settings.lead_time
            if fire_at <= now:
                if now < event.start_time:
                    self.fire(event)
                continue
            job = self._scheduler.add_job(
                self._on_timer,
                "date",
                run_date=fire_at,
                args=[event.id],
                id=_job_id(event.id),
                replace_existing=True,
                misfire_grace_time=None,
            )
            self._records[event.id] = NotificationRecord(
                event_id=event.id,
                start_time=event.start_time,
                state=NotificationState.SCHEDULED,
                fire_at=fire_at,
                job=job,
            )
            armed += 1

        logger.debug("reminders rescheduled", candidates=len(self._candidates), armed=armed)

    def sweep(self) -> list[str]:
        """Fire every due, not-yet-fired candidate.

        Returns:
            Ids of events fired by this sweep
        """
        settings = self._settings
        if settings is None or not settings.show_popup_notifications:
            return []

        now = self._clock()
        fired = []
        for event in list(self._candidates.values()):
            if not self._eligible(event, settings):
                continue
            if event.start_time - settings.lead_time <= now < event.start_time:
                if self.fire(event):
                    fired.append(event.id)
        if fired:
            logger.info("catch-up sweep fired reminders", count=len(fired))
        return fired

    def fire(self, event: CalendarEvent) -> bool:
        """Show the reminder for an event unless it already fired.

        Returns:
            True if the popup collaborator was invoked
        """
        record = self._records.get(event.id)
        if record is not None and record.state == NotificationState.FIRED:
            return False
        if record is not None:
            self._cancel_job(record)

        self._records[event.id] = NotificationRecord(
            event_id=event.id,
            start_time=event.start_time,
            state=NotificationState.FIRED,
        )
        logger.info("firing meeting reminder", event_id=event.id, title=event.title)
        try:
            self._popup.show(event, self._settings or UserSettings())
        except Exception as e:
            logger.error("popup failed", event_id=event.id, error=str(e))
        return True

    async def _on_timer(self, event_id: str) -> None:
        event = self._candidates.get(event_id)
        record = self._records.get(event_id)
        if event is None or record is None or record.state != NotificationState.SCHEDULED:
            return
        record.job = None
        if self._clock() >= event.start_time:
            # Timer ran late (e.g. after sleep); the meeting already started
            logger.debug("skipping stale reminder", event_id=event_id)
            record.state = NotificationState.UNSCHEDULED
            return
        self.fire(event)

    async def _run_sweep(self) -> None:
        self.sweep()

    def _cancel_job(self, record: NotificationRecord) -> None:
        if record.job is not None:
            try:
                record.job.remove()
            except JobLookupError:
                pass  # Already ran or removed
            record.job = None

    def cancel_all(self) -> None:
        """Cancel every pending per-event timer."""
        for event_id, record in list(self._records.items()):
            if record.state == NotificationState.SCHEDULED:
                self._cancel_job(record)
                del self._records[event_id]

    def _prune_fired(self, now: datetime) -> None:
        # A started meeting can never fire again, so its record can go
        stale = [
            event_id
            for event_id, record in self._records.items()
            if record.state == NotificationState.FIRED and record.start_time <= now
        ]
        for event_id in stale:
            del self._records[event_id]

    def clear_fired(self) -> None:
        """Forget every fired record."""
        for event_id in [
            event_id
            for event_id, record in self._records.items()
            if record.state == NotificationState.FIRED
        ]:
            del self._records[event_id]

    def shutdown(self) -> None:
        """Cancel all timers, including the sweep."""
        self.cancel_all()
        try:
            self._scheduler.remove_job(SWEEP_JOB_ID)
        except JobLookupError:
            pass
