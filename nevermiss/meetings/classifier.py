"""Derivation of the bounded "relevant now" meeting view.

The classifier is a pure function of the event snapshot, the settings,
the dismissed set and the current time. It is re-run whenever any of
them changes and once a minute as time passes.
"""

from collections.abc import Collection, Iterable
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, computed_field

from nevermiss.meetings.formatting import relative_time
from nevermiss.models.event import CalendarEvent, ResponseStatus
from nevermiss.models.settings import UserSettings

# Timed meetings shown at most
MAX_TIMED_MEETINGS = 10
# Horizon for timed meetings
VIEW_HORIZON = timedelta(hours=24)
# Meetings starting closer together than this are grouped in the title
SAME_TIME_THRESHOLD = timedelta(seconds=60)

NO_MEETINGS_TITLE = "No upcoming meetings"


class RelevantView(BaseModel):
    """Meetings that matter now, split for display prioritization."""

    model_config = ConfigDict(frozen=True)

    timed: list[CalendarEvent] = Field(default_factory=list)
    all_day: list[CalendarEvent] = Field(default_factory=list)

    @computed_field
    @property
    def combined(self) -> list[CalendarEvent]:
        """Timed meetings first, then all-day events."""
        return [*self.timed, *self.all_day]

    @property
    def event_ids(self) -> list[str]:
        return [event.id for event in self.combined]


def _is_current(event: CalendarEvent, now: datetime) -> bool:
    if event.start_time > now:
        return True
    if event.start_time <= now < event.end_time:
        return True
    if event.is_all_day:
        return event.start_time.astimezone(now.tzinfo).date() >= now.date()
    return False


def classify(
    events: Iterable[CalendarEvent],
    settings: UserSettings,
    dismissed: Collection[str],
    now: datetime,
) -> RelevantView:
    """Build the relevant-now view.

    Args:
        events: Current event snapshot
        settings: Settings snapshot (accepted-only filter)
        dismissed: Event ids the user dismissed
        now: Current time, timezone-aware

    Returns:
        RelevantView with timed meetings capped at 10
    """
    survivors = [
        event
        for event in events
        if event.id not in dismissed
        and _is_current(event, now)
        and (
            not settings.show_only_accepted
            or event.response_status == ResponseStatus.ACCEPTED
        )
    ]
    survivors.sort(key=lambda e: (e.start_time, e.title))

    cutoff = now + VIEW_HORIZON
    all_day = [event for event in survivors if event.is_all_day]
    timed = [
        event
        for event in survivors
        if not event.is_all_day and (event.start_time < cutoff or event.end_time > now)
    ]
    return RelevantView(timed=timed[:MAX_TIMED_MEETINGS], all_day=all_day)


def same_time_group(meetings: list[CalendarEvent]) -> list[CalendarEvent]:
    """Leading meetings starting less than a minute after the first one."""
    if not meetings:
        return []
    first = meetings[0].start_time
    return [
        m for m in meetings if abs(m.start_time - first) < SAME_TIME_THRESHOLD
    ]


def menu_bar_title(view: RelevantView, now: datetime) -> str:
    """Compose the status title for the next meeting(s)."""
    meetings = view.timed
    if not meetings:
        return NO_MEETINGS_TITLE

    group = same_time_group(meetings)
    when = relative_time(meetings[0].start_time, now)
    if len(group) > 1:
        return f"{len(group)} meetings {when}"
    return f"{meetings[0].title} {when}"
