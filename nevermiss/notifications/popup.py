"""Popup collaborator for meeting reminders."""

from collections import deque
from datetime import datetime
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel

from nevermiss.clock import local_now
from nevermiss.models.event import CalendarEvent
from nevermiss.models.settings import UserSettings

logger = structlog.get_logger()

# Recently shown event ids kept for inspection
HISTORY_SIZE = 50


@runtime_checkable
class PopupPresenter(Protocol):
    """Shows and hides the reminder popup. Fire-and-forget."""

    def show(self, event: CalendarEvent, settings: UserSettings) -> None: ...

    def close(self) -> None: ...


class ActivePopup(BaseModel):
    """The reminder currently on screen."""

    event: CalendarEvent
    shown_at: datetime
    play_sound: bool


class InMemoryPopupPresenter:
    """Keeps the active reminder for a UI shell to poll via the API.

    A new reminder replaces the one on screen.
    """

    def __init__(self):
        self._active: ActivePopup | None = None
        self.history: deque[str] = deque(maxlen=HISTORY_SIZE)

    @property
    def active(self) -> ActivePopup | None:
        return self._active

    def show(self, event: CalendarEvent, settings: UserSettings) -> None:
        self._active = ActivePopup(
            event=event,
            shown_at=local_now(),
            play_sound=settings.play_sound,
        )
        self.history.append(event.id)
        logger.info(
            "meeting reminder shown",
            event_id=event.id,
            title=event.title,
            start=event.start_time.isoformat(),
            join_url=event.join_url,
        )

    def close(self) -> None:
        if self._active is not None:
            logger.info("meeting reminder closed", event_id=self._active.event.id)
        self._active = None
