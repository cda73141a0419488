"""Reminder delivery: scheduler and popup collaborator."""

from nevermiss.notifications.popup import (
    ActivePopup,
    InMemoryPopupPresenter,
    PopupPresenter,
)
from nevermiss.notifications.scheduler import (
    NotificationRecord,
    NotificationScheduler,
    NotificationState,
)

__all__ = [
    "ActivePopup",
    "InMemoryPopupPresenter",
    "NotificationRecord",
    "NotificationScheduler",
    "NotificationState",
    "PopupPresenter",
]
