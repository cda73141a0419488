"""Typed state-change notifications.

These are published by the StateStore after a mutation:
- AccountsChanged: Account list or token state changed
- EventsChanged: Event snapshot replaced
- SettingsChanged: Settings snapshot replaced
- DismissedChanged: Dismissed set changed
- ViewChanged: Relevant-now view re-derived with a different content
- ReauthenticationRequired: An account needs interactive sign-in
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from nevermiss.clock import local_now
from nevermiss.models.settings import UserSettings


class StateChange(BaseModel):
    """Base class for all state-change notifications.

    Attributes:
        timestamp: When the change was applied
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(
        default_factory=local_now,
        description="When the change was applied",
    )

    @property
    def change_type(self) -> str:
        """Return the change type name (class name)."""
        return self.__class__.__name__


class AccountsChanged(StateChange):
    """Emitted when accounts are added, removed, toggled or refreshed."""

    account_ids: list[str] = Field(default_factory=list)


class EventsChanged(StateChange):
    """Emitted when a sync cycle replaced the event snapshot."""

    event_count: int = Field(description="Number of events in the new snapshot")
    cycle: int | None = Field(default=None, description="Sync cycle number")


class SettingsChanged(StateChange):
    """Emitted when the settings snapshot was replaced."""

    previous: UserSettings
    current: UserSettings


class DismissedChanged(StateChange):
    """Emitted when an event was dismissed or the set was cleared."""

    dismissed_count: int


class ViewChanged(StateChange):
    """Emitted when the relevant-now view content changed."""

    event_ids: list[str] = Field(default_factory=list)


class ReauthenticationRequired(StateChange):
    """Emitted when an account's refresh token was rejected or is missing."""

    account_id: str
    email: str
