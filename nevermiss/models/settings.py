"""User-facing reminder settings."""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_REFRESH_INTERVAL = 300
DEFAULT_NOTIFICATION_LEAD_TIME = 300

# Preset choices offered by the settings form, in seconds
REFRESH_INTERVAL_OPTIONS: list[tuple[str, int]] = [
    ("1 minute", 60),
    ("5 minutes", 300),
    ("15 minutes", 900),
]

NOTIFICATION_LEAD_TIME_OPTIONS: list[tuple[str, int]] = [
    ("1 minute before", 60),
    ("2 minutes before", 120),
    ("5 minutes before", 300),
    ("10 minutes before", 600),
    ("15 minutes before", 900),
]


class UserSettings(BaseModel):
    """Immutable settings snapshot consumed by every component each cycle.

    Changing a setting means replacing the snapshot (``model_copy``).
    """

    model_config = ConfigDict(frozen=True)

    refresh_interval: int = Field(
        default=DEFAULT_REFRESH_INTERVAL,
        description="Seconds between calendar syncs",
        ge=30,
        le=3600,
    )
    notification_lead_time: int = Field(
        default=DEFAULT_NOTIFICATION_LEAD_TIME,
        description="Seconds before a meeting starts to show its reminder",
        ge=0,
        le=3600,
    )
    show_only_accepted: bool = Field(
        default=False,
        description="Only show and remind about accepted meetings",
    )
    launch_at_login: bool = Field(default=False)
    show_popup_notifications: bool = Field(default=True)
    play_sound: bool = Field(default=True)

    @property
    def lead_time(self) -> timedelta:
        return timedelta(seconds=self.notification_lead_time)


class SettingsUpdate(BaseModel):
    """Partial settings change; unset fields keep their current value."""

    refresh_interval: int | None = Field(default=None, ge=30, le=3600)
    notification_lead_time: int | None = Field(default=None, ge=0, le=3600)
    show_only_accepted: bool | None = None
    launch_at_login: bool | None = None
    show_popup_notifications: bool | None = None
    play_sound: bool | None = None

    def apply(self, current: UserSettings) -> UserSettings:
        """Return a new snapshot with this update applied."""
        changes = self.model_dump(exclude_none=True)
        return UserSettings.model_validate({**current.model_dump(), **changes})
