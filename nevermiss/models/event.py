"""Canonical meeting model produced by the event normalizer."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ResponseStatus(str, Enum):
    """The viewer's response to an invitation."""

    NEEDS_ACTION = "needsAction"
    DECLINED = "declined"
    TENTATIVE = "tentative"
    ACCEPTED = "accepted"

    @classmethod
    def parse(cls, raw: str | None) -> "ResponseStatus":
        """Map a raw API value case-insensitively; unknown values need action."""
        lookup = {
            "accepted": cls.ACCEPTED,
            "declined": cls.DECLINED,
            "tentative": cls.TENTATIVE,
        }
        return lookup.get((raw or "").lower(), cls.NEEDS_ACTION)


class ConferenceProvider(str, Enum):
    """Video conferencing provider of a join link."""

    GOOGLE_MEET = "googleMeet"
    ZOOM = "zoom"
    TEAMS = "teams"
    WEBEX = "webex"
    OTHER = "other"


class ConferenceInfo(BaseModel):
    """Detected conference link."""

    model_config = ConfigDict(frozen=True)

    provider: ConferenceProvider
    join_url: str | None = None


class Attendee(BaseModel):
    """One row of an event's attendee list."""

    model_config = ConfigDict(frozen=True)

    email: str = ""
    display_name: str | None = None
    response_status: ResponseStatus = ResponseStatus.NEEDS_ACTION
    is_self: bool = False


class CalendarEvent(BaseModel):
    """A normalized calendar event.

    Rebuilt from scratch on every sync; identity across cycles is the
    id string only.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="<accountId>_<providerEventId>")
    account_id: str
    calendar_id: str
    title: str
    description: str | None = None
    location: str | None = None
    start_time: datetime
    end_time: datetime
    is_all_day: bool = False
    organizer: str | None = None
    attendees: list[Attendee] = Field(default_factory=list)
    response_status: ResponseStatus = ResponseStatus.ACCEPTED
    conference_info: ConferenceInfo | None = None
    html_link: str | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "CalendarEvent":
        if self.end_time < self.start_time:
            raise ValueError("end_time must not precede start_time")
        return self

    @property
    def has_conference_link(self) -> bool:
        return self.conference_info is not None and self.conference_info.join_url is not None

    @property
    def join_url(self) -> str | None:
        return self.conference_info.join_url if self.conference_info else None
