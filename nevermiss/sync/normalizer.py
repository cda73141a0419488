"""Normalization of raw Google Calendar event payloads.

Turns one ``events.list`` item into a CalendarEvent, or skips it when
it is not a meeting or cannot be parsed. Skips are never errors: one
bad item must not spoil the batch.
"""

from datetime import UTC, date, datetime, time, tzinfo
from typing import Any

import structlog
from pydantic import ValidationError

from nevermiss.models.event import Attendee, CalendarEvent, ResponseStatus
from nevermiss.sync.conference import ConferenceMatcher, default_matchers, detect_conference

logger = structlog.get_logger()

# Provider event types that are not meetings, compared without separators
EXCLUDED_EVENT_TYPES = frozenset({"workinglocation", "outofoffice", "focustime"})


def _canonical_type(event_type: str) -> str:
    return "".join(ch for ch in event_type.lower() if ch.isalnum())


class EventNormalizer:
    """Converts raw API payloads into canonical meeting records."""

    def __init__(
        self,
        matchers: list[ConferenceMatcher] | None = None,
        local_tz: tzinfo | None = None,
    ):
        """Initialize the normalizer.

        Args:
            matchers: Conference matchers in priority order
                     (defaults to native, Zoom, Teams, Webex)
            local_tz: Zone for date-only boundaries (defaults to system local)
        """
        self._matchers = matchers if matchers is not None else default_matchers()
        self._local_tz = local_tz

    def normalize(
        self,
        raw: dict[str, Any],
        account_id: str,
        calendar_id: str,
        viewer_email: str,
    ) -> CalendarEvent | None:
        """Normalize one raw event.

        Args:
            raw: Event payload from the events endpoint
            account_id: Owning account id (prefix of the event id)
            calendar_id: Source calendar id
            viewer_email: Account email, used to find the viewer's attendee row

        Returns:
            CalendarEvent, or None if the payload is skipped
        """
        if not isinstance(raw, dict):
            return None

        provider_id = raw.get("id")
        title = raw.get("summary")
        if not isinstance(provider_id, str) or not provider_id:
            return None
        if not isinstance(title, str):
            return None

        event_type = raw.get("eventType")
        if isinstance(event_type, str) and _canonical_type(event_type) in EXCLUDED_EVENT_TYPES:
            logger.debug("skipping non-meeting event", title=title, event_type=event_type)
            return None

        start = self._parse_boundary(raw.get("start"))
        end = self._parse_boundary(raw.get("end"))
        if start is None or end is None:
            logger.debug("skipping event without usable times", title=title)
            return None
        start_time, is_all_day = start
        end_time, _ = end

        description = raw.get("description") if isinstance(raw.get("description"), str) else None
        location = raw.get("location") if isinstance(raw.get("location"), str) else None
        attendees = self._parse_attendees(raw.get("attendees"), viewer_email)

        try:
            return CalendarEvent(
                id=f"{account_id}_{provider_id}",
                account_id=account_id,
                calendar_id=calendar_id,
                title=title,
                description=description,
                location=location,
                start_time=start_time,
                end_time=end_time,
                is_all_day=is_all_day,
                organizer=self._parse_organizer(raw.get("organizer")),
                attendees=attendees,
                response_status=self._resolve_response(attendees),
                conference_info=detect_conference(raw, description, location, self._matchers),
                html_link=raw.get("htmlLink") if isinstance(raw.get("htmlLink"), str) else None,
            )
        except ValidationError as e:
            logger.debug("skipping invalid event", title=title, error=str(e))
            return None

    def _parse_boundary(self, boundary: Any) -> tuple[datetime, bool] | None:
        """Parse a start/end object into (instant, is_date_only)."""
        if not isinstance(boundary, dict):
            return None
        try:
            if isinstance(boundary.get("dateTime"), str):
                value = datetime.fromisoformat(boundary["dateTime"])
                if value.tzinfo is None:
                    value = value.replace(tzinfo=UTC)
                return value, False
            if isinstance(boundary.get("date"), str):
                day = date.fromisoformat(boundary["date"])
                return self._local_midnight(day), True
        except ValueError:
            return None
        return None

    def _local_midnight(self, day: date) -> datetime:
        if self._local_tz is not None:
            return datetime.combine(day, time.min, tzinfo=self._local_tz)
        return datetime.combine(day, time.min).astimezone()

    @staticmethod
    def _parse_organizer(organizer: Any) -> str | None:
        if not isinstance(organizer, dict):
            return None
        return organizer.get("displayName") or organizer.get("email") or None

    @staticmethod
    def _parse_attendees(rows: Any, viewer_email: str) -> list[Attendee]:
        if not isinstance(rows, list):
            return []
        viewer = viewer_email.lower()
        attendees = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            email = row.get("email") if isinstance(row.get("email"), str) else ""
            name = row.get("displayName") if isinstance(row.get("displayName"), str) else None
            explicit_self = row.get("self")
            is_self = (
                explicit_self
                if isinstance(explicit_self, bool)
                else bool(email) and email.lower() == viewer
            )
            attendees.append(
                Attendee(
                    email=email,
                    display_name=name,
                    response_status=ResponseStatus.parse(row.get("responseStatus")),
                    is_self=is_self,
                )
            )
        return attendees

    @staticmethod
    def _resolve_response(attendees: list[Attendee]) -> ResponseStatus:
        # No attendees: the viewer created the event for themselves
        if not attendees:
            return ResponseStatus.ACCEPTED
        for attendee in attendees:
            if attendee.is_self:
                return attendee.response_status
        return ResponseStatus.NEEDS_ACTION
