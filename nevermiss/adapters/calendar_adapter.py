"""Google Calendar adapter for calendar listing and event retrieval.

Uses the Google Calendar API with a user's OAuth access token. One
adapter instance serves one account for one sync attempt.
"""

import asyncio
from datetime import UTC, datetime

import httplib2
import structlog
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pydantic import BaseModel, Field, ValidationError

from nevermiss.errors import (
    CalendarError,
    CalendarRequestError,
    InvalidCalendarResponseError,
    NoAccessTokenError,
    UnauthorizedError,
)

logger = structlog.get_logger()

# Raw events requested per calendar
MAX_EVENTS_PER_CALENDAR = 50


class CalendarListEntry(BaseModel):
    """One entry of the user's calendar list."""

    id: str
    summary: str
    primary: bool = False
    selected: bool = True
    access_role: str = Field(default="reader")

    @property
    def is_owned(self) -> bool:
        return self.access_role == "owner"


def rfc3339(value: datetime) -> str:
    """Format an instant as RFC3339 in UTC, second precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class CalendarAdapter:
    """Adapter for Google Calendar read operations.

    Translates API failures into the CalendarError hierarchy so the
    orchestrator can tell an expired token (401) from other failures.
    """

    def __init__(self, access_token: str | None):
        """Initialize with a bearer token.

        Args:
            access_token: OAuth access token for the account
        """
        self._access_token = access_token
        self._service = None

    def _get_service(self):
        """Get or create Calendar API service."""
        if self._service is None:
            if not self._access_token:
                raise NoAccessTokenError()
            # Bearer-only credentials: refresh is owned by TokenManager
            creds = Credentials(token=self._access_token)
            self._service = build(
                "calendar", "v3", credentials=creds, cache_discovery=False
            )
        return self._service

    async def _execute(self, request_factory, operation: str) -> dict:
        """Run a blocking API request off the event loop.

        Args:
            request_factory: Callable building the googleapiclient request
            operation: Name used in error messages and logs

        Returns:
            Decoded response body
        """
        service = self._get_service()

        def _run():
            return request_factory(service).execute()

        try:
            # Use asyncio.to_thread for non-blocking I/O
            result = await asyncio.to_thread(_run)
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            if status == 401:
                raise UnauthorizedError() from e
            raise CalendarRequestError(int(status or 0)) from e
        except RefreshError as e:
            # The bearer-only credentials cannot refresh; the API said 401
            raise UnauthorizedError() from e
        except ValueError as e:
            raise InvalidCalendarResponseError(f"Malformed {operation} response") from e
        except (OSError, httplib2.HttpLib2Error) as e:
            raise CalendarError(f"{operation} request failed: {e}") from e

        if not isinstance(result, dict):
            raise InvalidCalendarResponseError(f"Invalid {operation} response")
        return result

    async def list_calendars(self) -> list[CalendarListEntry]:
        """List the user's calendars.

        Returns:
            Calendar list entries; malformed items are skipped

        Raises:
            UnauthorizedError: Access token rejected
            CalendarError: Any other failure
        """
        result = await self._execute(
            lambda service: service.calendarList().list(), "calendar list"
        )
        items = result.get("items")
        if not isinstance(items, list):
            raise InvalidCalendarResponseError("Invalid calendar list response")

        entries = []
        for item in items:
            if not isinstance(item, dict) or not isinstance(item.get("id"), str):
                logger.debug("skipping malformed calendar list item")
                continue
            try:
                entry = CalendarListEntry(
                    id=item["id"],
                    summary=item.get("summary") or item["id"],
                    primary=bool(item.get("primary", False)),
                    selected=bool(item.get("selected", True)),
                    access_role=item.get("accessRole") or "reader",
                )
            except ValidationError as e:
                logger.debug(
                    "skipping invalid calendar list item",
                    calendar_id=item["id"],
                    error=str(e),
                )
                continue
            entries.append(entry)
        return entries

    async def list_events(
        self,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        max_results: int = MAX_EVENTS_PER_CALENDAR,
    ) -> list[dict]:
        """List raw events in a time window.

        Recurring events are expanded into single instances and
        ordered by start time.

        Args:
            calendar_id: Calendar ID
            time_min: Start of time window
            time_max: End of time window
            max_results: Maximum events to return (default 50)

        Returns:
            Raw event payloads as returned by the API
        """
        result = await self._execute(
            lambda service: service.events().list(
                calendarId=calendar_id,
                timeMin=rfc3339(time_min),
                timeMax=rfc3339(time_max),
                singleEvents=True,
                orderBy="startTime",
                maxResults=max_results,
            ),
            "events",
        )
        items = result.get("items")
        if not isinstance(items, list):
            raise InvalidCalendarResponseError("Invalid events response")
        return items
