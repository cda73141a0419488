"""Tests for CalendarEvent and ResponseStatus."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from nevermiss.models.event import (
    CalendarEvent,
    ConferenceInfo,
    ConferenceProvider,
    ResponseStatus,
)

START = datetime(2025, 3, 10, 10, 0, tzinfo=UTC)


def _event(**overrides) -> CalendarEvent:
    data = {
        "id": "acct_1",
        "account_id": "acct",
        "calendar_id": "primary",
        "title": "Review",
        "start_time": START,
        "end_time": START + timedelta(hours=1),
    }
    data.update(overrides)
    return CalendarEvent(**data)


class TestCalendarEvent:
    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            _event(end_time=START - timedelta(minutes=1))

    def test_zero_length_allowed(self):
        assert _event(end_time=START).end_time == START

    def test_default_response_is_accepted(self):
        assert _event().response_status == ResponseStatus.ACCEPTED

    def test_join_url(self):
        info = ConferenceInfo(provider=ConferenceProvider.ZOOM, join_url="https://zoom.us/j/1")
        event = _event(conference_info=info)
        assert event.has_conference_link is True
        assert event.join_url == "https://zoom.us/j/1"

    def test_no_conference(self):
        event = _event()
        assert event.has_conference_link is False
        assert event.join_url is None


class TestResponseStatusParse:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("accepted", ResponseStatus.ACCEPTED),
            ("ACCEPTED", ResponseStatus.ACCEPTED),
            ("declined", ResponseStatus.DECLINED),
            ("tentative", ResponseStatus.TENTATIVE),
            ("needsAction", ResponseStatus.NEEDS_ACTION),
            ("something-else", ResponseStatus.NEEDS_ACTION),
            (None, ResponseStatus.NEEDS_ACTION),
        ],
    )
    def test_parse(self, raw, expected):
        assert ResponseStatus.parse(raw) == expected
