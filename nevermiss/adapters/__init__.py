"""Adapters for external data sources.

This module provides:
- CalendarAdapter: List calendars and events for one Google account
- CalendarListEntry: Parsed calendar list item
"""

from nevermiss.adapters.calendar_adapter import CalendarAdapter, CalendarListEntry

__all__ = [
    "CalendarAdapter",
    "CalendarListEntry",
]
