"""Domain models for NeverMiss.

This module exports:
- Account: Connected Google account with token state
- CalendarEvent, Attendee, ConferenceInfo: Normalized meeting records
- ResponseStatus, ConferenceProvider: Enumerations used on events
- UserSettings, SettingsUpdate: Reminder settings snapshot and partial update
"""

from nevermiss.models.account import Account
from nevermiss.models.event import (
    Attendee,
    CalendarEvent,
    ConferenceInfo,
    ConferenceProvider,
    ResponseStatus,
)
from nevermiss.models.settings import SettingsUpdate, UserSettings

__all__ = [
    "Account",
    "Attendee",
    "CalendarEvent",
    "ConferenceInfo",
    "ConferenceProvider",
    "ResponseStatus",
    "SettingsUpdate",
    "UserSettings",
]
