"""Observable state infrastructure.

Provides:
- StateStore: Shared state with subscribe/notify
- StateChange and its subclasses: Typed change notifications
"""

from nevermiss.state.events import (
    AccountsChanged,
    DismissedChanged,
    EventsChanged,
    ReauthenticationRequired,
    SettingsChanged,
    StateChange,
    ViewChanged,
)
from nevermiss.state.store import StateStore

__all__ = [
    # Infrastructure
    "StateStore",
    "StateChange",
    # Change types
    "AccountsChanged",
    "DismissedChanged",
    "EventsChanged",
    "ReauthenticationRequired",
    "SettingsChanged",
    "ViewChanged",
]
