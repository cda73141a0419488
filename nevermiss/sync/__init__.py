"""Calendar sync pipeline.

Provides:
- EventNormalizer: Raw payload -> CalendarEvent
- Conference matchers: Ordered, pluggable join-link detection
- FetchOrchestrator: Concurrent per-account retrieval with failure isolation
"""

from nevermiss.sync.conference import (
    ConferenceMatcher,
    NativeConferenceMatcher,
    PatternConferenceMatcher,
    default_matchers,
    detect_conference,
)
from nevermiss.sync.normalizer import EventNormalizer
from nevermiss.sync.orchestrator import AccountSyncOutcome, FetchOrchestrator, SyncResult

__all__ = [
    "AccountSyncOutcome",
    "ConferenceMatcher",
    "EventNormalizer",
    "FetchOrchestrator",
    "NativeConferenceMatcher",
    "PatternConferenceMatcher",
    "SyncResult",
    "default_matchers",
    "detect_conference",
]
