"""Conference-link detection.

Detection runs an ordered list of matchers; the first one that finds a
link wins. Adding a provider means adding a matcher, the pipeline does
not change.
"""

import re
from typing import Any, Protocol

from nevermiss.models.event import ConferenceInfo, ConferenceProvider


class ConferenceMatcher(Protocol):
    """Finds a join link for one provider in a raw event payload."""

    def match(
        self,
        raw: dict[str, Any],
        description: str | None,
        location: str | None,
    ) -> ConferenceInfo | None: ...


class NativeConferenceMatcher:
    """Google Meet: the first video entry point in ``conferenceData``."""

    def match(
        self,
        raw: dict[str, Any],
        description: str | None,
        location: str | None,
    ) -> ConferenceInfo | None:
        conference_data = raw.get("conferenceData")
        if not isinstance(conference_data, dict):
            return None
        entry_points = conference_data.get("entryPoints")
        if not isinstance(entry_points, list):
            return None
        for entry in entry_points:
            if not isinstance(entry, dict):
                continue
            uri = entry.get("uri")
            if entry.get("entryPointType") == "video" and isinstance(uri, str):
                return ConferenceInfo(provider=ConferenceProvider.GOOGLE_MEET, join_url=uri)
        return None


class PatternConferenceMatcher:
    """Regex search over the description, then the location."""

    def __init__(self, provider: ConferenceProvider, pattern: str):
        self.provider = provider
        self._regex = re.compile(pattern, re.IGNORECASE)

    def find(self, text: str | None) -> str | None:
        if not text:
            return None
        found = self._regex.search(text)
        return found.group(0) if found else None

    def match(
        self,
        raw: dict[str, Any],
        description: str | None,
        location: str | None,
    ) -> ConferenceInfo | None:
        url = self.find(description) or self.find(location)
        if url is None:
            return None
        return ConferenceInfo(provider=self.provider, join_url=url)


ZOOM_PATTERN = r"https://[\w.-]*zoom\.us/j/\d+(\?pwd=[\w-]+)?"
TEAMS_PATTERN = r"https://teams\.microsoft\.com/l/meetup-join/[\w%/-]+"
WEBEX_PATTERN = r"https://[\w.-]*webex\.com/[\w/-]+/j\.php\?[\w=&-]+"


def default_matchers() -> list[ConferenceMatcher]:
    """Matchers in priority order: native metadata, Zoom, Teams, Webex."""
    return [
        NativeConferenceMatcher(),
        PatternConferenceMatcher(ConferenceProvider.ZOOM, ZOOM_PATTERN),
        PatternConferenceMatcher(ConferenceProvider.TEAMS, TEAMS_PATTERN),
        PatternConferenceMatcher(ConferenceProvider.WEBEX, WEBEX_PATTERN),
    ]


def detect_conference(
    raw: dict[str, Any],
    description: str | None,
    location: str | None,
    matchers: list[ConferenceMatcher] | None = None,
) -> ConferenceInfo | None:
    """Return the first matcher's result, or None if nothing matches."""
    for matcher in matchers if matchers is not None else default_matchers():
        info = matcher.match(raw, description, location)
        if info is not None:
            return info
    return None
