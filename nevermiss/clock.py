"""Wall-clock access.

Components take a ``clock`` callable so tests can pin time. The default
returns an aware datetime in the local zone, which keeps "today" for
all-day events aligned with the user's calendar day.
"""

from datetime import datetime


def local_now() -> datetime:
    return datetime.now().astimezone()
