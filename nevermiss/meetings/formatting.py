"""Human-readable time strings for meeting titles and popups."""

from datetime import datetime


def relative_time(target: datetime, now: datetime) -> str:
    """Return a relative time string like "in 5 min" or "in 2 hr"."""
    seconds = (target - now).total_seconds()
    if seconds <= 0:
        return "now"

    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "in < 1 min"
    if minutes == 1:
        return "in 1 min"
    if minutes < 60:
        return f"in {minutes} min"
    if hours == 1:
        remaining = minutes - 60
        return f"in 1 hr {remaining} min" if remaining > 0 else "in 1 hr"
    if hours < 24:
        return f"in {hours} hr"
    if days == 1:
        return "tomorrow"
    return f"in {days} days"


def clock_time(value: datetime) -> str:
    """Format like "2:00 PM" in local time. Naive values are taken as local."""
    return value.astimezone().strftime("%I:%M %p").lstrip("0")


def time_range(start: datetime, end: datetime) -> str:
    """Format like "2:00 PM - 3:00 PM"."""
    return f"{clock_time(start)} - {clock_time(end)}"


def duration(start: datetime, end: datetime) -> str:
    """Format like "30 minutes", "1 hour" or "1 hr 30 min"."""
    minutes = int((end - start).total_seconds() // 60)
    hours, remaining = divmod(minutes, 60)
    if hours == 0:
        return f"{minutes} minute{'' if minutes == 1 else 's'}"
    if remaining == 0:
        return f"{hours} hour{'' if hours == 1 else 's'}"
    return f"{hours} hr {remaining} min"
