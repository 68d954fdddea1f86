"""Parsing of human-entered event time ranges such as ``"9:00 AM - 5:30 PM"``.

Parsing never raises: malformed input yields ``None`` and the caller decides
whether that is a validation failure or a reason to fall back to date-only
status resolution.
"""

import re
from datetime import date, datetime, time, timedelta

from events.domain.value_objects import TimeRange

_CLOCK_TIME = re.compile(r"^(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s+(?P<marker>AM|PM)$", re.IGNORECASE)


def parse_clock_time(raw: str) -> int | None:
    """Convert ``"H[:MM] AM|PM"`` into minutes since midnight."""
    if not isinstance(raw, str):
        return None

    match = _CLOCK_TIME.match(raw.strip())
    if match is None:
        return None

    hours = int(match["hour"])
    minutes = int(match["minute"] or 0)
    if not 1 <= hours <= 12 or minutes > 59:
        return None

    marker = match["marker"].upper()
    if marker == "PM" and hours < 12:
        hours += 12
    elif marker == "AM" and hours == 12:
        hours = 0

    return hours * 60 + minutes


def parse_time_range(raw: str) -> TimeRange | None:
    """Parse ``"<time> - <time>"`` into a TimeRange, or None if malformed.

    The end is allowed to precede the start; whether that means an overnight
    window or an invalid range depends on the event's dates.
    """
    if not isinstance(raw, str):
        return None

    segments = raw.split("-")
    if len(segments) != 2:
        return None

    start = parse_clock_time(segments[0])
    end = parse_clock_time(segments[1])
    if start is None or end is None:
        return None

    return TimeRange(start_minutes=start, end_minutes=end)


def at_minutes(day: date, minutes: int) -> datetime:
    """Return the naive local instant ``minutes`` after midnight of ``day``."""
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def anchor(time_range: TimeRange, start_date: date, end_date: date | None = None) -> tuple[datetime, datetime]:
    """Pin a daily time range to calendar dates.

    The start minutes are anchored to ``start_date`` and the end minutes to
    ``end_date`` (``start_date`` when absent). An end that is not after the
    start is treated as crossing midnight and moved one day forward.
    """
    starts_at = at_minutes(start_date, time_range.start_minutes)
    ends_at = at_minutes(end_date or start_date, time_range.end_minutes)
    if ends_at <= starts_at:
        ends_at += timedelta(days=1)
    return starts_at, ends_at
