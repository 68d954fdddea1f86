"""Derivation of an event's temporal status.

Status is a pure function of (now, start date, end date, time range text),
except for CANCELLED which is set explicitly and never left again.
Callers refresh status lazily on read and persist it only when it changed.
"""

from dataclasses import replace
from datetime import date, datetime, time

from events.domain.models import Event
from events.domain.time_range import anchor, parse_time_range
from events.domain.value_objects import EventStatus


def derive_status(now: datetime, start_date: date, end_date: date | None, time_range: str) -> EventStatus:
    """Compute the status an event scheduled this way has at ``now``."""
    end_date = end_date or start_date
    parsed = parse_time_range(time_range)

    if parsed is None:
        # Date-only granularity when the time text is unusable.
        if now < datetime.combine(start_date, time.min):
            return EventStatus.UPCOMING
        if now > datetime.combine(end_date, time.max):
            return EventStatus.COMPLETED
        return EventStatus.ONGOING

    starts_at, ends_at = anchor(parsed, start_date, end_date)
    if now < starts_at:
        return EventStatus.UPCOMING
    if now <= ends_at:
        return EventStatus.ONGOING
    return EventStatus.COMPLETED


def resolve_status(event: Event, now: datetime) -> EventStatus:
    """Return the status ``event`` should have at ``now``."""
    if event.status is EventStatus.CANCELLED:
        return EventStatus.CANCELLED
    return derive_status(now, event.start_date, event.end_date, event.time_range)


def refresh_status(event: Event, now: datetime) -> tuple[Event, bool]:
    """Return the event with its status re-derived, and whether it changed."""
    status = resolve_status(event, now)
    if status is event.status:
        return event, False
    return replace(event, status=status), True
