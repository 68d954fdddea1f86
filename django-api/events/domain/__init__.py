from events.domain.models import Attendee, Event, normalize_title
from events.domain.value_objects import (
    Actor,
    AttendeeStatus,
    BloodType,
    Capacity,
    Coordinates,
    EventId,
    EventStatus,
    Role,
    TimeRange,
    UserId,
)

__all__ = [
    "Event",
    "Attendee",
    "normalize_title",
    "Actor",
    "Role",
    "EventId",
    "UserId",
    "Capacity",
    "BloodType",
    "Coordinates",
    "EventStatus",
    "AttendeeStatus",
    "TimeRange",
]
