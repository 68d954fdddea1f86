"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in events/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from events.domain.value_objects import (
    AttendeeStatus,
    BloodType,
    Capacity,
    Coordinates,
    EventId,
    EventStatus,
    UserId,
)


def normalize_title(title: str) -> str:
    """Key used for case-insensitive whole-title comparison."""
    return title.strip().casefold()


@dataclass(frozen=True)
class Attendee:
    """A single registration of a donor for an event."""

    id: UUID
    donor_id: UserId
    registered_at: datetime
    status: AttendeeStatus = AttendeeStatus.REGISTERED


@dataclass(frozen=True)
class Event:
    """Domain representation of a blood-donation Event."""

    id: EventId
    organizer_id: UserId
    title: str
    organization_name: str
    start_date: date
    end_date: date
    time_range: str
    location: str
    expected_capacity: Capacity
    blood_types_needed: frozenset[BloodType]
    description: str
    contact_email: str
    contact_phone: str
    status: EventStatus
    created_at: datetime
    updated_at: datetime
    coordinates: Coordinates | None = None
    eligibility_requirements: tuple[str, ...] = ()
    attendees: tuple[Attendee, ...] = ()

    @property
    def normalized_title(self) -> str:
        return normalize_title(self.title)

    @property
    def current_attendee_count(self) -> int:
        """Derived from the roster; never stored independently of it."""
        return sum(1 for attendee in self.attendees if attendee.status.holds_seat)

    @property
    def is_full(self) -> bool:
        return self.current_attendee_count >= self.expected_capacity.value

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date
