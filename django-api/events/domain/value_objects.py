"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from enum import Enum
from typing import Self
from uuid import UUID


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class UserId:
    """Opaque identifier of a donor or organizer, issued by the identity provider."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("User id cannot be empty")

    def __str__(self) -> str:
        return self.value


class Role(Enum):
    """Role an authenticated subject acts in."""

    DONOR = "donor"
    ORGANIZER = "organizer"


@dataclass(frozen=True)
class Actor:
    """The authenticated subject performing an operation."""

    subject_id: UserId
    role: Role

    @property
    def is_donor(self) -> bool:
        return self.role is Role.DONOR

    @property
    def is_organizer(self) -> bool:
        return self.role is Role.ORGANIZER


@dataclass(frozen=True)
class Capacity:
    """Positive integer representing how many donors an event can take."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError("Capacity must be an integer")
        if self.value <= 0:
            raise ValueError("Capacity must be greater than zero")


class BloodType(Enum):
    """ABO/Rh blood groups an event can ask for."""

    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"
    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"


class EventStatus(Enum):
    """Temporal status of an event. Only CANCELLED is ever set explicitly."""

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in (EventStatus.UPCOMING, EventStatus.ONGOING)

    @property
    def is_closed(self) -> bool:
        return self in (EventStatus.COMPLETED, EventStatus.CANCELLED)


class AttendeeStatus(Enum):
    """Status of a single registration record."""

    REGISTERED = "registered"
    ATTENDED = "attended"
    CANCELLED = "cancelled"

    @property
    def holds_seat(self) -> bool:
        return self is not AttendeeStatus.CANCELLED


@dataclass(frozen=True)
class TimeRange:
    """Start and end of a daily window, in minutes since local midnight."""

    start_minutes: int
    end_minutes: int

    def __post_init__(self) -> None:
        for minutes in (self.start_minutes, self.end_minutes):
            if not 0 <= minutes < 24 * 60:
                raise ValueError("Minutes must be within a single day")


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair used for map display."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90 <= self.lat <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        if not -180 <= self.lng <= 180:
            raise ValueError("Longitude must be between -180 and 180")
