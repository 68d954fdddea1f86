"""Pytest configuration and shared fixtures."""

from datetime import date, datetime, timedelta
from uuid import uuid4

import pytest
from django.core.cache import caches
from rest_framework.test import APIClient

from events.domain import (
    Actor,
    Attendee,
    AttendeeStatus,
    BloodType,
    Capacity,
    Event,
    EventId,
    EventStatus,
    Role,
    UserId,
)
from events.services.event_service import EventDraft, EventService
from events.stores.memory_store import InMemoryEventStore
from profiles.cache import ProfileStatsCache

EVENT_DAY = date(2025, 3, 1)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 1, 8, 0))


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore(lock_timeout=1.0)


@pytest.fixture
def stats_cache(clock) -> ProfileStatsCache:
    return ProfileStatsCache(caches["default"], ttl=timedelta(minutes=5), clock=clock)


@pytest.fixture
def service(store, clock, stats_cache) -> EventService:
    return EventService(store, clock=clock, stats_cache=stats_cache)


@pytest.fixture
def organizer() -> Actor:
    return Actor(subject_id=UserId("organizer-1"), role=Role.ORGANIZER)


@pytest.fixture
def other_organizer() -> Actor:
    return Actor(subject_id=UserId("organizer-2"), role=Role.ORGANIZER)


@pytest.fixture
def donor() -> Actor:
    return Actor(subject_id=UserId("donor-1"), role=Role.DONOR)


@pytest.fixture
def make_donor():
    def _make(index: int) -> Actor:
        return Actor(subject_id=UserId(f"donor-{index}"), role=Role.DONOR)

    return _make


@pytest.fixture
def make_draft():
    """Factory for a valid single-day draft; keyword overrides replace fields."""

    def _make(**overrides) -> EventDraft:
        fields = {
            "title": "Community Drive",
            "organization_name": "Red Cross Chapter",
            "start_date": EVENT_DAY,
            "time_range": "9:00 AM - 5:00 PM",
            "location": "City Hall",
            "expected_capacity": 2,
            "blood_types_needed": ["O+", "A-"],
            "description": "Monthly community blood drive",
            "contact_email": "Drive@Example.org",
            "contact_phone": "555-0100",
        }
        fields.update(overrides)
        return EventDraft(**fields)

    return _make


@pytest.fixture
def make_event():
    """Factory for domain events built directly, bypassing validation."""

    def _make(**overrides) -> Event:
        fields = {
            "id": EventId(value=uuid4()),
            "organizer_id": UserId("organizer-1"),
            "title": "Community Drive",
            "organization_name": "Red Cross Chapter",
            "start_date": EVENT_DAY,
            "end_date": EVENT_DAY,
            "time_range": "9:00 AM - 5:00 PM",
            "location": "City Hall",
            "expected_capacity": Capacity(10),
            "blood_types_needed": frozenset({BloodType.O_POSITIVE}),
            "description": "Monthly community blood drive",
            "contact_email": "drive@example.org",
            "contact_phone": "555-0100",
            "status": EventStatus.UPCOMING,
            "created_at": datetime(2025, 2, 1, 12, 0),
            "updated_at": datetime(2025, 2, 1, 12, 0),
        }
        fields.update(overrides)
        return Event(**fields)

    return _make


@pytest.fixture
def make_attendee():
    def _make(donor: str, status: AttendeeStatus = AttendeeStatus.REGISTERED, registered_at: datetime | None = None) -> Attendee:
        return Attendee(
            id=uuid4(),
            donor_id=UserId(donor),
            registered_at=registered_at or datetime(2025, 2, 15, 10, 0),
            status=status,
        )

    return _make
