"""In-process implementation of the EventStore.

Used by unit tests and anywhere a database is not wanted. Locks are plain
``threading.Lock`` objects keyed by event id or normalized title.
"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator

from events.domain import Event, EventId, EventStatus, UserId
from events.domain.errors import ConcurrentModificationError
from events.stores.interfaces import EventStore


class InMemoryEventStore(EventStore):
    """Dictionary-backed event store."""

    def __init__(self, lock_timeout: float = 5.0) -> None:
        self._events: dict[EventId, Event] = {}
        self._lock_timeout = lock_timeout
        self._guard = threading.Lock()
        self._locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)

    def list_events(self) -> list[Event]:
        events = sorted(self._events.values(), key=lambda e: e.created_at, reverse=True)
        return sorted(events, key=lambda e: e.start_date)

    def list_events_for_organizer(self, organizer_id: UserId) -> list[Event]:
        events = [e for e in self._events.values() if e.organizer_id == organizer_id]
        return sorted(events, key=lambda e: e.start_date, reverse=True)

    def list_events_for_donor(self, donor_id: UserId) -> list[Event]:
        events = [
            e for e in self._events.values()
            if any(attendee.donor_id == donor_id for attendee in e.attendees)
        ]
        return sorted(events, key=lambda e: e.start_date, reverse=True)

    def get_event(self, event_id: EventId) -> Event | None:
        return self._events.get(event_id)

    def find_by_normalized_title(self, normalized_title: str) -> list[Event]:
        return [e for e in self._events.values() if e.normalized_title == normalized_title]

    def save_event(self, event: Event) -> Event:
        with self._guard:
            self._events[event.id] = event
        return event

    def update_status(self, event_id: EventId, expected: EventStatus, status: EventStatus) -> bool:
        with self._guard:
            stored = self._events.get(event_id)
            if stored is None or stored.status is not expected:
                return False
            self._events[event_id] = replace(stored, status=status)
        return True

    def delete_event(self, event_id: EventId) -> bool:
        with self._guard:
            return self._events.pop(event_id, None) is not None

    def event_lock(self, event_id: EventId):
        return self._locked(f"event:{event_id}")

    def title_lock(self, normalized_title: str):
        return self._locked(f"title:{normalized_title}")

    @contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks[key]
        if not lock.acquire(timeout=self._lock_timeout):
            raise ConcurrentModificationError()
        try:
            yield
        finally:
            lock.release()
