"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from events.domain import Event, EventId, EventStatus, UserId


class EventStore(ABC):
    """Interface for event persistence operations."""

    @abstractmethod
    def list_events(self) -> list[Event]:
        """Return all events ordered by start_date ascending, newest created first on ties."""
        ...

    @abstractmethod
    def list_events_for_organizer(self, organizer_id: UserId) -> list[Event]:
        """Return the organizer's events ordered by start_date descending."""
        ...

    @abstractmethod
    def list_events_for_donor(self, donor_id: UserId) -> list[Event]:
        """Return events the donor has any roster record in, ordered by start_date descending."""
        ...

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def find_by_normalized_title(self, normalized_title: str) -> list[Event]:
        """Return every event whose normalized title equals ``normalized_title``."""
        ...

    @abstractmethod
    def save_event(self, event: Event) -> Event:
        """Insert or update an event together with its roster."""
        ...

    @abstractmethod
    def update_status(self, event_id: EventId, expected: EventStatus, status: EventStatus) -> bool:
        """Set the stored status only if it still equals ``expected``.

        Nothing but the status is written. Returns False if the event is gone
        or its stored status has moved on.
        """
        ...

    @abstractmethod
    def delete_event(self, event_id: EventId) -> bool:
        """Delete an event. Returns False if it did not exist."""
        ...

    @abstractmethod
    def event_lock(self, event_id: EventId) -> AbstractContextManager[None]:
        """Serialize read-modify-write cycles on a single event."""
        ...

    @abstractmethod
    def title_lock(self, normalized_title: str) -> AbstractContextManager[None]:
        """Serialize duplicate-title checks and the insert that follows them."""
        ...
