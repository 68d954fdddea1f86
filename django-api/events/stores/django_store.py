"""Django ORM implementation of the EventStore."""

import hashlib
import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from django.conf import settings
from django.db import OperationalError, connection, transaction
from django.db.models import F

from events import models as orm
from events.domain import (
    Attendee,
    AttendeeStatus,
    BloodType,
    Capacity,
    Coordinates,
    Event,
    EventId,
    EventStatus,
    UserId,
)
from events.domain.errors import ConcurrentModificationError
from events.stores.interfaces import EventStore

logger = logging.getLogger(__name__)

_LOCK_POLL_SECONDS = 0.05


class DjangoEventStore(EventStore):
    """Relational event store using Django ORM."""

    def __init__(self, lock_timeout: float | None = None) -> None:
        self._lock_timeout = lock_timeout or settings.EVENT_LOCK_TIMEOUT_SECONDS

    def list_events(self) -> list[Event]:
        return self._to_domain_list(orm.Event.objects.order_by("start_date", "-created_at"))

    def list_events_for_organizer(self, organizer_id: UserId) -> list[Event]:
        queryset = orm.Event.objects.filter(organizer_id=organizer_id.value).order_by("-start_date")
        return self._to_domain_list(queryset)

    def list_events_for_donor(self, donor_id: UserId) -> list[Event]:
        queryset = (
            orm.Event.objects.filter(attendees__donor_id=donor_id.value)
            .distinct()
            .order_by("-start_date")
        )
        return self._to_domain_list(queryset)

    def get_event(self, event_id: EventId) -> Event | None:
        row = orm.Event.objects.prefetch_related("attendees").filter(pk=event_id.value).first()
        return _to_domain(row) if row is not None else None

    def find_by_normalized_title(self, normalized_title: str) -> list[Event]:
        return self._to_domain_list(orm.Event.objects.filter(normalized_title=normalized_title))

    @transaction.atomic
    def save_event(self, event: Event) -> Event:
        row, _ = orm.Event.objects.update_or_create(
            pk=event.id.value,
            defaults={
                "organizer_id": event.organizer_id.value,
                "title": event.title,
                "normalized_title": event.normalized_title,
                "organization_name": event.organization_name,
                "start_date": event.start_date,
                "end_date": event.end_date,
                "time_range": event.time_range,
                "location": event.location,
                "latitude": event.coordinates.lat if event.coordinates else None,
                "longitude": event.coordinates.lng if event.coordinates else None,
                "expected_capacity": event.expected_capacity.value,
                "current_attendee_count": event.current_attendee_count,
                "blood_types_needed": sorted(blood_type.value for blood_type in event.blood_types_needed),
                "eligibility_requirements": list(event.eligibility_requirements),
                "description": event.description,
                "contact_email": event.contact_email,
                "contact_phone": event.contact_phone,
                "status": event.status.value,
                "created_at": event.created_at,
                "updated_at": event.updated_at,
            },
        )

        existing = {attendee.id: attendee for attendee in row.attendees.all()}
        new_rows = []
        for position, attendee in enumerate(event.attendees):
            stored = existing.get(attendee.id)
            if stored is None:
                new_rows.append(
                    orm.Attendee(
                        id=attendee.id,
                        event=row,
                        donor_id=attendee.donor_id.value,
                        position=position,
                        registered_at=attendee.registered_at,
                        status=attendee.status.value,
                    )
                )
            elif stored.status != attendee.status.value:
                stored.status = attendee.status.value
                stored.save(update_fields=["status"])
        # Status transitions are written before inserts so the partial unique
        # constraint never sees two live records for one donor.
        for new_row in new_rows:
            new_row.save(force_insert=True)

        return event

    def update_status(self, event_id: EventId, expected: EventStatus, status: EventStatus) -> bool:
        updated = orm.Event.objects.filter(pk=event_id.value, status=expected.value).update(status=status.value)
        return updated > 0

    def delete_event(self, event_id: EventId) -> bool:
        deleted, _ = orm.Event.objects.filter(pk=event_id.value).delete()
        return deleted > 0

    @contextmanager
    def event_lock(self, event_id: EventId) -> Iterator[None]:
        with transaction.atomic():
            self._acquire(
                lambda: _lock_rows(orm.Event.objects.filter(pk=event_id.value), "status"),
                f"event {event_id}",
            )
            yield

    @contextmanager
    def title_lock(self, normalized_title: str) -> Iterator[None]:
        key = title_lock_key(normalized_title)

        def lock() -> None:
            orm.TitleLock.objects.get_or_create(key=key)
            _lock_rows(orm.TitleLock.objects.filter(pk=key), "key")

        with transaction.atomic():
            self._acquire(lock, f"title {normalized_title!r}")
            yield

    def _acquire(self, lock: Callable[[], None], name: str) -> None:
        """Run ``lock`` in a savepoint, retrying while the database reports contention.

        Raises:
            ConcurrentModificationError: If the lock is not taken within the timeout.
        """
        deadline = time.monotonic() + self._lock_timeout
        while True:
            try:
                with transaction.atomic():
                    lock()
                return
            except OperationalError:
                if time.monotonic() >= deadline:
                    logger.warning("Timed out waiting for lock on %s", name)
                    raise ConcurrentModificationError()
                time.sleep(_LOCK_POLL_SECONDS)

    def _to_domain_list(self, queryset) -> list[Event]:
        return [_to_domain(row) for row in queryset.prefetch_related("attendees")]


def title_lock_key(normalized_title: str) -> str:
    return hashlib.sha256(normalized_title.encode("utf-8")).hexdigest()


def _lock_rows(queryset, field: str) -> None:
    # Locks are held until the enclosing transaction commits. Contention
    # surfaces as OperationalError so the caller can retry until its deadline.
    if connection.features.has_select_for_update:
        nowait = connection.features.has_select_for_update_nowait
        list(queryset.select_for_update(nowait=nowait).values_list("pk", flat=True))
    else:
        # SQLite has no row locks; a no-op write takes the database write lock.
        queryset.update(**{field: F(field)})


def _to_domain(row: orm.Event) -> Event:
    coordinates = None
    if row.latitude is not None and row.longitude is not None:
        coordinates = Coordinates(lat=row.latitude, lng=row.longitude)

    return Event(
        id=EventId(value=row.id),
        organizer_id=UserId(row.organizer_id),
        title=row.title,
        organization_name=row.organization_name,
        start_date=row.start_date,
        end_date=row.end_date,
        time_range=row.time_range,
        location=row.location,
        expected_capacity=Capacity(row.expected_capacity),
        blood_types_needed=frozenset(BloodType(value) for value in row.blood_types_needed),
        description=row.description,
        contact_email=row.contact_email,
        contact_phone=row.contact_phone,
        status=EventStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
        coordinates=coordinates,
        eligibility_requirements=tuple(row.eligibility_requirements),
        attendees=tuple(
            Attendee(
                id=attendee.id,
                donor_id=UserId(attendee.donor_id),
                registered_at=attendee.registered_at,
                status=AttendeeStatus(attendee.status),
            )
            for attendee in row.attendees.all()
        ),
    )
