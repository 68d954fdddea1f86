"""Attendee roster of a single event.

Records are appended on registration and never removed; cancellation and
attendance are status transitions. The attendee count is always computed
from the records.
"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable
from uuid import uuid4

from events.domain.errors import (
    AlreadyRegisteredError,
    AttendanceAlreadyRecordedError,
    EventFullError,
    NotEligibleForAttendanceError,
    RegistrationAlreadyCancelledError,
    RegistrationNotFoundError,
)
from events.domain.models import Attendee
from events.domain.value_objects import AttendeeStatus, Capacity, UserId


class AttendeeRoster:
    """Ordered registration records of one event."""

    def __init__(self, attendees: Iterable[Attendee] = ()) -> None:
        self._attendees = list(attendees)

    @property
    def attendees(self) -> tuple[Attendee, ...]:
        return tuple(self._attendees)

    @property
    def current_count(self) -> int:
        return sum(1 for attendee in self._attendees if attendee.status.holds_seat)

    def records_for(self, donor_id: UserId) -> list[Attendee]:
        return [attendee for attendee in self._attendees if attendee.donor_id == donor_id]

    def active_record_for(self, donor_id: UserId) -> Attendee | None:
        """Return the donor's non-cancelled record, if any."""
        for attendee in reversed(self._attendees):
            if attendee.donor_id == donor_id and attendee.status.holds_seat:
                return attendee
        return None

    def register(self, donor_id: UserId, *, capacity: Capacity, now: datetime) -> Attendee:
        """Append a registered record for ``donor_id``.

        Raises:
            EventFullError: If every seat is taken.
            AlreadyRegisteredError: If the donor already holds a live record.
        """
        if self.current_count >= capacity.value:
            raise EventFullError()
        if self.active_record_for(donor_id) is not None:
            raise AlreadyRegisteredError()

        attendee = Attendee(id=uuid4(), donor_id=donor_id, registered_at=now)
        self._attendees.append(attendee)
        return attendee

    def cancel(self, donor_id: UserId) -> Attendee:
        """Cancel the donor's live registration.

        Raises:
            RegistrationNotFoundError: If the donor never registered.
            RegistrationAlreadyCancelledError: If all the donor's records are cancelled.
            AttendanceAlreadyRecordedError: If the donor already attended.
        """
        if not self.records_for(donor_id):
            raise RegistrationNotFoundError()

        record = self.active_record_for(donor_id)
        if record is None:
            raise RegistrationAlreadyCancelledError()
        if record.status is AttendeeStatus.ATTENDED:
            raise AttendanceAlreadyRecordedError()
        return self._transition(record, AttendeeStatus.CANCELLED)

    def mark_attended(self, donor_id: UserId) -> Attendee:
        """Record that a registered donor showed up.

        Raises:
            RegistrationNotFoundError: If the donor never registered.
            NotEligibleForAttendanceError: If the donor's latest record is not registered.
        """
        records = self.records_for(donor_id)
        if not records:
            raise RegistrationNotFoundError()

        record = records[-1]
        if record.status is not AttendeeStatus.REGISTERED:
            raise NotEligibleForAttendanceError()
        return self._transition(record, AttendeeStatus.ATTENDED)

    def cancel_all_registered(self) -> list[Attendee]:
        """Cancel every registered record, leaving attended ones alone."""
        return [
            self._transition(attendee, AttendeeStatus.CANCELLED)
            for attendee in list(self._attendees)
            if attendee.status is AttendeeStatus.REGISTERED
        ]

    def _transition(self, record: Attendee, status: AttendeeStatus) -> Attendee:
        updated = replace(record, status=status)
        self._attendees[self._attendees.index(record)] = updated
        return updated
