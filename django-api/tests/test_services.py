"""Unit tests for the event service.

Exercises the service against the in-memory store with a controllable clock.
Run with: pytest tests/test_services.py -v
"""

import threading
from datetime import date, datetime, timedelta

import pytest

from events.domain import AttendeeStatus, BloodType, EventStatus, Role
from events.domain.errors import (
    AlreadyRegisteredError,
    AttendanceAlreadyRecordedError,
    DuplicateTitleError,
    ErrorCode,
    EventClosedError,
    EventFullError,
    EventNotFoundError,
    InvalidDateRangeError,
    InvalidEventIdError,
    InvalidTimeRangeError,
    MissingFieldError,
    NotEligibleForAttendanceError,
    NotEventOwnerError,
    RegistrationAlreadyCancelledError,
    RegistrationNotFoundError,
    RoleNotPermittedError,
    StartDateInPastError,
    ValidationError,
)
from events.services.event_service import EventDraft, EventFilters, EventService
from events.stores.memory_store import InMemoryEventStore

EVENT_DAY = date(2025, 3, 1)


def _id(event) -> str:
    return str(event.id)


class ReadHookStore(InMemoryEventStore):
    """Runs a callback right after the next get_event has taken its snapshot."""

    def __init__(self) -> None:
        super().__init__(lock_timeout=1.0)
        self.after_next_read = None

    def get_event(self, event_id):
        event = super().get_event(event_id)
        callback, self.after_next_read = self.after_next_read, None
        if callback is not None:
            callback()
        return event


class TestCreateEvent:
    """Tests for EventService.create_event."""

    def test_creates_upcoming_event(self, service, store, organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        assert event.status is EventStatus.UPCOMING
        assert event.organizer_id == organizer.subject_id
        assert event.end_date == EVENT_DAY
        assert event.current_attendee_count == 0
        assert event.blood_types_needed == frozenset({BloodType.O_POSITIVE, BloodType.A_NEGATIVE})
        assert event.contact_email == "drive@example.org"
        assert store.get_event(event.id) == event

    def test_status_is_derived_at_creation(self, service, clock, organizer, make_draft):
        clock.set(datetime(2025, 3, 1, 10, 0))

        event = service.create_event(organizer, make_draft())

        assert event.status is EventStatus.ONGOING

    def test_donor_cannot_create(self, service, donor, make_draft):
        with pytest.raises(RoleNotPermittedError):
            service.create_event(donor, make_draft())

    @pytest.mark.parametrize(
        "field",
        [
            "title",
            "organization_name",
            "start_date",
            "time_range",
            "location",
            "expected_capacity",
            "description",
            "contact_email",
            "contact_phone",
        ],
    )
    def test_missing_required_field(self, service, organizer, make_draft, field):
        with pytest.raises(MissingFieldError) as exc_info:
            service.create_event(organizer, make_draft(**{field: None}))

        assert exc_info.value.field == field

    def test_blank_title_is_missing(self, service, organizer, make_draft):
        with pytest.raises(MissingFieldError):
            service.create_event(organizer, make_draft(title="   "))

    @pytest.mark.parametrize("capacity", [0, -5])
    def test_capacity_must_be_positive(self, service, organizer, make_draft, capacity):
        with pytest.raises(ValidationError) as exc_info:
            service.create_event(organizer, make_draft(expected_capacity=capacity))

        assert exc_info.value.field == "expected_capacity"

    @pytest.mark.parametrize("blood_types", [[], ["Z+"]])
    def test_blood_types_must_be_known_and_non_empty(self, service, organizer, make_draft, blood_types):
        with pytest.raises(ValidationError) as exc_info:
            service.create_event(organizer, make_draft(blood_types_needed=blood_types))

        assert exc_info.value.field == "blood_types_needed"

    def test_invalid_contact_email(self, service, organizer, make_draft):
        with pytest.raises(ValidationError) as exc_info:
            service.create_event(organizer, make_draft(contact_email="not-an-email"))

        assert exc_info.value.field == "contact_email"

    def test_end_date_before_start_date(self, service, organizer, make_draft):
        with pytest.raises(InvalidDateRangeError):
            service.create_event(organizer, make_draft(end_date=EVENT_DAY - timedelta(days=1)))

    def test_unparseable_time_range(self, service, organizer, make_draft):
        with pytest.raises(InvalidTimeRangeError) as exc_info:
            service.create_event(organizer, make_draft(time_range="morning"))

        assert exc_info.value.code is ErrorCode.INVALID_TIME_RANGE

    @pytest.mark.parametrize("time_range", ["5:00 PM - 9:00 AM", "9:00 AM - 9:00 AM"])
    def test_single_day_end_must_follow_start(self, service, organizer, make_draft, time_range):
        with pytest.raises(InvalidTimeRangeError) as exc_info:
            service.create_event(organizer, make_draft(time_range=time_range))

        assert exc_info.value.message == "End time must be after start time"

    def test_overnight_event_across_two_dates(self, service, organizer, make_draft):
        event = service.create_event(
            organizer,
            make_draft(time_range="10:00 PM - 2:00 AM", end_date=EVENT_DAY + timedelta(days=1)),
        )

        assert event.end_date == date(2025, 3, 2)

    def test_start_date_in_past(self, service, organizer, make_draft):
        with pytest.raises(StartDateInPastError):
            service.create_event(organizer, make_draft(start_date=EVENT_DAY - timedelta(days=1)))

    def test_keeps_optional_details(self, service, organizer, make_draft):
        event = service.create_event(
            organizer,
            make_draft(latitude=40.7, longitude=-74.0, eligibility_requirements=["Age 17+", " ", "Weight 110 lb+"]),
        )

        assert event.coordinates.lat == 40.7
        assert event.eligibility_requirements == ("Age 17+", "Weight 110 lb+")

    def test_coordinates_need_both_values(self, service, organizer, make_draft):
        with pytest.raises(ValidationError) as exc_info:
            service.create_event(organizer, make_draft(latitude=40.7))

        assert exc_info.value.field == "coordinates"


class TestDuplicateTitles:
    """Tests for title uniqueness among active events."""

    def test_rejects_active_duplicate_ignoring_case(self, service, organizer, other_organizer, make_draft):
        service.create_event(organizer, make_draft())

        with pytest.raises(DuplicateTitleError):
            service.create_event(other_organizer, make_draft(title="  community DRIVE "))

    def test_allows_reuse_after_completion(self, service, clock, organizer, make_draft):
        service.create_event(organizer, make_draft())
        clock.set(datetime(2025, 3, 1, 18, 0))

        event = service.create_event(organizer, make_draft(start_date=EVENT_DAY + timedelta(days=7)))

        assert event.status is EventStatus.UPCOMING

    def test_allows_reuse_after_cancellation(self, service, organizer, make_draft):
        first = service.create_event(organizer, make_draft())
        service.cancel_event(organizer, _id(first))

        second = service.create_event(organizer, make_draft())

        assert second.id != first.id


class TestGetEvent:
    """Tests for EventService.get_event."""

    def test_invalid_id(self, service):
        with pytest.raises(InvalidEventIdError):
            service.get_event("not-a-uuid")

    def test_unknown_id(self, service):
        with pytest.raises(EventNotFoundError):
            service.get_event("0b5c6f0e-6a43-4c8e-9d5c-4f2f5d3c1a10")

    def test_refreshed_status_is_persisted(self, service, store, clock, organizer, make_draft):
        event = service.create_event(organizer, make_draft())
        clock.set(datetime(2025, 3, 1, 10, 0))

        fetched = service.get_event(_id(event))

        assert fetched.status is EventStatus.ONGOING
        assert store.get_event(event.id).status is EventStatus.ONGOING

    def test_cancel_between_read_and_refresh_is_kept(self, clock, stats_cache, organizer, donor, make_draft):
        """A reader holding a pre-cancel snapshot must not resurrect the event."""
        store = ReadHookStore()
        service = EventService(store, clock=clock, stats_cache=stats_cache)
        event = service.create_event(organizer, make_draft())
        service.register(donor, _id(event))
        clock.set(datetime(2025, 3, 1, 10, 0))
        store.after_next_read = lambda: service.cancel_event(organizer, _id(event))

        fetched = service.get_event(_id(event))

        stored = store.get_event(event.id)
        assert fetched.status is EventStatus.CANCELLED
        assert stored.status is EventStatus.CANCELLED
        assert [a.status for a in stored.attendees] == [AttendeeStatus.CANCELLED]

    def test_registration_between_read_and_refresh_is_kept(self, clock, stats_cache, organizer, donor, make_draft):
        store = ReadHookStore()
        service = EventService(store, clock=clock, stats_cache=stats_cache)
        event = service.create_event(organizer, make_draft())
        clock.set(datetime(2025, 3, 1, 10, 0))
        store.after_next_read = lambda: service.register(donor, _id(event))

        fetched = service.get_event(_id(event))

        assert fetched.current_attendee_count == 1
        assert store.get_event(event.id).current_attendee_count == 1


class TestUpdateEvent:
    """Tests for EventService.update_event."""

    def test_partial_update_keeps_other_fields(self, service, organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        updated = service.update_event(organizer, _id(event), EventDraft(location="Library", expected_capacity=5))

        assert updated.location == "Library"
        assert updated.expected_capacity.value == 5
        assert updated.title == event.title
        assert updated.time_range == event.time_range

    def test_only_owner_may_update(self, service, organizer, other_organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        with pytest.raises(NotEventOwnerError):
            service.update_event(other_organizer, _id(event), EventDraft(location="Library"))

    def test_donor_may_not_update(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())

        with pytest.raises(RoleNotPermittedError):
            service.update_event(donor, _id(event), EventDraft(location="Library"))

    def test_closed_events_are_immutable(self, service, clock, organizer, make_draft):
        event = service.create_event(organizer, make_draft())
        clock.set(datetime(2025, 3, 1, 18, 0))

        with pytest.raises(EventClosedError) as exc_info:
            service.update_event(organizer, _id(event), EventDraft(location="Library"))

        assert exc_info.value.message == "Cannot update completed event"

    def test_rejects_invalid_schedule(self, service, organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        with pytest.raises(InvalidTimeRangeError):
            service.update_event(organizer, _id(event), EventDraft(time_range="5:00 PM - 9:00 AM"))

    def test_moving_start_extends_end_date(self, service, organizer, make_draft):
        event = service.create_event(organizer, make_draft())
        new_day = EVENT_DAY + timedelta(days=3)

        updated = service.update_event(organizer, _id(event), EventDraft(start_date=new_day))

        assert updated.start_date == new_day
        assert updated.end_date == new_day

    def test_rejects_start_in_past(self, service, organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        with pytest.raises(StartDateInPastError):
            service.update_event(organizer, _id(event), EventDraft(start_date=EVENT_DAY - timedelta(days=1)))

    def test_capacity_cannot_drop_below_registrations(self, service, organizer, make_donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.register(make_donor(1), _id(event))
        service.register(make_donor(2), _id(event))

        with pytest.raises(ValidationError) as exc_info:
            service.update_event(organizer, _id(event), EventDraft(expected_capacity=1))

        assert exc_info.value.field == "expected_capacity"

    def test_rejects_title_of_other_active_event(self, service, organizer, make_draft):
        service.create_event(organizer, make_draft(title="Spring Drive"))
        event = service.create_event(organizer, make_draft())

        with pytest.raises(DuplicateTitleError):
            service.update_event(organizer, _id(event), EventDraft(title="SPRING DRIVE"))

    def test_recasing_own_title_is_allowed(self, service, organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        updated = service.update_event(organizer, _id(event), EventDraft(title="COMMUNITY DRIVE"))

        assert updated.title == "COMMUNITY DRIVE"

    def test_blank_field_is_missing(self, service, organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        with pytest.raises(MissingFieldError):
            service.update_event(organizer, _id(event), EventDraft(location=""))


class TestCancelEvent:
    """Tests for EventService.cancel_event."""

    def test_cancels_registered_and_keeps_attended(self, service, organizer, make_donor, make_draft):
        event = service.create_event(organizer, make_draft(expected_capacity=5))
        for index in (1, 2):
            service.register(make_donor(index), _id(event))
        service.mark_attended(organizer, _id(event), "donor-2")

        cancelled = service.cancel_event(organizer, _id(event))

        assert cancelled.status is EventStatus.CANCELLED
        statuses = {a.donor_id.value: a.status for a in cancelled.attendees}
        assert statuses == {"donor-1": AttendeeStatus.CANCELLED, "donor-2": AttendeeStatus.ATTENDED}
        assert cancelled.current_attendee_count == 1

    def test_already_cancelled(self, service, organizer, make_draft):
        event = service.create_event(organizer, make_draft())
        service.cancel_event(organizer, _id(event))

        with pytest.raises(EventClosedError) as exc_info:
            service.cancel_event(organizer, _id(event))

        assert exc_info.value.message == "Event is already cancelled"

    def test_completed_event_cannot_be_cancelled(self, service, clock, organizer, make_draft):
        event = service.create_event(organizer, make_draft())
        clock.set(datetime(2025, 3, 1, 18, 0))

        with pytest.raises(EventClosedError) as exc_info:
            service.cancel_event(organizer, _id(event))

        assert exc_info.value.message == "Cannot cancel an event that is completed"

    def test_cancellation_survives_the_event_window(self, service, clock, organizer, make_draft):
        event = service.create_event(organizer, make_draft())
        service.cancel_event(organizer, _id(event))

        clock.set(datetime(2025, 3, 1, 10, 0))

        assert service.get_event(_id(event)).status is EventStatus.CANCELLED

    def test_only_owner_may_cancel(self, service, organizer, other_organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        with pytest.raises(NotEventOwnerError):
            service.cancel_event(other_organizer, _id(event))


class TestRegistration:
    """Tests for donor registration and cancellation."""

    def test_register_adds_attendee(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())

        updated = service.register(donor, _id(event))

        assert updated.current_attendee_count == 1
        assert updated.attendees[0].donor_id == donor.subject_id
        assert updated.attendees[0].registered_at == datetime(2025, 3, 1, 8, 0)

    def test_full_event(self, service, organizer, make_donor, make_draft):
        event = service.create_event(organizer, make_draft(expected_capacity=1))
        service.register(make_donor(1), _id(event))

        with pytest.raises(EventFullError):
            service.register(make_donor(2), _id(event))

    def test_register_twice(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.register(donor, _id(event))

        with pytest.raises(AlreadyRegisteredError):
            service.register(donor, _id(event))

    def test_reregister_after_cancelling(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.register(donor, _id(event))
        service.cancel_registration(donor, _id(event))

        updated = service.register(donor, _id(event))

        assert [a.status for a in updated.attendees] == [AttendeeStatus.CANCELLED, AttendeeStatus.REGISTERED]
        assert updated.current_attendee_count == 1

    def test_organizer_cannot_register(self, service, organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        with pytest.raises(RoleNotPermittedError):
            service.register(organizer, _id(event))

    def test_cancelled_event_rejects_registration(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.cancel_event(organizer, _id(event))

        with pytest.raises(EventClosedError):
            service.register(donor, _id(event))

    def test_completed_event_rejects_registration(self, service, clock, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        clock.set(datetime(2025, 3, 1, 18, 0))

        with pytest.raises(EventClosedError):
            service.register(donor, _id(event))

    def test_ongoing_event_accepts_registration(self, service, clock, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        clock.set(datetime(2025, 3, 1, 12, 0))

        assert service.register(donor, _id(event)).status is EventStatus.ONGOING

    def test_cancel_without_registration(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())

        with pytest.raises(RegistrationNotFoundError):
            service.cancel_registration(donor, _id(event))

    def test_cancel_twice(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.register(donor, _id(event))
        service.cancel_registration(donor, _id(event))

        with pytest.raises(RegistrationAlreadyCancelledError):
            service.cancel_registration(donor, _id(event))

    def test_cancel_after_attending(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.register(donor, _id(event))
        service.mark_attended(organizer, _id(event), "donor-1")

        with pytest.raises(AttendanceAlreadyRecordedError):
            service.cancel_registration(donor, _id(event))

    def test_cancel_after_event_completed(self, service, clock, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.register(donor, _id(event))
        clock.set(datetime(2025, 3, 1, 18, 0))

        with pytest.raises(EventClosedError):
            service.cancel_registration(donor, _id(event))

        assert service.get_event(_id(event)).attendees[0].status is AttendeeStatus.REGISTERED

    def test_concurrent_registrations_respect_capacity(self, service, organizer, make_donor, make_draft):
        event = service.create_event(organizer, make_draft(expected_capacity=3))
        outcomes = []
        barrier = threading.Barrier(10)

        def attempt(index):
            barrier.wait()
            try:
                service.register(make_donor(index), _id(event))
                outcomes.append("ok")
            except EventFullError:
                outcomes.append("full")

        threads = [threading.Thread(target=attempt, args=(index,)) for index in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("ok") == 3
        assert outcomes.count("full") == 7
        assert service.get_event(_id(event)).current_attendee_count == 3


class TestMarkAttended:
    """Tests for EventService.mark_attended."""

    def test_marks_registered_donor(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.register(donor, _id(event))

        updated = service.mark_attended(organizer, _id(event), "donor-1")

        assert updated.attendees[0].status is AttendeeStatus.ATTENDED

    def test_cancelled_registration_is_not_eligible(self, service, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.register(donor, _id(event))
        service.cancel_registration(donor, _id(event))

        with pytest.raises(NotEligibleForAttendanceError):
            service.mark_attended(organizer, _id(event), "donor-1")

    def test_only_owner_may_mark(self, service, organizer, other_organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        service.register(donor, _id(event))

        with pytest.raises(NotEventOwnerError):
            service.mark_attended(other_organizer, _id(event), "donor-1")


class TestDeleteEvent:
    """Tests for EventService.delete_event."""

    def test_owner_deletes(self, service, store, organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        service.delete_event(organizer, _id(event))

        assert store.get_event(event.id) is None

    def test_other_organizer_cannot_delete(self, service, organizer, other_organizer, make_draft):
        event = service.create_event(organizer, make_draft())

        with pytest.raises(NotEventOwnerError):
            service.delete_event(other_organizer, _id(event))

    def test_unknown_event(self, service, organizer):
        with pytest.raises(EventNotFoundError):
            service.delete_event(organizer, "0b5c6f0e-6a43-4c8e-9d5c-4f2f5d3c1a10")


class TestListEvents:
    """Tests for catalog listing and filters."""

    @pytest.fixture
    def catalog(self, service, organizer, make_draft):
        drive = service.create_event(organizer, make_draft())
        clinic = service.create_event(
            organizer,
            make_draft(
                title="Hospital Clinic",
                location="General Hospital",
                start_date=EVENT_DAY + timedelta(days=2),
                blood_types_needed=["AB-"],
            ),
        )
        gone = service.create_event(organizer, make_draft(title="Cancelled Drive"))
        service.cancel_event(organizer, _id(gone))
        return {"drive": drive, "clinic": clinic, "gone": gone}

    def test_hides_cancelled_by_default(self, service, catalog):
        titles = [event.title for event in service.list_events()]

        assert titles == ["Community Drive", "Hospital Clinic"]

    def test_cancelled_filter(self, service, catalog):
        events = service.list_events(EventFilters(status="cancelled"))

        assert [event.id for event in events] == [catalog["gone"].id]

    def test_active_filter(self, service, clock, catalog):
        clock.set(datetime(2025, 3, 1, 18, 0))

        events = service.list_events(EventFilters(status="active"))

        assert [event.id for event in events] == [catalog["clinic"].id]

    def test_blood_type_filter(self, service, catalog):
        events = service.list_events(EventFilters(blood_type="ab-"))

        assert [event.id for event in events] == [catalog["clinic"].id]

    def test_search_filter(self, service, catalog):
        events = service.list_events(EventFilters(search="hospital"))

        assert [event.id for event in events] == [catalog["clinic"].id]

    def test_date_filter(self, service, catalog):
        events = service.list_events(EventFilters(on_date=EVENT_DAY + timedelta(days=2)))

        assert [event.id for event in events] == [catalog["clinic"].id]

    def test_unknown_status_filter(self, service, catalog):
        with pytest.raises(ValidationError) as exc_info:
            service.list_events(EventFilters(status="postponed"))

        assert exc_info.value.field == "status"

    def test_organizer_events(self, service, organizer, other_organizer, catalog, make_draft):
        service.create_event(other_organizer, make_draft(title="Other Drive"))

        events = service.list_organizer_events(organizer)

        assert {event.id for event in events} == {e.id for e in catalog.values()}
        assert events[0].id == catalog["clinic"].id

    def test_donor_cannot_list_organizer_events(self, service, donor):
        with pytest.raises(RoleNotPermittedError):
            service.list_organizer_events(donor)


class TestProfileInvalidation:
    """Tests that mutations drop cached profile summaries."""

    def test_register_invalidates_donor_and_organizer(self, service, stats_cache, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        stats_cache.set(donor.subject_id, Role.DONOR, "stale")
        stats_cache.set(organizer.subject_id, Role.ORGANIZER, "stale")

        service.register(donor, _id(event))

        assert stats_cache.get(donor.subject_id, Role.DONOR) is None
        assert stats_cache.get(organizer.subject_id, Role.ORGANIZER) is None

    def test_failed_mutation_keeps_cache(self, service, stats_cache, organizer, donor, make_draft):
        event = service.create_event(organizer, make_draft())
        stats_cache.set(donor.subject_id, Role.DONOR, "cached")

        with pytest.raises(RegistrationNotFoundError):
            service.cancel_registration(donor, _id(event))

        assert stats_cache.get(donor.subject_id, Role.DONOR) == "cached"
