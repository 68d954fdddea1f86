"""Event service - all business logic lives here.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

Status is materialized lazily: every read and every mutation re-derives it
and the event is saved again only when the derived value changed.
"""

import logging
import re
from contextlib import ExitStack
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Sequence
from uuid import uuid4

from events.domain import (
    Actor,
    BloodType,
    Capacity,
    Coordinates,
    Event,
    EventId,
    EventStatus,
    TimeRange,
    UserId,
    normalize_title,
)
from events.domain.errors import (
    DuplicateTitleError,
    EventClosedError,
    EventNotFoundError,
    InvalidDateRangeError,
    InvalidEventIdError,
    InvalidTimeRangeError,
    MissingFieldError,
    NotEventOwnerError,
    RoleNotPermittedError,
    StartDateInPastError,
    ValidationError,
)
from events.domain.roster import AttendeeRoster
from events.domain.status import refresh_status
from events.domain.time_range import parse_time_range
from events.stores.interfaces import EventStore
from profiles.cache import ProfileStatsCache

logger = logging.getLogger(__name__)

ACTIVE_FILTER = "active"

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_REQUIRED_FIELDS = (
    ("title", "Event title"),
    ("organization_name", "Organization name"),
    ("start_date", "Start date"),
    ("time_range", "Event time"),
    ("location", "Location"),
    ("expected_capacity", "Expected capacity"),
    ("blood_types_needed", "Blood types needed"),
    ("description", "Event description"),
    ("contact_email", "Contact email"),
    ("contact_phone", "Contact phone"),
)


@dataclass(frozen=True)
class EventDraft:
    """Organizer-supplied event fields.

    On creation every required field must be present. On update a field left
    as None keeps its current value.
    """

    title: str | None = None
    organization_name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    time_range: str | None = None
    location: str | None = None
    expected_capacity: int | None = None
    blood_types_needed: Sequence[str] | None = None
    description: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    eligibility_requirements: Sequence[str] | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class EventFilters:
    """Catalog filters. ``status`` is a status token or ``"active"``."""

    status: str | None = None
    blood_type: str | None = None
    search: str | None = None
    on_date: date | None = None


class EventService:
    """Service for event lifecycle and registration operations."""

    def __init__(
        self,
        store: EventStore,
        *,
        clock: Callable[[], datetime] = datetime.now,
        stats_cache: ProfileStatsCache | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._stats_cache = stats_cache

    # Reads

    def list_events(self, filters: EventFilters | None = None) -> list[Event]:
        """Return catalog events with fresh statuses.

        Cancelled events are hidden unless explicitly filtered for.

        Raises:
            ValidationError: If a filter value is not recognised.
        """
        filters = filters or EventFilters()
        matches_status = _status_matcher(filters.status)
        blood_type = _blood_type(filters.blood_type, "blood_type") if filters.blood_type else None
        search = filters.search.strip().casefold() if filters.search and filters.search.strip() else None

        events = []
        for event in self._store.list_events():
            event = self._fresh(event)
            if not matches_status(event.status):
                continue
            if blood_type is not None and blood_type not in event.blood_types_needed:
                continue
            if search is not None and not _matches_search(event, search):
                continue
            if filters.on_date is not None and not event.covers(filters.on_date):
                continue
            events.append(event)
        return events

    def list_organizer_events(self, actor: Actor) -> list[Event]:
        """Return every event owned by the organizer, newest first."""
        _require_organizer(actor, "Only organizers can access their events")
        return [self._fresh(event) for event in self._store.list_events_for_organizer(actor.subject_id)]

    def get_event(self, event_id: str) -> Event:
        """Return an event by ID with a fresh status.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        return self._fresh(self._load(_parse_event_id(event_id)))

    # Organizer mutations

    def create_event(self, actor: Actor, draft: EventDraft) -> Event:
        """Validate and store a new event owned by ``actor``.

        Raises:
            RoleNotPermittedError: If the actor is not an organizer.
            ValidationError: If a field is missing or the schedule is invalid.
            DuplicateTitleError: If an active event already uses the title.
        """
        _require_organizer(actor, "Only organizers can create events")
        for field, label in _REQUIRED_FIELDS:
            _require_present(draft, field, label)

        title = draft.title.strip()
        capacity = _capacity(draft.expected_capacity)
        blood_types = _blood_types(draft.blood_types_needed)
        contact_email = _contact_email(draft.contact_email)
        coordinates = _coordinates(draft.latitude, draft.longitude)

        now = self._clock()
        start_date = draft.start_date
        end_date = draft.end_date or start_date
        if start_date < now.date():
            raise StartDateInPastError()
        _check_schedule(start_date, end_date, draft.time_range)

        with self._store.title_lock(normalize_title(title)):
            self._reject_active_duplicate(title)
            event = Event(
                id=EventId(value=uuid4()),
                organizer_id=actor.subject_id,
                title=title,
                organization_name=draft.organization_name.strip(),
                start_date=start_date,
                end_date=end_date,
                time_range=draft.time_range.strip(),
                location=draft.location.strip(),
                expected_capacity=capacity,
                blood_types_needed=blood_types,
                description=draft.description.strip(),
                contact_email=contact_email,
                contact_phone=draft.contact_phone.strip(),
                status=EventStatus.UPCOMING,
                created_at=now,
                updated_at=now,
                coordinates=coordinates,
                eligibility_requirements=_requirements(draft.eligibility_requirements),
            )
            event, _ = refresh_status(event, now)
            self._store.save_event(event)

        logger.info("Organizer %s created event %s (%r)", actor.subject_id, event.id, event.title)
        self._invalidate_profiles(actor.subject_id)
        return event

    def update_event(self, actor: Actor, event_id: str, draft: EventDraft) -> Event:
        """Apply the non-None fields of ``draft`` to an active event.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            RoleNotPermittedError, NotEventOwnerError: If the actor does not own the event.
            EventClosedError: If the event is completed or cancelled.
            ValidationError: If a changed field is invalid.
            DuplicateTitleError: If the new title is used by another active event.
        """
        _require_organizer(actor, "Only organizers can update events")
        eid = _parse_event_id(event_id)
        current = self._load(eid)
        _require_owner(actor, current, "update")

        new_title = None
        if draft.title is not None:
            _require_present(draft, "title", "Event title")
            new_title = draft.title.strip()
        title_changed = new_title is not None and normalize_title(new_title) != current.normalized_title

        with ExitStack() as stack:
            if title_changed:
                stack.enter_context(self._store.title_lock(normalize_title(new_title)))
            stack.enter_context(self._store.event_lock(eid))

            event = self._fresh(self._load(eid))
            if event.status.is_closed:
                raise EventClosedError(f"Cannot update {event.status.value} event")

            event = self._merge(event, draft, new_title)
            if title_changed:
                self._reject_active_duplicate(new_title, exclude=eid)

            now = self._clock()
            event, _ = refresh_status(replace(event, updated_at=now), now)
            self._store.save_event(event)

        logger.info("Organizer %s updated event %s", actor.subject_id, event.id)
        self._invalidate_profiles(actor.subject_id)
        return event

    def cancel_event(self, actor: Actor, event_id: str) -> Event:
        """Cancel an event and every still-registered attendance.

        Attended records are left untouched.

        Raises:
            RoleNotPermittedError, NotEventOwnerError: If the actor does not own the event.
            EventClosedError: If the event is already cancelled or completed.
        """
        _require_organizer(actor, "Only organizers can cancel events")
        eid = _parse_event_id(event_id)

        with self._store.event_lock(eid):
            event = self._load(eid)
            _require_owner(actor, event, "cancel")
            event = self._fresh(event)
            if event.status is EventStatus.CANCELLED:
                raise EventClosedError("Event is already cancelled")
            if event.status is EventStatus.COMPLETED:
                raise EventClosedError("Cannot cancel an event that is completed")

            roster = AttendeeRoster(event.attendees)
            released = roster.cancel_all_registered()
            event = replace(
                event,
                status=EventStatus.CANCELLED,
                attendees=roster.attendees,
                updated_at=self._clock(),
            )
            self._store.save_event(event)

        logger.info("Organizer %s cancelled event %s, releasing %d registrations", actor.subject_id, eid, len(released))
        self._invalidate_profiles(actor.subject_id, *(attendee.donor_id for attendee in released))
        return event

    def delete_event(self, actor: Actor, event_id: str) -> None:
        """Delete an event owned by ``actor``.

        Raises:
            RoleNotPermittedError, NotEventOwnerError: If the actor does not own the event.
            EventNotFoundError: If the event does not exist.
        """
        _require_organizer(actor, "Only organizers can delete events")
        eid = _parse_event_id(event_id)

        with self._store.event_lock(eid):
            event = self._load(eid)
            _require_owner(actor, event, "delete")
            if not self._store.delete_event(eid):
                raise EventNotFoundError(str(eid))

        logger.info("Organizer %s deleted event %s", actor.subject_id, eid)
        self._invalidate_profiles(actor.subject_id, *(attendee.donor_id for attendee in event.attendees))

    def mark_attended(self, actor: Actor, event_id: str, donor_id: str) -> Event:
        """Record that a registered donor attended the organizer's event.

        Raises:
            RoleNotPermittedError, NotEventOwnerError: If the actor does not own the event.
            RegistrationNotFoundError: If the donor never registered.
            NotEligibleForAttendanceError: If the donor's registration is not live.
        """
        _require_organizer(actor, "Only organizers can record attendance")
        eid = _parse_event_id(event_id)
        donor = _user_id(donor_id, "donor_id")

        with self._store.event_lock(eid):
            event = self._load(eid)
            _require_owner(actor, event, "manage attendance for")
            roster = AttendeeRoster(event.attendees)
            roster.mark_attended(donor)
            event = self._save_roster(event, roster)

        logger.info("Donor %s marked attended at event %s", donor, eid)
        self._invalidate_profiles(actor.subject_id, donor)
        return event

    # Donor mutations

    def register(self, actor: Actor, event_id: str) -> Event:
        """Register the donor for an event.

        Raises:
            RoleNotPermittedError: If the actor is not a donor.
            EventClosedError: If the event is completed or cancelled.
            EventFullError: If the event has no seats left.
            AlreadyRegisteredError: If the donor already holds a registration.
        """
        _require_donor(actor, "Only donors can register for events")
        eid = _parse_event_id(event_id)

        with self._store.event_lock(eid):
            event = self._fresh(self._load(eid))
            if event.status.is_closed:
                raise EventClosedError(f"Registration is closed for this {event.status.value} event")
            roster = AttendeeRoster(event.attendees)
            roster.register(actor.subject_id, capacity=event.expected_capacity, now=self._clock())
            event = self._save_roster(event, roster)

        logger.info(
            "Donor %s registered for event %s (%d/%d)",
            actor.subject_id,
            eid,
            event.current_attendee_count,
            event.expected_capacity.value,
        )
        self._invalidate_profiles(actor.subject_id, event.organizer_id)
        return event

    def cancel_registration(self, actor: Actor, event_id: str) -> Event:
        """Cancel the donor's live registration; the record itself is kept.

        Raises:
            RoleNotPermittedError: If the actor is not a donor.
            RegistrationNotFoundError: If the donor never registered.
            RegistrationAlreadyCancelledError: If the registration is already cancelled.
            AttendanceAlreadyRecordedError: If the donor has already attended.
            EventClosedError: If the event is completed.
        """
        _require_donor(actor, "Only donors can cancel registrations")
        eid = _parse_event_id(event_id)

        with self._store.event_lock(eid):
            event = self._fresh(self._load(eid))
            if event.status is EventStatus.COMPLETED:
                raise EventClosedError("Cannot cancel a registration for a completed event")
            roster = AttendeeRoster(event.attendees)
            roster.cancel(actor.subject_id)
            event = self._save_roster(event, roster)

        logger.info("Donor %s cancelled registration for event %s", actor.subject_id, eid)
        self._invalidate_profiles(actor.subject_id, event.organizer_id)
        return event

    # Helpers

    def _load(self, event_id: EventId) -> Event:
        event = self._store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    def _fresh(self, event: Event) -> Event:
        """Return ``event`` with a derived status, persisting only the status.

        The write is conditional on the stored status still matching the
        snapshot, so a stale read never undoes a concurrent mutation.
        """
        refreshed, changed = refresh_status(event, self._clock())
        if not changed:
            return event
        if self._store.update_status(event.id, event.status, refreshed.status):
            logger.debug("Event %s status is now %s", event.id, refreshed.status.value)
            return refreshed

        current = self._store.get_event(event.id)
        if current is None:
            return refreshed
        logger.debug("Event %s changed while refreshing its status", event.id)
        current, _ = refresh_status(current, self._clock())
        return current

    def _save_roster(self, event: Event, roster: AttendeeRoster) -> Event:
        now = self._clock()
        event, _ = refresh_status(replace(event, attendees=roster.attendees, updated_at=now), now)
        return self._store.save_event(event)

    def _reject_active_duplicate(self, title: str, exclude: EventId | None = None) -> None:
        for match in self._store.find_by_normalized_title(normalize_title(title)):
            if match.id == exclude:
                continue
            if self._fresh(match).status.is_active:
                logger.warning("Rejected duplicate active title %r (clashes with %s)", title, match.id)
                raise DuplicateTitleError(title)

    def _merge(self, event: Event, draft: EventDraft, new_title: str | None) -> Event:
        for field, label in _REQUIRED_FIELDS:
            if getattr(draft, field) is not None:
                _require_present(draft, field, label)

        start_date = draft.start_date or event.start_date
        if draft.start_date is not None and draft.start_date != event.start_date:
            if draft.start_date < self._clock().date():
                raise StartDateInPastError()

        if draft.end_date is not None:
            end_date = draft.end_date
        else:
            end_date = max(event.end_date, start_date)

        time_range = draft.time_range.strip() if draft.time_range is not None else event.time_range
        _check_schedule(start_date, end_date, time_range)

        changes = {"start_date": start_date, "end_date": end_date, "time_range": time_range}
        if new_title is not None:
            changes["title"] = new_title
        if draft.expected_capacity is not None:
            capacity = _capacity(draft.expected_capacity)
            if capacity.value < event.current_attendee_count:
                raise ValidationError(
                    "expected_capacity",
                    "Capacity cannot be lower than the number of registered donors",
                )
            changes["expected_capacity"] = capacity
        if draft.blood_types_needed is not None:
            changes["blood_types_needed"] = _blood_types(draft.blood_types_needed)
        if draft.contact_email is not None:
            changes["contact_email"] = _contact_email(draft.contact_email)
        if draft.latitude is not None or draft.longitude is not None:
            changes["coordinates"] = _coordinates(draft.latitude, draft.longitude)
        if draft.eligibility_requirements is not None:
            changes["eligibility_requirements"] = _requirements(draft.eligibility_requirements)
        for field in ("organization_name", "location", "description", "contact_phone"):
            value = getattr(draft, field)
            if value is not None:
                changes[field] = value.strip()

        return replace(event, **changes)

    def _invalidate_profiles(self, *subject_ids: UserId) -> None:
        if self._stats_cache is None:
            return
        for subject_id in set(subject_ids):
            self._stats_cache.invalidate(subject_id)


def _parse_event_id(event_id: str) -> EventId:
    try:
        return EventId.from_string(event_id)
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidEventIdError() from exc


def _user_id(value: str, field: str) -> UserId:
    try:
        return UserId(value)
    except (TypeError, ValueError, AttributeError) as exc:
        raise ValidationError(field, "A valid user id is required") from exc


def _require_organizer(actor: Actor, message: str) -> None:
    if not actor.is_organizer:
        raise RoleNotPermittedError(message)


def _require_donor(actor: Actor, message: str) -> None:
    if not actor.is_donor:
        raise RoleNotPermittedError(message)


def _require_owner(actor: Actor, event: Event, action: str) -> None:
    if event.organizer_id != actor.subject_id:
        raise NotEventOwnerError(action)


def _require_present(draft: EventDraft, field: str, label: str) -> None:
    value = getattr(draft, field)
    if value is None:
        raise MissingFieldError(field, label)
    if isinstance(value, str) and not value.strip():
        raise MissingFieldError(field, label)
    if field == "blood_types_needed" and len(value) == 0:
        raise ValidationError(field, "Please select at least one blood type")


def _capacity(value: int) -> Capacity:
    try:
        return Capacity(value)
    except ValueError as exc:
        raise ValidationError("expected_capacity", str(exc)) from exc


def _blood_type(token: str, field: str) -> BloodType:
    try:
        return BloodType(token.strip().upper())
    except (ValueError, AttributeError) as exc:
        raise ValidationError(field, f"Unknown blood type: {token}") from exc


def _blood_types(tokens: Sequence[str]) -> frozenset[BloodType]:
    if isinstance(tokens, str) or not tokens:
        raise ValidationError("blood_types_needed", "Please select at least one blood type")
    return frozenset(_blood_type(token, "blood_types_needed") for token in tokens)


def _contact_email(value: str) -> str:
    email = value.strip().lower()
    if not _EMAIL.match(email):
        raise ValidationError("contact_email", "Please provide a valid contact email")
    return email


def _coordinates(latitude: float | None, longitude: float | None) -> Coordinates | None:
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise ValidationError("coordinates", "Both latitude and longitude are required")
    try:
        return Coordinates(lat=latitude, lng=longitude)
    except ValueError as exc:
        raise ValidationError("coordinates", str(exc)) from exc


def _requirements(values: Sequence[str] | None) -> tuple[str, ...]:
    if not values:
        return ()
    return tuple(value.strip() for value in values if value and value.strip())


def _check_schedule(start_date: date, end_date: date, time_range: str) -> TimeRange:
    if end_date < start_date:
        raise InvalidDateRangeError()
    parsed = parse_time_range(time_range)
    if parsed is None:
        raise InvalidTimeRangeError()
    if end_date == start_date and parsed.end_minutes <= parsed.start_minutes:
        raise InvalidTimeRangeError("End time must be after start time")
    return parsed


def _status_matcher(token: str | None) -> Callable[[EventStatus], bool]:
    if token is None or not token.strip():
        return lambda status: status is not EventStatus.CANCELLED
    token = token.strip().lower()
    if token == ACTIVE_FILTER:
        return lambda status: status.is_active
    try:
        wanted = EventStatus(token)
    except ValueError as exc:
        raise ValidationError("status", f"Unknown status filter: {token}") from exc
    return lambda status: status is wanted


def _matches_search(event: Event, needle: str) -> bool:
    return any(needle in value.casefold() for value in (event.title, event.location, event.organization_name))
