"""Per-user profile summaries derived from event rosters.

Summaries are recomputed from the event store and served through
ProfileStatsCache, so a profile page reflects a mutation either immediately
(explicit invalidation) or at the latest after the cache TTL.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime

from events.domain import Actor, AttendeeStatus, Event, EventId, Role, UserId
from events.stores.interfaces import EventStore
from profiles.cache import ProfileStatsCache

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10


@dataclass(frozen=True)
class Milestone:
    threshold: int
    title: str
    description: str


ORGANIZER_EVENT_MILESTONES = (
    Milestone(10, "10 Events Organized", "Organized 10+ successful blood donation events"),
    Milestone(50, "50 Events Organized", "Reached the milestone of organizing 50 blood donation events"),
)
ORGANIZER_ATTENDEE_MILESTONE = Milestone(100, "100 Donors Milestone", "Reached 100 total donors across all events")
DONOR_MILESTONES = (
    Milestone(5, "5 Donations", "Saved lives with 5 blood donations"),
    Milestone(10, "10 Donations", "Reached 10 donations milestone"),
    Milestone(25, "25 Donations", "Heroic milestone of 25 blood donations"),
)


@dataclass(frozen=True)
class Achievement:
    title: str
    description: str
    achieved_at: datetime | None = None


@dataclass(frozen=True)
class HistoryItem:
    event_id: EventId
    title: str
    attendees: int
    event_date: date


@dataclass(frozen=True)
class ProfileSummary:
    """Derived profile statistics of one subject in one role."""

    subject_id: UserId
    role: Role
    achievements: tuple[Achievement, ...]
    history: tuple[HistoryItem, ...]
    events_organized: int = 0
    total_attendees: int = 0
    total_donations: int = 0


class ProfileStatsService:
    """Computes and caches profile summaries."""

    def __init__(self, store: EventStore, cache: ProfileStatsCache) -> None:
        self._store = store
        self._cache = cache

    def get_summary(self, actor: Actor) -> ProfileSummary:
        return self._cache.get_or_compute(actor.subject_id, actor.role, lambda: self._compute(actor))

    def invalidate(self, subject_id: UserId) -> None:
        self._cache.invalidate(subject_id)

    def _compute(self, actor: Actor) -> ProfileSummary:
        logger.debug("Computing %s profile summary for %s", actor.role.value, actor.subject_id)
        if actor.is_organizer:
            return self._organizer_summary(actor.subject_id)
        return self._donor_summary(actor.subject_id)

    def _organizer_summary(self, organizer_id: UserId) -> ProfileSummary:
        events = self._store.list_events_for_organizer(organizer_id)
        total_attendees = sum(event.current_attendee_count for event in events)

        achievements = []
        if events:
            first = min(events, key=lambda event: event.created_at)
            achievements.append(
                Achievement(
                    "First Event",
                    "Successfully organized first blood donation event",
                    first.created_at,
                )
            )
        if total_attendees >= ORGANIZER_ATTENDEE_MILESTONE.threshold:
            achievements.append(_unlocked(ORGANIZER_ATTENDEE_MILESTONE))
        achievements.extend(_unlocked(m) for m in ORGANIZER_EVENT_MILESTONES if len(events) >= m.threshold)

        return ProfileSummary(
            subject_id=organizer_id,
            role=Role.ORGANIZER,
            achievements=tuple(achievements),
            history=_history(events),
            events_organized=len(events),
            total_attendees=total_attendees,
        )

    def _donor_summary(self, donor_id: UserId) -> ProfileSummary:
        events = self._store.list_events_for_donor(donor_id)
        attended = sorted(
            (
                attendee
                for event in events
                for attendee in event.attendees
                if attendee.donor_id == donor_id and attendee.status is AttendeeStatus.ATTENDED
            ),
            key=lambda attendee: attendee.registered_at,
        )

        achievements = []
        if attended:
            achievements.append(
                Achievement("First Donation", "Completed your first blood donation", attended[0].registered_at)
            )
        achievements.extend(_unlocked(m) for m in DONOR_MILESTONES if len(attended) >= m.threshold)

        active = [
            event for event in events
            if any(a.donor_id == donor_id and a.status.holds_seat for a in event.attendees)
        ]
        return ProfileSummary(
            subject_id=donor_id,
            role=Role.DONOR,
            achievements=tuple(achievements),
            history=_history(active),
            total_donations=len(attended),
        )


def _unlocked(milestone: Milestone) -> Achievement:
    return Achievement(milestone.title, milestone.description)


def _history(events: list[Event]) -> tuple[HistoryItem, ...]:
    recent = sorted(events, key=lambda event: event.start_date, reverse=True)[:HISTORY_LIMIT]
    return tuple(
        HistoryItem(
            event_id=event.id,
            title=event.title,
            attendees=event.current_attendee_count,
            event_date=event.start_date,
        )
        for event in recent
    )
