from events.handlers.views import (
    AttendanceView,
    EventCancelView,
    EventDetailView,
    EventListView,
    EventRegistrationCancelView,
    EventRegistrationView,
    OrganizerEventListView,
)

__all__ = [
    "EventListView",
    "OrganizerEventListView",
    "EventDetailView",
    "EventCancelView",
    "EventRegistrationView",
    "EventRegistrationCancelView",
    "AttendanceView",
]
