from django.urls import path

from events.handlers import (
    AttendanceView,
    EventCancelView,
    EventDetailView,
    EventListView,
    EventRegistrationCancelView,
    EventRegistrationView,
    OrganizerEventListView,
)

urlpatterns = [
    path("events", EventListView.as_view(), name="event-list"),
    path("events/mine", OrganizerEventListView.as_view(), name="organizer-event-list"),
    path("events/<str:event_id>", EventDetailView.as_view(), name="event-detail"),
    path("events/<str:event_id>/cancel", EventCancelView.as_view(), name="event-cancel"),
    path("events/<str:event_id>/register", EventRegistrationView.as_view(), name="event-register"),
    path(
        "events/<str:event_id>/cancel-registration",
        EventRegistrationCancelView.as_view(),
        name="event-cancel-registration",
    ),
    path(
        "events/<str:event_id>/attendees/<str:donor_id>/attend",
        AttendanceView.as_view(),
        name="event-attendance",
    ),
]
