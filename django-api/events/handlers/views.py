"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses (see handlers/exceptions.py)
- Never contain business logic
- Never expose internal error details
"""

from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from events.domain import Actor
from events.handlers.serializers import EventFilterSerializer, EventInputSerializer, EventSerializer
from events.services.event_service import EventService
from events.stores.django_store import DjangoEventStore
from profiles.cache import ProfileStatsCache


def build_event_service() -> EventService:
    return EventService(DjangoEventStore(), stats_cache=ProfileStatsCache.from_settings())


class EventPagination(PageNumberPagination):
    page_size = 6
    page_size_query_param = "limit"
    max_page_size = 50


class EventAPIView(APIView):
    """Base view wiring the event service and the gateway actor."""

    permission_classes = [IsAuthenticated]

    @property
    def service(self) -> EventService:
        return build_event_service()

    def actor(self, request: Request) -> Actor:
        return request.user.actor


class EventListView(EventAPIView):
    """Handler for GET/POST /api/events"""

    permission_classes = [IsAuthenticatedOrReadOnly]

    def get(self, request: Request) -> Response:
        filters = EventFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        events = self.service.list_events(filters.to_filters())

        paginator = EventPagination()
        page = paginator.paginate_queryset(events, request, view=self)
        return paginator.get_paginated_response(EventSerializer(page, many=True).data)

    def post(self, request: Request) -> Response:
        payload = EventInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        event = self.service.create_event(self.actor(request), payload.to_draft())
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


class OrganizerEventListView(EventAPIView):
    """Handler for GET /api/events/mine"""

    def get(self, request: Request) -> Response:
        events = self.service.list_organizer_events(self.actor(request))
        return Response({"count": len(events), "results": EventSerializer(events, many=True).data})


class EventDetailView(EventAPIView):
    """Handler for GET/PATCH/DELETE /api/events/{event_id}"""

    permission_classes = [IsAuthenticatedOrReadOnly]

    def get(self, request: Request, event_id: str) -> Response:
        return Response(EventSerializer(self.service.get_event(event_id)).data)

    def patch(self, request: Request, event_id: str) -> Response:
        payload = EventInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        event = self.service.update_event(self.actor(request), event_id, payload.to_draft())
        return Response(EventSerializer(event).data)

    def delete(self, request: Request, event_id: str) -> Response:
        self.service.delete_event(self.actor(request), event_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class EventCancelView(EventAPIView):
    """Handler for POST /api/events/{event_id}/cancel"""

    def post(self, request: Request, event_id: str) -> Response:
        event = self.service.cancel_event(self.actor(request), event_id)
        return Response(EventSerializer(event).data)


class EventRegistrationView(EventAPIView):
    """Handler for POST /api/events/{event_id}/register"""

    def post(self, request: Request, event_id: str) -> Response:
        event = self.service.register(self.actor(request), event_id)
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


class EventRegistrationCancelView(EventAPIView):
    """Handler for POST /api/events/{event_id}/cancel-registration"""

    def post(self, request: Request, event_id: str) -> Response:
        event = self.service.cancel_registration(self.actor(request), event_id)
        return Response(EventSerializer(event).data)


class AttendanceView(EventAPIView):
    """Handler for POST /api/events/{event_id}/attendees/{donor_id}/attend"""

    def post(self, request: Request, event_id: str, donor_id: str) -> Response:
        event = self.service.mark_attended(self.actor(request), event_id, donor_id)
        return Response(EventSerializer(event).data)
