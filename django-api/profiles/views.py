"""HTTP handler for derived profile statistics."""

from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from events.stores.django_store import DjangoEventStore
from profiles.cache import ProfileStatsCache
from profiles.serializers import ProfileSummarySerializer
from profiles.services import ProfileStatsService


class ProfileStatsView(APIView):
    """Handler for GET /api/profile/stats"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        service = ProfileStatsService(DjangoEventStore(), ProfileStatsCache.from_settings())
        summary = service.get_summary(request.user.actor)
        return Response(ProfileSummarySerializer(summary).data)
