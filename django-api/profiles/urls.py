from django.urls import path

from profiles.views import ProfileStatsView

urlpatterns = [
    path("profile/stats", ProfileStatsView.as_view(), name="profile-stats"),
]
