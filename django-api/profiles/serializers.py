"""Serializers for profile summaries."""

from rest_framework import serializers


class HistoryItemSerializer(serializers.Serializer):
    event_id = serializers.UUIDField(source="event_id.value")
    title = serializers.CharField()
    attendees = serializers.IntegerField()
    date = serializers.DateField(source="event_date")


class AchievementSerializer(serializers.Serializer):
    title = serializers.CharField()
    description = serializers.CharField()
    achieved_at = serializers.DateTimeField(allow_null=True)


class ProfileSummarySerializer(serializers.Serializer):
    """Serializer for ProfileSummary."""

    subject_id = serializers.CharField(source="subject_id.value")
    role = serializers.CharField(source="role.value")
    achievements = AchievementSerializer(many=True)
    history = HistoryItemSerializer(many=True)
    events_organized = serializers.IntegerField()
    total_attendees = serializers.IntegerField()
    total_donations = serializers.IntegerField()
