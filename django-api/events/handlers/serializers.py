"""Serializers for transforming domain models to API responses.

Input serializers only coerce JSON types; presence and business rules are
enforced by the service so every rejection carries a domain error code.
"""

from rest_framework import serializers

from events.services.event_service import EventDraft, EventFilters


class AttendeeSerializer(serializers.Serializer):
    """Serializer for Attendee domain model."""

    id = serializers.UUIDField()
    donor_id = serializers.CharField(source="donor_id.value")
    registered_at = serializers.DateTimeField()
    status = serializers.CharField(source="status.value")


class EventSerializer(serializers.Serializer):
    """Serializer for Event domain model."""

    id = serializers.UUIDField(source="id.value")
    organizer_id = serializers.CharField(source="organizer_id.value")
    title = serializers.CharField()
    organization_name = serializers.CharField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    time_range = serializers.CharField()
    location = serializers.CharField()
    coordinates = serializers.SerializerMethodField()
    expected_capacity = serializers.IntegerField(source="expected_capacity.value")
    current_attendee_count = serializers.IntegerField()
    is_full = serializers.BooleanField()
    blood_types_needed = serializers.SerializerMethodField()
    eligibility_requirements = serializers.ListField(child=serializers.CharField())
    description = serializers.CharField()
    contact_email = serializers.CharField()
    contact_phone = serializers.CharField()
    status = serializers.CharField(source="status.value")
    attendees = AttendeeSerializer(many=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()

    def get_coordinates(self, event) -> dict | None:
        if event.coordinates is None:
            return None
        return {"lat": event.coordinates.lat, "lng": event.coordinates.lng}

    def get_blood_types_needed(self, event) -> list[str]:
        return sorted(blood_type.value for blood_type in event.blood_types_needed)


class EventInputSerializer(serializers.Serializer):
    """Coerces create/update payloads into an EventDraft."""

    title = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    organization_name = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    time_range = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    location = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    latitude = serializers.FloatField(required=False, allow_null=True)
    longitude = serializers.FloatField(required=False, allow_null=True)
    expected_capacity = serializers.IntegerField(required=False, allow_null=True)
    blood_types_needed = serializers.ListField(
        child=serializers.CharField(), required=False, allow_null=True, allow_empty=True
    )
    eligibility_requirements = serializers.ListField(
        child=serializers.CharField(allow_blank=True), required=False, allow_null=True, allow_empty=True
    )
    description = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    contact_email = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    contact_phone = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def to_draft(self) -> EventDraft:
        return EventDraft(**self.validated_data)


class EventFilterSerializer(serializers.Serializer):
    """Coerces catalog query parameters into EventFilters."""

    status = serializers.CharField(required=False)
    blood_type = serializers.CharField(required=False)
    search = serializers.CharField(required=False, allow_blank=True)
    date = serializers.DateField(required=False)

    def to_filters(self) -> EventFilters:
        data = self.validated_data
        return EventFilters(
            status=data.get("status"),
            blood_type=data.get("blood_type"),
            search=data.get("search"),
            on_date=data.get("date"),
        )
