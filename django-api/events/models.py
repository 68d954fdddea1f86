"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/.
"""

import uuid

from django.db import models
from django.db.models import F, Q


class Event(models.Model):
    """Persistence model for blood-donation events."""

    class Status(models.TextChoices):
        UPCOMING = "upcoming"
        ONGOING = "ongoing"
        COMPLETED = "completed"
        CANCELLED = "cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organizer_id = models.CharField(max_length=64, db_index=True)
    title = models.CharField(max_length=255)
    normalized_title = models.CharField(max_length=255, db_index=True)
    organization_name = models.CharField(max_length=255)
    start_date = models.DateField()
    end_date = models.DateField()
    time_range = models.CharField(max_length=64)
    location = models.CharField(max_length=255)
    latitude = models.FloatField(blank=True, null=True)
    longitude = models.FloatField(blank=True, null=True)
    expected_capacity = models.PositiveIntegerField()
    # Read projection of the roster, rewritten on every save.
    current_attendee_count = models.PositiveIntegerField(default=0)
    blood_types_needed = models.JSONField(default=list)
    eligibility_requirements = models.JSONField(default=list, blank=True)
    description = models.TextField()
    contact_email = models.EmailField()
    contact_phone = models.CharField(max_length=32)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.UPCOMING)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ["start_date", "-created_at"]
        indexes = [
            models.Index(fields=["organizer_id", "-start_date"]),
            models.Index(fields=["start_date", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gte=F("start_date")),
                name="event_end_date_not_before_start",
            ),
            models.CheckConstraint(
                condition=Q(expected_capacity__gt=0),
                name="event_capacity_positive",
            ),
        ]

    def __str__(self) -> str:
        return self.title


class TitleLock(models.Model):
    """One row per normalized-title digest, row-locked while a title is checked and claimed."""

    key = models.CharField(primary_key=True, max_length=64)

    def __str__(self) -> str:
        return self.key


class Attendee(models.Model):
    """Persistence model for roster records."""

    class Status(models.TextChoices):
        REGISTERED = "registered"
        ATTENDED = "attended"
        CANCELLED = "cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="attendees")
    donor_id = models.CharField(max_length=64, db_index=True)
    position = models.PositiveIntegerField()
    registered_at = models.DateTimeField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.REGISTERED)

    class Meta:
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(fields=["event", "position"], name="attendee_position_unique"),
            models.UniqueConstraint(
                fields=["event", "donor_id"],
                condition=~Q(status="cancelled"),
                name="one_active_registration_per_donor",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.donor_id} - {self.event.title} ({self.status})"
