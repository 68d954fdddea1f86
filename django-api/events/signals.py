"""Django signals for profile stats cache invalidation.

EventService invalidates affected profiles explicitly; these handlers cover
writes that reach the ORM some other way (shell, data fixes, bulk scripts).
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from events.domain import UserId
from events.models import Attendee, Event
from profiles.cache import ProfileStatsCache


@receiver([post_save, post_delete], sender=Event)
def invalidate_organizer_stats(sender, instance, **kwargs):
    """Invalidate the organizer's profile stats when one of their events changes."""
    ProfileStatsCache.from_settings().invalidate(UserId(instance.organizer_id))


@receiver([post_save, post_delete], sender=Attendee)
def invalidate_donor_stats(sender, instance, **kwargs):
    """Invalidate the donor's profile stats when one of their registrations changes."""
    ProfileStatsCache.from_settings().invalidate(UserId(instance.donor_id))
