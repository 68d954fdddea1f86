"""Short-lived cache of derived profile summaries.

Entries are stored in a Django cache backend together with the time they were
inserted. A lookup is a hit only while the entry is younger than the TTL;
older entries are deleted and reported as a miss. Mutations invalidate a
subject's entries immediately. There is no capacity-based eviction.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, TypeVar

from django.conf import settings
from django.core.cache import BaseCache, caches

from events.domain import Role, UserId

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProfileStatsCache:
    """TTL cache keyed by (subject id, role)."""

    def __init__(
        self,
        backend: BaseCache,
        *,
        ttl: timedelta,
        clock: Callable[[], datetime] = datetime.now,
        key_prefix: str = "profile-stats",
    ) -> None:
        self._backend = backend
        self._ttl = ttl
        self._clock = clock
        self._key_prefix = key_prefix

    @classmethod
    def from_settings(cls, clock: Callable[[], datetime] = datetime.now) -> "ProfileStatsCache":
        return cls(
            caches[settings.PROFILE_STATS_CACHE_ALIAS],
            ttl=timedelta(seconds=settings.PROFILE_STATS_TTL_SECONDS),
            clock=clock,
        )

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get(self, subject_id: UserId, role: Role) -> Any | None:
        """Return the cached value, or None on a miss or a stale entry."""
        key = self._key(subject_id, role)
        entry = self._backend.get(key)
        if entry is None:
            logger.debug("Profile stats cache miss for %s", key)
            return None

        inserted_at, value = entry
        if self._clock() - inserted_at >= self._ttl:
            logger.debug("Profile stats cache entry %s expired", key)
            self._backend.delete(key)
            return None

        logger.debug("Profile stats cache hit for %s", key)
        return value

    def set(self, subject_id: UserId, role: Role, value: Any) -> None:
        # The backend timeout only reclaims memory; freshness is judged in get().
        timeout = int(self._ttl.total_seconds()) + 1
        self._backend.set(self._key(subject_id, role), (self._clock(), value), timeout=timeout)

    def get_or_compute(self, subject_id: UserId, role: Role, compute: Callable[[], T]) -> T:
        cached = self.get(subject_id, role)
        if cached is not None:
            return cached
        value = compute()
        self.set(subject_id, role, value)
        return value

    def invalidate(self, subject_id: UserId) -> None:
        """Drop every role's entry for ``subject_id``, regardless of age."""
        self._backend.delete_many([self._key(subject_id, role) for role in Role])
        logger.debug("Invalidated profile stats for %s", subject_id)

    def _key(self, subject_id: UserId, role: Role) -> str:
        return f"{self._key_prefix}:{subject_id.value}:{role.value}"
