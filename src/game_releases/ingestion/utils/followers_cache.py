"""
Time-boxed memo of resolved follower counts.

Shared by concurrent follower lookups within a process. Entries
are never evicted; a stale entry is simply ignored and overwritten
on the next successful fetch.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from game_releases.logger import get_logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FollowersCacheEntry:
    """A follower count and when it was fetched."""

    fetched_at: datetime
    count: int


class FollowersCache:
    """
    In-memory follower count cache keyed by app id.

    Example:
        >>> cache = FollowersCache(ttl=timedelta(hours=6))
        >>> await cache.put(1091500, 120000)
        >>> await cache.get(1091500)
        120000
    """

    def __init__(
        self,
        *,
        ttl: timedelta = timedelta(hours=6),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[int, FollowersCacheEntry] = {}
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__, component="followers_cache")

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def get(self, app_id: int) -> int | None:
        """
        Return the cached count if it is younger than the TTL.

        Args:
            app_id: Steam application ID

        Returns:
            int | None: Cached count, None on miss or stale entry
        """
        async with self._lock:
            entry = self._entries.get(app_id)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._ttl:
            self._logger.debug("Stale cache entry", app_id=app_id, fetched_at=entry.fetched_at)
            return None
        return entry.count

    async def put(self, app_id: int, count: int) -> None:
        """Store a freshly fetched count stamped with the current time."""
        if count < 0:
            raise ValueError("follower count must not be negative")
        async with self._lock:
            self._entries[app_id] = FollowersCacheEntry(fetched_at=self._clock(), count=count)

    def __len__(self) -> int:
        return len(self._entries)
