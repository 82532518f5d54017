"""
In-memory cache for per-user unread notification counts.

The badge count is read on every page load, so it may be served from this
process-local cache. Entries expire after a TTL and are dropped whenever the
owning user's notifications change (create, read, delete, purge).

A TTL of 0 disables caching entirely: every read is a live count. This is the
default because the fan-out sweep writes from a separate process whose
invalidations never reach the API process.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional


@dataclass
class CachedUnreadCount:
    """
    A cached unread count with its expiry metadata.

    Attributes:
        count: Unread notifications for the user
        cached_at: When the count was computed
        ttl_seconds: Lifetime of the entry
    """
    count: int
    cached_at: datetime
    ttl_seconds: int

    def is_expired(self) -> bool:
        """Check whether the entry has outlived its TTL."""
        return datetime.utcnow() > self.cached_at + timedelta(seconds=self.ttl_seconds)


class UnreadCountCache:
    """
    Thread-safe TTL cache keyed by internal user ID.

    Usage:
        >>> cache = UnreadCountCache(ttl_seconds=30)
        >>> cache.set(user_id=1, count=4)
        >>> cache.get(user_id=1)
        4
        >>> cache.invalidate(user_id=1)
        >>> cache.get(user_id=1) is None
        True
    """

    def __init__(self, ttl_seconds: int = 0):
        self.ttl_seconds = max(0, ttl_seconds)
        self._entries: Dict[int, CachedUnreadCount] = {}
        self._generations: Dict[int, int] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, user_id: int) -> Optional[int]:
        """
        Return the cached count, or None on miss, expiry or disabled cache.
        """
        if not self.enabled:
            return None

        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired():
                del self._entries[user_id]
                self._misses += 1
                return None
            self._hits += 1
            return entry.count

    def generation(self, user_id: int) -> int:
        """
        Return the user's invalidation generation.

        Read it before counting and pass it to set(), so a count computed
        before a concurrent invalidation is never stored.
        """
        with self._lock:
            return self._generations.get(user_id, 0)

    def set(self, user_id: int, count: int, generation: Optional[int] = None) -> bool:
        """
        Store a count for the user.

        Returns:
            False if the cache is disabled or the user was invalidated since
            ``generation`` was read
        """
        if not self.enabled:
            return False

        with self._lock:
            if generation is not None and generation != self._generations.get(user_id, 0):
                return False
            self._entries[user_id] = CachedUnreadCount(
                count=count,
                cached_at=datetime.utcnow(),
                ttl_seconds=self.ttl_seconds,
            )
            return True

    def _invalidate_locked(self, user_id: int) -> None:
        self._entries.pop(user_id, None)
        self._generations[user_id] = self._generations.get(user_id, 0) + 1

    def invalidate(self, user_id: int) -> None:
        with self._lock:
            self._invalidate_locked(user_id)

    def invalidate_many(self, user_ids: Iterable[int]) -> None:
        with self._lock:
            for user_id in user_ids:
                self._invalidate_locked(user_id)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generations.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, int]:
        """
        Get cache statistics.

        Returns:
            Dict with entries, hits, misses and ttl_seconds
        """
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "ttl_seconds": self.ttl_seconds,
            }


# Global cache instance, created on application startup
_unread_count_cache: Optional[UnreadCountCache] = None


def init_unread_count_cache(ttl_seconds: int = 0) -> UnreadCountCache:
    """
    Initialize the global unread count cache.

    Args:
        ttl_seconds: Entry lifetime; 0 disables caching

    Returns:
        The new cache instance
    """
    global _unread_count_cache
    _unread_count_cache = UnreadCountCache(ttl_seconds=ttl_seconds)
    return _unread_count_cache


def get_unread_count_cache() -> UnreadCountCache:
    """
    Get the global unread count cache, creating a disabled one if needed.
    """
    global _unread_count_cache
    if _unread_count_cache is None:
        _unread_count_cache = UnreadCountCache()
    return _unread_count_cache
