"""
Unit tests for the unread count cache.

Tests the UnreadCountCache and CachedUnreadCount for:
- Cache hit/miss/expiry behavior
- Disabled cache (TTL 0)
- Manual invalidation
- Thread safety
- Cache statistics
"""

import threading
from datetime import datetime

from freezegun import freeze_time

from backend.src.utils.cache import (
    CachedUnreadCount,
    UnreadCountCache,
    get_unread_count_cache,
    init_unread_count_cache,
)


class TestCachedUnreadCount:
    """Tests for CachedUnreadCount dataclass."""

    def test_is_expired_not_expired(self):
        cached = CachedUnreadCount(count=3, cached_at=datetime.utcnow(), ttl_seconds=60)
        assert not cached.is_expired()

    @freeze_time("2026-01-01 12:00:00")
    def test_is_expired_after_ttl(self):
        """Test is_expired returns True once the TTL has elapsed."""
        cached = CachedUnreadCount(count=3, cached_at=datetime.utcnow(), ttl_seconds=60)

        with freeze_time("2026-01-01 12:00:30"):
            assert not cached.is_expired()
        with freeze_time("2026-01-01 12:01:01"):
            assert cached.is_expired()


class TestUnreadCountCacheBasics:
    """Tests for basic cache operations."""

    def test_set_and_get_cache_hit(self):
        cache = UnreadCountCache(ttl_seconds=60)
        cache.set(1, 4)

        assert cache.get(1) == 4

    def test_get_cache_miss(self):
        cache = UnreadCountCache(ttl_seconds=60)
        assert cache.get(99) is None

    def test_zero_count_is_cached(self):
        """Test that a count of 0 is a hit, not a miss."""
        cache = UnreadCountCache(ttl_seconds=60)
        cache.set(1, 0)

        assert cache.get(1) == 0

    def test_set_overwrites_existing_entry(self):
        cache = UnreadCountCache(ttl_seconds=60)
        cache.set(1, 4)
        cache.set(1, 7)

        assert cache.get(1) == 7

    def test_users_cached_independently(self):
        cache = UnreadCountCache(ttl_seconds=60)
        cache.set(1, 4)
        cache.set(2, 9)

        assert cache.get(1) == 4
        assert cache.get(2) == 9


class TestDisabledCache:
    """Tests for a cache with TTL 0."""

    def test_disabled_by_default(self):
        assert UnreadCountCache().enabled is False

    def test_set_is_noop(self):
        cache = UnreadCountCache(ttl_seconds=0)
        cache.set(1, 4)

        assert cache.get(1) is None
        assert cache.get_stats()["entries"] == 0

    def test_negative_ttl_disables(self):
        assert UnreadCountCache(ttl_seconds=-5).ttl_seconds == 0


class TestCacheExpiry:
    """Tests for TTL expiry."""

    @freeze_time("2026-01-01 12:00:00")
    def test_get_expired_entry_returns_none(self):
        """Test that an expired entry is dropped and reported as a miss."""
        cache = UnreadCountCache(ttl_seconds=30)
        cache.set(1, 4)

        with freeze_time("2026-01-01 12:00:31"):
            assert cache.get(1) is None
            assert cache.get_stats()["entries"] == 0


class TestCacheInvalidation:
    """Tests for manual invalidation."""

    def test_invalidate_existing_entry(self):
        cache = UnreadCountCache(ttl_seconds=60)
        cache.set(1, 4)
        cache.set(2, 5)

        cache.invalidate(1)

        assert cache.get(1) is None
        assert cache.get(2) == 5

    def test_invalidate_non_existent_entry(self):
        cache = UnreadCountCache(ttl_seconds=60)
        cache.invalidate(42)

    def test_invalidate_many(self):
        cache = UnreadCountCache(ttl_seconds=60)
        for user_id in (1, 2, 3):
            cache.set(user_id, user_id)

        cache.invalidate_many([1, 3, 99])

        assert cache.get(1) is None
        assert cache.get(2) == 2
        assert cache.get(3) is None

    def test_set_after_invalidation_is_dropped(self):
        """A count read before an invalidation must not be stored after it."""
        cache = UnreadCountCache(ttl_seconds=60)
        generation = cache.generation(1)

        cache.invalidate(1)
        stored = cache.set(1, 4, generation=generation)

        assert stored is False
        assert cache.get(1) is None

    def test_set_with_current_generation_is_stored(self):
        cache = UnreadCountCache(ttl_seconds=60)
        cache.invalidate(1)

        assert cache.set(1, 4, generation=cache.generation(1)) is True
        assert cache.get(1) == 4

    def test_invalidate_many_bumps_generations(self):
        cache = UnreadCountCache(ttl_seconds=60)
        before = cache.generation(2)

        cache.invalidate_many([2, 3])

        assert cache.generation(2) == before + 1
        assert cache.set(2, 9, generation=before) is False

    def test_clear_resets_entries_and_stats(self):
        cache = UnreadCountCache(ttl_seconds=60)
        cache.set(1, 4)
        cache.get(1)
        cache.get(2)

        cache.clear()

        assert cache.get_stats() == {"entries": 0, "hits": 0, "misses": 0, "ttl_seconds": 60}


class TestCacheStatistics:
    """Tests for cache statistics."""

    def test_tracks_hits_and_misses(self):
        cache = UnreadCountCache(ttl_seconds=60)
        cache.set(1, 4)
        cache.get(1)
        cache.get(1)
        cache.get(2)

        stats = cache.get_stats()

        assert stats["entries"] == 1
        assert stats["hits"] == 2
        assert stats["misses"] == 1


class TestThreadSafety:
    """Tests for concurrent access."""

    def test_concurrent_set_and_invalidate(self):
        cache = UnreadCountCache(ttl_seconds=60)
        errors = []

        def worker(user_id):
            try:
                for i in range(200):
                    cache.set(user_id, i)
                    cache.get(user_id)
                    cache.invalidate(user_id)
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert cache.get_stats()["entries"] == 0


class TestGlobalCache:
    """Tests for the process-wide instance."""

    def test_init_replaces_global(self):
        cache = init_unread_count_cache(ttl_seconds=15)

        assert get_unread_count_cache() is cache
        assert cache.ttl_seconds == 15
