"""
Context Cache Unit Tests

Tests for the TTL + LRU context cache.
"""

import pytest
import asyncio

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from context.context_cache import ContextCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestContextCache:
    """ContextCache tests"""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        return ContextCache(ttl_seconds=10, max_size=3, clock=clock)

    def test_get_miss_returns_none(self, cache):
        assert cache.get("missing") is None
        assert cache.get_stats()["misses"] == 1

    def test_put_and_get(self, cache):
        cache.put("project-1", {"files": 12})

        assert cache.get("project-1") == {"files": 12}
        assert cache.get_stats()["hits"] == 1

    def test_expired_entry_is_never_returned(self, cache, clock):
        cache.put("project-1", "index")
        clock.advance(10.5)

        assert cache.get("project-1") is None
        assert len(cache) == 0

    def test_entry_at_exact_ttl_is_still_valid(self, cache, clock):
        cache.put("project-1", "index")
        clock.advance(10)

        assert cache.get("project-1") == "index"

    def test_get_refreshes_ttl(self, cache, clock):
        """A hit slides the expiry window forward."""
        cache.put("project-1", "index")
        clock.advance(8)
        assert cache.get("project-1") == "index"

        clock.advance(8)
        assert cache.get("project-1") == "index"

    def test_put_beyond_capacity_evicts_exactly_one_oldest(self, cache, clock):
        cache.put("a", 1)
        clock.advance(1)
        cache.put("b", 2)
        clock.advance(1)
        cache.put("c", 3)
        clock.advance(1)

        # Refreshing "a" makes "b" the least recently refreshed
        cache.get("a")
        clock.advance(1)
        cache.put("d", 4)

        assert len(cache) == 3
        assert "b" not in cache
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.get("d") == 4
        assert cache.get_stats()["evictions"] == 1

    def test_put_existing_key_does_not_evict(self, cache):
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)
        cache.put("a", 10)

        assert len(cache) == 3
        assert cache.get("a") == 10
        assert cache.get_stats()["evictions"] == 0

    def test_invalidate(self, cache):
        cache.put("a", 1)

        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False
        assert cache.get("a") is None

    def test_clear(self, cache):
        cache.put("a", 1)
        cache.put("b", 2)

        assert cache.clear() == 2
        assert len(cache) == 0

    def test_stats_include_entry_age_and_hits(self, cache, clock):
        cache.put("a", 1)
        clock.advance(2)
        cache.get("a")
        cache.get("a")
        clock.advance(3)

        stats = cache.get_stats()
        assert stats["size"] == 1
        assert stats["max_size"] == 3
        assert stats["ttl_seconds"] == 10
        entry = stats["entries"][0]
        assert entry["key"] == "a"
        assert entry["hit_count"] == 2
        assert entry["age_seconds"] == pytest.approx(3)

    def test_invalid_max_size(self):
        with pytest.raises(ValueError):
            ContextCache(max_size=0)

    @pytest.mark.asyncio
    async def test_get_or_load_calls_loader_once_for_concurrent_callers(self, cache):
        calls = 0

        async def loader():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "scanned"

        results = await asyncio.gather(*[cache.get_or_load("project-1", loader) for _ in range(5)])

        assert results == ["scanned"] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_get_or_load_reloads_after_expiry(self, cache, clock):
        values = iter(["first", "second"])

        async def loader():
            return next(values)

        assert await cache.get_or_load("k", loader) == "first"
        clock.advance(11)
        assert await cache.get_or_load("k", loader) == "second"
