"""
Context cache for expensive, derivable-on-demand state.
TTL with sliding refresh plus bounded capacity (oldest-refreshed entry evicted first).
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cached payload."""
    key: str
    value: T
    cached_at: float
    ttl: float
    hit_count: int = 0

    def age(self, now: float) -> float:
        """Seconds since the entry was stored or last refreshed."""
        return now - self.cached_at

    def is_expired(self, now: float) -> bool:
        return self.age(now) > self.ttl


class ContextCache(Generic[T]):
    """
    TTL + LRU cache keyed by logical name.

    The cache is never the system of record: every value must be
    recomputable by the caller on a miss.

    Example:
        cache = ContextCache(ttl_seconds=600, max_size=50)

        index = cache.get("project-42")
        if index is None:
            index = await scan_project("project-42")
            cache.put("project-42", index)

        # or, with a single loader per key
        index = await cache.get_or_load("project-42", lambda: scan_project("project-42"))
    """

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        max_size: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Maximum age of an entry since its last refresh
            max_size: Maximum number of entries
            clock: Monotonic time source
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock

        self._entries: Dict[str, CacheEntry[T]] = {}
        self._load_locks: Dict[str, asyncio.Lock] = {}

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def keys(self) -> List[str]:
        return list(self._entries)

    def get(self, key: str) -> Optional[T]:
        """
        Get a cached value.

        A hit refreshes the entry's timestamp (sliding TTL) and
        increments its hit count. Expired entries are dropped.

        Args:
            key: Cache key

        Returns:
            The cached value, or None on a miss
        """
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        now = self._clock()
        if entry.is_expired(now):
            del self._entries[key]
            self._misses += 1
            logger.debug(f"Cache entry expired: {key}")
            return None

        entry.cached_at = now
        entry.hit_count += 1
        self._hits += 1
        return entry.value

    def put(self, key: str, value: T) -> None:
        """
        Store a value.

        When the cache is full and the key is new, exactly one entry,
        the one refreshed least recently, is evicted first.

        Args:
            key: Cache key
            value: Payload to cache
        """
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._evict_oldest()

        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            cached_at=self._clock(),
            ttl=self.ttl_seconds,
        )

    def _evict_oldest(self) -> None:
        oldest_key = min(self._entries, key=lambda k: self._entries[k].cached_at)
        del self._entries[oldest_key]
        self._evictions += 1
        logger.debug(f"Evicted oldest cache entry: {oldest_key}")

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        self._load_locks.pop(key, None)
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Remove all entries. Returns the number removed."""
        count = len(self._entries)
        self._entries.clear()
        self._load_locks.clear()
        logger.info(f"Cleared context cache ({count} entries)")
        return count

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """
        Get a cached value or compute it once.

        Concurrent callers for the same key share a single loader call.

        Args:
            key: Cache key
            loader: Coroutine function producing the value on a miss

        Returns:
            The cached or freshly loaded value
        """
        value = self.get(key)
        if value is not None:
            return value

        lock = self._load_locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another caller may have loaded it while we waited
            entry = self._entries.get(key)
            if entry is not None and not entry.is_expired(self._clock()):
                return entry.value

            value = await loader()
            self.put(key, value)
            return value

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics including per-entry age and hit count."""
        now = self._clock()
        entries: List[Dict[str, Any]] = [
            {
                "key": entry.key,
                "age_seconds": round(entry.age(now), 3),
                "hit_count": entry.hit_count,
                "expired": entry.is_expired(now),
            }
            for entry in self._entries.values()
        ]

        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "entries": entries,
        }
