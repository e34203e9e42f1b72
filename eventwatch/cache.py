"""
In-memory caches for upstream payloads and merged responses.

Provides time-aware caches that sit in front of the VATSIM and STATSIM
feeds, enabling:
- Fast reads without hitting rate-limited upstream APIs
- Explicit expiry checks against a configurable TTL
- Stale fallback when a fresh fetch fails
- Thread-safe operations for concurrent Flask request threads

Tiers (see config.CacheConfig):
- live snapshot:   30s TTL, matches the VATSIM feed refresh cadence
- historical:      10min TTL, keyed by (from, to), last 50 ranges
- response:        5min TTL, the fully merged event list

Expired entries are kept, not deleted, so get_stale_fallback() can serve
them when upstream is down. They are only dropped by capacity eviction or
replaced by the next successful set().
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Generic, Hashable, Optional, TypeVar

from eventwatch.timeutils import Clock, utc_now

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Hashable)
V = TypeVar('V')


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Cached payload with its capture time."""
    value: V
    timestamp: datetime

    def age_seconds(self, now: datetime) -> float:
        return (now - self.timestamp).total_seconds()


class TTLCache(Generic[K, V]):
    """
    Thread-safe bounded-lifetime key/value cache.

    Eviction is by insertion order (FIFO), not access order: re-setting an
    existing key refreshes its timestamp but keeps its slot.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: Optional[int] = None,
        name: str = 'cache',
        clock: Clock = utc_now,
    ):
        if ttl_seconds <= 0:
            raise ValueError('ttl_seconds must be positive')
        if max_entries is not None and max_entries < 1:
            raise ValueError('max_entries must be at least 1')

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.name = name
        self._clock = clock

        self._entries: Dict[K, CacheEntry[V]] = {}
        self._lock = threading.RLock()

        # Statistics
        self._hits = 0
        self._misses = 0
        self._stale_hits = 0
        self._evictions = 0

    def get(self, key: K) -> Optional[V]:
        """
        Get a cached value by key.

        Returns None if not cached or expired. Expired entries stay
        available to get_stale_fallback().
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                age = entry.age_seconds(self._clock())
                if age < self.ttl_seconds:
                    self._hits += 1
                    logger.debug(f'{self.name}: hit for {key!r} ({age:.0f}s old)')
                    return entry.value
            self._misses += 1
        return None

    def get_entry(self, key: K) -> Optional[CacheEntry[V]]:
        """Get the raw entry regardless of TTL."""
        with self._lock:
            return self._entries.get(key)

    def get_stale_fallback(self, key: K) -> Optional[V]:
        """
        Get the most recent value regardless of TTL.

        Only meant for use after a fresh upstream fetch has failed.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            self._stale_hits += 1
            age = entry.age_seconds(self._clock())

        logger.warning(f'{self.name}: serving stale value for {key!r} ({age:.0f}s old)')
        return entry.value

    def set(self, key: K, value: V) -> None:
        """Store a value with timestamp=now, evicting the oldest entry if over capacity."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, timestamp=self._clock())

            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._evict_oldest()

    def _evict_oldest(self) -> None:
        """Remove the earliest-inserted entry."""
        oldest = next(iter(self._entries))
        del self._entries[oldest]
        self._evictions += 1
        logger.debug(f'{self.name}: evicted {oldest!r}')

    def invalidate(self, key: K) -> None:
        """Remove specific entry from cache."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Clear entire cache."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: K) -> bool:
        with self._lock:
            return key in self._entries

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                'entries': len(self._entries),
                'max_entries': self.max_entries,
                'ttl_seconds': self.ttl_seconds,
                'hits': self._hits,
                'misses': self._misses,
                'stale_hits': self._stale_hits,
                'evictions': self._evictions,
                'hit_rate': self._hits / lookups if lookups > 0 else 0,
            }


class ResponseCache(Generic[V]):
    """
    Short-TTL cache for a single fully computed response.

    Avoids recomputing the live/cached event merge on every request. The
    last stored response doubles as the last known good result when the
    events feed is down.
    """

    _KEY = 'response'

    def __init__(self, ttl_seconds: float, clock: Clock = utc_now):
        self._clock = clock
        self._cache: TTLCache[str, V] = TTLCache(
            ttl_seconds=ttl_seconds,
            max_entries=1,
            name='response-cache',
            clock=clock,
        )

    @property
    def ttl_seconds(self) -> float:
        return self._cache.ttl_seconds

    def get(self) -> Optional[V]:
        """Get the cached response if still fresh."""
        return self._cache.get(self._KEY)

    def set(self, value: V) -> None:
        self._cache.set(self._KEY, value)

    def last_good(self) -> Optional[V]:
        """Get the last stored response regardless of age."""
        return self._cache.get_stale_fallback(self._KEY)

    def age_seconds(self) -> Optional[float]:
        entry = self._cache.get_entry(self._KEY)
        if entry is None:
            return None
        return entry.age_seconds(self._clock())

    def invalidate(self) -> None:
        self._cache.clear()

    @property
    def stats(self) -> dict:
        return self._cache.stats
