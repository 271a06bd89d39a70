"""
Time-bounded result caching.

A small thread-safe key/value store whose entries expire a fixed time after
they were written.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class CacheStatus(Enum):
    """Freshness of a cached value."""
    FRESH = "fresh"
    STALE = "stale"      # Still valid but close to expiry
    EXPIRED = "expired"


@dataclass(frozen=True)
class CacheMetadata:
    """Bookkeeping for a single cached value."""
    status: CacheStatus
    cached_at: float
    expires_at: float
    hit_count: int


@dataclass(frozen=True)
class CacheStats:
    """Aggregate cache counters."""
    hits: int
    misses: int
    size: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        if lookups == 0:
            return 0.0
        return self.hits / lookups


@dataclass
class _Slot(Generic[V]):
    value: V
    stored_at: float
    hit_count: int = 0


class TTLCache(Generic[K, V]):
    """Key/value cache with a fixed time-to-live.

    A value is valid strictly while `clock() - stored_at < ttl_seconds`.
    Expired values are evicted on lookup and swept on every write. Each
    operation runs under a single lock; two concurrent writers for one key
    simply leave the last value in place.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        stale_after_seconds: Optional[float] = None
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Lifetime of a stored value
            clock: Monotonic time source, in seconds
            stale_after_seconds: Remaining lifetime below which a value
                is reported as STALE in its metadata

        Raises:
            ValueError: If ttl_seconds is not positive
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")

        self.ttl_seconds = ttl_seconds
        self.stale_after_seconds = stale_after_seconds
        self._clock = clock
        self._slots: Dict[K, _Slot[V]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _is_expired(self, slot: _Slot[V], now: float) -> bool:
        return now - slot.stored_at >= self.ttl_seconds

    def get(self, key: K) -> Optional[V]:
        """Return the cached value, or None on a miss or after expiry."""
        with self._lock:
            slot = self._slots.get(key)
            if slot is None:
                self._misses += 1
                return None

            if self._is_expired(slot, self._clock()):
                del self._slots[key]
                self._misses += 1
                return None

            slot.hit_count += 1
            self._hits += 1
            return slot.value

    def put(self, key: K, value: V) -> None:
        """Store a value and sweep every other expired entry."""
        with self._lock:
            now = self._clock()
            self._slots[key] = _Slot(value=value, stored_at=now)
            expired = [k for k, slot in self._slots.items() if self._is_expired(slot, now)]
            for k in expired:
                del self._slots[k]

    def clear(self) -> None:
        """Drop every entry regardless of age and reset the counters."""
        with self._lock:
            self._slots.clear()
            self._hits = 0
            self._misses = 0

    def metadata(self, key: K) -> Optional[CacheMetadata]:
        """Describe the cached value for a key without counting a lookup."""
        with self._lock:
            slot = self._slots.get(key)
            if slot is None:
                return None

            now = self._clock()
            expires_at = slot.stored_at + self.ttl_seconds
            remaining = expires_at - now

            if remaining <= 0:
                status = CacheStatus.EXPIRED
            elif self.stale_after_seconds is not None and remaining <= self.stale_after_seconds:
                status = CacheStatus.STALE
            else:
                status = CacheStatus.FRESH

            return CacheMetadata(
                status=status,
                cached_at=slot.stored_at,
                expires_at=expires_at,
                hit_count=slot.hit_count
            )

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, size=len(self._slots))

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
