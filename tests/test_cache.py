"""
Unit tests for the TTL report cache.

Uses a controllable clock so expiry can be tested without sleeping.
"""

import threading

import pytest

from claude_usage_stats.core.cache import CacheStatus, TTLCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestTTLCache:
    """Test storage, expiry and eviction."""

    def setup_method(self):
        """Set up a cache with a 60 second TTL."""
        self.clock = FakeClock()
        self.cache = TTLCache(ttl_seconds=60, clock=self.clock, stale_after_seconds=10)

    def test_invalid_ttl_rejected(self):
        """A non-positive TTL is a configuration error."""
        with pytest.raises(ValueError, match="ttl_seconds must be > 0"):
            TTLCache(ttl_seconds=0)

    def test_get_missing_key(self):
        """Looking up an unknown key returns None."""
        assert self.cache.get("missing") is None

    def test_put_then_get(self):
        """A stored value is returned while it is valid."""
        self.cache.put("key", "value")
        assert self.cache.get("key") == "value"

    def test_value_valid_just_before_ttl(self):
        """A value is still returned one instant before its TTL elapses."""
        self.cache.put("key", "value")
        self.clock.advance(59.999)
        assert self.cache.get("key") == "value"

    def test_value_expires_at_ttl(self):
        """At exactly the TTL the value is gone and evicted."""
        self.cache.put("key", "value")
        self.clock.advance(60)

        assert self.cache.get("key") is None
        assert len(self.cache) == 0

    def test_put_overwrites_and_resets_age(self):
        """Re-storing a key replaces its value and restarts its lifetime."""
        self.cache.put("key", "old")
        self.clock.advance(50)
        self.cache.put("key", "new")
        self.clock.advance(50)

        assert self.cache.get("key") == "new"

    def test_put_sweeps_expired_entries(self):
        """Writing one key evicts every other expired key."""
        self.cache.put("a", 1)
        self.cache.put("b", 2)
        self.clock.advance(61)
        self.cache.put("c", 3)

        assert len(self.cache) == 1
        assert self.cache.get("c") == 3

    def test_clear_removes_everything(self):
        """Clear drops all entries regardless of age."""
        self.cache.put("a", 1)
        self.cache.put("b", 2)
        self.cache.clear()

        assert len(self.cache) == 0
        assert self.cache.get("a") is None

    def test_tuple_keys_do_not_collide(self):
        """Composite keys with None and string parts stay distinct."""
        self.cache.put(("all", None), "unfiltered")
        self.cache.put(("all", "all"), "filtered")

        assert self.cache.get(("all", None)) == "unfiltered"
        assert self.cache.get(("all", "all")) == "filtered"

    def test_concurrent_writers(self):
        """Concurrent writes to one key leave exactly one value behind."""
        cache = TTLCache(ttl_seconds=60)

        def writer(value):
            for _ in range(200):
                cache.put("key", value)
                cache.get("key")

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 1
        assert cache.get("key") in range(8)


class TestCacheMetadata:
    """Test freshness reporting and counters."""

    def setup_method(self):
        """Set up a cache with a 60 second TTL and 10 second stale window."""
        self.clock = FakeClock()
        self.cache = TTLCache(ttl_seconds=60, clock=self.clock, stale_after_seconds=10)

    def test_metadata_for_missing_key(self):
        """No metadata exists for keys never stored."""
        assert self.cache.metadata("missing") is None

    def test_fresh_metadata(self):
        """A new value is fresh and carries its timestamps."""
        self.cache.put("key", "value")

        metadata = self.cache.metadata("key")

        assert metadata.status == CacheStatus.FRESH
        assert metadata.cached_at == 1000.0
        assert metadata.expires_at == 1060.0
        assert metadata.hit_count == 0

    def test_stale_metadata(self):
        """A value inside the stale window is reported as stale."""
        self.cache.put("key", "value")
        self.clock.advance(55)

        assert self.cache.metadata("key").status == CacheStatus.STALE

    def test_expired_metadata(self):
        """A value past its TTL is reported as expired until evicted."""
        self.cache.put("key", "value")
        self.clock.advance(60)

        assert self.cache.metadata("key").status == CacheStatus.EXPIRED

    def test_metadata_counts_hits(self):
        """Each successful lookup increments the value's hit count."""
        self.cache.put("key", "value")
        self.cache.get("key")
        self.cache.get("key")

        assert self.cache.metadata("key").hit_count == 2

    def test_stats(self):
        """Stats report hits, misses, size and hit rate."""
        self.cache.put("key", "value")
        self.cache.get("key")
        self.cache.get("key")
        self.cache.get("other")

        stats = self.cache.stats()

        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.size == 1
        assert stats.hit_rate == pytest.approx(2 / 3)

    def test_stats_without_lookups(self):
        """Hit rate is zero before any lookup."""
        assert self.cache.stats().hit_rate == 0.0

    def test_clear_resets_counters(self):
        """Clear resets hit and miss counters."""
        self.cache.put("key", "value")
        self.cache.get("key")
        self.cache.get("other")
        self.cache.clear()

        stats = self.cache.stats()
        assert (stats.hits, stats.misses, stats.size) == (0, 0, 0)
