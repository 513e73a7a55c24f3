"""
Unit tests for CacheStore.
"""

import pytest

from blog_gateway.services.cache import CacheStore

from conftest import FakeClock


class TestCacheStore:
    """Test cases for CacheStore."""

    @pytest.fixture
    def cache(self, clock):
        return CacheStore(default_ttl=300.0, max_size=3, clock=clock)

    def test_entry_expires_after_ttl(self, cache, clock):
        cache.set("k", "v", 5.0)

        assert cache.get("k").data == "v"

        clock.advance(6.0)
        assert cache.get("k") is None
        assert "k" not in cache

    def test_entry_absent_exactly_at_expiry(self, cache, clock):
        cache.set("k", "v", 5.0)
        clock.advance(5.0)

        assert cache.get("k") is None

    def test_set_overwrites_and_resets_ttl(self, cache, clock):
        cache.set("k", "old", 5.0)
        clock.advance(4.0)
        cache.set("k", "new", 5.0)
        clock.advance(4.0)

        result = cache.get("k")
        assert result.data == "new"
        assert result.expires_in == pytest.approx(1.0)

    def test_cached_null_is_a_hit(self, cache):
        cache.set("k", None)

        result = cache.get("k")
        assert result is not None
        assert result.data is None

    def test_default_ttl_applies(self, cache, clock):
        cache.set("k", {"a": 1})
        clock.advance(299.0)
        assert cache.get("k") is not None
        clock.advance(2.0)
        assert cache.get("k") is None

    def test_lru_eviction_at_capacity(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        cache.get("a")  # a becomes most recently used

        cache.set("d", 4)

        assert "b" not in cache
        assert {"a", "c", "d"} == {k for k in ("a", "b", "c", "d") if k in cache}
        assert cache.get_stats().evictions == 1

    def test_delete_and_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.delete("a") is True
        assert cache.delete("a") is False
        assert cache.clear() == 1
        assert len(cache) == 0

    def test_cleanup_expired(self, cache, clock):
        cache.set("short", 1, 1.0)
        cache.set("long", 2, 100.0)
        clock.advance(2.0)

        assert cache.cleanup_expired() == 1
        assert "short" not in cache
        assert "long" in cache

    def test_stats(self, cache):
        cache.set("a", 1)
        cache.get("a")
        cache.get("missing")

        stats = cache.get_stats().to_dict()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1
        assert stats["hitRate"] == "50.00%"


class TestGenerateKey:
    def test_options_order_does_not_matter(self):
        first = CacheStore.generate_key("search", {"method": "POST", "body": {"a": 1, "b": 2}})
        second = CacheStore.generate_key("search", {"body": {"b": 2, "a": 1}, "method": "POST"})
        assert first == second

    def test_distinct_options_distinct_keys(self):
        assert CacheStore.generate_key("search", {"method": "GET"}) != CacheStore.generate_key(
            "search", {"method": "POST"}
        )

    def test_long_keys_are_hashed(self):
        key = CacheStore.generate_key("databases/x/query", {"body": {"q": "x" * 500}})
        assert len(key) < 200
        assert key.startswith("databases/x/query#")


def test_separate_instances_are_isolated():
    clock = FakeClock()
    first = CacheStore(clock=clock)
    second = CacheStore(clock=clock)

    first.set("k", 1)

    assert second.get("k") is None
