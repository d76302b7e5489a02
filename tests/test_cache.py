"""Tests for the TTL cache."""

import asyncio

import pytest

from crosswap.utils.cache import CACHE_TTL, TTLCache


class TestTTLCache:
    """Tests for TTLCache expiry."""

    def test_get_before_expiry(self, cache):
        """Values are returned until their TTL elapses."""
        cache.set("a", {"x": 1}, 1000)
        assert cache.get("a") == {"x": 1}
        assert cache.has("a")

    def test_get_after_expiry(self, cache, clock):
        """Expired values read as missing and are dropped."""
        cache.set("a", 1, 1000)
        clock.advance(1.0)

        assert cache.get("a") is None
        assert cache.size() == 0

    def test_missing_key(self, cache):
        assert cache.get("nope") is None
        assert not cache.has("nope")

    def test_delete_and_clear(self, cache):
        cache.set("a", 1, 1000)
        cache.set("b", 2, 1000)

        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert cache.size() == 0

    def test_overwrite_resets_ttl(self, cache, clock):
        cache.set("a", 1, 1000)
        clock.advance(0.9)
        cache.set("a", 2, 1000)
        clock.advance(0.5)

        assert cache.get("a") == 2

    def test_sweep_removes_only_expired(self, cache, clock):
        """Sweep drops expired entries without touching live ones."""
        cache.set("short", 1, 100)
        cache.set("long", 2, 10_000)
        clock.advance(1.0)

        assert cache.sweep() == 1
        assert cache.size() == 1
        assert cache.get("long") == 2

    def test_ttl_constants_are_milliseconds(self):
        assert CACHE_TTL.SEARCH == 60_000
        assert CACHE_TTL.TOKENS > CACHE_TTL.SEARCH


class TestCacheSweepTask:
    """Tests for the background sweep task."""

    @pytest.mark.asyncio
    async def test_background_sweep(self, cache, clock):
        """The sweep task removes expired entries without any reads."""
        cache.set("a", 1, 100)
        clock.advance(1.0)

        cache.start()
        await asyncio.sleep(0.05)
        await cache.stop()

        assert cache.size() == 0

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        cache = TTLCache()
        await cache.stop()
