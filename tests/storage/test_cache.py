"""Tests for the in-memory cache."""

import pytest

from leader_tracker.storage import Cache


class TestCache:
    @pytest.mark.asyncio
    async def test_set_and_get(self) -> None:
        cache = Cache(default_ttl=60, max_size=10)
        await cache.set("k", "v")
        assert await cache.get("k") == "v"
        assert await cache.get("missing") is None

    @pytest.mark.asyncio
    async def test_expired_entries_dropped(self) -> None:
        cache = Cache(default_ttl=60, max_size=10)
        await cache.set("k", "v", ttl=-1)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_evicts_least_hit_at_capacity(self) -> None:
        cache = Cache(default_ttl=60, max_size=2)
        await cache.set("hot", 1)
        await cache.set("cold", 2)
        await cache.get("hot")

        await cache.set("new", 3)

        assert await cache.get("hot") == 1
        assert await cache.get("cold") is None
        assert await cache.get("new") == 3

    @pytest.mark.asyncio
    async def test_overwrite_does_not_evict(self) -> None:
        cache = Cache(default_ttl=60, max_size=2)
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.set("a", 10)

        assert await cache.get("a") == 10
        assert await cache.get("b") == 2

    @pytest.mark.asyncio
    async def test_get_or_set_with_async_factory(self) -> None:
        cache = Cache(default_ttl=60, max_size=10)
        calls = []

        async def load():
            calls.append(1)
            return {"question": "Rain?"}

        first = await cache.get_or_set("m", lambda: load())
        second = await cache.get_or_set("m", load)

        assert first == second == {"question": "Rain?"}
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_get_or_set_does_not_cache_none(self) -> None:
        cache = Cache(default_ttl=60, max_size=10)
        calls = []

        def load():
            calls.append(1)
            return None

        assert await cache.get_or_set("m", load) is None
        assert await cache.get_or_set("m", load) is None
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_expired_evicted_before_cold_entries(self) -> None:
        cache = Cache(default_ttl=60, max_size=2)
        await cache.set("stale", 1, ttl=-1)
        await cache.set("cold", 2)

        await cache.set("new", 3)

        assert await cache.get("cold") == 2
        assert await cache.get("new") == 3

    def test_defaults_from_config(self, isolated_config) -> None:
        cache = Cache()
        assert cache.default_ttl == isolated_config.storage.cache_ttl_seconds
        assert cache.max_size == isolated_config.storage.max_cached_markets
