"""Tests for the time-boxed cache."""

from __future__ import annotations

import asyncio

import pytest

from core.cache import TimedCache
from tests.conftest import FakeClock


@pytest.fixture
def cache(clock: FakeClock) -> TimedCache:
    return TimedCache(clock=clock.monotonic)


class TestTimedCache:
    @pytest.mark.asyncio
    async def test_get_before_ttl_returns_value(self, cache: TimedCache, clock: FakeClock) -> None:
        await cache.set("current", {"temperature": 18.0}, ttl=300)
        clock.advance(299)
        assert await cache.get("current") == {"temperature": 18.0}

    @pytest.mark.asyncio
    async def test_get_at_or_after_ttl_is_a_miss(self, cache: TimedCache, clock: FakeClock) -> None:
        await cache.set("current", "reading", ttl=300)
        clock.advance(300)
        assert await cache.get("current") is None

    @pytest.mark.asyncio
    async def test_expired_entry_is_removed(self, cache: TimedCache, clock: FakeClock) -> None:
        await cache.set("weather", "snapshot", ttl=10)
        clock.advance(11)
        assert await cache.get("weather") is None
        # Rewinding the clock cannot resurrect a removed entry
        clock.advance(-11)
        assert await cache.get("weather") is None

    @pytest.mark.asyncio
    async def test_never_set_key_is_a_miss(self, cache: TimedCache) -> None:
        assert await cache.get("missing") is None

    @pytest.mark.asyncio
    async def test_last_writer_wins(self, cache: TimedCache) -> None:
        await asyncio.gather(
            cache.set("key", "first", ttl=60),
            cache.set("key", "second", ttl=60),
        )
        assert await cache.get("key") == "second"

    @pytest.mark.asyncio
    async def test_each_entry_has_its_own_ttl(self, cache: TimedCache, clock: FakeClock) -> None:
        await cache.set("short", 1, ttl=60)
        await cache.set("long", 2, ttl=1800)
        clock.advance(120)
        assert await cache.get("short") is None
        assert await cache.get("long") == 2

    @pytest.mark.asyncio
    async def test_clear_drops_everything(self, cache: TimedCache) -> None:
        await cache.set("a", 1, ttl=60)
        await cache.set("b", 2, ttl=60)
        await cache.clear()
        assert await cache.get("a") is None
        assert await cache.get("b") is None

    @pytest.mark.asyncio
    async def test_instances_are_isolated(self, clock: FakeClock) -> None:
        first = TimedCache(clock=clock.monotonic)
        second = TimedCache(clock=clock.monotonic)
        await first.set("current", "one", ttl=60)
        assert await second.get("current") is None

    @pytest.mark.asyncio
    async def test_expired_read_keeps_entry_written_meanwhile(self, cache: TimedCache, clock: FakeClock) -> None:
        await cache.set("current", "old", ttl=10)
        clock.advance(11)

        backend_get = cache._backend.get

        async def get_then_overwrite(key, *args, **kwargs):
            entry = await backend_get(key, *args, **kwargs)
            if entry is not None and entry.value == "old":
                await cache.set(key, "new", ttl=10)
            return entry

        cache._backend.get = get_then_overwrite
        assert await cache.get("current") is None

        cache._backend.get = backend_get
        assert await cache.get("current") == "new"
