import pytest
from unittest.mock import AsyncMock

from tutor_hub_backend.common.cache import Cache, MemoryCacheStore


@pytest.mark.anyio
class TestCache:

    async def test_remember_calls_the_factory_once(self, cache: Cache):
        factory = AsyncMock(return_value={"chapters": [1, 2]})

        first = await cache.remember("quran:/chapters", 60, factory)
        second = await cache.remember("quran:/chapters", 60, factory)

        assert first == second == {"chapters": [1, 2]}
        factory.assert_awaited_once()

    async def test_failures_are_not_remembered(self, cache: Cache):
        factory = AsyncMock(side_effect=[RuntimeError("upstream down"), {"ok": True}])

        with pytest.raises(RuntimeError):
            await cache.remember("key", 60, factory)
        assert await cache.get("key") is None

        assert await cache.remember("key", 60, factory) == {"ok": True}
        assert factory.await_count == 2

    async def test_expired_entries_disappear(self):
        cache = Cache(MemoryCacheStore())
        await cache.put("short", "lived", ttl=0)
        await cache.put("long", "lived", ttl=3600)

        assert await cache.get("short") is None
        assert await cache.get("long") == "lived"

    async def test_forget_and_flush(self, cache: Cache):
        await cache.put("a", 1, ttl=60)
        await cache.put("b", 2, ttl=60)

        await cache.forget("a")
        assert await cache.get("a") is None
        assert await cache.get("b") == 2

        await cache.flush()
        assert await cache.get("b") is None

    async def test_writes_sweep_expired_entries(self):
        store = MemoryCacheStore()
        cache = Cache(store)
        await cache.put("quran:chapters:xx", "never read again", ttl=0)
        await cache.put("quran:chapters:yy", "also stale", ttl=0)

        await cache.put("quran:chapters:en", "fresh", ttl=3600)

        assert len(store) == 1
        assert await cache.get("quran:chapters:en") == "fresh"
