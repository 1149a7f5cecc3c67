'''
Cache facade used to memoize outbound API responses.

1- MemoryCacheStore: process-local dict with per-key expiry (default, tests)
2- RedisCacheStore: redis.asyncio backed store with JSON values
3- Cache: the facade (get / put / forget / remember)
4- create_cache / close_cache / get_cache: lifespan hooks and FastAPI dependency
'''
import json
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from redis import asyncio as aioredis

from .config import settings
from .logger import log


class MemoryCacheStore:
    """Stores values in a dict next to their monotonic expiry time."""

    def __init__(self):
        self._items: Dict[str, Tuple[float, Any]] = {}

    async def get(self, key: str) -> Any | None:
        item = self._items.get(key)
        if item is None:
            return None
        expires_at, value = item
        if expires_at <= time.monotonic():
            del self._items[key]
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int) -> None:
        now = time.monotonic()
        self._sweep(now)
        self._items[key] = (now + ttl, value)

    def _sweep(self, now: float) -> None:
        """Drops every expired entry, including keys that are never read again."""
        expired = [key for key, (expires_at, _) in self._items.items() if expires_at <= now]
        for key in expired:
            del self._items[key]

    def __len__(self) -> int:
        return len(self._items)

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)

    async def clear(self) -> None:
        self._items.clear()

    async def close(self) -> None:
        self._items.clear()


class RedisCacheStore:
    """Stores JSON-encoded values in Redis with a native TTL."""

    def __init__(self, url: str, prefix: str = "tutor_hub:cache:"):
        self._redis = aioredis.from_url(url, decode_responses=True)
        self._prefix = prefix

    async def get(self, key: str) -> Any | None:
        raw = await self._redis.get(self._prefix + key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        await self._redis.set(self._prefix + key, json.dumps(value), ex=ttl)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._prefix + key)

    async def clear(self) -> None:
        async for key in self._redis.scan_iter(match=self._prefix + "*"):
            await self._redis.delete(key)

    async def close(self) -> None:
        await self._redis.aclose()


class Cache:
    """
    Thin facade over a cache store.
    `remember` only stores a value once the factory has returned it, so a
    failing factory leaves nothing behind and the next call retries.
    """

    def __init__(self, store: MemoryCacheStore | RedisCacheStore):
        self.store = store

    async def get(self, key: str) -> Any | None:
        return await self.store.get(key)

    async def put(self, key: str, value: Any, ttl: int) -> None:
        await self.store.set(key, value, ttl)

    async def forget(self, key: str) -> None:
        await self.store.delete(key)

    async def flush(self) -> None:
        await self.store.clear()

    async def remember(
        self,
        key: str,
        ttl: int,
        factory: Callable[[], Awaitable[Any]]
    ) -> Any:
        cached = await self.store.get(key)
        if cached is not None:
            log.info(f"Cache hit for '{key}'.")
            return cached

        log.info(f"Cache miss for '{key}', calling factory.")
        value = await factory()
        await self.store.set(key, value, ttl)
        return value


# Created by the app's lifespan (or lazily on first use).
cache: Optional[Cache] = None

def create_cache() -> Cache:
    """Builds the cache configured by CACHE_BACKEND."""
    global cache
    if settings.CACHE_BACKEND == "redis":
        log.info("Creating Redis cache store...")
        store = RedisCacheStore(settings.REDIS_URL)
    elif settings.CACHE_BACKEND == "memory":
        log.info("Creating in-memory cache store...")
        store = MemoryCacheStore()
    else:
        raise ValueError(f"Unknown CACHE_BACKEND '{settings.CACHE_BACKEND}'.")
    cache = Cache(store)
    return cache

async def close_cache():
    """Closes the cache store. Called by the app's lifespan."""
    global cache
    if cache:
        await cache.store.close()
        log.info("Cache store closed.")
    cache = None

def get_cache() -> Cache:
    """FastAPI dependency returning the shared cache."""
    if cache is None:
        return create_cache()
    return cache
