"""Expiring key-value caches for metadata records and favicon lookups.

Two backends share one narrow async contract (get / set / clear / size):

- MemoryCache: in-process dict with lazy expiry against an injectable clock
- RedisCache: JSON values under a key prefix, degrading to "miss" when
  Redis is unreachable so requests keep working without a cache

Caches are built once per application and passed to the services that use
them; nothing reads a module-level cache directly.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import redis.asyncio as aioredis

from linkmeta.config import settings

logger = logging.getLogger(__name__)

# Cached value for a favicon lookup that exhausted every candidate.
# Distinct from a miss ("not yet checked").
NOT_FOUND = "NOT_FOUND"


class Cache:
    """Async cache contract used by the services."""

    async def get(self, key: str) -> Any | None:
        raise NotImplementedError

    async def set(self, key: str, value: Any, ttl: int) -> None:
        raise NotImplementedError

    async def clear(self) -> None:
        raise NotImplementedError

    async def size(self) -> int:
        raise NotImplementedError


class MemoryCache(Cache):
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = (self._clock() + ttl, value)

    async def clear(self) -> None:
        self._entries.clear()

    async def size(self) -> int:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            self._entries.pop(key, None)
        return len(self._entries)


_REDIS_ERRORS = (aioredis.ConnectionError, aioredis.TimeoutError, ConnectionRefusedError, OSError)


class RedisCache(Cache):
    def __init__(self, prefix: str, client: aioredis.Redis):
        self._prefix = prefix
        self._client = client

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Any | None:
        try:
            data = await self._client.get(self._key(key))
        except _REDIS_ERRORS as e:
            logger.warning(f"Redis cache get failed (degraded): {e}")
            return None
        if data is None:
            return None
        return json.loads(data)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        try:
            await self._client.setex(self._key(key), ttl, json.dumps(value, default=str))
        except _REDIS_ERRORS as e:
            logger.warning(f"Redis cache set failed (degraded): {e}")

    async def _keys(self) -> list[str]:
        return [k async for k in self._client.scan_iter(match=f"{self._prefix}*")]

    async def clear(self) -> None:
        try:
            keys = await self._keys()
            if keys:
                await self._client.delete(*keys)
        except _REDIS_ERRORS as e:
            logger.warning(f"Redis cache clear failed (degraded): {e}")

    async def size(self) -> int:
        try:
            return len(await self._keys())
        except _REDIS_ERRORS as e:
            logger.warning(f"Redis cache size failed (degraded): {e}")
            return 0


@dataclass
class Caches:
    metadata: Cache
    favicon: Cache

    async def clear(self) -> None:
        await self.metadata.clear()
        await self.favicon.clear()

    async def stats(self) -> dict[str, int]:
        return {
            "cacheSize": await self.metadata.size(),
            "faviconCacheSize": await self.favicon.size(),
        }


def build_caches(backend: str | None = None) -> Caches:
    """Create the metadata and favicon caches for the configured backend."""
    backend = backend or settings.CACHE_BACKEND
    if backend == "redis":
        client = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        logger.info(f"Using Redis cache backend at {settings.REDIS_URL}")
        return Caches(
            metadata=RedisCache("cache:metadata:", client),
            favicon=RedisCache("cache:favicon:", client),
        )
    return Caches(metadata=MemoryCache(), favicon=MemoryCache())
