"""
Redis list-backed cache window.

The window is one Redis list of JSON-encoded entities under a single shared
key. Reads take the head of the list; writes replace the whole list and reset
its expiry. Redis is ONLY a cache, the SQL store is authoritative.

Connectivity failures surface as CacheUnavailable so callers can tell them
apart from a genuine miss (an empty list).
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Sequence

from redis.exceptions import RedisError

from cachebench.cache.policy import DEFAULT_TTL_WINDOW, DEFAULT_WINDOW_KEY
from cachebench.core.errors import CacheUnavailable, DeserializationError
from cachebench.core.models import Entity, RemainingTTL
from cachebench.core.ports import WindowCache
from cachebench.utils.logger import get_logger

logger = get_logger("cache.window")


class RedisWindowCache(WindowCache):
    """
    Cache window adapter over a redis.asyncio client.

    Args:
        client: redis.asyncio.Redis created with decode_responses=True
        key: Shared window key
    """

    def __init__(self, client, key: str = DEFAULT_WINDOW_KEY):
        self.client = client
        self.key = key

    @contextmanager
    def _cache_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"Redis {operation} failed for '{self.key}': {e}", operation=operation) from e

    async def ping(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        await self.client.aclose()

    #
    # Window
    #

    async def read_window(self, count: int) -> List[Entity]:
        """Up to ``count`` entities from the head of the window. Bad items are dropped."""
        if count <= 0:
            return []
        with self._cache_errors("read"):
            raw_items = await self.client.lrange(self.key, 0, count - 1)

        entities: List[Entity] = []
        for index, raw in enumerate(raw_items):
            try:
                entities.append(Entity.from_json(raw))
            except DeserializationError as e:
                logger.warning("Dropping cached item %d of '%s': %s", index, self.key, e.message)
        return entities

    async def remaining_ttl(self) -> RemainingTTL:
        with self._cache_errors("ttl"):
            value = await self.client.ttl(self.key)
        return RemainingTTL.from_redis(int(value))

    async def replace_window(self, entities: Sequence[Entity], ttl_seconds: int = DEFAULT_TTL_WINDOW) -> None:
        """Replace the whole window in one transaction and reset its expiry."""
        payloads = [entity.to_json() for entity in entities]
        with self._cache_errors("write"):
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.delete(self.key)
                if payloads:
                    pipe.rpush(self.key, *payloads)
                    pipe.expire(self.key, ttl_seconds)
                await pipe.execute()
        logger.debug("Replaced '%s' with %d items (ttl=%ds)", self.key, len(payloads), ttl_seconds)

    async def clear(self) -> None:
        with self._cache_errors("clear"):
            await self.client.delete(self.key)

    async def keys(self, pattern: str = "*") -> List[str]:
        with self._cache_errors("scan"):
            return [key async for key in self.client.scan_iter(match=pattern, count=100)]

    #
    # Administration
    #

    async def clear_all(self, pattern: str = "*") -> int:
        """Delete every key matching ``pattern``. Returns count of keys deleted."""
        keys = await self.keys(pattern)
        if not keys:
            return 0
        with self._cache_errors("clear_all"):
            return int(await self.client.delete(*keys))

    async def key_info(self, sample_size: int = 5) -> Dict[str, Any]:
        """Type, TTL, length, sample size in bytes and the first few items of the window."""
        with self._cache_errors("key_info"):
            key_type = await self.client.type(self.key)
            ttl = await self.client.ttl(self.key)
            sample: List[str] = []
            length = 0
            if key_type == "list":
                sample = await self.client.lrange(self.key, 0, sample_size - 1)
                length = await self.client.llen(self.key)
        return {
            "key": self.key,
            "type": key_type,
            "ttl": int(ttl),
            "length": int(length),
            "size": sum(len(item.encode("utf-8")) for item in sample),
            "sample": sample,
        }

    async def server_info(self) -> Dict[str, Any]:
        """Parsed Redis INFO output."""
        with self._cache_errors("info"):
            return dict(await self.client.info())
