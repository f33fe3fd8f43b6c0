"""
Bounded per-strategy history of fetch durations.

Each strategy keeps its newest ``limit`` TimingEntry items. Recording is
fire-and-forget from the fetch path: failures are logged, never raised.
"""
from collections import defaultdict, deque
from typing import Deque, Dict, List

from redis.exceptions import RedisError

from cachebench.cache.policy import (
    DEFAULT_TIMING_HISTORY_LIMIT,
    DEFAULT_TIMING_KEY_PREFIX,
    timing_key,
)
from cachebench.core.errors import CacheUnavailable, DeserializationError
from cachebench.core.models import TimingEntry
from cachebench.core.ports import TimingRecorder
from cachebench.core.strategies import FetchStrategy
from cachebench.utils.logger import get_logger

logger = get_logger("reporting.timing_recorder")


class RedisTimingRecorder(TimingRecorder):
    """
    Timing history stored as Redis lists (``fetch_times:{strategy}``).

    New entries are pushed at the head and the list is trimmed to the newest
    ``limit`` entries, so the oldest entry is evicted first.
    """

    def __init__(
        self,
        client,
        limit: int = DEFAULT_TIMING_HISTORY_LIMIT,
        key_prefix: str = DEFAULT_TIMING_KEY_PREFIX,
    ):
        self.client = client
        self.limit = limit
        self.key_prefix = key_prefix

    def key_for(self, strategy: FetchStrategy) -> str:
        return timing_key(strategy.value, self.key_prefix)

    async def record(self, strategy: FetchStrategy, entry: TimingEntry) -> None:
        key = self.key_for(strategy)
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.lpush(key, entry.to_json())
                pipe.ltrim(key, 0, self.limit - 1)  # keep last N entries
                await pipe.execute()
        except (RedisError, OSError) as e:
            logger.error("Failed to record timing in Redis for %s: %s", strategy.value, e)

    async def history(self, strategy: FetchStrategy) -> List[TimingEntry]:
        """Entries oldest first. Raises CacheUnavailable when Redis is unreachable."""
        key = self.key_for(strategy)
        try:
            raw_entries = await self.client.lrange(key, 0, -1)
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"Failed to read timing history '{key}': {e}", operation="history") from e

        entries: List[TimingEntry] = []
        # Stored newest first
        for raw in reversed(raw_entries):
            try:
                entries.append(TimingEntry.from_json(raw))
            except DeserializationError as e:
                logger.warning("Dropping timing entry from '%s': %s", key, e.message)
        return entries

    async def clear(self) -> None:
        try:
            await self.client.delete(*[self.key_for(s) for s in FetchStrategy])
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"Failed to clear timing histories: {e}", operation="clear") from e


class InMemoryTimingRecorder(TimingRecorder):
    """Process-local timing history (sliding window per strategy)."""

    def __init__(self, limit: int = DEFAULT_TIMING_HISTORY_LIMIT):
        self.limit = limit
        self._entries: Dict[FetchStrategy, Deque[TimingEntry]] = defaultdict(
            lambda: deque(maxlen=limit)
        )

    async def record(self, strategy: FetchStrategy, entry: TimingEntry) -> None:
        self._entries[strategy].append(entry)

    async def history(self, strategy: FetchStrategy) -> List[TimingEntry]:
        return list(self._entries[strategy])

    async def clear(self) -> None:
        self._entries.clear()
