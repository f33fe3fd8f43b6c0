"""
Hybrid fetch coordinator: runs one of the three fetch strategies against the
primary store and the shared cache window, and times every phase.

Per invocation the phases run strictly in order:

    ReadCache -> (sufficient | insufficient) -> [ReadStore] -> [WriteCache]

store   skip ReadCache, read ``limit`` from the store, always repopulate the window
cache   serve a non-empty window as a hit; an empty window falls back to the
        store path (availability over strategy purity on a cold start)
hybrid  serve a sufficient window as a hit; otherwise read the shortfall from
        the store, append it after the cached items and repopulate the window

Fault handling:
- StoreUnavailable is fatal and carries the partial timings
- CacheUnavailable on read is a miss, on write it is logged and dropped
- the total duration is handed to the timing recorder in the background

No mutual exclusion exists across invocations unless a single-flight lease
is configured: concurrent repopulations race and the last writer wins.
"""
import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional, Set, Union

from cachebench.cache.policy import DEFAULT_TTL_WINDOW
from cachebench.core.errors import CacheUnavailable, InvalidRequest, StoreUnavailable
from cachebench.core.models import (
    Entity,
    FetchResponse,
    FetchResult,
    RemainingTTL,
    TimingEntry,
)
from cachebench.core.ports import ProductStore, TimingRecorder, WindowCache
from cachebench.core.single_flight import NullSingleFlight, SingleFlight
from cachebench.core.strategies import FetchStrategy
from cachebench.core.timing import PhaseTimer, epoch_millis
from cachebench.utils.logger import get_logger

logger = get_logger("core.coordinator")

DEFAULT_CACHE_TTL_SECONDS = DEFAULT_TTL_WINDOW

Handler = Callable[[int, PhaseTimer], Awaitable[FetchResult]]


class HybridFetchCoordinator:
    """
    Orchestrates the store / cache / hybrid strategies.

    Args:
        store: Primary store adapter
        cache: Cache window adapter
        recorder: Optional timing recorder (fire-and-forget)
        ttl_seconds: Expiry set on every cache repopulation
        cache_key: Key name used for single-flight leases
        single_flight: Optional lease around ReadCache..WriteCache
        clock: Monotonic clock in seconds (injectable for tests)
    """

    def __init__(
        self,
        store: ProductStore,
        cache: WindowCache,
        recorder: Optional[TimingRecorder] = None,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        cache_key: str = "products",
        single_flight: Optional[SingleFlight] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.store = store
        self.cache = cache
        self.recorder = recorder
        self.ttl_seconds = ttl_seconds
        self.cache_key = cache_key
        self.single_flight = single_flight or NullSingleFlight()
        self._clock = clock
        self._pending: Set[asyncio.Task] = set()

        self._handlers: Dict[FetchStrategy, Handler] = {
            FetchStrategy.STORE: self._fetch_store_only,
            FetchStrategy.CACHE: self._fetch_cache_only,
            FetchStrategy.HYBRID: self._fetch_hybrid,
        }
        missing = set(FetchStrategy) - set(self._handlers)
        if missing:
            raise TypeError(f"No handler for strategies: {sorted(s.value for s in missing)}")

    #
    # Public API
    #

    async def fetch(
        self, strategy: Union[FetchStrategy, str], limit: int, record_timing: bool = True
    ) -> FetchResult:
        """
        Run one invocation.

        Args:
            strategy: FetchStrategy or its name ("store", "cache", "hybrid", "db")
            limit: Number of entities requested; ``<= 0`` returns an empty
                result without any I/O
            record_timing: Hand the total duration to the timing recorder

        Returns:
            FetchResult

        Raises:
            InvalidRequest: unknown strategy or non-integer limit
            StoreUnavailable: the primary store failed (``timings`` attached)
        """
        try:
            strategy = FetchStrategy.parse(strategy)
        except ValueError:
            raise InvalidRequest(f"Invalid strategy {strategy!r}", field="strategy")
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise InvalidRequest(f"Limit must be an integer, got {limit!r}", field="limit")

        if limit <= 0:
            return FetchResult(requested_strategy=strategy, resolved_strategy=strategy)

        logger.info("Fetching with strategy=%s limit=%d", strategy.value, limit)
        timer = PhaseTimer(self._clock)
        try:
            async with self.single_flight.lease(self.cache_key):
                result = await self._handlers[strategy](limit, timer)
        except StoreUnavailable as e:
            e.timings = timer.finish()
            logger.error(
                "%s fetch failed after %.1fms: %s", strategy.value, e.timings.total, e.message
            )
            raise

        result.timings = timer.finish()
        logger.info(
            "%s fetch completed in %.1fms (found %d items, resolved=%s, hit=%s) "
            "store=%.1fms cache_read=%.1fms cache_write=%.1fms",
            strategy.value,
            result.timings.total,
            result.count,
            result.resolved_strategy.value,
            result.cache_hit,
            result.timings.store_query_ms,
            result.timings.cache_read_ms,
            result.timings.cache_write_ms,
        )

        if record_timing:
            self._schedule_record(strategy, result.timings.total)
        return result

    async def execute(
        self, strategy: Union[FetchStrategy, str], limit: int, record_timing: bool = True
    ) -> FetchResponse:
        """Run one invocation and return a response envelope. Never raises."""
        try:
            requested: Optional[FetchStrategy] = FetchStrategy.parse(strategy)
        except ValueError:
            requested = None

        try:
            result = await self.fetch(strategy, limit, record_timing=record_timing)
        except InvalidRequest as e:
            return FetchResponse.failure(e.message, requested)
        except StoreUnavailable as e:
            return FetchResponse.failure(f"Failed to fetch data: {e.message}", requested, e.timings)
        except Exception as e:
            logger.exception("Unexpected error in fetch (%s)", strategy)
            return FetchResponse.failure(f"Failed to fetch data: {e}", requested)
        return FetchResponse.from_result(result)

    async def drain(self) -> None:
        """Wait for background timing writes to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    #
    # Strategy handlers
    #

    async def _fetch_store_only(self, limit: int, timer: PhaseTimer) -> FetchResult:
        entities = await self._read_store(limit, timer)
        await self._write_cache(entities, timer)
        return FetchResult(
            requested_strategy=FetchStrategy.STORE,
            resolved_strategy=FetchStrategy.STORE,
            entities=entities,
            cache_hit=False,
            timings=timer.timings,
        )

    async def _fetch_cache_only(self, limit: int, timer: PhaseTimer) -> FetchResult:
        cached = await self._read_cache(limit, timer)
        if cached:
            ttl = await self._read_ttl(timer)
            return FetchResult(
                requested_strategy=FetchStrategy.CACHE,
                resolved_strategy=FetchStrategy.CACHE,
                entities=cached[:limit],
                cache_hit=True,
                timings=timer.timings,
                ttl=ttl,
            )

        # Deliberate degradation: an empty window is served from the store
        logger.info("Cache window empty, cache strategy falling back to the store")
        entities = await self._read_store(limit, timer)
        await self._write_cache(entities, timer)
        return FetchResult(
            requested_strategy=FetchStrategy.CACHE,
            resolved_strategy=FetchStrategy.STORE,
            entities=entities,
            cache_hit=False,
            timings=timer.timings,
        )

    async def _fetch_hybrid(self, limit: int, timer: PhaseTimer) -> FetchResult:
        cached = await self._read_cache(limit, timer)

        if len(cached) >= limit:
            ttl = await self._read_ttl(timer)
            return FetchResult(
                requested_strategy=FetchStrategy.HYBRID,
                resolved_strategy=FetchStrategy.CACHE,
                entities=cached[:limit],
                cache_hit=True,
                timings=timer.timings,
                ttl=ttl,
            )

        remaining = limit - len(cached)
        fetched: List[Entity] = []
        if remaining > 0:
            fetched = await self._read_store(remaining, timer)

        combined = cached + fetched
        if fetched:
            await self._write_cache(combined, timer)
        ttl = await self._read_ttl(timer)

        if cached and fetched:
            resolved = FetchStrategy.HYBRID
        elif fetched:
            resolved = FetchStrategy.STORE
        elif cached:
            resolved = FetchStrategy.CACHE
        else:
            resolved = FetchStrategy.HYBRID

        # Not a hit: the cache alone did not meet the requested count
        return FetchResult(
            requested_strategy=FetchStrategy.HYBRID,
            resolved_strategy=resolved,
            entities=combined,
            cache_hit=False,
            timings=timer.timings,
            ttl=ttl,
        )

    #
    # Phases
    #

    async def _read_cache(self, limit: int, timer: PhaseTimer) -> List[Entity]:
        with timer.phase("cache_read"):
            try:
                entities = await self.cache.read_window(limit)
            except CacheUnavailable as e:
                logger.warning("Cache read failed, treating as a miss: %s", e.message)
                return []
        return list(entities)[:limit]

    async def _read_store(self, limit: int, timer: PhaseTimer) -> List[Entity]:
        with timer.phase("store_query"):
            entities = await self.store.query(limit)
        if len(entities) < limit:
            logger.info("Store returned %d of %d requested items", len(entities), limit)
        return list(entities)[:limit]

    async def _write_cache(self, entities: List[Entity], timer: PhaseTimer) -> bool:
        with timer.phase("cache_write"):
            try:
                await self.cache.replace_window(entities, self.ttl_seconds)
            except CacheUnavailable as e:
                logger.warning("Cache repopulation failed, result still served: %s", e.message)
                return False
        return True

    async def _read_ttl(self, timer: PhaseTimer) -> Optional[RemainingTTL]:
        with timer.phase("cache_read"):
            try:
                return await self.cache.remaining_ttl()
            except CacheUnavailable as e:
                logger.warning("Cache TTL read failed: %s", e.message)
                return None

    #
    # Timing history
    #

    def _schedule_record(self, strategy: FetchStrategy, total_ms: float) -> None:
        if self.recorder is None:
            return
        entry = TimingEntry(timestamp=epoch_millis(), total=round(total_ms, 3))
        task = asyncio.get_running_loop().create_task(self._record_safely(strategy, entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record_safely(self, strategy: FetchStrategy, entry: TimingEntry) -> None:
        try:
            await self.recorder.record(strategy, entry)
        except Exception:
            logger.exception("Failed to record timing for %s", strategy.value)
