"""
Wiring of store, cache, recorder and coordinator from configuration.

Every collaborator is an explicit dependency of the coordinator; nothing
reaches for a module-level client.
"""
from dataclasses import dataclass
from typing import Optional

from cachebench.cache.client import create_redis_client
from cachebench.cache.window_cache import RedisWindowCache
from cachebench.core.config import CacheBenchConfig, get_config
from cachebench.core.coordinator import HybridFetchCoordinator
from cachebench.core.single_flight import create_single_flight
from cachebench.data.product_store import SqlProductStore
from cachebench.reporting.aggregator import ReportAggregator
from cachebench.reporting.timing_recorder import RedisTimingRecorder
from cachebench.utils.logger import get_logger, set_level

logger = get_logger("core.services")


@dataclass
class CacheBenchServices:
    config: CacheBenchConfig
    store: SqlProductStore
    cache: RedisWindowCache
    recorder: RedisTimingRecorder
    coordinator: HybridFetchCoordinator
    aggregator: ReportAggregator

    async def close(self) -> None:
        """Wait for pending timing writes, then close connections."""
        await self.coordinator.drain()
        await self.cache.close()
        await self.store.close()


def build_services(config: Optional[CacheBenchConfig] = None) -> CacheBenchServices:
    """Create all collaborators. Connections are opened lazily on first use."""
    config = config or get_config()
    set_level(config.log_level)
    redis_client = create_redis_client(config)

    store = SqlProductStore.from_url(config.database_url)
    cache = RedisWindowCache(redis_client, key=config.cache_key)
    recorder = RedisTimingRecorder(
        redis_client,
        limit=config.timing_history_limit,
        key_prefix=config.timing_key_prefix,
    )
    single_flight = create_single_flight(
        config.single_flight,
        client=redis_client,
        ttl_ms=config.lease_ttl_ms,
        wait_ms=config.lease_wait_ms,
    )
    coordinator = HybridFetchCoordinator(
        store=store,
        cache=cache,
        recorder=recorder,
        ttl_seconds=config.cache_ttl_seconds,
        cache_key=config.cache_key,
        single_flight=single_flight,
    )
    logger.info(
        "Services ready (cache key=%s, ttl=%ds, history=%d, single_flight=%s)",
        config.cache_key,
        config.cache_ttl_seconds,
        config.timing_history_limit,
        config.single_flight,
    )
    return CacheBenchServices(
        config=config,
        store=store,
        cache=cache,
        recorder=recorder,
        coordinator=coordinator,
        aggregator=ReportAggregator(recorder),
    )
