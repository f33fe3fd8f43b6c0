"""Tests for wiring services from configuration (no connections are opened)."""
import pytest

from cachebench.cache.client import create_redis_client
from cachebench.core.config import CacheBenchConfig
from cachebench.core.services import build_services
from cachebench.core.single_flight import LocalSingleFlight, NullSingleFlight


def test_redis_client_from_host_settings():
    client = create_redis_client(CacheBenchConfig(redis_host="cache.internal", redis_port=6390, redis_db=3))
    kwargs = client.connection_pool.connection_kwargs

    assert kwargs["host"] == "cache.internal"
    assert kwargs["port"] == 6390
    assert kwargs["db"] == 3


def test_redis_client_url_wins():
    client = create_redis_client(CacheBenchConfig(redis_url="redis://urlhost:6400/2", redis_host="ignored"))
    kwargs = client.connection_pool.connection_kwargs

    assert kwargs["host"] == "urlhost"
    assert kwargs["port"] == 6400


@pytest.mark.asyncio
async def test_build_services(tmp_path):
    config = CacheBenchConfig(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'wired.db'}",
        cache_key="catalog",
        cache_ttl_seconds=120,
        timing_history_limit=7,
        single_flight="local",
    )

    services = build_services(config)
    try:
        assert services.cache.key == "catalog"
        assert services.recorder.limit == 7
        assert services.coordinator.ttl_seconds == 120
        assert isinstance(services.coordinator.single_flight, LocalSingleFlight)
        assert services.aggregator.recorder is services.recorder
    finally:
        await services.close()


@pytest.mark.asyncio
async def test_default_single_flight_is_none(tmp_path):
    services = build_services(CacheBenchConfig(database_url=f"sqlite+aiosqlite:///{tmp_path / 'd.db'}"))
    try:
        assert isinstance(services.coordinator.single_flight, NullSingleFlight)
    finally:
        await services.close()
