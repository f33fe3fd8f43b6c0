"""Pytest configuration for cachebench tests."""

import os
import sys

import pytest
import pytest_asyncio
import redis.asyncio as aioredis
from redis.exceptions import RedisError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.dirname(__file__))

from cachebench.core.coordinator import HybridFetchCoordinator
from cachebench.reporting.timing_recorder import InMemoryTimingRecorder
from fakes import FakeProductStore, FakeWindowCache, make_entities


# ---------------------------------------------------------------------------
# Port doubles
# ---------------------------------------------------------------------------

@pytest.fixture
def store():
    """Store holding 20 products p0..p19."""
    return FakeProductStore(make_entities(20))


@pytest.fixture
def cache():
    return FakeWindowCache()


@pytest.fixture
def recorder():
    return InMemoryTimingRecorder(limit=100)


@pytest.fixture
def coordinator(store, cache, recorder):
    return HybridFetchCoordinator(store=store, cache=cache, recorder=recorder)


# ---------------------------------------------------------------------------
# Redis (real server, db=15). Tests using it are skipped when unreachable.
# ---------------------------------------------------------------------------

REDIS_TEST_DB = int(os.getenv("REDIS_TEST_DB", "15"))


@pytest_asyncio.fixture
async def redis_client():
    """Real Redis on the test database, flushed before and after each test."""
    client = aioredis.Redis(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        db=REDIS_TEST_DB,
        decode_responses=True,
        socket_connect_timeout=1,
    )
    try:
        await client.ping()
    except (RedisError, OSError):
        await client.aclose()
        pytest.skip("Redis not available")
    await client.flushdb()
    yield client
    await client.flushdb()
    await client.aclose()
