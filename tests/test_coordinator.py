"""
Tests for HybridFetchCoordinator against in-memory store and cache doubles.

Run with: pytest tests/test_coordinator.py -v
"""
import asyncio

import pytest

from cachebench.core.coordinator import HybridFetchCoordinator
from cachebench.core.errors import InvalidRequest, StoreUnavailable
from cachebench.core.single_flight import LocalSingleFlight
from cachebench.core.strategies import FetchStrategy
from cachebench.reporting.timing_recorder import InMemoryTimingRecorder
from fakes import FailingRecorder, FakeProductStore, FakeWindowCache, make_entities


ONE_DAY = 86400


class TestNonPositiveLimit:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", list(FetchStrategy))
    @pytest.mark.parametrize("limit", [0, -3])
    async def test_returns_empty_without_io(self, coordinator, store, cache, recorder, strategy, limit):
        result = await coordinator.fetch(strategy, limit)
        await coordinator.drain()

        assert result.entities == []
        assert result.cache_hit is False
        assert store.query_calls == []
        assert cache.read_calls == []
        assert cache.write_calls == []
        assert await recorder.history(strategy) == []


class TestStoreOnly:

    @pytest.mark.asyncio
    async def test_returns_limit_and_repopulates_window(self, coordinator, store, cache):
        result = await coordinator.fetch(FetchStrategy.STORE, 5)

        assert result.entities == store.entities[:5]
        assert result.cache_hit is False
        assert result.resolved_strategy == FetchStrategy.STORE
        assert store.query_calls == [5]
        assert cache.read_calls == []
        assert cache.window == result.entities
        assert cache.ttl == ONE_DAY

    @pytest.mark.asyncio
    async def test_short_store_returns_everything(self, cache):
        store = FakeProductStore(make_entities(3))
        coordinator = HybridFetchCoordinator(store, cache)

        result = await coordinator.fetch(FetchStrategy.STORE, 5)

        assert result.count == 3
        assert cache.window == store.entities

    @pytest.mark.asyncio
    async def test_replaces_existing_window_and_resets_ttl(self, coordinator, store, cache):
        cache.preload(make_entities(8, prefix="old"), ttl=12)

        result = await coordinator.fetch(FetchStrategy.STORE, 4)

        assert cache.window == result.entities
        assert cache.ttl == ONE_DAY

    @pytest.mark.asyncio
    async def test_does_not_read_ttl(self, coordinator):
        result = await coordinator.fetch("db", 2)

        assert result.requested_strategy == FetchStrategy.STORE
        assert result.ttl is None


class TestCacheOnly:

    @pytest.mark.asyncio
    async def test_non_empty_window_is_a_hit(self, coordinator, store, cache):
        cached = make_entities(4, prefix="c")
        cache.preload(cached, ttl=600)

        result = await coordinator.fetch(FetchStrategy.CACHE, 2)

        assert result.entities == cached[:2]
        assert result.cache_hit is True
        assert result.resolved_strategy == FetchStrategy.CACHE
        assert result.ttl.seconds == 600
        assert store.query_calls == []
        assert cache.write_calls == []

    @pytest.mark.asyncio
    async def test_short_window_still_served_whole(self, coordinator, store, cache):
        cached = make_entities(4, prefix="c")
        cache.preload(cached)

        result = await coordinator.fetch(FetchStrategy.CACHE, 10)

        assert result.entities == cached
        assert result.cache_hit is True
        assert store.query_calls == []

    @pytest.mark.asyncio
    async def test_empty_window_falls_back_to_store(self, coordinator, store, cache):
        result = await coordinator.fetch(FetchStrategy.CACHE, 6)

        assert result.entities == store.entities[:6]
        assert result.cache_hit is False
        assert result.requested_strategy == FetchStrategy.CACHE
        assert result.resolved_strategy == FetchStrategy.STORE
        assert store.query_calls == [6]
        assert cache.window == result.entities
        assert cache.ttl == ONE_DAY


class TestHybrid:

    @pytest.mark.asyncio
    async def test_sufficient_window_is_a_hit(self, coordinator, store, cache):
        cached = make_entities(8, prefix="c")
        cache.preload(cached, ttl=300)

        result = await coordinator.fetch(FetchStrategy.HYBRID, 5)

        assert result.entities == cached[:5]
        assert result.cache_hit is True
        assert result.resolved_strategy == FetchStrategy.CACHE
        assert result.ttl.seconds == 300
        assert store.query_calls == []
        assert cache.write_calls == []

    @pytest.mark.asyncio
    async def test_partial_window_fills_remainder_from_store(self, coordinator, store, cache):
        cached = make_entities(2, prefix="c")
        cache.preload(cached, ttl=50)

        result = await coordinator.fetch(FetchStrategy.HYBRID, 5)

        assert result.entities == cached + store.entities[:3]
        assert result.cache_hit is False
        assert result.resolved_strategy == FetchStrategy.HYBRID
        assert store.query_calls == [3]
        assert cache.window == result.entities
        assert result.ttl.seconds == ONE_DAY

    @pytest.mark.asyncio
    async def test_empty_window_resolves_to_store(self, coordinator, store, cache):
        result = await coordinator.fetch(FetchStrategy.HYBRID, 4)

        assert result.entities == store.entities[:4]
        assert result.resolved_strategy == FetchStrategy.STORE
        assert store.query_calls == [4]

    @pytest.mark.asyncio
    async def test_exhausted_store_returns_what_exists(self, cache):
        store = FakeProductStore(make_entities(1))
        coordinator = HybridFetchCoordinator(store, cache)
        cached = make_entities(2, prefix="c")
        cache.preload(cached)

        result = await coordinator.fetch(FetchStrategy.HYBRID, 5)

        assert result.count == 3
        assert result.entities == cached + store.entities
        assert cache.window == result.entities

    @pytest.mark.asyncio
    async def test_empty_store_skips_write(self, cache):
        coordinator = HybridFetchCoordinator(FakeProductStore([]), cache)
        cached = make_entities(2, prefix="c")
        cache.preload(cached, ttl=70)

        result = await coordinator.fetch(FetchStrategy.HYBRID, 5)

        assert result.entities == cached
        assert result.resolved_strategy == FetchStrategy.CACHE
        assert cache.write_calls == []
        assert cache.ttl == 70

    @pytest.mark.asyncio
    @pytest.mark.parametrize("corrupt", [
        "{not json",
        '{"id": "x", "price": 1, "created_at": 0}',
        '{"id": "x", "name": "n", "price": 1, "created_at": 1e300}',
        '{"id": "x", "name": "n", "price": 1, "created_at": Infinity}',
    ])
    async def test_corrupt_item_dropped_and_refilled(self, coordinator, store, cache, corrupt):
        cached = make_entities(3, prefix="c")
        cache.preload(cached)
        cache.raw_items[1] = corrupt

        result = await coordinator.fetch(FetchStrategy.HYBRID, 3)

        assert result.entities == [cached[0], cached[2], store.entities[0]]
        assert store.query_calls == [1]

    @pytest.mark.asyncio
    async def test_no_expiry_ttl_not_reported(self, coordinator, cache):
        cache.preload(make_entities(5, prefix="c"), ttl=None)

        response = await coordinator.execute(FetchStrategy.HYBRID, 3)

        assert response.cache_hit is True
        assert response.ttl_remaining is None


class TestFaults:

    @pytest.mark.asyncio
    async def test_store_failure_raises_with_partial_timings(self, cache):
        store = FakeProductStore(make_entities(5), fail=True)
        coordinator = HybridFetchCoordinator(store, cache)

        with pytest.raises(StoreUnavailable) as exc_info:
            await coordinator.fetch(FetchStrategy.HYBRID, 3)

        timings = exc_info.value.timings
        assert timings is not None
        assert timings.total >= timings.cache_read_ms
        assert cache.write_calls == []

    @pytest.mark.asyncio
    async def test_store_failure_envelope(self, cache):
        recorder = InMemoryTimingRecorder()
        store = FakeProductStore(make_entities(5), fail=True)
        coordinator = HybridFetchCoordinator(store, cache, recorder=recorder)

        response = await coordinator.execute(FetchStrategy.STORE, 3)
        await coordinator.drain()

        assert response.succeeded is False
        assert response.entities == []
        assert response.error.startswith("Failed to fetch data")
        assert response.requested_strategy == FetchStrategy.STORE
        assert await recorder.history(FetchStrategy.STORE) == []

    @pytest.mark.asyncio
    async def test_cache_read_failure_is_a_miss(self, coordinator, store, cache):
        cache.preload(make_entities(10, prefix="c"))
        cache.fail_reads = True

        result = await coordinator.fetch(FetchStrategy.HYBRID, 4)

        assert result.entities == store.entities[:4]
        assert result.cache_hit is False
        assert result.ttl is None

    @pytest.mark.asyncio
    async def test_cache_write_failure_still_serves(self, coordinator, store, cache):
        cache.fail_writes = True

        response = await coordinator.execute(FetchStrategy.STORE, 3)

        assert response.succeeded is True
        assert response.entities == store.entities[:3]
        assert len(cache.write_calls) == 1
        assert cache.raw_items == []

    @pytest.mark.asyncio
    async def test_recorder_failure_does_not_propagate(self, store, cache):
        recorder = FailingRecorder()
        coordinator = HybridFetchCoordinator(store, cache, recorder=recorder)

        response = await coordinator.execute(FetchStrategy.STORE, 2)
        await coordinator.drain()

        assert response.succeeded is True
        assert recorder.attempts == 1


class TestValidation:

    @pytest.mark.asyncio
    async def test_unknown_strategy(self, coordinator, store):
        with pytest.raises(InvalidRequest):
            await coordinator.fetch("redis", 5)
        assert store.query_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [True, 2.5, "5", None])
    async def test_non_integer_limit(self, coordinator, limit):
        with pytest.raises(InvalidRequest):
            await coordinator.fetch(FetchStrategy.STORE, limit)

    @pytest.mark.asyncio
    async def test_execute_turns_invalid_request_into_failure(self, coordinator):
        response = await coordinator.execute("nosuch", 5)

        assert response.succeeded is False
        assert response.requested_strategy is None
        assert "Invalid strategy" in response.error


class TestTimingHistory:

    @pytest.mark.asyncio
    async def test_records_under_requested_strategy(self, coordinator, recorder, cache):
        await coordinator.fetch(FetchStrategy.CACHE, 3)  # falls back to the store
        await coordinator.fetch(FetchStrategy.HYBRID, 3)
        await coordinator.drain()

        cache_history = await recorder.history(FetchStrategy.CACHE)
        assert len(cache_history) == 1
        assert cache_history[0].total >= 0
        assert len(await recorder.history(FetchStrategy.HYBRID)) == 1
        assert await recorder.history(FetchStrategy.STORE) == []

    @pytest.mark.asyncio
    async def test_record_timing_false_skips_history(self, coordinator, recorder):
        await coordinator.fetch(FetchStrategy.CACHE, 3, record_timing=False)
        await coordinator.drain()

        assert await recorder.history(FetchStrategy.CACHE) == []

    @pytest.mark.asyncio
    async def test_phase_timings_with_fake_clock(self, store, cache):
        ticks = iter(x * 0.001 for x in range(100))
        coordinator = HybridFetchCoordinator(store, cache, clock=lambda: next(ticks))

        result = await coordinator.fetch(FetchStrategy.STORE, 2)

        # one tick per clock read, each phase spans exactly one tick
        assert result.timings.store_query_ms == pytest.approx(1.0)
        assert result.timings.cache_write_ms == pytest.approx(1.0)
        assert result.timings.cache_read_ms == 0.0
        assert result.timings.total == pytest.approx(5.0)


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_without_lease_both_miss(self, store, cache):
        coordinator = HybridFetchCoordinator(store, cache)

        first, second = await asyncio.gather(
            coordinator.fetch(FetchStrategy.HYBRID, 3),
            coordinator.fetch(FetchStrategy.HYBRID, 3),
        )

        assert store.query_calls == [3, 3]
        assert first.entities == second.entities

    @pytest.mark.asyncio
    async def test_local_lease_serializes_repopulation(self, store, cache):
        coordinator = HybridFetchCoordinator(store, cache, single_flight=LocalSingleFlight())

        first, second = await asyncio.gather(
            coordinator.fetch(FetchStrategy.HYBRID, 3),
            coordinator.fetch(FetchStrategy.HYBRID, 3),
        )

        assert store.query_calls == [3]
        assert sorted([first.cache_hit, second.cache_hit]) == [False, True]
        assert first.entities == second.entities
        assert cache.ttl == ONE_DAY
