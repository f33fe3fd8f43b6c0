"""Tests for domain models: entity serialization, TTL states, response envelope."""
import json
from datetime import datetime, timezone

import pytest

from cachebench.core.errors import DeserializationError
from cachebench.core.models import (
    Entity,
    FetchResponse,
    FetchResult,
    FetchTimings,
    RemainingTTL,
    TimingEntry,
    TTLState,
)
from cachebench.core.strategies import FetchStrategy
from fakes import make_entity


class TestEntity:

    def test_json_round_trip_is_equal(self):
        entity = make_entity(3)
        assert Entity.from_json(entity.to_json()) == entity

    def test_naive_timestamp_treated_as_utc(self):
        naive = Entity("x1", "Chair", 5.0, "", "", "", "", datetime(2024, 1, 1, 8, 30))
        assert naive.created_at.tzinfo is timezone.utc
        assert Entity.from_json(naive.to_json()) == naive

    def test_remote_api_shape(self):
        entity = Entity.from_dict({
            "id": 7,
            "name": "Handcrafted Steel Chair",
            "avatar": "https://cdn.example.com/7.jpg",
            "material": "Granite",
            "company": "Hills LLC",
            "description": "A chair",
            "price": "562.00",
            "createdAt": "2024-10-15T09:21:44.120Z",
        })

        assert entity.id == "7"
        assert entity.price == 562.0
        assert entity.created_at == datetime(2024, 10, 15, 9, 21, 44, 120000, tzinfo=timezone.utc)

    def test_epoch_millis_timestamp(self):
        entity = Entity.from_dict({"id": "a", "name": "n", "price": 1, "created_at": 0})
        assert entity.created_at == datetime(1970, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("raw", [
        "{not json",
        json.dumps([1, 2]),
        json.dumps({"name": "no id", "price": 1, "created_at": "2024-01-01T00:00:00"}),
        json.dumps({"id": "a", "name": "n", "price": "cheap", "created_at": "2024-01-01T00:00:00"}),
        json.dumps({"id": "a", "name": "n", "price": 1}),
        json.dumps({"id": "a", "name": "n", "price": -1, "created_at": "2024-01-01T00:00:00"}),
        '{"id": "a", "name": "n", "price": 1, "created_at": 1e300}',
        '{"id": "a", "name": "n", "price": 1, "created_at": Infinity}',
        '{"id": "a", "name": "n", "price": 1, "created_at": -Infinity}',
    ])
    def test_malformed_payloads(self, raw):
        with pytest.raises(DeserializationError):
            Entity.from_json(raw)

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            Entity("", "n", 1.0, "", "", "", "", datetime.now(timezone.utc))


class TestRemainingTTL:

    @pytest.mark.parametrize("value,state,seconds", [
        (-2, TTLState.ABSENT, None),
        (-1, TTLState.NO_EXPIRY, None),
        (0, TTLState.ACTIVE, 0),
        (86400, TTLState.ACTIVE, 86400),
    ])
    def test_from_redis(self, value, state, seconds):
        ttl = RemainingTTL.from_redis(value)
        assert ttl.state is state
        assert ttl.seconds == seconds


def test_timing_entry_round_trip():
    entry = TimingEntry(timestamp=1729000000000, total=12.5)
    assert TimingEntry.from_json(entry.to_json()) == entry
    with pytest.raises(DeserializationError):
        TimingEntry.from_json('{"timestamp": 1}')


class TestFetchResponse:

    def test_from_result_envelope(self):
        result = FetchResult(
            requested_strategy=FetchStrategy.HYBRID,
            resolved_strategy=FetchStrategy.CACHE,
            entities=[make_entity(0)],
            cache_hit=True,
            timings=FetchTimings(total=1.23456, cache_read_ms=0.5),
            ttl=RemainingTTL.from_redis(120),
        )

        body = FetchResponse.from_result(result).to_dict()

        assert body["succeeded"] is True
        assert body["count"] == 1
        assert body["requestedStrategy"] == "hybrid"
        assert body["resolvedStrategy"] == "cache"
        assert body["cacheHit"] is True
        assert body["ttlRemaining"] == 120
        assert body["timings"] == {
            "total": 1.235, "storeQueryMs": 0.0, "cacheReadMs": 0.5, "cacheWriteMs": 0.0,
        }
        assert body["error"] is None

    def test_failure_envelope(self):
        body = FetchResponse.failure("Failed to fetch data: down", FetchStrategy.STORE).to_dict()

        assert body["succeeded"] is False
        assert body["entities"] == []
        assert body["count"] == 0
        assert body["resolvedStrategy"] is None
        assert body["error"] == "Failed to fetch data: down"
