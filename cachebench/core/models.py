"""
Domain models shared by the store adapter, the cache adapter and the coordinator.

Entity:             the product record held in the store and the cache window
RemainingTTL:       seconds left on the cache key, or a NO_EXPIRY / ABSENT state
TimingEntry:        one recorded fetch duration (append-only history item)
FetchTimings:       per-phase breakdown of one invocation
FetchResult:        what the coordinator produced for one invocation
FetchResponse:      the envelope handed back to the UI / CLI / HTTP caller
"""
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from cachebench.cache.policy import TTL_ABSENT, TTL_NO_EXPIRY
from cachebench.core.errors import DeserializationError
from cachebench.core.strategies import FetchStrategy


#
# Entity
#

@dataclass(frozen=True)
class Entity:
    """An immutable product record. ``id`` is stable across store and cache."""
    id: str
    name: str
    price: float
    description: str
    company: str
    avatar: str
    material: str
    created_at: datetime

    def __post_init__(self):
        if not self.id:
            raise ValueError("Entity id must be non-empty")
        if self.price < 0:
            raise ValueError(f"Entity price must be non-negative, got {self.price}")
        # Naive timestamps are treated as UTC so cache round-trips compare equal
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    def to_json(self) -> str:
        """Serialize for storage as one cache list element."""
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Entity":
        """
        Build an entity from a mapping.

        Accepts both ``created_at`` and the remote API's ``createdAt`` key, and
        numeric strings for ``price``.

        Raises:
            DeserializationError: required fields are missing or malformed
        """
        if not isinstance(data, Mapping):
            raise DeserializationError(f"Expected an object, got {type(data).__name__}", raw=data)
        try:
            created_raw = data.get("created_at", data.get("createdAt"))
            return cls(
                id=str(data["id"]),
                name=str(data["name"]),
                price=float(data["price"]),
                description=str(data.get("description", "")),
                company=str(data.get("company", "")),
                avatar=str(data.get("avatar", "")),
                material=str(data.get("material", "")),
                created_at=_parse_timestamp(created_raw),
            )
        # fromtimestamp raises OverflowError / OSError for out-of-range epochs
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            raise DeserializationError(f"Malformed entity: {e}", raw=data) from e

    @classmethod
    def from_json(cls, raw: str) -> "Entity":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise DeserializationError(f"Invalid JSON in cached item: {e}", raw=raw) from e
        return cls.from_dict(data)


def _parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) or epoch milliseconds."""
    if value is None:
        raise ValueError("missing created_at")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"unsupported timestamp {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


#
# Cache TTL
#

class TTLState(str, Enum):
    ACTIVE = "active"
    NO_EXPIRY = "no_expiry"
    ABSENT = "absent"


@dataclass(frozen=True)
class RemainingTTL:
    """Time left on the cache key. ``seconds`` is only set in the ACTIVE state."""
    state: TTLState
    seconds: Optional[int] = None

    @classmethod
    def from_redis(cls, value: int) -> "RemainingTTL":
        """Map the Redis TTL reply (-2 absent, -1 no expiry) to a RemainingTTL."""
        if value == TTL_ABSENT:
            return cls(TTLState.ABSENT)
        if value == TTL_NO_EXPIRY:
            return cls(TTLState.NO_EXPIRY)
        return cls(TTLState.ACTIVE, int(value))

    @property
    def is_active(self) -> bool:
        return self.state is TTLState.ACTIVE


ABSENT_TTL = RemainingTTL(TTLState.ABSENT)
NO_EXPIRY_TTL = RemainingTTL(TTLState.NO_EXPIRY)


#
# Timing
#

@dataclass(frozen=True)
class TimingEntry:
    """One fetch duration: epoch-millisecond timestamp plus total elapsed ms."""
    timestamp: int
    total: float

    def to_json(self) -> str:
        return json.dumps({"timestamp": self.timestamp, "total": self.total})

    @classmethod
    def from_json(cls, raw: str) -> "TimingEntry":
        try:
            data = json.loads(raw)
            return cls(timestamp=int(data["timestamp"]), total=float(data["total"]))
        except (KeyError, TypeError, ValueError) as e:
            raise DeserializationError(f"Malformed timing entry: {e}", raw=raw) from e


@dataclass
class FetchTimings:
    """Milliseconds spent per phase. Buckets accumulate across repeated phases."""
    total: float = 0.0
    store_query_ms: float = 0.0
    cache_read_ms: float = 0.0
    cache_write_ms: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "total": round(self.total, 3),
            "storeQueryMs": round(self.store_query_ms, 3),
            "cacheReadMs": round(self.cache_read_ms, 3),
            "cacheWriteMs": round(self.cache_write_ms, 3),
        }


#
# Results
#

@dataclass
class FetchResult:
    """Outcome of one invocation. Built fresh per call and never persisted."""
    requested_strategy: FetchStrategy
    resolved_strategy: FetchStrategy
    entities: List[Entity] = field(default_factory=list)
    cache_hit: bool = False
    timings: FetchTimings = field(default_factory=FetchTimings)
    ttl: Optional[RemainingTTL] = None

    @property
    def count(self) -> int:
        return len(self.entities)


@dataclass
class FetchResponse:
    """Envelope returned across the invocation boundary. Never raised, always returned."""
    succeeded: bool
    requested_strategy: Optional[FetchStrategy]
    resolved_strategy: Optional[FetchStrategy]
    entities: List[Entity] = field(default_factory=list)
    cache_hit: bool = False
    ttl_remaining: Optional[int] = None
    timings: FetchTimings = field(default_factory=FetchTimings)
    error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.entities)

    @classmethod
    def from_result(cls, result: FetchResult) -> "FetchResponse":
        ttl = result.ttl
        return cls(
            succeeded=True,
            requested_strategy=result.requested_strategy,
            resolved_strategy=result.resolved_strategy,
            entities=list(result.entities),
            cache_hit=result.cache_hit,
            ttl_remaining=ttl.seconds if ttl is not None and ttl.is_active else None,
            timings=result.timings,
        )

    @classmethod
    def failure(
        cls,
        error: str,
        requested_strategy: Optional[FetchStrategy] = None,
        timings: Optional[FetchTimings] = None,
    ) -> "FetchResponse":
        return cls(
            succeeded=False,
            requested_strategy=requested_strategy,
            resolved_strategy=None,
            timings=timings or FetchTimings(),
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "entities": [e.to_dict() for e in self.entities],
            "count": self.count,
            "requestedStrategy": self.requested_strategy.value if self.requested_strategy else None,
            "resolvedStrategy": self.resolved_strategy.value if self.resolved_strategy else None,
            "cacheHit": self.cache_hit,
            "ttlRemaining": self.ttl_remaining,
            "timings": self.timings.to_dict(),
            "error": self.error,
        }
