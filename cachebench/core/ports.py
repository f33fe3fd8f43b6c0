"""Abstract interfaces the coordinator depends on."""

from abc import ABC, abstractmethod
from typing import List, Sequence

from cachebench.core.models import Entity, RemainingTTL, TimingEntry
from cachebench.core.strategies import FetchStrategy


class ProductStore(ABC):
    """Read-only view of the primary store, as seen by the fetch path."""

    @abstractmethod
    async def query(self, limit: int) -> List[Entity]:
        """Return at most ``limit`` entities in a stable order.

        Raises:
            StoreUnavailable: the store could not be reached or the query failed
        """

    @abstractmethod
    async def exists(self) -> bool:
        """Return True when the store holds at least one entity."""


class WindowCache(ABC):
    """Ordered list of entities under one shared key, with a time-to-live.

    All methods raise CacheUnavailable on connectivity loss.
    """

    @abstractmethod
    async def read_window(self, count: int) -> List[Entity]:
        """Up to ``count`` entities in stored order; empty when absent or expired."""

    @abstractmethod
    async def remaining_ttl(self) -> RemainingTTL:
        """Seconds left on the key, or the NO_EXPIRY / ABSENT state."""

    @abstractmethod
    async def replace_window(self, entities: Sequence[Entity], ttl_seconds: int) -> None:
        """Clear the window, append ``entities`` in order, then set the expiry."""

    @abstractmethod
    async def clear(self) -> None:
        """Delete the window key."""

    @abstractmethod
    async def keys(self, pattern: str = "*") -> List[str]:
        """Keys matching ``pattern``."""


class TimingRecorder(ABC):
    """Bounded per-strategy history of fetch durations."""

    @abstractmethod
    async def record(self, strategy: FetchStrategy, entry: TimingEntry) -> None:
        """Append ``entry`` to the strategy's history. Must never raise."""

    @abstractmethod
    async def history(self, strategy: FetchStrategy) -> List[TimingEntry]:
        """Recorded entries for ``strategy``, oldest first."""

    async def report(self):
        """Histories of every strategy, keyed by strategy value."""
        return {s.value: await self.history(s) for s in FetchStrategy}
