"""
Per-phase timing for one fetch invocation.

Usage:
    timer = PhaseTimer()
    with timer.phase("cache_read"):
        items = await cache.read_window(limit)
    timer.finish()
    timer.timings.cache_read_ms
"""
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from cachebench.core.models import FetchTimings

PHASE_BUCKETS = {
    "store_query": "store_query_ms",
    "cache_read": "cache_read_ms",
    "cache_write": "cache_write_ms",
}


class PhaseTimer:
    """Accumulates elapsed milliseconds into FetchTimings buckets."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self._started = clock()
        self.timings = FetchTimings()

    @contextmanager
    def phase(self, bucket: str) -> Iterator[None]:
        """Time the wrapped block into ``bucket``; records even when the block raises."""
        attr = PHASE_BUCKETS[bucket]
        start = self._clock()
        try:
            yield
        finally:
            elapsed_ms = (self._clock() - start) * 1000
            setattr(self.timings, attr, getattr(self.timings, attr) + elapsed_ms)

    def finish(self) -> FetchTimings:
        """Stamp the total elapsed time since construction and return the timings."""
        self.timings.total = (self._clock() - self._started) * 1000
        return self.timings


def epoch_millis() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)
