"""
Descriptive statistics over the recorded timing histories.

For each strategy: sample count, mean, min and max of the ``total`` field.
Strategies are ranked by ascending mean (lower is better); ties keep the
enumeration order store, cache, hybrid. Strategies without samples are
ranked after every strategy that has samples.
"""
import statistics
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence

from cachebench.core.models import TimingEntry
from cachebench.core.ports import TimingRecorder
from cachebench.core.strategies import FetchStrategy


@dataclass
class StrategyStats:
    strategy: FetchStrategy
    count: int
    avg: float
    min: float
    max: float
    rank: int = 0

    def to_dict(self) -> Dict:
        return {
            "strategy": self.strategy.value,
            "count": self.count,
            "avg": round(self.avg, 3),
            "min": round(self.min, 3),
            "max": round(self.max, 3),
            "rank": self.rank,
        }


def calc_stats(strategy: FetchStrategy, entries: Sequence[TimingEntry]) -> StrategyStats:
    """Count, mean, min and max of ``total``. An empty history yields zeros."""
    if not entries:
        return StrategyStats(strategy=strategy, count=0, avg=0.0, min=0.0, max=0.0)
    totals = [entry.total for entry in entries]
    return StrategyStats(
        strategy=strategy,
        count=len(totals),
        avg=statistics.mean(totals),
        min=min(totals),
        max=max(totals),
    )


def rank_stats(stats: Sequence[StrategyStats]) -> List[StrategyStats]:
    """Order by ascending mean with enumeration-order tie-break, then number ranks from 1."""
    ranked = sorted(stats, key=lambda s: (s.count == 0, s.avg, s.strategy.order))
    for position, item in enumerate(ranked, start=1):
        item.rank = position
    return ranked


def aggregate_histories(histories: Mapping[FetchStrategy, Sequence[TimingEntry]]) -> List[StrategyStats]:
    """Ranked stats for every strategy; strategies missing from ``histories`` count as empty."""
    return rank_stats([calc_stats(s, histories.get(s, [])) for s in FetchStrategy])


class ReportAggregator:
    """Reads the recorder's histories and produces the ranked summary."""

    def __init__(self, recorder: TimingRecorder):
        self.recorder = recorder

    async def aggregate(self) -> List[StrategyStats]:
        histories = {s: await self.recorder.history(s) for s in FetchStrategy}
        return aggregate_histories(histories)
