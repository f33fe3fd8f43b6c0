"""
Timing history and report aggregation.

- timing_recorder: bounded per-strategy history (Redis or in-memory)
- aggregator: mean/min/max per strategy, ranked by mean
"""
from cachebench.reporting.aggregator import ReportAggregator, StrategyStats, aggregate_histories
from cachebench.reporting.timing_recorder import InMemoryTimingRecorder, RedisTimingRecorder

__all__ = [
    "ReportAggregator",
    "StrategyStats",
    "aggregate_histories",
    "InMemoryTimingRecorder",
    "RedisTimingRecorder",
]
