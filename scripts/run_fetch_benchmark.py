#!/usr/bin/env python3
"""
Fetch Strategy Latency Benchmark
================================
Runs n fetches per strategy through the coordinator (no HTTP server needed),
records every run in the timing history, then prints the ranked summary
computed from the history.

Strategies measured:
  1. store : primary store only, window repopulated on every run
  2. cache : cache window only (store fallback on a cold cache)
  3. hybrid: cache-aside with merge-on-miss

Usage:
    python scripts/run_fetch_benchmark.py
    python scripts/run_fetch_benchmark.py -n 50 --limit 20
    python scripts/run_fetch_benchmark.py --strategies hybrid cache --cold
"""
import argparse
import asyncio
import os
import sys
from typing import List

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv
load_dotenv()

from cachebench.core.config import get_config
from cachebench.core.services import build_services
from cachebench.core.strategies import FetchStrategy
from cachebench.reporting.aggregator import StrategyStats


# ─── Output ──────────────────────────────────────────────────────────────────

def print_ranking(ranking: List[StrategyStats]):
    W = 10
    print(f"\n{'┌' + '─'*6 + '┬' + '─'*(W+2) + '┬' + '─'*7 + '┬' + '─'*10 + '┬' + '─'*10 + '┬' + '─'*10 + '┐'}")
    print(f"│ {'Rank':^4} │ {'Strategy':<{W}} │ {'Runs':^5} │ {'Avg(ms)':^8} │ {'Min(ms)':^8} │ {'Max(ms)':^8} │")
    print(f"{'├' + '─'*6 + '┼' + '─'*(W+2) + '┼' + '─'*7 + '┼' + '─'*10 + '┼' + '─'*10 + '┼' + '─'*10 + '┤'}")
    for s in ranking:
        print(
            f"│ {s.rank:^4} │ {s.strategy.value:<{W}} │ {s.count:^5} │ "
            f"{s.avg:^8.2f} │ {s.min:^8.2f} │ {s.max:^8.2f} │"
        )
    print(f"{'└' + '─'*6 + '┴' + '─'*(W+2) + '┴' + '─'*7 + '┴' + '─'*10 + '┴' + '─'*10 + '┴' + '─'*10 + '┘'}")


# ─── Benchmark ───────────────────────────────────────────────────────────────

async def run_benchmark(strategies, runs: int, limit: int, cold: bool, reset_history: bool) -> int:
    services = build_services(get_config())
    try:
        if not await services.store.ping():
            print("  Product store: UNREACHABLE (seed it with scripts/seed_products.py)")
            return 1
        print("  Product store: OK")
        cache_ok = await services.cache.ping()
        print(f"  Cache: {'OK' if cache_ok else 'UNREACHABLE (cache faults are absorbed)'}")

        if reset_history and cache_ok:
            await services.recorder.clear()

        for index, strategy in enumerate(strategies, start=1):
            print(f"\n[{index}/{len(strategies)}] {strategy.value}  ({runs} runs, limit={limit})")
            failures = 0
            for _ in range(runs):
                if cold and cache_ok:
                    await services.cache.clear()
                response = await services.coordinator.execute(strategy, limit)
                if not response.succeeded:
                    failures += 1
                    print(f"      ERROR: {response.error}")
            await services.coordinator.drain()
            print(f"      done ({runs - failures} ok, {failures} failed)")

        if not cache_ok:
            print("\n  Timing history unavailable without the cache")
            return 0
        print_ranking(await services.aggregator.aggregate())
        return 0
    finally:
        await services.close()


def main():
    parser = argparse.ArgumentParser(description="Fetch strategy latency benchmark")
    parser.add_argument("-n", "--runs", type=int, default=10, help="Runs per strategy (default 10)")
    parser.add_argument("--limit", type=int, default=None, help="Products per fetch (default from config)")
    parser.add_argument(
        "--strategies",
        nargs="+",
        default=[s.value for s in FetchStrategy],
        help="Strategies to run (store, cache, hybrid)",
    )
    parser.add_argument("--cold", action="store_true", help="Clear the cache window before every run")
    parser.add_argument("--reset-history", action="store_true", help="Clear timing histories before running")
    args = parser.parse_args()

    try:
        strategies = [FetchStrategy.parse(name) for name in args.strategies]
    except ValueError as e:
        parser.error(str(e))
    limit = args.limit if args.limit is not None else get_config().default_limit
    if limit <= 0:
        parser.error("--limit must be positive")

    sys.exit(asyncio.run(run_benchmark(strategies, args.runs, limit, args.cold, args.reset_history)))


if __name__ == "__main__":
    main()
