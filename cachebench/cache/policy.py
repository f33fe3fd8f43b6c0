"""
Redis caching policy for the fetch benchmark: what is cached, under which
keys, and for how long.

Architecture:
  SQL store (Postgres / SQLite) → source of truth (products, read-only here)
  Redis                         → cache window + timing histories

The window is never updated in place. Every write replaces it whole
(DEL, RPUSH, EXPIRE in one MULTI/EXEC), and every write resets the TTL.
"""

# ────────────────────────────────────────────────────────────────────────────
# Cache Policy Table
# ────────────────────────────────────────────────────────────────────────────
#
# Data             | Key Pattern               | Type | TTL      | Written by
# -----------------+---------------------------+------+----------+-------------------------
# Product window   | products                  | list | 24 hours | store/cache/hybrid fetch
# Timing history   | fetch_times:{strategy}    | list | none     | timing recorder (LPUSH)
# Single-flight    | lease:products            | str  | 5 sec    | RedisLease (opt-in)
#
# ────────────────────────────────────────────────────────────────────────────
# Consistency Expectations
# ────────────────────────────────────────────────────────────────────────────
#
# - The window may be stale by up to its TTL. Products are immutable, so
#   staleness only means new products are missing from the window.
# - Window order is the order of the last full repopulation (RPUSH keeps
#   insertion order, LRANGE 0..n-1 reads the head).
# - Concurrent repopulations are not coordinated by default: the last writer
#   wins. Enable SINGLE_FLIGHT=local|redis to serialize them.
# - Timing histories keep the newest 100 entries per strategy (LPUSH + LTRIM).
#
# ────────────────────────────────────────────────────────────────────────────
# TTL Sentinels (Redis TTL reply)
# ────────────────────────────────────────────────────────────────────────────
#
#   -2  key does not exist (never written, cleared or expired)  → ABSENT
#   -1  key exists without an expiry                             → NO_EXPIRY
#   ≥0  seconds remaining                                        → ACTIVE
#

DEFAULT_WINDOW_KEY = "products"
DEFAULT_TTL_WINDOW = 60 * 60 * 24   # 24 hours, reset on every repopulation

DEFAULT_TIMING_KEY_PREFIX = "fetch_times"
DEFAULT_TIMING_HISTORY_LIMIT = 100  # newest entries kept per strategy

TTL_ABSENT = -2
TTL_NO_EXPIRY = -1


def timing_key(strategy_value: str, prefix: str = DEFAULT_TIMING_KEY_PREFIX) -> str:
    """Key of the timing history list for one strategy."""
    return f"{prefix}:{strategy_value}"
