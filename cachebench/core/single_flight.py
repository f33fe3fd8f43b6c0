"""
Optional single-flight leases around cache repopulation.

Without a lease two concurrent hybrid fetches can both see an insufficient
window, both query the store and both overwrite the cache; the last writer
wins. That is the default (NullSingleFlight). The other implementations hold
a per-key lease for the ReadCache..WriteCache span of an invocation:

- LocalSingleFlight: asyncio.Lock per key, one process only
- RedisLease:        SET NX PX advisory lease shared by every process

Leases are advisory. If a RedisLease cannot be acquired in time, or Redis is
unreachable, the invocation continues without it.
"""
import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from redis.exceptions import RedisError

from cachebench.utils.logger import get_logger

logger = get_logger("core.single_flight")

# Delete the lease only if we still own it
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class SingleFlight:
    """Per-key lease. Subclasses override ``lease``."""

    @asynccontextmanager
    async def lease(self, key: str) -> AsyncIterator[bool]:
        yield False


class NullSingleFlight(SingleFlight):
    """No mutual exclusion (reference behavior)."""


class LocalSingleFlight(SingleFlight):
    """In-process lease: one asyncio.Lock per key."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def lease(self, key: str) -> AsyncIterator[bool]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            yield True


class RedisLease(SingleFlight):
    """
    Cross-process advisory lease stored in Redis.

    Args:
        client: redis.asyncio client
        ttl_ms: lease expiry, bounds how long a crashed holder blocks others
        wait_ms: how long to poll for the lease before proceeding without it
        poll_interval_ms: delay between acquisition attempts
    """

    KEY_PREFIX = "lease:"

    def __init__(self, client, ttl_ms: int = 5000, wait_ms: int = 2000, poll_interval_ms: int = 25):
        self.client = client
        self.ttl_ms = ttl_ms
        self.wait_ms = wait_ms
        self.poll_interval_ms = poll_interval_ms

    async def acquire(self, key: str, token: str) -> bool:
        lease_key = self.KEY_PREFIX + key
        attempts = max(1, self.wait_ms // max(self.poll_interval_ms, 1))
        for _ in range(attempts):
            if await self.client.set(lease_key, token, nx=True, px=self.ttl_ms):
                return True
            await asyncio.sleep(self.poll_interval_ms / 1000.0)
        return False

    async def release(self, key: str, token: str) -> None:
        await self.client.eval(_RELEASE_SCRIPT, 1, self.KEY_PREFIX + key, token)

    @asynccontextmanager
    async def lease(self, key: str) -> AsyncIterator[bool]:
        token = uuid.uuid4().hex
        try:
            held = await self.acquire(key, token)
        except RedisError as e:
            logger.warning("Lease acquire failed for %s, continuing without it: %s", key, e)
            held = False
        if not held:
            logger.warning("Lease for %s not obtained within %dms, continuing without it", key, self.wait_ms)
        try:
            yield held
        finally:
            if held:
                try:
                    await self.release(key, token)
                except RedisError as e:
                    # The lease expires on its own after ttl_ms
                    logger.warning("Lease release failed for %s: %s", key, e)


def create_single_flight(mode: str, client=None, ttl_ms: int = 5000, wait_ms: int = 2000) -> SingleFlight:
    """Build the single-flight implementation named by config (none | local | redis)."""
    if mode == "none":
        return NullSingleFlight()
    if mode == "local":
        return LocalSingleFlight()
    if mode == "redis":
        if client is None:
            raise ValueError("A Redis client is required when single_flight=redis")
        return RedisLease(client, ttl_ms=ttl_ms, wait_ms=wait_ms)
    raise ValueError(f"Unsupported single_flight mode: {mode!r}")
