"""
Redis connection factory.

Connection priority:
1. redis_url (UPSTASH_REDIS_URL / REDIS_URL, rediss:// for TLS)
2. redis_host + redis_port + redis_db (local)
"""
import redis.asyncio as redis

from cachebench.core.config import CacheBenchConfig


def create_redis_client(config: CacheBenchConfig) -> redis.Redis:
    """Create an asyncio Redis client. No connection is opened until first use."""
    if config.redis_url:
        # Cloud-hosted Redis (Upstash) uses a rediss:// TLS URL
        return redis.from_url(
            config.redis_url,
            decode_responses=True,
            socket_connect_timeout=config.redis_socket_timeout * 2,
            socket_timeout=config.redis_socket_timeout * 2,
        )
    return redis.Redis(
        host=config.redis_host,
        port=config.redis_port,
        db=config.redis_db,
        decode_responses=True,
        socket_connect_timeout=config.redis_socket_timeout,
        socket_timeout=config.redis_socket_timeout,
    )
