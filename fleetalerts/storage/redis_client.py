"""Redis client management."""

import redis.asyncio as redis
from redis.asyncio import Redis

from fleetalerts.core.config import get_settings

# Global connection pool
_pool: redis.ConnectionPool | None = None


async def init_redis_pool() -> None:
    """Initialize Redis connection pool."""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=10,
        )


async def close_redis_pool() -> None:
    """Close Redis connection pool."""
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None


def get_redis() -> Redis:
    """Get Redis client from pool.

    Raises:
        RuntimeError: If pool not initialized
    """
    if _pool is None:
        raise RuntimeError("Redis pool not initialized. Call init_redis_pool() first.")
    return redis.Redis(connection_pool=_pool)


class RedisKeys:
    """Redis key patterns."""

    # Alert flags: hash of alert_id -> JSON {"read": bool, "dismissed": bool}
    ALERT_FLAGS = "fleet:alerts:flags"

    # Snapshot change notifications
    ALERT_UPDATE_CHANNEL = "fleet:alerts:updates"

    # Latest snapshot summary, for consumers that missed the pub/sub message
    ALERT_SUMMARY = "fleet:alerts:summary"
