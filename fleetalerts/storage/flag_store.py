"""Persistence of per-alert read/dismissed flags."""

from pydantic import BaseModel
from redis.asyncio import Redis

from fleetalerts.core.logging import get_logger
from fleetalerts.storage.redis_client import RedisKeys, get_redis

logger = get_logger(__name__)


class AlertFlags(BaseModel):
    """Consumer-owned state of one alert."""

    read: bool = False
    dismissed: bool = False


class AlertFlagStore:
    """Alert flag storage using a Redis hash keyed by alert id."""

    def __init__(self, redis: Redis | None = None):
        self._redis = redis

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    async def load_all(self) -> dict[str, AlertFlags]:
        """Load flags for every alert that has any.

        Returns:
            Mapping of alert id to flags
        """
        raw = await self.redis.hgetall(RedisKeys.ALERT_FLAGS)
        flags: dict[str, AlertFlags] = {}
        for alert_id, data in raw.items():
            try:
                flags[alert_id] = AlertFlags.model_validate_json(data)
            except ValueError as e:
                logger.warning("Skipping malformed alert flags", alert_id=alert_id, error=str(e))
        return flags

    async def save(self, alert_id: str, flags: AlertFlags) -> None:
        """Persist flags for one alert.

        Args:
            alert_id: Alert ID
            flags: Flags to store
        """
        await self.redis.hset(RedisKeys.ALERT_FLAGS, alert_id, flags.model_dump_json())

    async def prune(self, active_ids: set[str]) -> int:
        """Remove flags of alerts whose condition has cleared.

        Args:
            active_ids: Ids present in the latest snapshot

        Returns:
            Number of entries removed
        """
        stored = await self.redis.hkeys(RedisKeys.ALERT_FLAGS)
        stale = [alert_id for alert_id in stored if alert_id not in active_ids]
        if stale:
            await self.redis.hdel(RedisKeys.ALERT_FLAGS, *stale)
        return len(stale)

    async def clear(self) -> None:
        """Remove all stored flags."""
        await self.redis.delete(RedisKeys.ALERT_FLAGS)

