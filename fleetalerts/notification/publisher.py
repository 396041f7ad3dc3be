"""Publish alert snapshot changes to Redis for out-of-process consumers."""

import json

from redis.asyncio import Redis

from fleetalerts.core.logging import get_logger
from fleetalerts.engine.state import AlertSnapshot
from fleetalerts.models.alert import AlertPriority
from fleetalerts.storage.redis_client import RedisKeys, get_redis

logger = get_logger(__name__)


class AlertUpdatePublisher:
    """State store listener that publishes a summary of every snapshot."""

    def __init__(self, redis: Redis | None = None):
        self._redis = redis

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    async def __call__(self, snapshot: AlertSnapshot) -> None:
        await self.publish(snapshot)

    async def publish(self, snapshot: AlertSnapshot) -> None:
        """Store the latest summary and announce it on the update channel.

        Args:
            snapshot: Snapshot delivered by the state store
        """
        message = json.dumps(build_update_message(snapshot))
        await self.redis.set(RedisKeys.ALERT_SUMMARY, message)
        receivers = await self.redis.publish(RedisKeys.ALERT_UPDATE_CHANNEL, message)
        logger.debug("Alert update published", reason=snapshot.reason, receivers=receivers)


def build_update_message(snapshot: AlertSnapshot) -> dict:
    """Compact JSON-ready description of a snapshot."""
    visible = [alert for alert in snapshot.alerts if not alert.dismissed]
    return {
        "reason": snapshot.reason,
        "refreshed_at": snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None,
        "partial": snapshot.partial,
        "failed_sources": sorted(snapshot.failures),
        "total": len(visible),
        "unread": sum(1 for alert in visible if not alert.read),
        "high_priority": sum(1 for alert in visible if alert.priority == AlertPriority.HIGH),
        "alert_ids": [alert.id for alert in visible],
    }
