"""Wiring of backend, accessor, adapters, aggregator and state store."""

from redis.asyncio import Redis

from fleetalerts.adapters.registry import build_adapters
from fleetalerts.core.clock import Clock, utc_now
from fleetalerts.core.logging import get_logger
from fleetalerts.engine.aggregator import AlertAggregator
from fleetalerts.engine.state import AlertStateStore
from fleetalerts.resilience.accessor import ResilientAccessor
from fleetalerts.storage.backend import PostgrestBackend, RecordBackend
from fleetalerts.storage.flag_store import AlertFlagStore

logger = get_logger(__name__)


class AlertRuntime:
    """Owns the long-lived alert components of one process."""

    def __init__(
        self,
        backend: RecordBackend | None = None,
        redis: Redis | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize runtime.

        Args:
            backend: Record backend, defaults to the configured PostgREST backend
            redis: Redis client for flag persistence, None keeps flags in memory
            clock: Time source for aggregation passes
        """
        self.backend = backend or PostgrestBackend.from_settings()
        self.accessor = ResilientAccessor.from_settings(name="alerts")
        self.aggregator = AlertAggregator.from_settings(build_adapters(self.backend, self.accessor))
        flag_store = AlertFlagStore(redis) if redis is not None else None
        self.store = AlertStateStore(self.aggregator, clock=clock, flag_store=flag_store)

    async def start(self) -> None:
        """Load persisted flags and run the first pass."""
        await self.store.load_flags()
        result = await self.store.refresh()
        logger.info(
            "Alert runtime started",
            alerts=result.alert_count,
            partial=result.partial,
        )

    async def close(self) -> None:
        await self.backend.close()
        self.accessor.clear_all()
