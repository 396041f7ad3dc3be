"""Worker process entry point for periodic alert aggregation."""

import asyncio
import signal

from fleetalerts.core.config import get_settings
from fleetalerts.core.logging import get_logger, setup_logging
from fleetalerts.notification.publisher import AlertUpdatePublisher
from fleetalerts.runtime import AlertRuntime
from fleetalerts.storage.redis_client import (
    close_redis_pool,
    get_redis,
    init_redis_pool,
)

logger = get_logger(__name__)


class RefreshWorker:
    """Refresh the alert snapshot on a fixed interval and publish every change."""

    def __init__(self, runtime: AlertRuntime | None = None, interval_seconds: float | None = None):
        """Initialize worker.

        Args:
            runtime: Pre-built runtime, created from settings on start() if omitted
            interval_seconds: Pause between passes, defaults to the configured interval
        """
        self._settings = get_settings()
        self._runtime = runtime
        self._interval = interval_seconds or self._settings.refresh_interval_seconds
        self._stop_event = asyncio.Event()
        self.passes = 0

    async def start(self) -> None:
        """Run passes until stop() is called."""
        setup_logging()
        logger.info("Starting refresh worker", interval_seconds=self._interval)

        owns_redis = self._runtime is None
        if owns_redis:
            await init_redis_pool()
            self._runtime = AlertRuntime(redis=get_redis())
            self._runtime.store.subscribe(AlertUpdatePublisher(get_redis()))

        try:
            await self._runtime.start()
            await self.run(initial_refresh=False)
        finally:
            await self._cleanup(owns_redis)

    async def run(self, initial_refresh: bool = True) -> None:
        """Refresh loop.

        Args:
            initial_refresh: Run a pass before the first wait
        """
        refresh_now = initial_refresh
        while not self._stop_event.is_set():
            if refresh_now:
                result = await self._runtime.store.refresh()
                self.passes += 1
                if result.partial:
                    logger.warning(
                        "Refresh completed with failed sources",
                        failed_sources=sorted(result.failures),
                        alerts=result.alert_count,
                    )
            refresh_now = True
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue

    def stop(self) -> None:
        """Signal the loop to stop after the current pass."""
        logger.info("Stopping refresh worker")
        self._stop_event.set()

    async def _cleanup(self, owns_redis: bool) -> None:
        logger.info("Cleaning up resources")
        if self._runtime is not None:
            await self._runtime.close()
        if owns_redis:
            await close_redis_pool()
        logger.info("Cleanup complete")


async def main() -> None:
    """Main entry point for the worker process."""
    worker = RefreshWorker()

    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        worker.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await worker.start()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
