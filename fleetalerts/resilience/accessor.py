"""Resilient cache-or-fetch access for any remote call.

The accessor knows nothing about what it fetches. The same class backs the
alert source adapters and the price and transport fee lookups:

- cache hits inside the TTL return without calling the fetch function
- every attempt races the fetch against a deadline
- failed attempts are retried with capped exponential backoff
- exhausted retries raise FetchError with the last underlying error
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from fleetalerts.core.config import get_settings
from fleetalerts.core.errors import FetchError, FetchTimeout, PermanentAdapterError
from fleetalerts.core.logging import get_logger
from fleetalerts.observability.metrics import CACHE_LOOKUPS, FETCH_ATTEMPTS, FETCH_LATENCY

logger = get_logger(__name__)

T = TypeVar("T")

FetchFn = Callable[[], Awaitable[T]]
SleepFn = Callable[[float], Awaitable[Any]]


@dataclass
class CacheEntry:
    """Cached value with the monotonic time it was fetched."""

    value: Any
    fetched_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.fetched_at < ttl


@dataclass
class KeySlot:
    """Per-key fetch lock, the number of callers using it, and an invalidation count."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0
    generation: int = 0


class ResilientAccessor:
    """TTL cache with timeout racing and bounded retry."""

    def __init__(
        self,
        *,
        ttl_seconds: float = 30.0,
        timeout_seconds: float = 5.0,
        max_retries: int = 2,
        backoff_base_seconds: float = 1.0,
        backoff_cap_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
        name: str = "default",
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_cap_seconds = backoff_cap_seconds
        self._clock = clock
        self._sleep = sleep
        self._cache: dict[str, CacheEntry] = {}
        self._slots: dict[str, KeySlot] = {}

    @classmethod
    def from_settings(cls, name: str = "default", **overrides: Any) -> "ResilientAccessor":
        """Create an accessor configured from application settings."""
        settings = get_settings()
        params: dict[str, Any] = {
            "ttl_seconds": settings.cache_ttl_seconds,
            "timeout_seconds": settings.fetch_timeout_seconds,
            "max_retries": settings.fetch_max_retries,
            "backoff_base_seconds": settings.backoff_base_seconds,
            "backoff_cap_seconds": settings.backoff_cap_seconds,
            "name": name,
        }
        params.update(overrides)
        return cls(**params)

    async def get_or_fetch(self, key: str, fetch_fn: FetchFn[T], ttl: float | None = None) -> T:
        """Return the cached value for key or fetch and cache it.

        Args:
            key: Cache key
            fetch_fn: Zero-argument coroutine function producing the value
            ttl: TTL override in seconds

        Returns:
            Cached or freshly fetched value

        Raises:
            FetchError: All attempts failed
            PermanentAdapterError: The fetch reported a non-retryable failure
        """
        ttl = self.ttl_seconds if ttl is None else ttl

        cached = self._lookup(key, ttl)
        if cached is not None:
            return cached.value

        # Concurrent misses for the same key wait for the first fetch
        slot = self._slots.setdefault(key, KeySlot())
        slot.users += 1
        try:
            async with slot.lock:
                cached = self._lookup(key, ttl, record=False)
                if cached is not None:
                    return cached.value

                generation = slot.generation
                value = await self.call(fetch_fn, operation=key)
                if slot.generation == generation:
                    self._cache[key] = CacheEntry(value=value, fetched_at=self._clock())
                else:
                    logger.debug("Discarding value invalidated during fetch", accessor=self.name, key=key)
                return value
        finally:
            slot.users -= 1
            if slot.users == 0 and self._slots.get(key) is slot:
                del self._slots[key]

    async def call(self, fetch_fn: FetchFn[T], operation: str = "fetch") -> T:
        """Run fetch_fn with per-attempt timeout and bounded retry, uncached.

        Args:
            fetch_fn: Zero-argument coroutine function
            operation: Name used in logs and errors

        Returns:
            Result of the first successful attempt
        """
        total_attempts = 1 + self.max_retries
        started = time.perf_counter()
        last_error: BaseException | None = None

        for attempt in range(1, total_attempts + 1):
            try:
                result = await asyncio.wait_for(fetch_fn(), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                last_error = FetchTimeout(operation, self.timeout_seconds)
                FETCH_ATTEMPTS.labels(accessor=self.name, outcome="timeout").inc()
            except PermanentAdapterError:
                FETCH_ATTEMPTS.labels(accessor=self.name, outcome="permanent").inc()
                logger.warning(
                    "Fetch failed permanently",
                    accessor=self.name,
                    operation=operation,
                    attempt=attempt,
                )
                raise
            except Exception as e:
                last_error = e
                FETCH_ATTEMPTS.labels(accessor=self.name, outcome="error").inc()
            else:
                FETCH_ATTEMPTS.labels(accessor=self.name, outcome="success").inc()
                FETCH_LATENCY.labels(accessor=self.name).observe(time.perf_counter() - started)
                if attempt > 1:
                    logger.info(
                        "Fetch succeeded after retry",
                        accessor=self.name,
                        operation=operation,
                        attempt=attempt,
                    )
                return result

            logger.warning(
                "Fetch attempt failed",
                accessor=self.name,
                operation=operation,
                attempt=attempt,
                max_attempts=total_attempts,
                error=str(last_error),
            )
            if attempt < total_attempts:
                delay = self.backoff_delay(attempt)
                logger.debug("Retrying fetch", operation=operation, delay_seconds=delay)
                await self._sleep(delay)

        assert last_error is not None
        raise FetchError(operation, last_error, attempts=total_attempts)

    def backoff_delay(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        return min(self.backoff_base_seconds * 2 ** (attempt - 1), self.backoff_cap_seconds)

    def peek(self, key: str) -> Any | None:
        """Return the last cached value for key even if expired."""
        entry = self._cache.get(key)
        return entry.value if entry is not None else None

    def prime(self, key: str, value: Any) -> None:
        """Write a value fetched elsewhere (e.g. by a batch query) into the cache."""
        self._cache[key] = CacheEntry(value=value, fetched_at=self._clock())

    def invalidate(self, key: str) -> bool:
        """Drop one cached key.

        Returns:
            True if the key was cached
        """
        removed = self._cache.pop(key, None) is not None
        self._bump(key)
        if removed:
            logger.debug("Cache invalidated", accessor=self.name, key=key)
        return removed

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop all cached keys starting with prefix.

        Returns:
            Number of keys removed
        """
        keys = [key for key in self._cache if key.startswith(prefix)]
        for key in keys:
            self._cache.pop(key, None)
        for key, slot in self._slots.items():
            if key.startswith(prefix):
                slot.generation += 1
        if keys:
            logger.debug("Cache prefix invalidated", accessor=self.name, prefix=prefix, count=len(keys))
        return len(keys)

    def clear_all(self) -> None:
        """Drop every cached key."""
        self._cache.clear()
        for slot in self._slots.values():
            slot.generation += 1
        logger.debug("Cache cleared", accessor=self.name)

    def _bump(self, key: str) -> None:
        # An in-flight fetch for key must not write back its value
        slot = self._slots.get(key)
        if slot is not None:
            slot.generation += 1

    def _lookup(self, key: str, ttl: float, record: bool = True) -> CacheEntry | None:
        entry = self._cache.get(key)
        fresh = entry is not None and entry.is_fresh(self._clock(), ttl)
        if record:
            CACHE_LOOKUPS.labels(accessor=self.name, result="hit" if fresh else "miss").inc()
        return entry if fresh else None

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)
