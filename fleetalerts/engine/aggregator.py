"""Aggregation pass: fan out to sources, then merge, deduplicate and rank."""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

from fleetalerts.adapters.base import SourceAdapter
from fleetalerts.core.clock import ensure_aware
from fleetalerts.core.config import get_settings
from fleetalerts.core.errors import AggregationPartialFailure, FetchError
from fleetalerts.core.logging import get_logger
from fleetalerts.models.alert import Alert
from fleetalerts.models.thresholds import ThresholdConfig
from fleetalerts.observability.metrics import (
    AGGREGATION_LATENCY,
    AGGREGATION_PASSES,
    SOURCE_FAILURES,
)
from fleetalerts.observability.tracing import PassContext

logger = get_logger(__name__)


@dataclass
class AggregationResult:
    """Outcome of one aggregation pass."""

    alerts: list[Alert]
    now: datetime
    pass_id: str = ""
    failures: dict[str, str] = field(default_factory=dict)
    timed_out: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    @property
    def partial_failure(self) -> AggregationPartialFailure | None:
        return AggregationPartialFailure(self.failures) if self.failures else None


class AlertAggregator:
    """Run all source adapters concurrently and build a ranked alert list."""

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        thresholds: ThresholdConfig | None = None,
        pass_timeout_seconds: float | None = None,
    ):
        """Initialize aggregator.

        Args:
            adapters: One adapter per source
            thresholds: Classification windows handed to every adapter
            pass_timeout_seconds: Deadline for the whole fan-out, None for no deadline
        """
        sources = [adapter.source for adapter in adapters]
        if len(set(sources)) != len(sources):
            raise ValueError("Each source may only be registered once")
        self._adapters = list(adapters)
        self.thresholds = thresholds or ThresholdConfig()
        self.pass_timeout_seconds = pass_timeout_seconds

    @classmethod
    def from_settings(cls, adapters: Sequence[SourceAdapter]) -> "AlertAggregator":
        settings = get_settings()
        return cls(
            adapters,
            thresholds=ThresholdConfig.from_settings(settings),
            pass_timeout_seconds=settings.aggregation_timeout_seconds,
        )

    @property
    def adapters(self) -> list[SourceAdapter]:
        return list(self._adapters)

    async def aggregate(
        self,
        now: datetime,
        previous_by_id: Mapping[str, Any] | None = None,
    ) -> list[Alert]:
        """Build the sorted alert list for now.

        Args:
            now: Time reference for every source in this pass
            previous_by_id: Previous alerts (or flag records) keyed by id

        Returns:
            Deduplicated alerts, flags merged, highest priority first
        """
        result = await self.run_pass(now, previous_by_id)
        return result.alerts

    async def run_pass(
        self,
        now: datetime,
        previous_by_id: Mapping[str, Any] | None = None,
    ) -> AggregationResult:
        """Run one pass and report which sources failed or timed out.

        Source errors are logged and reported on the result, never raised.
        """
        now = ensure_aware(now)
        started = time.perf_counter()

        with PassContext() as pass_id:
            batches, failures, timed_out = await self._collect(now)
            alerts = sort_alerts(merge_alerts(batches, previous_by_id))

            elapsed = time.perf_counter() - started
            AGGREGATION_LATENCY.observe(elapsed)
            AGGREGATION_PASSES.labels(status="partial" if failures else "complete").inc()
            logger.info(
                "Aggregation pass complete",
                alerts=len(alerts),
                sources=len(self._adapters),
                failed_sources=sorted(failures),
                elapsed_ms=int(elapsed * 1000),
            )

        return AggregationResult(
            alerts=alerts,
            now=now,
            pass_id=pass_id,
            failures=failures,
            timed_out=timed_out,
        )

    async def _collect(
        self,
        now: datetime,
    ) -> tuple[list[list[Alert]], dict[str, str], list[str]]:
        if not self._adapters:
            return [], {}, []

        tasks = [
            asyncio.create_task(
                adapter.fetch(now, self.thresholds),
                name=f"source:{adapter.source.value}",
            )
            for adapter in self._adapters
        ]
        done, pending = await asyncio.wait(tasks, timeout=self.pass_timeout_seconds)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        batches: list[list[Alert]] = []
        failures: dict[str, str] = {}
        timed_out: list[str] = []

        for adapter, task in zip(self._adapters, tasks):
            source = adapter.source.value
            if task not in done:
                timed_out.append(source)
                failures[source] = f"Exceeded pass deadline of {self.pass_timeout_seconds}s"
                SOURCE_FAILURES.labels(source=source, reason="deadline").inc()
                logger.warning(
                    "Source dropped from pass after deadline",
                    source=source,
                    timeout_seconds=self.pass_timeout_seconds,
                )
                continue

            if task.cancelled():
                failures[source] = "Cancelled"
                SOURCE_FAILURES.labels(source=source, reason="cancelled").inc()
                logger.warning("Source fetch cancelled", source=source)
                continue

            error = task.exception()
            if error is not None:
                reason = "fetch" if isinstance(error, FetchError) else "error"
                failures[source] = str(error)
                SOURCE_FAILURES.labels(source=source, reason=reason).inc()
                logger.error(
                    "Source failed, continuing without it",
                    source=source,
                    error=str(error),
                    exc_info=error,
                )
                continue

            batches.append(task.result())

        return batches, failures, timed_out


def _outranks(candidate: Alert, current: Alert) -> bool:
    """Higher severity wins; equal severity goes to the most recent."""
    return (candidate.severity.rank, candidate.created_at) > (
        current.severity.rank,
        current.created_at,
    )


def merge_alerts(
    batches: Iterable[Iterable[Alert]],
    previous_by_id: Mapping[str, Any] | None = None,
) -> list[Alert]:
    """Deduplicate by id and carry consumer flags over from the previous state.

    Args:
        batches: Alerts per source, in source order
        previous_by_id: Objects with read/dismissed (and optionally created_at) by alert id

    Returns:
        One alert per id, unsorted
    """
    merged: dict[str, Alert] = {}
    for batch in batches:
        for alert in batch:
            current = merged.get(alert.id)
            if current is None or _outranks(alert, current):
                merged[alert.id] = alert

    previous_by_id = previous_by_id or {}
    result: list[Alert] = []
    for alert_id, alert in merged.items():
        previous = previous_by_id.get(alert_id)
        update: dict[str, Any] = {"read": False, "dismissed": False}
        if previous is not None:
            update["read"] = bool(getattr(previous, "read", False))
            update["dismissed"] = bool(getattr(previous, "dismissed", False))
            first_seen = getattr(previous, "created_at", None)
            if isinstance(first_seen, datetime) and first_seen < alert.created_at:
                update["created_at"] = first_seen
        result.append(alert.model_copy(update=update))
    return result


def sort_key(alert: Alert) -> tuple:
    """Priority desc, created_at desc, severity desc, id asc."""
    return (
        -alert.priority.rank,
        -alert.created_at.timestamp(),
        -alert.severity.rank,
        alert.id,
    )


def sort_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Sort alerts into their display order."""
    return sorted(alerts, key=sort_key)
