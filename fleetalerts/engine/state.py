"""Alert state store: latest snapshot, consumer flags and change fan-out."""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel, Field

from fleetalerts.core.clock import Clock, utc_now
from fleetalerts.core.logging import get_logger
from fleetalerts.engine.aggregator import AlertAggregator
from fleetalerts.models.alert import Alert, AlertCategory, AlertPriority
from fleetalerts.observability.metrics import ACTIVE_ALERTS
from fleetalerts.storage.flag_store import AlertFlags, AlertFlagStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class AlertSnapshot:
    """What subscribers receive after every refresh or flag change."""

    alerts: tuple[Alert, ...]
    reason: str
    refreshed_at: datetime | None = None
    partial: bool = False
    failures: dict[str, str] = field(default_factory=dict)


Listener = Callable[[AlertSnapshot], Awaitable[None] | None]


class Subscription:
    """Handle returned by subscribe(); call unsubscribe() to stop receiving."""

    def __init__(self, store: "AlertStateStore", listener: Listener):
        self._store = store
        self.listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._store._remove_subscription(self)


class AlertFilter(BaseModel):
    """Client-supplied view over the snapshot."""

    category: AlertCategory | None = None
    priority: AlertPriority | None = None
    status: Literal["all", "read", "unread"] = "all"
    include_dismissed: bool = False

    def matches(self, alert: Alert) -> bool:
        if alert.dismissed and not self.include_dismissed:
            return False
        if self.category is not None and alert.category != self.category:
            return False
        if self.priority is not None and alert.priority != self.priority:
            return False
        if self.status == "read":
            return alert.read
        if self.status == "unread":
            return not alert.read
        return True


class RefreshResult(BaseModel):
    """Outcome of refresh() as seen by callers."""

    alert_count: int = Field(..., ge=0)
    partial: bool = False
    failures: dict[str, str] = Field(default_factory=dict)
    refreshed_at: datetime
    pass_id: str = ""


class AlertSummary(BaseModel):
    """Counters for dashboards."""

    total: int = 0
    unread: int = 0
    by_priority: dict[str, int] = Field(default_factory=dict)
    by_category: dict[str, int] = Field(default_factory=dict)
    partial: bool = False
    refreshed_at: datetime | None = None


class AlertStateStore:
    """Hold the latest alert snapshot and publish changes to subscribers."""

    def __init__(
        self,
        aggregator: AlertAggregator,
        clock: Clock = utc_now,
        flag_store: AlertFlagStore | None = None,
    ):
        """Initialize store.

        Args:
            aggregator: Aggregator used by refresh()
            clock: Source of the pass time reference
            flag_store: Optional persistence for read/dismissed flags
        """
        self._aggregator = aggregator
        self._clock = clock
        self._flag_store = flag_store
        self._alerts: list[Alert] = []
        self._by_id: dict[str, Alert] = {}
        self._flags: dict[str, AlertFlags] = {}
        self._subscriptions: list[Subscription] = []
        self._inflight: asyncio.Task[RefreshResult] | None = None

        self.last_refresh_partial = False
        self.last_failures: dict[str, str] = {}
        self.last_refreshed_at: datetime | None = None

    # Subscriptions

    def subscribe(self, listener: Listener) -> Subscription:
        """Register a listener for snapshot changes."""
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def _publish(self, reason: str) -> None:
        snapshot = AlertSnapshot(
            alerts=tuple(self._alerts),
            reason=reason,
            refreshed_at=self.last_refreshed_at,
            partial=self.last_refresh_partial,
            failures=dict(self.last_failures),
        )
        for subscription in list(self._subscriptions):
            try:
                outcome = subscription.listener(snapshot)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error("Alert subscriber failed", reason=reason, error=str(e), exc_info=True)

    # Queries

    def get_alerts(self, alert_filter: AlertFilter | None = None) -> list[Alert]:
        """Return copies of the alerts matching the filter, in snapshot order."""
        alert_filter = alert_filter or AlertFilter()
        return [alert.model_copy() for alert in self._alerts if alert_filter.matches(alert)]

    def get_alert(self, alert_id: str) -> Alert | None:
        alert = self._by_id.get(alert_id)
        return alert.model_copy() if alert is not None else None

    def summary(self) -> AlertSummary:
        """Count visible (not dismissed) alerts by priority and category."""
        visible = [alert for alert in self._alerts if not alert.dismissed]
        by_priority = {priority.value: 0 for priority in AlertPriority}
        by_category = {category.value: 0 for category in AlertCategory}
        for alert in visible:
            by_priority[alert.priority.value] += 1
            by_category[alert.category.value] += 1
        return AlertSummary(
            total=len(visible),
            unread=sum(1 for alert in visible if not alert.read),
            by_priority=by_priority,
            by_category=by_category,
            partial=self.last_refresh_partial,
            refreshed_at=self.last_refreshed_at,
        )

    # Mutations

    async def load_flags(self) -> int:
        """Seed flags from the flag store.

        Returns:
            Number of flag records loaded
        """
        if self._flag_store is None:
            return 0
        stored = await self._flag_store.load_all()
        self._flags.update(stored)
        self._set_alerts(self._apply_flags(self._alerts))
        logger.info("Alert flags loaded", count=len(stored))
        return len(stored)

    async def mark_read(self, alert_id: str) -> bool:
        """Mark an alert read. Unknown or already read ids are a no-op.

        Returns:
            True if the alert changed
        """
        return await self._update_flags(alert_id, "read", read=True)

    async def dismiss(self, alert_id: str) -> bool:
        """Dismiss an alert. Unknown or already dismissed ids are a no-op.

        Returns:
            True if the alert changed
        """
        return await self._update_flags(alert_id, "dismiss", dismissed=True)

    async def _update_flags(self, alert_id: str, reason: str, **changes: bool) -> bool:
        alert = self._by_id.get(alert_id)
        if alert is None:
            logger.debug("Ignoring flag change for unknown alert", alert_id=alert_id, action=reason)
            return False
        if all(getattr(alert, name) == value for name, value in changes.items()):
            return False

        updated = alert.model_copy(update=changes)
        flags = AlertFlags(read=updated.read, dismissed=updated.dismissed)
        self._flags[alert_id] = flags
        self._set_alerts([updated if item.id == alert_id else item for item in self._alerts])

        if self._flag_store is not None:
            try:
                await self._flag_store.save(alert_id, flags)
            except Exception as e:
                logger.error("Failed to persist alert flags", alert_id=alert_id, error=str(e))

        await self._publish(reason)
        return True

    async def refresh(self) -> RefreshResult:
        """Run an aggregation pass, joining the one in flight if there is one.

        Never raises for source failures; check ``partial`` on the result.
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._run_refresh())
        else:
            logger.debug("Joining in-flight refresh")
        return await asyncio.shield(self._inflight)

    async def _run_refresh(self) -> RefreshResult:
        now = self._clock()
        previous: dict[str, Any] = {**self._flags, **self._by_id}

        try:
            result = await self._aggregator.run_pass(now, previous)
        except Exception as e:
            logger.error("Aggregation pass failed", error=str(e), exc_info=True)
            self.last_refresh_partial = True
            self.last_failures = {"aggregator": str(e)}
            return RefreshResult(
                alert_count=len(self._alerts),
                partial=True,
                failures=dict(self.last_failures),
                refreshed_at=now,
            )

        # Flags may have changed while the pass was running
        self._set_alerts(self._apply_flags(result.alerts))
        self.last_refresh_partial = result.partial
        self.last_failures = dict(result.failures)
        self.last_refreshed_at = result.now

        if not result.partial:
            await self._prune_flags()

        self._update_gauges()
        await self._publish("refresh")

        return RefreshResult(
            alert_count=len(self._alerts),
            partial=result.partial,
            failures=dict(result.failures),
            refreshed_at=result.now,
            pass_id=result.pass_id,
        )

    async def _prune_flags(self) -> None:
        """Forget flags of alerts whose condition cleared. Only after complete passes."""
        active = set(self._by_id)
        stale = [alert_id for alert_id in self._flags if alert_id not in active]
        for alert_id in stale:
            del self._flags[alert_id]
        if self._flag_store is not None:
            try:
                await self._flag_store.prune(active)
            except Exception as e:
                logger.error("Failed to prune alert flags", error=str(e))

    def _apply_flags(self, alerts: list[Alert]) -> list[Alert]:
        applied: list[Alert] = []
        for alert in alerts:
            flags = self._flags.get(alert.id)
            if flags is not None and (flags.read, flags.dismissed) != (alert.read, alert.dismissed):
                alert = alert.model_copy(update={"read": flags.read, "dismissed": flags.dismissed})
            applied.append(alert)
        return applied

    def _set_alerts(self, alerts: list[Alert]) -> None:
        self._alerts = alerts
        self._by_id = {alert.id: alert for alert in alerts}

    def _update_gauges(self) -> None:
        ACTIVE_ALERTS.clear()
        for alert in self._alerts:
            if not alert.dismissed:
                ACTIVE_ALERTS.labels(
                    category=alert.category.value,
                    priority=alert.priority.value,
                ).inc()
