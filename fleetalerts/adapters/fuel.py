"""Fuel tank level alert source."""

from datetime import datetime

from fleetalerts.adapters.base import SourceAdapter
from fleetalerts.core.config import get_settings
from fleetalerts.core.logging import get_logger
from fleetalerts.engine.windows import classify_fuel_level
from fleetalerts.models.alert import Alert, AlertCategory, AlertSource, make_alert_id
from fleetalerts.models.records import FuelTankRecord
from fleetalerts.models.thresholds import ThresholdConfig

logger = get_logger(__name__)


class FuelAdapter(SourceAdapter[FuelTankRecord]):
    """Alerts for fuel tanks at or below their low level threshold."""

    source = AlertSource.FUEL
    category = AlertCategory.FUEL
    record_model = FuelTankRecord

    def default_table(self) -> str:
        return get_settings().fuel_tank_table

    def build_alerts(
        self,
        records: list[FuelTankRecord],
        now: datetime,
        thresholds: ThresholdConfig,
    ) -> list[Alert]:
        alerts: list[Alert] = []
        for tank in records:
            if tank.capacity <= 0:
                logger.warning("Tank has no capacity", tank_id=tank.id)
                continue

            percentage = tank.current_volume / tank.capacity * 100
            threshold = tank.low_threshold or thresholds.low_fuel_threshold
            result = classify_fuel_level(percentage, threshold)
            if result is None:
                continue

            alerts.append(
                Alert(
                    id=make_alert_id(self.source, "low", tank.id),
                    title="Low Fuel Alert",
                    message=(
                        f"{tank.name} is at {percentage:.1f}% capacity "
                        f"({tank.current_volume:g}L remaining, threshold {threshold:g}%)"
                    ),
                    category=self.category,
                    severity=result.severity,
                    priority=result.priority,
                    source=self.source,
                    created_at=now,
                    payload={
                        "source_record_id": tank.id,
                        "tank_id": tank.id,
                        "current_volume": tank.current_volume,
                        "capacity": tank.capacity,
                        "percentage": round(percentage, 2),
                        "threshold": threshold,
                    },
                )
            )
        return alerts
