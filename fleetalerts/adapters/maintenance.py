"""Scheduled maintenance alert source."""

from datetime import datetime

from fleetalerts.adapters.base import SourceAdapter
from fleetalerts.core.config import get_settings
from fleetalerts.engine.windows import WindowState, classify_maintenance, days_until
from fleetalerts.models.alert import Alert, AlertCategory, AlertSource, make_alert_id
from fleetalerts.models.records import MaintenanceRecord
from fleetalerts.models.thresholds import ThresholdConfig


class MaintenanceAdapter(SourceAdapter[MaintenanceRecord]):
    """Alerts for scheduled maintenance that is overdue or coming up."""

    source = AlertSource.MAINTENANCE
    category = AlertCategory.MAINTENANCE
    record_model = MaintenanceRecord

    filters = {"status": "eq.scheduled"}
    order = "date.asc"

    def default_table(self) -> str:
        return get_settings().maintenance_table

    def build_alerts(
        self,
        records: list[MaintenanceRecord],
        now: datetime,
        thresholds: ThresholdConfig,
    ) -> list[Alert]:
        alerts: list[Alert] = []
        for maintenance in records:
            if maintenance.status.lower() != "scheduled":
                continue

            days_left = days_until(maintenance.scheduled_date, now)
            result = classify_maintenance(days_left, thresholds)
            if result is None:
                continue

            if result.state == WindowState.OVERDUE:
                title = "Maintenance Overdue"
                when = f"overdue by {abs(days_left)} days"
            elif days_left == 0:
                title = "Maintenance Due Today"
                when = "due today"
            elif result.state == WindowState.URGENT:
                title = "Maintenance Due Tomorrow"
                when = f"due in {days_left} days"
            else:
                title = "Maintenance Due Soon"
                when = f"due in {days_left} days"

            vehicle_name = maintenance.vehicle_name or "Vehicle"
            alerts.append(
                Alert(
                    id=make_alert_id(self.source, "due", maintenance.id),
                    title=title,
                    message=f"{vehicle_name} - {maintenance.maintenance_type} {when}",
                    category=self.category,
                    severity=result.severity,
                    priority=result.priority,
                    source=self.source,
                    created_at=now,
                    payload={
                        "source_record_id": maintenance.id,
                        "maintenance_id": maintenance.id,
                        "vehicle_id": maintenance.vehicle_id,
                        "vehicle_name": maintenance.vehicle_name,
                        "maintenance_type": maintenance.maintenance_type,
                        "scheduled_date": maintenance.scheduled_date.isoformat(),
                        "days_until_due": days_left,
                    },
                )
            )
        return alerts
