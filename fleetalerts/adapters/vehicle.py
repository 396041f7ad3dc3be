"""Fleet vehicle alert source: oil changes and document expiries."""

from datetime import datetime

from fleetalerts.adapters.base import SourceAdapter
from fleetalerts.core.config import get_settings
from fleetalerts.engine.windows import (
    Classification,
    WindowState,
    classify_document_expiry,
    classify_oil_change,
    days_until,
)
from fleetalerts.models.alert import Alert, AlertCategory, AlertSource, make_alert_id
from fleetalerts.models.records import VehicleRecord
from fleetalerts.models.thresholds import ThresholdConfig

# Document expiry rules: kind -> (record attribute, display name)
_DOCUMENT_RULES = (
    ("insurance_expiry", "insurance_expiry_date", "Insurance"),
    ("registration_expiry", "registration_expiry_date", "Registration"),
)


class VehicleAdapter(SourceAdapter[VehicleRecord]):
    """Alerts for vehicles due an oil change or with expiring documents."""

    source = AlertSource.VEHICLE
    category = AlertCategory.VEHICLE
    record_model = VehicleRecord

    def default_table(self) -> str:
        return get_settings().vehicles_table

    def build_alerts(
        self,
        records: list[VehicleRecord],
        now: datetime,
        thresholds: ThresholdConfig,
    ) -> list[Alert]:
        alerts: list[Alert] = []
        for vehicle in records:
            oil_alert = self._oil_change_alert(vehicle, now, thresholds)
            if oil_alert:
                alerts.append(oil_alert)

            for kind, attribute, label in _DOCUMENT_RULES:
                expiry = getattr(vehicle, attribute)
                if expiry is None:
                    continue
                alert = self._document_alert(vehicle, kind, label, expiry, now, thresholds)
                if alert:
                    alerts.append(alert)
        return alerts

    def _oil_change_alert(
        self,
        vehicle: VehicleRecord,
        now: datetime,
        thresholds: ThresholdConfig,
    ) -> Alert | None:
        if not vehicle.current_odometer or not vehicle.next_oil_change_odometer:
            return None

        km_left = vehicle.next_oil_change_odometer - vehicle.current_odometer
        result = classify_oil_change(km_left, thresholds)
        if result is None:
            return None

        if result.state == WindowState.OVERDUE:
            title = "Oil Change Overdue"
            message = f"{vehicle.display_name} is {abs(km_left):g} km overdue for oil change"
        else:
            title = "Oil Change Due Soon"
            message = f"{vehicle.display_name} needs oil change in {km_left:g} km"

        return self._make_alert(
            vehicle,
            "oil_change",
            title,
            message,
            result,
            now,
            {
                "current_odometer": vehicle.current_odometer,
                "next_oil_change_odometer": vehicle.next_oil_change_odometer,
                "km_until_service": km_left,
            },
        )

    def _document_alert(
        self,
        vehicle: VehicleRecord,
        kind: str,
        label: str,
        expiry: datetime,
        now: datetime,
        thresholds: ThresholdConfig,
    ) -> Alert | None:
        days_left = days_until(expiry, now)
        result = classify_document_expiry(days_left, thresholds)
        if result is None:
            return None

        if result.state == WindowState.OVERDUE:
            title = f"{label} Expired"
            message = f"{vehicle.display_name} {label.lower()} expired {abs(days_left)} days ago"
        else:
            title = f"{label} Expiry Due Soon"
            message = f"{vehicle.display_name} {label.lower()} expires in {days_left} days"

        return self._make_alert(
            vehicle,
            kind,
            title,
            message,
            result,
            now,
            {"expiry_date": expiry.isoformat(), "days_until_expiry": days_left},
        )

    def _make_alert(
        self,
        vehicle: VehicleRecord,
        kind: str,
        title: str,
        message: str,
        result: Classification,
        now: datetime,
        details: dict,
    ) -> Alert:
        return Alert(
            id=make_alert_id(self.source, kind, vehicle.id),
            title=title,
            message=message,
            category=self.category,
            severity=result.severity,
            priority=result.priority,
            source=self.source,
            created_at=now,
            payload={
                "source_record_id": vehicle.id,
                "vehicle_id": vehicle.id,
                "vehicle_name": vehicle.name,
                "plate_number": vehicle.plate_number,
                "alert_kind": kind,
                **details,
            },
        )
