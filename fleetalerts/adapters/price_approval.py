"""Pending price override approval alert source."""

from datetime import datetime

from fleetalerts.adapters.base import SourceAdapter, format_amount
from fleetalerts.core.config import get_settings
from fleetalerts.models.alert import (
    Alert,
    AlertCategory,
    AlertPriority,
    AlertSeverity,
    AlertSource,
    make_alert_id,
)
from fleetalerts.models.records import RentalRecord
from fleetalerts.models.thresholds import ThresholdConfig


class PriceApprovalAdapter(SourceAdapter[RentalRecord]):
    """Alerts for rentals whose manual price is waiting for approval."""

    source = AlertSource.PRICE_APPROVAL
    category = AlertCategory.PRICE_APPROVAL
    record_model = RentalRecord

    filters = {"approval_status": "eq.pending"}
    order = "created_at.desc"

    def default_table(self) -> str:
        return get_settings().rentals_table

    @property
    def columns(self) -> str:
        vehicles = get_settings().vehicles_table
        return (
            "id,customer_name,pending_total_request,total_amount,price_override_reason,"
            f"approval_status,created_at,vehicle_id,vehicle:{vehicles}(name,model,plate_number)"
        )

    def build_alerts(
        self,
        records: list[RentalRecord],
        now: datetime,
        thresholds: ThresholdConfig,
    ) -> list[Alert]:
        alerts: list[Alert] = []
        for rental in records:
            if (rental.approval_status or "").lower() != "pending":
                continue

            manual = format_amount(rental.pending_total_request)
            automatic = format_amount(rental.total_amount)
            alerts.append(
                Alert(
                    id=make_alert_id(self.source, "pending", rental.id),
                    title="Price Approval Required",
                    message=(
                        f"{rental.customer_name} - {rental.make_model} ({rental.plate}). "
                        f"Manual: {manual} (Auto: {automatic})"
                    ),
                    category=self.category,
                    severity=AlertSeverity.WARNING,
                    priority=AlertPriority.HIGH,
                    source=self.source,
                    created_at=rental.created_at or now,
                    payload={
                        "source_record_id": rental.id,
                        "rental_id": rental.id,
                        "customer_name": rental.customer_name,
                        "vehicle_id": rental.vehicle_id,
                        "make_model": rental.make_model,
                        "plate_number": rental.plate,
                        "manual_price": rental.pending_total_request,
                        "auto_price": rental.total_amount,
                        "reason": rental.price_override_reason,
                    },
                )
            )
        return alerts
