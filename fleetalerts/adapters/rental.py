"""Rental return alert source."""

from datetime import datetime

from fleetalerts.adapters.base import SourceAdapter, format_amount
from fleetalerts.core.config import get_settings
from fleetalerts.engine.windows import (
    WindowState,
    classify_rental_return,
    due_in_hours,
    hours_until,
    overdue_days,
)
from fleetalerts.models.alert import Alert, AlertCategory, AlertSource, make_alert_id
from fleetalerts.models.records import RentalRecord
from fleetalerts.models.thresholds import ThresholdConfig


class RentalReturnAdapter(SourceAdapter[RentalRecord]):
    """Alerts for open rentals that are overdue or due back soon."""

    source = AlertSource.RENTAL
    category = AlertCategory.RENTAL
    record_model = RentalRecord

    filters = {
        "rental_completed_at": "is.null",
        "rental_status": "not.in.(completed,cancelled)",
    }
    order = "rental_end_date.asc"

    def default_table(self) -> str:
        return get_settings().rentals_table

    @property
    def columns(self) -> str:
        vehicles = get_settings().vehicles_table
        return (
            "id,customer_name,rental_end_date,rental_status,total_amount,remaining_amount,"
            f"rental_completed_at,vehicle_id,vehicle:{vehicles}(name,model,plate_number)"
        )

    def build_alerts(
        self,
        records: list[RentalRecord],
        now: datetime,
        thresholds: ThresholdConfig,
    ) -> list[Alert]:
        alerts: list[Alert] = []
        for rental in records:
            if not rental.is_open or rental.rental_end_date is None:
                continue

            hours_left = hours_until(rental.rental_end_date, now)
            result = classify_rental_return(hours_left, thresholds.due_soon_window_hours)
            if result is None:
                continue

            amount_due = rental.amount_due
            subject = f"{rental.customer_name} - {rental.make_model} ({rental.plate})"
            payload = {
                "source_record_id": rental.id,
                "rental_id": rental.id,
                "customer_name": rental.customer_name,
                "vehicle_id": rental.vehicle_id,
                "make_model": rental.make_model,
                "plate_number": rental.plate,
                "due_date": rental.rental_end_date.isoformat(),
                "hours_until_due": round(hours_left, 2),
                "amount_due": amount_due,
            }

            if result.state == WindowState.OVERDUE:
                days = overdue_days(hours_left)
                payload["days_overdue"] = days
                title = "Rental Return Overdue"
                message = f"{subject} overdue by {days} days. Amount: {format_amount(amount_due)}"
            else:
                hours = due_in_hours(hours_left)
                title = "Rental Return Due Soon"
                message = f"{subject} due in {hours} hours. Amount: {format_amount(amount_due)}"

            alerts.append(
                Alert(
                    id=make_alert_id(self.source, "return", rental.id),
                    title=title,
                    message=message,
                    category=self.category,
                    severity=result.severity,
                    priority=result.priority,
                    source=self.source,
                    created_at=now,
                    payload=payload,
                )
            )
        return alerts
