"""Tests for alert and record models."""

from datetime import datetime, timezone

import pytest
import structlog

from fleetalerts.models.alert import (
    AlertCategory,
    AlertPriority,
    AlertSeverity,
    AlertSource,
    category_label,
    make_alert_id,
    validate_category_labels,
)
from fleetalerts.models.records import MaintenanceRecord, RentalRecord, VehicleRecord
from fleetalerts.observability.tracing import PassContext, get_pass_id


def test_alert_ids_are_stable() -> None:
    assert make_alert_id(AlertSource.RENTAL, "return", 42) == "rental-return-42"
    assert make_alert_id("fuel", "low", "t1") == "fuel-low-t1"


def test_every_category_has_a_label() -> None:
    validate_category_labels()
    assert category_label("price_approval") == "Price Approvals"
    assert category_label(AlertCategory.RENTAL) == "Rental Returns"


def test_unknown_category_label_raises() -> None:
    with pytest.raises(ValueError):
        category_label("parking")


def test_missing_label_is_detected() -> None:
    with pytest.raises(ValueError, match="fuel"):
        validate_category_labels({AlertCategory.VEHICLE: "Fleet"})


def test_ranks_order_enums() -> None:
    assert AlertSeverity.ERROR.rank > AlertSeverity.WARNING.rank > AlertSeverity.INFO.rank
    assert AlertPriority.HIGH.rank > AlertPriority.MEDIUM.rank > AlertPriority.LOW.rank


def test_rental_record_derived_fields() -> None:
    rental = RentalRecord.model_validate(
        {
            "id": 5,
            "rental_end_date": "2024-01-10T12:00:00",
            "rental_status": "Completed",
            "remaining_amount": -20,
            "vehicles": {"name": "Quad 3", "plate_number": ""},
        }
    )

    assert rental.id == "5"
    assert rental.is_open is False
    assert rental.amount_due == 0.0
    assert rental.make_model == "Quad 3"
    assert rental.plate == "N/A"
    assert rental.rental_end_date.tzinfo == timezone.utc


def test_record_aliases() -> None:
    vehicle = VehicleRecord.model_validate({"id": "v1", "name": "Quad", "license_plate": "A-1"})
    maintenance = MaintenanceRecord.model_validate(
        {"id": "m1", "maintenance_type": "Brakes", "scheduled_date": datetime(2024, 1, 1)}
    )

    assert vehicle.display_name == "Quad (A-1)"
    assert maintenance.maintenance_type == "Brakes"
    assert maintenance.scheduled_date.tzinfo == timezone.utc


def test_pass_context_binds_and_restores_pass_id() -> None:
    assert get_pass_id() == ""

    with PassContext("abc123") as pass_id:
        assert pass_id == "abc123"
        assert get_pass_id() == "abc123"
        assert structlog.contextvars.get_contextvars()["pass_id"] == "abc123"

    assert get_pass_id() == ""
    assert "pass_id" not in structlog.contextvars.get_contextvars()
