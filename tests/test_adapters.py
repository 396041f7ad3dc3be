"""Tests for the alert source adapters."""

from datetime import timedelta

import pytest

from conftest import NOW, FakeBackend, iso, make_accessor, rental_row
from fleetalerts.adapters.base import format_amount
from fleetalerts.adapters.fuel import FuelAdapter
from fleetalerts.adapters.maintenance import MaintenanceAdapter
from fleetalerts.adapters.price_approval import PriceApprovalAdapter
from fleetalerts.adapters.registry import build_adapters
from fleetalerts.adapters.rental import RentalReturnAdapter
from fleetalerts.adapters.vehicle import VehicleAdapter
from fleetalerts.core.errors import FetchError, PermanentAdapterError, TransientFetchError
from fleetalerts.models.alert import AlertCategory, AlertPriority, AlertSeverity, AlertSource
from fleetalerts.models.thresholds import ThresholdConfig


def _adapter(adapter_cls, rows, settings_table, **accessor_overrides):
    backend = FakeBackend({settings_table: rows})
    return adapter_cls(backend, make_accessor(**accessor_overrides)), backend


@pytest.mark.asyncio
async def test_rental_one_hour_overdue_is_high_priority(settings) -> None:
    adapter, _ = _adapter(
        RentalReturnAdapter,
        [rental_row("r1", NOW - timedelta(hours=1), remaining_amount=-50)],
        settings.rentals_table,
    )

    alerts = await adapter.fetch(NOW)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.id == "rental-return-r1"
    assert (alert.severity, alert.priority) == (AlertSeverity.ERROR, AlertPriority.HIGH)
    assert alert.payload["amount_due"] == 0.0
    assert alert.payload["days_overdue"] == 1
    assert alert.message == (
        "Youssef Amrani - Segway AT5 (12345-A-6) overdue by 1 days. Amount: 0.00 MAD"
    )
    assert alert.created_at == NOW


@pytest.mark.asyncio
async def test_rental_due_soon_boundary(settings) -> None:
    adapter, _ = _adapter(
        RentalReturnAdapter,
        [
            rental_row("inside", NOW + timedelta(hours=47, minutes=59)),
            rental_row("outside", NOW + timedelta(hours=49)),
        ],
        settings.rentals_table,
    )

    alerts = await adapter.fetch(NOW)

    assert [alert.id for alert in alerts] == ["rental-return-inside"]
    assert alerts[0].severity == AlertSeverity.WARNING
    assert alerts[0].priority == AlertPriority.MEDIUM
    assert "due in 48 hours. Amount: 300.00 MAD" in alerts[0].message


@pytest.mark.asyncio
async def test_rental_skips_closed_and_falls_back_on_missing_vehicle(settings) -> None:
    adapter, _ = _adapter(
        RentalReturnAdapter,
        [
            rental_row("done", NOW - timedelta(hours=3), rental_status="completed"),
            rental_row("returned", NOW - timedelta(hours=3), rental_completed_at=iso(NOW)),
            rental_row("bare", NOW + timedelta(hours=2), vehicle=None),
        ],
        settings.rentals_table,
    )

    alerts = await adapter.fetch(NOW)

    assert [alert.id for alert in alerts] == ["rental-return-bare"]
    assert "Vehicle (N/A)" in alerts[0].message


@pytest.mark.asyncio
async def test_rental_query_filters_open_rentals(settings) -> None:
    adapter, backend = _adapter(RentalReturnAdapter, [], settings.rentals_table)

    await adapter.fetch(NOW)

    call = backend.calls[0]
    assert call["filters"]["rental_completed_at"] == "is.null"
    assert call["order"] == "rental_end_date.asc"
    assert "vehicle:" in call["columns"]


@pytest.mark.asyncio
async def test_fuel_uses_row_threshold_then_config(settings) -> None:
    adapter, _ = _adapter(
        FuelAdapter,
        [
            {"id": "full", "name": "Full", "current_volume": 900, "capacity": 1000},
            {"id": "low", "name": "Low", "current_volume": 120, "capacity": 1000},
            {"id": "critical", "name": "Critical", "current_volume": 50, "capacity": 1000},
            {
                "id": "custom",
                "name": "Custom",
                "current_volume": 250,
                "capacity": 1000,
                "low_threshold": 30,
            },
            {"id": "broken", "name": "Broken", "current_volume": 0, "capacity": 0},
        ],
        settings.fuel_tank_table,
    )

    alerts = {alert.id: alert for alert in await adapter.fetch(NOW)}

    assert set(alerts) == {"fuel-low-low", "fuel-low-critical", "fuel-low-custom"}
    assert alerts["fuel-low-low"].priority == AlertPriority.MEDIUM
    assert alerts["fuel-low-critical"].priority == AlertPriority.HIGH
    assert alerts["fuel-low-critical"].severity == AlertSeverity.ERROR
    assert alerts["fuel-low-custom"].payload["threshold"] == 30
    assert alerts["fuel-low-low"].message == (
        "Low is at 12.0% capacity (120L remaining, threshold 15%)"
    )


@pytest.mark.asyncio
async def test_maintenance_one_day_overdue(settings) -> None:
    adapter, _ = _adapter(
        MaintenanceAdapter,
        [
            {
                "id": "m1",
                "vehicle_name": "Quad 7",
                "type": "Oil change",
                "date": "2024-01-09T12:00:00Z",
                "status": "scheduled",
            }
        ],
        settings.maintenance_table,
    )

    alerts = await adapter.fetch(NOW)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.title == "Maintenance Overdue"
    assert (alert.severity, alert.priority) == (AlertSeverity.ERROR, AlertPriority.HIGH)
    assert "overdue by 1 days" in alert.message
    assert alert.message == "Quad 7 - Oil change overdue by 1 days"


@pytest.mark.asyncio
async def test_maintenance_titles_by_window(settings) -> None:
    adapter, _ = _adapter(
        MaintenanceAdapter,
        [
            {"id": "today", "type": "Tires", "date": iso(NOW - timedelta(hours=2))},
            {"id": "tomorrow", "type": "Tires", "date": iso(NOW + timedelta(hours=20))},
            {"id": "week", "type": "Tires", "date": iso(NOW + timedelta(days=6))},
            {"id": "later", "type": "Tires", "date": iso(NOW + timedelta(days=30))},
            {"id": "done", "type": "Tires", "date": iso(NOW), "status": "completed"},
        ],
        settings.maintenance_table,
    )

    alerts = {alert.id: alert for alert in await adapter.fetch(NOW)}

    assert set(alerts) == {"maintenance-due-today", "maintenance-due-tomorrow", "maintenance-due-week"}
    assert alerts["maintenance-due-today"].title == "Maintenance Due Today"
    assert alerts["maintenance-due-tomorrow"].title == "Maintenance Due Tomorrow"
    assert alerts["maintenance-due-week"].title == "Maintenance Due Soon"
    assert alerts["maintenance-due-week"].severity == AlertSeverity.INFO
    assert alerts["maintenance-due-week"].message == "Vehicle - Tires due in 6 days"


@pytest.mark.asyncio
async def test_vehicle_rules_produce_independent_alerts(settings) -> None:
    adapter, _ = _adapter(
        VehicleAdapter,
        [
            {
                "id": "v1",
                "name": "Quad 1",
                "plate_number": "12345-A-6",
                "current_odometer": 10040,
                "next_oil_change_odometer": 10000,
                "insurance_expiry_date": iso(NOW - timedelta(days=2)),
                "registration_expiry_date": iso(NOW + timedelta(days=20)),
            },
            {
                "id": "v2",
                "name": "Quad 2",
                "current_odometer": 5000,
                "next_oil_change_odometer": 5030,
            },
            {"id": "v3", "name": "Quad 3", "current_odometer": 100, "next_oil_change_odometer": 5000},
        ],
        settings.vehicles_table,
    )

    alerts = {alert.id: alert for alert in await adapter.fetch(NOW)}

    assert set(alerts) == {
        "vehicle-oil_change-v1",
        "vehicle-insurance_expiry-v1",
        "vehicle-registration_expiry-v1",
        "vehicle-oil_change-v2",
    }
    oil = alerts["vehicle-oil_change-v1"]
    assert oil.priority == AlertPriority.HIGH
    assert oil.message == "Quad 1 (12345-A-6) is 40 km overdue for oil change"
    assert alerts["vehicle-oil_change-v2"].message == "Quad 2 needs oil change in 30 km"
    assert alerts["vehicle-insurance_expiry-v1"].title == "Insurance Expired"
    assert alerts["vehicle-registration_expiry-v1"].priority == AlertPriority.LOW
    assert all(alert.category == AlertCategory.VEHICLE for alert in alerts.values())


@pytest.mark.asyncio
async def test_price_approval_alerts(settings) -> None:
    created = NOW - timedelta(hours=5)
    adapter, backend = _adapter(
        PriceApprovalAdapter,
        [
            rental_row(
                "r9",
                NOW + timedelta(days=3),
                approval_status="pending",
                pending_total_request=950,
                total_amount=1200,
                created_at=iso(created),
            ),
            rental_row("r10", NOW + timedelta(days=3), approval_status="approved"),
        ],
        settings.rentals_table,
    )

    alerts = await adapter.fetch(NOW)

    assert [alert.id for alert in alerts] == ["price_approval-pending-r9"]
    alert = alerts[0]
    assert (alert.severity, alert.priority) == (AlertSeverity.WARNING, AlertPriority.HIGH)
    assert alert.created_at == created
    assert alert.message.endswith("Manual: 950.00 MAD (Auto: 1200.00 MAD)")
    assert backend.calls[0]["filters"] == {"approval_status": "eq.pending"}


@pytest.mark.asyncio
async def test_malformed_rows_are_skipped(settings) -> None:
    adapter, _ = _adapter(
        MaintenanceAdapter,
        [
            {"id": "no-date", "type": "Tires"},
            {"id": "ok", "type": "Tires", "date": iso(NOW + timedelta(days=2))},
        ],
        settings.maintenance_table,
    )

    alerts = await adapter.fetch(NOW)

    assert [alert.id for alert in alerts] == ["maintenance-due-ok"]


@pytest.mark.asyncio
async def test_null_columns_fall_back_to_defaults(settings) -> None:
    adapter, _ = _adapter(
        FuelAdapter,
        [{"id": 7, "name": None, "current_volume": None, "capacity": 100}],
        settings.fuel_tank_table,
    )

    alerts = await adapter.fetch(NOW)

    assert alerts[0].id == "fuel-low-7"
    assert alerts[0].message.startswith("Main tank is at 0.0% capacity")


@pytest.mark.asyncio
async def test_permanent_error_yields_no_alerts(settings) -> None:
    adapter, backend = _adapter(FuelAdapter, [], settings.fuel_tank_table)
    backend.errors[settings.fuel_tank_table] = PermanentAdapterError("table not available")

    assert await adapter.fetch(NOW) == []
    assert backend.call_count(settings.fuel_tank_table) == 1


@pytest.mark.asyncio
async def test_failed_fetch_raises_without_cached_rows(settings) -> None:
    adapter, backend = _adapter(FuelAdapter, [], settings.fuel_tank_table, max_retries=1)
    backend.errors[settings.fuel_tank_table] = TransientFetchError("HTTP 503")

    with pytest.raises(FetchError):
        await adapter.fetch(NOW)
    assert backend.call_count(settings.fuel_tank_table) == 2


@pytest.mark.asyncio
async def test_failed_fetch_falls_back_to_stale_rows(settings) -> None:
    adapter, backend = _adapter(
        FuelAdapter,
        [{"id": "t1", "name": "Main", "current_volume": 10, "capacity": 100}],
        settings.fuel_tank_table,
        ttl_seconds=0,
    )
    first = await adapter.fetch(NOW)

    backend.errors[settings.fuel_tank_table] = TransientFetchError("HTTP 503")
    second = await adapter.fetch(NOW)

    assert [alert.id for alert in second] == [alert.id for alert in first] == ["fuel-low-t1"]


def test_cache_key_includes_source_table_and_filters(settings) -> None:
    adapter = MaintenanceAdapter(FakeBackend(), make_accessor())

    assert adapter.cache_key == f"maintenance:{settings.maintenance_table}:status=eq.scheduled"


def test_registry_builds_one_adapter_per_source() -> None:
    adapters = build_adapters(FakeBackend(), make_accessor())

    assert [adapter.source for adapter in adapters] == [
        AlertSource.VEHICLE,
        AlertSource.FUEL,
        AlertSource.MAINTENANCE,
        AlertSource.RENTAL,
        AlertSource.PRICE_APPROVAL,
    ]


def test_format_amount() -> None:
    assert format_amount(None) == "0.00 MAD"
    assert format_amount(12.5) == "12.50 MAD"


def test_thresholds_are_passed_through(settings) -> None:
    thresholds = ThresholdConfig(due_soon_window_hours=72)
    adapter = RentalReturnAdapter(FakeBackend(), make_accessor())
    records = adapter.parse_rows([rental_row("r1", NOW + timedelta(hours=60))])

    assert adapter.build_alerts(records, NOW, ThresholdConfig()) == []
    assert len(adapter.build_alerts(records, NOW, thresholds)) == 1
