"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from fleetalerts.core.clock import FixedClock
from fleetalerts.core.config import get_settings
from fleetalerts.resilience.accessor import ResilientAccessor
from fleetalerts.storage.backend import RecordBackend

NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


class FakeBackend(RecordBackend):
    """In-memory record backend.

    Rows are returned per table regardless of filters; tests seed only the
    rows a query would match. ``errors`` maps a table to an exception raised
    on every select of that table.
    """

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None):
        self.tables = tables or {}
        self.errors: dict[str, BaseException] = {}
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def select(
        self,
        table: str,
        *,
        filters: dict[str, str] | None = None,
        order: str | None = None,
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(
            {"table": table, "filters": filters, "order": order, "columns": columns, "limit": limit}
        )
        if table in self.errors:
            raise self.errors[table]
        rows = [dict(row) for row in self.tables.get(table, [])]
        return rows[:limit] if limit is not None else rows

    def call_count(self, table: str) -> int:
        return sum(1 for call in self.calls if call["table"] == table)

    async def close(self) -> None:
        self.closed = True


class SleepRecorder:
    """Async sleep replacement recording requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_accessor(**overrides: Any) -> ResilientAccessor:
    params: dict[str, Any] = {
        "ttl_seconds": 30,
        "timeout_seconds": 1,
        "max_retries": 2,
        "sleep": SleepRecorder(),
        "name": "test",
    }
    params.update(overrides)
    return ResilientAccessor(**params)


def iso(value: datetime) -> str:
    return value.isoformat()


def rental_row(rental_id: str, end: datetime, **fields: Any) -> dict[str, Any]:
    row = {
        "id": rental_id,
        "customer_name": "Youssef Amrani",
        "rental_end_date": iso(end),
        "rental_status": "active",
        "rental_completed_at": None,
        "total_amount": 1200.0,
        "remaining_amount": 300.0,
        "vehicle_id": "v1",
        "vehicle": {"name": "Quad 1", "model": "Segway AT5", "plate_number": "12345-A-6"},
    }
    row.update(fields)
    return row


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def tables(settings) -> dict[str, list[dict[str, Any]]]:
    """One row per source that produces exactly one alert at NOW."""
    return {
        settings.vehicles_table: [
            {
                "id": "v1",
                "name": "Quad 1",
                "plate_number": "12345-A-6",
                "current_odometer": 10040,
                "next_oil_change_odometer": 10000,
            },
        ],
        settings.fuel_tank_table: [
            {"id": "t1", "name": "Main tank", "current_volume": 50, "capacity": 1000},
        ],
        settings.maintenance_table: [
            {
                "id": "m1",
                "vehicle_id": "v2",
                "vehicle_name": "Quad 2",
                "type": "Brake inspection",
                "date": iso(NOW + timedelta(days=3)),
                "status": "scheduled",
            },
        ],
        settings.rentals_table: [
            rental_row("r1", NOW + timedelta(hours=10)),
        ],
    }


@pytest.fixture
def backend(tables) -> FakeBackend:
    return FakeBackend(tables)
