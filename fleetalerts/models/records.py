"""Raw backend record models consumed by the source adapters."""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from fleetalerts.core.clock import ensure_aware

CLOSED_RENTAL_STATUSES = frozenset({"completed", "cancelled"})


class BackendRecord(BaseModel):
    """Base for rows returned by the record backend."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str

    @field_validator("*", mode="before")
    @classmethod
    def missing_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        # Nulls and blank strings fall back to the field default
        if value is None or (isinstance(value, str) and not value.strip()):
            field = cls.model_fields[info.field_name]
            if field.is_required():
                return None
            return field.get_default(call_default_factory=True)
        return value

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(int(value))
        return value


def _aware(value: datetime | None) -> datetime | None:
    return ensure_aware(value) if value is not None else None


class VehicleRecord(BackendRecord):
    """Fleet vehicle row."""

    name: str = "Vehicle"
    model: str | None = None
    plate_number: str | None = Field(
        default=None,
        validation_alias=AliasChoices("plate_number", "license_plate"),
    )
    status: str | None = None
    current_odometer: float | None = None
    next_oil_change_odometer: float | None = None
    insurance_expiry_date: datetime | None = None
    registration_expiry_date: datetime | None = None

    @field_validator("insurance_expiry_date", "registration_expiry_date")
    @classmethod
    def make_aware(cls, value: datetime | None) -> datetime | None:
        return _aware(value)

    @property
    def display_name(self) -> str:
        if self.plate_number and self.plate_number != "N/A":
            return f"{self.name} ({self.plate_number})"
        return self.name


class FuelTankRecord(BackendRecord):
    """Fuel storage tank status row."""

    name: str = "Main tank"
    current_volume: float = 0.0
    capacity: float = 0.0
    low_threshold: float | None = None


class MaintenanceRecord(BackendRecord):
    """Scheduled maintenance row."""

    vehicle_id: str | None = None
    vehicle_name: str | None = None
    maintenance_type: str = Field(
        default="Maintenance",
        validation_alias=AliasChoices("type", "maintenance_type"),
    )
    scheduled_date: datetime = Field(validation_alias=AliasChoices("date", "scheduled_date"))
    status: str = "scheduled"

    @field_validator("vehicle_id", mode="before")
    @classmethod
    def coerce_vehicle_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("scheduled_date")
    @classmethod
    def make_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class RentalVehicle(BaseModel):
    """Vehicle fields embedded in a rental row."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    model: str | None = None
    plate_number: str | None = None


class RentalRecord(BackendRecord):
    """Rental contract row, used for returns and price approvals."""

    customer_name: str = "Customer"
    rental_end_date: datetime | None = None
    rental_status: str | None = None
    rental_completed_at: datetime | None = None
    total_amount: float | None = None
    remaining_amount: float | None = None
    vehicle_id: str | None = None
    vehicle: RentalVehicle | None = Field(
        default=None,
        validation_alias=AliasChoices("vehicle", "vehicles"),
    )
    approval_status: str | None = None
    pending_total_request: float | None = None
    price_override_reason: str | None = None
    created_at: datetime | None = None

    @field_validator("vehicle_id", mode="before")
    @classmethod
    def coerce_vehicle_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("rental_end_date", "rental_completed_at", "created_at")
    @classmethod
    def make_aware(cls, value: datetime | None) -> datetime | None:
        return _aware(value)

    @property
    def is_open(self) -> bool:
        """Not completed and not cancelled."""
        if self.rental_completed_at is not None:
            return False
        return (self.rental_status or "").lower() not in CLOSED_RENTAL_STATUSES

    @property
    def make_model(self) -> str:
        if self.vehicle:
            return self.vehicle.model or self.vehicle.name or "Vehicle"
        return "Vehicle"

    @property
    def plate(self) -> str:
        if self.vehicle and self.vehicle.plate_number:
            return self.vehicle.plate_number
        return "N/A"

    @property
    def amount_due(self) -> float:
        """Remaining amount owed, never negative."""
        return max(0.0, self.remaining_amount or 0.0)
