"""Alert domain models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from fleetalerts.core.clock import ensure_aware


class AlertCategory(str, Enum):
    """Operational domain an alert belongs to."""

    VEHICLE = "vehicle"
    FUEL = "fuel"
    MAINTENANCE = "maintenance"
    RENTAL = "rental"
    PRICE_APPROVAL = "price_approval"


class AlertSource(str, Enum):
    """Adapter that produced an alert."""

    VEHICLE = "vehicle"
    FUEL = "fuel"
    MAINTENANCE = "maintenance"
    RENTAL = "rental"
    PRICE_APPROVAL = "price_approval"


class AlertSeverity(str, Enum):
    """How wrong the situation is."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


class AlertPriority(str, Enum):
    """How urgently the alert must be acted on."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_SEVERITY_RANK = {
    AlertSeverity.INFO: 1,
    AlertSeverity.WARNING: 2,
    AlertSeverity.ERROR: 3,
}

_PRIORITY_RANK = {
    AlertPriority.LOW: 1,
    AlertPriority.MEDIUM: 2,
    AlertPriority.HIGH: 3,
}


class Alert(BaseModel):
    """Normalized, classified unit of operational attention."""

    id: str = Field(..., description="Stable identifier derived from source and record id")
    title: str = Field(..., description="Short summary")
    message: str = Field(..., description="Detail including the values that justify the alert")
    category: AlertCategory
    severity: AlertSeverity
    priority: AlertPriority
    source: AlertSource
    created_at: datetime = Field(..., description="First time this condition was observed")
    read: bool = Field(default=False)
    dismissed: bool = Field(default=False)
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Source specific identifiers and values for deep links",
    )

    @field_validator("created_at")
    @classmethod
    def make_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @property
    def source_record_id(self) -> str | None:
        value = self.payload.get("source_record_id")
        return None if value is None else str(value)


def make_alert_id(source: AlertSource | str, kind: str, record_id: Any) -> str:
    """Build a deterministic alert id.

    Args:
        source: Producing adapter
        kind: Rule within the adapter, e.g. 'return' or 'oil_change'
        record_id: Identifier of the underlying backend record

    Returns:
        Id such as 'rental-return-42'
    """
    source_value = source.value if isinstance(source, AlertSource) else source
    return f"{source_value}-{kind}-{record_id}"


CATEGORY_LABELS: dict[AlertCategory, str] = {
    AlertCategory.VEHICLE: "Fleet",
    AlertCategory.FUEL: "Fuel",
    AlertCategory.MAINTENANCE: "Maintenance",
    AlertCategory.RENTAL: "Rental Returns",
    AlertCategory.PRICE_APPROVAL: "Price Approvals",
}


def validate_category_labels(labels: dict[AlertCategory, str] = CATEGORY_LABELS) -> None:
    """Fail fast if any category lacks a display label.

    Raises:
        ValueError: If a category is missing or a label is blank
    """
    missing = [category.value for category in AlertCategory if not labels.get(category)]
    if missing:
        raise ValueError(f"Missing display labels for categories: {', '.join(missing)}")


def category_label(category: AlertCategory | str) -> str:
    """Display label for a category.

    Raises:
        ValueError: If the category is unknown
    """
    return CATEGORY_LABELS[AlertCategory(category)]


validate_category_labels()
