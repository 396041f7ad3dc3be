"""Alert API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from fleetalerts.models.alert import Alert
from fleetalerts.models.alert import category_label as label_for


class AlertResponse(Alert):
    """Alert as returned by the API, with its category display label."""

    category_label: str = ""

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertResponse":
        return cls(**alert.model_dump(), category_label=label_for(alert.category))


class AlertFlagResponse(BaseModel):
    """Result of a read or dismiss request."""

    id: str
    read: bool
    dismissed: bool
    changed: bool = Field(..., description="False when the alert already had this flag")


class RefreshResponse(BaseModel):
    """Result of a manual refresh."""

    alert_count: int
    partial: bool
    failed_sources: list[str] = Field(default_factory=list)
    failures: dict[str, str] = Field(default_factory=dict)
    refreshed_at: datetime
    pass_id: str = ""
