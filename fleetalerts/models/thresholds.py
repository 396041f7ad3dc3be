"""Alert threshold configuration."""

from pydantic import BaseModel, Field, model_validator

from fleetalerts.core.config import Settings, get_settings


class ThresholdConfig(BaseModel):
    """Named classification windows shared by all adapters in a pass."""

    due_soon_window_hours: float = Field(default=48, gt=0)
    low_fuel_threshold: float = Field(default=15.0, gt=0, le=100)
    maintenance_due_soon_days: int = Field(default=7, ge=1)
    maintenance_urgent_days: int = Field(default=1, ge=0)
    oil_change_warning_km: float = Field(default=100, ge=0)
    oil_change_urgent_km: float = Field(default=50, ge=0)
    document_expiry_window_days: int = Field(default=30, ge=1)
    document_expiry_urgent_days: int = Field(default=7, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_nested_windows(self) -> "ThresholdConfig":
        """Urgent windows must sit inside their outer windows."""
        if self.maintenance_urgent_days > self.maintenance_due_soon_days:
            raise ValueError("maintenance_urgent_days cannot exceed maintenance_due_soon_days")
        if self.oil_change_urgent_km > self.oil_change_warning_km:
            raise ValueError("oil_change_urgent_km cannot exceed oil_change_warning_km")
        if self.document_expiry_urgent_days > self.document_expiry_window_days:
            raise ValueError(
                "document_expiry_urgent_days cannot exceed document_expiry_window_days"
            )
        return self

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ThresholdConfig":
        """Build thresholds from application settings."""
        settings = settings or get_settings()
        return cls(
            due_soon_window_hours=settings.due_soon_window_hours,
            low_fuel_threshold=settings.low_fuel_threshold,
            maintenance_due_soon_days=settings.maintenance_due_soon_days,
            maintenance_urgent_days=settings.maintenance_urgent_days,
            oil_change_warning_km=settings.oil_change_warning_km,
            oil_change_urgent_km=settings.oil_change_urgent_km,
            document_expiry_window_days=settings.document_expiry_window_days,
            document_expiry_urgent_days=settings.document_expiry_urgent_days,
        )
