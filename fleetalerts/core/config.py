"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "FleetAlerts"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )

    # Record backend (PostgREST compatible)
    backend_url: str = Field(
        default="",
        description="Base URL of the hosted database REST API, e.g. 'https://x.supabase.co'",
    )
    backend_api_key: str = Field(default="", description="Backend API key")
    backend_schema: str = Field(default="public", description="Database schema to query")

    # Tables
    vehicles_table: str = Field(default="saharax_0u4w4d_vehicles")
    fuel_tank_table: str = Field(default="fuel_tank")
    maintenance_table: str = Field(default="app_687f658e98_maintenance")
    rentals_table: str = Field(default="app_4c3a7a6153_rentals")
    base_prices_table: str = Field(default="base_prices")
    vehicle_models_table: str = Field(default="vehicle_models")
    transport_fees_table: str = Field(default="transport_fees")

    # Alert thresholds
    due_soon_window_hours: float = Field(
        default=48,
        gt=0,
        description="Rental return due-soon window in hours",
    )
    low_fuel_threshold: float = Field(
        default=15.0,
        gt=0,
        le=100,
        description="Default low fuel threshold in percent of tank capacity",
    )
    maintenance_due_soon_days: int = Field(default=7, ge=1)
    maintenance_urgent_days: int = Field(default=1, ge=0)
    oil_change_warning_km: float = Field(default=100, ge=0)
    oil_change_urgent_km: float = Field(default=50, ge=0)
    document_expiry_window_days: int = Field(default=30, ge=1)
    document_expiry_urgent_days: int = Field(default=7, ge=0)

    # Resilient fetch
    cache_ttl_seconds: float = Field(
        default=30,
        ge=0,
        description="Cache TTL for fetched records in seconds",
    )
    fetch_timeout_seconds: float = Field(
        default=5,
        gt=0,
        description="Per-attempt fetch timeout in seconds",
    )
    fetch_max_retries: int = Field(
        default=2,
        ge=0,
        description="Additional attempts after the first failed fetch",
    )
    backoff_base_seconds: float = Field(default=1.0, ge=0)
    backoff_cap_seconds: float = Field(default=3.0, ge=0)

    # Aggregation
    aggregation_timeout_seconds: float = Field(
        default=15,
        gt=0,
        description="Deadline for a whole aggregation pass in seconds",
    )
    refresh_interval_seconds: int = Field(
        default=60,
        ge=5,
        description="Background refresh interval in seconds",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
