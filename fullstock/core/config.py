"""Configuration management with pydantic-settings.

Provides type-safe configuration with environment variable validation.
"""

from __future__ import annotations

import json
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fullstock.domain.decisions.fields import FieldAliases


class Settings(BaseSettings):
    """Application settings with environment variable validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === API ===
    api_token: str = Field(..., description="Bearer token required by the decisions API")

    # === Database ===
    database_url: str = Field(
        "sqlite:///./fullstock.db",
        description="Database URL of the store holding stock, visits and sales",
    )
    stock_table: str = Field("full_stock_min", description="Current stock per item")
    visits_table: str = Field("visits_raw", description="Raw visit events")
    sales_table: str = Field("sales_raw", description="Raw sale events")

    # === Fetching ===
    fetch_row_limit: int = Field(50000, description="Max rows read per dataset")
    fetch_timeout_seconds: float = Field(30.0, description="Timeout for the three store reads")
    sales_history_days: int = Field(
        180, description="Sales lookback used to find the last sale of an item"
    )

    # === Decision defaults ===
    app_timezone: str = Field(
        "America/Argentina/Buenos_Aires", description="Local calendar used for windows"
    )
    default_window_days: int = Field(30, description="Trailing window for visits and sales")
    default_lead_time_days: int = Field(7, description="Replenishment lead time in days")
    default_storage_days: int = Field(60, description="Days without sales before storage risk")
    default_near_margin: int = Field(15, description="Days before storage_days flagged as near")

    # Overrides for the field alias table, e.g. {"sale_quantity": ["units", "qty"]}
    field_aliases_json: str = Field("{}", description="Field alias overrides (JSON)")

    environment: str = Field("production", description="Deployment label for app_info")

    # === Logging ===
    log_level: str = Field("INFO", description="Root log level")
    log_file: str | None = Field(None, description="JSON log file path (None = stdout only)")

    @field_validator("app_timezone")
    @classmethod
    def _known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise ValueError(f"unknown timezone {v!r}") from e
        return v

    @field_validator("field_aliases_json")
    @classmethod
    def _valid_aliases(cls, v: str) -> str:
        _parse_aliases(v)
        return v

    @property
    def tz(self) -> ZoneInfo:
        """Timezone of the local calendar."""
        return ZoneInfo(self.app_timezone)

    @property
    def field_aliases(self) -> FieldAliases:
        """Alias table with overrides from FIELD_ALIASES_JSON applied."""
        return _parse_aliases(self.field_aliases_json)


def _parse_aliases(raw: str | None) -> FieldAliases:
    overrides = json.loads(raw or "{}")
    if not isinstance(overrides, dict):
        raise ValueError("FIELD_ALIASES_JSON must be a JSON object")
    try:
        return FieldAliases().with_overrides(overrides)
    except TypeError as e:
        # e.g. {"sale_quantity": 5}
        raise ValueError(f"invalid field alias override: {e}") from e


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Raises:
        RuntimeError: If required environment variables are missing.

    """
    try:
        return Settings()
    except ValidationError as e:
        missing_fields = []
        for error in e.errors():
            if error["type"] == "missing":
                field_name = error["loc"][0]
                missing_fields.append(str(field_name).upper())

        if not missing_fields:
            raise RuntimeError(f"Configuration error: {e}") from e

        error_msg = (
            f"Configuration error: Missing required environment variables: "
            f"{', '.join(missing_fields)}\n"
            f"Please set them in .env file or export as environment variables."
        )
        raise RuntimeError(error_msg) from e


__all__ = ["Settings", "get_settings"]
