"""Application configuration and settings management."""

from decimal import Decimal
from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ZONE_FILE_SUFFIXES = (".xlsx", ".json")


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DLV_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Marketplace Delivery API"
    api_prefix: str = "/api"
    zones_file: Path = Field(
        default=Path("data/delivery_zones.xlsx"),
        description="Delivery zone tier schedule (.xlsx or .json).",
    )
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "bike", "foot"] = Field(
        default="driving",
        description="OSRM profile to use when computing road distances.",
    )
    osrm_timeout_seconds: float = Field(default=10.0, gt=0.0)
    osrm_max_retries: int = Field(default=2, ge=0)
    osrm_backoff_seconds: float = Field(default=0.5, ge=0.0)

    default_delivery_fee: Decimal = Field(
        default=Decimal("100.00"),
        ge=0,
        description="Fee charged when no active zone tier covers the distance.",
    )
    eta_base_minutes: int = Field(default=30, ge=0)
    eta_minutes_per_km: float = Field(default=10.0, ge=0.0)
    platform_commission_rate: Decimal = Field(default=Decimal("0.15"), ge=0, le=1)
    urgent_distance_km: float = Field(default=15.0, ge=0.0)
    urgent_item_count: int = Field(default=5, ge=0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:5000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("zones_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("zones_file")
    @classmethod
    def _check_zones_suffix(cls, value: Path) -> Path:
        if value.suffix.lower() not in ZONE_FILE_SUFFIXES:
            raise ValueError(f"zones_file must be one of {', '.join(ZONE_FILE_SUFFIXES)}, got '{value.name}'")
        return value

    @field_validator("osrm_base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, value: Any) -> Optional[str]:
        # An empty DLV_OSRM_BASE_URL disables road routing.
        if value is None or not str(value).strip():
            return None
        return str(value).strip().rstrip("/")

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Accept a JSON array, a comma-separated string or a sequence of origins."""
        if isinstance(value, (tuple, list)):
            return tuple(str(item) for item in value)
        if not isinstance(value, str) or not value.strip():
            return tuple()
        try:
            parsed = json.loads(value)
        except (json.JSONDecodeError, TypeError):
            parsed = None
        if isinstance(parsed, list):
            return tuple(str(item) for item in parsed)
        return tuple(item.strip() for item in value.split(",") if item.strip())


settings = Settings()
