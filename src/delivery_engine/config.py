"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DELIVERY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Local Delivery Engine API"
    api_prefix: str = "/api/v2"
    log_level: str = Field(default="INFO", description="Root log level for the service.")
    data_root: Path = Field(default=Path("data"), description="Root directory for static data files.")
    catalog_file: Path = Field(
        default=Path("data/catalog.json"),
        description="JSON product catalog used when the database is not configured.",
    )

    # Delivery estimation
    average_speed_m_per_min: float = Field(
        default=250.0,
        gt=0.0,
        description="Average courier speed in meters per minute (~15 km/h, bike delivery).",
    )
    free_delivery_distance_meters: float = Field(
        default=2000.0,
        ge=0.0,
        description="Deliveries at or below this distance are free regardless of order value.",
    )
    default_search_radius_meters: int = Field(default=10_000, ge=500, le=50_000)
    min_search_radius_meters: int = Field(default=500, ge=1)
    max_search_radius_meters: int = Field(default=50_000, ge=1)
    default_page_size: int = Field(default=20, ge=1, le=100)
    slot_horizon_days: int = Field(default=7, ge=0)
    max_cart_items: int = Field(default=50, ge=1)
    max_item_quantity: int = Field(default=100, ge=1)

    # Spatial index
    spatial_cell_degrees: float = Field(
        default=0.05,
        gt=0.0,
        le=10.0,
        description="Grid bucket size in degrees (0.05 deg ~ 5.5 km of latitude).",
    )

    # Result cache
    cache_enabled: bool = True
    cache_max_entries: int = Field(default=10_000, ge=1)
    nearby_cache_ttl_seconds: float = Field(default=300.0, ge=0.0)
    feasibility_cache_ttl_seconds: float = Field(default=180.0, ge=0.0)

    # Static pincode zone metadata
    zone_estimated_time: str = "15-25 minutes"
    zone_delivery_fee_minor: int = Field(default=25, ge=0)
    zone_free_delivery_threshold_minor: int = Field(default=500, ge=0)
    zone_express_delivery_available: bool = True

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
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
    supabase_products_table: str = "products"
    supabase_bookings_table: str = "delivery_bookings"

    @field_validator("data_root", "catalog_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
