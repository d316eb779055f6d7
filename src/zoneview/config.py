"""Application configuration and settings management."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_str_tuple(value: Any) -> tuple[str, ...]:
    """Parse a string tuple from an environment value (JSON array or comma-separated)."""
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


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ZONEVIEW_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Zone Selection Viewer API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted outputs.")
    config_file: str = Field(
        default="config/app.config.json",
        description="Path or URL of the JSON viewer configuration (layers, fields, sources).",
    )
    selection_url: Optional[str] = Field(
        default=None,
        description="Overrides the selection source declared in the viewer configuration.",
    )
    refresh_seconds: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Overrides behavior.refresh_seconds; 0 disables the periodic refresh.",
    )
    http_timeout_seconds: float = Field(default=30.0, gt=0.0)
    cache_bust: bool = Field(default=True, description="Append a cb=<millis> parameter to fetched URLs.")
    unmatched_warning_ratio: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Warn when this share of selection keys matches no zone.",
    )
    known_driver_names: tuple[str, ...] = Field(
        default=(),
        description="Driver roster used to validate names found in assignment sheets.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "known_driver_names", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        return _parse_str_tuple(value)


class LayerConfig(BaseModel):
    url: str
    day: str
    tier: Literal["base", "quadrant", "subquadrant"] = "base"


class FieldsConfig(BaseModel):
    key: str = "key"
    label: str = "muni"
    day: str = "day"


class SelectionSchemaConfig(BaseModel):
    keys: Optional[str] = Field(default=None, description="Explicit keys column; detected from the header when unset.")
    day: Optional[str] = Field(default="Day", description="Day column used when merge_days is off.")
    delimiter: Optional[str] = Field(default=None, description="Single delimiter; defaults to any of ; , / |.")


class SelectionConfig(BaseModel):
    url: Optional[str] = None
    schema_: SelectionSchemaConfig = Field(default_factory=SelectionSchemaConfig, alias="schema")
    merge_days: bool = True

    model_config = {"populate_by_name": True}


class AssignmentsConfig(BaseModel):
    url: Optional[str] = None
    seed: dict[str, str] = Field(default_factory=dict)


class CustomersConfig(BaseModel):
    url: Optional[str] = None
    coordinates_column: str = "Verified Coordinates"
    note_column: str = "Order Note"


class StyleConfig(BaseModel):
    unselected_mode: Literal["hide", "dim"] = "hide"


class BehaviorConfig(BaseModel):
    auto_zoom: bool = True
    refresh_seconds: float = Field(default=0.0, ge=0.0)
    bounds_padding: float = Field(default=0.1, ge=0.0)


class AppConfig(BaseModel):
    """Viewer configuration: which layers to load and where selection data lives."""

    layers: list[LayerConfig] = Field(default_factory=list)
    fields: FieldsConfig = Field(default_factory=FieldsConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    assignments: AssignmentsConfig = Field(default_factory=AssignmentsConfig)
    customers: CustomersConfig = Field(default_factory=CustomersConfig)
    style: StyleConfig = Field(default_factory=StyleConfig)
    behavior: BehaviorConfig = Field(default_factory=BehaviorConfig)

    def effective_refresh_seconds(self, override: Optional[float] = None) -> float:
        if override is not None:
            return override
        return self.behavior.refresh_seconds


settings = Settings()
