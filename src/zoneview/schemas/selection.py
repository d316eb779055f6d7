"""Pydantic request/response models for selection endpoints."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field, field_validator


class BatchItem(BaseModel):
    day: str = ""
    driver: str = ""
    name: str = ""
    keys: list[str] = Field(default_factory=list)
    out_name: Optional[str] = Field(default=None, alias="outName")
    stats: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @field_validator("keys", mode="before")
    @classmethod
    def _coerce_keys(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(item) for item in value]


class BatchRequest(BaseModel):
    items: Sequence[BatchItem]
    persist: bool = Field(default=False, description="Write per-item summaries under the data root.")
    run_label: Optional[str] = Field(default=None, description="Prefix for the persisted run directory.")


class ResolveRequest(BaseModel):
    keys: list[str] = Field(default_factory=list, description="Zone keys in display order.")


class BoundsModel(BaseModel):
    south: float
    west: float
    north: float
    east: float


class ZoneStateModel(BaseModel):
    key: str
    tier: str
    day: str
    label: str
    visible: bool
    selected: bool


class SelectionSummaryModel(BaseModel):
    requested_keys: list[str]
    active_keys: list[str]
    unmatched_keys: list[str]
    overridden_keys: list[str]
    fallback: bool
    visible_count: int
    selected_count: int
    bounds: Optional[BoundsModel] = None
    status: str
    zones: list[ZoneStateModel] = Field(default_factory=list)


class BatchItemResultModel(BaseModel):
    name: str
    day: str
    driver: str
    out_name: Optional[str] = None
    selection: SelectionSummaryModel
    stats: dict[str, Any] = Field(default_factory=dict)


class BatchResponse(BaseModel):
    items: list[BatchItemResultModel]
    overview: SelectionSummaryModel
    output_dir: Optional[str] = None


class DriverCountModel(BaseModel):
    driver: str
    customers: int
    zones: list[str]


class CustomerSummaryModel(BaseModel):
    total_points: int
    inside_selected: int
    outside_selected: int
    any_counts: dict[str, int]
    selected_counts: dict[str, int]
    per_day_selected: dict[str, int]
    drivers: list[DriverCountModel]
    unassigned: int


class PipelineSnapshotModel(BaseModel):
    cycle: int
    completed_at: Optional[str] = None
    zones_loaded: int
    selection: SelectionSummaryModel
    customers: Optional[CustomerSummaryModel] = None
    assignments: dict[str, str] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
