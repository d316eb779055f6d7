"""Apply-selection cycle: layers -> selection -> assignments -> customers -> tallies.

Each stage takes a PipelineState snapshot and returns a new one; nothing is
mutated in place. Stages run strictly one after another, awaiting their I/O,
and at most one cycle runs at a time. A cycle requested while another is in
flight is dropped rather than interleaved.

Every I/O failure degrades instead of aborting: the stage logs a warning,
records it on the snapshot and carries the previous data forward.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

import httpx
from pydantic import ValidationError

from ..config import AppConfig, Settings, settings
from ..data.layers import load_catalog
from ..data.sources import DataSource, HttpDataSource, fetch_json, fetch_rows, resolve_location
from ..models.domain import CustomerPoint
from .assignments import extract_detailed, merge_assignments
from .catalog import ZoneCatalog
from .customers import ClassificationResult, classify, parse_customer_rows
from .drivers import DriverTally, aggregate
from .selection import SelectionResult, SelectionSet, parse_selection_rows, resolve

logger = logging.getLogger(__name__)

FETCH_ERRORS = (httpx.HTTPError, OSError, ValueError)


@dataclass(frozen=True, slots=True)
class PipelineState:
    cycle: int = 0
    config: AppConfig = field(default_factory=AppConfig)
    catalog: ZoneCatalog = field(default_factory=ZoneCatalog)
    selection: SelectionSet = field(default_factory=SelectionSet)
    resolution: Optional[SelectionResult] = None
    assignments: Mapping[str, str] = field(default_factory=dict)
    customers: tuple[CustomerPoint, ...] = ()
    classification: Optional[ClassificationResult] = None
    tally: Optional[DriverTally] = None
    warnings: tuple[str, ...] = ()
    completed_at: Optional[datetime] = None

    def warn(self, message: str) -> "PipelineState":
        logger.warning(message)
        return replace(self, warnings=(*self.warnings, message))


@dataclass(frozen=True, slots=True)
class PipelineContext:
    source: DataSource
    config_location: str
    settings: Settings
    known_names: Sequence[str] = ()


async def stage_config(state: PipelineState, ctx: PipelineContext) -> PipelineState:
    try:
        payload = await fetch_json(ctx.source, ctx.config_location)
        config = AppConfig.model_validate(payload)
    except (*FETCH_ERRORS, ValidationError) as exc:
        return state.warn(f"Config {ctx.config_location} unavailable, keeping previous: {exc}")
    return replace(state, config=config)


async def stage_layers(state: PipelineState, ctx: PipelineContext) -> PipelineState:
    catalog, warnings = await load_catalog(state.config, ctx.source, ctx.config_location)
    return replace(state, catalog=catalog, warnings=(*state.warnings, *warnings))


async def stage_selection(state: PipelineState, ctx: PipelineContext) -> PipelineState:
    """Read the selection sheet; a missing or broken sheet yields an empty selection."""

    cfg = state.config.selection
    url = ctx.settings.selection_url or cfg.url
    if not url:
        return replace(state, selection=SelectionSet()).warn("No selection source configured; showing all zones")
    try:
        rows = await fetch_rows(ctx.source, resolve_location(ctx.config_location, url))
    except FETCH_ERRORS as exc:
        return replace(state, selection=SelectionSet()).warn(f"Selection source failed, showing all zones: {exc}")
    selection = parse_selection_rows(
        rows,
        keys_column=cfg.schema_.keys,
        day_column=cfg.schema_.day,
        delimiter=cfg.schema_.delimiter,
        merge_days=cfg.merge_days,
    )
    if selection.is_empty:
        return replace(state, selection=selection).warn("Selection sheet listed no zone keys; showing all zones")
    return replace(state, selection=selection)


def stage_resolve(state: PipelineState, ctx: PipelineContext) -> PipelineState:
    result = resolve(state.selection, state.catalog, unselected_mode=state.config.style.unselected_mode)
    next_state = replace(state, resolution=result)
    ratio = result.unmatched_ratio(len(state.selection))
    if result.unmatched_keys and ratio >= ctx.settings.unmatched_warning_ratio:
        next_state = next_state.warn(
            f"{len(result.unmatched_keys)} of {len(state.selection)} selection keys matched no zone: "
            + ", ".join(result.unmatched_keys)
        )
    return next_state


async def stage_assignments(state: PipelineState, ctx: PipelineContext) -> PipelineState:
    cfg = state.config.assignments
    if not cfg.url:
        return replace(state, assignments=merge_assignments(cfg.seed, {}))
    try:
        rows = await fetch_rows(ctx.source, resolve_location(ctx.config_location, cfg.url))
    except FETCH_ERRORS as exc:
        previous = state.assignments or merge_assignments(cfg.seed, {})
        return replace(state, assignments=previous).warn(f"Assignment sheet failed, keeping previous: {exc}")
    known = ctx.known_names or ctx.settings.known_driver_names
    extraction = extract_detailed(rows, known)
    next_state = replace(state, assignments=merge_assignments(cfg.seed, extraction.mapping))
    if extraction.strategy == "none":
        next_state = next_state.warn("No driver assignments found; customer counts are unassigned")
    return next_state


async def stage_customers(state: PipelineState, ctx: PipelineContext) -> PipelineState:
    cfg = state.config.customers
    if not cfg.url:
        return replace(state, customers=())
    try:
        rows = await fetch_rows(ctx.source, resolve_location(ctx.config_location, cfg.url))
    except FETCH_ERRORS as exc:
        return state.warn(f"Customer sheet failed, keeping previous points: {exc}")
    parsed = parse_customer_rows(rows, coordinates_column=cfg.coordinates_column, note_column=cfg.note_column)
    return replace(state, customers=parsed.points)


def stage_classify(state: PipelineState, ctx: PipelineContext) -> PipelineState:
    result = state.resolution
    if result is None:
        return state
    classification = classify(state.customers, result.visible_zones, result.selected_zones)
    tally = aggregate(result.selected_zones, state.assignments, classification.selected_counts)
    return replace(state, classification=classification, tally=tally)


async def run_cycle_stages(
    state: PipelineState,
    ctx: PipelineContext,
    *,
    reload_layers: bool = False,
) -> PipelineState:
    """Run one full cycle from a previous snapshot and return the new snapshot."""

    next_state = replace(state, cycle=state.cycle + 1, warnings=())
    next_state = await stage_config(next_state, ctx)
    if reload_layers or not len(next_state.catalog) or next_state.config != state.config:
        next_state = await stage_layers(next_state, ctx)
    next_state = await stage_selection(next_state, ctx)
    next_state = stage_resolve(next_state, ctx)
    next_state = await stage_assignments(next_state, ctx)
    next_state = await stage_customers(next_state, ctx)
    next_state = stage_classify(next_state, ctx)
    return replace(next_state, completed_at=datetime.now(timezone.utc))


class SelectionPipeline:
    """Owns the current snapshot; callers only ever read it."""

    def __init__(
        self,
        config_location: str | None = None,
        source: DataSource | None = None,
        *,
        known_names: Sequence[str] = (),
        app_settings: Settings | None = None,
    ) -> None:
        app_settings = app_settings or settings
        self._ctx = PipelineContext(
            source=source or HttpDataSource(),
            config_location=config_location or app_settings.config_file,
            settings=app_settings,
            known_names=tuple(known_names),
        )
        self._state: Optional[PipelineState] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> Optional[PipelineState]:
        return self._state

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self, *, reload_layers: bool = False) -> Optional[PipelineState]:
        """Run one cycle; returns None without doing anything if one is already running."""

        if self._lock.locked():
            logger.info("Apply-selection cycle already in flight; dropping request")
            return None
        async with self._lock:
            previous = self._state or PipelineState()
            state = await run_cycle_stages(previous, self._ctx, reload_layers=reload_layers)
            self._state = state
        result = state.resolution
        logger.info(
            "Cycle %d complete: %d zones, %d selected, active keys %s",
            state.cycle,
            len(state.catalog),
            result.selected_count if result else 0,
            list(result.active_keys) if result else [],
        )
        return state

    async def run_periodic(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Periodic selection cycle failed; next attempt in %.1f seconds", interval_seconds)

    def resolve_keys(self, keys: Sequence[str]) -> tuple[SelectionSet, SelectionResult]:
        """Resolve an explicit key list against the current catalog without touching the snapshot."""

        state = self._state or PipelineState()
        selection = SelectionSet.from_keys(keys)
        return selection, resolve(selection, state.catalog, unselected_mode=state.config.style.unselected_mode)

    def refresh_interval(self) -> float:
        state = self._state or PipelineState()
        return state.config.effective_refresh_seconds(self._ctx.settings.refresh_seconds)

    async def aclose(self) -> None:
        close = getattr(self._ctx.source, "aclose", None)
        if close is not None:
            await close()
