"""API routes for zone selection."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request, status

from ...schemas.selection import (
    BatchRequest,
    BatchResponse,
    PipelineSnapshotModel,
    ResolveRequest,
    SelectionSummaryModel,
    ZoneStateModel,
)
from ...services.outputs import customer_summary, selection_summary, zone_state
from ...services.pipeline import PipelineState, SelectionPipeline
from ...services.selection.batch import process_batch_request

router = APIRouter(prefix="/selection", tags=["selection"])


def _pipeline(request: Request) -> SelectionPipeline:
    return request.app.state.pipeline


def _padding(state: PipelineState) -> float | None:
    behavior = state.config.behavior
    return behavior.bounds_padding if behavior.auto_zoom else None


def snapshot_payload(state: PipelineState, *, include_zones: bool = False) -> PipelineSnapshotModel:
    if state.resolution is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Selection not resolved yet.")
    customers = None
    if state.classification is not None and state.tally is not None:
        customers = customer_summary(state.classification, state.tally)
    return PipelineSnapshotModel(
        cycle=state.cycle,
        completed_at=state.completed_at.isoformat() if state.completed_at else None,
        zones_loaded=len(state.catalog),
        selection=SelectionSummaryModel(
            **selection_summary(state.selection, state.resolution, include_zones=include_zones, padding=_padding(state))
        ),
        customers=customers,
        assignments=dict(state.assignments),
        warnings=list(state.warnings),
    )


@router.get("", response_model=PipelineSnapshotModel, status_code=status.HTTP_200_OK)
def get_selection(
    request: Request,
    include_zones: bool = Query(default=False, description="Include per-zone visibility decisions."),
) -> PipelineSnapshotModel:
    state = _pipeline(request).state
    if state is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="No selection cycle has completed yet.")
    return snapshot_payload(state, include_zones=include_zones)


@router.post("/refresh", response_model=PipelineSnapshotModel, status_code=status.HTTP_200_OK)
async def refresh_selection(
    request: Request,
    reload_layers: bool = Query(default=False, description="Reload geometry layers before resolving."),
) -> PipelineSnapshotModel:
    state = await _pipeline(request).run_cycle(reload_layers=reload_layers)
    if state is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A selection cycle is already running.")
    return snapshot_payload(state)


@router.post("/resolve", response_model=SelectionSummaryModel, status_code=status.HTTP_200_OK)
def resolve_selection(payload: ResolveRequest, request: Request) -> SelectionSummaryModel:
    pipeline = _pipeline(request)
    selection, result = pipeline.resolve_keys(payload.keys)
    padding = _padding(pipeline.state) if pipeline.state else None
    return SelectionSummaryModel(**selection_summary(selection, result, include_zones=True, padding=padding))


@router.post("/batch", response_model=BatchResponse, status_code=status.HTTP_200_OK)
def run_batch(payload: BatchRequest, request: Request) -> BatchResponse:
    state = _pipeline(request).state
    if state is None or not len(state.catalog):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="No zone layers are loaded.")
    try:
        return process_batch_request(
            payload,
            state.catalog,
            unselected_mode=state.config.style.unselected_mode,
            padding=_padding(state),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/zones/{key}", response_model=list[ZoneStateModel], status_code=status.HTTP_200_OK)
def get_zone_family(key: str, request: Request) -> list[ZoneStateModel]:
    """Current state of the base zone behind ``key`` and all of its quadrants and sub-quadrants."""

    state = _pipeline(request).state
    if state is None or state.resolution is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Selection not resolved yet.")
    family = {zone.order for zone in state.catalog.zones_by_base_key(key)}
    if not family:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No zones share the base key of {key}.")
    return [
        ZoneStateModel(**zone_state(decision))
        for decision in state.resolution.decisions
        if decision.zone.order in family
    ]
