"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/pipeline", status_code=status.HTTP_200_OK)
def health_pipeline(request: Request) -> dict:
    pipeline = request.app.state.pipeline
    state = pipeline.state
    return {
        "service": "pipeline",
        "ready": state is not None,
        "busy": pipeline.busy,
        "cycle": state.cycle if state else 0,
        "zones": len(state.catalog) if state else 0,
        "warnings": len(state.warnings) if state else 0,
    }
