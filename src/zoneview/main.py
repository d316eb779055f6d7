"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import customers, health, selection
from .config import settings
from .services.pipeline import SelectionPipeline

logger = logging.getLogger(__name__)


def create_app(pipeline: Optional[SelectionPipeline] = None, *, run_initial_cycle: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = app.state.pipeline
        refresher: Optional[asyncio.Task] = None
        if run_initial_cycle:
            try:
                await active.run_cycle(reload_layers=True)
            except Exception:
                logger.exception("Initial selection cycle failed; serving without a snapshot")
            interval = active.refresh_interval()
            if interval > 0:
                logger.info("Refreshing selection every %.0f seconds", interval)
                refresher = asyncio.create_task(active.run_periodic(interval))
        try:
            yield
        finally:
            if refresher is not None:
                refresher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await refresher
            await active.aclose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.pipeline = pipeline or SelectionPipeline()
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(selection.router, prefix=settings.api_prefix)
    app.include_router(customers.router, prefix=settings.api_prefix)
    return app


app = create_app()
