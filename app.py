"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the allocation services, registers routers, and logs startup.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from stageplan.controllers.allocation_controller import router as allocation_router
from stageplan.services.allocation_service import StageAllocationService
from stageplan.services.popularity_service import PopularitySampler
from stageplan.services.simulation_service import SimulationService
from stageplan.utils.config import get_settings
from stageplan.utils.logger import get_logger


logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are instantiated here and injected via app.state so every
    dependency is traceable from this function.
    """
    settings = get_settings()

    # --- Collaborators ---
    popularity_sampler = PopularitySampler(settings=settings)

    # --- Services ---
    allocation_service = StageAllocationService(
        settings=settings,
        popularity_sampler=popularity_sampler,
    )
    simulation_service = SimulationService(allocation_service=allocation_service)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Log effective configuration before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(allocation_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.allocation_service = allocation_service
    app.state.simulation_service = simulation_service

    return app


def _startup(app: FastAPI) -> None:
    settings = app.state.allocation_service.settings
    logger.info(
        "Startup complete | policy=%s | turnover_slots=%s | max_stages=%s",
        settings.allocation_policy,
        settings.allocation_turnover_slots,
        settings.allocation_max_stages,
    )


# Module-level app object for uvicorn
app = create_app()
