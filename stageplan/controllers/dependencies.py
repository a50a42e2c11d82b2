"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from stageplan.services.allocation_service import StageAllocationService
from stageplan.services.simulation_service import SimulationService


def get_allocation_service(request: Request) -> StageAllocationService:
    service = getattr(request.app.state, "allocation_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Allocation service is not initialized",
        )
    return service


def get_simulation_service(request: Request) -> SimulationService:
    service = getattr(request.app.state, "simulation_service", None)
    if service is None:
        allocation_service = getattr(request.app.state, "allocation_service", None)
        if allocation_service is not None:
            service = SimulationService(allocation_service=allocation_service)
            request.app.state.simulation_service = service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Simulation service is not initialized",
        )
    return service