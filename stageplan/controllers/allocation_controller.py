"""HTTP controller layer for stage allocation."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field, model_validator

from stageplan.controllers.dependencies import get_allocation_service, get_simulation_service
from stageplan.domain.models import Show
from stageplan.repository.show_repository import report_lines
from stageplan.services.allocation_service import AllocationFailureError, StageAllocationService
from stageplan.services.simulation_service import (
    ScenarioOverrides,
    SimulationService,
    SimulationValidationError,
)
from stageplan.services.timetable_service import timetable_rows
from stageplan.utils.config import get_settings
from stageplan.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["allocation"])

PolicyName = Literal["DenseMainStage", "Random", "Popularity"]


class ShowPayload(BaseModel):
    """Input DTO for one show; identity is the position in the list."""

    start: int = Field(ge=1)
    end: int = Field(ge=1)
    priority: int | None = None

    @model_validator(mode="after")
    def validate_window(self) -> "ShowPayload":
        if self.start > self.end:
            raise ValueError("start must be less than or equal to end")
        return self


def _to_shows(payload: list[ShowPayload]) -> list[Show]:
    return [
        Show(show_id=index, start=item.start, end=item.end, priority=item.priority)
        for index, item in enumerate(payload, start=1)
    ]


def _ceiling_conflict(exc: AllocationFailureError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "message": str(exc),
            "stage_count": exc.stage_count,
            "show_id": exc.show_id,
        },
    )


class MinimumStagesRequest(BaseModel):
    shows: list[ShowPayload]
    turnover_slots: int | None = Field(default=None, ge=0)


class MinimumStagesResponse(BaseModel):
    minimum_stages: int = Field(ge=0)


class AllocateRequest(BaseModel):
    shows: list[ShowPayload]
    turnover_slots: int | None = Field(default=None, ge=0)
    policy: PolicyName | None = None
    random_seed: int | None = Field(default=None, ge=0)
    initial_stages: int | None = Field(default=None, gt=0)
    max_stages: int | None = Field(default=None, gt=0)


class StageAssignmentResponse(BaseModel):
    show_id: int = Field(gt=0)
    stage: int = Field(gt=0)
    start: int = Field(ge=1)
    end: int = Field(ge=1)
    priority: int | None = None


class AllocateResponse(BaseModel):
    policy: PolicyName
    turnover_slots: int = Field(ge=0)
    stage_count: int = Field(ge=0)
    minimum_stages: int = Field(ge=0)
    stages_used: int = Field(ge=0)
    passes: int = Field(ge=0)
    assignments: list[StageAssignmentResponse]
    timetable: list[list[int]]
    report: list[str]


class SimulateRequest(BaseModel):
    shows: list[ShowPayload]
    policy: PolicyName | None = None
    turnover_slots: int | None = Field(default=None, ge=0)
    random_seed: int | None = Field(default=None, ge=0)
    priority_override: dict[int, int] | None = None


class ScenarioMetricsResponse(BaseModel):
    policy: PolicyName
    turnover_slots: int = Field(ge=0)
    stage_count: int = Field(ge=0)
    stages_used: int = Field(ge=0)
    extra_stages: int = Field(ge=0)
    main_stage_shows: int = Field(ge=0)
    prime_stage_mean_priority: float
    passes: int = Field(ge=0)


class SimulationDeltaResponse(BaseModel):
    stage_count_change: int
    stages_used_change: int
    main_stage_shows_change: int
    prime_stage_mean_priority_change: float


class SimulateResponse(BaseModel):
    baseline: ScenarioMetricsResponse
    simulation: ScenarioMetricsResponse
    delta: SimulationDeltaResponse


class HealthResponse(BaseModel):
    status: str
    app_name: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    settings = get_settings()
    ready = getattr(request.app.state, "allocation_service", None) is not None
    return HealthResponse(
        status="ok" if ready else "starting",
        app_name=settings.app_name,
        version=settings.app_version,
    )


@router.post(
    "/minimum_stages",
    response_model=MinimumStagesResponse,
    status_code=status.HTTP_200_OK,
)
async def minimum_stages(
    payload: MinimumStagesRequest,
    service: StageAllocationService = Depends(get_allocation_service),
) -> MinimumStagesResponse:
    """Lower bound on stages needed once turnover windows are included."""
    try:
        value = service.minimum_stages(
            _to_shows(payload.shows),
            turnover_slots=payload.turnover_slots,
        )
        return MinimumStagesResponse(minimum_stages=value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.post(
    "/allocate",
    response_model=AllocateResponse,
    status_code=status.HTTP_200_OK,
)
async def allocate(
    payload: AllocateRequest,
    service: StageAllocationService = Depends(get_allocation_service),
) -> AllocateResponse:
    """Assign every show to a stage under the requested policy."""
    try:
        result = service.schedule(
            _to_shows(payload.shows),
            turnover_slots=payload.turnover_slots,
            policy=payload.policy,
            random_seed=payload.random_seed,
            initial_stages=payload.initial_stages,
            max_stages=payload.max_stages,
        )
        return AllocateResponse(
            policy=result.policy.value,
            turnover_slots=result.turnover_slots,
            stage_count=result.stage_count,
            minimum_stages=result.minimum_stages,
            stages_used=result.stages_used,
            passes=result.passes,
            assignments=[
                StageAssignmentResponse(
                    show_id=item.show_id,
                    stage=item.stage,
                    start=item.start,
                    end=item.end,
                    priority=item.priority,
                )
                for item in result.assignments
            ],
            timetable=timetable_rows(result),
            report=report_lines(result),
        )
    except AllocationFailureError as exc:
        raise _ceiling_conflict(exc) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected allocation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to allocate stages",
        ) from exc


@router.post(
    "/simulate",
    response_model=SimulateResponse,
    status_code=status.HTTP_200_OK,
)
async def simulate(
    payload: SimulateRequest,
    service: SimulationService = Depends(get_simulation_service),
) -> SimulateResponse:
    """Compare the configured baseline with an in-memory what-if scenario."""
    try:
        result = service.run_simulation(
            _to_shows(payload.shows),
            ScenarioOverrides(
                policy=payload.policy,
                turnover_slots=payload.turnover_slots,
                random_seed=payload.random_seed,
                priority_override=payload.priority_override,
            ),
        )
        return SimulateResponse(**result)
    except SimulationValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except AllocationFailureError as exc:
        raise _ceiling_conflict(exc) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected simulation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to run simulation",
        ) from exc
