"""What-if comparison of allocation scenarios on isolated inputs.

Baseline and scenario runs each receive their own copy of the show list and
build their own occupancy grid; nothing computed for one run is visible to
the other.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, replace
from typing import Optional, Sequence
from uuid import uuid4

from stageplan.domain.constraints import (
    AllocationConfig,
    parse_policy,
    validate_shows,
)
from stageplan.domain.models import AllocationPolicy, AllocationResult, Show
from stageplan.services.allocation_service import StageAllocationService
from stageplan.utils.logger import get_logger


logger = get_logger(__name__)


class SimulationValidationError(Exception):
    """Raised when temporary scenario overrides are invalid."""


@dataclass(frozen=True)
class ScenarioOverrides:
    policy: AllocationPolicy | str | None = None
    turnover_slots: Optional[int] = None
    random_seed: Optional[int] = None
    priority_override: dict[int, int] | None = None


@dataclass(frozen=True)
class ScenarioMetrics:
    policy: str
    turnover_slots: int
    stage_count: int
    stages_used: int
    extra_stages: int
    main_stage_shows: int
    prime_stage_mean_priority: float
    passes: int

    def to_api_dict(self) -> dict[str, float | int | str]:
        return {
            "policy": self.policy,
            "turnover_slots": self.turnover_slots,
            "stage_count": self.stage_count,
            "stages_used": self.stages_used,
            "extra_stages": self.extra_stages,
            "main_stage_shows": self.main_stage_shows,
            "prime_stage_mean_priority": self.prime_stage_mean_priority,
            "passes": self.passes,
        }


class SimulationService:
    """Runs a configured baseline against a what-if scenario in memory."""

    def __init__(self, allocation_service: Optional[StageAllocationService] = None) -> None:
        self._allocation_service = allocation_service or StageAllocationService()

    def _validate_overrides(self, overrides: ScenarioOverrides, shows: Sequence[Show]) -> None:
        if overrides.policy is not None:
            try:
                parse_policy(overrides.policy)
            except ValueError as exc:
                raise SimulationValidationError(str(exc)) from exc
        if overrides.turnover_slots is not None and overrides.turnover_slots < 0:
            raise SimulationValidationError("turnover_slots must be >= 0")

        show_ids = {show.show_id for show in shows}
        for show_id in (overrides.priority_override or {}):
            if show_id not in show_ids:
                raise SimulationValidationError(
                    f"priority_override references unknown show_id={show_id}"
                )

    def apply_overrides(
        self,
        shows: Sequence[Show],
        overrides: ScenarioOverrides,
    ) -> tuple[list[Show], AllocationConfig]:
        self._validate_overrides(overrides, shows)
        scenario_shows = copy.deepcopy(list(shows))
        if overrides.priority_override:
            scenario_shows = [
                replace(show, priority=int(overrides.priority_override[show.show_id]))
                if show.show_id in overrides.priority_override
                else show
                for show in scenario_shows
            ]
        config = self._allocation_service.build_config(
            turnover_slots=overrides.turnover_slots,
            policy=overrides.policy,
            random_seed=overrides.random_seed,
        )
        return scenario_shows, config

    def compute_metrics(self, result: AllocationResult) -> ScenarioMetrics:
        prime = [assignment for assignment in result.assignments if assignment.stage == 1]
        prime_priorities = [
            assignment.priority for assignment in prime if assignment.priority is not None
        ]
        return ScenarioMetrics(
            policy=result.policy.value,
            turnover_slots=result.turnover_slots,
            stage_count=result.stage_count,
            stages_used=result.stages_used,
            extra_stages=result.stage_count - result.minimum_stages,
            main_stage_shows=len(prime),
            prime_stage_mean_priority=(
                float(sum(prime_priorities) / len(prime_priorities))
                if prime_priorities
                else 0.0
            ),
            passes=result.passes,
        )

    def compare_results(
        self,
        baseline: ScenarioMetrics,
        scenario: ScenarioMetrics,
    ) -> dict[str, float | int]:
        return {
            "stage_count_change": scenario.stage_count - baseline.stage_count,
            "stages_used_change": scenario.stages_used - baseline.stages_used,
            "main_stage_shows_change": scenario.main_stage_shows - baseline.main_stage_shows,
            "prime_stage_mean_priority_change": (
                scenario.prime_stage_mean_priority - baseline.prime_stage_mean_priority
            ),
        }

    def run_simulation(
        self,
        shows: Sequence[Show],
        overrides: ScenarioOverrides,
    ) -> dict[str, dict[str, float | int | str]]:
        run_id = str(uuid4())
        validate_shows(shows)
        logger.info(
            (
                "Simulation run started | run_id=%s | policy=%s | turnover_slots=%s | "
                "priority_override=%s"
            ),
            run_id,
            overrides.policy,
            overrides.turnover_slots,
            overrides.priority_override or {},
        )

        # priorities are fixed once so both runs see the same popularity scores
        baseline_shows = copy.deepcopy(list(shows))
        if any(show.priority is None for show in baseline_shows):
            baseline_shows = self._allocation_service.fill_missing_priorities(baseline_shows)

        baseline_config = self._allocation_service.build_config()
        baseline_result = self._allocation_service.run(baseline_shows, baseline_config)
        baseline_metrics = self.compute_metrics(baseline_result)

        scenario_shows, scenario_config = self.apply_overrides(baseline_shows, overrides)
        scenario_result = self._allocation_service.run(scenario_shows, scenario_config)
        scenario_metrics = self.compute_metrics(scenario_result)

        delta = self.compare_results(baseline_metrics, scenario_metrics)
        logger.info(
            (
                "Simulation run completed | run_id=%s | baseline_stages=%s | "
                "scenario_stages=%s | stage_delta=%s"
            ),
            run_id,
            baseline_metrics.stage_count,
            scenario_metrics.stage_count,
            delta["stage_count_change"],
        )
        return {
            "baseline": baseline_metrics.to_api_dict(),
            "simulation": scenario_metrics.to_api_dict(),
            "delta": delta,
        }
