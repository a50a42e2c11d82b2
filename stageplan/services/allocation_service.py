"""Stage allocation engine: lower bound, greedy placement and escalation."""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Mapping, Optional, Sequence

import numpy as np

from stageplan.domain.constraints import (
    AllocationConfig,
    MissingPriorityError,
    parse_policy,
    validate_allocation_config,
    validate_shows,
    validate_turnover,
)
from stageplan.domain.models import AllocationPolicy, AllocationResult, Show
from stageplan.services.occupancy_grid import OccupancyGrid
from stageplan.services.popularity_service import PopularitySampler
from stageplan.services.selection import (
    NoStageAvailableError,
    order_shows,
    partition_into_tiers,
    select_stage,
)
from stageplan.utils.config import Settings, get_settings
from stageplan.utils.logger import get_logger


logger = get_logger(__name__)


class AllocationFailureError(Exception):
    """Raised when the stage ceiling is reached before every show is placed."""

    def __init__(self, stage_count: int, show_id: int) -> None:
        super().__init__(
            f"unable to place show_id={show_id} with stage_count={stage_count}; "
            "stage ceiling reached"
        )
        self.stage_count = stage_count
        self.show_id = show_id


def compute_minimum_stages(shows: Sequence[Show], turnover_slots: int) -> int:
    """Peak number of shows (turnover included) sharing a single timeslot."""
    validate_turnover(turnover_slots)
    validate_shows(shows)
    if not shows:
        return 0

    max_end = max(show.end for show in shows)
    coverage = np.zeros(max_end + 1, dtype=np.int64)
    for show in shows:
        last = min(show.end + turnover_slots, max_end)
        coverage[show.start - 1] += 1
        coverage[last] -= 1
    return int(np.cumsum(coverage)[:max_end].max())


def _resolve_priorities(
    shows: Sequence[Show],
    priority_of: Optional[Mapping[int, int]],
) -> list[Show]:
    resolved: list[Show] = []
    for show in shows:
        priority = show.priority
        if priority_of is not None and show.show_id in priority_of:
            priority = priority_of[show.show_id]
        if priority is None:
            raise MissingPriorityError(
                f"Popularity policy requires a priority for show_id={show.show_id}"
            )
        resolved.append(replace(show, priority=int(priority)))
    return resolved


def _place_all(
    grid: OccupancyGrid,
    tiers: list[list[Show]],
    policy: AllocationPolicy,
    rng: Optional[random.Random],
) -> None:
    for tier in tiers:
        for show in tier:
            stage = select_stage(show, grid.available_stages(show), policy, rng)
            grid.reserve(stage, show)


def allocate(
    shows: Sequence[Show],
    turnover_slots: int,
    policy: AllocationPolicy | str,
    priority_of: Optional[Mapping[int, int]] = None,
    *,
    rng: Optional[random.Random] = None,
    initial_stages: Optional[int] = None,
    max_stages: Optional[int] = None,
) -> AllocationResult:
    """Assign every show to a stage, adding stages until the policy fits.

    Each pass resets the grid and replays the whole ordered show list; when a
    show finds no free stage the pass is abandoned, one stage is added, and
    placement restarts from the first tier. ``initial_stages`` overrides the
    computed lower bound as the starting stage count and ``max_stages`` caps
    growth, raising ``AllocationFailureError`` once reached.
    """
    resolved_policy = parse_policy(policy)
    validate_allocation_config(
        AllocationConfig(
            turnover_slots=turnover_slots,
            policy=resolved_policy,
            initial_stages=initial_stages,
            max_stages=max_stages,
        )
    )
    validate_shows(shows)

    if resolved_policy is AllocationPolicy.POPULARITY:
        shows = _resolve_priorities(shows, priority_of)
    elif priority_of is not None:
        shows = [
            replace(show, priority=priority_of.get(show.show_id, show.priority))
            for show in shows
        ]

    minimum_stages = compute_minimum_stages(shows, turnover_slots)
    if not shows:
        return AllocationResult(
            policy=resolved_policy,
            turnover_slots=turnover_slots,
            stage_count=0,
            minimum_stages=0,
            passes=0,
            assignments=[],
            states=np.zeros((0, 0), dtype=np.int8),
            bookings=np.zeros((0, 0), dtype=np.int64),
        )

    stage_count = initial_stages if initial_stages is not None else minimum_stages
    if max_stages is not None:
        stage_count = min(stage_count, max_stages)

    tiers = partition_into_tiers(
        order_shows(shows),
        resolved_policy,
        {show.show_id: show.priority for show in shows},
    )
    grid = OccupancyGrid(
        stage_count=stage_count,
        max_end=max(show.end for show in shows),
        turnover_slots=turnover_slots,
    )

    passes = 0
    while True:
        passes += 1
        grid.reset()
        try:
            _place_all(grid, tiers, resolved_policy, rng)
            break
        except NoStageAvailableError as exc:
            if max_stages is not None and grid.stage_count >= max_stages:
                logger.warning(
                    "Stage ceiling reached | stage_count=%s | show_id=%s",
                    grid.stage_count,
                    exc.show_id,
                )
                raise AllocationFailureError(grid.stage_count, exc.show_id) from exc
            grid.grow(1)
            logger.info(
                "No stage available, adding a stage | show_id=%s | stage_count=%s",
                exc.show_id,
                grid.stage_count,
            )

    grid.trim_trailing_turnover()
    result = AllocationResult(
        policy=resolved_policy,
        turnover_slots=turnover_slots,
        stage_count=grid.stage_count,
        minimum_stages=minimum_stages,
        passes=passes,
        assignments=grid.assignments(list(shows)),
        states=grid.states,
        bookings=grid.bookings,
    )
    logger.info(
        "Allocation converged | policy=%s | stage_count=%s | minimum_stages=%s | passes=%s",
        resolved_policy.value,
        result.stage_count,
        result.minimum_stages,
        result.passes,
    )
    return result


class StageAllocationService:
    """Applies configured defaults, fills missing priorities and allocates."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        popularity_sampler: Optional[PopularitySampler] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._popularity_sampler = popularity_sampler or PopularitySampler(self._settings)

    @property
    def settings(self) -> Settings:
        return self._settings

    def build_config(
        self,
        *,
        turnover_slots: Optional[int] = None,
        policy: AllocationPolicy | str | None = None,
        random_seed: Optional[int] = None,
        initial_stages: Optional[int] = None,
        max_stages: Optional[int] = None,
    ) -> AllocationConfig:
        config = AllocationConfig(
            turnover_slots=(
                turnover_slots
                if turnover_slots is not None
                else self._settings.allocation_turnover_slots
            ),
            policy=parse_policy(
                policy if policy is not None else self._settings.allocation_policy
            ),
            random_seed=(
                random_seed
                if random_seed is not None
                else self._settings.allocation_random_seed
            ),
            initial_stages=initial_stages,
            max_stages=(
                max_stages
                if max_stages is not None
                else self._settings.allocation_max_stages
            ),
        )
        validate_allocation_config(config)
        return config

    def minimum_stages(
        self,
        shows: Sequence[Show],
        turnover_slots: Optional[int] = None,
    ) -> int:
        config = self.build_config(turnover_slots=turnover_slots)
        return compute_minimum_stages(shows, config.turnover_slots)

    def fill_missing_priorities(self, shows: Sequence[Show]) -> list[Show]:
        return self._popularity_sampler.fill_missing(shows)

    def run(self, shows: Sequence[Show], config: AllocationConfig) -> AllocationResult:
        validate_allocation_config(config)
        validate_shows(shows)
        prepared = self.fill_missing_priorities(shows)
        rng = random.Random(config.random_seed)
        return allocate(
            prepared,
            config.turnover_slots,
            config.policy,
            rng=rng,
            initial_stages=config.initial_stages,
            max_stages=config.max_stages,
        )

    def schedule(
        self,
        shows: Sequence[Show],
        *,
        turnover_slots: Optional[int] = None,
        policy: AllocationPolicy | str | None = None,
        random_seed: Optional[int] = None,
        initial_stages: Optional[int] = None,
        max_stages: Optional[int] = None,
    ) -> AllocationResult:
        config = self.build_config(
            turnover_slots=turnover_slots,
            policy=policy,
            random_seed=random_seed,
            initial_stages=initial_stages,
            max_stages=max_stages,
        )
        return self.run(shows, config)
