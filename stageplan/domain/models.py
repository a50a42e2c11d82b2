"""Domain models for stage allocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional

import numpy as np


class AllocationPolicy(str, Enum):
    DENSE_MAIN_STAGE = "DenseMainStage"
    RANDOM = "Random"
    POPULARITY = "Popularity"


class SlotState(IntEnum):
    """Per-cell occupancy code; values double as the timetable colour scale."""

    FREE = 0
    TURNOVER = 1
    OCCUPIED = 2


@dataclass(frozen=True)
class Show:
    show_id: int
    start: int
    end: int
    priority: Optional[int] = None


@dataclass(frozen=True)
class StageAssignment:
    show_id: int
    stage: int
    start: int
    end: int
    priority: Optional[int] = None


@dataclass(frozen=True)
class AllocationResult:
    policy: AllocationPolicy
    turnover_slots: int
    stage_count: int
    minimum_stages: int
    passes: int
    assignments: list[StageAssignment]
    states: np.ndarray = field(repr=False, compare=False)
    bookings: np.ndarray = field(repr=False, compare=False)

    @property
    def stages_used(self) -> int:
        return len({assignment.stage for assignment in self.assignments})

    def stage_of(self, show_id: int) -> int:
        for assignment in self.assignments:
            if assignment.show_id == show_id:
                return assignment.stage
        raise KeyError(show_id)
