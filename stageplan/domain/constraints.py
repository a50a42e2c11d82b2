"""Domain-level validation rules for stage allocation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from stageplan.domain.models import AllocationPolicy, Show


class InvalidIntervalError(ValueError):
    """Raised when a show's time window is malformed."""

    def __init__(self, show_id: int, start: int, end: int) -> None:
        super().__init__(
            f"show_id={show_id} has invalid interval [{start}, {end}]; "
            "start must be >= 1 and <= end"
        )
        self.show_id = show_id
        self.start = start
        self.end = end


class InvalidTurnoverError(ValueError):
    """Raised when the turnover window is not a non-negative integer."""


class MissingPriorityError(ValueError):
    """Raised when the Popularity policy has no priority for a show."""


@dataclass(frozen=True)
class AllocationConfig:
    turnover_slots: int
    policy: AllocationPolicy
    random_seed: Optional[int] = None
    initial_stages: Optional[int] = None
    max_stages: Optional[int] = None


def parse_policy(value: AllocationPolicy | str) -> AllocationPolicy:
    if isinstance(value, AllocationPolicy):
        return value
    try:
        return AllocationPolicy(value)
    except ValueError as exc:
        options = ", ".join(policy.value for policy in AllocationPolicy)
        raise ValueError(f"policy must be one of: {options}") from exc


def validate_turnover(turnover_slots: object) -> int:
    # bool is an int subclass but never a meaningful slot count
    if isinstance(turnover_slots, bool) or not isinstance(turnover_slots, int):
        raise InvalidTurnoverError("turnover_slots must be an integer number of timeslots")
    if turnover_slots < 0:
        raise InvalidTurnoverError("turnover_slots must be >= 0")
    return turnover_slots


def validate_allocation_config(config: AllocationConfig) -> None:
    validate_turnover(config.turnover_slots)
    parse_policy(config.policy)
    if config.random_seed is not None and config.random_seed < 0:
        raise ValueError("random_seed must be >= 0")
    if config.initial_stages is not None and config.initial_stages <= 0:
        raise ValueError("initial_stages must be > 0")
    if config.max_stages is not None and config.max_stages <= 0:
        raise ValueError("max_stages must be > 0")
    if (
        config.initial_stages is not None
        and config.max_stages is not None
        and config.initial_stages > config.max_stages
    ):
        raise ValueError("initial_stages must not exceed max_stages")


def validate_shows(shows: Iterable[Show]) -> None:
    for show in shows:
        if show.start < 1 or show.start > show.end:
            raise InvalidIntervalError(show.show_id, show.start, show.end)


def validate_popularity_range(low: int, high: int) -> None:
    if low > high:
        raise ValueError("popularity range lower bound must not exceed upper bound")


def build_shows(
    intervals: Sequence[tuple[int, int]],
    priorities: Optional[Sequence[Optional[int]]] = None,
) -> list[Show]:
    """Number ``(start, end)`` pairs 1..N by position."""
    if priorities is None:
        priorities = [None] * len(intervals)
    if len(priorities) != len(intervals):
        raise ValueError("priorities must have one entry per show")
    shows = [
        Show(
            show_id=index,
            start=int(start),
            end=int(end),
            priority=None if priority is None else int(priority),
        )
        for index, ((start, end), priority) in enumerate(zip(intervals, priorities), start=1)
    ]
    validate_shows(shows)
    return shows
