"""Show ordering, priority tiers and stage selection policies."""

from __future__ import annotations

import random
from typing import Mapping, Optional, Sequence

from stageplan.domain.models import AllocationPolicy, Show


class NoStageAvailableError(Exception):
    """Raised when no stage can host a show; triggers escalation."""

    def __init__(self, show_id: int) -> None:
        super().__init__(f"no stage available for show_id={show_id}")
        self.show_id = show_id


def show_order_key(show: Show) -> tuple[int, int, int]:
    # co-starting shows: longest first, then input position
    return show.start, -show.end, show.show_id


def order_shows(shows: Sequence[Show]) -> list[Show]:
    return sorted(shows, key=show_order_key)


def partition_into_tiers(
    ordered_shows: Sequence[Show],
    policy: AllocationPolicy,
    priority_of: Optional[Mapping[int, int]] = None,
) -> list[list[Show]]:
    """Group ordered shows by priority, highest tier first.

    Non-popularity policies process every show as a single tier. Each tier
    keeps the relative order of ``ordered_shows``.
    """
    if policy is not AllocationPolicy.POPULARITY:
        return [list(ordered_shows)] if ordered_shows else []

    lookup = priority_of or {}
    tiers: dict[int, list[Show]] = {}
    for show in ordered_shows:
        tiers.setdefault(lookup[show.show_id], []).append(show)
    return [tiers[level] for level in sorted(tiers, reverse=True)]


def select_stage(
    show: Show,
    available_stages: Sequence[int],
    policy: AllocationPolicy,
    rng: Optional[random.Random] = None,
) -> int:
    if not available_stages:
        raise NoStageAvailableError(show.show_id)

    candidates = sorted(available_stages)
    if policy is AllocationPolicy.RANDOM:
        chooser = rng or random.Random()
        return candidates[chooser.randrange(len(candidates))]
    return candidates[0]
