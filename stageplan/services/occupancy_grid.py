"""Per-stage, per-timeslot occupancy tracking."""

from __future__ import annotations

import numpy as np

from stageplan.domain.models import Show, SlotState, StageAssignment


class ReservationConflictError(Exception):
    """Raised when a reservation targets cells that are not free."""


class OccupancyGrid:
    """Stage x timeslot matrix of ``SlotState`` codes plus show bookings.

    Stages and timeslots are 1-based at the API; row ``stage - 1`` and column
    ``timeslot - 1`` hold the cell. ``bookings`` carries a show id on
    OCCUPIED cells only.
    """

    def __init__(self, stage_count: int, max_end: int, turnover_slots: int) -> None:
        if stage_count < 0:
            raise ValueError("stage_count must be >= 0")
        if max_end < 0:
            raise ValueError("max_end must be >= 0")
        self._max_end = max_end
        self._turnover_slots = turnover_slots
        self._states = np.zeros((stage_count, max_end), dtype=np.int8)
        self._bookings = np.zeros((stage_count, max_end), dtype=np.int64)

    @property
    def stage_count(self) -> int:
        return int(self._states.shape[0])

    @property
    def max_end(self) -> int:
        return self._max_end

    @property
    def states(self) -> np.ndarray:
        return self._states.copy()

    @property
    def bookings(self) -> np.ndarray:
        return self._bookings.copy()

    def reservation_window(self, show: Show) -> tuple[int, int]:
        """Inclusive ``[start, end + turnover]`` clipped to the timeslot universe."""
        return show.start, min(show.end + self._turnover_slots, self._max_end)

    def _check_stage(self, stage: int) -> None:
        if not 1 <= stage <= self.stage_count:
            raise ReservationConflictError(
                f"stage={stage} is outside 1..{self.stage_count}"
            )

    def _check_show(self, show: Show) -> None:
        if show.start < 1 or show.end > self._max_end or show.start > show.end:
            raise ReservationConflictError(
                f"show_id={show.show_id} window [{show.start}, {show.end}] "
                f"is outside the timeslot universe 1..{self._max_end}"
            )

    def is_available(self, stage: int, show: Show) -> bool:
        self._check_stage(stage)
        self._check_show(show)
        first, last = self.reservation_window(show)
        window = self._states[stage - 1, first - 1:last]
        return bool(np.all(window == SlotState.FREE))

    def available_stages(self, show: Show) -> list[int]:
        self._check_show(show)
        first, last = self.reservation_window(show)
        window = self._states[:, first - 1:last]
        free_rows = np.flatnonzero(np.all(window == SlotState.FREE, axis=1))
        return [int(row) + 1 for row in free_rows]

    def reserve(self, stage: int, show: Show) -> None:
        if not self.is_available(stage, show):
            raise ReservationConflictError(
                f"stage={stage} is not free for show_id={show.show_id}"
            )
        row = stage - 1
        _, last = self.reservation_window(show)
        self._states[row, show.start - 1:show.end] = SlotState.OCCUPIED
        self._bookings[row, show.start - 1:show.end] = show.show_id
        self._states[row, show.end:last] = SlotState.TURNOVER

    def grow(self, by: int = 1) -> None:
        if by < 0:
            raise ValueError("by must be >= 0")
        extra_states = np.zeros((by, self._max_end), dtype=self._states.dtype)
        extra_bookings = np.zeros((by, self._max_end), dtype=self._bookings.dtype)
        self._states = np.vstack([self._states, extra_states])
        self._bookings = np.vstack([self._bookings, extra_bookings])

    def reset(self) -> None:
        self._states.fill(SlotState.FREE)
        self._bookings.fill(0)

    def trim_trailing_turnover(self) -> None:
        """Free every cell after each stage's last OCCUPIED cell."""
        for row in range(self.stage_count):
            occupied = np.flatnonzero(self._states[row] == SlotState.OCCUPIED)
            last_played = int(occupied[-1]) + 1 if occupied.size else 0
            self._states[row, last_played:] = SlotState.FREE
            self._bookings[row, last_played:] = 0

    def assignments(self, shows: list[Show]) -> list[StageAssignment]:
        """Read the show -> stage relation back from OCCUPIED cells."""
        stage_by_show: dict[int, int] = {}
        for row in range(self.stage_count):
            for show_id in np.unique(self._bookings[row]):
                if show_id:
                    stage_by_show[int(show_id)] = row + 1

        results: list[StageAssignment] = []
        for show in sorted(shows, key=lambda item: item.show_id):
            if show.show_id not in stage_by_show:
                raise ReservationConflictError(
                    f"show_id={show.show_id} has no booking on the grid"
                )
            results.append(
                StageAssignment(
                    show_id=show.show_id,
                    stage=stage_by_show[show.show_id],
                    start=show.start,
                    end=show.end,
                    priority=show.priority,
                )
            )
        return results
