from __future__ import annotations

import numpy as np
import pytest

from stageplan.domain.models import Show, SlotState
from stageplan.services.occupancy_grid import OccupancyGrid, ReservationConflictError


def test_reserve_marks_occupied_and_turnover_cells():
    grid = OccupancyGrid(stage_count=1, max_end=8, turnover_slots=2)
    grid.reserve(1, Show(show_id=7, start=2, end=4))

    assert grid.states[0].tolist() == [0, 2, 2, 2, 1, 1, 0, 0]
    assert grid.bookings[0].tolist() == [0, 7, 7, 7, 0, 0, 0, 0]


def test_turnover_is_clipped_to_timeslot_universe():
    grid = OccupancyGrid(stage_count=1, max_end=5, turnover_slots=3)
    show = Show(show_id=1, start=3, end=4)

    assert grid.reservation_window(show) == (3, 5)
    grid.reserve(1, show)
    assert grid.states[0].tolist() == [0, 0, 2, 2, 1]


def test_is_available_includes_turnover_window():
    grid = OccupancyGrid(stage_count=1, max_end=6, turnover_slots=1)
    grid.reserve(1, Show(show_id=1, start=1, end=3))

    assert not grid.is_available(1, Show(show_id=2, start=4, end=5))
    assert grid.is_available(1, Show(show_id=3, start=5, end=6))


def test_pending_show_turnover_must_also_be_free():
    grid = OccupancyGrid(stage_count=1, max_end=6, turnover_slots=1)
    grid.reserve(1, Show(show_id=1, start=4, end=6))

    # show 2 plays 1-3, but its turnover slot 4 is taken
    assert not grid.is_available(1, Show(show_id=2, start=1, end=3))


def test_available_stages_are_ascending():
    grid = OccupancyGrid(stage_count=3, max_end=4, turnover_slots=0)
    grid.reserve(2, Show(show_id=1, start=1, end=4))

    assert grid.available_stages(Show(show_id=2, start=2, end=3)) == [1, 3]


def test_reserve_on_busy_stage_raises():
    grid = OccupancyGrid(stage_count=1, max_end=4, turnover_slots=0)
    grid.reserve(1, Show(show_id=1, start=1, end=2))

    with pytest.raises(ReservationConflictError):
        grid.reserve(1, Show(show_id=2, start=2, end=3))


def test_reserve_unknown_stage_raises():
    grid = OccupancyGrid(stage_count=1, max_end=4, turnover_slots=0)

    with pytest.raises(ReservationConflictError):
        grid.reserve(2, Show(show_id=1, start=1, end=2))


def test_grow_appends_free_rows_and_keeps_bookings():
    grid = OccupancyGrid(stage_count=1, max_end=3, turnover_slots=0)
    grid.reserve(1, Show(show_id=1, start=1, end=3))
    grid.grow()

    assert grid.stage_count == 2
    assert grid.states[1].tolist() == [0, 0, 0]
    assert grid.states[0].tolist() == [2, 2, 2]


def test_reset_clears_rows_without_changing_count():
    grid = OccupancyGrid(stage_count=2, max_end=3, turnover_slots=1)
    grid.reserve(1, Show(show_id=1, start=1, end=2))
    grid.reset()

    assert grid.stage_count == 2
    assert not grid.states.any()
    assert not grid.bookings.any()


def test_trim_clears_trailing_turnover_only():
    grid = OccupancyGrid(stage_count=2, max_end=8, turnover_slots=1)
    grid.reserve(1, Show(show_id=1, start=1, end=2))
    grid.reserve(1, Show(show_id=2, start=4, end=5))
    grid.trim_trailing_turnover()

    # the turnover between the two shows survives, the trailing one does not
    assert grid.states[0].tolist() == [2, 2, 1, 2, 2, 0, 0, 0]
    assert grid.states[1].tolist() == [0] * 8


def test_states_snapshot_is_a_copy():
    grid = OccupancyGrid(stage_count=1, max_end=2, turnover_slots=0)
    snapshot = grid.states
    snapshot[0, 0] = SlotState.OCCUPIED

    assert np.all(grid.states == SlotState.FREE)


def test_assignments_read_back_from_grid():
    shows = [Show(show_id=1, start=1, end=2, priority=3), Show(show_id=2, start=1, end=1)]
    grid = OccupancyGrid(stage_count=2, max_end=2, turnover_slots=0)
    grid.reserve(2, shows[0])
    grid.reserve(1, shows[1])

    assignments = grid.assignments(shows)
    assert [(item.show_id, item.stage) for item in assignments] == [(1, 2), (2, 1)]
    assert assignments[0].priority == 3
