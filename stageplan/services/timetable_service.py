"""Tabular views of show windows and stage timetables for display."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from stageplan.domain.models import AllocationResult, Show, SlotState


STATE_LABELS = {
    SlotState.FREE: "Not playing",
    SlotState.TURNOVER: "Turnover",
    SlotState.OCCUPIED: "Playing",
}


def _timeslot_columns(max_end: int) -> pd.Index:
    return pd.Index(range(1, max_end + 1), name="timeslot")


def build_playing_frame(
    shows: Sequence[Show],
    turnover_slots: int,
    order: Optional[Sequence[int]] = None,
) -> pd.DataFrame:
    """Show x timeslot codes: playing window plus clipped turnover.

    ``order`` lists show ids in display order; by default shows appear in
    input order.
    """
    if not shows:
        return pd.DataFrame(index=pd.Index([], name="show_id"), dtype=int)

    max_end = max(show.end for show in shows)
    by_id = {show.show_id: show for show in shows}
    show_ids = list(order) if order is not None else [show.show_id for show in shows]

    matrix = np.zeros((len(show_ids), max_end), dtype=int)
    for row, show_id in enumerate(show_ids):
        show = by_id[show_id]
        matrix[row, show.start - 1:show.end] = SlotState.OCCUPIED
        matrix[row, show.end:min(show.end + turnover_slots, max_end)] = SlotState.TURNOVER

    return pd.DataFrame(
        matrix,
        index=pd.Index(show_ids, name="show_id"),
        columns=_timeslot_columns(max_end),
    )


def build_stage_frame(result: AllocationResult) -> pd.DataFrame:
    stage_count, max_end = result.states.shape
    return pd.DataFrame(
        result.states.astype(int),
        index=pd.Index(range(1, stage_count + 1), name="stage"),
        columns=_timeslot_columns(max_end),
    )


def build_label_frame(result: AllocationResult) -> pd.DataFrame:
    """Stage x timeslot cell labels ``A:<show>, P:<priority>`` on played cells."""
    priority_by_show = {
        assignment.show_id: assignment.priority for assignment in result.assignments
    }
    stage_count, max_end = result.bookings.shape
    labels = np.full((stage_count, max_end), "", dtype=object)
    for (row, column), show_id in np.ndenumerate(result.bookings):
        if show_id:
            priority = priority_by_show.get(int(show_id))
            suffix = "-" if priority is None else str(priority)
            labels[row, column] = f"A:{int(show_id)}, P:{suffix}"
    return pd.DataFrame(
        labels,
        index=pd.Index(range(1, stage_count + 1), name="stage"),
        columns=_timeslot_columns(max_end),
    )


def timetable_rows(result: AllocationResult) -> list[list[int]]:
    return [[int(value) for value in row] for row in result.states]


def state_legend() -> str:
    return ", ".join(f"{int(state)}={label}" for state, label in STATE_LABELS.items())
