"""Repository layer for show list input files and allocation reports."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from stageplan.domain.constraints import InvalidIntervalError, validate_shows
from stageplan.domain.models import AllocationResult, Show
from stageplan.utils.config import Settings, get_settings
from stageplan.utils.logger import get_logger


logger = get_logger(__name__)


class ShowListFormatError(ValueError):
    """Raised when a show list file cannot be parsed into shows."""


def format_report_line(show_id: int, priority: Optional[int], stage: int, start: int, end: int) -> str:
    priority_text = "-" if priority is None else str(priority)
    return f"Show: {show_id}, Priority: {priority_text}, Stage: {stage}, Timeslot: {start}-{end}"


def report_lines(result: AllocationResult) -> list[str]:
    return [
        format_report_line(
            assignment.show_id,
            assignment.priority,
            assignment.stage,
            assignment.start,
            assignment.end,
        )
        for assignment in result.assignments
    ]


class ShowListRepository:
    """Reads show lists and writes stage reports as plain text files.

    A show list has one row per show with columns ``artist start end`` or
    ``artist popularity start end``, separated by commas or whitespace. Shows
    are identified by their 1-based row position, not by the artist column.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def default_report_path(self, show_list_path: Path | str) -> Path:
        path = Path(show_list_path)
        suffix = path.suffix or ".txt"
        return path.with_name(f"{path.stem}{self._settings.report_suffix}{suffix}")

    def _read_frame(self, path: Path) -> tuple[pd.DataFrame, list[int]]:
        """Return the numeric show rows and the file line number of each."""
        if not path.exists():
            raise FileNotFoundError(f"Show list not found: {path}")
        line_numbers: list[int] = []
        kept: list[str] = []
        for number, raw in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
            # stray edge whitespace would otherwise become empty columns
            line = raw.strip()
            if line and not line.startswith("#"):
                line_numbers.append(number)
                kept.append(line)
        if not kept:
            return pd.DataFrame(), []

        try:
            frame = pd.read_csv(
                io.StringIO("\n".join(kept)),
                sep=r"[,\s]+",
                engine="python",
                header=None,
                comment="#",
                dtype=str,
            )
        except pd.errors.ParserError as exc:
            raise ShowListFormatError(f"Unable to parse show list {path}: {exc}") from exc

        frame = frame.dropna(axis=1, how="all")
        numeric = frame.apply(pd.to_numeric, errors="coerce")
        has_times = numeric.iloc[:, -2:].notna().all(axis=1).to_numpy()
        if not has_times.any():
            return pd.DataFrame(), []

        # only rows ahead of the first show are header rows
        first = int(np.argmax(has_times))
        return numeric.iloc[first:].reset_index(drop=True), line_numbers[first:]

    def load_shows(self, path: Path | str) -> list[Show]:
        source = Path(path)
        frame, line_numbers = self._read_frame(source)
        if frame.empty:
            logger.info("Show list loaded | path=%s | shows=0", source)
            return []

        column_count = frame.shape[1]
        if column_count not in (3, 4):
            raise ShowListFormatError(
                f"Show list {source} must have 3 or 4 columns, found {column_count}"
            )

        required = frame.iloc[:, 1:] if column_count == 4 else frame.iloc[:, -2:]
        incomplete = required.isna().any(axis=1).to_numpy()
        if incomplete.any():
            line = line_numbers[int(np.argmax(incomplete))]
            logger.warning("Show list rejected | path=%s | line=%s", source, line)
            raise ShowListFormatError(
                f"Show list {source} line {line} is missing or has non-numeric "
                "popularity or timeslot values"
            )

        times = frame.iloc[:, -2:].to_numpy(dtype=float)
        fractional = np.any(np.mod(times, 1) != 0, axis=1)
        if fractional.any():
            line = line_numbers[int(np.argmax(fractional))]
            raise ShowListFormatError(
                f"Show list {source} line {line} contains non-integer timeslots"
            )

        priorities: list[Optional[int]] = [None] * len(frame)
        if column_count == 4:
            popularity = frame.iloc[:, 1].to_numpy(dtype=float)
            priorities = [int(value) for value in np.rint(popularity)]

        shows = [
            Show(
                show_id=row + 1,
                start=int(times[row, 0]),
                end=int(times[row, 1]),
                priority=priorities[row],
            )
            for row in range(len(frame))
        ]
        try:
            validate_shows(shows)
        except InvalidIntervalError:
            logger.warning("Show list rejected | path=%s", source)
            raise

        logger.info(
            "Show list loaded | path=%s | shows=%s | has_popularity=%s",
            source,
            len(shows),
            column_count == 4,
        )
        return shows

    def write_report(self, path: Path | str, result: AllocationResult) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        lines = report_lines(result)
        target.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        logger.info("Stage report written | path=%s | shows=%s", target, len(lines))
        return target
