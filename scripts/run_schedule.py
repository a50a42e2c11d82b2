#!/usr/bin/env python3
"""Allocate stages for a show list file and write the stage report."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from stageplan.domain.models import AllocationPolicy
from stageplan.repository.show_repository import ShowListRepository
from stageplan.services.allocation_service import AllocationFailureError, StageAllocationService
from stageplan.services.selection import order_shows
from stageplan.services.timetable_service import (
    build_label_frame,
    build_playing_frame,
    build_stage_frame,
    state_legend,
)
from stageplan.utils.config import get_settings
from stageplan.utils.logger import configure_logging

SEPARATOR_LINE = "=" * 44


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "show_list",
        nargs="?",
        type=Path,
        help="show list file (defaults to STAGEPLAN_SHOW_LIST)",
    )
    parser.add_argument("-o", "--output", type=Path, help="report path")
    parser.add_argument(
        "-p",
        "--policy",
        choices=[policy.value for policy in AllocationPolicy],
        help="planning policy",
    )
    parser.add_argument("-t", "--turnover", type=int, help="turnover timeslots after each show")
    parser.add_argument("--seed", type=int, help="seed for Random stage selection")
    parser.add_argument("--popularity-seed", type=int, help="seed for sampled popularity scores")
    parser.add_argument("--max-stages", type=int, help="stop with an error beyond this many stages")
    parser.add_argument(
        "--timetable",
        action="store_true",
        help="print the raw, start-ordered and final timetables",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="override STAGEPLAN_LOG_LEVEL for this run",
    )
    return parser


def _print_timetables(shows, result) -> None:
    ordered_ids = [show.show_id for show in order_shows(shows)]
    frames = [
        ("Show times (raw input)", build_playing_frame(shows, result.turnover_slots)),
        (
            "Show times (ordered on starting time)",
            build_playing_frame(shows, result.turnover_slots, order=ordered_ids),
        ),
        (f"Stage timetable ({state_legend()})", build_stage_frame(result)),
        ("Stage timetable (A=show, P=priority)", build_label_frame(result)),
    ]
    with pd.option_context("display.width", 200, "display.max_columns", None):
        for title, frame in frames:
            print(f"\n{title}")
            print(frame.to_string())


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.log_level:
        configure_logging(args.log_level)

    settings = get_settings()
    if args.popularity_seed is not None:
        settings = replace(settings, popularity_random_seed=args.popularity_seed)

    repository = ShowListRepository(settings=settings)
    service = StageAllocationService(settings=settings)

    show_list = args.show_list or settings.show_list_path
    output = args.output or repository.default_report_path(show_list)

    try:
        shows = repository.load_shows(show_list)
        result = service.schedule(
            shows,
            turnover_slots=args.turnover,
            policy=args.policy,
            random_seed=args.seed,
            max_stages=args.max_stages,
        )
    except AllocationFailureError as exc:
        print(f"Allocation failed: {exc}", file=sys.stderr)
        return 2
    except (FileNotFoundError, ValueError) as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 1

    repository.write_report(output, result)

    print(SEPARATOR_LINE)
    print(" Stage allocation summary")
    print(SEPARATOR_LINE)
    print(f" Policy         : {result.policy.value}")
    print(f" Turnover slots : {result.turnover_slots}")
    print(f" Shows          : {len(result.assignments)}")
    print(f" Minimum stages : {result.minimum_stages}")
    print(f" Stages         : {result.stage_count}")
    print(f" Passes         : {result.passes}")
    print(f" Report         : {output}")
    print(SEPARATOR_LINE)

    if args.timetable:
        _print_timetables(shows, result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
