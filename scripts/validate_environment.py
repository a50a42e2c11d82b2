#!/usr/bin/env python3
"""Validate local stage allocation environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from stageplan.repository.show_repository import ShowListRepository
from stageplan.services.allocation_service import StageAllocationService, compute_minimum_stages
from stageplan.utils.config import get_settings

SEPARATOR_LINE = "=" * 44

SAMPLE_SHOW_LIST = """artist popularity start end
1 9 1 3
2 4 2 4
3 7 5 6
4 2 1 2
"""


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="stageplan-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable with versions
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("numpy", "numpy"),
        ("pandas", "pandas"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    from importlib.metadata import PackageNotFoundError, version

    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        settings = replace(get_settings(), popularity_random_seed=7)
        repository = ShowListRepository(settings)
        show_list_path = Path(temp_dir) / "ShowList.txt"
        show_list_path.write_text(SAMPLE_SHOW_LIST, encoding="utf-8")

        # CHECK 3: Show list parsing
        shows = []
        try:
            shows = repository.load_shows(show_list_path)
            if len(shows) != 4:
                raise RuntimeError(f"expected 4 shows, got {len(shows)}")
            ok, line = _print_result("Show list parsing: 4 shows", True)
        except Exception as exc:
            ok, line = _print_result("Show list parsing", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Allocation for every policy
        service = StageAllocationService(settings=settings)
        for policy in ("DenseMainStage", "Random", "Popularity"):
            try:
                result = service.schedule(shows, turnover_slots=1, policy=policy, random_seed=1)
                if len(result.assignments) != len(shows):
                    raise RuntimeError("not every show was assigned")
                if policy != "Popularity" and result.stage_count != compute_minimum_stages(shows, 1):
                    raise RuntimeError("stage count differs from the lower bound")
                ok, line = _print_result(
                    f"Allocation ({policy})",
                    True,
                    f": {result.stage_count} stages in {result.passes} passes",
                )
            except Exception as exc:
                ok, line = _print_result(f"Allocation ({policy})", False, str(exc))
            results.append(line)
            all_passed = all_passed and ok

        # CHECK 5: Report writing
        try:
            result = service.schedule(shows, turnover_slots=1, policy="DenseMainStage")
            report_path = repository.write_report(
                repository.default_report_path(show_list_path),
                result,
            )
            line_count = len(report_path.read_text(encoding="utf-8").splitlines())
            if line_count != len(shows):
                raise RuntimeError(f"expected {len(shows)} report lines, got {line_count}")
            ok, line = _print_result("Report writing", True, f": {report_path.name}")
        except Exception as exc:
            ok, line = _print_result("Report writing", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Stage Allocation Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
