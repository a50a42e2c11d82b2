"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    allocation_turnover_slots: int
    allocation_policy: str
    allocation_random_seed: Optional[int]
    allocation_max_stages: Optional[int]
    popularity_min: int
    popularity_max: int
    popularity_random_seed: Optional[int]
    show_list_path: Path
    report_suffix: str
    api_base_url: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests clear the cache to reload."""
    return Settings(
        app_name=_env_str("STAGEPLAN_APP_NAME", "Stage Allocation Engine"),
        app_version=_env_str("STAGEPLAN_APP_VERSION", "1.0.0"),
        log_level=_env_str("STAGEPLAN_LOG_LEVEL", "INFO"),
        allocation_turnover_slots=_env_int("STAGEPLAN_TURNOVER_SLOTS", 1),
        allocation_policy=_env_str("STAGEPLAN_POLICY", "Popularity"),
        allocation_random_seed=_env_optional_int("STAGEPLAN_RANDOM_SEED"),
        allocation_max_stages=_env_optional_int("STAGEPLAN_MAX_STAGES"),
        popularity_min=_env_int("STAGEPLAN_POPULARITY_MIN", 1),
        popularity_max=_env_int("STAGEPLAN_POPULARITY_MAX", 10),
        popularity_random_seed=_env_optional_int("STAGEPLAN_POPULARITY_SEED"),
        show_list_path=Path(_env_str("STAGEPLAN_SHOW_LIST", "data/ShowList.txt")),
        report_suffix=_env_str("STAGEPLAN_REPORT_SUFFIX", "_withStages"),
        api_base_url=_env_str("STAGEPLAN_API_BASE_URL", "http://127.0.0.1:8000"),
    )
