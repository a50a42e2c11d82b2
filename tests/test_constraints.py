"""Tests for allocation config and show interval validation.

Covers every validation branch in validate_allocation_config() and
validate_shows().
"""

from __future__ import annotations

import pytest

from stageplan.domain.constraints import (
    AllocationConfig,
    InvalidIntervalError,
    InvalidTurnoverError,
    build_shows,
    parse_policy,
    validate_allocation_config,
    validate_shows,
)
from stageplan.domain.models import AllocationPolicy, Show


def valid_config(**overrides) -> AllocationConfig:
    """Return a valid baseline AllocationConfig, optionally overriding fields."""
    defaults = {
        "turnover_slots": 1,
        "policy": AllocationPolicy.POPULARITY,
        "random_seed": 42,
        "initial_stages": None,
        "max_stages": None,
    }
    defaults.update(overrides)
    return AllocationConfig(**defaults)


# --- Baseline pass ---

def test_valid_config_passes() -> None:
    """A fully valid config must not raise."""
    validate_allocation_config(valid_config())


# --- turnover_slots ---

def test_turnover_negative_raises() -> None:
    with pytest.raises(InvalidTurnoverError):
        validate_allocation_config(valid_config(turnover_slots=-1))


def test_turnover_fractional_raises() -> None:
    with pytest.raises(InvalidTurnoverError):
        validate_allocation_config(valid_config(turnover_slots=1.5))


def test_turnover_bool_raises() -> None:
    with pytest.raises(InvalidTurnoverError):
        validate_allocation_config(valid_config(turnover_slots=True))


def test_turnover_zero_passes() -> None:
    """Turnover can be switched off."""
    validate_allocation_config(valid_config(turnover_slots=0))


def test_invalid_turnover_is_value_error() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(turnover_slots=-3))


# --- policy ---

def test_unknown_policy_raises() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(policy="Loudest"))


def test_policy_parses_from_name() -> None:
    assert parse_policy("DenseMainStage") is AllocationPolicy.DENSE_MAIN_STAGE
    assert parse_policy(AllocationPolicy.RANDOM) is AllocationPolicy.RANDOM


# --- random_seed ---

def test_random_seed_negative_raises() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(random_seed=-1))


def test_random_seed_zero_passes() -> None:
    validate_allocation_config(valid_config(random_seed=0))


# --- stage bounds ---

def test_initial_stages_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(initial_stages=0))


def test_max_stages_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(max_stages=0))


def test_initial_stages_above_max_raises() -> None:
    with pytest.raises(ValueError):
        validate_allocation_config(valid_config(initial_stages=3, max_stages=2))


def test_initial_stages_equal_to_max_passes() -> None:
    validate_allocation_config(valid_config(initial_stages=2, max_stages=2))


# --- show intervals ---

def test_start_after_end_raises_with_show_identity() -> None:
    shows = [Show(show_id=1, start=1, end=2), Show(show_id=2, start=5, end=4)]
    with pytest.raises(InvalidIntervalError) as excinfo:
        validate_shows(shows)
    assert excinfo.value.show_id == 2


def test_start_below_one_raises() -> None:
    with pytest.raises(InvalidIntervalError):
        validate_shows([Show(show_id=1, start=0, end=3)])


def test_single_slot_show_passes() -> None:
    validate_shows([Show(show_id=1, start=4, end=4)])


def test_build_shows_numbers_by_position() -> None:
    shows = build_shows([(1, 3), (2, 4)], priorities=[9, None])
    assert [show.show_id for show in shows] == [1, 2]
    assert shows[0].priority == 9
    assert shows[1].priority is None


def test_build_shows_rejects_priority_length_mismatch() -> None:
    with pytest.raises(ValueError):
        build_shows([(1, 3), (2, 4)], priorities=[9])
