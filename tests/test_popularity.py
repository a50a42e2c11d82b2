from __future__ import annotations

from dataclasses import replace

import pytest

from stageplan.domain.constraints import build_shows
from stageplan.services.popularity_service import PopularitySampler
from stageplan.utils.config import get_settings


def _build_test_settings(**overrides):
    return replace(get_settings(), **overrides)


def test_samples_are_integers_within_range():
    sampler = PopularitySampler(_build_test_settings(), low=1, high=10, seed=1)
    scores = sampler.sample(500)

    assert len(scores) == 500
    assert all(isinstance(score, int) for score in scores)
    assert min(scores) >= 1
    assert max(scores) <= 10


def test_samples_centre_on_range_midpoint():
    sampler = PopularitySampler(_build_test_settings(), low=1, high=10, seed=2)
    scores = sampler.sample(2000)

    assert 5.0 <= sum(scores) / len(scores) <= 6.0


def test_seeded_sampler_is_reproducible():
    settings = _build_test_settings(popularity_random_seed=99)

    assert PopularitySampler(settings).sample(20) == PopularitySampler(settings).sample(20)


def test_degenerate_range_yields_constant():
    sampler = PopularitySampler(_build_test_settings(), low=4, high=4, seed=0)

    assert sampler.sample(5) == [4, 4, 4, 4, 4]


def test_inverted_range_raises():
    with pytest.raises(ValueError):
        PopularitySampler(_build_test_settings(popularity_min=8, popularity_max=2))


def test_fill_missing_keeps_existing_priorities():
    sampler = PopularitySampler(_build_test_settings(), low=1, high=10, seed=3)
    shows = build_shows([(1, 2), (2, 3), (3, 4)], priorities=[7, None, 2])

    filled = sampler.fill_missing(shows)

    assert filled[0].priority == 7
    assert filled[2].priority == 2
    assert 1 <= filled[1].priority <= 10
    assert shows[1].priority is None


def test_fill_missing_without_gaps_returns_same_shows():
    sampler = PopularitySampler(_build_test_settings(), seed=3)
    shows = build_shows([(1, 2)], priorities=[5])

    assert sampler.fill_missing(shows) == shows
