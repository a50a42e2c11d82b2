"""Synthetic popularity scores for show lists that do not carry them."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

import numpy as np

from stageplan.domain.constraints import validate_popularity_range
from stageplan.domain.models import Show
from stageplan.utils.config import Settings, get_settings
from stageplan.utils.logger import get_logger


logger = get_logger(__name__)


class PopularitySampler:
    """Draws integer priorities from a normal distribution clipped to a range.

    The distribution is centred on the midpoint of ``[low, high]`` with a
    standard deviation of a quarter of the range width, so roughly 95% of the
    draws land inside the range before clipping.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        low: Optional[int] = None,
        high: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._low = low if low is not None else self._settings.popularity_min
        self._high = high if high is not None else self._settings.popularity_max
        validate_popularity_range(self._low, self._high)
        resolved_seed = seed if seed is not None else self._settings.popularity_random_seed
        self._rng = np.random.default_rng(resolved_seed)

    @property
    def popularity_range(self) -> tuple[int, int]:
        return self._low, self._high

    def sample(self, count: int) -> list[int]:
        if count < 0:
            raise ValueError("count must be >= 0")
        mean = (self._low + self._high) / 2.0
        spread = (self._high - self._low) / 4.0
        draws = self._rng.normal(loc=mean, scale=spread, size=count)
        scores = np.clip(np.rint(draws), self._low, self._high).astype(int)
        return [int(score) for score in scores]

    def fill_missing(self, shows: Sequence[Show]) -> list[Show]:
        """Return shows with a sampled priority wherever one is absent."""
        missing = [show for show in shows if show.priority is None]
        if not missing:
            return list(shows)

        sampled = iter(self.sample(len(missing)))
        filled = [
            show if show.priority is not None else replace(show, priority=next(sampled))
            for show in shows
        ]
        logger.info(
            "Popularity scores sampled | shows=%s | range=%s-%s",
            len(missing),
            self._low,
            self._high,
        )
        return filled
