"""
Random draw wrapper used by the stochastic generators.

Any object with a ``random()`` method returning floats in [0, 1) works as a
source: ``numpy.random.Generator``, ``random.Random`` or a scripted sequence
in tests. Every derived draw (uniform ranges, Bernoulli trials, index picks)
consumes exactly one value so the draw order is reproducible.
"""

import logging
import math
from typing import Optional, Tuple

import numpy as np

from .errors import RandomSourceError

logger = logging.getLogger(__name__)


class RandomDraws:
    """Counts and validates draws from an injected random source."""

    def __init__(self, source):
        if not callable(getattr(source, "random", None)):
            raise RandomSourceError(
                f"Random source {type(source).__name__} has no random() method"
            )
        self.source = source
        self.n_draws = 0

    def random(self) -> float:
        """One value in [0, 1). Source failures propagate as RandomSourceError."""
        try:
            value = float(self.source.random())
        except Exception as e:
            raise RandomSourceError(
                f"Random source failed after {self.n_draws} draws: {e!r}"
            ) from e

        if not 0.0 <= value < 1.0 or math.isnan(value):
            raise RandomSourceError(f"Random source returned {value}, expected [0, 1)")

        self.n_draws += 1
        return value

    def uniform(self, low: float, high: float) -> float:
        return low + self.random() * (high - low)

    def symmetric(self, spread: float) -> float:
        """Uniform in [-spread, spread)."""
        return self.uniform(-spread, spread)

    def chance(self, probability: float) -> bool:
        """Bernoulli trial."""
        return self.random() < probability

    def index(self, n: int) -> int:
        """Uniform integer in [0, n)."""
        return min(int(self.random() * n), n - 1)


def make_rng(seed: Optional[int] = None) -> Tuple[np.random.Generator, int]:
    """
    Create a seeded numpy Generator.

    When no seed is given a fresh one is drawn from OS entropy and returned
    so the run can be reproduced from its metadata.
    """
    if seed is None:
        seed = int(np.random.SeedSequence().entropy % (2**32))
        logger.info(f"No seed given, using {seed}")
    return np.random.default_rng(seed), seed
