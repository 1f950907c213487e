"""
Deterministic 2D coherent noise.

Wraps Perlin noise from the ``noise`` package and maps it to [0, 1].
The same (x, y) always gives the same value for a given configuration.
"""

from dataclasses import dataclass

import numpy as np
from noise import pnoise2

# pnoise2 only has this many permutation offsets for its base argument
NOISE_BASES = 256


@dataclass(frozen=True)
class NoiseField:
    """
    Fractal Perlin noise sampler.

    Attributes:
        octaves: layers of detail
        persistence: amplitude falloff per octave
        lacunarity: frequency gain per octave
        base: permutation offset, acts as the noise seed
    """
    octaves: int = 4
    persistence: float = 0.5
    lacunarity: float = 2.0
    base: int = 0

    def __post_init__(self):
        if not 0 <= self.base < NOISE_BASES:
            raise ValueError(f"base must be in [0, {NOISE_BASES}), got {self.base}")

    def __call__(self, x: float, y: float) -> float:
        return self.sample(x, y)

    def sample(self, x: float, y: float) -> float:
        """Noise value in [0, 1] at (x, y)."""
        raw = pnoise2(
            float(x),
            float(y),
            octaves=self.octaves,
            persistence=self.persistence,
            lacunarity=self.lacunarity,
            base=self.base,
        )
        # pnoise2 is centred on 0 and stays within [-1, 1]
        return float(np.clip((raw + 1.0) / 2.0, 0.0, 1.0))

    def sample_line(self, xs: np.ndarray, y: float) -> np.ndarray:
        """Sample along a horizontal line of the noise plane."""
        return np.array([self.sample(x, y) for x in xs], dtype=np.float64)
