"""Synthetic sensor field used as placeholder detector input."""

from __future__ import annotations

from math import cos, pi
from typing import Iterable, Optional

import numpy as np

from qina_env.sim.grid import floor_cell, in_bounds


def cell_intensity(rotation_deg: float, scale: float) -> float:
    """Intensity of an occupied cell: larger boxes brighter, modulated by rotation."""
    rotation_factor = 0.7 + 0.3 * abs(cos(rotation_deg * pi / 180.0))
    return 0.7 + 0.3 * float(scale) * rotation_factor


class SensorFieldGenerator:
    """Uniform low-noise background plus elevated cells at entity positions.

    Args:
        grid_size: edge length of the cubic field.
        noise_level: background values are drawn from [0, noise_level).
        rng: optional numpy Generator; if None, created internally.
    """

    def __init__(self, grid_size: int, noise_level: float = 0.1, rng: Optional[np.random.Generator] = None) -> None:
        assert grid_size > 0, "grid_size must be > 0"
        assert noise_level >= 0.0, "noise_level must be >= 0"
        self.grid_size = int(grid_size)
        self.noise_level = float(noise_level)
        self._rng = rng or np.random.default_rng()

    def generate(self, entities: Iterable) -> np.ndarray:
        n = self.grid_size
        field = self._rng.random((n, n, n)) * self.noise_level
        for ent in entities:
            cell = floor_cell(ent.position)
            if in_bounds(cell, n):
                field[cell] = cell_intensity(ent.rotation, ent.scale)
        return field
