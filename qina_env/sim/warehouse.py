"""Warehouse of target boxes with periodic pose perturbation.

Owns the target entities and the occupancy grid rebuilt from them.
Every update interval each box rotates by 45 degrees and its scale drifts by
+-0.1 within [0.5, 1.5]; the grid is rebuilt from scratch afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .grid import GridCoordinate, empty_grid, floor_cell, in_bounds, rasterize_entities

logger = logging.getLogger(__name__)

SCALE_MIN = 0.5
SCALE_MAX = 1.5
ROTATION_STEP_DEG = 45.0
SCALE_STEP = 0.1

DEFAULT_BOX_CELLS: Tuple[GridCoordinate, ...] = ((8, 0, 8), (5, 0, 3))


def clamp_scale(scale: float) -> float:
    return min(SCALE_MAX, max(SCALE_MIN, float(scale)))


@dataclass
class TargetEntity:
    entity_id: int
    position: Tuple[float, float, float]
    rotation: float = 0.0  # degrees, [0, 360)
    scale: float = 1.0  # [0.5, 1.5]

    @property
    def cell(self) -> GridCoordinate:
        return floor_cell(self.position)


class Warehouse:
    """Target boxes on a cubic grid.

    Args:
        grid_size: edge length of the occupancy grid.
        update_interval_s: seconds between perturbations (driven by the caller).
        rng: numpy Generator for initial poses and scale drift.
        initial_boxes: cells to place boxes at on reset; defaults to DEFAULT_BOX_CELLS.
    """

    def __init__(
        self,
        grid_size: int = 10,
        update_interval_s: float = 3.0,
        rng: Optional[np.random.Generator] = None,
        initial_boxes: Optional[Sequence[Sequence[float]]] = None,
    ) -> None:
        assert grid_size > 0, "grid_size must be > 0"
        assert update_interval_s > 0.0, "update_interval_s must be > 0"
        self.grid_size = int(grid_size)
        self.update_interval_s = float(update_interval_s)
        self._rng = rng or np.random.default_rng()
        self._initial_boxes = [tuple(b) for b in (initial_boxes if initial_boxes is not None else DEFAULT_BOX_CELLS)]
        self._entities: List[TargetEntity] = []
        self._next_id = 0
        self.grid = empty_grid(self.grid_size)
        self.reset()

    @property
    def entities(self) -> List[TargetEntity]:
        return self._entities

    def add_entity(self, x: float, y: float, z: float, rotation: float = 0.0, scale: float = 1.0) -> TargetEntity:
        ent = TargetEntity(
            entity_id=self._next_id,
            position=(float(x), float(y), float(z)),
            rotation=float(rotation) % 360.0,
            scale=clamp_scale(scale),
        )
        self._next_id += 1
        self._entities.append(ent)
        if in_bounds(ent.cell, self.grid_size):
            self.grid[ent.cell] = True
        else:
            logger.warning("Entity %d at %s lies outside the grid", ent.entity_id, ent.position)
        return ent

    def perturb(self) -> None:
        for ent in self._entities:
            ent.rotation = (ent.rotation + ROTATION_STEP_DEG) % 360.0
            step = SCALE_STEP if self._rng.random() > 0.5 else -SCALE_STEP
            ent.scale = clamp_scale(ent.scale + step)
        self.rebuild_grid()

    def rebuild_grid(self) -> np.ndarray:
        self.grid = rasterize_entities(self._entities, self.grid_size)
        return self.grid

    def snapshots(self) -> List[TargetEntity]:
        """Return copies of the entities; callers never see live objects."""
        return [replace(e) for e in self._entities]

    def first_entity_cell(self) -> Optional[GridCoordinate]:
        if not self._entities:
            return None
        return self._entities[0].cell

    def reset(self) -> None:
        self._entities = []
        self._next_id = 0
        self.grid = empty_grid(self.grid_size)
        for cell in self._initial_boxes:
            x, y, z = cell
            rotation = float(self._rng.uniform(0.0, 360.0))
            scale = SCALE_MIN + float(self._rng.random())
            self.add_entity(x, y, z, rotation=rotation, scale=scale)
