"""Occupancy grid utilities: coordinate checks and entity rasterization.

Grid convention: 3D bool array indexed [x, y, z], True=occupied.
A cell is occupied iff some entity's floored position maps to it.
"""

from __future__ import annotations

import math
from typing import Iterable, Tuple

import numpy as np

GridCoordinate = Tuple[int, int, int]


class InvalidCoordinate(ValueError):
    """Raised when a grid coordinate lies outside the occupancy grid."""

    def __init__(self, coord: Tuple[int, ...], grid_size: int) -> None:
        super().__init__(f"Coordinate {tuple(coord)} outside grid of size {grid_size}")
        self.coord = tuple(coord)
        self.grid_size = int(grid_size)


def empty_grid(grid_size: int) -> np.ndarray:
    n = int(grid_size)
    assert n > 0, "grid_size must be > 0"
    return np.zeros((n, n, n), dtype=bool)


def grid_size_of(grid: np.ndarray) -> int:
    """Return the edge length of a cubic occupancy grid."""
    if grid.ndim != 3 or len(set(grid.shape)) != 1:
        raise ValueError(f"Expected cubic 3D grid, got shape {grid.shape}")
    return int(grid.shape[0])


def in_bounds(coord: Tuple[int, ...], grid_size: int) -> bool:
    return all(0 <= c < grid_size for c in coord)


def check_coordinate(coord: Tuple[int, ...], grid_size: int) -> GridCoordinate:
    """Validate and normalize a coordinate to an int triple.

    Non-integral components are rejected rather than truncated.
    """
    if len(coord) != 3 or not in_bounds(coord, grid_size):
        raise InvalidCoordinate(coord, grid_size)
    if any(float(c) != math.floor(c) for c in coord):
        raise InvalidCoordinate(coord, grid_size)
    x, y, z = coord
    return int(x), int(y), int(z)


def floor_cell(position: Tuple[float, float, float]) -> GridCoordinate:
    x, y, z = position
    return int(math.floor(x)), int(math.floor(y)), int(math.floor(z))


def rasterize_entities(entities: Iterable, grid_size: int) -> np.ndarray:
    """Mark the floored cell of each entity as occupied.

    Entities only need a ``position`` attribute. Out-of-range cells are skipped.
    """
    grid = empty_grid(grid_size)
    for entity in entities:
        cell = floor_cell(entity.position)
        if in_bounds(cell, grid_size):
            grid[cell] = True
    return grid
