"""A* shortest-path planner over a 3D occupancy grid.

Design decisions:
- Moves: 4-connected in the horizontal plane (+-x, +-z); +-y only with allow_vertical.
- Step cost 1, Manhattan heuristic over all three axes (admissible and consistent).
- Frontier: heap keyed on (f, insertion counter), so equal-f ties pop FIFO.
- Nodes live in an arena; predecessors are integer indices (-1 marks the start).
- Failure (unreachable goal) returns an empty path, same as start == goal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from heapq import heappop, heappush
from itertools import count
from typing import Dict, List, Tuple

import numpy as np

from qina_env.sim.grid import GridCoordinate, check_coordinate, grid_size_of

logger = logging.getLogger(__name__)

PLANAR_MOVES: Tuple[GridCoordinate, ...] = ((1, 0, 0), (-1, 0, 0), (0, 0, 1), (0, 0, -1))
VERTICAL_MOVES: Tuple[GridCoordinate, ...] = ((0, 1, 0), (0, -1, 0))


@dataclass
class PathNode:
    coord: GridCoordinate
    g: int
    h: int
    parent: int = -1

    @property
    def f(self) -> int:
        return self.g + self.h


def manhattan(a: GridCoordinate, b: GridCoordinate) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) + abs(a[2] - b[2])


def _reconstruct(arena: List[PathNode], idx: int) -> List[GridCoordinate]:
    path: List[GridCoordinate] = []
    while arena[idx].parent != -1:
        path.append(arena[idx].coord)
        idx = arena[idx].parent
    path.reverse()
    return path


def find_path(
    grid: np.ndarray,
    start: Tuple[int, int, int],
    goal: Tuple[int, int, int],
    *,
    allow_vertical: bool = False,
    allow_occupied_goal: bool = False,
) -> List[GridCoordinate]:
    """Return waypoints from (exclusive) start to (inclusive) goal.

    Args:
        grid: cubic 3D bool array, True=occupied.
        start: start cell (x, y, z).
        goal: goal cell (x, y, z).
        allow_vertical: also expand +-y neighbours.
        allow_occupied_goal: treat the goal cell as free even when occupied.

    Returns:
        List of cells; empty when start == goal or the goal is unreachable.

    Raises:
        InvalidCoordinate: start or goal outside the grid.
    """
    n = grid_size_of(grid)
    start = check_coordinate(start, n)
    goal = check_coordinate(goal, n)
    if start == goal:
        return []

    moves = PLANAR_MOVES + VERTICAL_MOVES if allow_vertical else PLANAR_MOVES

    arena: List[PathNode] = [PathNode(start, 0, manhattan(start, goal))]
    index_of: Dict[GridCoordinate, int] = {start: 0}
    closed = set()
    tie = count()
    frontier: List[Tuple[int, int, int]] = [(arena[0].f, next(tie), 0)]
    expanded = 0

    while frontier:
        f, _, idx = heappop(frontier)
        node = arena[idx]
        # Stale entry left behind by a relaxation
        if node.coord in closed or f != node.f:
            continue
        if node.coord == goal:
            path = _reconstruct(arena, idx)
            logger.debug("A* %s -> %s: %d cells, %d expanded", start, goal, len(path), expanded)
            return path
        closed.add(node.coord)
        expanded += 1

        x, y, z = node.coord
        for dx, dy, dz in moves:
            nb = (x + dx, y + dy, z + dz)
            if not (0 <= nb[0] < n and 0 <= nb[1] < n and 0 <= nb[2] < n):
                continue
            if nb in closed:
                continue
            if grid[nb] and not (allow_occupied_goal and nb == goal):
                continue
            g = node.g + 1
            nb_idx = index_of.get(nb)
            if nb_idx is None:
                arena.append(PathNode(nb, g, manhattan(nb, goal), idx))
                nb_idx = len(arena) - 1
                index_of[nb] = nb_idx
            elif g < arena[nb_idx].g:
                arena[nb_idx].g = g
                arena[nb_idx].parent = idx
            else:
                continue
            heappush(frontier, (arena[nb_idx].f, next(tie), nb_idx))

    logger.debug("A* %s -> %s: unreachable after %d expansions", start, goal, expanded)
    return []
