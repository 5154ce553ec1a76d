"""Waypoint-following kinematics for the warehouse robot.

Pure Python, self-contained rotate-then-translate controller.
Implements bounded turn rate, bounded linear speed, and angle normalization.
Motion is planar in (x, z); y is carried along unchanged.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from math import atan2, floor, hypot, pi
from typing import Callable, Deque, Iterable, Optional, Tuple

from .grid import GridCoordinate

logger = logging.getLogger(__name__)

Position = Tuple[float, float, float]


def wrap_to_pi(theta: float) -> float:
    """Normalize angle to (-pi, pi]."""
    wrapped = (theta + pi) % (2.0 * pi) - pi
    if wrapped <= -pi:
        wrapped += 2.0 * pi
    return wrapped


@dataclass
class RobotPose:
    """Robot state for the waypoint follower.

    - position: (x, y, z) in grid units
    - heading: facing angle in the x-z plane (radians)
    - target_heading: heading towards the current waypoint (radians)
    - path: remaining waypoints, front is the next one
    - moving: True while the path is non-empty
    """

    position: Position
    heading: float = 0.0
    target_heading: float = 0.0
    path: Deque[GridCoordinate] = field(default_factory=deque)
    moving: bool = False

    def copy(self) -> "RobotPose":
        return replace(self, path=deque(self.path))


class WaypointFollower:
    """Rotate-then-translate controller over grid waypoints.

    Interface:
    - set_path(path)
    - tick(dt)
    - pose() -> RobotPose
    - reset(position?, heading?)
    """

    def __init__(
        self,
        speed: float = 1.0,
        rotation_speed: float = 5.0,
        align_tolerance: float = 0.1,
        initial_position: Position = (1.0, 0.0, 1.0),
        initial_heading: float = 0.0,
        on_path_changed: Optional[Callable[[list], None]] = None,
    ) -> None:
        assert speed > 0.0, "speed must be > 0"
        assert rotation_speed > 0.0, "rotation_speed must be > 0"
        assert align_tolerance > 0.0, "align_tolerance must be > 0"
        self.speed = float(speed)
        self.rotation_speed = float(rotation_speed)
        self.align_tolerance = float(align_tolerance)
        self.initial_position = tuple(float(c) for c in initial_position)
        self.initial_heading = float(initial_heading)
        self.on_path_changed = on_path_changed
        self._pose = RobotPose(self.initial_position, self.initial_heading, self.initial_heading)

    @property
    def moving(self) -> bool:
        return self._pose.moving

    def pose(self) -> RobotPose:
        return self._pose.copy()

    def cell(self) -> GridCoordinate:
        x, y, z = self._pose.position
        return int(floor(x)), int(floor(y)), int(floor(z))

    def set_path(self, path: Iterable[GridCoordinate]) -> None:
        self._pose.path = deque(tuple(int(c) for c in p) for p in path)
        self._pose.moving = len(self._pose.path) > 0
        self._notify()

    def reset(self, position: Optional[Position] = None, heading: Optional[float] = None) -> RobotPose:
        pos = self.initial_position if position is None else tuple(float(c) for c in position)
        th = self.initial_heading if heading is None else float(heading)
        self._pose = RobotPose(pos, th, th)
        self._notify()
        return self.pose()

    def tick(self, dt: float) -> RobotPose:
        """Advance heading and position by one step of duration dt."""
        s = self._pose
        if not s.moving or not s.path or dt <= 0.0:
            return self.pose()

        nx, ny, nz = s.path[0]
        x, y, z = s.position
        dx = nx - x
        dz = nz - z
        dist = hypot(dx, dz)

        if dist == 0.0:
            # Already on the waypoint; no heading to steer toward
            self._arrive(s, nx, ny, nz)
            return self.pose()

        s.target_heading = atan2(dz, dx)
        err = wrap_to_pi(s.target_heading - s.heading)
        rot_step = self.rotation_speed * dt
        if abs(err) > rot_step:
            s.heading = wrap_to_pi(s.heading + (rot_step if err > 0 else -rot_step))
        else:
            s.heading = s.target_heading

        # Translate only once aligned (measured before this tick's rotation)
        if abs(err) < self.align_tolerance:
            step = self.speed * dt
            if dist <= step:
                self._arrive(s, nx, ny, nz)
            else:
                ratio = step / dist
                s.position = (x + dx * ratio, y, z + dz * ratio)
        return self.pose()

    def _arrive(self, s: RobotPose, nx: int, ny: int, nz: int) -> None:
        s.position = (float(nx), float(ny), float(nz))
        s.path.popleft()
        if not s.path:
            s.moving = False
            logger.debug("Path complete at %s", s.position)
            self._notify()

    def _notify(self) -> None:
        if self.on_path_changed is not None:
            self.on_path_changed(list(self._pose.path))
