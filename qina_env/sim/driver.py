"""Simulation driver: warehouse, robot, planner and detectors on one logical clock.

Per tick (when running): warehouse perturbation on its own period, motion
update, then detection on the detection period. A detection pass evaluates
both models and, if the robot is idle, plans towards the active model's first
detection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from qina_env.detection.field import SensorFieldGenerator
from qina_env.detection.models import DetectionResult, Detector, make_detector
from qina_env.planning.astar import find_path
from qina_env.sim.dynamics import RobotPose, WaypointFollower
from qina_env.sim.grid import GridCoordinate, InvalidCoordinate, floor_cell
from qina_env.sim.warehouse import Warehouse
from qina_env.utils.config import SimConfig

logger = logging.getLogger(__name__)

MODEL_NAMES = ("baseline", "qina")


@dataclass
class SimulationContext:
    """Mutable run state threaded through every tick."""

    active_model: str = "qina"
    running: bool = True
    sim_time: float = 0.0
    last_detection_time: Optional[float] = None
    last_warehouse_update: float = 0.0
    ticks: int = 0
    last_results: Dict[str, DetectionResult] = field(default_factory=dict)


@dataclass
class StepReport:
    baseline: DetectionResult
    qina: DetectionResult
    active: str
    planned_path: Optional[List[GridCoordinate]] = None

    @property
    def active_result(self) -> DetectionResult:
        return self.qina if self.active == "qina" else self.baseline


def improvement(baseline: DetectionResult, qina: DetectionResult) -> Tuple[float, float]:
    """Return (percent faster, miss-rate points fewer) of QINA against Baseline."""
    if baseline.process_time > 0.0:
        time_pct = (baseline.process_time - qina.process_time) / baseline.process_time * 100.0
    else:
        time_pct = 0.0
    return time_pct, baseline.miss_rate - qina.miss_rate


class SimulationDriver:
    """Owns one robot, one warehouse and both detectors.

    Args:
        config: simulation parameters; defaults when None.
        rng: numpy Generator; child generators are spawned per component.
    """

    def __init__(self, config: Optional[SimConfig] = None, rng: Optional[np.random.Generator] = None) -> None:
        self.cfg = config or SimConfig()
        if rng is None:
            rng = np.random.default_rng(self.cfg.run.seed)
        wh_rng, field_rng, base_rng, qina_rng = rng.spawn(4)

        n = self.cfg.grid_size
        self.warehouse = Warehouse(
            grid_size=n,
            update_interval_s=self.cfg.warehouse.update_interval_s,
            rng=wh_rng,
            initial_boxes=self.cfg.warehouse.initial_boxes,
        )
        rc = self.cfg.robot
        self.robot = WaypointFollower(
            speed=rc.speed,
            rotation_speed=rc.rotation_speed,
            align_tolerance=rc.align_tolerance,
            initial_position=rc.initial_position,
            initial_heading=rc.initial_heading,
        )
        self.field_generator = SensorFieldGenerator(n, noise_level=self.cfg.detection.noise_level, rng=field_rng)
        self.detectors: Dict[str, Detector] = {
            "baseline": make_detector("baseline", rng=base_rng),
            "qina": make_detector("qina", rng=qina_rng),
        }
        self.ctx = SimulationContext(active_model=self.cfg.detection.active_model)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------
    def set_active_model(self, name: str) -> None:
        key = str(name).lower()
        if key not in MODEL_NAMES:
            raise ValueError(f"Unknown model '{name}'; expected one of {MODEL_NAMES}")
        self.ctx.active_model = key
        logger.info("Active model: %s", self.detectors[key].name)

    def toggle_model(self) -> str:
        self.set_active_model("baseline" if self.ctx.active_model == "qina" else "qina")
        return self.ctx.active_model

    def toggle_pause(self) -> bool:
        self.ctx.running = not self.ctx.running
        logger.info("Simulation %s", "running" if self.ctx.running else "paused")
        return self.ctx.running

    def reset(
        self,
        initial_position: Optional[Tuple[float, float, float]] = None,
        heading: Optional[float] = None,
    ) -> None:
        """Reset warehouse, robot and both detectors; the robot defaults to its configured pose."""
        self.warehouse.reset()
        self.robot.reset(initial_position, heading)
        for det in self.detectors.values():
            det.reset()
        self.ctx = SimulationContext(active_model=self.ctx.active_model, running=self.ctx.running)
        logger.info("Simulation reset")

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------
    def tick(self, dt: float) -> Optional[StepReport]:
        """Advance the simulation by dt seconds; returns a report on detection ticks."""
        ctx = self.ctx
        if not ctx.running or dt <= 0.0:
            return None
        ctx.sim_time += dt
        ctx.ticks += 1

        if ctx.sim_time - ctx.last_warehouse_update >= self.warehouse.update_interval_s:
            ctx.last_warehouse_update = ctx.sim_time
            self.warehouse.perturb()

        self.robot.tick(dt)

        due = ctx.last_detection_time is None or (
            ctx.sim_time - ctx.last_detection_time >= self.cfg.detection.period_s
        )
        if not due:
            return None
        ctx.last_detection_time = ctx.sim_time
        return self.process_detections()

    def process_detections(self) -> StepReport:
        entities = self.warehouse.snapshots()
        sensor_field = self.field_generator.generate(entities)
        results = {name: det.evaluate(sensor_field, entities) for name, det in self.detectors.items()}
        self.ctx.last_results = results
        report = StepReport(results["baseline"], results["qina"], self.ctx.active_model)

        active = report.active_result
        if active.detections and not self.robot.moving:
            report.planned_path = self._plan_to(floor_cell(active.detections[0].position))
        return report

    def _plan_to(self, goal: GridCoordinate) -> Optional[List[GridCoordinate]]:
        pc = self.cfg.planner
        try:
            path = find_path(
                self.warehouse.grid,
                self.robot.cell(),
                goal,
                allow_vertical=pc.allow_vertical,
                allow_occupied_goal=pc.allow_occupied_goal,
            )
        except InvalidCoordinate as exc:
            logger.warning("Skipping plan: %s", exc)
            return None
        if not path and self.robot.cell() != goal:
            logger.info("No path from %s to %s", self.robot.cell(), goal)
        self.robot.set_path(path)
        return path

    def pose(self) -> RobotPose:
        return self.robot.pose()
