"""Config loading helpers built around OmegaConf, plus typed simulation config."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from omegaconf import OmegaConf


def load_config_any(path: str) -> Any:
    """Load a YAML/OMEGACONF file and return the resolved Python object."""
    return OmegaConf.to_container(OmegaConf.load(path), resolve=True)


def load_config_dict(path: str) -> Dict[str, Any]:
    """Load a config file and guarantee a `dict` result."""
    cfg = load_config_any(path)
    if not isinstance(cfg, dict):
        raise TypeError(f"Expected mapping at {path}, got {type(cfg)}")
    return cfg


@dataclass
class RobotConfig:
    speed: float = 1.0
    rotation_speed: float = 5.0
    align_tolerance: float = 0.1
    initial_position: Tuple[float, float, float] = (1.0, 0.0, 1.0)
    initial_heading: float = 0.0

    def __post_init__(self) -> None:
        self.initial_position = tuple(float(c) for c in self.initial_position)
        assert len(self.initial_position) == 3, "initial_position must have 3 components"
        assert self.speed > 0.0, "speed must be > 0"
        assert self.rotation_speed > 0.0, "rotation_speed must be > 0"
        assert self.align_tolerance > 0.0, "align_tolerance must be > 0"


@dataclass
class WarehouseConfig:
    update_interval_s: float = 3.0
    initial_boxes: Optional[List[List[float]]] = None

    def __post_init__(self) -> None:
        assert self.update_interval_s > 0.0, "update_interval_s must be > 0"


@dataclass
class DetectionConfig:
    period_s: float = 2.0
    noise_level: float = 0.1
    active_model: str = "qina"

    def __post_init__(self) -> None:
        self.active_model = str(self.active_model).lower()
        assert self.period_s > 0.0, "period_s must be > 0"
        assert self.noise_level >= 0.0, "noise_level must be >= 0"
        assert self.active_model in ("baseline", "qina"), "active_model must be 'baseline' or 'qina'"


@dataclass
class PlannerConfig:
    allow_vertical: bool = False
    allow_occupied_goal: bool = False


@dataclass
class RunConfig:
    dt: float = 1.0 / 60.0
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        assert self.dt > 0.0, "dt must be > 0"


@dataclass
class SimConfig:
    grid_size: int = 10
    robot: RobotConfig = field(default_factory=RobotConfig)
    warehouse: WarehouseConfig = field(default_factory=WarehouseConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)
    run: RunConfig = field(default_factory=RunConfig)

    def __post_init__(self) -> None:
        assert self.grid_size > 0, "grid_size must be > 0"

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any] | None) -> "SimConfig":
        d = cfg or {}
        return cls(
            grid_size=int(d.get("grid", {}).get("size", 10)),
            robot=RobotConfig(**d.get("robot", {})),
            warehouse=WarehouseConfig(**d.get("warehouse", {})),
            detection=DetectionConfig(**d.get("detection", {})),
            planner=PlannerConfig(**d.get("planner", {})),
            run=RunConfig(**d.get("run", {})),
        )


def load_sim_config(path: Optional[str] = None) -> SimConfig:
    """Load a SimConfig from YAML; defaults when no path is given."""
    if path is None:
        return SimConfig()
    return SimConfig.from_dict(load_config_dict(path))
