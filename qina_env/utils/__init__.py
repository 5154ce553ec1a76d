"""Utility helpers shared across scripts and tooling."""

from .config import SimConfig, load_config_any, load_config_dict, load_sim_config
from .logging import setup_logging

__all__ = [
    "SimConfig",
    "load_config_any",
    "load_config_dict",
    "load_sim_config",
    "setup_logging",
]
