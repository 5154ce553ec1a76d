from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path

import numpy as np

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from qina_env.sim.driver import SimulationDriver, StepReport, improvement
from qina_env.utils.config import load_sim_config
from qina_env.utils.logging import setup_logging

logger = logging.getLogger("run_demo")


def format_hud(driver: SimulationDriver) -> dict:
    ctx = driver.ctx
    hud = {
        "active": driver.detectors[ctx.active_model].name + ("" if ctx.running else " (paused)"),
        "t": f"{ctx.sim_time:.1f} s",
    }
    res = ctx.last_results
    if "baseline" in res and "qina" in res:
        b, q = res["baseline"], res["qina"]
        hud["baseline"] = f"{b.process_time * 1e3:.3f} ms, miss {b.miss_rate:.1f}%"
        hud["qina"] = f"{q.process_time * 1e3:.3f} ms, miss {q.miss_rate:.1f}%"
        t_pct, miss_delta = improvement(b, q)
        hud["improvement"] = f"{t_pct:.1f}% faster, {miss_delta:.1f}% fewer misses"
    return hud


def log_report(report: StepReport) -> None:
    active = report.active_result
    logger.info(
        "Detection pass: baseline miss %.1f%%, qina miss %.1f%%, active %s detected %d",
        report.baseline.miss_rate,
        report.qina.miss_rate,
        report.active,
        len(active.detections),
    )
    if report.planned_path is not None:
        logger.info("Planned %d waypoints", len(report.planned_path))


def run_headless(driver: SimulationDriver, steps: int, dt: float) -> None:
    for _ in range(steps):
        report = driver.tick(dt)
        if report is not None:
            log_report(report)
    pose = driver.pose()
    print("Summary:")
    print(f"  Simulated time: {driver.ctx.sim_time:.2f} s")
    print(f"  Robot position: ({pose.position[0]:.2f}, {pose.position[1]:.2f}, {pose.position[2]:.2f})")
    for det in driver.detectors.values():
        print(f"  {det.name} miss rate: {det.miss_rate:.1f}% over {det.stats.total_evaluated} boxes")


def run_interactive(driver: SimulationDriver, dt: float) -> None:
    import pygame

    from visualization.pygame_renderer import Renderer, VizConfig

    rend = Renderer(driver.cfg.grid_size, viz_cfg=VizConfig(fps=int(round(1.0 / dt))), display=True)
    last = time.perf_counter()
    try:
        while True:
            keep, keys = rend.poll_keys()
            if not keep:
                break
            for key in keys:
                if key == pygame.K_SPACE:
                    driver.toggle_model()
                elif key == pygame.K_r:
                    driver.reset()
                elif key == pygame.K_p:
                    driver.toggle_pause()
                elif key in (pygame.K_q, pygame.K_ESCAPE):
                    return
            now = time.perf_counter()
            report = driver.tick(now - last)
            last = now
            if report is not None:
                log_report(report)
            active = driver.detectors[driver.ctx.active_model]
            pose = driver.pose()
            rend.render_frame(
                grid=driver.warehouse.grid,
                entities=driver.warehouse.snapshots(),
                position=pose.position,
                heading=pose.heading,
                path=list(pose.path),
                highlighted_ids=[d.entity_id for d in active.detections],
                hud=format_hud(driver),
            )
    finally:
        rend.close()


def main():
    parser = argparse.ArgumentParser(description="Baseline vs QINA warehouse navigation demo")
    parser.add_argument("--config", type=str, default="configs/sim/default.yaml", help="Path to YAML config")
    parser.add_argument("--headless", action="store_true", help="Run without a window")
    parser.add_argument("--steps", type=int, default=600, help="Ticks to simulate in headless mode")
    parser.add_argument("--seed", type=int, default=None, help="Override run.seed")
    parser.add_argument("--log-level", type=str, default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)
    cfg = load_sim_config(args.config if os.path.isfile(args.config) else None)
    seed = args.seed if args.seed is not None else cfg.run.seed
    driver = SimulationDriver(cfg, rng=np.random.default_rng(seed))

    if args.headless:
        run_headless(driver, args.steps, cfg.run.dt)
    else:
        run_interactive(driver, cfg.run.dt)


if __name__ == "__main__":
    main()
