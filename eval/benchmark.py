"""Benchmark runner: Baseline vs QINA detection over seeded episodes.

Runs the headless simulation for N episodes and writes CSV with per-episode
metrics (cumulative miss rate, mean reported process time, planning outcome)
plus prints an aggregate summary. Optionally saves a per-episode miss-rate plot.
"""

from __future__ import annotations

import argparse
import csv
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
from tqdm import tqdm

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from qina_env.sim.driver import SimulationDriver
from qina_env.utils.config import SimConfig, load_sim_config

FIELDS = [
    "episode",
    "seed",
    "passes",
    "baseline_miss_rate",
    "qina_miss_rate",
    "baseline_time_ms",
    "qina_time_ms",
    "plans",
    "empty_plans",
    "waypoints_travelled",
]


def run_episode(cfg: SimConfig, seed: int, steps: int) -> Dict[str, Any]:
    driver = SimulationDriver(cfg, rng=np.random.default_rng(seed))
    dt = cfg.run.dt
    passes = 0
    plans = 0
    empty_plans = 0
    travelled = 0
    times: Dict[str, List[float]] = {"baseline": [], "qina": []}
    for _ in range(steps):
        before = len(driver.robot.pose().path)
        report = driver.tick(dt)
        after = len(driver.robot.pose().path)
        if after < before:
            travelled += before - after
        if report is None:
            continue
        passes += 1
        times["baseline"].append(report.baseline.process_time)
        times["qina"].append(report.qina.process_time)
        if report.planned_path is not None:
            plans += 1
            empty_plans += int(len(report.planned_path) == 0)
    return {
        "seed": seed,
        "passes": passes,
        "baseline_miss_rate": driver.detectors["baseline"].miss_rate,
        "qina_miss_rate": driver.detectors["qina"].miss_rate,
        "baseline_time_ms": float(np.mean(times["baseline"]) * 1e3) if times["baseline"] else float("nan"),
        "qina_time_ms": float(np.mean(times["qina"]) * 1e3) if times["qina"] else float("nan"),
        "plans": plans,
        "empty_plans": empty_plans,
        "waypoints_travelled": travelled,
    }


def save_plot(rows: List[Dict[str, Any]], path: str) -> None:
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    eps = [r["episode"] for r in rows]
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(eps, [r["baseline_miss_rate"] for r in rows], "o-", label="Baseline")
    ax.plot(eps, [r["qina_miss_rate"] for r in rows], "s-", label="QINA")
    ax.set_xlabel("episode")
    ax.set_ylabel("cumulative miss rate (%)")
    ax.set_title("Baseline vs QINA miss rate")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", default="configs/sim/default.yaml")
    parser.add_argument("--episodes", type=int, default=20)
    parser.add_argument("--steps", type=int, default=1800, help="Ticks per episode")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--csv", default="runs/benchmark.csv")
    parser.add_argument("--plot", default="", help="Optional PNG path for the miss-rate plot")
    args = parser.parse_args()

    cfg = load_sim_config(args.config if os.path.isfile(args.config) else None)

    rows = []
    rng = np.random.default_rng(args.seed)
    for ep in tqdm(range(args.episodes), desc="Episodes", unit="ep"):
        ep_seed = int(rng.integers(0, 1_000_000))
        row = run_episode(cfg, ep_seed, args.steps)
        row["episode"] = ep
        rows.append(row)

    base = np.mean([r["baseline_miss_rate"] for r in rows])
    qina = np.mean([r["qina_miss_rate"] for r in rows])
    t_base = np.nanmean([r["baseline_time_ms"] for r in rows])
    t_qina = np.nanmean([r["qina_time_ms"] for r in rows])
    print("Summary:")
    print(f"  Baseline miss rate: {base:.1f}%")
    print(f"  QINA miss rate: {qina:.1f}%")
    print(f"  Miss-rate gap: {base - qina:.1f} points")
    print(f"  Avg process time: baseline {t_base:.4f} ms, qina {t_qina:.4f} ms")
    if t_base > 0:
        print(f"  QINA faster by {(t_base - t_qina) / t_base * 100:.1f}%")

    os.makedirs(os.path.dirname(args.csv) or ".", exist_ok=True)
    with open(args.csv, "w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=FIELDS)
        w.writeheader()
        w.writerows(rows)

    if args.plot:
        save_plot(rows, args.plot)


if __name__ == "__main__":
    main()
