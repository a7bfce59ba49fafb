"""Run a seeded multi-step traffic scenario and report resolution metrics.

Every step each agent requests a greedy move toward its goal, the traffic
manager resolves the conflicts, and the grid world applies the issued moves.
The per-step metrics are written to JSON; with ``--figure`` the script also
plots intent satisfaction and the final occupancy heatmap.

Usage:
    python scripts/run_traffic_simulation.py --preset dense --json results/traffic/dense.json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, replace
from pathlib import Path
from typing import List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
for candidate in (SRC_ROOT, PROJECT_ROOT):
    candidate_str = str(candidate)
    if candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

from config.defaults import SCENARIO_PRESETS
from simulation.scenario import StepMetrics, generate_scenario, run_scenario


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--preset",
        choices=sorted(SCENARIO_PRESETS),
        default="medium",
        help="Scenario preset from config.defaults.SCENARIO_PRESETS.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Override the preset seed.")
    parser.add_argument("--steps", type=int, default=None, help="Override the preset step count.")
    parser.add_argument("--agents", type=int, default=None, help="Override the preset agent count.")
    parser.add_argument(
        "--working-radius",
        type=int,
        default=None,
        help="Keep agents near their goal instead of assigning new goals.",
    )
    parser.add_argument(
        "--json",
        type=Path,
        default=Path("results/traffic/metrics.json"),
        help="Path to the JSON file where per-step metrics will be stored.",
    )
    parser.add_argument(
        "--figure",
        type=Path,
        default=None,
        help="Optional PNG path for the satisfaction / occupancy figure.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging.")
    return parser.parse_args()


def summarise(metrics: List[StepMetrics]) -> dict:
    requested = sum(m.intents_requested for m in metrics)
    satisfied = sum(m.intents_satisfied for m in metrics)
    return {
        "steps": len(metrics),
        "intents_requested": requested,
        "intents_satisfied": satisfied,
        "satisfaction_ratio": satisfied / requested if requested else 1.0,
        "moves": sum(m.moves for m in metrics),
        "deepest_chain": max((m.deepest_chain for m in metrics), default=0),
        "collisions": sum(m.collisions for m in metrics),
    }


def plot_metrics(metrics: List[StepMetrics], occupancy, output_path: Path) -> None:
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    steps = [m.step for m in metrics]
    ratios = [
        m.intents_satisfied / m.intents_requested if m.intents_requested else 1.0
        for m in metrics
    ]

    fig, axes = plt.subplots(1, 2, figsize=(12, 5))
    axes[0].plot(steps, ratios, marker="o", markersize=3)
    axes[0].set_ylim(0.0, 1.05)
    axes[0].set_xlabel("Step")
    axes[0].set_ylabel("Intents satisfied / requested")
    axes[0].set_title("Intent satisfaction")

    image = axes[1].imshow(occupancy, cmap="viridis", origin="upper")
    axes[1].set_title("Final occupancy")
    fig.colorbar(image, ax=axes[1])

    plt.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = SCENARIO_PRESETS[args.preset]
    overrides = {}
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.steps is not None:
        overrides["steps"] = args.steps
    if args.agents is not None:
        overrides["num_agents"] = args.agents
    if overrides:
        config = replace(config, **overrides)

    scenario = generate_scenario(config)
    metrics = run_scenario(scenario, working_radius=args.working_radius)
    summary = summarise(metrics)

    print(f"Preset {args.preset!r} (seed={config.seed}, agents={config.num_agents})")
    for key, value in summary.items():
        print(f"  {key}: {value}")

    args.json.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "preset": args.preset,
        "config": asdict(config),
        "summary": summary,
        "steps": [asdict(m) for m in metrics],
    }
    args.json.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Metrics written to {args.json}")

    if args.figure is not None:
        plot_metrics(metrics, scenario.world.occupancy(), args.figure)
        print(f"Figure written to {args.figure}")


if __name__ == "__main__":
    main()
