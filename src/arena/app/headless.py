from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from pygame.math import Vector3

from ..clock import ManualTimeSource, PausableClock
from ..config import ArenaConfig
from ..sim.core.world import Arena
from ..sim.systems import steering
from ..sim.utils.math3d import _direction

logger = logging.getLogger(__name__)

_HEADER = [
    "tick",
    "status",
    "population",
    "enemies",
    "consumed",
    "spawned",
    "score",
    "controlled_radius",
    "largest_radius",
    "avg_radius",
    "collision_checks",
    "tick_ms",
]


def _format_row(metrics: object, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.status,
        metrics.population,
        metrics.enemies,
        metrics.consumed,
        metrics.spawned,
        metrics.score,
        f"{metrics.controlled_radius:.4f}",
        f"{metrics.largest_radius:.4f}",
        f"{metrics.average_radius:.4f}",
        metrics.collision_checks,
        f"{tick_ms:.3f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def autopilot_force(arena: Arena) -> Vector3:
    """Flee the nearest threat, otherwise chase the nearest meal, otherwise coast."""
    controlled = arena.controlled_agent
    if controlled is None:
        return Vector3()
    config = arena.config
    strength = config.agent.control_force
    threat = steering.find_nearest_threat(controlled, arena.agents, config.steering.threat_range)
    if threat is not None:
        return _direction(threat.position, controlled.position) * strength
    target = steering.find_nearest_target(controlled, arena.agents, config.steering.target_range)
    if target is not None:
        return _direction(controlled.position, target.position) * strength
    return Vector3()


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    autopilot: bool = True,
    auto_restart: bool = True,
    spin: bool = False,
    summary_path: Optional[Path] = None,
    config_path: Optional[Path] = None,
) -> dict:
    config = ArenaConfig.from_yaml(config_path) if config_path else ArenaConfig()
    if seed is not None:
        config.seed = seed
    # power-up timers follow simulation time so runs do not depend on host speed
    time_source = ManualTimeSource()
    arena = Arena(config, clock=PausableClock(time_source))

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    final_scores: list[float] = []
    population_series: list[float] = []
    tick_ms_series: list[float] = []
    consumed_total = 0
    spawned_total = 0
    peak_score = 0

    try:
        for tick in range(steps):
            if autopilot:
                arena.apply_control_force(autopilot_force(arena))
            if spin:
                arena.grant_random_power_up()
            metrics = arena.step(tick)
            time_source.advance(config.time_step)

            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            consumed_total += metrics.consumed
            spawned_total += metrics.spawned
            peak_score = max(peak_score, metrics.score)
            population_series.append(float(metrics.population))
            tick_ms_series.append(tick_ms)
            if writer:
                writer.writerow(_format_row(metrics, tick_ms))
            if arena.is_game_over:
                final_scores.append(float(arena.score))
                if not auto_restart:
                    break
                arena.restart()
    finally:
        if csv_file:
            csv_file.close()

    summary = {
        "steps": steps,
        "seed": config.seed,
        "deterministic_log": deterministic_log,
        "games_finished": len(final_scores),
        "final_scores": final_scores,
        "current_score": arena.score,
        "peak_score": peak_score,
        "consumed": consumed_total,
        "spawned": spawned_total,
        "status": arena.status.value,
        "population": _summary_stats(population_series),
        "tick_ms": _summary_stats(tick_ms_series),
    }
    logger.info(
        "Headless run finished: %d ticks, %d games over, peak score %d",
        len(population_series),
        len(final_scores),
        peak_score,
    )
    if summary_path:
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return summary


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless arena simulation")
    parser.add_argument("--steps", type=int, default=3600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file overriding arena settings")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-tick metrics")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for run summary stats.")
    parser.add_argument("--no-autopilot", action="store_true", help="Leave the controlled agent without input.")
    parser.add_argument("--no-restart", action="store_true", help="Stop at the first game over.")
    parser.add_argument("--spin", action="store_true", help="Spin for a power-up whenever the spinner is ready.")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        autopilot=not args.no_autopilot,
        auto_restart=not args.no_restart,
        spin=args.spin,
        summary_path=args.summary,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
