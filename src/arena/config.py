from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

import yaml


@dataclass
class AgentConfig:
    controlled_radius: float = 15.0
    controlled_max_speed: float = 30.0
    ai_max_speed: float = 20.0
    controlled_damping: float = 0.97
    ai_damping: float = 0.95
    gravity: float = 300.0
    jump_velocity: float = 150.0
    bounce_factor: float = -0.8
    # eaten agents contribute half their volume
    consume_volume_fraction: float = 0.5
    points_per_radius: float = 10.0
    control_force: float = 2.0


@dataclass
class SteeringConfig:
    seek_force: float = 2.2
    avoid_force: float = 2.0
    random_force: float = 1.0
    wander_chance: float = 0.2
    threat_range: float = 60.0
    target_range: float = 80.0
    ideal_target_range: float = 100.0
    radius_epsilon: float = 0.1


def _default_catalog() -> Dict[str, float]:
    return {
        "speed": 1.0,
        "size": 1.0,
        "pacman": 1.0,
        "saturn": 1.0,
        "earth": 1.0,
        "try_again": 1.0,
    }


@dataclass
class PowerUpConfig:
    duration_seconds: float = 30.0
    speed_multiplier: float = 2.0
    size_multiplier: float = 1.2
    growth_rate: float = 0.1
    size_tolerance: float = 0.01
    boosted_ratio_threshold: float = 1.1
    spin_cooldown_seconds: float = 10.0
    try_again_cooldown_seconds: float = 2.0
    catalog_weights: Dict[str, float] = field(default_factory=_default_catalog)


@dataclass
class SpawnConfig:
    initial_large_count: int = 2
    initial_large_radius: tuple[float, float] = (16.0, 25.0)
    initial_large_extent: float = 150.0
    initial_large_exclusion: float = 30.0
    initial_small_count: int = 15
    radius_range: tuple[float, float] = (1.0, 8.0)
    spawn_extent: float = 200.0
    spawn_exclusion: float = 20.0
    base_cooldown_seconds: float = 2.0
    min_cooldown_seconds: float = 0.5
    cooldown_step_seconds: float = 0.1
    cooldown_score_step: int = 100
    base_max_enemies: int = 50
    max_enemies_cap: int = 100
    max_enemies_score_step: int = 200


@dataclass
class ArenaConfig:
    time_step: float = 1.0 / 60.0
    half_width: float = 250.0
    sun_radius_threshold: float = 25.0
    leaderboard_size: int = 10
    seed: int = 42
    config_version: str = "v1"
    agent: AgentConfig = field(default_factory=AgentConfig)
    steering: SteeringConfig = field(default_factory=SteeringConfig)
    powerups: PowerUpConfig = field(default_factory=PowerUpConfig)
    spawn: SpawnConfig = field(default_factory=SpawnConfig)

    @staticmethod
    def from_yaml(path: Path) -> "ArenaConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    arena: ArenaConfig = field(default_factory=ArenaConfig)
    broadcast_interval: int = 2


def load_config(raw: dict) -> ArenaConfig:
    default_spawn = SpawnConfig()

    def _pair(value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        return default

    agent = AgentConfig(**raw.get("agent", {}))
    steering = SteeringConfig(**raw.get("steering", {}))

    powerups_raw = dict(raw.get("powerups", {}))
    weights = _default_catalog()
    weights.update({str(k): float(v) for k, v in (powerups_raw.pop("catalog_weights", None) or {}).items()})
    powerups = PowerUpConfig(catalog_weights=weights, **powerups_raw)

    spawn_raw = raw.get("spawn", {})
    spawn_values = {
        k: v for k, v in spawn_raw.items() if k not in {"initial_large_radius", "radius_range"}
    }
    spawn = SpawnConfig(
        initial_large_radius=_pair(spawn_raw.get("initial_large_radius"), default_spawn.initial_large_radius),
        radius_range=_pair(spawn_raw.get("radius_range"), default_spawn.radius_range),
        **spawn_values,
    )
    arena_values = {k: v for k, v in raw.items() if k not in {"agent", "steering", "powerups", "spawn"}}
    return ArenaConfig(agent=agent, steering=steering, powerups=powerups, spawn=spawn, **arena_values)
