from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    status: str
    population: int
    enemies: int
    consumed: int
    spawned: int
    score: int
    controlled_radius: float
    largest_radius: float
    average_radius: float
    collision_checks: int
    tick_duration_ms: float = 0.0
