from __future__ import annotations

from typing import Sequence

from ..core.agent import Agent
from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    status: str,
    agents: Sequence[Agent],
    consumed: int,
    spawned: int,
    score: int,
    collision_checks: int,
    duration_ms: float,
) -> TickMetrics:
    population = len(agents)
    controlled_radius = 0.0
    largest_radius = 0.0
    radius_sum = 0.0
    enemies = 0
    for agent in agents:
        radius_sum += agent.radius
        if agent.radius > largest_radius:
            largest_radius = agent.radius
        if agent.is_controlled:
            controlled_radius = agent.radius
        else:
            enemies += 1
    return TickMetrics(
        tick=tick,
        status=status,
        population=population,
        enemies=enemies,
        consumed=consumed,
        spawned=spawned,
        score=score,
        controlled_radius=controlled_radius,
        largest_radius=largest_radius,
        average_radius=radius_sum / population if population else 0.0,
        collision_checks=collision_checks,
        tick_duration_ms=duration_ms,
    )
