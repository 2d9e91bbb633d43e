from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

from pygame.math import Vector3

from ..core.agent import Agent, AgentState
from ..utils.math3d import _direction

if TYPE_CHECKING:
    from ...config import SteeringConfig
    from ...rng import DeterministicRng


@dataclass(slots=True)
class SteeringDecision:
    force: Vector3 = field(default_factory=Vector3)
    state: AgentState = AgentState.IDLE
    target_id: Optional[int] = None


def find_nearest_threat(agent: Agent, agents: Iterable[Agent], threat_range: float) -> Optional[Agent]:
    nearest = None
    nearest_distance = math.inf
    for other in agents:
        if other is agent or not other.can_consume(agent):
            continue
        distance = agent.distance_to(other)
        if distance < nearest_distance and distance < threat_range:
            nearest_distance = distance
            nearest = other
    return nearest


def find_nearest_target(agent: Agent, agents: Iterable[Agent], target_range: float) -> Optional[Agent]:
    nearest = None
    nearest_distance = math.inf
    for other in agents:
        if other is agent or not agent.can_consume(other):
            continue
        distance = agent.distance_to(other)
        if distance < nearest_distance and distance < target_range:
            nearest_distance = distance
            nearest = other
    return nearest


def find_ideal_target(
    agent: Agent,
    agents: Iterable[Agent],
    ideal_target_range: float,
    radius_epsilon: float = 0.1,
) -> Optional[Agent]:
    """Largest eatable agent within range.

    Every candidate within ``radius_epsilon`` of the largest eatable radius counts
    as a tie, and the closest of those wins, whatever the order of ``agents``.
    """
    candidates = []
    for other in agents:
        if other is agent or not agent.can_consume(other):
            continue
        distance = agent.distance_to(other)
        if distance <= ideal_target_range:
            candidates.append((other, distance))
    if not candidates:
        return None
    largest = max(other.radius for other, _ in candidates)
    ideal = None
    ideal_distance = math.inf
    for other, distance in candidates:
        if largest - other.radius < radius_epsilon and distance < ideal_distance:
            ideal = other
            ideal_distance = distance
    return ideal


def danger_level(agent: Agent, agents: Iterable[Agent], threat_range: float) -> float:
    level = 0.0
    threats = 0
    for other in agents:
        if other is agent or not other.can_consume(agent):
            continue
        distance = agent.distance_to(other)
        if distance < threat_range:
            proximity = 1.0 - distance / threat_range
            level += proximity * (other.radius / agent.radius)
            threats += 1
    return min(level / max(threats, 1), 1.0)


def avoid_force(agent: Agent, threat: Agent, strength: float) -> Vector3:
    return _direction(threat.position, agent.position) * strength


def seek_force(agent: Agent, target: Agent, strength: float) -> Vector3:
    return _direction(agent.position, target.position) * strength


def wander_force(rng: DeterministicRng, strength: float) -> Vector3:
    return Vector3(
        (rng.next_float() - 0.5) * strength,
        0.0,
        (rng.next_float() - 0.5) * strength,
    )


def decide(
    agent: Agent,
    agents: Iterable[Agent],
    config: SteeringConfig,
    rng: DeterministicRng,
) -> SteeringDecision:
    """Flee beats hunt beats wander; an idle tick applies no force."""
    if agent.is_controlled:
        return SteeringDecision(state=AgentState.CONTROLLED)
    candidates = agents if isinstance(agents, (list, tuple)) else list(agents)
    threat = find_nearest_threat(agent, candidates, config.threat_range)
    if threat is not None:
        return SteeringDecision(
            force=avoid_force(agent, threat, config.avoid_force),
            state=AgentState.FLEE,
            target_id=threat.id,
        )
    target = find_ideal_target(agent, candidates, config.ideal_target_range, config.radius_epsilon)
    if target is not None:
        return SteeringDecision(
            force=seek_force(agent, target, config.seek_force),
            state=AgentState.SEEK,
            target_id=target.id,
        )
    if rng.next_float() < config.wander_chance:
        return SteeringDecision(force=wander_force(rng, config.random_force), state=AgentState.WANDER)
    return SteeringDecision()
