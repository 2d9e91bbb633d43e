from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from ..core.agent import Agent
from . import events

if TYPE_CHECKING:
    from ..core.world import Arena

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CollisionOutcome:
    points: int = 0
    eaten_ids: List[int] = field(default_factory=list)
    checks: int = 0
    game_over: bool = False
    killer_id: Optional[int] = None


def _eat(world: Arena, eater: Agent, eaten: Agent, outcome: CollisionOutcome, award: bool) -> None:
    agent_config = world._config.agent
    points = eater.consume(eaten, agent_config.consume_volume_fraction, agent_config.points_per_radius)
    awarded = points if award else 0
    outcome.points += awarded
    outcome.eaten_ids.append(eaten.id)
    logger.debug("Agent %d ate agent %d (r=%.2f, +%d)", eater.id, eaten.id, eaten.radius, awarded)
    world._bus.publish(events.CONSUMED, eater_id=eater.id, eaten_id=eaten.id, points=awarded)


def resolve_collisions(world: Arena) -> CollisionOutcome:
    """Controlled agent against every enemy first, then enemy pairs.

    Enemies are scanned from the back of the insertion order. An enemy eaten
    during the pass is dropped from the working list immediately so it takes
    no part in later comparisons of the same tick.
    """
    outcome = CollisionOutcome()
    controlled = world.controlled_agent
    enemies = [agent for agent in world._agents if not agent.is_controlled]

    if controlled is not None:
        for i in range(len(enemies) - 1, -1, -1):
            enemy = enemies[i]
            outcome.checks += 1
            if not controlled.is_colliding_with(enemy):
                continue
            if controlled.can_consume(enemy):
                _eat(world, controlled, enemy, outcome, award=True)
                del enemies[i]
            elif enemy.can_consume(controlled):
                outcome.game_over = True
                outcome.killer_id = enemy.id
                return outcome

    i = len(enemies) - 1
    while i >= 0:
        enemy = enemies[i]
        j = i - 1
        while j >= 0:
            other = enemies[j]
            outcome.checks += 1
            if enemy.is_colliding_with(other):
                if enemy.can_consume(other):
                    _eat(world, enemy, other, outcome, award=False)
                    del enemies[j]
                    i -= 1
                elif other.can_consume(enemy):
                    _eat(world, other, enemy, outcome, award=False)
                    del enemies[i]
                    break
            j -= 1
        i -= 1
    return outcome
