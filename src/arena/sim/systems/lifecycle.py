from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Optional

from pygame.math import Vector3

from ...config import SpawnConfig
from ..core.agent import Agent, AgentState
from ..utils.math3d import _clamp_value
from . import events

if TYPE_CHECKING:
    from ...rng import DeterministicRng
    from ..core.world import Arena

logger = logging.getLogger(__name__)

_DEFAULT_SPAWN = SpawnConfig()


def calculate_spawn_cooldown(score: int, config: SpawnConfig | None = None) -> float:
    """Seconds between spawns; shrinks as the score grows, floored at the minimum."""
    config = _DEFAULT_SPAWN if config is None else config
    steps = math.floor(max(0, score) / max(1, config.cooldown_score_step))
    cooldown = config.base_cooldown_seconds - steps * config.cooldown_step_seconds
    return max(config.min_cooldown_seconds, cooldown)


def calculate_max_enemies(score: int, config: SpawnConfig | None = None) -> int:
    config = _DEFAULT_SPAWN if config is None else config
    increment = math.floor(max(0, score) / max(1, config.max_enemies_score_step))
    return max(0, min(config.base_max_enemies + increment, config.max_enemies_cap))


def _push_out(center: float, offset: float, exclusion: float, half_width: float | None) -> float:
    pushed = offset - exclusion if offset < 0 else offset + exclusion
    value = center + pushed
    # past the wall the clamp would pull the point back into the box; use the other side
    if half_width is not None and abs(value) > half_width:
        value = center - pushed
    return value


def random_spawn_position(
    rng: DeterministicRng,
    extent: float,
    exclusion: float,
    avoid: Optional[Vector3] = None,
    half_width: float | None = None,
) -> Vector3:
    """Uniform point in the square, pushed out of the box around ``avoid``."""
    x = (rng.next_float() - 0.5) * extent * 2.0
    z = (rng.next_float() - 0.5) * extent * 2.0
    if avoid is not None:
        dx = x - avoid.x
        dz = z - avoid.z
        if abs(dx) < exclusion and abs(dz) < exclusion:
            x = _push_out(avoid.x, dx, exclusion, half_width)
            z = _push_out(avoid.z, dz, exclusion, half_width)
    if half_width is not None:
        x = _clamp_value(x, -half_width, half_width)
        z = _clamp_value(z, -half_width, half_width)
    return Vector3(x, 0.0, z)


def create_enemy(world: Arena, radius_range: tuple[float, float], extent: float, exclusion: float) -> Agent:
    controlled = world.controlled_agent
    position = random_spawn_position(
        world._rng,
        extent,
        exclusion,
        avoid=controlled.position if controlled is not None else None,
        half_width=world._config.half_width,
    )
    radius = world._rng.next_range(radius_range[0], radius_range[1])
    agent = Agent(
        id=world._allocate_id(),
        name=world._rng.next_name(),
        position=position,
        radius=radius,
        color=world._rng.next_color(),
        state=AgentState.IDLE,
    )
    world._add_agent(agent)
    logger.debug("Spawned agent %d (%s) r=%.2f at (%.1f, %.1f)", agent.id, agent.name, radius, position.x, position.z)
    world._bus.publish(events.AGENT_SPAWNED, agent_id=agent.id)
    return agent


def spawn_enemy(world: Arena) -> Agent:
    spawn = world._config.spawn
    return create_enemy(world, spawn.radius_range, spawn.spawn_extent, spawn.spawn_exclusion)


def create_controlled(world: Arena) -> Agent:
    agent = Agent(
        id=world._allocate_id(),
        name="Player",
        position=Vector3(0.0, 0.0, 0.0),
        radius=world._config.agent.controlled_radius,
        is_controlled=True,
        color=0x00FF00,
        state=AgentState.CONTROLLED,
    )
    world._add_agent(agent)
    return agent


def seed_population(world: Arena) -> None:
    """Controlled agent at the origin, a few larger rivals, then regular spawns."""
    spawn = world._config.spawn
    create_controlled(world)
    for _ in range(spawn.initial_large_count):
        create_enemy(world, spawn.initial_large_radius, spawn.initial_large_extent, spawn.initial_large_exclusion)
    for _ in range(spawn.initial_small_count):
        spawn_enemy(world)


def apply_spawn_control(world: Arena, sim_time: float) -> int:
    spawn = world._config.spawn
    cooldown = calculate_spawn_cooldown(world.score, spawn)
    cap = calculate_max_enemies(world.score, spawn)
    if sim_time - world._last_spawn_time > cooldown and world.enemy_count < cap:
        spawn_enemy(world)
        world._last_spawn_time = sim_time
        return 1
    return 0
