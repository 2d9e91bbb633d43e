from __future__ import annotations

import logging
from enum import Enum
from time import perf_counter
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pygame.math import Vector3

from ...clock import PausableClock
from ...config import ArenaConfig
from ...rng import DeterministicRng
from ..systems import events, lifecycle, metrics as metrics_system, steering
from ..systems.collisions import resolve_collisions
from ..systems.events import EventBus
from ..systems.powerups import CatalogEntry, PowerUpEffect, PowerUpKind, PowerUpSystem
from ..types.metrics import TickMetrics
from ..types.snapshot import ActivePowerUp, LeaderboardEntry, Snapshot, SnapshotMetadata
from ..utils.math3d import ZERO, _heading_from_velocity
from .agent import Agent, body_class

logger = logging.getLogger(__name__)


class ArenaStatus(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    GAME_OVER = "game_over"


class Arena:
    def __init__(
        self,
        config: ArenaConfig,
        clock: PausableClock | None = None,
        bus: EventBus | None = None,
    ):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._clock = clock if clock is not None else PausableClock()
        self._bus = bus if bus is not None else EventBus()
        self._powerups = PowerUpSystem(config.powerups, self._clock, self._bus)
        self._agents: List[Agent] = []
        self._id_to_index: Dict[int, int] = {}
        self._controlled_id: Optional[int] = None
        self._next_id = 0
        self._score = 0
        self._status = ArenaStatus.RUNNING
        self._sim_time = 0.0
        self._last_spawn_time = 0.0
        self._spin_cooldown = 0.0
        self._pending_force = Vector3()
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()

    @property
    def config(self) -> ArenaConfig:
        return self._config

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def events(self) -> EventBus:
        return self._bus

    @property
    def powerups(self) -> PowerUpSystem:
        return self._powerups

    @property
    def clock(self) -> PausableClock:
        return self._clock

    @property
    def score(self) -> int:
        return self._score

    @property
    def status(self) -> ArenaStatus:
        return self._status

    @property
    def is_game_over(self) -> bool:
        return self._status == ArenaStatus.GAME_OVER

    @property
    def sim_time(self) -> float:
        return self._sim_time

    @property
    def spin_cooldown(self) -> float:
        return self._spin_cooldown

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def controlled_agent(self) -> Optional[Agent]:
        if self._controlled_id is None:
            return None
        return self.get(self._controlled_id)

    @property
    def enemy_count(self) -> int:
        return sum(1 for agent in self._agents if not agent.is_controlled)

    def get(self, agent_id: int) -> Optional[Agent]:
        index = self._id_to_index.get(agent_id)
        if index is None:
            return None
        return self._agents[index]

    def reset(self) -> None:
        """Restart with the RNG rewound, so the same seed replays the same opening."""
        self._rng.reset()
        self._next_id = 0
        self.restart()

    def restart(self) -> None:
        self._agents.clear()
        self._id_to_index.clear()
        self._controlled_id = None
        self._powerups.clear()
        self._bus.clear()
        self._clock.reset()
        self._score = 0
        self._status = ArenaStatus.RUNNING
        self._sim_time = 0.0
        self._last_spawn_time = 0.0
        self._spin_cooldown = 0.0
        self._pending_force = Vector3()
        self._metrics = None
        self._bootstrap_population()
        logger.info("Arena restarted with %d agents", len(self._agents))
        self._bus.publish(events.RESTARTED)
        self._bus.flush()

    def pause(self) -> None:
        if self._status != ArenaStatus.RUNNING:
            return
        self._status = ArenaStatus.PAUSED
        self._clock.pause()

    def resume(self) -> None:
        if self._status != ArenaStatus.PAUSED:
            return
        self._status = ArenaStatus.RUNNING
        self._clock.resume()

    def apply_control_force(self, force: Vector3 | Sequence[float]) -> None:
        if self._status == ArenaStatus.GAME_OVER or self._controlled_id is None:
            logger.debug("Ignoring control force while %s", self._status.value)
            return
        vector = Vector3(force)
        self._pending_force.x += vector.x
        self._pending_force.z += vector.z

    def request_jump(self) -> bool:
        controlled = self.controlled_agent
        if self._status == ArenaStatus.GAME_OVER or controlled is None:
            return False
        return controlled.jump(self._config.agent.jump_velocity)

    def grant_power_up(self, kind: PowerUpKind | str) -> Optional[PowerUpEffect]:
        kind = PowerUpKind(kind)
        controlled = self.controlled_agent
        if self._status == ArenaStatus.GAME_OVER or controlled is None:
            logger.debug("Ignoring power-up %s while %s", kind.value, self._status.value)
            return None
        if kind != PowerUpKind.TRY_AGAIN and self._powerups.has_active(controlled.id, kind):
            return None
        effect = self._powerups.grant(controlled, kind)
        self._bus.flush()
        return effect

    def grant_random_power_up(self) -> Optional[CatalogEntry]:
        """Spin the catalog for the controlled agent; None while the spin is cooling down."""
        controlled = self.controlled_agent
        if self._status == ArenaStatus.GAME_OVER or controlled is None or self._spin_cooldown > 0.0:
            return None
        entry = self._powerups.spin(self._rng)
        if entry.kind == PowerUpKind.TRY_AGAIN:
            self._spin_cooldown = self._config.powerups.try_again_cooldown_seconds
        else:
            self._spin_cooldown = self._config.powerups.spin_cooldown_seconds
            self._powerups.grant(controlled, entry.kind)
        self._bus.flush()
        return entry

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        if self._status != ArenaStatus.RUNNING:
            metrics = self._create_metrics(tick, 0, 0, 0, (perf_counter() - start) * 1000.0)
            self._metrics = metrics
            return metrics

        config = self._config
        dt = config.time_step
        agents = self._agents

        forces: Dict[int, Vector3] = {}
        if self._controlled_id is not None:
            forces[self._controlled_id] = self._pending_force
            self._pending_force = Vector3()

        for agent in agents:
            if agent.is_controlled:
                continue
            decision = steering.decide(agent, agents, config.steering, self._rng)
            agent.state = decision.state
            forces[agent.id] = decision.force

        for agent in agents:
            agent.integrate(forces.get(agent.id, ZERO), dt, config.agent)
            agent.apply_boundary(config.half_width, config.agent.bounce_factor)

        outcome = resolve_collisions(self)
        self._score += outcome.points
        self._remove_agents(outcome.eaten_ids)

        spawned = 0
        if outcome.game_over:
            self._end_game(outcome.killer_id)
        else:
            self._powerups.tick(self._agents_by_id())
            self._sim_time += dt
            if self._spin_cooldown > 0.0:
                self._spin_cooldown = max(0.0, self._spin_cooldown - dt)
            spawned = lifecycle.apply_spawn_control(self, self._sim_time)
            self._update_sun()

        self._bus.flush()
        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = self._create_metrics(tick, len(outcome.eaten_ids), spawned, outcome.checks, elapsed_ms)
        self._metrics = metrics
        return metrics

    def leaderboard(self, limit: int | None = None) -> List[LeaderboardEntry]:
        limit = self._config.leaderboard_size if limit is None else limit
        # sorted() is stable, so equal radii keep insertion order
        ranked = sorted(self._agents, key=lambda agent: -agent.radius)[:limit]
        return [
            LeaderboardEntry(
                rank=index + 1,
                agent_id=agent.id,
                name=agent.name,
                radius=agent.radius,
                is_controlled=agent.is_controlled,
            )
            for index, agent in enumerate(ranked)
        ]

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._create_metrics(tick, 0, 0, 0, 0.0)
        powerups = [
            ActivePowerUp(
                agent_id=effect.agent_id,
                kind=effect.kind.value,
                remaining_seconds=self._powerups.remaining(effect),
            )
            for agent in self._agents
            for effect in self._powerups.active_effects(agent.id)
        ]
        metadata = SnapshotMetadata(
            half_width=self._config.half_width,
            sim_dt=self._config.time_step,
            tick_rate=0.0 if self._config.time_step <= 0 else 1.0 / self._config.time_step,
            seed=self._config.seed,
            config_version=self._config.config_version,
        )
        return Snapshot(
            tick=tick,
            status=self._status.value,
            score=self._score,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            leaderboard=self.leaderboard(),
            powerups=powerups,
            controlled_id=self._controlled_id,
            metadata=metadata,
        )

    def _bootstrap_population(self) -> None:
        lifecycle.seed_population(self)
        self._bus.flush()

    def _allocate_id(self) -> int:
        agent_id = self._next_id
        self._next_id += 1
        return agent_id

    def _add_agent(self, agent: Agent) -> None:
        if agent.id in self._id_to_index:
            raise ValueError(f"Duplicate agent id {agent.id}")
        if agent.is_controlled:
            if self._controlled_id is not None:
                raise ValueError("Arena already has a controlled agent")
            self._controlled_id = agent.id
        self._id_to_index[agent.id] = len(self._agents)
        self._agents.append(agent)

    def add_agents(self, agents: Iterable[Agent]) -> None:
        for agent in agents:
            self._add_agent(agent)
            if agent.id >= self._next_id:
                self._next_id = agent.id + 1

    def clear_agents(self) -> None:
        self._agents.clear()
        self._id_to_index.clear()
        self._controlled_id = None
        self._powerups.clear()

    def _remove_agents(self, agent_ids: Iterable[int]) -> None:
        doomed = set(agent_ids)
        if not doomed:
            return
        self._agents[:] = [agent for agent in self._agents if agent.id not in doomed]
        for agent_id in doomed:
            self._powerups.forget(agent_id)
            if agent_id == self._controlled_id:
                self._controlled_id = None
        self._refresh_index_map()

    def _refresh_index_map(self) -> None:
        self._id_to_index.clear()
        for index, agent in enumerate(self._agents):
            self._id_to_index[agent.id] = index

    def _agents_by_id(self) -> Dict[int, Agent]:
        return {agent.id: agent for agent in self._agents}

    def _end_game(self, killer_id: Optional[int]) -> None:
        self._status = ArenaStatus.GAME_OVER
        self._clock.pause()
        logger.info("Game over: agent %s ate the player, final score %d", killer_id, self._score)
        self._bus.publish(events.GAME_OVER, final_score=self._score, killer_id=killer_id)

    def _update_sun(self) -> None:
        biggest = None
        for agent in self._agents:
            if agent.is_controlled:
                continue
            if biggest is None or agent.radius > biggest.radius:
                biggest = agent
        if biggest is not None and biggest.radius >= self._config.sun_radius_threshold:
            biggest.is_sun = True

    def _agent_snapshot(self, agent: Agent) -> Dict[str, Any]:
        velocity = agent.velocity
        return {
            "id": agent.id,
            "name": agent.name,
            "x": agent.position.x,
            "y": agent.position.y,
            "z": agent.position.z,
            "vx": velocity.x,
            "vz": velocity.z,
            "speed": (velocity.x * velocity.x + velocity.z * velocity.z) ** 0.5,
            "heading": _heading_from_velocity(velocity),
            "radius": agent.radius,
            "mass": agent.mass,
            "color": agent.color,
            "skin": agent.skin.value,
            "body_class": body_class(agent.radius),
            "is_controlled": agent.is_controlled,
            "is_sun": agent.is_sun,
            "is_jumping": agent.is_jumping,
            "behavior_state": agent.state.value,
        }

    def _create_metrics(
        self, tick: int, consumed: int, spawned: int, collision_checks: int, duration_ms: float
    ) -> TickMetrics:
        return metrics_system.create_metrics(
            tick,
            self._status.value,
            self._agents,
            consumed,
            spawned,
            self._score,
            collision_checks,
            duration_ms,
        )
