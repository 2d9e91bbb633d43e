"""Timed speed, size and skin effects.

Effects are stored per agent in three slots (speed, size, skin). A grant for
an occupied slot replaces the previous effect outright, so boosts never stack
and an agent never wears two skins. Expiry runs the inverse of the grant:
speed returns to 1, the size target falls back to ``base_radius`` and the
skin returns to default.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from ..core.agent import Agent, Skin
from . import events

if TYPE_CHECKING:
    from ...clock import PausableClock
    from ...config import PowerUpConfig
    from ...rng import DeterministicRng
    from .events import EventBus

logger = logging.getLogger(__name__)


class PowerUpKind(str, Enum):
    SPEED = "speed"
    SIZE = "size"
    PACMAN = "pacman"
    SATURN = "saturn"
    EARTH = "earth"
    TRY_AGAIN = "try_again"


SKIN_FOR_KIND: Dict[PowerUpKind, Skin] = {
    PowerUpKind.PACMAN: Skin.PACMAN,
    PowerUpKind.SATURN: Skin.SATURN,
    PowerUpKind.EARTH: Skin.EARTH,
}

_SPEED_SLOT = "speed"
_SIZE_SLOT = "size"
_SKIN_SLOT = "skin"

_CATALOG_NAMES: Dict[PowerUpKind, str] = {
    PowerUpKind.SPEED: "Speed Boost",
    PowerUpKind.SIZE: "Size Boost",
    PowerUpKind.PACMAN: "PacMan Skin",
    PowerUpKind.SATURN: "Saturn Skin",
    PowerUpKind.EARTH: "Earth Skin",
    PowerUpKind.TRY_AGAIN: "Try Again",
}


def slot_for(kind: PowerUpKind) -> str:
    if kind == PowerUpKind.SPEED:
        return _SPEED_SLOT
    if kind == PowerUpKind.SIZE:
        return _SIZE_SLOT
    if kind in SKIN_FOR_KIND:
        return _SKIN_SLOT
    raise ValueError(f"Power-up kind {kind!r} has no effect slot")


@dataclass(slots=True)
class PowerUpEffect:
    agent_id: int
    kind: PowerUpKind
    start_time: float
    duration: float
    multiplier: float = 1.0

    def is_expired(self, now: float) -> bool:
        return now - self.start_time >= self.duration

    def remaining(self, now: float) -> float:
        return max(0.0, self.duration - (now - self.start_time))


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    kind: PowerUpKind
    name: str
    weight: float


def build_catalog(weights: Mapping[str, float]) -> List[CatalogEntry]:
    catalog = []
    for kind in PowerUpKind:
        weight = float(weights.get(kind.value, 0.0))
        catalog.append(CatalogEntry(kind=kind, name=_CATALOG_NAMES[kind], weight=weight))
    return catalog


class PowerUpSystem:
    def __init__(self, config: PowerUpConfig, clock: PausableClock, bus: EventBus) -> None:
        self._config = config
        self._clock = clock
        self._bus = bus
        self._effects: Dict[int, Dict[str, PowerUpEffect]] = {}
        self.catalog = build_catalog(config.catalog_weights)

    def spin(self, rng: DeterministicRng) -> CatalogEntry:
        entry = rng.weighted_choice(self.catalog, [item.weight for item in self.catalog])
        if entry is None:
            return self.catalog[-1]
        return entry

    def grant(self, agent: Agent, kind: PowerUpKind | str) -> Optional[PowerUpEffect]:
        kind = PowerUpKind(kind)
        if kind == PowerUpKind.TRY_AGAIN:
            return None
        if kind == PowerUpKind.SPEED:
            return self.grant_speed(agent, self._config.speed_multiplier)
        if kind == PowerUpKind.SIZE:
            return self.grant_size(agent, self._config.size_multiplier)
        return self.grant_skin(agent, kind)

    def grant_speed(self, agent: Agent, multiplier: float, duration: float | None = None) -> Optional[PowerUpEffect]:
        agent.speed_multiplier = multiplier
        if multiplier == 1.0:
            self._slots(agent.id).pop(_SPEED_SLOT, None)
            return None
        return self._register(agent, PowerUpKind.SPEED, _SPEED_SLOT, duration, multiplier)

    def grant_size(self, agent: Agent, multiplier: float, duration: float | None = None) -> Optional[PowerUpEffect]:
        # a running size boost keeps its base radius, so a new grant replaces the multiplier
        boosted = _SIZE_SLOT in self._effects.get(agent.id, {})
        self._apply_size(agent, multiplier, keep_base=boosted)
        if multiplier == 1.0:
            self._slots(agent.id).pop(_SIZE_SLOT, None)
            return None
        return self._register(agent, PowerUpKind.SIZE, _SIZE_SLOT, duration, multiplier)

    def grant_skin(self, agent: Agent, kind: PowerUpKind | str, duration: float | None = None) -> PowerUpEffect:
        kind = PowerUpKind(kind)
        if kind not in SKIN_FOR_KIND:
            raise ValueError(f"{kind.value} is not a skin power-up")
        agent.skin = SKIN_FOR_KIND[kind]
        return self._register(agent, kind, _SKIN_SLOT, duration, 1.0)

    def tick(self, agents_by_id: Mapping[int, Agent]) -> List[PowerUpEffect]:
        now = self._clock.now()
        expired: List[PowerUpEffect] = []
        for agent_id in list(self._effects):
            agent = agents_by_id.get(agent_id)
            if agent is None:
                del self._effects[agent_id]
                continue
            slots = self._effects[agent_id]
            for slot, effect in list(slots.items()):
                if not effect.is_expired(now):
                    continue
                del slots[slot]
                self._revert(agent, effect)
                expired.append(effect)
                logger.info("Power-up %s expired for agent %d", effect.kind.value, agent_id)
                self._bus.publish(events.POWER_UP_EXPIRED, agent_id=agent_id, kind=effect.kind.value)
            if not slots:
                del self._effects[agent_id]

        for agent in agents_by_id.values():
            if agent.size_target is not None:
                agent.step_size_animation(self._config.growth_rate, self._config.size_tolerance)
        return expired

    def active_effects(self, agent_id: int) -> List[PowerUpEffect]:
        return list(self._effects.get(agent_id, {}).values())

    def has_active(self, agent_id: int, kind: PowerUpKind | str) -> bool:
        kind = PowerUpKind(kind)
        return any(effect.kind == kind for effect in self._effects.get(agent_id, {}).values())

    def remaining(self, effect: PowerUpEffect) -> float:
        return effect.remaining(self._clock.now())

    def forget(self, agent_id: int) -> None:
        self._effects.pop(agent_id, None)

    def clear(self) -> None:
        self._effects.clear()

    def _slots(self, agent_id: int) -> Dict[str, PowerUpEffect]:
        return self._effects.setdefault(agent_id, {})

    def _register(
        self,
        agent: Agent,
        kind: PowerUpKind,
        slot: str,
        duration: float | None,
        multiplier: float,
    ) -> PowerUpEffect:
        effect = PowerUpEffect(
            agent_id=agent.id,
            kind=kind,
            start_time=self._clock.now(),
            duration=self._config.duration_seconds if duration is None else duration,
            multiplier=multiplier,
        )
        previous = self._slots(agent.id).get(slot)
        if previous is not None:
            logger.debug("Power-up %s replaces %s on agent %d", kind.value, previous.kind.value, agent.id)
        self._slots(agent.id)[slot] = effect
        logger.info("Power-up %s granted to agent %d", kind.value, agent.id)
        self._bus.publish(events.POWER_UP_GRANTED, agent_id=agent.id, kind=kind.value)
        return effect

    def _apply_size(self, agent: Agent, multiplier: float, keep_base: bool = False) -> None:
        if multiplier == 1.0:
            if agent.radius / agent.base_radius > self._config.boosted_ratio_threshold:
                agent.size_target = agent.base_radius
            return
        if not keep_base:
            agent.base_radius = agent.radius
        agent.size_target = agent.base_radius * multiplier

    def _revert(self, agent: Agent, effect: PowerUpEffect) -> None:
        if effect.kind == PowerUpKind.SPEED:
            agent.speed_multiplier = 1.0
        elif effect.kind == PowerUpKind.SIZE:
            self._apply_size(agent, 1.0)
        else:
            agent.skin = Skin.DEFAULT
