from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pygame.math import Vector3

from ..utils.math3d import _clamp_length

if TYPE_CHECKING:
    from ...config import AgentConfig


class AgentState(str, Enum):
    IDLE = "Idle"
    FLEE = "Flee"
    SEEK = "Seek"
    WANDER = "Wander"
    CONTROLLED = "Controlled"


class Skin(str, Enum):
    DEFAULT = "default"
    PACMAN = "pacman"
    SATURN = "saturn"
    EARTH = "earth"


def body_class(radius: float) -> str:
    """Radius band the presentation layer maps to a body mesh."""
    if radius >= 15.0:
        return "sun"
    if radius >= 10.0:
        return "white_dwarf"
    if radius >= 5.0:
        return "planet"
    return "asteroid"


@dataclass(slots=True)
class Agent:
    id: int
    name: str
    position: Vector3
    radius: float
    base_radius: float = 0.0
    velocity: Vector3 = field(default_factory=Vector3)
    is_controlled: bool = False
    vertical_velocity: float = 0.0
    is_jumping: bool = False
    speed_multiplier: float = 1.0
    size_target: Optional[float] = None
    skin: Skin = Skin.DEFAULT
    color: int = 0xFFFFFF
    state: AgentState = AgentState.IDLE
    is_sun: bool = False

    def __post_init__(self) -> None:
        if self.radius <= 0:
            raise ValueError(f"Agent radius must be positive, got {self.radius}")
        if self.base_radius <= 0:
            self.base_radius = self.radius
        if not self.is_jumping:
            self.position.y = self.radius

    @property
    def mass(self) -> float:
        return (self.radius / self.base_radius) ** 3

    def max_speed(self, config: AgentConfig) -> float:
        base = config.controlled_max_speed if self.is_controlled else config.ai_max_speed
        return base * self.speed_multiplier

    def integrate(self, force: Vector3, dt: float, config: AgentConfig) -> None:
        self.velocity.x += force.x * self.speed_multiplier
        self.velocity.z += force.z * self.speed_multiplier
        self.velocity.y = 0.0
        self.velocity = _clamp_length(self.velocity, self.max_speed(config))

        damping = config.controlled_damping if self.is_controlled else config.ai_damping
        self.velocity *= damping

        if self.is_jumping:
            self.vertical_velocity -= config.gravity * dt
            self.position.y += self.vertical_velocity * dt
            if self.position.y <= self.radius:
                self.position.y = self.radius
                self.vertical_velocity = 0.0
                self.is_jumping = False
        else:
            self.position.y = self.radius

        self.position.x += self.velocity.x * dt
        self.position.z += self.velocity.z * dt

    def apply_boundary(self, half_width: float, bounce_factor: float = -0.8) -> None:
        if abs(self.position.x) > half_width:
            self.position.x = math.copysign(half_width, self.position.x)
            self.velocity.x *= bounce_factor
        if abs(self.position.z) > half_width:
            self.position.z = math.copysign(half_width, self.position.z)
            self.velocity.z *= bounce_factor

    def jump(self, jump_velocity: float) -> bool:
        if self.is_jumping:
            return False
        self.vertical_velocity = jump_velocity
        self.is_jumping = True
        return True

    def can_consume(self, other: Agent) -> bool:
        # equal radii cannot eat each other in either direction
        return self.radius > other.radius

    def consume(self, other: Agent, volume_fraction: float = 0.5, points_per_radius: float = 10.0) -> int:
        if not self.can_consume(other):
            raise ValueError(f"Agent {self.id} (r={self.radius:.3f}) cannot consume agent {other.id} (r={other.radius:.3f})")
        new_volume = self.radius ** 3 + other.radius ** 3 * volume_fraction
        new_radius = new_volume ** (1.0 / 3.0)
        self.grow(new_radius - self.radius)
        return int(math.floor(other.radius * points_per_radius))

    def grow(self, amount: float) -> None:
        self.radius += amount
        self.base_radius = self.radius
        if not self.is_jumping:
            self.position.y = self.radius

    def step_size_animation(self, growth_rate: float, tolerance: float) -> bool:
        """Ease radius toward size_target; returns True while the radius is still changing."""
        if self.size_target is None:
            return False
        diff = self.size_target - self.radius
        if abs(diff) <= tolerance:
            self.size_target = None
            return False
        self.radius += diff * growth_rate
        if not self.is_jumping:
            self.position.y = self.radius
        return True

    def distance_to(self, other: Agent) -> float:
        return self.position.distance_to(other.position)

    def is_colliding_with(self, other: Agent) -> bool:
        return self.distance_to(other) < self.radius + other.radius
