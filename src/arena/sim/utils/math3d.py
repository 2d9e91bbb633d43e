from __future__ import annotations

import math

from pygame.math import Vector3

ZERO = Vector3()


def _safe_normalize(vector: Vector3) -> Vector3:
    return _safe_normalize_xz(vector.x, vector.z)


def _safe_normalize_xz(x: float, z: float) -> Vector3:
    magnitude_sq = x * x + z * z
    if magnitude_sq < 1e-10:
        return Vector3()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector3(x * inv, 0.0, z * inv)


def _direction(origin: Vector3, target: Vector3) -> Vector3:
    """Unit horizontal vector pointing from origin to target."""
    return _safe_normalize_xz(target.x - origin.x, target.z - origin.z)


def _clamp_length(vector: Vector3, max_length: float) -> Vector3:
    if max_length <= 0:
        return Vector3()
    magnitude_sq = vector.length_squared()
    if magnitude_sq <= max_length * max_length:
        return vector
    if magnitude_sq == 0:
        return Vector3()
    return vector.normalize() * max_length


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _heading_from_velocity(vector: Vector3) -> float:
    if vector.x * vector.x + vector.z * vector.z < 1e-12:
        return 0.0
    return math.atan2(vector.z, vector.x)
