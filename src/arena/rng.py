from __future__ import annotations

import random
from typing import Sequence, TypeVar

T = TypeVar("T")

_NAME_STEMS = [
    "Alpha", "Beta", "Gamma", "Delta", "Epsilon", "Zeta", "Eta", "Theta",
    "Iota", "Kappa", "Lambda", "Mu", "Nu", "Xi", "Omicron", "Pi",
    "Rho", "Sigma", "Tau", "Upsilon", "Phi", "Chi", "Psi", "Omega",
    "Apex", "Blaze", "Cipher", "Dash", "Echo", "Flux", "Ghost", "Hawk",
    "Ion", "Jinx", "Knox", "Lynx", "Max", "Neo", "Orb", "Phoenix",
    "Quest", "Rex", "Storm", "Titan", "Ultra", "Vex", "Wolf", "Zap",
]

_PALETTE = [
    0xFF0000, 0x00FF00, 0x0000FF, 0xFFFF00,
    0xFF00FF, 0x00FFFF, 0xFFA500, 0x800080,
    0xFFC0CB, 0x40E0D0, 0xFF6347, 0x7FFFD4,
]


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_int(self, max_value: int) -> int:
        return self._random.randrange(max_value)

    def sample_choice(self, items: Sequence[T]) -> T | None:
        if not items:
            return None
        return self._random.choice(items)

    def weighted_choice(self, items: Sequence[T], weights: Sequence[float]) -> T | None:
        """Roulette-wheel pick; falls back to the last item on rounding drift."""
        total = sum(max(0.0, w) for w in weights)
        if not items or total <= 0.0:
            return None
        remaining = self._random.random() * total
        for item, weight in zip(items, weights):
            remaining -= max(0.0, weight)
            if remaining <= 0.0:
                return item
        return items[-1]

    def next_name(self) -> str:
        return f"{self._random.choice(_NAME_STEMS)}{self._random.randrange(999)}"

    def next_color(self) -> int:
        return self._random.choice(_PALETTE)
