"""Wall clock that stops counting while the simulation is suspended."""
from __future__ import annotations

import time
from typing import Callable


class ManualTimeSource:
    """Time source advanced by hand; drives the clock from simulation time in headless runs."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


class PausableClock:
    def __init__(self, time_source: Callable[[], float] = time.monotonic) -> None:
        self._source = time_source
        self._origin = time_source()
        self._paused_total = 0.0
        self._paused_at: float | None = None

    @property
    def paused(self) -> bool:
        return self._paused_at is not None

    def now(self) -> float:
        """Seconds since construction or the last reset, excluding suspended spans."""
        current = self._paused_at if self._paused_at is not None else self._source()
        return current - self._origin - self._paused_total

    def pause(self) -> None:
        if self._paused_at is None:
            self._paused_at = self._source()

    def resume(self) -> None:
        if self._paused_at is None:
            return
        self._paused_total += self._source() - self._paused_at
        self._paused_at = None

    def reset(self) -> None:
        self._origin = self._source()
        self._paused_total = 0.0
        self._paused_at = None
