"""Variable-step clock and TickContext construction."""

import random
from typing import Any, Callable

from orbit_runner.config import OrbitConfig
from orbit_runner.geometry import LaneGeometry
from orbit_runner.types import TickContext


class Clock:
    """Counts ticks and wall-clock seconds fed in by the caller.

    Deltas above ``max_delta`` are clamped so a stalled frame cannot carry
    the runner further than one collision window.
    """

    def __init__(self, max_delta: float) -> None:
        if max_delta <= 0:
            raise ValueError("max_delta must be positive")
        self._max_delta = max_delta
        self._tick_number = 0
        self._elapsed = 0.0
        self._dt = 0.0

    @property
    def max_delta(self) -> float:
        return self._max_delta

    @property
    def tick_number(self) -> int:
        return self._tick_number

    @property
    def elapsed(self) -> float:
        return self._elapsed

    @property
    def dt(self) -> float:
        return self._dt

    def advance(self, delta: float) -> float:
        if delta < 0:
            raise ValueError("delta must not be negative")
        self._dt = min(delta, self._max_delta)
        self._tick_number += 1
        self._elapsed += self._dt
        return self._dt

    def context(
        self,
        stop_fn: Callable[[], None],
        rng: random.Random,
        publish: Callable[..., Any],
        config: OrbitConfig,
        geometry: LaneGeometry,
    ) -> TickContext:
        return TickContext(
            tick_number=self._tick_number,
            dt=self._dt,
            elapsed=self._elapsed,
            request_stop=stop_fn,
            random=rng,
            publish=publish,
            config=config,
            geometry=geometry,
        )

    def reset(self, tick_number: int = 0, elapsed: float = 0.0) -> None:
        self._tick_number = tick_number
        self._elapsed = elapsed
        self._dt = 0.0
