"""Shared constants, records and errors for the orbit runner core."""

from __future__ import annotations

import random as _random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from orbit_runner.config import OrbitConfig
    from orbit_runner.geometry import LaneGeometry

SLOT_COUNT = 16
SLOT_DEGREES = 360.0 / SLOT_COUNT

# Run phases.
IDLE = "idle"
PLAYING = "playing"
GAME_OVER = "game_over"

# Input intents.
MOVE_LEFT = "move_left"
MOVE_RIGHT = "move_right"
SWITCH_LANE = "switch_lane"
RESTART = "restart"
INTENTS = (MOVE_LEFT, MOVE_RIGHT, SWITCH_LANE, RESTART)

# Power-up / effect kinds.
SLOW = "speed-reduction"
SHIELD = "invincibility"
POWERUP_KINDS = (SLOW, SHIELD)

HAZARD_COLORS = (0xFF6600, 0xFF0066, 0xFFCC00, 0xFF3366, 0x9900FF)


@dataclass
class Hazard:
    angle: float
    lane: int
    orbit_level: int
    color: int = HAZARD_COLORS[0]
    passed: bool = False
    spawned: bool = False


@dataclass
class Powerup:
    kind: str
    angle: float
    lane: int
    spawned_at_level: int
    collected: bool = False


@dataclass
class ActiveEffect:
    """A running power-up effect. Duration is measured in degrees travelled."""

    kind: str
    start_angle: float
    warnings: int = 0


@dataclass(frozen=True, slots=True)
class Signal:
    name: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TickContext:
    tick_number: int
    dt: float
    elapsed: float
    request_stop: Callable[[], None]
    random: _random.Random
    publish: Callable[..., None]
    config: OrbitConfig
    geometry: LaneGeometry


@dataclass(frozen=True)
class GameOverReport:
    """Handed to persistence / leaderboard collaborators when a run ends."""

    score: int
    level: int
    run_id: int
    tick_number: int


@dataclass(frozen=True)
class TickResult:
    tick_number: int
    run_id: int
    phase: str
    score: int
    level: int
    current_orbit_level: int
    angle: float
    radius: float
    lane: int
    rotation_speed: float
    invincible: bool
    effect: str | None
    game_over: bool = False
    report: GameOverReport | None = None
    signals: tuple[Signal, ...] = ()

    def names(self) -> list[str]:
        return [s.name for s in self.signals]


class OrbitRunnerError(Exception):
    """Base class for orbit runner errors."""


class GenerationInfeasible(OrbitRunnerError):
    """Raised when a hazard layout leaves no traversable path."""

    def __init__(self, orbit_level: int, message: str) -> None:
        self.orbit_level = orbit_level
        super().__init__(message)


class NoAvailableSlot(OrbitRunnerError):
    """Raised when every (slot, lane) pair is occupied."""


class InvalidTransition(OrbitRunnerError):
    """Raised on an illegal run phase change."""

    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Cannot move run from {source!r} to {target!r}")


class SnapshotError(OrbitRunnerError):
    """Raised on restore failures (version or configuration mismatch)."""
