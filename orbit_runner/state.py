"""Runner and run state, phase transitions and serialisation."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any

from orbit_runner.config import OrbitConfig
from orbit_runner.geometry import LaneGeometry
from orbit_runner.types import (
    GAME_OVER,
    IDLE,
    PLAYING,
    SHIELD,
    SLOW,
    ActiveEffect,
    Hazard,
    InvalidTransition,
    Powerup,
)

# Allowed phase moves. game_over -> playing is the restart.
TRANSITIONS: dict[str, tuple[str, ...]] = {
    IDLE: (PLAYING,),
    PLAYING: (GAME_OVER,),
    GAME_OVER: (PLAYING,),
}


@dataclass
class RunnerState:
    angle: float
    lane: int
    radius: float
    target_radius: float
    rotation_speed: float
    transitioning: bool = False
    switch_direction: int = -1


@dataclass
class RunState:
    runner: RunnerState
    score: int = 0
    level: int = 1
    current_orbit_level: int = 1
    next_orbit_level: int = 2
    phase: str = IDLE
    invincible: bool = False
    hazards: list[Hazard] = field(default_factory=list)
    powerup: Powerup | None = None
    effect: ActiveEffect | None = None

    @property
    def game_over(self) -> bool:
        return self.phase == GAME_OVER

    @property
    def playing(self) -> bool:
        return self.phase == PLAYING

    def orbit_hazards(self, orbit_level: int) -> list[Hazard]:
        return [h for h in self.hazards if h.orbit_level == orbit_level]


def new_run(config: OrbitConfig, geometry: LaneGeometry) -> RunState:
    """Initial conditions: outer lane, angle 0, level 1, no hazards yet."""
    lane = geometry.lane_count - 1
    radius = geometry.radius(lane)
    runner = RunnerState(
        angle=0.0,
        lane=lane,
        radius=radius,
        target_radius=radius,
        rotation_speed=config.speed_for_level(1),
    )
    return RunState(runner=runner)


def advance_phase(state: RunState, target: str) -> str:
    """Move ``state`` to ``target``; returns the previous phase."""
    if target not in TRANSITIONS.get(state.phase, ()):
        raise InvalidTransition(state.phase, target)
    previous = state.phase
    state.phase = target
    return previous


def baseline_speed(state: RunState, config: OrbitConfig) -> float:
    return config.speed_for_level(state.level)


def refresh_speed(state: RunState, config: OrbitConfig) -> None:
    """Recompute rotation speed and invincibility from level and effect."""
    speed = baseline_speed(state, config)
    effect = state.effect.kind if state.effect is not None else None
    if effect == SLOW:
        speed *= config.slow_factor
    state.runner.rotation_speed = speed
    state.invincible = effect == SHIELD


def to_dict(state: RunState) -> dict[str, Any]:
    return dataclasses.asdict(state)


def from_dict(data: dict[str, Any]) -> RunState:
    fields = dict(data)
    fields["runner"] = RunnerState(**fields["runner"])
    fields["hazards"] = [Hazard(**h) for h in fields.get("hazards", [])]
    if fields.get("powerup") is not None:
        fields["powerup"] = Powerup(**fields["powerup"])
    if fields.get("effect") is not None:
        fields["effect"] = ActiveEffect(**fields["effect"])
    return RunState(**fields)
