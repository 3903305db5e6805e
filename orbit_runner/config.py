"""Tuning configuration for the orbit runner core."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping

from orbit_runner.types import SLOT_COUNT


@dataclass(frozen=True)
class OrbitConfig:
    """Immutable product-tuning constants.

    Revisions of the game disagreed on several of these (lane count, speed
    step, collision margin). The defaults describe the three-lane build;
    every alternative is reachable by overriding a field.

    Attributes:
        lane_count: Number of concentric lanes, inner first.
        slot_count: Angular slots per orbit.
        desktop_field_fraction: Share of min(width, height) used by the ring.
        mobile_field_fraction: Same, for small touch screens.
        inner_radius_fraction: Inner lane radius relative to the outer lane.
        margin_fraction: Collision margin relative to adjacent lane spacing.
        base_rotation_speed: Level-1 speed in degrees per second.
        speed_step: Speed multiplier increase per level.
        slow_factor: Speed factor while a speed-reduction effect runs.
        effect_duration: Degrees of rotation an effect stays active.
        effect_warning_thresholds: Advisory "expiring" stages, in degrees.
        min_collision_window: Lower bound of the collision window, degrees.
        window_seconds: Collision window expressed as seconds of travel.
        reach_tolerance: Degrees before a slot that already count as reached.
        max_delta: Largest tick delta in seconds; longer deltas are clamped.
        transition_factor: Share of remaining radius covered per tick.
        snap_distance: Radius distance at which a lane change snaps.
        choice_tiers: (max_level, chance) pairs for an extra safe lane.
        late_choice_chance: Extra safe lane chance beyond the last tier.
        lane_change_chance: Chance the safe path drifts to a neighbour lane.
        max_lane_run: Slots the safe path may keep one lane before a forced move.
        density_tiers: (max_level, fraction) pairs of hazard density.
        late_density: Hazard density beyond the last tier.
        tutorial_clear_degrees: Level-1 stretch kept free of hazards.
        powerup_interval: Levels between power-up spawn attempts.
        powerup_lifetime: Levels an unclaimed power-up stays on the ring.
        strategy: Level generator name, "safe_path" or "spaced".
        restart_on_any_input: Lane intents restart a finished run too.
        default_width: Headless play-field width.
        default_height: Headless play-field height.
        fade_delay: Cosmetic delay reported with pass/spawn signals, seconds.
    """

    lane_count: int = 3
    slot_count: int = SLOT_COUNT
    desktop_field_fraction: float = 0.75
    mobile_field_fraction: float = 0.95
    inner_radius_fraction: float = 0.6
    margin_fraction: float = 1.0 / 3.0
    base_rotation_speed: float = 360.0 / 4.2
    speed_step: float = 0.01
    slow_factor: float = 0.5
    effect_duration: float = 180.0
    effect_warning_thresholds: tuple[float, ...] = (90.0, 135.0, 157.5, 165.0)
    min_collision_window: float = 8.0
    window_seconds: float = 2.0
    reach_tolerance: float = 1.0
    max_delta: float = 0.25
    transition_factor: float = 0.15
    snap_distance: float = 1.0
    choice_tiers: tuple[tuple[int, float], ...] = ((10, 0.7),)
    late_choice_chance: float = 0.5
    lane_change_chance: float = 0.4
    max_lane_run: int = 4
    density_tiers: tuple[tuple[int, float], ...] = ((5, 0.25), (15, 0.35))
    late_density: float = 0.45
    tutorial_clear_degrees: float = 90.0
    powerup_interval: int = 3
    powerup_lifetime: int = 3
    strategy: str = "safe_path"
    restart_on_any_input: bool = False
    default_width: float = 800.0
    default_height: float = 600.0
    fade_delay: float = 0.3

    def __post_init__(self) -> None:
        if self.lane_count < 2:
            raise ValueError("lane_count must be at least 2")
        if self.slot_count <= 0:
            raise ValueError("slot_count must be positive")
        if self.base_rotation_speed <= 0:
            raise ValueError("base_rotation_speed must be positive")
        if not 0 < self.inner_radius_fraction < 1:
            raise ValueError("inner_radius_fraction must be in (0, 1)")
        if not 0 < self.transition_factor <= 1:
            raise ValueError("transition_factor must be in (0, 1]")
        if self.max_delta <= 0:
            raise ValueError("max_delta must be positive")
        if self.max_delta > self.window_seconds:
            raise ValueError("max_delta may not exceed window_seconds")
        if self.powerup_interval <= 0 or self.powerup_lifetime <= 0:
            raise ValueError("power-up interval and lifetime must be positive")
        if self.strategy not in ("safe_path", "spaced"):
            raise ValueError(f"Unknown level strategy {self.strategy!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> OrbitConfig:
        """Build a config from JSON-like data. Unknown keys are rejected."""
        known = {f.name: f for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, list):
                value = tuple(
                    tuple(v) if isinstance(v, list) else v for v in value
                )
            kwargs[key] = value
        return cls(**kwargs)

    def to_mapping(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    def choice_chance(self, level: int) -> float:
        for max_level, chance in self.choice_tiers:
            if level <= max_level:
                return chance
        return self.late_choice_chance

    def density(self, level: int) -> float:
        for max_level, fraction in self.density_tiers:
            if level <= max_level:
                return fraction
        return self.late_density

    def speed_for_level(self, level: int) -> float:
        return self.base_rotation_speed * (1 + (level - 1) * self.speed_step)


TWO_LANE = OrbitConfig(lane_count=2, inner_radius_fraction=0.76)
THREE_LANE = OrbitConfig()
