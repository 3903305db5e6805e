"""Lane radii, angular slots and angle arithmetic."""
from __future__ import annotations

import math
from dataclasses import dataclass

from orbit_runner.config import OrbitConfig


@dataclass(frozen=True)
class LaneGeometry:
    """Radii of every lane, inner first, plus the collision margin."""

    radii: tuple[float, ...]
    collision_margin: float

    @classmethod
    def from_playfield(
        cls,
        width: float,
        height: float,
        mobile: bool = False,
        config: OrbitConfig | None = None,
    ) -> LaneGeometry:
        if width <= 0 or height <= 0:
            raise ValueError("play-field size must be positive")
        cfg = config if config is not None else OrbitConfig()
        fraction = cfg.mobile_field_fraction if mobile else cfg.desktop_field_fraction
        outer = min(width, height) * fraction / 2
        inner = outer * cfg.inner_radius_fraction
        spacing = (outer - inner) / (cfg.lane_count - 1)
        radii = tuple(inner + spacing * i for i in range(cfg.lane_count))
        return cls(radii=radii, collision_margin=spacing * cfg.margin_fraction)

    @property
    def lane_count(self) -> int:
        return len(self.radii)

    @property
    def inner_radius(self) -> float:
        return self.radii[0]

    @property
    def outer_radius(self) -> float:
        return self.radii[-1]

    def radius(self, lane: int) -> float:
        if not 0 <= lane < len(self.radii):
            raise ValueError(f"Lane {lane} out of range 0..{len(self.radii) - 1}")
        return self.radii[lane]

    def same_lane(self, radius: float, lane: int) -> bool:
        """True when ``radius`` lies inside the margin band of ``lane``."""
        return abs(radius - self.radius(lane)) < self.collision_margin

    def position(self, angle: float, radius: float) -> tuple[float, float]:
        """Offset from the ring centre for a polar position."""
        rad = math.radians(angle)
        return (math.cos(rad) * radius, math.sin(rad) * radius)


def slot_angle(index: int, slot_count: int) -> float:
    return index * 360.0 / slot_count


def slot_index(angle: float, slot_count: int) -> int:
    return round(angle * slot_count / 360.0) % slot_count


def adjacent_lanes(lane: int, lane_count: int) -> list[int]:
    return [n for n in (lane - 1, lane + 1) if 0 <= n < lane_count]


def reachable_lanes(lane: int, lane_count: int) -> list[int]:
    """The lane itself plus its neighbours; lanes are never skipped."""
    return sorted([lane, *adjacent_lanes(lane, lane_count)])


def normalize_angle_diff(diff: float) -> float:
    """Fold an angle difference into (-180, 180]."""
    folded = math.fmod(diff, 360.0)
    if folded > 180.0:
        folded -= 360.0
    elif folded <= -180.0:
        folded += 360.0
    return folded


def angular_distance(current: float, target: float) -> float:
    """Signed degrees from ``current`` forward to ``target``.

    ``angular_distance(359, 1) == 2``: the target is just ahead.
    """
    return normalize_angle_diff(target - current)


def collision_window(speed: float, config: OrbitConfig) -> float:
    """Degrees past a slot within which the slot still counts as reached.

    Grows with speed so a single clamped tick can never step over a slot.
    """
    return max(config.min_collision_window, speed * config.window_seconds)


def has_reached(
    current: float, slot: float, window: float, tolerance: float = 1.0
) -> bool:
    """True once the runner at ``current`` has arrived at ``slot`` this orbit.

    ``current`` is the in-orbit angle (it may briefly exceed 360 before
    rollover). Slots ahead of the runner in the current orbit are never
    reached through the fold-around of the normalised difference.
    """
    if current < slot - tolerance:
        return False
    passed_by = normalize_angle_diff(current - slot)
    return -tolerance <= passed_by < window


def ease_toward(current: float, target: float, factor: float, snap: float) -> tuple[float, bool]:
    """One step of exponential easing. Returns (new_value, settled)."""
    diff = target - current
    if abs(diff) < snap:
        return target, True
    return current + diff * factor, False
