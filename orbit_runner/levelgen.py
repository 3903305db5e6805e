"""Procedural hazard layouts that always leave a way through.

Two strategies are available. ``SafePathGenerator`` walks the slots laying
down a guaranteed safe route first and fills the rest with hazards;
``SpacedGenerator`` scatters hazards with a minimum angular spacing and
relies on repair. Whatever a strategy produces, ``generate_level`` checks
the layout against ``find_safe_path`` and drops hazards until a route
exists.
"""
from __future__ import annotations

import logging
import random
from datetime import date
from typing import Protocol

from orbit_runner.config import OrbitConfig
from orbit_runner.geometry import (
    LaneGeometry,
    adjacent_lanes,
    reachable_lanes,
    slot_angle,
    slot_index,
)
from orbit_runner.solver import blocked_cells, find_safe_path
from orbit_runner.types import (
    HAZARD_COLORS,
    GenerationInfeasible,
    Hazard,
    Powerup,
)

logger = logging.getLogger(__name__)


class LevelGenerator(Protocol):
    def generate(
        self,
        orbit_level: int,
        lane_count: int,
        rng: random.Random,
        powerup: Powerup | None = None,
    ) -> list[Hazard]: ...


def _powerup_cell(powerup: Powerup | None, slot_count: int) -> tuple[int, int] | None:
    if powerup is None or powerup.collected:
        return None
    return (slot_index(powerup.angle, slot_count), powerup.lane)


class SafePathGenerator:
    """Safe-path-first generation."""

    name = "safe_path"

    def __init__(self, config: OrbitConfig | None = None) -> None:
        self.config = config if config is not None else OrbitConfig()

    def safe_lanes(
        self, orbit_level: int, lane_count: int, rng: random.Random
    ) -> list[set[int]]:
        """Lanes kept free at each slot, bridged so no move skips a lane."""
        cfg = self.config
        chance = cfg.choice_chance(orbit_level)
        safe: list[set[int]] = []
        primary = rng.randrange(lane_count)
        run = 0
        for _ in range(cfg.slot_count):
            lanes = {primary}
            if rng.random() < chance:
                lanes.add(rng.choice(adjacent_lanes(primary, lane_count)))
            safe.append(lanes)

            if run < cfg.max_lane_run and rng.random() >= cfg.lane_change_chance:
                run += 1
            else:
                primary = rng.choice(adjacent_lanes(primary, lane_count))
                run = 0

        _bridge(safe, lane_count)
        return safe

    def generate(
        self,
        orbit_level: int,
        lane_count: int,
        rng: random.Random,
        powerup: Powerup | None = None,
    ) -> list[Hazard]:
        cfg = self.config
        safe = self.safe_lanes(orbit_level, lane_count, rng)
        reserved = _powerup_cell(powerup, cfg.slot_count)

        candidates: list[tuple[int, int]] = []
        for slot in range(cfg.slot_count):
            if orbit_level == 1 and slot_angle(slot, cfg.slot_count) < cfg.tutorial_clear_degrees:
                continue
            for lane in range(lane_count):
                if lane in safe[slot] or (slot, lane) == reserved:
                    continue
                candidates.append((slot, lane))

        capacity = cfg.slot_count * (lane_count - 1)
        target = int(capacity * cfg.density(orbit_level))
        rng.shuffle(candidates)
        return [
            Hazard(
                angle=slot_angle(slot, cfg.slot_count),
                lane=lane,
                orbit_level=orbit_level,
                color=rng.choice(HAZARD_COLORS),
            )
            for slot, lane in candidates[:target]
        ]


def _bridge(safe: list[set[int]], lane_count: int) -> None:
    """Add lanes until every safe lane reaches a safe lane one slot later."""
    changed = True
    while changed:
        changed = False
        for i, lanes in enumerate(safe):
            nxt = safe[(i + 1) % len(safe)]
            for lane in sorted(lanes):
                reach = reachable_lanes(lane, lane_count)
                if any(n in nxt for n in reach):
                    continue
                nearest = min(nxt, key=lambda n: abs(n - lane))
                nxt.add(lane + 1 if nearest > lane else lane - 1)
                changed = True


class SpacedGenerator:
    """Scattered hazards with a spacing that tightens as levels climb.

    Count grows linearly with level. No lane carries three hazards in a row
    and at least one lane keeps an opening of ``min_gap`` degrees; when a
    new hazard closes the last opening it is dropped and placement stops.
    """

    name = "spaced"
    base_count = 3
    per_level = 1
    base_spacing = 3  # slots
    spacing_every = 5  # levels per spacing step
    min_gap = 45.0

    def __init__(self, config: OrbitConfig | None = None) -> None:
        self.config = config if config is not None else OrbitConfig()

    def hazard_count(self, orbit_level: int, lane_count: int) -> int:
        capacity = self.config.slot_count * (lane_count - 1)
        return min(capacity, self.base_count + self.per_level * orbit_level)

    def spacing(self, orbit_level: int) -> int:
        return max(0, self.base_spacing - (orbit_level - 1) // self.spacing_every)

    def generate(
        self,
        orbit_level: int,
        lane_count: int,
        rng: random.Random,
        powerup: Powerup | None = None,
    ) -> list[Hazard]:
        cfg = self.config
        slots = cfg.slot_count
        spacing = self.spacing(orbit_level)
        count = self.hazard_count(orbit_level, lane_count)
        reserved = _powerup_cell(powerup, slots)

        order = list(range(slots))
        if spacing == 0:
            order = order * (lane_count - 1)
        rng.shuffle(order)

        placed: list[tuple[int, int]] = []
        for slot in order:
            if len(placed) >= count:
                break
            if orbit_level == 1 and slot_angle(slot, slots) < cfg.tutorial_clear_degrees:
                continue
            if spacing and any(_slot_gap(slot, s, slots) < spacing for s, _ in placed):
                continue
            used = {lane for s, lane in placed if s == slot}
            options = [
                lane
                for lane in range(lane_count)
                if lane not in used
                and (slot, lane) != reserved
                and not _makes_triple(placed, slot, lane)
            ]
            if len(used) + 1 >= lane_count or not options:
                continue
            placed.append((slot, rng.choice(options)))
            if not self._has_opening(placed, lane_count):
                placed.pop()
                break

        return [
            Hazard(
                angle=slot_angle(slot, slots),
                lane=lane,
                orbit_level=orbit_level,
                color=rng.choice(HAZARD_COLORS),
            )
            for slot, lane in placed
        ]

    def _has_opening(self, placed: list[tuple[int, int]], lane_count: int) -> bool:
        slots = self.config.slot_count
        step = 360.0 / slots
        for lane in range(lane_count):
            taken = sorted(s for s, l in placed if l == lane)
            if len(taken) < 2:
                return True
            gaps = [b - a for a, b in zip(taken, taken[1:])]
            gaps.append(taken[0] + slots - taken[-1])
            if max(gaps) * step >= self.min_gap:
                return True
        return False


def _slot_gap(a: int, b: int, slots: int) -> int:
    d = abs(a - b) % slots
    return min(d, slots - d)


def _makes_triple(placed: list[tuple[int, int]], slot: int, lane: int) -> bool:
    """True if adding (slot, lane) puts three same-lane hazards in a row."""
    ordered = sorted([*placed, (slot, lane)])
    run = 0
    previous: int | None = None
    for _, l in ordered:
        run = run + 1 if l == previous else 1
        previous = l
        if run >= 3:
            return True
    return False


GENERATORS: dict[str, type] = {
    SafePathGenerator.name: SafePathGenerator,
    SpacedGenerator.name: SpacedGenerator,
}


def make_generator(config: OrbitConfig | None = None) -> LevelGenerator:
    cfg = config if config is not None else OrbitConfig()
    return GENERATORS[cfg.strategy](cfg)


def check_solvable(
    hazards: list[Hazard], orbit_level: int, lane_count: int, slot_count: int
) -> list[int]:
    """Return a safe lane sequence or raise GenerationInfeasible."""
    path = find_safe_path(blocked_cells(hazards, slot_count), lane_count, slot_count)
    if path is None:
        raise GenerationInfeasible(
            orbit_level, f"Orbit {orbit_level} layout of {len(hazards)} hazards has no safe path"
        )
    return path


def _dedupe(hazards: list[Hazard], slot_count: int) -> list[Hazard]:
    seen: set[tuple[int, int]] = set()
    kept: list[Hazard] = []
    for hazard in hazards:
        cell = (slot_index(hazard.angle, slot_count), hazard.lane)
        if cell in seen:
            continue
        seen.add(cell)
        kept.append(hazard)
    return kept


def generate_level(
    orbit_level: int,
    geometry: LaneGeometry,
    rng: random.Random,
    powerup: Powerup | None = None,
    config: OrbitConfig | None = None,
    generator: LevelGenerator | None = None,
) -> list[Hazard]:
    """Hazards for ``orbit_level``, guaranteed to leave a safe path."""
    if orbit_level < 1:
        raise ValueError("orbit_level must be positive")
    cfg = config if config is not None else OrbitConfig()
    gen = generator if generator is not None else make_generator(cfg)
    lane_count = geometry.lane_count

    hazards = _dedupe(gen.generate(orbit_level, lane_count, rng, powerup), cfg.slot_count)
    try:
        check_solvable(hazards, orbit_level, lane_count, cfg.slot_count)
    except GenerationInfeasible as exc:
        logger.warning("%s; dropping hazards until one opens", exc)
        while hazards:
            hazards.pop()
            if find_safe_path(
                blocked_cells(hazards, cfg.slot_count), lane_count, cfg.slot_count
            ) is not None:
                break

    for hazard in hazards:
        hazard.passed = False
        hazard.spawned = False
    logger.debug("Generated %d hazards for orbit %d", len(hazards), orbit_level)
    return hazards


def daily_seed(day: date | None = None) -> int:
    """Seed shared by every run on the same calendar day."""
    day = day if day is not None else date.today()
    return int(day.strftime("%Y%m%d"))
