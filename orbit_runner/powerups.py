"""Power-up placement and lifecycle rules."""
from __future__ import annotations

import logging
import random
from typing import Iterable

from orbit_runner.config import OrbitConfig
from orbit_runner.geometry import LaneGeometry, slot_angle, slot_index
from orbit_runner.types import POWERUP_KINDS, Hazard, NoAvailableSlot, Powerup

logger = logging.getLogger(__name__)


def free_cells(
    hazards: Iterable[Hazard], lane_count: int, slot_count: int, orbit_level: int
) -> list[tuple[int, int]]:
    """(slot, lane) pairs not taken by an un-passed hazard of ``orbit_level``."""
    occupied = {
        (slot_index(h.angle, slot_count), h.lane)
        for h in hazards
        if h.orbit_level == orbit_level and not h.passed
    }
    return [
        (slot, lane)
        for slot in range(slot_count)
        for lane in range(lane_count)
        if (slot, lane) not in occupied
    ]


def choose_powerup_slot(
    hazards: Iterable[Hazard],
    geometry: LaneGeometry,
    rng: random.Random,
    orbit_level: int,
    slot_count: int,
) -> tuple[int, int]:
    cells = free_cells(hazards, geometry.lane_count, slot_count, orbit_level)
    if not cells:
        raise NoAvailableSlot(f"No free slot on orbit {orbit_level}")
    return rng.choice(cells)


def spawn_powerup(
    hazards: Iterable[Hazard],
    geometry: LaneGeometry,
    rng: random.Random,
    orbit_level: int,
    level: int,
    config: OrbitConfig | None = None,
) -> Powerup | None:
    """A power-up on a free slot of the current orbit, or None when full."""
    cfg = config if config is not None else OrbitConfig()
    try:
        slot, lane = choose_powerup_slot(hazards, geometry, rng, orbit_level, cfg.slot_count)
    except NoAvailableSlot:
        logger.debug("Skipping power-up spawn at level %d: ring is full", level)
        return None
    kind = rng.choice(POWERUP_KINDS)
    return Powerup(
        kind=kind,
        angle=slot_angle(slot, cfg.slot_count),
        lane=lane,
        spawned_at_level=level,
    )


def powerup_due(level: int, config: OrbitConfig) -> bool:
    return level % config.powerup_interval == 0


def powerup_expired(powerup: Powerup, level: int, config: OrbitConfig) -> bool:
    return level - powerup.spawned_at_level >= config.powerup_lifetime
