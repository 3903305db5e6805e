"""Safe-path search over the slot/lane graph."""
from __future__ import annotations

from collections import deque
from typing import Iterable

from orbit_runner.geometry import reachable_lanes, slot_index
from orbit_runner.types import Hazard

Cell = tuple[int, int]  # (slot index, lane)


def blocked_cells(hazards: Iterable[Hazard], slot_count: int) -> set[Cell]:
    return {(slot_index(h.angle, slot_count), h.lane) for h in hazards}


def find_safe_path(
    blocked: set[Cell],
    lane_count: int,
    slot_count: int,
    start_lane: int | None = None,
) -> list[int] | None:
    """Return one lane per slot avoiding every blocked cell, or None.

    Consecutive lanes differ by at most one. Breadth-first over the layered
    graph; each (slot, lane) node is visited once.
    """
    if start_lane is not None:
        starts = [start_lane]
    else:
        starts = list(range(lane_count))
    frontier: deque[Cell] = deque()
    came_from: dict[Cell, Cell | None] = {}
    for lane in starts:
        cell = (0, lane)
        if cell not in blocked:
            came_from[cell] = None
            frontier.append(cell)

    while frontier:
        current = frontier.popleft()
        slot, lane = current
        if slot == slot_count - 1:
            path: list[int] = []
            node: Cell | None = current
            while node is not None:
                path.append(node[1])
                node = came_from[node]
            path.reverse()
            return path
        for nxt in reachable_lanes(lane, lane_count):
            cell = (slot + 1, nxt)
            if cell in blocked or cell in came_from:
                continue
            came_from[cell] = current
            frontier.append(cell)
    return None


def is_solvable(hazards: Iterable[Hazard], lane_count: int, slot_count: int) -> bool:
    return find_safe_path(blocked_cells(hazards, slot_count), lane_count, slot_count) is not None
