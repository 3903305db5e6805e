"""Lanes, hazards, the power-up and the runner."""
from __future__ import annotations

import pygame

from orbit_runner import Engine

from ui.constants import (
    HAZARD_RADIUS,
    LANE_COLOR,
    POWERUP_COLORS,
    POWERUP_RADIUS,
    RUNNER_COLOR,
    RUNNER_RADIUS,
    RUNNER_SHIELDED,
)


def _rgb(color: int) -> tuple[int, int, int]:
    return ((color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF)


def draw_ring(
    surface: pygame.Surface,
    engine: Engine,
    center: tuple[float, float],
    fading: list[list],
) -> None:
    """Draw the play field around ``center``.

    fading holds [x, y, color, seconds_left] for hazards that were just
    passed and are still fading out.
    """
    cx, cy = center
    geometry = engine.geometry
    state = engine.state

    for radius in geometry.radii:
        pygame.draw.circle(surface, LANE_COLOR, (int(cx), int(cy)), int(radius), 1)

    for hazard in state.hazards:
        if not hazard.spawned or hazard.passed:
            continue
        dx, dy = geometry.position(hazard.angle, geometry.radius(hazard.lane))
        color = _rgb(hazard.color)
        if hazard.orbit_level != state.current_orbit_level:
            color = tuple(c // 3 for c in color)
        pygame.draw.circle(surface, color, (int(cx + dx), int(cy + dy)), HAZARD_RADIUS)

    for x, y, color, left in fading:
        shade = tuple(int(c * min(left / 0.3, 1.0)) for c in color)
        pygame.draw.circle(surface, shade, (int(cx + x), int(cy + y)), HAZARD_RADIUS, 2)

    powerup = state.powerup
    if powerup is not None:
        dx, dy = geometry.position(powerup.angle, geometry.radius(powerup.lane))
        pygame.draw.circle(
            surface, POWERUP_COLORS[powerup.kind], (int(cx + dx), int(cy + dy)), POWERUP_RADIUS
        )

    runner = state.runner
    dx, dy = geometry.position(runner.angle, runner.radius)
    color = RUNNER_SHIELDED if state.invincible else RUNNER_COLOR
    pygame.draw.circle(surface, color, (int(cx + dx), int(cy + dy)), RUNNER_RADIUS)
