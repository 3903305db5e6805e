"""Per-tick systems. Each is a callable ``(state, ctx) -> None``.

The engine runs them in this order every tick: rotation, lane transition,
collision, next-orbit spawn, power-up pickup, orbit completion, effect
expiry. A collision without a shield ends the run and stops the tick.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

import orbit_runner.bus as signals
from orbit_runner.geometry import collision_window, ease_toward, has_reached
from orbit_runner.levelgen import LevelGenerator, generate_level
from orbit_runner.powerups import powerup_due, powerup_expired, spawn_powerup
from orbit_runner.state import RunState, advance_phase, refresh_speed
from orbit_runner.types import GAME_OVER, ActiveEffect, Hazard

if TYPE_CHECKING:
    from orbit_runner.types import TickContext

logger = logging.getLogger(__name__)

System = Callable[[RunState, "TickContext"], None]


def _window(state: RunState, ctx: TickContext) -> float:
    return collision_window(state.runner.rotation_speed, ctx.config)


def _reached(state: RunState, ctx: TickContext, angle: float, window: float) -> bool:
    return has_reached(state.runner.angle, angle, window, ctx.config.reach_tolerance)


def change_lane(state: RunState, lane: int, ctx: TickContext) -> bool:
    """Retarget the runner at ``lane``. Out-of-range lanes are ignored."""
    runner = state.runner
    if lane == runner.lane or not 0 <= lane < ctx.geometry.lane_count:
        return False
    runner.switch_direction = 1 if lane > runner.lane else -1
    runner.lane = lane
    runner.target_radius = ctx.geometry.radius(lane)
    runner.transitioning = True
    ctx.publish(signals.LANE_CHANGED, lane=lane)
    return True


def rotation_system(state: RunState, ctx: TickContext) -> None:
    state.runner.angle += state.runner.rotation_speed * ctx.dt


def lane_transition_system(state: RunState, ctx: TickContext) -> None:
    runner = state.runner
    if not runner.transitioning:
        return
    runner.radius, settled = ease_toward(
        runner.radius,
        runner.target_radius,
        ctx.config.transition_factor,
        ctx.config.snap_distance,
    )
    if settled:
        runner.transitioning = False


def _hazard_data(hazard: Hazard) -> dict:
    return {"angle": hazard.angle, "lane": hazard.lane, "orbit_level": hazard.orbit_level}


def collision_system(state: RunState, ctx: TickContext) -> None:
    window = _window(state, ctx)
    for hazard in state.hazards:
        if hazard.passed or hazard.orbit_level != state.current_orbit_level:
            continue
        if not _reached(state, ctx, hazard.angle, window):
            continue
        if ctx.geometry.same_lane(state.runner.radius, hazard.lane):
            if state.invincible:
                hazard.passed = True
                ctx.publish(signals.HAZARD_ABSORBED, **_hazard_data(hazard))
                continue
            advance_phase(state, GAME_OVER)
            ctx.publish(signals.GAME_OVER, score=state.score, **_hazard_data(hazard))
            ctx.request_stop()
            return
        hazard.passed = True
        state.score += state.level
        ctx.publish(
            signals.HAZARD_PASSED,
            score=state.score,
            delay=ctx.config.fade_delay,
            **_hazard_data(hazard),
        )


def spawn_system(state: RunState, ctx: TickContext) -> None:
    """Materialise next-orbit hazards as the runner sweeps over their slots."""
    window = _window(state, ctx)
    for hazard in state.hazards:
        if hazard.spawned or hazard.orbit_level != state.next_orbit_level:
            continue
        if _reached(state, ctx, hazard.angle, window):
            hazard.spawned = True
            ctx.publish(signals.HAZARD_SPAWNED, delay=ctx.config.fade_delay, **_hazard_data(hazard))


def activate_effect(state: RunState, kind: str, ctx: TickContext) -> bool:
    """Start ``kind`` unless another effect is already running."""
    if state.effect is not None:
        return False
    state.effect = ActiveEffect(kind=kind, start_angle=state.runner.angle)
    refresh_speed(state, ctx.config)
    ctx.publish(signals.EFFECT_ACTIVATED, kind=kind, start_angle=state.runner.angle)
    return True


def pickup_system(state: RunState, ctx: TickContext) -> None:
    powerup = state.powerup
    if powerup is None or powerup.collected:
        return
    if not _reached(state, ctx, powerup.angle, _window(state, ctx)):
        return
    if not ctx.geometry.same_lane(state.runner.radius, powerup.lane):
        return
    powerup.collected = True
    state.powerup = None
    # a running effect is never replaced; the pickup is consumed without one
    ctx.publish(
        signals.POWERUP_COLLECTED,
        kind=powerup.kind,
        angle=powerup.angle,
        lane=powerup.lane,
        activated=state.effect is None,
    )
    activate_effect(state, powerup.kind, ctx)


def make_orbit_system(generator: LevelGenerator | None = None) -> System:
    """Return the system that rolls the runner into the next orbit."""

    def orbit_system(state: RunState, ctx: TickContext) -> None:
        runner = state.runner
        if runner.angle < 360.0:
            return
        runner.angle -= 360.0
        if state.effect is not None:
            state.effect.start_angle -= 360.0

        state.current_orbit_level += 1
        state.next_orbit_level += 1
        state.level += 1
        refresh_speed(state, ctx.config)

        state.hazards.extend(
            generate_level(
                state.next_orbit_level,
                ctx.geometry,
                ctx.random,
                state.powerup,
                ctx.config,
                generator,
            )
        )

        kept: list[Hazard] = []
        for hazard in state.hazards:
            if hazard.orbit_level < state.current_orbit_level:
                ctx.publish(signals.HAZARD_DESPAWNED, **_hazard_data(hazard))
                continue
            if hazard.orbit_level == state.current_orbit_level and not hazard.spawned:
                hazard.spawned = True
                ctx.publish(signals.HAZARD_SPAWNED, delay=0.0, **_hazard_data(hazard))
            kept.append(hazard)
        state.hazards = kept

        if state.powerup is not None and powerup_expired(state.powerup, state.level, ctx.config):
            ctx.publish(
                signals.POWERUP_DESPAWNED,
                kind=state.powerup.kind,
                angle=state.powerup.angle,
                lane=state.powerup.lane,
            )
            state.powerup = None
        if state.powerup is None and powerup_due(state.level, ctx.config):
            state.powerup = spawn_powerup(
                state.hazards,
                ctx.geometry,
                ctx.random,
                state.current_orbit_level,
                state.level,
                ctx.config,
            )
            if state.powerup is not None:
                ctx.publish(
                    signals.POWERUP_SPAWNED,
                    kind=state.powerup.kind,
                    angle=state.powerup.angle,
                    lane=state.powerup.lane,
                )

        ctx.publish(signals.LEVEL_UP, level=state.level, speed=runner.rotation_speed)
        logger.debug("Level %d at %.1f deg/s", state.level, runner.rotation_speed)

    return orbit_system


def effect_progress(angle: float, start_angle: float) -> float:
    progress = angle - start_angle
    if progress < 0:
        progress += 360.0
    return progress


def effect_system(state: RunState, ctx: TickContext) -> None:
    effect = state.effect
    if effect is None:
        return
    cfg = ctx.config
    progress = effect_progress(state.runner.angle, effect.start_angle)
    thresholds = cfg.effect_warning_thresholds
    while effect.warnings < len(thresholds) and progress >= thresholds[effect.warnings]:
        effect.warnings += 1
        ctx.publish(signals.EFFECT_EXPIRING, kind=effect.kind, stage=effect.warnings, progress=progress)
    if progress >= cfg.effect_duration:
        state.effect = None
        refresh_speed(state, cfg)
        ctx.publish(signals.EFFECT_DEACTIVATED, kind=effect.kind)


def default_systems(generator: LevelGenerator | None = None) -> list[System]:
    return [
        rotation_system,
        lane_transition_system,
        collision_system,
        spawn_system,
        pickup_system,
        make_orbit_system(generator),
        effect_system,
    ]
