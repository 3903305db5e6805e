"""Tests for the engine: intents, run lifecycle and the tick loop."""
from __future__ import annotations

import logging
import random
import threading
import time
from datetime import date

import pytest

from orbit_runner import (
    MOVE_LEFT,
    MOVE_RIGHT,
    RESTART,
    SHIELD,
    SLOW,
    SWITCH_LANE,
    ActiveEffect,
    Engine,
    Hazard,
    InvalidTransition,
    OrbitConfig,
    is_solvable,
)
from orbit_runner.config import TWO_LANE
from orbit_runner.state import refresh_speed
from orbit_runner.types import GAME_OVER, IDLE, PLAYING


class EmptyGenerator:
    """Orbits without hazards, for isolating runner and power-up behaviour."""

    def generate(self, orbit_level, lane_count, rng, powerup=None):
        return []


class FixedGenerator:
    """One hazard per orbit at the same (angle, lane) cell."""

    def __init__(self, angle: float = 90.0, lane: int = 2) -> None:
        self.angle = angle
        self.lane = lane

    def generate(self, orbit_level, lane_count, rng, powerup=None):
        return [Hazard(angle=self.angle, lane=self.lane, orbit_level=orbit_level)]


# Ten degrees per second with one-second ticks keeps arithmetic exact.
STEADY = OrbitConfig(base_rotation_speed=10.0, speed_step=0.0, max_delta=1.0)


@pytest.fixture
def steady_engine():
    engine = Engine(config=STEADY, seed=1, generator=EmptyGenerator())
    yield engine
    engine.close()


@pytest.fixture
def engine():
    engine = Engine(seed=42)
    yield engine
    engine.close()


def _run_until_over(engine: Engine, dt: float = 0.1, limit: int = 10_000):
    for _ in range(limit):
        result = engine.tick(dt)
        if result.game_over:
            return result
    raise AssertionError("run never ended")


# --- Idle ---


def test_new_engine_is_idle(engine):
    assert engine.state.phase == IDLE
    assert engine.run_id == 0
    result = engine.tick(0.1)
    assert result.phase == IDLE
    assert result.angle == 0.0
    assert result.tick_number == 1


def test_any_intent_starts_the_run(engine):
    result = engine.tick(0.1, MOVE_RIGHT)
    assert result.phase == PLAYING
    assert result.run_id == 1
    assert "run_started" in result.names()
    # the starting tick does not move the runner
    assert result.angle == 0.0
    assert result.lane == 2


def test_start_generates_two_orbits(engine):
    engine.start()
    state = engine.state
    assert {h.orbit_level for h in state.hazards} <= {1, 2}
    assert all(h.spawned for h in state.orbit_hazards(1))
    assert not any(h.spawned for h in state.orbit_hazards(2))
    assert all(h.angle >= 90.0 for h in state.orbit_hazards(1))
    for level in (1, 2):
        assert is_solvable(state.orbit_hazards(level), 3, 16)


def test_start_twice_rejected(engine):
    engine.start()
    with pytest.raises(InvalidTransition):
        engine.start()


def test_unknown_intent_rejected(engine):
    with pytest.raises(ValueError):
        engine.request("jump")


def test_negative_delta_rejected(engine):
    with pytest.raises(ValueError):
        engine.tick(-1.0)


# --- Movement ---


def test_move_right_goes_inward(steady_engine):
    steady_engine.start()
    result = steady_engine.tick(1.0, MOVE_RIGHT)
    assert result.lane == 1
    assert "lane_changed" in result.names()
    for _ in range(60):
        result = steady_engine.tick(0.01)
    assert result.radius == steady_engine.geometry.radius(1)


def test_move_left_at_outer_lane_is_ignored(steady_engine):
    steady_engine.start()
    result = steady_engine.tick(1.0, MOVE_LEFT)
    assert result.lane == 2
    assert "lane_changed" not in result.names()


def test_move_right_stops_at_inner_lane(steady_engine):
    steady_engine.start()
    for _ in range(4):
        steady_engine.request(MOVE_RIGHT)
    result = steady_engine.tick(0.0)
    assert result.lane == 0
    assert result.names().count("lane_changed") == 2


def test_switch_lane_toggles_two_lane_ring():
    engine = Engine(config=TWO_LANE, seed=3, generator=EmptyGenerator())
    engine.start()
    lanes = [engine.tick(0.0, SWITCH_LANE).lane for _ in range(4)]
    assert lanes == [0, 1, 0, 1]


def test_switch_lane_bounces_on_three_lanes(steady_engine):
    steady_engine.start()
    lanes = [steady_engine.tick(0.0, SWITCH_LANE).lane for _ in range(5)]
    assert lanes == [1, 0, 1, 2, 1]


def test_delta_is_clamped(steady_engine):
    steady_engine.start()
    result = steady_engine.tick(30.0)
    assert result.angle == pytest.approx(10.0)


# --- Orbits and levels ---


def test_rollover_past_360():
    cfg = OrbitConfig(base_rotation_speed=2.0, speed_step=0.0, max_delta=1.0)
    engine = Engine(config=cfg, seed=5, generator=EmptyGenerator())
    engine.start()
    engine.state.runner.angle = 359.5

    result = engine.tick(1.0)

    assert result.angle == pytest.approx(1.5)
    assert result.level == 2
    assert result.current_orbit_level == 2
    assert engine.state.next_orbit_level == 3
    assert "level_up" in result.names()


def test_only_two_orbits_live(engine):
    engine.start()
    for hazard in engine.state.orbit_hazards(1):
        hazard.passed = True
    engine.state.runner.angle = 359.9
    engine.tick(0.25)
    assert {h.orbit_level for h in engine.state.hazards} <= {2, 3}


def test_speed_rises_with_level():
    cfg = OrbitConfig(base_rotation_speed=10.0, max_delta=1.0)
    engine = Engine(config=cfg, seed=1, generator=EmptyGenerator())
    engine.start()
    engine.state.runner.angle = 355.0
    result = engine.tick(1.0)
    assert result.rotation_speed == pytest.approx(10.1)


# --- Scoring and game over ---


def test_passing_hazard_scores():
    engine = Engine(config=STEADY, seed=1, generator=FixedGenerator(lane=0))
    engine.start()
    signals = []
    for _ in range(10):
        signals.extend(engine.tick(1.0).names())
    assert engine.state.score == 1
    assert signals.count("hazard_passed") == 1


def test_collision_ends_run_once():
    engine = Engine(config=STEADY, seed=1, generator=FixedGenerator(lane=2), sink_workers=0)
    reports = []
    engine.on_game_over(reports.append)
    engine.start()

    result = _run_until_over(engine, dt=1.0)

    assert result.phase == GAME_OVER
    assert result.report is not None
    assert "game_over" in result.names()
    frozen_angle = result.angle
    for _ in range(5):
        later = engine.tick(1.0)
        assert later.game_over is False
        assert later.angle == frozen_angle
    assert len(reports) == 1
    assert reports[0].run_id == 1


def test_game_over_stops_remaining_systems():
    engine = Engine(config=STEADY, seed=1, generator=EmptyGenerator())
    engine.start()
    engine.state.hazards.append(Hazard(angle=0.0, lane=2, orbit_level=1, spawned=True))
    engine.state.runner.angle = 359.5
    result = engine.tick(1.0)
    assert result.phase == GAME_OVER
    assert result.level == 1
    assert "level_up" not in result.names()


def test_shield_survives_collision():
    engine = Engine(config=STEADY, seed=1, generator=FixedGenerator(lane=2))
    engine.start()
    engine.state.effect = ActiveEffect(kind=SHIELD, start_angle=0.0)
    refresh_speed(engine.state, engine.config)
    names = []
    for _ in range(10):
        result = engine.tick(1.0)
        names.extend(result.names())
    assert result.phase == PLAYING
    assert "hazard_absorbed" in names
    assert engine.state.score == 0


def test_failing_sink_is_logged(caplog):
    engine = Engine(config=STEADY, seed=1, generator=FixedGenerator(lane=2), sink_workers=0)

    def broken(report):
        raise RuntimeError("leaderboard down")

    engine.on_game_over(broken)
    engine.start()
    with caplog.at_level(logging.ERROR, logger="orbit_runner.engine"):
        result = _run_until_over(engine, dt=1.0)
    assert result.phase == GAME_OVER
    assert "failed" in caplog.text


def test_threaded_sink_receives_report():
    engine = Engine(config=STEADY, seed=1, generator=FixedGenerator(lane=2))
    delivered = threading.Event()
    received = []

    def sink(report):
        received.append(report)
        delivered.set()

    engine.on_game_over(sink)
    engine.start()
    result = _run_until_over(engine, dt=1.0)
    assert delivered.wait(timeout=5)
    assert received == [result.report]
    engine.close()


def test_slow_sink_does_not_hold_up_game_over_tick():
    engine = Engine(config=STEADY, seed=1, generator=FixedGenerator(lane=2))
    release = threading.Event()
    finished = threading.Event()

    def slow(report):
        release.wait(timeout=5)
        finished.set()

    engine.on_game_over(slow)
    engine.start()
    started = time.perf_counter()
    result = _run_until_over(engine, dt=1.0)
    elapsed = time.perf_counter() - started

    assert result.game_over is True
    assert not finished.is_set()
    assert elapsed < 1.0
    release.set()
    assert finished.wait(timeout=5)
    engine.close()


def test_best_score_tracks_runs():
    engine = Engine(config=STEADY, seed=1, generator=FixedGenerator(lane=2))
    engine.start()
    engine.state.score = 17
    _run_until_over(engine, dt=1.0)
    assert engine.best_score == 17


# --- Restart ---


def test_restart_only_after_game_over(steady_engine):
    steady_engine.start()
    with pytest.raises(InvalidTransition):
        steady_engine.restart()


def test_restart_intent_ignored_while_playing(steady_engine):
    steady_engine.start()
    result = steady_engine.tick(1.0, RESTART)
    assert result.run_id == 1
    assert result.angle == pytest.approx(10.0)


def test_restart_after_game_over():
    engine = Engine(config=STEADY, seed=1, generator=FixedGenerator(lane=2))
    engine.start()
    _run_until_over(engine, dt=1.0)

    ignored = engine.tick(1.0, MOVE_RIGHT)
    assert ignored.phase == GAME_OVER

    result = engine.tick(1.0, RESTART)
    assert result.phase == PLAYING
    assert result.run_id == 2
    assert result.score == 0
    assert result.level == 1
    assert result.angle == 0.0
    assert result.lane == 2
    assert all(s.data["run_id"] == 2 for s in result.signals)


def test_restart_on_any_input():
    cfg = OrbitConfig(
        base_rotation_speed=10.0, speed_step=0.0, max_delta=1.0, restart_on_any_input=True
    )
    engine = Engine(config=cfg, seed=1, generator=FixedGenerator(lane=2))
    engine.start()
    _run_until_over(engine, dt=1.0)
    result = engine.tick(1.0, MOVE_LEFT)
    assert result.phase == PLAYING
    assert result.run_id == 2


# --- Effects through the tick loop ---


@pytest.mark.parametrize("start", [170.0, 300.0])
def test_effect_lasts_half_an_orbit(steady_engine, start):
    steady_engine.start()
    state = steady_engine.state
    state.runner.angle = start
    state.effect = ActiveEffect(kind=SHIELD, start_angle=start)
    refresh_speed(state, steady_engine.config)

    for _ in range(17):
        result = steady_engine.tick(1.0)
        assert result.invincible is True
    result = steady_engine.tick(1.0)

    assert result.invincible is False
    assert result.effect is None
    assert "effect_deactivated" in result.names()


def test_slow_effect_restores_speed(steady_engine):
    steady_engine.start()
    state = steady_engine.state
    state.effect = ActiveEffect(kind=SLOW, start_angle=0.0)
    refresh_speed(state, steady_engine.config)

    speeds = [steady_engine.tick(1.0).rotation_speed for _ in range(36)]

    assert speeds[:-1] == [5.0] * 35
    assert speeds[-1] == 10.0
    assert steady_engine.state.effect is None


def test_never_more_than_one_powerup_or_effect(steady_engine):
    steady_engine.start()
    rng = random.Random(11)
    active = 0
    collected = 0
    for _ in range(3000):
        intent = rng.choice([None, None, MOVE_LEFT, MOVE_RIGHT, SWITCH_LANE])
        result = steady_engine.tick(1.0, intent)
        for signal in result.signals:
            if signal.name == "effect_activated":
                active += 1
                collected += 1
            elif signal.name == "effect_deactivated":
                active -= 1
        assert active in (0, 1)
    assert steady_engine.state.level > 60
    assert collected > 0


# --- Resize ---


def test_resize_keeps_logical_lane(steady_engine):
    steady_engine.start()
    steady_engine.tick(0.0, MOVE_RIGHT)
    for _ in range(60):
        steady_engine.tick(0.0)
    steady_engine.resize(1600, 1200)
    runner = steady_engine.state.runner
    assert runner.lane == 1
    assert runner.radius == steady_engine.geometry.radius(1)
    assert runner.target_radius == steady_engine.geometry.radius(1)


def test_resize_mid_transition_rescales(steady_engine):
    steady_engine.start()
    steady_engine.tick(0.0, MOVE_RIGHT)
    steady_engine.tick(0.0)
    before = steady_engine.state.runner.radius
    steady_engine.resize(1600, 1200)
    runner = steady_engine.state.runner
    assert runner.radius == pytest.approx(before * 2)
    assert runner.transitioning is True
    assert runner.target_radius == steady_engine.geometry.radius(1)


def test_mobile_layout_uses_more_of_the_screen():
    desktop = Engine(seed=1, width=400, height=700)
    mobile = Engine(seed=1, width=400, height=700, mobile=True)
    assert mobile.geometry.outer_radius > desktop.geometry.outer_radius


# --- Determinism ---


def _replay(engine: Engine, steps: int = 400):
    rng = random.Random(99)
    out = []
    for _ in range(steps):
        intent = rng.choice([None, None, None, MOVE_LEFT, MOVE_RIGHT])
        out.append(engine.tick(0.05, intent))
    return out


def test_same_seed_same_run():
    a = Engine(seed=2024)
    b = Engine(seed=2024)
    assert _replay(a) == _replay(b)


def test_for_day_shares_levels():
    day = date(2026, 10, 17)
    a = Engine.for_day(day)
    b = Engine.for_day(day)
    assert a.seed == b.seed == 20261017
    a.start()
    b.start()
    assert a.state.hazards == b.state.hazards


def test_custom_system_runs_each_tick(steady_engine):
    calls = []
    steady_engine.add_system(lambda state, ctx: calls.append(ctx.tick_number))
    steady_engine.start()
    steady_engine.tick(1.0)
    steady_engine.tick(1.0)
    assert calls == [1, 2]


def test_bus_subscribers_see_run_id(steady_engine):
    seen = []
    steady_engine.bus.subscribe("run_started", lambda name, data: seen.append(data))
    steady_engine.tick(0.1, MOVE_LEFT)
    assert seen == [{"run_id": 1}]
