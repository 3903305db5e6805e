"""Engine - run ownership, intents, the tick entry point and snapshots."""
from __future__ import annotations

import logging
import os
import random
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any, Callable

import orbit_runner.bus as signals
from orbit_runner.bus import SignalBus
from orbit_runner.clock import Clock
from orbit_runner.config import OrbitConfig
from orbit_runner.geometry import LaneGeometry
from orbit_runner.levelgen import LevelGenerator, daily_seed, generate_level, make_generator
from orbit_runner.state import (
    RunState,
    advance_phase,
    from_dict,
    new_run,
    refresh_speed,
    to_dict,
)
from orbit_runner.systems import System, change_lane, default_systems
from orbit_runner.types import (
    GAME_OVER,
    IDLE,
    INTENTS,
    MOVE_LEFT,
    MOVE_RIGHT,
    PLAYING,
    RESTART,
    SWITCH_LANE,
    GameOverReport,
    InvalidTransition,
    Signal,
    SnapshotError,
    TickContext,
    TickResult,
)

logger = logging.getLogger(__name__)

_SNAPSHOT_VERSION = 1

GameOverSink = Callable[[GameOverReport], None]


class GameOverDispatcher:
    """Delivers the final score to persistence and leaderboard sinks.

    Sinks run after the run has already ended; a failing sink is logged and
    never reaches the simulation. Sinks run on a thread pool so slow
    submissions cannot hold up the tick that ends the run. ``workers=0``
    delivers inline, for tests.
    """

    def __init__(self, workers: int = 1) -> None:
        self._sinks: list[GameOverSink] = []
        self._executor = ThreadPoolExecutor(max_workers=workers) if workers > 0 else None

    def add(self, sink: GameOverSink) -> None:
        self._sinks.append(sink)

    def remove(self, sink: GameOverSink) -> None:
        try:
            self._sinks.remove(sink)
        except ValueError:
            pass

    def dispatch(self, report: GameOverReport) -> None:
        for sink in list(self._sinks):
            if self._executor is not None:
                self._executor.submit(self._deliver, sink, report)
            else:
                self._deliver(sink, report)

    def _deliver(self, sink: GameOverSink, report: GameOverReport) -> None:
        try:
            sink(report)
        except Exception:
            logger.exception("Game-over sink %r failed for run %d", sink, report.run_id)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)


class Engine:
    """Owns one run of the game and advances it tick by tick.

    Intents queued with ``request`` (or passed to ``tick``) are applied
    atomically at the start of the next tick. ``tick`` never overlaps
    itself; it mutates the run state synchronously and returns a
    ``TickResult`` carrying every signal published during the tick.
    """

    def __init__(
        self,
        config: OrbitConfig | None = None,
        seed: int | None = None,
        width: float | None = None,
        height: float | None = None,
        mobile: bool = False,
        generator: LevelGenerator | None = None,
        sink_workers: int = 1,
    ) -> None:
        self._config = config if config is not None else OrbitConfig()
        if seed is None:
            seed = int.from_bytes(os.urandom(8))
        self._seed = seed
        self._rng = random.Random(seed)

        self._width = width if width is not None else self._config.default_width
        self._height = height if height is not None else self._config.default_height
        self._mobile = mobile
        self._geometry = LaneGeometry.from_playfield(
            self._width, self._height, mobile, self._config
        )

        self._generator = generator if generator is not None else make_generator(self._config)
        self._clock = Clock(self._config.max_delta)
        self._bus = SignalBus()
        self._systems: list[System] = default_systems(self._generator)
        self._pending: list[str] = []
        self._stop_requested = False
        self._dispatcher = GameOverDispatcher(sink_workers)
        self._run_id = 0
        self._best_score = 0
        self._state = new_run(self._config, self._geometry)

    @classmethod
    def for_day(cls, day: date | None = None, **kwargs: Any) -> Engine:
        """Engine seeded so every run on ``day`` sees the same levels."""
        return cls(seed=daily_seed(day), **kwargs)

    # -- Properties --

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def config(self) -> OrbitConfig:
        return self._config

    @property
    def geometry(self) -> LaneGeometry:
        return self._geometry

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def bus(self) -> SignalBus:
        return self._bus

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def run_id(self) -> int:
        return self._run_id

    @property
    def best_score(self) -> int:
        return self._best_score

    # -- Registration --

    def add_system(self, system: System) -> None:
        """Append a system after the built-in simulation systems."""
        self._systems.append(system)

    def on_game_over(self, sink: GameOverSink) -> None:
        self._dispatcher.add(sink)

    def close(self) -> None:
        self._dispatcher.shutdown()

    # -- Run lifecycle --

    def _request_stop(self) -> None:
        self._stop_requested = True

    def _publish(self, signal_name: str, **data: Any) -> None:
        self._bus.publish(signal_name, run_id=self._run_id, **data)

    def _context(self) -> TickContext:
        return self._clock.context(
            self._request_stop, self._rng, self._publish, self._config, self._geometry
        )

    def _begin_run(self) -> None:
        state = self._state
        advance_phase(state, PLAYING)
        self._run_id += 1
        refresh_speed(state, self._config)
        for orbit_level in (state.current_orbit_level, state.next_orbit_level):
            state.hazards.extend(
                generate_level(
                    orbit_level,
                    self._geometry,
                    self._rng,
                    state.powerup,
                    self._config,
                    self._generator,
                )
            )
        for hazard in state.orbit_hazards(state.current_orbit_level):
            hazard.spawned = True
            self._publish(
                signals.HAZARD_SPAWNED,
                angle=hazard.angle,
                lane=hazard.lane,
                orbit_level=hazard.orbit_level,
                delay=0.0,
            )
        self._publish(signals.RUN_STARTED)
        logger.info("Run %d started (seed %d)", self._run_id, self._seed)

    def start(self) -> None:
        """Leave Idle and begin playing."""
        if self._state.phase != IDLE:
            raise InvalidTransition(self._state.phase, PLAYING)
        self._begin_run()

    def restart(self) -> None:
        """Discard the finished run and start a fresh one."""
        if self._state.phase != GAME_OVER:
            raise InvalidTransition(self._state.phase, PLAYING)
        self._bus.clear()
        self._state = new_run(self._config, self._geometry)
        self._begin_run()

    def request(self, intent: str) -> None:
        if intent not in INTENTS:
            raise ValueError(f"Unknown intent {intent!r}")
        self._pending.append(intent)

    def resize(self, width: float, height: float, mobile: bool | None = None) -> None:
        """Recompute lane radii, keeping the runner's logical lane."""
        if mobile is not None:
            self._mobile = mobile
        old_outer = self._geometry.outer_radius
        self._geometry = LaneGeometry.from_playfield(width, height, self._mobile, self._config)
        self._width, self._height = width, height

        runner = self._state.runner
        scale = self._geometry.outer_radius / old_outer
        runner.radius *= scale
        runner.target_radius = self._geometry.radius(runner.lane)
        if not runner.transitioning:
            runner.radius = runner.target_radius

    def _apply_intents(self, ctx: TickContext) -> bool:
        """Apply queued intents. Returns False when the run (re)started."""
        intents, self._pending = self._pending, []
        simulate = True
        for intent in intents:
            state = self._state
            if state.phase == IDLE:
                self.start()
                simulate = False
            elif state.phase == GAME_OVER:
                if intent == RESTART or self._config.restart_on_any_input:
                    self.restart()
                    simulate = False
            elif intent == MOVE_LEFT:
                change_lane(state, state.runner.lane + 1, ctx)
            elif intent == MOVE_RIGHT:
                change_lane(state, state.runner.lane - 1, ctx)
            elif intent == SWITCH_LANE:
                runner = state.runner
                if not change_lane(state, runner.lane + runner.switch_direction, ctx):
                    change_lane(state, runner.lane - runner.switch_direction, ctx)
        return simulate

    def tick(self, delta: float, intent: str | None = None) -> TickResult:
        """Advance the run by ``delta`` seconds of wall-clock time."""
        if intent is not None:
            self.request(intent)
        self._clock.advance(delta)
        ctx = self._context()
        started_in = self._state.phase

        if self._apply_intents(ctx) and self._state.playing:
            self._stop_requested = False
            for system in self._systems:
                system(self._state, ctx)
                if self._stop_requested:
                    break

        report: GameOverReport | None = None
        state = self._state
        if started_in == PLAYING and state.game_over:
            report = GameOverReport(
                score=state.score,
                level=state.level,
                run_id=self._run_id,
                tick_number=self._clock.tick_number,
            )
            self._best_score = max(self._best_score, state.score)
            logger.info("Run %d over: score %d at level %d", self._run_id, state.score, state.level)

        flushed = self._bus.flush()
        if report is not None:
            self._dispatcher.dispatch(report)
        return self._result(flushed, report)

    def _result(self, flushed: tuple[Signal, ...], report: GameOverReport | None) -> TickResult:
        state = self._state
        runner = state.runner
        return TickResult(
            tick_number=self._clock.tick_number,
            run_id=self._run_id,
            phase=state.phase,
            score=state.score,
            level=state.level,
            current_orbit_level=state.current_orbit_level,
            angle=runner.angle,
            radius=runner.radius,
            lane=runner.lane,
            rotation_speed=runner.rotation_speed,
            invincible=state.invincible,
            effect=state.effect.kind if state.effect is not None else None,
            game_over=report is not None,
            report=report,
            signals=flushed,
        )

    # -- Snapshot / restore --

    def snapshot(self) -> dict[str, Any]:
        return {
            "version": _SNAPSHOT_VERSION,
            "seed": self._seed,
            "run_id": self._run_id,
            "best_score": self._best_score,
            "tick_number": self._clock.tick_number,
            "elapsed": self._clock.elapsed,
            "rng_state": _serialize_rng_state(self._rng.getstate()),
            "config": self._config.to_mapping(),
            "playfield": [self._width, self._height, self._mobile],
            "pending": list(self._pending),
            "state": to_dict(self._state),
        }

    def restore(self, data: dict[str, Any]) -> None:
        version = data.get("version")
        if version != _SNAPSHOT_VERSION:
            raise SnapshotError(
                f"Unsupported snapshot version {version!r}, expected {_SNAPSHOT_VERSION}"
            )
        if OrbitConfig.from_mapping(data["config"]) != self._config:
            raise SnapshotError("Snapshot was taken with a different configuration")

        width, height, mobile = data["playfield"]
        self._width, self._height, self._mobile = width, height, mobile
        self._geometry = LaneGeometry.from_playfield(width, height, mobile, self._config)
        self._clock.reset(data["tick_number"], data["elapsed"])
        self._seed = data["seed"]
        self._rng.setstate(_deserialize_rng_state(data["rng_state"]))
        self._run_id = data["run_id"]
        self._best_score = data["best_score"]
        self._pending = list(data["pending"])
        self._bus.clear()
        self._state = from_dict(data["state"])


def _serialize_rng_state(state: tuple[int, tuple[int, ...], float | None]) -> list[Any]:
    """Convert Random.getstate() tuple to JSON-compatible list."""
    version, internalstate, gauss_next = state
    return [version, list(internalstate), gauss_next]


def _deserialize_rng_state(data: list[Any]) -> tuple[int, tuple[int, ...], float | None]:
    version, internalstate, gauss_next = data
    return (version, tuple(internalstate), gauss_next)
