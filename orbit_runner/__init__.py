"""orbit_runner - Headless core of an orbit-runner arcade game."""

from orbit_runner.bus import SignalBus
from orbit_runner.config import OrbitConfig
from orbit_runner.engine import Engine, GameOverDispatcher
from orbit_runner.geometry import LaneGeometry, angular_distance, normalize_angle_diff
from orbit_runner.levelgen import (
    SafePathGenerator,
    SpacedGenerator,
    daily_seed,
    generate_level,
)
from orbit_runner.powerups import spawn_powerup
from orbit_runner.solver import find_safe_path, is_solvable
from orbit_runner.state import RunnerState, RunState
from orbit_runner.types import (
    MOVE_LEFT,
    MOVE_RIGHT,
    RESTART,
    SHIELD,
    SLOW,
    SWITCH_LANE,
    ActiveEffect,
    GameOverReport,
    GenerationInfeasible,
    Hazard,
    InvalidTransition,
    NoAvailableSlot,
    OrbitRunnerError,
    Powerup,
    Signal,
    SnapshotError,
    TickContext,
    TickResult,
)

__all__ = [
    "Engine",
    "GameOverDispatcher",
    "OrbitConfig",
    "LaneGeometry",
    "SignalBus",
    "RunState",
    "RunnerState",
    "SafePathGenerator",
    "SpacedGenerator",
    "generate_level",
    "spawn_powerup",
    "daily_seed",
    "find_safe_path",
    "is_solvable",
    "angular_distance",
    "normalize_angle_diff",
    "Hazard",
    "Powerup",
    "ActiveEffect",
    "Signal",
    "TickContext",
    "TickResult",
    "GameOverReport",
    "MOVE_LEFT",
    "MOVE_RIGHT",
    "SWITCH_LANE",
    "RESTART",
    "SLOW",
    "SHIELD",
    "OrbitRunnerError",
    "GenerationInfeasible",
    "NoAvailableSlot",
    "InvalidTransition",
    "SnapshotError",
]
