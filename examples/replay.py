"""Headless replay -- play a run without a window, then replay it.

Demonstrates:
- Driving the engine with variable time steps and intents
- Reading signals out of each TickResult
- A game-over sink receiving the final report
- Snapshot/restore giving an identical replay from the same point

Run: python examples/replay.py [seed]
"""

import json
import logging
import sys

from orbit_runner import MOVE_LEFT, MOVE_RIGHT, Engine
from orbit_runner.geometry import slot_index

DT = 1 / 30


def autopilot(engine: Engine) -> str | None:
    """Dodge into a free neighbour lane when the next slot is blocked."""
    state = engine.state
    cfg = engine.config
    ahead = (slot_index(state.runner.angle, cfg.slot_count) + 1) % cfg.slot_count
    blocked = {
        h.lane
        for h in state.orbit_hazards(state.current_orbit_level)
        if not h.passed and slot_index(h.angle, cfg.slot_count) == ahead
    }
    lane = state.runner.lane
    if lane not in blocked:
        return None
    for intent, target in ((MOVE_RIGHT, lane - 1), (MOVE_LEFT, lane + 1)):
        if 0 <= target < cfg.lane_count and target not in blocked:
            return intent
    return None


def report_progress(engine: Engine) -> None:
    """Print level-ups and pickups as the bus delivers them."""

    def on_level_up(signal: str, data: dict) -> None:
        print(f"  level {data['level']:3d}  speed={data['speed']:.1f} deg/s")

    def on_pickup(signal: str, data: dict) -> None:
        suffix = "" if data["activated"] else " (effect already running)"
        print(f"  picked up {data['kind']}{suffix}")

    engine.bus.subscribe("level_up", on_level_up)
    engine.bus.subscribe("powerup_collected", on_pickup)


def play(engine: Engine, limit: int = 20_000) -> list:
    intents = []
    for _ in range(limit):
        intent = autopilot(engine)
        intents.append(intent)
        result = engine.tick(DT, intent)
        if result.game_over:
            break
    return intents


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    seed = int(sys.argv[1]) if len(sys.argv) > 1 else 42

    print(f"=== Orbit run, seed {seed} ===\n")
    engine = Engine(seed=seed)
    engine.on_game_over(lambda report: print(f"\n  final report: {report}"))
    report_progress(engine)
    engine.start()
    snap = json.dumps(engine.snapshot())

    intents = play(engine)
    score = engine.state.score

    print("\n=== Replaying from the opening snapshot ===")
    replay = Engine(seed=0)
    replay.restore(json.loads(snap))
    for intent in intents:
        replay.tick(DT, intent)

    print(f"\n  original score {score}, replayed score {replay.state.score}")
    print(f"  identical: {score == replay.state.score}")
    engine.close()
    replay.close()


if __name__ == "__main__":
    main()
