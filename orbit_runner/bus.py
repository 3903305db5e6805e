"""In-memory pub/sub signal bus with per-tick flush semantics."""
from __future__ import annotations

from typing import Any, Callable

from orbit_runner.types import Signal

_Handler = Callable[[str, dict[str, Any]], None]

# Signal names published by the simulation.
RUN_STARTED = "run_started"
LANE_CHANGED = "lane_changed"
HAZARD_SPAWNED = "hazard_spawned"
HAZARD_PASSED = "hazard_passed"
HAZARD_ABSORBED = "hazard_absorbed"
HAZARD_DESPAWNED = "hazard_despawned"
POWERUP_SPAWNED = "powerup_spawned"
POWERUP_COLLECTED = "powerup_collected"
POWERUP_DESPAWNED = "powerup_despawned"
EFFECT_ACTIVATED = "effect_activated"
EFFECT_EXPIRING = "effect_expiring"
EFFECT_DEACTIVATED = "effect_deactivated"
LEVEL_UP = "level_up"
GAME_OVER = "game_over"


class SignalBus:
    """Queues signals during a tick; ``flush`` delivers and returns them.

    Handlers are called as ``handler(signal_name, data)`` in subscription
    order. Signals published from inside a handler wait for the next
    flush. The engine flushes once at the end of every tick, so a
    subscriber sees a whole tick at a time and ``TickResult.signals``
    carries the same tuple.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[_Handler]] = {}
        self._queue: list[tuple[str, dict[str, Any]]] = []

    def subscribe(self, signal_name: str, handler: _Handler) -> None:
        self._subscribers.setdefault(signal_name, []).append(handler)

    def unsubscribe(self, signal_name: str, handler: _Handler) -> None:
        handlers = self._subscribers.get(signal_name)
        if handlers is None:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            pass

    def publish(self, signal_name: str, **data: Any) -> None:
        self._queue.append((signal_name, data))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def flush(self) -> tuple[Signal, ...]:
        snapshot = self._queue
        self._queue = []
        for signal_name, data in snapshot:
            for handler in self._subscribers.get(signal_name, []):
                handler(signal_name, data)
        return tuple(Signal(name, data) for name, data in snapshot)

    def clear(self) -> None:
        self._queue.clear()
