"""Orbit Demo - Play the orbit runner core in a pygame window.

Exercises orbit_runner's Engine, signals, power-ups and resize handling.

Controls:
  Left    Move one lane outward
  Right   Move one lane inward
  Space   Switch lane (bounces between the edges)
  Click   Switch lane
  R       Restart after game over
  D       Start a daily-seeded run
  Esc     Quit
"""
from __future__ import annotations

import logging
import sys

import pygame

from orbit_runner import MOVE_LEFT, MOVE_RIGHT, RESTART, SWITCH_LANE, Engine, GameOverReport

from ui.constants import BG_COLOR, FPS, SCREEN_H, SCREEN_W, STATUS_H
from ui.ring import draw_ring
from ui.status import draw_banner, draw_status_bar

KEY_INTENTS = {
    pygame.K_LEFT: MOVE_LEFT,
    pygame.K_RIGHT: MOVE_RIGHT,
    pygame.K_SPACE: SWITCH_LANE,
    pygame.K_r: RESTART,
}


class GameState:
    """Holds the engine and the purely cosmetic view state."""

    def __init__(self, daily: bool = False) -> None:
        size = (SCREEN_W, SCREEN_H - STATUS_H)
        if daily:
            self.engine = Engine.for_day(width=size[0], height=size[1])
        else:
            self.engine = Engine(width=size[0], height=size[1])
        self.engine.on_game_over(self._on_game_over)
        self.fading: list[list] = []
        self.warning = 0

        bus = self.engine.bus
        bus.subscribe("hazard_passed", self._on_hazard_passed)
        bus.subscribe("effect_expiring", self._on_effect_expiring)
        for name in ("effect_activated", "effect_deactivated", "run_started"):
            bus.subscribe(name, self._on_effect_reset)
        self.last_report: GameOverReport | None = None
        self.result = self.engine.tick(0.0)

    def _on_game_over(self, report: GameOverReport) -> None:
        self.last_report = report

    def _on_hazard_passed(self, signal: str, data: dict) -> None:
        geometry = self.engine.geometry
        x, y = geometry.position(data["angle"], geometry.radius(data["lane"]))
        self.fading.append([x, y, (255, 255, 255), data["delay"]])

    def _on_effect_expiring(self, signal: str, data: dict) -> None:
        self.warning = data["stage"]

    def _on_effect_reset(self, signal: str, data: dict) -> None:
        self.warning = 0

    def step(self, dt: float) -> None:
        self.result = self.engine.tick(dt)
        for entry in self.fading:
            entry[3] -= dt
        self.fading = [e for e in self.fading if e[3] > 0]


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    pygame.init()
    screen = pygame.display.set_mode((SCREEN_W, SCREEN_H), pygame.RESIZABLE)
    pygame.display.set_caption("Orbit Demo - orbit_runner")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("monospace", 13)
    big = pygame.font.SysFont("monospace", 24)

    state = GameState()
    running = True

    while running:
        dt = clock.tick(FPS) / 1000.0

        # --- Events ---
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.VIDEORESIZE:
                screen = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
                state.engine.resize(event.w, max(event.h - STATUS_H, 1))

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_d and state.result.phase != "playing":
                    state.engine.close()
                    state = GameState(daily=True)
                elif event.key in KEY_INTENTS:
                    state.engine.request(KEY_INTENTS[event.key])
                elif state.result.phase == "idle":
                    state.engine.request(SWITCH_LANE)

            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                state.engine.request(SWITCH_LANE)

        # --- Tick ---
        state.step(dt)

        # --- Render ---
        screen.fill(BG_COLOR)
        w, h = screen.get_size()
        draw_ring(screen, state.engine, (w / 2, (h - STATUS_H) / 2), state.fading)
        draw_status_bar(screen, font, state.result, state.engine.best_score, state.warning)
        draw_banner(screen, big, state.result.phase)

        pygame.display.flip()

    state.engine.close()
    pygame.quit()
    sys.exit()


if __name__ == "__main__":
    main()
