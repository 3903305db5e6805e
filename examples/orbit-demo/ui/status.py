"""Bottom status bar and game-over banner."""
from __future__ import annotations

import pygame

from orbit_runner import TickResult

from ui.constants import GAME_OVER_COLOR, STATUS_BG, STATUS_H, TEXT_COLOR, TEXT_DIM


def draw_status_bar(
    surface: pygame.Surface,
    font: pygame.font.Font,
    result: TickResult,
    best: int,
    warning: int,
) -> None:
    w, h = surface.get_size()
    y = h - STATUS_H
    pygame.draw.rect(surface, STATUS_BG, (0, y, w, STATUS_H))

    text = f"Score: {result.score}   Level: {result.level}   Best: {best}"
    if result.effect is not None:
        text += f"   Effect: {result.effect}"
        if warning:
            text += " " + "!" * warning
    surface.blit(font.render(text, True, TEXT_COLOR), (10, y + 6))
    hint = "Left/Right: lane  Space/Click: switch  R: restart  Esc: quit"
    surface.blit(font.render(hint, True, TEXT_DIM), (10, y + 22))


def draw_banner(surface: pygame.Surface, font: pygame.font.Font, phase: str) -> None:
    if phase == "idle":
        label, color = "Press any key to start", TEXT_COLOR
    elif phase == "game_over":
        label, color = "GAME OVER - press R", GAME_OVER_COLOR
    else:
        return
    text = font.render(label, True, color)
    w, h = surface.get_size()
    surface.blit(text, ((w - text.get_width()) // 2, (h - STATUS_H) // 2 - 8))
