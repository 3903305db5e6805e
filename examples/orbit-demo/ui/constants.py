"""Layout constants and color definitions."""

# Timing
FPS = 60

# Layout dimensions
SCREEN_W = 800
SCREEN_H = 640
STATUS_H = 40

# Sprites
RUNNER_RADIUS = 9
HAZARD_RADIUS = 8
POWERUP_RADIUS = 7

# Colors
BG_COLOR = (12, 12, 24)
LANE_COLOR = (60, 60, 90)
RUNNER_COLOR = (90, 200, 255)
RUNNER_SHIELDED = (255, 255, 255)
STATUS_BG = (30, 30, 46)
TEXT_COLOR = (200, 200, 210)
TEXT_DIM = (120, 120, 140)
GAME_OVER_COLOR = (255, 80, 80)

# Power-up kind -> color
POWERUP_COLORS: dict[str, tuple[int, int, int]] = {
    "speed-reduction": (80, 220, 120),
    "invincibility": (255, 220, 60),
}
