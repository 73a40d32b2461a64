# Scoring rules -------------------------------------------------------------
POINTS_PER_TILE = 10
CHAIN_BONUS_MULTIPLIER = 50
CHAIN_TIME_BONUS = 5.0
MAX_COMBO_MULTIPLIER = 5
TIME_BONUS_MULTIPLIER = 10
GEMS_PER_PATTERN = 10

# Power-up defaults (levels may override) -----------------------------------
HINT_COST = 5
TIME_EXTENSION_COST = 10
TIME_EXTENSION_SECONDS = 15.0
REVEAL_COST = 3

# Level bounds ---------------------------------------------------------------
MIN_GRID_SIZE = 3
MAX_GRID_SIZE = 5
MAX_PATTERN_SIZE = 3
MAX_LEVEL = 12

# Board generation retries before a level is refused.
BOARD_GENERATION_ATTEMPTS = 200

# Host window ----------------------------------------------------------------
WINDOW_WIDTH = 800
WINDOW_HEIGHT = 600
BOTTOM_MARGIN = 40
TOP_PANEL_HEIGHT = 150

# Board maximum footprint relative to window (percentage of window width/height).
BOARD_MAX_WIDTH_PCT = 0.60
BOARD_MAX_HEIGHT_PCT = 0.70

# Display colors for palette names.
COLOR_RGB = {
    "red": (180, 60, 60),
    "green": (80, 170, 80),
    "blue": (70, 90, 180),
    "yellow": (200, 190, 80),
    "purple": (170, 80, 160),
    "cyan": (70, 170, 170),
}
BLOCKED_RGB = (45, 45, 50)
EMPTY_RGB = (20, 20, 24)
