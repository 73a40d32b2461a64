from blinker import Signal
from typing import Dict

class EventBus:
    """Simple event bus leveraging blinker Signal objects."""
    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn):
        sig = self._signals.setdefault(name, Signal(name))
        # Use weak=False to retain strong reference to bound methods so systems not kept in a variable still receive events.
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn):
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, **payload):
        sig = self._signals.get(name)
        if sig:
            sig.send(self, **payload)


# ============================================================================
# SYSTEM & TIMING
# ============================================================================
EVENT_TICK = "tick"                                # payload: dt=float
EVENT_TIME_CHANGED = "time_changed"                # payload: time_remaining=float, delta=float, reason=str


# ============================================================================
# INPUT & INTERACTION
# ============================================================================
EVENT_MOUSE_PRESS = "mouse_press"                  # payload: x, y, button
EVENT_KEY_PRESS = "key_press"                      # payload: symbol, modifiers
EVENT_TILE_CLICK = "tile_click"                    # payload: row, col


# ============================================================================
# TILE & BOARD MECHANICS
# ============================================================================
EVENT_TILE_SELECTED = "tile_selected"              # payload: row, col
EVENT_TILE_DESELECTED = "tile_deselected"          # payload: reason=str, prev_row, prev_col
EVENT_TILE_SWAP_REQUEST = "tile_swap_request"      # payload: src=(r,c), dst=(r,c)
EVENT_TILE_SWAPPED = "tile_swapped"                # payload: src=(r,c), dst=(r,c), outcome=SwapOutcome
EVENT_TILE_SWAP_REJECTED = "tile_swap_rejected"    # payload: src=(r,c), dst=(r,c), error=GridError
EVENT_BOARD_BUILT = "board_built"                  # payload: rows=int, cols=int, blocked=list[(r,c)]


# ============================================================================
# PATTERNS & SCORING
# ============================================================================
EVENT_PATTERN_MATCHED = "pattern_matched"          # payload: pattern_id=int, points=int, gems=int
EVENT_CHAIN_BONUS = "chain_bonus"                  # payload: match_count=int, bonus=int, time_bonus=float, combo_multiplier=int
EVENT_SCORE_CHANGED = "score_changed"              # payload: score=int, delta=int, reason=str
EVENT_GEMS_CHANGED = "gems_changed"                # payload: gems=int, delta=int, reason=str


# ============================================================================
# POWER-UPS
# ============================================================================
EVENT_POWER_UP_REQUEST = "power_up_request"            # payload: kind=str
EVENT_POWER_UP_USED = "power_up_used"                  # payload: kind=str, cost=int, gems=int
EVENT_POWER_UP_INSUFFICIENT = "power_up_insufficient"  # payload: kind=str, cost=int, gems=int
EVENT_POWER_UP_REJECTED = "power_up_rejected"          # payload: kind=str, reason=str
EVENT_HINT_SHOWN = "hint_shown"                        # payload: src=(r,c), dst=(r,c)
EVENT_PATTERN_REVEALED = "pattern_revealed"            # payload: pattern_id=int


# ============================================================================
# GAME FLOW & STATE
# ============================================================================
EVENT_GAME_MODE_CHANGED = "game_mode_changed"      # payload: previous_mode=GameMode|None, new_mode=GameMode
EVENT_LEVEL_START_REQUEST = "level_start_request"  # payload: level=int
EVENT_LEVEL_START_FAILED = "level_start_failed"    # payload: level=int, error=PatternSwapError
EVENT_LEVEL_STARTED = "level_started"              # payload: level=int, grid_size=int, time_limit=float, pattern_count=int
EVENT_LEVEL_COMPLETE = "level_complete"            # payload: level=int, score=int, time_bonus=int, gems_earned=int, time_remaining=float, swaps=int
EVENT_LEVEL_FAILED = "level_failed"                # payload: level=int, reason=str, score=int, time_remaining=float, swaps=int
EVENT_PAUSE_REQUEST = "pause_request"              # payload: None
EVENT_RESUME_REQUEST = "resume_request"            # payload: None
EVENT_RESTART_REQUEST = "restart_request"          # payload: None
EVENT_NEXT_LEVEL_REQUEST = "next_level_request"    # payload: None
EVENT_MENU_REQUEST = "menu_request"                # payload: None


# ============================================================================
# PROGRESS
# ============================================================================
EVENT_LEVEL_UNLOCKED = "level_unlocked"            # payload: level=int
EVENT_PROGRESS_SAVED = "progress_saved"            # payload: highest_unlocked=int, gems=int
