from dataclasses import dataclass
from typing import Optional, Tuple

GAME_OVER_TIMER_EXPIRED = "timer_expired"
GAME_OVER_NO_VALID_MOVES = "no_valid_moves_remaining"


@dataclass(slots=True)
class Session:
    """Mutable bookkeeping for one level attempt.

    Lives on its own entity next to the tiles and patterns of the attempt; the whole
    group is deleted on restart, next level or return to menu.
    """
    level: int
    time_remaining: float
    score: int = 0
    combo_multiplier: int = 1
    selected: Optional[Tuple[int, int]] = None
    game_over_reason: Optional[str] = None
    gems_earned: int = 0
    swaps: int = 0
    hints_used: int = 0


@dataclass(slots=True)
class SessionMember:
    """Tag for entities owned by the current session (tiles, board, patterns)."""
    pass
