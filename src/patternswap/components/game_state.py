"""Game state resource describing the active high-level mode."""
from dataclasses import dataclass
from enum import Enum, auto


class GameMode(Enum):
    """Session states; LEVEL_COMPLETE and GAME_OVER end an attempt."""
    MENU = auto()
    PLAYING = auto()
    PAUSED = auto()
    LEVEL_COMPLETE = auto()
    GAME_OVER = auto()


TERMINAL_MODES = frozenset({GameMode.LEVEL_COMPLETE, GameMode.GAME_OVER})


@dataclass
class GameState:
    """Singleton component storing the currently active game mode."""
    mode: GameMode = GameMode.MENU
