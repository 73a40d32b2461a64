"""Error types raised by the engine.

User-input rejections (grid errors, insufficient gems) are expected and never leave
the world half-updated. Configuration errors abort the requested transition.
"""
from __future__ import annotations

from typing import Tuple

Position = Tuple[int, int]


class PatternSwapError(Exception):
    """Base class for every error the engine reports."""


# Grid -----------------------------------------------------------------------

class GridError(PatternSwapError):
    """A swap request the grid refuses."""

    code = "grid_error"

    def __init__(self, a: Position, b: Position, message: str | None = None) -> None:
        self.a = a
        self.b = b
        super().__init__(message or f"{self.code}: {a} <-> {b}")


class OutOfBounds(GridError):
    code = "out_of_bounds"


class NotAdjacent(GridError):
    code = "not_adjacent"


class BlockedCell(GridError):
    code = "blocked_cell"


# Session & power-ups ---------------------------------------------------------

class SessionNotActive(PatternSwapError):
    """Raised for session actions attempted outside the PLAYING state."""


class InsufficientGems(PatternSwapError):
    def __init__(self, cost: int, available: int) -> None:
        self.cost = cost
        self.available = available
        super().__init__(f"need {cost} gems, have {available}")

    @property
    def missing(self) -> int:
        return self.cost - self.available


class NoPatternToReveal(PatternSwapError):
    """Every pattern is already revealed or completed."""


# Configuration ----------------------------------------------------------------

class LevelNotFound(PatternSwapError, KeyError):
    def __init__(self, level: int) -> None:
        self.level = level
        super().__init__(f"level {level} is not in the catalog")

    def __str__(self) -> str:
        return f"level {self.level} is not in the catalog"


class LevelLocked(PatternSwapError):
    def __init__(self, level: int) -> None:
        self.level = level
        super().__init__(f"level {level} is locked")


class LevelConfigError(PatternSwapError, ValueError):
    """A level definition is malformed or its board cannot be generated."""
