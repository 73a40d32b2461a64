from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from patternswap.components.target_pattern import TargetPattern
from patternswap.systems.grid_ops import GridSnapshot, Position, adjacent_pairs
from patternswap.systems.pattern_matcher import find_matches

SwapPair = Tuple[Position, Position]


def predict_swap_creates_match(grid: GridSnapshot, a: Position, b: Position, patterns: Sequence[TargetPattern]) -> bool:
    """Return True if swapping a/b would complete at least one incomplete pattern."""
    if grid.is_blocked(a) or grid.is_blocked(b):
        return False
    return bool(find_matches(grid.with_swap(a, b), patterns))


def find_valid_swaps(grid: GridSnapshot, patterns: Iterable[TargetPattern]) -> List[SwapPair]:
    """Enumerate adjacent swaps that would produce a new pattern match."""
    pending = [pattern for pattern in patterns if not pattern.completed]
    if not pending:
        return []
    return [
        (a, b)
        for a, b in adjacent_pairs(grid.rows, grid.cols)
        if predict_swap_creates_match(grid, a, b, pending)
    ]


def find_hint(grid: GridSnapshot, patterns: Iterable[TargetPattern]) -> SwapPair | None:
    """First adjacent pair (row-major) whose swap completes a pattern, or None."""
    pending = [pattern for pattern in patterns if not pattern.completed]
    if not pending:
        return None
    for a, b in adjacent_pairs(grid.rows, grid.cols):
        if predict_swap_creates_match(grid, a, b, pending):
            return a, b
    return None


def has_valid_move(grid: GridSnapshot, patterns: Iterable[TargetPattern]) -> bool:
    return find_hint(grid, patterns) is not None
