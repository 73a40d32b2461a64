"""Pattern detection over an immutable grid snapshot.

Pure queries only: completion flags are flipped by the session, never here.
"""
from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from esper import World

from patternswap.components.target_pattern import TargetPattern
from patternswap.systems.grid_ops import GridSnapshot, Position


def pattern_matches_at(grid: GridSnapshot, cells: Sequence[Sequence[str]], anchor: Position) -> bool:
    """True if every pattern cell equals the grid color at anchor + offset."""
    top, left = anchor
    size = len(cells)
    if top < 0 or left < 0 or top + size > grid.rows:
        return False
    for i, pattern_row in enumerate(cells):
        if left + len(pattern_row) > grid.cols:
            return False
        grid_row = grid.cells[top + i]
        for j, color in enumerate(pattern_row):
            # EMPTY / BLOCKED are enum members and never compare equal to a color name.
            if grid_row[left + j] != color:
                return False
    return True


def find_anchor(grid: GridSnapshot, cells: Sequence[Sequence[str]]) -> Position | None:
    """Return the first matching top-left anchor in row-major order, if any."""
    size = len(cells)
    if size == 0 or size > grid.rows or size > grid.cols:
        return None
    for row in range(grid.rows - size + 1):
        for col in range(grid.cols - size + 1):
            if pattern_matches_at(grid, cells, (row, col)):
                return row, col
    return None


def pattern_satisfied(grid: GridSnapshot, cells: Sequence[Sequence[str]]) -> bool:
    return find_anchor(grid, cells) is not None


def find_matches(grid: GridSnapshot, patterns: Iterable[TargetPattern]) -> List[int]:
    """Ids of not-yet-completed patterns satisfied somewhere on grid, ascending."""
    matched: List[int] = []
    for pattern in sorted(patterns, key=lambda p: p.pattern_id):
        if pattern.completed:
            continue
        if pattern_satisfied(grid, pattern.cells):
            matched.append(pattern.pattern_id)
    return matched


def session_patterns(world: World) -> List[TargetPattern]:
    """All TargetPattern components in the world, ordered by id."""
    return sorted((pattern for _, pattern in world.get_component(TargetPattern)), key=lambda p: p.pattern_id)


def pattern_entities(world: World) -> List[Tuple[int, TargetPattern]]:
    return sorted(world.get_component(TargetPattern), key=lambda entry: entry[1].pattern_id)
