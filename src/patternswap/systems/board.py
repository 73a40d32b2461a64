from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Sequence, Tuple

from esper import World

from patternswap.components.active_switch import ActiveSwitch
from patternswap.components.blocked_cell import BlockedCell
from patternswap.components.board import Board
from patternswap.components.board_position import BoardPosition
from patternswap.components.session import SessionMember
from patternswap.components.target_pattern import TargetPattern
from patternswap.components.tile import TileType
from patternswap.constants import BOARD_GENERATION_ATTEMPTS
from patternswap.errors import LevelConfigError
from patternswap.events.bus import EVENT_BOARD_BUILT, EventBus
from patternswap.factories.levels import LevelConfig, PatternSeed
from patternswap.systems.grid_ops import (
    BLOCKED,
    Cell,
    GridSnapshot,
    Position,
    adjacent_pairs,
    apply_layout,
    board_dimensions,
    get_entity_at,
    grid_snapshot,
)
from patternswap.systems.hint_advisor import find_hint
from patternswap.systems.pattern_matcher import find_matches

logger = logging.getLogger(__name__)


class BoardSystem:
    """Owns the tile entities of the current level.

    One entity per cell with BoardPosition + TileType + ActiveSwitch (+ BlockedCell for
    obstructed cells). Entities are tagged SessionMember so abandoning a level removes
    them together with the session.
    """

    def __init__(self, world: World, event_bus: EventBus, *, max_attempts: int = BOARD_GENERATION_ATTEMPTS):
        self.world = world
        self.event_bus = event_bus
        self.max_attempts = max_attempts
        self.board_entity: Optional[int] = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def build_board(self, config: LevelConfig, rng: random.Random | None = None) -> GridSnapshot:
        """Create tiles for config and fill them with a playable random layout."""
        return self.install(self.generate(config, rng))

    def generate(self, config: LevelConfig, rng: random.Random | None = None) -> GridSnapshot:
        """Compute a layout for config without touching the world."""
        generator = rng or getattr(self.world, "random", None) or random.Random()
        return generate_layout(config, generator, max_attempts=self.max_attempts)

    def install(self, layout: GridSnapshot) -> GridSnapshot:
        """Replace the current tiles with fresh entities colored from layout."""
        self.create_tiles(layout.rows, layout.cols)
        apply_layout(self.world, layout)
        blocked = [
            (r, c) for r in range(layout.rows) for c in range(layout.cols)
            if layout.is_blocked((r, c))
        ]
        self.event_bus.emit(EVENT_BOARD_BUILT, rows=layout.rows, cols=layout.cols, blocked=blocked)
        return layout

    def create_tiles(self, rows: int, cols: int) -> int:
        self.clear_board()
        self.board_entity = self.world.create_entity(Board(rows=rows, cols=cols), SessionMember())
        for r in range(rows):
            for c in range(cols):
                self.world.create_entity(
                    BoardPosition(row=r, col=c),
                    TileType(type_name=""),
                    ActiveSwitch(active=False),
                    SessionMember(),
                )
        return self.board_entity

    def load_layout(self, rows: Sequence[Sequence[Cell | None]]) -> GridSnapshot:
        """Install an explicit layout, rebuilding the tiles if the size changed."""
        layout = rows if isinstance(rows, GridSnapshot) else GridSnapshot.from_rows(rows)
        if board_dimensions(self.world) != (layout.rows, layout.cols):
            self.create_tiles(layout.rows, layout.cols)
        apply_layout(self.world, layout)
        return layout

    def clear_board(self) -> None:
        for entity, _ in list(self.world.get_component(BoardPosition)):
            self.world.delete_entity(entity, immediate=True)
        for entity, _ in list(self.world.get_component(Board)):
            self.world.delete_entity(entity, immediate=True)
        self.board_entity = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def snapshot(self) -> GridSnapshot:
        return grid_snapshot(self.world)

    def _get_entity_at(self, row: int, col: int):
        return get_entity_at(self.world, row, col)

    def set_color(self, row: int, col: int, type_name: str) -> None:
        ent = self._get_entity_at(row, col)
        if ent is None:
            raise KeyError((row, col))
        if self.world.has_component(ent, BlockedCell):
            self.world.remove_component(ent, BlockedCell)
        self.world.component_for_entity(ent, TileType).type_name = type_name
        self.world.component_for_entity(ent, ActiveSwitch).active = True


Planting = Dict[Position, str]


def _free_anchors(size: int, k: int, blocked: set[Position]) -> List[Position]:
    anchors: List[Position] = []
    for row in range(size - k + 1):
        for col in range(size - k + 1):
            cells = {(row + i, col + j) for i in range(k) for j in range(k)}
            if not cells & blocked:
                anchors.append((row, col))
    return anchors


def _seed_cells(seed: PatternSeed, anchor: Position) -> Planting:
    top, left = anchor
    return {
        (top + i, left + j): color
        for i, row in enumerate(seed)
        for j, color in enumerate(row)
    }


def _place_patterns(
    seeds: Sequence[PatternSeed],
    size: int,
    blocked: set[Position],
    rng: random.Random,
) -> Optional[List[Planting]]:
    """Pick one anchor per seed so that overlapping seeds agree on every shared cell.

    Depth-first over shuffled anchors; None when no consistent placement exists.
    """
    placed: List[Planting] = []

    def place(index: int, fixed: Planting) -> bool:
        if index == len(seeds):
            return True
        anchors = _free_anchors(size, len(seeds[index]), blocked)
        rng.shuffle(anchors)
        for anchor in anchors:
            cells = _seed_cells(seeds[index], anchor)
            if any(fixed.get(pos, color) != color for pos, color in cells.items()):
                continue
            placed.append(cells)
            if place(index + 1, {**fixed, **cells}):
                return True
            placed.pop()
        return False

    return placed if place(0, {}) else None


def _choose_breakers(
    placements: Sequence[Planting],
    pairs: Sequence[Tuple[Position, Position]],
    rng: random.Random,
) -> Optional[List[Tuple[Position, Position]]]:
    """One swap per pattern: a cell only that pattern owns against an unplanted neighbour."""
    owners: Dict[Position, int] = {}
    for cells in placements:
        for pos in cells:
            owners[pos] = owners.get(pos, 0) + 1
    used: set[Position] = set()
    breakers: List[Tuple[Position, Position]] = []
    for cells in placements:
        candidates = []
        for a, b in pairs:
            inner, outer = (a, b) if a in cells else (b, a)
            if inner not in cells or outer in owners:
                continue
            if owners[inner] > 1 or inner in used or outer in used:
                continue
            candidates.append((inner, outer))
        if not candidates:
            return None
        inner, outer = rng.choice(candidates)
        used.update((inner, outer))
        breakers.append((inner, outer))
    return breakers


def solve_by_hints(layout: GridSnapshot, seeds: Sequence[PatternSeed]) -> Optional[List[Tuple[Position, Position]]]:
    """Replay hint swaps from layout; the swaps taken if every pattern completes, else None."""
    patterns = [TargetPattern(pattern_id=i, cells=seed) for i, seed in enumerate(seeds)]
    grid = layout
    path: List[Tuple[Position, Position]] = []
    while not all(pattern.completed for pattern in patterns):
        hint = find_hint(grid, patterns)
        if hint is None:
            return None
        grid = grid.with_swap(*hint)
        for pattern_id in find_matches(grid, patterns):
            patterns[pattern_id].completed = True
        path.append(hint)
    return path


def generate_layout(
    config: LevelConfig,
    rng: random.Random,
    *,
    max_attempts: int = BOARD_GENERATION_ATTEMPTS,
) -> GridSnapshot:
    """Fill a board for config that starts unsolved and can be won one hint swap at a time.

    Every pattern is planted at a random unobstructed anchor (patterns may overlap
    where their colors agree), the rest of the board is filled from the palette, and
    each pattern is broken by its own swap against an unplanted neighbour. A layout
    is kept only if replaying hints from it completes every pattern.
    """
    size = config.grid_size
    blocked = set(config.blocked_cells)
    patterns = [TargetPattern(pattern_id=i, cells=seed) for i, seed in enumerate(config.patterns)]
    palette = list(config.palette)
    for index, seed in enumerate(config.patterns):
        if not _free_anchors(size, len(seed), blocked):
            raise LevelConfigError(f"level {config.level}: no unobstructed anchor for pattern {index}")
    pairs = [
        (a, b) for a, b in adjacent_pairs(size, size)
        if a not in blocked and b not in blocked
    ]
    for attempt in range(max_attempts):
        placements = _place_patterns(config.patterns, size, blocked, rng)
        if placements is None:
            raise LevelConfigError(f"level {config.level}: patterns cannot share the board")
        breakers = _choose_breakers(placements, pairs, rng)
        if breakers is None:
            continue
        grid: List[List[Cell]] = [
            [BLOCKED if (r, c) in blocked else rng.choice(palette) for c in range(size)]
            for r in range(size)
        ]
        for cells in placements:
            for (r, c), color in cells.items():
                grid[r][c] = color
        for (ir, ic), (orow, ocol) in breakers:
            others = [color for color in palette if color != grid[ir][ic]]
            if not others:
                break
            grid[ir][ic], grid[orow][ocol] = rng.choice(others), grid[ir][ic]
        else:
            layout = GridSnapshot(size, size, tuple(tuple(row) for row in grid))
            if find_matches(layout, patterns):
                continue
            if solve_by_hints(layout, config.patterns) is None:
                continue
            logger.debug("generated level %d board after %d attempt(s)", config.level, attempt + 1)
            return layout
    raise LevelConfigError(f"level {config.level}: unable to generate a winnable board in {max_attempts} attempts")
