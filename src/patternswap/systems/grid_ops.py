from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Sequence, Tuple, Union

from esper import World

from patternswap.components.active_switch import ActiveSwitch
from patternswap.components.blocked_cell import BlockedCell as BlockedTag
from patternswap.components.board import Board
from patternswap.components.board_position import BoardPosition
from patternswap.components.tile import TileType
from patternswap.errors import BlockedCell, NotAdjacent, OutOfBounds

Position = Tuple[int, int]


class CellState(Enum):
    """Non-color cell contents. Never equal to any palette color."""
    EMPTY = "empty"
    BLOCKED = "blocked"


Cell = Union[str, CellState]
EMPTY = CellState.EMPTY
BLOCKED = CellState.BLOCKED


@dataclass(frozen=True, slots=True)
class GridSnapshot:
    """Immutable copy of the board coloring, safe to hand to matchers and searches."""

    rows: int
    cols: int
    cells: Tuple[Tuple[Cell, ...], ...]

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Cell | None]]) -> "GridSnapshot":
        """Build a snapshot from nested rows; None and '#' mark blocked cells, '.' empty ones."""
        converted: List[Tuple[Cell, ...]] = []
        for row in rows:
            converted.append(tuple(_coerce_cell(value) for value in row))
        width = len(converted[0]) if converted else 0
        if any(len(row) != width for row in converted):
            raise ValueError("grid rows must all have the same length")
        return cls(rows=len(converted), cols=width, cells=tuple(converted))

    def in_bounds(self, pos: Position) -> bool:
        return in_bounds(self.rows, self.cols, pos)

    def color_at(self, pos: Position) -> Cell:
        row, col = pos
        return self.cells[row][col]

    def is_blocked(self, pos: Position) -> bool:
        return self.color_at(pos) is BLOCKED

    def with_swap(self, a: Position, b: Position) -> "GridSnapshot":
        """Return a new snapshot with the two cells' values exchanged."""
        grid = [list(row) for row in self.cells]
        (ar, ac), (br, bc) = a, b
        grid[ar][ac], grid[br][bc] = grid[br][bc], grid[ar][ac]
        return GridSnapshot(self.rows, self.cols, tuple(tuple(row) for row in grid))


def _coerce_cell(value: Cell | None) -> Cell:
    if isinstance(value, CellState):
        return value
    if value is None or value == "#":
        return BLOCKED
    if value == ".":
        return EMPTY
    return value


def in_bounds(rows: int, cols: int, pos: Position) -> bool:
    row, col = pos
    return 0 <= row < rows and 0 <= col < cols


def adjacent(a: Position, b: Position) -> bool:
    """4-connectivity; diagonals and identical cells are never adjacent."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1


def adjacent_pairs(rows: int, cols: int) -> Iterator[Tuple[Position, Position]]:
    """Yield each unordered adjacent pair once, row-major by first cell then second."""
    for row in range(rows):
        for col in range(cols):
            if col + 1 < cols:
                yield (row, col), (row, col + 1)
            if row + 1 < rows:
                yield (row, col), (row + 1, col)


def board_dimensions(world: World) -> Tuple[int, int] | None:
    for _, board in world.get_component(Board):
        return board.rows, board.cols
    return None


def position_index(world: World) -> Dict[Position, int]:
    return {(pos.row, pos.col): entity for entity, pos in world.get_component(BoardPosition)}


def get_entity_at(world: World, row: int, col: int) -> int | None:
    for entity, position in world.get_component(BoardPosition):
        if position.row == row and position.col == col:
            return entity
    return None


def _cell_for_entity(world: World, entity: int) -> Cell:
    if world.has_component(entity, BlockedTag):
        return BLOCKED
    switch: ActiveSwitch = world.component_for_entity(entity, ActiveSwitch)
    if not switch.active:
        return EMPTY
    tile: TileType = world.component_for_entity(entity, TileType)
    return tile.type_name


def color_at(world: World, pos: Position) -> Cell:
    dims = board_dimensions(world)
    if dims is None or not in_bounds(dims[0], dims[1], pos):
        raise OutOfBounds(pos, pos, f"out_of_bounds: {pos}")
    entity = get_entity_at(world, pos[0], pos[1])
    if entity is None:
        raise OutOfBounds(pos, pos, f"out_of_bounds: no tile at {pos}")
    return _cell_for_entity(world, entity)


def is_blocked(world: World, pos: Position) -> bool:
    return color_at(world, pos) is BLOCKED


def grid_snapshot(world: World) -> GridSnapshot:
    dims = board_dimensions(world)
    if dims is None:
        return GridSnapshot(0, 0, ())
    rows, cols = dims
    grid: List[List[Cell]] = [[EMPTY for _ in range(cols)] for _ in range(rows)]
    for entity, position in world.get_component(BoardPosition):
        if not in_bounds(rows, cols, (position.row, position.col)):
            continue
        grid[position.row][position.col] = _cell_for_entity(world, entity)
    return GridSnapshot(rows, cols, tuple(tuple(row) for row in grid))


def validate_swap(world: World, a: Position, b: Position) -> Tuple[int, int]:
    """Return the two tile entities for a legal swap or raise the matching GridError."""
    dims = board_dimensions(world)
    if dims is None:
        raise OutOfBounds(a, b)
    rows, cols = dims
    if not in_bounds(rows, cols, a) or not in_bounds(rows, cols, b):
        raise OutOfBounds(a, b)
    if not adjacent(a, b):
        raise NotAdjacent(a, b)
    index = position_index(world)
    a_entity = index.get(a)
    b_entity = index.get(b)
    if a_entity is None or b_entity is None:
        raise OutOfBounds(a, b)
    if world.has_component(a_entity, BlockedTag) or world.has_component(b_entity, BlockedTag):
        raise BlockedCell(a, b)
    return a_entity, b_entity


def swap_tiles(world: World, a: Position, b: Position) -> None:
    """Exchange the colors of two adjacent tiles in place.

    Raises OutOfBounds, NotAdjacent or BlockedCell (checked in that order); the board
    is untouched when an error is raised.
    """
    a_entity, b_entity = validate_swap(world, a, b)
    a_tile: TileType = world.component_for_entity(a_entity, TileType)
    b_tile: TileType = world.component_for_entity(b_entity, TileType)
    a_switch: ActiveSwitch = world.component_for_entity(a_entity, ActiveSwitch)
    b_switch: ActiveSwitch = world.component_for_entity(b_entity, ActiveSwitch)
    a_tile.type_name, b_tile.type_name = b_tile.type_name, a_tile.type_name
    a_switch.active, b_switch.active = b_switch.active, a_switch.active


def apply_layout(world: World, layout: GridSnapshot) -> None:
    """Write every cell of layout onto the existing tile entities."""
    dims = board_dimensions(world)
    if dims != (layout.rows, layout.cols):
        raise ValueError(f"layout is {layout.rows}x{layout.cols}, board is {dims}")
    for entity, position in world.get_component(BoardPosition):
        value = layout.color_at((position.row, position.col))
        tile: TileType = world.component_for_entity(entity, TileType)
        switch: ActiveSwitch = world.component_for_entity(entity, ActiveSwitch)
        blocked = world.has_component(entity, BlockedTag)
        if value is BLOCKED:
            if not blocked:
                world.add_component(entity, BlockedTag())
            switch.active = False
            continue
        if blocked:
            world.remove_component(entity, BlockedTag)
        if value is EMPTY:
            switch.active = False
            continue
        tile.type_name = value
        switch.active = True
