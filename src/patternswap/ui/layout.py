from __future__ import annotations

from typing import Tuple

from patternswap.constants import BOARD_MAX_HEIGHT_PCT, BOARD_MAX_WIDTH_PCT, BOTTOM_MARGIN, TOP_PANEL_HEIGHT

MIN_TILE_SIZE = 20

BoardGeometry = Tuple[int, float, float]


def compute_board_geometry(window_width: int, window_height: int, rows: int, cols: int) -> BoardGeometry:
    """Return (tile_size, start_x, start_y) for a rows x cols board.

    Shared by the renderer and input mapping so clicks land on the tiles that are drawn.
    The board is centred horizontally and sits above BOTTOM_MARGIN, below the HUD panel.
    """
    max_board_w = window_width * BOARD_MAX_WIDTH_PCT
    max_board_h = min(
        (window_height - BOTTOM_MARGIN) * BOARD_MAX_HEIGHT_PCT,
        window_height - BOTTOM_MARGIN - TOP_PANEL_HEIGHT,
    )
    tile_size = int(min(max_board_w / cols, max_board_h / rows))
    if tile_size < MIN_TILE_SIZE:
        tile_size = MIN_TILE_SIZE
    start_x = (window_width - cols * tile_size) / 2
    start_y = BOTTOM_MARGIN
    return tile_size, start_x, start_y


def cell_origin(geometry: BoardGeometry, rows: int, row: int, col: int) -> Tuple[float, float]:
    """Bottom-left pixel of a cell. Row 0 is drawn at the top of the board."""
    tile_size, start_x, start_y = geometry
    return start_x + col * tile_size, start_y + (rows - 1 - row) * tile_size


def cell_at_point(x: float, y: float, geometry: BoardGeometry, rows: int, cols: int) -> Tuple[int, int] | None:
    tile_size, start_x, start_y = geometry
    if x < start_x or x >= start_x + cols * tile_size:
        return None
    if y < start_y or y >= start_y + rows * tile_size:
        return None
    col = int((x - start_x) // tile_size)
    row = rows - 1 - int((y - start_y) // tile_size)
    return row, col
