"""Arcade drawing of the board, target patterns and HUD."""
from __future__ import annotations

from typing import Optional, Tuple

import arcade
from esper import World

from patternswap.components.game_state import GameMode
from patternswap.components.level_progress import LevelProgress
from patternswap.components.session import Session
from patternswap.constants import BLOCKED_RGB, COLOR_RGB, EMPTY_RGB, TOP_PANEL_HEIGHT
from patternswap.events.bus import (
    EVENT_HINT_SHOWN,
    EVENT_LEVEL_STARTED,
    EVENT_TILE_SWAPPED,
    EventBus,
)
from patternswap.systems.grid_ops import CellState, grid_snapshot
from patternswap.systems.pattern_matcher import session_patterns
from patternswap.ui.layout import cell_origin, compute_board_geometry
from patternswap.utils.game_state import current_mode
from patternswap.utils.wallet import get_wallet

PADDING = 4
PREVIEW_CELL = 18

Position = Tuple[int, int]


class RenderSystem:
    def __init__(self, world: World, event_bus: EventBus, window):
        self.world = world
        self.event_bus = event_bus
        self.window = window
        self.hint: Optional[Tuple[Position, Position]] = None
        self.event_bus.subscribe(EVENT_HINT_SHOWN, self.on_hint_shown)
        self.event_bus.subscribe(EVENT_TILE_SWAPPED, self.on_hint_cleared)
        self.event_bus.subscribe(EVENT_LEVEL_STARTED, self.on_hint_cleared)

    def on_hint_shown(self, sender, **kwargs):
        src = kwargs.get('src')
        dst = kwargs.get('dst')
        if src is not None and dst is not None:
            self.hint = (tuple(src), tuple(dst))

    def on_hint_cleared(self, sender, **kwargs):
        self.hint = None

    def process(self) -> None:
        mode = current_mode(self.world)
        if mode == GameMode.MENU:
            self._draw_menu()
            return
        session = self._session()
        if session is None:
            return
        self._draw_board(session)
        self._draw_patterns()
        self._draw_hud(session)
        if mode == GameMode.PAUSED:
            self._draw_overlay("Paused", "P to resume, Esc for menu")
        elif mode == GameMode.LEVEL_COMPLETE:
            self._draw_overlay("Level complete!", f"Score {session.score}  -  N next, R retry, Esc menu")
        elif mode == GameMode.GAME_OVER:
            reason = (session.game_over_reason or "").replace("_", " ")
            self._draw_overlay("Game over", f"{reason}  -  R retry, Esc menu")

    # ------------------------------------------------------------------

    def _session(self) -> Session | None:
        for _, session in self.world.get_component(Session):
            return session
        return None

    def _draw_board(self, session: Session) -> None:
        grid = grid_snapshot(self.world)
        if grid.rows == 0:
            return
        geometry = compute_board_geometry(self.window.width, self.window.height, grid.rows, grid.cols)
        tile_size = geometry[0]
        hinted = set(self.hint) if self.hint else set()
        for row in range(grid.rows):
            for col in range(grid.cols):
                x, y = cell_origin(geometry, grid.rows, row, col)
                cell = grid.cells[row][col]
                if cell is CellState.BLOCKED:
                    fill = BLOCKED_RGB
                elif cell is CellState.EMPTY:
                    fill = EMPTY_RGB
                else:
                    fill = COLOR_RGB.get(cell, EMPTY_RGB)
                arcade.draw_lbwh_rectangle_filled(
                    x + PADDING, y + PADDING, tile_size - 2 * PADDING, tile_size - 2 * PADDING, fill,
                )
                if session.selected == (row, col):
                    outline = arcade.color.WHITE
                elif (row, col) in hinted:
                    outline = arcade.color.GOLD
                else:
                    continue
                arcade.draw_lbwh_rectangle_outline(
                    x + 2, y + 2, tile_size - 4, tile_size - 4, outline, border_width=3,
                )

    def _draw_patterns(self) -> None:
        left = 20
        top = self.window.height - 50
        for pattern in session_patterns(self.world):
            k = pattern.size
            bottom = top - k * PREVIEW_CELL
            for i, row in enumerate(pattern.cells):
                for j, color_name in enumerate(row):
                    rgb = COLOR_RGB.get(color_name, EMPTY_RGB)
                    if pattern.completed:
                        rgb = tuple(channel // 3 for channel in rgb)
                    arcade.draw_lbwh_rectangle_filled(
                        left + j * PREVIEW_CELL + 1,
                        top - (i + 1) * PREVIEW_CELL + 1,
                        PREVIEW_CELL - 2,
                        PREVIEW_CELL - 2,
                        rgb,
                    )
            if pattern.revealed and not pattern.completed:
                arcade.draw_lbwh_rectangle_outline(
                    left - 2, bottom - 2, k * PREVIEW_CELL + 4, k * PREVIEW_CELL + 4,
                    arcade.color.GOLD, border_width=2,
                )
            left += k * PREVIEW_CELL + 24

    def _draw_hud(self, session: Session) -> None:
        gems = get_wallet(self.world).gems
        y = self.window.height - TOP_PANEL_HEIGHT + 30
        text = (
            f"Level {session.level}   Score {session.score}   "
            f"Time {max(0.0, session.time_remaining):.1f}   Moves {session.swaps}   Gems {gems}   x{session.combo_multiplier}"
        )
        arcade.draw_text(text, 20, y, arcade.color.WHITE, 16)
        arcade.draw_text(
            "H hint  T +time  V reveal  P pause",
            self.window.width - 20, y, arcade.color.SILVER, 12, anchor_x="right",
        )

    def _draw_menu(self) -> None:
        highest = 1
        for _, progress in self.world.get_component(LevelProgress):
            highest = progress.highest_unlocked
        cx = self.window.width / 2
        cy = self.window.height / 2
        arcade.draw_text(
            "Pattern Swap", cx, cy + 60, arcade.color.WHITE, 36,
            anchor_x="center", anchor_y="center", bold=True,
        )
        arcade.draw_text(
            f"Enter to play  -  1-9 to pick a level (unlocked up to {highest})",
            cx, cy, arcade.color.SILVER, 16, anchor_x="center", anchor_y="center",
        )
        arcade.draw_text(
            f"Gems {get_wallet(self.world).gems}",
            cx, cy - 40, arcade.color.GOLD, 16, anchor_x="center", anchor_y="center",
        )

    def _draw_overlay(self, title: str, subtitle: str) -> None:
        arcade.draw_lrbt_rectangle_filled(0, self.window.width, 0, self.window.height, (0, 0, 0, 160))
        cx = self.window.width / 2
        cy = self.window.height / 2
        arcade.draw_text(title, cx, cy + 20, arcade.color.WHITE, 32, anchor_x="center", anchor_y="center", bold=True)
        arcade.draw_text(subtitle, cx, cy - 24, arcade.color.SILVER, 16, anchor_x="center", anchor_y="center")
