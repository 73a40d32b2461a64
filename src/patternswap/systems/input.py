from __future__ import annotations

from esper import World

from patternswap.components.game_state import GameMode, TERMINAL_MODES
from patternswap.events.bus import (
    EVENT_KEY_PRESS,
    EVENT_LEVEL_START_REQUEST,
    EVENT_MENU_REQUEST,
    EVENT_MOUSE_PRESS,
    EVENT_NEXT_LEVEL_REQUEST,
    EVENT_PAUSE_REQUEST,
    EVENT_POWER_UP_REQUEST,
    EVENT_RESTART_REQUEST,
    EVENT_RESUME_REQUEST,
    EVENT_TILE_CLICK,
    EventBus,
)
from patternswap.systems.grid_ops import board_dimensions
from patternswap.systems.power_up_system import (
    POWER_UP_HINT,
    POWER_UP_REVEAL_PATTERN,
    POWER_UP_TIME_EXTENSION,
)
from patternswap.ui.layout import cell_at_point, compute_board_geometry
from patternswap.utils.game_state import current_mode

# pyglet key codes; kept as ints so the engine does not import arcade.
KEY_ENTER = 65293
KEY_ESCAPE = 65307
KEY_SPACE = 32
KEY_H = 104
KEY_N = 110
KEY_P = 112
KEY_R = 114
KEY_T = 116
KEY_V = 118
KEY_1 = 49
KEY_9 = 57

MOUSE_BUTTON_LEFT = 1


class InputSystem:
    """Translates raw mouse/key events into engine requests on the bus."""

    def __init__(self, event_bus: EventBus, window, world: World, *, start_level: int = 1):
        self.event_bus = event_bus
        self.window = window
        self.world = world
        self.start_level = start_level
        self.event_bus.subscribe(EVENT_MOUSE_PRESS, self.on_mouse_press)
        self.event_bus.subscribe(EVENT_KEY_PRESS, self.on_key_press)

    def on_mouse_press(self, sender, **kwargs):
        x = kwargs.get('x')
        y = kwargs.get('y')
        button = kwargs.get('button', MOUSE_BUTTON_LEFT)
        if x is None or y is None or button != MOUSE_BUTTON_LEFT:
            return
        if current_mode(self.world) != GameMode.PLAYING:
            return
        dims = board_dimensions(self.world)
        if dims is None:
            return
        rows, cols = dims
        geometry = compute_board_geometry(self.window.width, self.window.height, rows, cols)
        cell = cell_at_point(float(x), float(y), geometry, rows, cols)
        if cell is not None:
            self.event_bus.emit(EVENT_TILE_CLICK, row=cell[0], col=cell[1])

    def on_key_press(self, sender, **kwargs):
        symbol = kwargs.get('symbol')
        if symbol is None:
            return
        self.handle_key_press(int(symbol))

    def handle_key_press(self, symbol: int) -> None:
        mode = current_mode(self.world)
        if mode == GameMode.MENU:
            if KEY_1 <= symbol <= KEY_9:
                self.event_bus.emit(EVENT_LEVEL_START_REQUEST, level=symbol - KEY_1 + 1)
            elif symbol in (KEY_ENTER, KEY_SPACE):
                self.event_bus.emit(EVENT_LEVEL_START_REQUEST, level=self.start_level)
            return
        if mode == GameMode.PLAYING:
            if symbol in (KEY_P, KEY_SPACE):
                self.event_bus.emit(EVENT_PAUSE_REQUEST)
            elif symbol == KEY_H:
                self.event_bus.emit(EVENT_POWER_UP_REQUEST, kind=POWER_UP_HINT)
            elif symbol == KEY_T:
                self.event_bus.emit(EVENT_POWER_UP_REQUEST, kind=POWER_UP_TIME_EXTENSION)
            elif symbol == KEY_V:
                self.event_bus.emit(EVENT_POWER_UP_REQUEST, kind=POWER_UP_REVEAL_PATTERN)
            elif symbol == KEY_ESCAPE:
                self.event_bus.emit(EVENT_MENU_REQUEST)
            return
        if mode == GameMode.PAUSED:
            if symbol in (KEY_P, KEY_SPACE):
                self.event_bus.emit(EVENT_RESUME_REQUEST)
            elif symbol == KEY_ESCAPE:
                self.event_bus.emit(EVENT_MENU_REQUEST)
            return
        if mode in TERMINAL_MODES:
            if symbol == KEY_R:
                self.event_bus.emit(EVENT_RESTART_REQUEST)
            elif symbol in (KEY_N, KEY_ENTER) and mode == GameMode.LEVEL_COMPLETE:
                self.event_bus.emit(EVENT_NEXT_LEVEL_REQUEST)
            elif symbol == KEY_ESCAPE:
                self.event_bus.emit(EVENT_MENU_REQUEST)
