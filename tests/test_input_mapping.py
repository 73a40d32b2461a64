from patternswap.components.game_state import GameMode
from patternswap.events.bus import (
    EVENT_KEY_PRESS,
    EVENT_LEVEL_START_REQUEST,
    EVENT_MOUSE_PRESS,
    EVENT_NEXT_LEVEL_REQUEST,
    EVENT_PAUSE_REQUEST,
    EVENT_POWER_UP_REQUEST,
    EVENT_RESUME_REQUEST,
    EVENT_TILE_CLICK,
)
from patternswap.systems.input import KEY_1, KEY_ENTER, KEY_H, KEY_N, KEY_P, InputSystem
from patternswap.ui.layout import cell_at_point, cell_origin, compute_board_geometry
from tests.helpers import TWO_STEP_LAYOUT, EventRecorder, SessionHarness, simple_config


class DummyWindow:
    def __init__(self, width=800, height=600):
        self.width = width
        self.height = height


def test_geometry_fits_board_inside_window():
    tile_size, start_x, start_y = compute_board_geometry(800, 600, 5, 5)
    assert tile_size * 5 <= 800 * 0.6
    assert start_x == (800 - 5 * tile_size) / 2
    assert start_y > 0


def test_cell_at_point_inverts_cell_origin():
    geometry = compute_board_geometry(800, 600, 4, 4)
    tile_size = geometry[0]
    for row in range(4):
        for col in range(4):
            x, y = cell_origin(geometry, 4, row, col)
            assert cell_at_point(x + tile_size / 2, y + tile_size / 2, geometry, 4, 4) == (row, col)
    assert cell_at_point(0, 0, geometry, 4, 4) is None


def test_row_zero_is_drawn_on_top():
    geometry = compute_board_geometry(800, 600, 3, 3)
    assert cell_origin(geometry, 3, 0, 0)[1] > cell_origin(geometry, 3, 2, 0)[1]


def test_mouse_press_becomes_tile_click_while_playing():
    harness = SessionHarness.create(simple_config())
    window = DummyWindow()
    InputSystem(harness.bus, window, harness.world)
    recorder = EventRecorder().listen(harness.bus, EVENT_TILE_CLICK)
    harness.start(layout=TWO_STEP_LAYOUT)

    geometry = compute_board_geometry(window.width, window.height, 3, 3)
    x, y = cell_origin(geometry, 3, 0, 2)
    harness.bus.emit(EVENT_MOUSE_PRESS, x=x + 5, y=y + 5, button=1)

    assert recorder.named(EVENT_TILE_CLICK) == [{"row": 0, "col": 2}]
    assert harness.sessions.selected == (0, 2)
    # Right clicks are ignored.
    harness.bus.emit(EVENT_MOUSE_PRESS, x=x + 5, y=y + 5, button=4)
    assert len(recorder.named(EVENT_TILE_CLICK)) == 1


def test_mouse_press_ignored_in_menu():
    harness = SessionHarness.create(simple_config())
    InputSystem(harness.bus, DummyWindow(), harness.world)
    recorder = EventRecorder().listen(harness.bus, EVENT_TILE_CLICK)
    harness.bus.emit(EVENT_MOUSE_PRESS, x=400, y=200, button=1)
    assert recorder.events == []


def test_keys_drive_session_flow():
    harness = SessionHarness.create(simple_config(), simple_config(2), gems=10)
    InputSystem(harness.bus, DummyWindow(), harness.world)
    recorder = EventRecorder().listen(
        harness.bus,
        EVENT_LEVEL_START_REQUEST,
        EVENT_PAUSE_REQUEST,
        EVENT_RESUME_REQUEST,
        EVENT_POWER_UP_REQUEST,
        EVENT_NEXT_LEVEL_REQUEST,
    )

    harness.bus.emit(EVENT_KEY_PRESS, symbol=KEY_1, modifiers=0)
    assert harness.sessions.state == GameMode.PLAYING
    harness.bus.emit(EVENT_KEY_PRESS, symbol=KEY_P, modifiers=0)
    assert harness.sessions.state == GameMode.PAUSED
    harness.bus.emit(EVENT_KEY_PRESS, symbol=KEY_P, modifiers=0)
    assert harness.sessions.state == GameMode.PLAYING
    harness.bus.emit(EVENT_KEY_PRESS, symbol=KEY_H, modifiers=0)
    assert harness.sessions.gems == 5

    assert recorder.names() == [
        EVENT_LEVEL_START_REQUEST,
        EVENT_PAUSE_REQUEST,
        EVENT_RESUME_REQUEST,
        EVENT_POWER_UP_REQUEST,
    ]


def test_next_level_key_after_completion():
    harness = SessionHarness.create(simple_config(), simple_config(2))
    InputSystem(harness.bus, DummyWindow(), harness.world)
    harness.start(layout=TWO_STEP_LAYOUT)
    harness.sessions.try_swap((0, 0), (0, 1))
    assert harness.sessions.state == GameMode.LEVEL_COMPLETE
    harness.bus.emit(EVENT_KEY_PRESS, symbol=KEY_N, modifiers=0)
    assert harness.sessions.level == 2
    harness.sessions.return_to_menu()
    harness.bus.emit(EVENT_KEY_PRESS, symbol=KEY_ENTER, modifiers=0)
    assert harness.sessions.level == 1
