"""Entry point for the Pattern Swap puzzle.

Sets up ECS world, event bus, systems, and Arcade window.
"""
import argparse
import logging
import random
from pathlib import Path

from arcade import Window, color, run, set_background_color

from patternswap.components.game_state import GameMode
from patternswap.constants import WINDOW_HEIGHT, WINDOW_WIDTH
from patternswap.events.bus import (
    EVENT_KEY_PRESS,
    EVENT_LEVEL_START_REQUEST,
    EVENT_MOUSE_PRESS,
    EVENT_TICK,
    EventBus,
)
from patternswap.rendering.render_system import RenderSystem
from patternswap.systems.board import BoardSystem
from patternswap.systems.input import InputSystem
from patternswap.systems.power_up_system import PowerUpSystem
from patternswap.systems.progress_system import JsonFileStore, ProgressSystem
from patternswap.systems.session_system import SessionSystem
from patternswap.utils.game_state import current_mode
from patternswap.world import create_world

DEFAULT_SAVE_PATH = Path(__file__).resolve().parents[1] / "data" / "progress.json"


class PatternSwapWindow(Window):
    def __init__(self, *, level: int | None = None, seed: int | None = None, save_path: Path = DEFAULT_SAVE_PATH):
        super().__init__(WINDOW_WIDTH, WINDOW_HEIGHT, "Pattern Swap")
        self.set_update_rate(1/60)
        self.event_bus = EventBus()
        self.world = create_world(self.event_bus, initial_mode=GameMode.MENU, rng=random.Random(seed))

        # Progression
        self.progress_system = ProgressSystem(self.world, self.event_bus, JsonFileStore(save_path))

        # Core systems
        self.board_system = BoardSystem(self.world, self.event_bus)
        self.session_system = SessionSystem(self.world, self.event_bus, board_system=self.board_system)
        self.power_up_system = PowerUpSystem(self.world, self.event_bus, self.session_system)

        # Interface systems
        self.render_system = RenderSystem(self.world, self.event_bus, self)
        self.input_system = InputSystem(
            self.event_bus, self, self.world,
            start_level=self.progress_system.progress.highest_unlocked,
        )

        set_background_color(color.BLACK)
        if level is not None:
            self.event_bus.emit(EVENT_LEVEL_START_REQUEST, level=level)

    def on_draw(self):
        self.clear()
        self.render_system.process()

    def on_update(self, delta_time: float):
        if current_mode(self.world) == GameMode.PLAYING:
            self.event_bus.emit(EVENT_TICK, dt=delta_time)

    def on_mouse_press(self, x: float, y: float, button: int, modifiers: int):
        self.event_bus.emit(EVENT_MOUSE_PRESS, x=x, y=y, button=button)

    def on_key_press(self, symbol: int, modifiers: int):
        self.event_bus.emit(EVENT_KEY_PRESS, symbol=symbol, modifiers=modifiers)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Swap tiles to rebuild the target patterns.")
    parser.add_argument("--level", type=int, default=None, help="start this level immediately")
    parser.add_argument("--seed", type=int, default=None, help="seed for board generation")
    parser.add_argument("--save", type=Path, default=DEFAULT_SAVE_PATH, help="progress file")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    PatternSwapWindow(level=args.level, seed=args.seed, save_path=args.save)
    run()


if __name__ == "__main__":
    main()
