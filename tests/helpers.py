from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Sequence, Tuple

from esper import World

from patternswap.events.bus import EventBus
from patternswap.factories.levels import LevelCatalog, LevelConfig, PatternSeed, pattern
from patternswap.systems.power_up_system import PowerUpSystem
from patternswap.systems.session_system import SessionSystem
from patternswap.world import create_world

RED_SQUARE = pattern("red red", "red red")

# R B R / G R R / B G B: swapping (0,0)-(0,1) completes RED_SQUARE at anchor (0,1);
# afterwards swapping (2,1)-(2,2) completes GREEN_RED_BLUE_BLUE at anchor (1,0).
TWO_STEP_LAYOUT = [
    ["red", "blue", "red"],
    ["green", "red", "red"],
    ["blue", "green", "blue"],
]
GREEN_RED_BLUE_BLUE = pattern("green red", "blue blue")

# Swapping (0,1)-(0,2) completes RED_SQUARE at (0,0) and RED_GREEN_COLUMNS at (0,1) at once.
CHAIN_LAYOUT = [
    ["red", "green", "red"],
    ["red", "red", "green"],
    ["blue", "blue", "green"],
]
RED_GREEN_COLUMNS = pattern("red green", "red green")

# Only one red tile: RED_SQUARE can never be completed.
DEAD_LAYOUT = [
    ["red", "blue", "green"],
    ["blue", "green", "blue"],
    ["green", "blue", "green"],
]


def simple_config(
    level: int = 1,
    *,
    patterns: Sequence[PatternSeed] = (RED_SQUARE,),
    grid_size: int = 3,
    **overrides: Any,
) -> LevelConfig:
    """Small 3x3 level with the default costs; keyword overrides replace any field."""
    config = LevelConfig(
        level=level,
        grid_size=grid_size,
        time_limit_seconds=90.0,
        palette=("red", "blue", "green"),
        patterns=tuple(patterns),
        gem_reward=12,
    )
    return replace(config, **overrides) if overrides else config


def make_catalog(*configs: LevelConfig) -> LevelCatalog:
    return LevelCatalog(configs)


class EventRecorder:
    """Collects (name, payload) pairs for the subscribed event names."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def listen(self, bus: EventBus, *names: str) -> "EventRecorder":
        for name in names:
            bus.subscribe(name, lambda sender, _name=name, **payload: self.events.append((_name, payload)))
        return self

    def named(self, name: str) -> List[Dict[str, Any]]:
        return [payload for event_name, payload in self.events if event_name == name]

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


@dataclass
class SessionHarness:
    bus: EventBus
    world: World
    sessions: SessionSystem
    power_ups: PowerUpSystem

    @classmethod
    def create(
        cls,
        *configs: LevelConfig,
        gems: int = 0,
        seed: int = 7,
    ) -> "SessionHarness":
        bus = EventBus()
        rng = random.Random(seed)
        world = create_world(bus, starting_gems=gems, rng=rng)
        catalog = make_catalog(*(configs or (simple_config(),)))
        sessions = SessionSystem(world, bus, catalog=catalog, rng=rng)
        power_ups = PowerUpSystem(world, bus, sessions)
        return cls(bus, world, sessions, power_ups)

    def start(self, level: int = 1, layout=None):
        return self.sessions.start_level(level, layout=layout)
