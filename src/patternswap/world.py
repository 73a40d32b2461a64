import random

from esper import World

from patternswap.components.game_state import GameMode, GameState
from patternswap.components.gem_wallet import GemWallet
from patternswap.components.level_progress import LevelProgress
from patternswap.events.bus import EventBus


def create_world(
    event_bus: EventBus,
    initial_mode: GameMode = GameMode.MENU,
    *,
    starting_gems: int = 0,
    rng: random.Random | None = None,
) -> World:
    world = World()
    setattr(world, "random", rng or random.Random())

    # Global singletons that outlive individual level attempts.
    state_entity = world.create_entity()
    world.add_component(state_entity, GameState(mode=initial_mode))
    world.create_entity(GemWallet(gems=starting_gems))
    world.create_entity(LevelProgress())
    return world
