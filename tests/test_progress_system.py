import json
from pathlib import Path
from tempfile import TemporaryDirectory

from patternswap.components.game_state import GameMode
from patternswap.constants import GEMS_PER_PATTERN
from patternswap.events.bus import EVENT_LEVEL_UNLOCKED, EVENT_PROGRESS_SAVED, EventBus
from patternswap.factories.levels import pattern
from patternswap.systems.power_up_system import PowerUpSystem
from patternswap.systems.progress_system import JsonFileStore, MemoryStore, ProgressSystem
from patternswap.systems.session_system import SessionSystem
from patternswap.utils.wallet import get_wallet
from patternswap.world import create_world
from tests.helpers import RED_SQUARE, TWO_STEP_LAYOUT, EventRecorder, make_catalog, simple_config


def _world_with_progress(store):
    bus = EventBus()
    world = create_world(bus)
    progress = ProgressSystem(world, bus, store)
    sessions = SessionSystem(
        world,
        bus,
        catalog=make_catalog(simple_config(1), simple_config(2, unlock_score=500), simple_config(3)),
    )
    return bus, world, progress, sessions


def test_completion_unlocks_next_level_and_saves():
    store = MemoryStore()
    bus, world, progress, sessions = _world_with_progress(store)
    recorder = EventRecorder().listen(bus, EVENT_LEVEL_UNLOCKED, EVENT_PROGRESS_SAVED)

    sessions.start_level(1, layout=TWO_STEP_LAYOUT)
    sessions.try_swap((0, 0), (0, 1))

    assert progress.progress.highest_unlocked == 2
    assert progress.progress.best_scores == {1: sessions.score}
    assert recorder.named(EVENT_LEVEL_UNLOCKED) == [{"level": 2}]
    assert recorder.named(EVENT_PROGRESS_SAVED)
    assert store.get("highest_unlocked") == 2
    assert store.get("gems") == get_wallet(world).gems
    assert store.get("best_scores") == {"1": sessions.score}


def test_low_score_does_not_unlock():
    store = MemoryStore()
    bus, world, progress, sessions = _world_with_progress(store)
    sessions.start_level(1, layout=TWO_STEP_LAYOUT)
    sessions.session.time_remaining = 1.0
    sessions.try_swap((0, 0), (0, 1))
    # 40 for the pattern + 10 time bonus, short of the 500 needed.
    assert sessions.score == 50
    assert progress.progress.highest_unlocked == 1
    assert progress.progress.levels_completed == 1


def test_best_score_keeps_maximum():
    store = MemoryStore()
    bus, world, progress, sessions = _world_with_progress(store)
    sessions.start_level(1, layout=TWO_STEP_LAYOUT)
    sessions.try_swap((0, 0), (0, 1))
    best = sessions.score
    sessions.start_level(1, layout=TWO_STEP_LAYOUT)
    sessions.session.time_remaining = 1.0
    sessions.try_swap((0, 0), (0, 1))
    assert progress.progress.best_scores[1] == best


def test_load_restores_progress_and_gems():
    store = MemoryStore({"highest_unlocked": 3, "best_scores": {"1": 900, "2": 450}, "gems": 42})
    bus, world, progress, sessions = _world_with_progress(store)
    assert progress.progress.highest_unlocked == 3
    assert progress.progress.best_scores == {1: 900, 2: 450}
    assert progress.progress.is_unlocked(3)
    assert not progress.progress.is_unlocked(4)
    assert get_wallet(world).gems == 42


def test_json_store_round_trips_through_disk():
    with TemporaryDirectory() as tmp:
        path = Path(tmp) / "nested" / "progress.json"
        store = JsonFileStore(path)
        bus, world, progress, sessions = _world_with_progress(store)
        sessions.start_level(1, layout=TWO_STEP_LAYOUT)
        sessions.try_swap((0, 0), (0, 1))
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["highest_unlocked"] == 2

        reloaded = JsonFileStore(path)
        bus2, world2, progress2, _ = _world_with_progress(reloaded)
        assert progress2.progress.highest_unlocked == 2
        assert get_wallet(world2).gems == get_wallet(world).gems


def test_json_store_ignores_corrupt_file():
    with TemporaryDirectory() as tmp:
        path = Path(tmp) / "progress.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(path)
        assert store.get("gems") is None
        store.set("gems", 5)
        assert json.loads(path.read_text(encoding="utf-8")) == {"gems": 5}


def test_reset_progress_clears_everything():
    store = MemoryStore({"highest_unlocked": 3, "gems": 42})
    bus, world, progress, sessions = _world_with_progress(store)
    progress.reset_progress()
    assert progress.progress.highest_unlocked == 1
    assert get_wallet(world).gems == 0
    assert store.get("highest_unlocked") == 1


def test_gems_from_a_failed_attempt_are_saved():
    store = MemoryStore()
    bus = EventBus()
    world = create_world(bus)
    ProgressSystem(world, bus, store)
    sessions = SessionSystem(
        world,
        bus,
        catalog=make_catalog(simple_config(1, patterns=(RED_SQUARE, pattern("blue blue", "blue blue")))),
    )
    # One blue tile: after the red square forms the level is stuck.
    sessions.start_level(1, layout=[
        ["red", "blue", "red"],
        ["red", "red", "green"],
        ["green", "green", "green"],
    ])
    sessions.try_swap((0, 1), (0, 2))

    assert sessions.state == GameMode.GAME_OVER
    assert get_wallet(world).gems == GEMS_PER_PATTERN
    assert store.get("gems") == get_wallet(world).gems


def test_power_up_spending_is_saved():
    store = MemoryStore({"gems": 20})
    bus, world, progress, sessions = _world_with_progress(store)
    sessions.start_level(1, layout=TWO_STEP_LAYOUT)
    PowerUpSystem(world, bus, sessions).use_time_extension()
    assert get_wallet(world).gems == 10
    assert store.get("gems") == 10
