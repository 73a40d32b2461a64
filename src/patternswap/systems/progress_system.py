from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Protocol

from esper import World

from patternswap.components.level_progress import LevelProgress
from patternswap.events.bus import (
    EVENT_GEMS_CHANGED,
    EVENT_LEVEL_COMPLETE,
    EVENT_LEVEL_UNLOCKED,
    EVENT_PROGRESS_SAVED,
    EventBus,
)
from patternswap.utils.wallet import get_wallet

logger = logging.getLogger(__name__)

KEY_HIGHEST_UNLOCKED = "highest_unlocked"
KEY_BEST_SCORES = "best_scores"
KEY_LEVELS_COMPLETED = "levels_completed"
KEY_GEMS = "gems"


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryStore:
    """Dict-backed store; nothing survives the process."""

    def __init__(self, initial: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value


class JsonFileStore:
    """Key-value store persisted as one JSON object; every set rewrites the file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._data: Dict[str, Any] = self._read()

    def _read(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            logger.warning("ignoring unreadable save file %s", self.path)
            return {}
        return payload if isinstance(payload, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(self._data, handle, indent=2)


class ProgressSystem:
    """Persists level unlocks, best scores and the gem balance across runs."""

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        store: KeyValueStore | None = None,
        *,
        load_existing: bool = True,
    ) -> None:
        self.world = world
        self.event_bus = event_bus
        self.store: KeyValueStore = store if store is not None else MemoryStore()
        self._progress_entity = self._ensure_progress_entity()

        self.event_bus.subscribe(EVENT_LEVEL_COMPLETE, self._on_progress_event)
        self.event_bus.subscribe(EVENT_LEVEL_UNLOCKED, self._on_progress_event)
        # Covers gems earned in attempts that end in failure or a return to the menu.
        self.event_bus.subscribe(EVENT_GEMS_CHANGED, self._on_progress_event)

        if load_existing:
            self.load_progress()

    def _ensure_progress_entity(self) -> int:
        existing = list(self.world.get_component(LevelProgress))
        if existing:
            return existing[0][0]
        return self.world.create_entity(LevelProgress())

    @property
    def progress(self) -> LevelProgress:
        return self.world.component_for_entity(self._progress_entity, LevelProgress)

    def load_progress(self) -> LevelProgress:
        progress = self.progress
        progress.highest_unlocked = max(1, int(self.store.get(KEY_HIGHEST_UNLOCKED, 1)))
        # JSON object keys come back as strings.
        raw_scores = self.store.get(KEY_BEST_SCORES, {}) or {}
        progress.best_scores = {int(level): int(score) for level, score in raw_scores.items()}
        progress.levels_completed = int(self.store.get(KEY_LEVELS_COMPLETED, 0))
        wallet = get_wallet(self.world)
        wallet.gems = max(0, int(self.store.get(KEY_GEMS, wallet.gems)))
        logger.debug(
            "loaded progress: highest unlocked %d, %d gem(s)", progress.highest_unlocked, wallet.gems,
        )
        return progress

    def save_progress(self) -> None:
        progress = self.progress
        wallet = get_wallet(self.world)
        self.store.set(KEY_HIGHEST_UNLOCKED, progress.highest_unlocked)
        self.store.set(KEY_BEST_SCORES, {str(level): score for level, score in progress.best_scores.items()})
        self.store.set(KEY_LEVELS_COMPLETED, progress.levels_completed)
        self.store.set(KEY_GEMS, wallet.gems)
        self.event_bus.emit(
            EVENT_PROGRESS_SAVED,
            highest_unlocked=progress.highest_unlocked,
            gems=wallet.gems,
        )

    def reset_progress(self) -> None:
        progress = self.progress
        progress.highest_unlocked = 1
        progress.best_scores = {}
        progress.levels_completed = 0
        get_wallet(self.world).gems = 0
        self.save_progress()

    def _on_progress_event(self, sender, **payload) -> None:
        self.save_progress()
