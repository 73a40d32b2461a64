"""Level session state machine: swap -> match -> score pipeline and win/lose rules."""
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from esper import World

from patternswap.components.game_state import GameMode
from patternswap.components.level_progress import LevelProgress
from patternswap.components.session import (
    GAME_OVER_NO_VALID_MOVES,
    GAME_OVER_TIMER_EXPIRED,
    Session,
    SessionMember,
)
from patternswap.components.target_pattern import TargetPattern
from patternswap.constants import (
    CHAIN_BONUS_MULTIPLIER,
    CHAIN_TIME_BONUS,
    GEMS_PER_PATTERN,
    MAX_COMBO_MULTIPLIER,
    POINTS_PER_TILE,
    TIME_BONUS_MULTIPLIER,
)
from patternswap.errors import (
    GridError,
    LevelConfigError,
    LevelLocked,
    PatternSwapError,
    SessionNotActive,
)
from patternswap.events.bus import (
    EVENT_CHAIN_BONUS,
    EVENT_LEVEL_COMPLETE,
    EVENT_LEVEL_FAILED,
    EVENT_LEVEL_START_FAILED,
    EVENT_LEVEL_START_REQUEST,
    EVENT_LEVEL_STARTED,
    EVENT_LEVEL_UNLOCKED,
    EVENT_MENU_REQUEST,
    EVENT_NEXT_LEVEL_REQUEST,
    EVENT_PATTERN_MATCHED,
    EVENT_PAUSE_REQUEST,
    EVENT_RESTART_REQUEST,
    EVENT_RESUME_REQUEST,
    EVENT_SCORE_CHANGED,
    EVENT_TICK,
    EVENT_TILE_CLICK,
    EVENT_TILE_DESELECTED,
    EVENT_TILE_SELECTED,
    EVENT_TILE_SWAP_REJECTED,
    EVENT_TILE_SWAP_REQUEST,
    EVENT_TILE_SWAPPED,
    EVENT_TIME_CHANGED,
    EventBus,
)
from patternswap.factories.levels import LevelCatalog, LevelConfig, default_catalog, validate_level_config
from patternswap.systems.board import BoardSystem
from patternswap.systems.grid_ops import (
    Cell,
    GridSnapshot,
    Position,
    adjacent,
    grid_snapshot,
    in_bounds,
    swap_tiles,
)
from patternswap.systems.hint_advisor import SwapPair, find_hint
from patternswap.systems.pattern_matcher import find_matches, pattern_entities, session_patterns
from patternswap.utils.game_state import current_mode, set_game_mode
from patternswap.utils.wallet import get_wallet, grant_gems

logger = logging.getLogger(__name__)

HintFinder = Callable[[GridSnapshot, Sequence[TargetPattern]], Optional[SwapPair]]


class SwapResult(Enum):
    IGNORED = auto()
    REJECTED = auto()
    NO_MATCH = auto()
    MATCHED = auto()


@dataclass(frozen=True, slots=True)
class SwapOutcome:
    """What a swap attempt did. REJECTED carries the GridError; MATCHED the pattern ids."""

    result: SwapResult
    matched: Tuple[int, ...] = ()
    error: GridError | None = None

    @property
    def count(self) -> int:
        return len(self.matched)

    @property
    def chained(self) -> bool:
        return len(self.matched) > 1

    @classmethod
    def ignored(cls) -> "SwapOutcome":
        return cls(SwapResult.IGNORED)

    @classmethod
    def rejected(cls, error: GridError) -> "SwapOutcome":
        return cls(SwapResult.REJECTED, error=error)

    @classmethod
    def from_matches(cls, matched: Iterable[int]) -> "SwapOutcome":
        ids = tuple(matched)
        return cls(SwapResult.MATCHED if ids else SwapResult.NO_MATCH, matched=ids)


class SelectionResult(Enum):
    IGNORED = auto()
    SELECTED = auto()
    DESELECTED = auto()
    RETARGETED = auto()
    SWAPPED = auto()


@dataclass(frozen=True, slots=True)
class SelectionOutcome:
    result: SelectionResult
    position: Position | None = None
    swap: SwapOutcome | None = None


class SessionSystem:
    """Runs one level attempt at a time.

    Input arrives either through the public methods or through bus events
    (tick, tile_click, tile_swap_request, level/pause/restart requests). Every
    state change is announced on the bus for the presentation layer.
    """

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        *,
        catalog: LevelCatalog | None = None,
        board_system: BoardSystem | None = None,
        rng: random.Random | None = None,
        hint_finder: HintFinder = find_hint,
    ) -> None:
        self.world = world
        self.event_bus = event_bus
        self.catalog = catalog or default_catalog()
        self.board = board_system or BoardSystem(world, event_bus)
        self._rng = rng or getattr(world, "random", None) or random.Random()
        self._hint_finder = hint_finder
        self._session_entity: Optional[int] = None
        self._config: Optional[LevelConfig] = None

        self.event_bus.subscribe(EVENT_TICK, self.on_tick)
        self.event_bus.subscribe(EVENT_TILE_CLICK, self.on_tile_click)
        self.event_bus.subscribe(EVENT_TILE_SWAP_REQUEST, self.on_swap_request)
        self.event_bus.subscribe(EVENT_LEVEL_START_REQUEST, self.on_level_start_request)
        self.event_bus.subscribe(EVENT_PAUSE_REQUEST, self.on_pause_request)
        self.event_bus.subscribe(EVENT_RESUME_REQUEST, self.on_resume_request)
        self.event_bus.subscribe(EVENT_RESTART_REQUEST, self.on_restart_request)
        self.event_bus.subscribe(EVENT_NEXT_LEVEL_REQUEST, self.on_next_level_request)
        self.event_bus.subscribe(EVENT_MENU_REQUEST, self.on_menu_request)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def state(self) -> GameMode:
        return current_mode(self.world)

    @property
    def session(self) -> Session | None:
        if self._session_entity is None:
            return None
        return self.world.component_for_entity(self._session_entity, Session)

    @property
    def level_config(self) -> LevelConfig | None:
        return self._config

    @property
    def level(self) -> int | None:
        session = self.session
        return session.level if session else None

    @property
    def score(self) -> int:
        session = self.session
        return session.score if session else 0

    @property
    def gems(self) -> int:
        return get_wallet(self.world).gems

    @property
    def combo_multiplier(self) -> int:
        session = self.session
        return session.combo_multiplier if session else 1

    @property
    def time_remaining(self) -> float:
        session = self.session
        return session.time_remaining if session else 0.0

    @property
    def swaps(self) -> int:
        """Accepted swaps in the current attempt; rejected ones are not counted."""
        session = self.session
        return session.swaps if session else 0

    @property
    def selected(self) -> Position | None:
        session = self.session
        return session.selected if session else None

    @property
    def game_over_reason(self) -> str | None:
        session = self.session
        return session.game_over_reason if session else None

    def grid_snapshot(self) -> GridSnapshot:
        return grid_snapshot(self.world)

    def patterns(self) -> List[TargetPattern]:
        return session_patterns(self.world)

    def pattern_flags(self) -> Tuple[bool, ...]:
        """Completion flag per pattern, ordered by pattern id."""
        return tuple(pattern.completed for pattern in session_patterns(self.world))

    def find_hint(self) -> SwapPair | None:
        """First progressing swap on the current board, or None when the grid is dead."""
        pending = [pattern for pattern in session_patterns(self.world) if not pattern.completed]
        return self._hint_finder(grid_snapshot(self.world), pending)

    def require_session(self) -> Tuple[Session, LevelConfig]:
        session = self.session
        if session is None or self._config is None:
            raise SessionNotActive("no level in progress")
        return session, self._config

    def require_playing(self) -> Tuple[Session, LevelConfig]:
        if self.state != GameMode.PLAYING:
            raise SessionNotActive(f"session is {self.state.name}, not PLAYING")
        return self.require_session()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_level(self, level: int, *, layout: Sequence[Sequence[Cell | None]] | GridSnapshot | None = None) -> Session:
        """Begin a fresh attempt at level.

        Raises LevelNotFound or LevelConfigError before anything is torn down, so a
        refused start leaves the previous session and mode untouched.
        """
        config = self.catalog.get(level)
        validate_level_config(config)
        if layout is None:
            grid = self.board.generate(config, self._rng)
        else:
            grid = layout if isinstance(layout, GridSnapshot) else GridSnapshot.from_rows(layout)
            if (grid.rows, grid.cols) != (config.grid_size, config.grid_size):
                raise LevelConfigError(
                    f"level {level}: layout is {grid.rows}x{grid.cols}, expected {config.grid_size}x{config.grid_size}"
                )

        self._discard_session()
        self.board.install(grid)
        for pattern_id, seed in enumerate(config.patterns):
            self.world.create_entity(TargetPattern(pattern_id=pattern_id, cells=seed), SessionMember())
        session = Session(level=config.level, time_remaining=float(config.time_limit_seconds))
        self._session_entity = self.world.create_entity(session, SessionMember())
        self._config = config

        set_game_mode(self.world, self.event_bus, GameMode.PLAYING)
        logger.info(
            "level %d started: %dx%d grid, %.0fs, %d pattern(s)",
            config.level, config.grid_size, config.grid_size, config.time_limit_seconds, config.pattern_count,
        )
        self.event_bus.emit(
            EVENT_LEVEL_STARTED,
            level=config.level,
            grid_size=config.grid_size,
            time_limit=float(config.time_limit_seconds),
            pattern_count=config.pattern_count,
        )
        self.event_bus.emit(EVENT_SCORE_CHANGED, score=0, delta=0, reason="level_start")
        return session

    def restart(self) -> Session:
        session, _ = self.require_session()
        return self.start_level(session.level)

    def load_next_level(self) -> Session:
        session, _ = self.require_session()
        if self.state != GameMode.LEVEL_COMPLETE:
            raise SessionNotActive("next level is only available after completing a level")
        next_level = session.level + 1
        self.catalog.get(next_level)
        if not self._progress().is_unlocked(next_level):
            raise LevelLocked(next_level)
        return self.start_level(next_level)

    def return_to_menu(self) -> None:
        self._discard_session()
        set_game_mode(self.world, self.event_bus, GameMode.MENU)

    def pause(self) -> bool:
        if self.state != GameMode.PLAYING:
            return False
        set_game_mode(self.world, self.event_bus, GameMode.PAUSED)
        return True

    def resume(self) -> bool:
        if self.state != GameMode.PAUSED:
            return False
        set_game_mode(self.world, self.event_bus, GameMode.PLAYING)
        return True

    def _discard_session(self) -> None:
        for entity, _ in list(self.world.get_component(SessionMember)):
            self.world.delete_entity(entity, immediate=True)
        self.board.board_entity = None
        self._session_entity = None
        self._config = None

    def _progress(self) -> LevelProgress:
        for _, progress in self.world.get_component(LevelProgress):
            return progress
        progress = LevelProgress()
        self.world.create_entity(progress)
        return progress

    # ------------------------------------------------------------------
    # Player intents
    # ------------------------------------------------------------------

    def select_tile(self, pos: Position) -> SelectionOutcome:
        if self.state != GameMode.PLAYING:
            return SelectionOutcome(SelectionResult.IGNORED, pos)
        session, config = self.require_session()
        snapshot = grid_snapshot(self.world)
        if not in_bounds(snapshot.rows, snapshot.cols, pos):
            return SelectionOutcome(SelectionResult.IGNORED, pos)
        current = session.selected
        if current is None:
            if snapshot.is_blocked(pos):
                return SelectionOutcome(SelectionResult.IGNORED, pos)
            self._select(session, pos)
            return SelectionOutcome(SelectionResult.SELECTED, pos)
        if current == pos:
            self._clear_selection(session, reason="same_tile")
            return SelectionOutcome(SelectionResult.DESELECTED, pos)
        if adjacent(current, pos):
            outcome = self.try_swap(current, pos)
            return SelectionOutcome(SelectionResult.SWAPPED, pos, swap=outcome)
        if snapshot.is_blocked(pos):
            return SelectionOutcome(SelectionResult.IGNORED, pos)
        self._clear_selection(session, reason="retarget")
        self._select(session, pos)
        return SelectionOutcome(SelectionResult.RETARGETED, pos)

    def try_swap(self, a: Position, b: Position) -> SwapOutcome:
        if self.state != GameMode.PLAYING:
            return SwapOutcome.ignored()
        session, config = self.require_session()
        self._clear_selection(session, reason="swap")
        try:
            swap_tiles(self.world, a, b)
        except GridError as exc:
            logger.debug("swap %s <-> %s rejected: %s", a, b, exc.code)
            self.event_bus.emit(EVENT_TILE_SWAP_REJECTED, src=a, dst=b, error=exc)
            return SwapOutcome.rejected(exc)

        session.swaps += 1
        outcome = self._score_matches(session, config)
        self._clear_selection(session, reason="swap")
        self.event_bus.emit(EVENT_TILE_SWAPPED, src=a, dst=b, outcome=outcome)
        logger.debug("swap %s <-> %s: %s %s", a, b, outcome.result.name, list(outcome.matched))
        self.evaluate_terminal()
        return outcome

    def _score_matches(self, session: Session, config: LevelConfig) -> SwapOutcome:
        entries = [(entity, pattern) for entity, pattern in pattern_entities(self.world) if not pattern.completed]
        matched = find_matches(grid_snapshot(self.world), [pattern for _, pattern in entries])
        by_id = {pattern.pattern_id: pattern for _, pattern in entries}
        for pattern_id in matched:
            pattern = by_id[pattern_id]
            pattern.completed = True
            points = POINTS_PER_TILE * pattern.cell_count * session.level * session.combo_multiplier
            session.score += points
            session.gems_earned += GEMS_PER_PATTERN
            grant_gems(self.world, self.event_bus, GEMS_PER_PATTERN, reason="pattern_matched")
            self.event_bus.emit(EVENT_PATTERN_MATCHED, pattern_id=pattern_id, points=points, gems=GEMS_PER_PATTERN)
            self.event_bus.emit(EVENT_SCORE_CHANGED, score=session.score, delta=points, reason="pattern_matched")

        if len(matched) > 1:
            bonus = len(matched) * CHAIN_BONUS_MULTIPLIER
            session.score += bonus
            session.time_remaining += CHAIN_TIME_BONUS
            session.combo_multiplier = min(session.combo_multiplier + 1, MAX_COMBO_MULTIPLIER)
            self.event_bus.emit(
                EVENT_CHAIN_BONUS,
                match_count=len(matched),
                bonus=bonus,
                time_bonus=CHAIN_TIME_BONUS,
                combo_multiplier=session.combo_multiplier,
            )
            self.event_bus.emit(EVENT_SCORE_CHANGED, score=session.score, delta=bonus, reason="chain_bonus")
            self.event_bus.emit(
                EVENT_TIME_CHANGED,
                time_remaining=session.time_remaining,
                delta=CHAIN_TIME_BONUS,
                reason="chain_bonus",
            )
        else:
            session.combo_multiplier = 1
        return SwapOutcome.from_matches(matched)

    def _select(self, session: Session, pos: Position) -> None:
        session.selected = pos
        self.event_bus.emit(EVENT_TILE_SELECTED, row=pos[0], col=pos[1])

    def _clear_selection(self, session: Session, *, reason: str) -> None:
        previous = session.selected
        if previous is None:
            return
        session.selected = None
        self.event_bus.emit(EVENT_TILE_DESELECTED, reason=reason, prev_row=previous[0], prev_col=previous[1])

    # ------------------------------------------------------------------
    # Timer & terminal conditions
    # ------------------------------------------------------------------

    def tick(self, dt: float) -> GameMode:
        """Advance the countdown by dt seconds while PLAYING and re-run terminal checks."""
        if self.state != GameMode.PLAYING:
            return self.state
        session, _ = self.require_session()
        if dt > 0:
            previous = session.time_remaining
            session.time_remaining = max(0.0, previous - dt)
            self.event_bus.emit(
                EVENT_TIME_CHANGED,
                time_remaining=session.time_remaining,
                delta=session.time_remaining - previous,
                reason="tick",
            )
        self.evaluate_terminal()
        return self.state

    def evaluate_terminal(self) -> GameMode | None:
        """Fire at most one terminal transition; returns the new mode if one fired."""
        if self.state != GameMode.PLAYING:
            return None
        session, config = self.require_session()
        patterns = session_patterns(self.world)
        if patterns and all(pattern.completed for pattern in patterns):
            self._complete_level(session, config)
            return GameMode.LEVEL_COMPLETE
        if session.time_remaining <= 0:
            self._fail_level(session, GAME_OVER_TIMER_EXPIRED)
            return GameMode.GAME_OVER
        if self.find_hint() is None:
            self._fail_level(session, GAME_OVER_NO_VALID_MOVES)
            return GameMode.GAME_OVER
        return None

    def _complete_level(self, session: Session, config: LevelConfig) -> None:
        time_bonus = math.floor(session.time_remaining * TIME_BONUS_MULTIPLIER)
        session.score += time_bonus
        session.gems_earned += config.gem_reward
        self._clear_selection(session, reason="level_complete")
        set_game_mode(self.world, self.event_bus, GameMode.LEVEL_COMPLETE)
        if time_bonus:
            self.event_bus.emit(EVENT_SCORE_CHANGED, score=session.score, delta=time_bonus, reason="time_bonus")
        grant_gems(self.world, self.event_bus, config.gem_reward, reason="level_complete")
        self._update_progress(session)
        logger.info("level %d complete: score %d (time bonus %d)", session.level, session.score, time_bonus)
        self.event_bus.emit(
            EVENT_LEVEL_COMPLETE,
            level=session.level,
            score=session.score,
            time_bonus=time_bonus,
            gems_earned=session.gems_earned,
            time_remaining=session.time_remaining,
            swaps=session.swaps,
        )

    def _fail_level(self, session: Session, reason: str) -> None:
        session.game_over_reason = reason
        self._clear_selection(session, reason="game_over")
        set_game_mode(self.world, self.event_bus, GameMode.GAME_OVER)
        logger.info("level %d failed: %s", session.level, reason)
        self.event_bus.emit(
            EVENT_LEVEL_FAILED,
            level=session.level,
            reason=reason,
            score=session.score,
            time_remaining=session.time_remaining,
            swaps=session.swaps,
        )

    def _update_progress(self, session: Session) -> None:
        progress = self._progress()
        progress.levels_completed += 1
        progress.record_score(session.level, session.score)
        next_level = session.level + 1
        if next_level not in self.catalog or progress.is_unlocked(next_level):
            return
        if session.score >= self.catalog.get(next_level).unlock_score:
            progress.highest_unlocked = next_level
            self.event_bus.emit(EVENT_LEVEL_UNLOCKED, level=next_level)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def on_tick(self, sender, **kwargs):
        dt = kwargs.get('dt')
        if dt is None:
            return
        self.tick(float(dt))

    def on_tile_click(self, sender, **kwargs):
        row = kwargs.get('row')
        col = kwargs.get('col')
        if row is None or col is None:
            return
        self.select_tile((int(row), int(col)))

    def on_swap_request(self, sender, **kwargs):
        src = kwargs.get('src')
        dst = kwargs.get('dst')
        if not src or not dst:
            return
        self.try_swap(tuple(src), tuple(dst))

    def on_level_start_request(self, sender, **kwargs):
        level = kwargs.get('level')
        if level is None:
            return
        self._guarded_start(int(level), lambda: self.start_level(int(level)))

    def on_restart_request(self, sender, **kwargs):
        self._guarded_start(self.level, self.restart)

    def on_next_level_request(self, sender, **kwargs):
        level = self.level
        self._guarded_start(level + 1 if level is not None else None, self.load_next_level)

    def on_pause_request(self, sender, **kwargs):
        self.pause()

    def on_resume_request(self, sender, **kwargs):
        self.resume()

    def on_menu_request(self, sender, **kwargs):
        self.return_to_menu()

    def _guarded_start(self, level: int | None, start: Callable[[], Session]) -> None:
        try:
            start()
        except PatternSwapError as exc:
            logger.warning("could not start level %s: %s", level, exc)
            self.event_bus.emit(EVENT_LEVEL_START_FAILED, level=level, error=exc)
