"""Fixed level table.

Levels are grouped into three tiers by grid size. The thresholds (3 / 7) follow the
game scene's table; the alternative 4x4-from-level-3 table is not used.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Mapping, Sequence, Tuple

from patternswap.constants import (
    HINT_COST,
    MAX_GRID_SIZE,
    MAX_LEVEL,
    MAX_PATTERN_SIZE,
    MIN_GRID_SIZE,
    REVEAL_COST,
    TIME_EXTENSION_COST,
    TIME_EXTENSION_SECONDS,
)
from patternswap.errors import LevelConfigError, LevelNotFound

logger = logging.getLogger(__name__)

PatternSeed = Tuple[Tuple[str, ...], ...]
Position = Tuple[int, int]


@dataclass(frozen=True)
class LevelConfig:
    level: int
    grid_size: int
    time_limit_seconds: float
    palette: Tuple[str, ...]
    patterns: Tuple[PatternSeed, ...]
    gem_reward: int
    hint_cost: int = HINT_COST
    time_extension_cost: int = TIME_EXTENSION_COST
    time_extension_seconds: float = TIME_EXTENSION_SECONDS
    reveal_cost: int = REVEAL_COST
    blocked_cells: Tuple[Position, ...] = ()
    # Score needed on the previous level for this one to unlock.
    unlock_score: int = 0
    # None leaves time extensions uncapped.
    max_time_remaining: float | None = None

    @property
    def pattern_count(self) -> int:
        return len(self.patterns)


def pattern(*rows: str) -> PatternSeed:
    """Build a pattern seed from space separated color rows: pattern("red red", "blue red")."""
    return tuple(tuple(row.split()) for row in rows)


def validate_level_config(config: LevelConfig) -> LevelConfig:
    """Raise LevelConfigError if config cannot back a playable session."""
    if config.level < 1:
        raise LevelConfigError(f"level number must be positive, got {config.level}")
    size = config.grid_size
    if not MIN_GRID_SIZE <= size <= MAX_GRID_SIZE:
        raise LevelConfigError(f"level {config.level}: grid size {size} outside [{MIN_GRID_SIZE}, {MAX_GRID_SIZE}]")
    if config.time_limit_seconds <= 0:
        raise LevelConfigError(f"level {config.level}: time limit must be positive")
    if not config.palette:
        raise LevelConfigError(f"level {config.level}: empty palette")
    if not config.patterns:
        raise LevelConfigError(f"level {config.level}: no target patterns")
    max_pattern = min(MAX_PATTERN_SIZE, size)
    palette = set(config.palette)
    for index, seed in enumerate(config.patterns):
        k = len(seed)
        if k == 0 or k > max_pattern:
            raise LevelConfigError(f"level {config.level}: pattern {index} size {k} exceeds {max_pattern}")
        if any(len(row) != k for row in seed):
            raise LevelConfigError(f"level {config.level}: pattern {index} is not square")
        unknown = {color for row in seed for color in row} - palette
        if unknown:
            raise LevelConfigError(f"level {config.level}: pattern {index} uses colors outside the palette: {sorted(unknown)}")
    for cost_name in ("hint_cost", "time_extension_cost", "reveal_cost", "gem_reward", "unlock_score"):
        if getattr(config, cost_name) < 0:
            raise LevelConfigError(f"level {config.level}: {cost_name} must not be negative")
    if config.time_extension_seconds < 0:
        raise LevelConfigError(f"level {config.level}: time extension must not be negative")
    for row, col in config.blocked_cells:
        if not (0 <= row < size and 0 <= col < size):
            raise LevelConfigError(f"level {config.level}: blocked cell {(row, col)} outside the grid")
    if len(config.blocked_cells) >= size * size:
        raise LevelConfigError(f"level {config.level}: every cell is blocked")
    return config


def _tier_for(level: int) -> Tuple[int, float]:
    if level <= 3:
        return 3, 90.0
    if level <= 7:
        return 4, 60.0
    return 5, 45.0


_BASE_PALETTE = ("red", "blue", "green")
_TIER_PALETTES: Mapping[int, Tuple[str, ...]] = {
    3: _BASE_PALETTE,
    4: _BASE_PALETTE + ("yellow",),
    5: _BASE_PALETTE + ("yellow", "purple"),
}

_LEVEL_PATTERNS: Mapping[int, Tuple[PatternSeed, ...]] = {
    1: (pattern("red red", "red red"),),
    2: (pattern("blue red", "blue red"),),
    3: (pattern("green blue", "blue green"),),
    4: (pattern("red red", "blue blue"), pattern("green yellow", "green yellow")),
    5: (pattern("yellow red", "red yellow"), pattern("blue blue", "green green")),
    6: (pattern("red blue", "green red"), pattern("yellow yellow", "blue green")),
    7: (pattern("green green", "green red"), pattern("blue yellow", "yellow blue")),
    8: (
        pattern("red red red", "blue blue blue", "red red red"),
        pattern("green purple", "purple green"),
        pattern("yellow yellow", "blue blue"),
    ),
    9: (
        pattern("blue green blue", "green blue green", "blue green blue"),
        pattern("red red", "purple purple"),
        pattern("yellow red", "yellow red"),
    ),
    10: (
        pattern("purple red purple", "red red red", "purple red purple"),
        pattern("green blue", "blue green"),
        pattern("yellow yellow", "yellow yellow"),
    ),
    # With all four corners blocked the two 2x2 patterns must share a column to fit beside the 3x3.
    11: (
        pattern("yellow blue green", "yellow blue green", "yellow blue green"),
        pattern("red purple", "red purple"),
        pattern("blue red", "green red"),
    ),
    12: (
        pattern("red green red", "green purple green", "red green red"),
        pattern("blue blue", "yellow blue"),
        pattern("blue purple", "blue purple"),
    ),
}

_UNLOCK_SCORES: Mapping[int, int] = {4: 100, 8: 400}


def _blocked_for(level: int, size: int) -> Tuple[Position, ...]:
    if level < 10:
        return ()
    last = size - 1
    if level == 10:
        return ((0, 0), (last, last))
    return ((0, 0), (0, last), (last, 0), (last, last))


def build_level_config(level: int) -> LevelConfig:
    if level not in _LEVEL_PATTERNS:
        raise LevelNotFound(level)
    size, time_limit = _tier_for(level)
    return LevelConfig(
        level=level,
        grid_size=size,
        time_limit_seconds=time_limit,
        palette=_TIER_PALETTES[size],
        patterns=_LEVEL_PATTERNS[level],
        gem_reward=10 + 2 * level,
        hint_cost=HINT_COST,
        time_extension_cost=TIME_EXTENSION_COST,
        time_extension_seconds=TIME_EXTENSION_SECONDS,
        reveal_cost=REVEAL_COST,
        blocked_cells=_blocked_for(level, size),
        unlock_score=_UNLOCK_SCORES.get(level, 0),
    )


class LevelCatalog:
    """Read-only lookup of level number to LevelConfig."""

    def __init__(self, configs: Iterable[LevelConfig]) -> None:
        self._configs: Dict[int, LevelConfig] = {}
        for config in configs:
            if config.level in self._configs:
                raise LevelConfigError(f"level {config.level} defined twice")
            self._configs[config.level] = config

    def get(self, level: int) -> LevelConfig:
        try:
            return self._configs[level]
        except KeyError:
            raise LevelNotFound(level) from None

    def __contains__(self, level: object) -> bool:
        return level in self._configs

    def __iter__(self) -> Iterator[LevelConfig]:
        for level in sorted(self._configs):
            yield self._configs[level]

    def __len__(self) -> int:
        return len(self._configs)

    @property
    def max_level(self) -> int:
        return max(self._configs) if self._configs else 0

    def levels(self) -> Sequence[int]:
        return sorted(self._configs)


_DEFAULT_CATALOG: LevelCatalog | None = None


def default_catalog() -> LevelCatalog:
    global _DEFAULT_CATALOG
    if _DEFAULT_CATALOG is None:
        _DEFAULT_CATALOG = LevelCatalog(build_level_config(level) for level in range(1, MAX_LEVEL + 1))
        logger.debug("built default level catalog with %d levels", len(_DEFAULT_CATALOG))
    return _DEFAULT_CATALOG


def get_level_config(level: int) -> LevelConfig:
    return default_catalog().get(level)


def all_level_configs() -> Iterable[LevelConfig]:
    return iter(default_catalog())
