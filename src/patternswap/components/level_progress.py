from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(slots=True)
class LevelProgress:
    """Aggregated progress that persists across level attempts."""

    highest_unlocked: int = 1
    best_scores: Dict[int, int] = field(default_factory=dict)
    levels_completed: int = 0

    def is_unlocked(self, level: int) -> bool:
        return 1 <= level <= self.highest_unlocked

    def record_score(self, level: int, score: int) -> bool:
        """Store score if it beats the previous best; returns True when it did."""
        previous = self.best_scores.get(level)
        if previous is not None and previous >= score:
            return False
        self.best_scores[level] = score
        return True
