from dataclasses import dataclass
from typing import Tuple

@dataclass(slots=True)
class TargetPattern:
    """A square sub-grid of colors the player has to reproduce somewhere on the board.

    completed and revealed only ever flip from False to True during a session.
    """
    pattern_id: int
    cells: Tuple[Tuple[str, ...], ...]
    completed: bool = False
    revealed: bool = False

    @property
    def size(self) -> int:
        return len(self.cells)

    @property
    def cell_count(self) -> int:
        return sum(len(row) for row in self.cells)
