from dataclasses import dataclass

@dataclass(slots=True)
class BoardPosition:
    """Fixed grid coordinate of a tile entity; never changes after the board is built."""
    row: int
    col: int
