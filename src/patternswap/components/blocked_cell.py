from dataclasses import dataclass

@dataclass(slots=True)
class BlockedCell:
    """Tag component for obstructed cells. Blocked tiles can never be swapped or matched."""
    pass
