from dataclasses import dataclass

@dataclass(slots=True)
class TileType:
    """Per-tile color assignment.

    Stores only the palette color name. Empty state is handled by ActiveSwitch and
    obstruction by the BlockedCell tag, so a swap exchanges values, never positions.
    """
    type_name: str
