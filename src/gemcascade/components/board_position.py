from dataclasses import dataclass


@dataclass(slots=True)
class BoardPosition:
    """Cell coordinate of a tile; y = 0 is the bottom row."""
    x: int
    y: int
