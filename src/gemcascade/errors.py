"""Exception types raised inside the board engine.

Nothing here is fatal to a running board: the engine catches these at its
entry points and degrades to rejecting the request or repairing the grid.
"""


class BoardError(Exception):
    """Base class for board engine failures."""


class GridBoundsError(BoardError, IndexError):
    """A write targeted a cell outside the grid."""

    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(f"cell ({x}, {y}) outside {width}x{height} grid")
        self.x = x
        self.y = y


class InvalidSwapError(BoardError):
    """A swap request that cannot be honoured (bounds, adjacency, empty cell)."""

    def __init__(self, src, dst, reason: str):
        super().__init__(f"swap {src} -> {dst} rejected: {reason}")
        self.src = src
        self.dst = dst
        self.reason = reason


class BoardStateError(BoardError):
    """The grid and a tile disagree about where the tile lives."""


class ConfigError(BoardError, ValueError):
    """Engine configuration values are out of range."""
