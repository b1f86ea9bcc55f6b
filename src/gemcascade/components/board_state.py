"""Board state machine value."""
from dataclasses import dataclass
from enum import Enum, auto


class BoardPhase(Enum):
    """Phases of the board engine; only READY accepts swap or reset requests."""
    READY = auto()
    SWAPPING = auto()
    RESOLVING = auto()
    FILLING = auto()
    RESETTING = auto()


@dataclass(slots=True)
class BoardState:
    """Singleton component owned by the board engine."""

    phase: BoardPhase = BoardPhase.READY
    cascade_depth: int = 0
    stalemate_resets: int = 0
