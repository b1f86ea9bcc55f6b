from dataclasses import dataclass

from gemcascade.components.tile_kinds import TileKind


@dataclass(slots=True)
class TileType:
    """Per-tile kind assignment.

    Stores only the semantic kind. Grid membership is tracked by the Grid;
    transient flags live in TileState.
    """
    kind: TileKind

    @property
    def is_special(self) -> bool:
        return self.kind.is_special


@dataclass(slots=True)
class TileState:
    """Transient per-tile flags.

    is_matched: scheduled for destruction.
    is_animating: a position-changing animation currently owns the tile.
    activating: in-flight marker; set once the tile's special effect has started.
    """
    is_matched: bool = False
    is_animating: bool = False
    activating: bool = False
