from __future__ import annotations

import logging
import random

from esper import World

from gemcascade.components.board_position import BoardPosition
from gemcascade.components.tile import TileState, TileType
from gemcascade.components.tile_catalog import TileCatalog
from gemcascade.components.tile_kinds import OrdinaryKind, SpecialEffect, SpecialKind, TileKind
from gemcascade.grid import Grid

logger = logging.getLogger(__name__)


class TileFactory:
    """Creates tile entities and places them in the grid.

    Ordinary kinds are drawn uniformly from the catalog's spawnable kinds and
    redrawn while the draw would complete a three-in-a-row with the two placed
    neighbours to the left or below. Filling columns left to right and rows
    bottom to top means only already placed neighbours are ever consulted.
    """

    def __init__(
        self,
        world: World,
        grid: Grid,
        catalog: TileCatalog,
        *,
        fallback_kind: int = 0,
        rng: random.Random | None = None,
    ) -> None:
        self.world = world
        self.grid = grid
        self.catalog = catalog
        self.fallback_kind = fallback_kind
        candidate_rng = rng or getattr(world, "random", None)
        self._rng: random.Random = candidate_rng or random.Random()
        self._force_fallback = False

    @property
    def fallback_pending(self) -> bool:
        return self._force_fallback

    def force_fallback_once(self) -> None:
        """Make the next ``create_at`` place the fallback kind unconditionally."""
        self._force_fallback = True

    def create_at(self, x: int, y: int) -> int:
        if self._force_fallback:
            self._force_fallback = False
            logger.warning("placing fallback kind %d at (%d, %d)", self.fallback_kind, x, y)
            kind: TileKind = OrdinaryKind(self.fallback_kind)
        else:
            kind = self._draw_kind(x, y)
        return self._spawn(x, y, kind)

    def create_special(self, x: int, y: int, effect: SpecialEffect) -> int:
        return self._spawn(x, y, SpecialKind(effect))

    def create_kind(self, x: int, y: int, kind: TileKind) -> int:
        """Place an explicit kind, bypassing the draw (board setup, tests)."""
        return self._spawn(x, y, kind)

    def would_complete_run(self, kind: TileKind, x: int, y: int) -> bool:
        grid = self.grid
        if x > 1 and grid.kind_at(x - 1, y) == kind and grid.kind_at(x - 2, y) == kind:
            return True
        if y > 1 and grid.kind_at(x, y - 1) == kind and grid.kind_at(x, y - 2) == kind:
            return True
        return False

    def _draw_kind(self, x: int, y: int) -> TileKind:
        choices = self.catalog.spawnable_kinds()
        kind = self._rng.choice(choices)
        # At most two kinds can be blocked (left and below), so a legal draw always exists.
        while self.would_complete_run(kind, x, y):
            kind = self._rng.choice(choices)
        return kind

    def _spawn(self, x: int, y: int, kind: TileKind) -> int:
        tile = self.world.create_entity(
            TileType(kind=kind),
            TileState(),
            BoardPosition(x=x, y=y),
        )
        self.grid.set(x, y, tile)
        return tile

