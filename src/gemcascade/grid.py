from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from esper import World

from gemcascade.components.board_position import BoardPosition
from gemcascade.components.tile import TileType
from gemcascade.components.tile_kinds import TileKind
from gemcascade.errors import GridBoundsError

Position = Tuple[int, int]
KindMap = Dict[Position, TileKind]


class Grid:
    """Width x height array of tile entities.

    Storage and bounds checks only. ``set`` and ``swap`` keep each placed
    tile's BoardPosition in step with its slot, which is the one invariant the
    grid owns. Reads never raise.
    """

    def __init__(self, world: World, width: int, height: int):
        self.world = world
        self.width = width
        self.height = height
        self._cells: List[List[Optional[int]]] = [[None] * height for _ in range(width)]

    def is_in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> Optional[int]:
        if not self.is_in_bounds(x, y):
            return None
        return self._cells[x][y]

    def set(self, x: int, y: int, tile: Optional[int]) -> None:
        if not self.is_in_bounds(x, y):
            raise GridBoundsError(x, y, self.width, self.height)
        self._cells[x][y] = tile
        if tile is not None:
            self._place(tile, x, y)

    def clear(self, x: int, y: int) -> Optional[int]:
        """Empty the cell and return whatever tile was there."""
        tile = self.get(x, y)
        if tile is not None:
            self._cells[x][y] = None
        return tile

    def swap(self, x1: int, y1: int, x2: int, y2: int) -> None:
        if not self.is_in_bounds(x1, y1):
            raise GridBoundsError(x1, y1, self.width, self.height)
        if not self.is_in_bounds(x2, y2):
            raise GridBoundsError(x2, y2, self.width, self.height)
        a = self._cells[x1][y1]
        b = self._cells[x2][y2]
        self._cells[x1][y1] = b
        self._cells[x2][y2] = a
        if b is not None:
            self._place(b, x1, y1)
        if a is not None:
            self._place(a, x2, y2)

    def _place(self, tile: int, x: int, y: int) -> None:
        position = self._component(tile, BoardPosition)
        if position is None:
            self.world.add_component(tile, BoardPosition(x=x, y=y))
        else:
            position.x = x
            position.y = y

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def positions(self) -> Iterator[Position]:
        """Every cell, columns left to right, rows bottom to top."""
        for x in range(self.width):
            for y in range(self.height):
                yield (x, y)

    def occupied(self) -> Iterator[Tuple[Position, int]]:
        for x, y in self.positions():
            tile = self._cells[x][y]
            if tile is not None:
                yield (x, y), tile

    def empty_cells(self) -> List[Position]:
        return [(x, y) for x, y in self.positions() if self._cells[x][y] is None]

    def live_count(self) -> int:
        return sum(1 for _ in self.occupied())

    def position_of(self, tile: int) -> Optional[Position]:
        position = self._component(tile, BoardPosition)
        if position is None:
            return None
        return (position.x, position.y)

    def is_live(self, tile: Optional[int]) -> bool:
        """True when the tile exists and the grid records it at its own coordinate."""
        if tile is None or not self.world.entity_exists(tile):
            return False
        pos = self.position_of(tile)
        if pos is None:
            return False
        return self.get(*pos) == tile

    def kind_at(self, x: int, y: int) -> Optional[TileKind]:
        tile = self.get(x, y)
        if tile is None:
            return None
        tile_type = self._component(tile, TileType)
        return tile_type.kind if tile_type is not None else None

    def kind_map(self) -> KindMap:
        """Snapshot of occupied cells to their kinds."""
        mapping: KindMap = {}
        for pos, tile in self.occupied():
            tile_type = self._component(tile, TileType)
            if tile_type is not None:
                mapping[pos] = tile_type.kind
        return mapping

    def _component(self, tile: int, component_type):
        # esper raises KeyError for entities that were already deleted.
        if not self.world.entity_exists(tile):
            return None
        return self.world.try_component(tile, component_type)
