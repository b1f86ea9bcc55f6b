from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from esper import World

from gemcascade.components.board import Board
from gemcascade.components.tile import TileState, TileType
from gemcascade.components.tile_catalog import TileCatalog
from gemcascade.components.tile_kinds import SpecialEffect, SpecialKind, TileKind
from gemcascade.grid import Grid

Position = Tuple[int, int]


@dataclass(slots=True)
class GravityMove:
    tile: int
    source: Position
    target: Position


def get_tile_catalog(world: World) -> TileCatalog:
    for _, catalog in world.get_component(TileCatalog):
        return catalog
    raise RuntimeError("TileCatalog definitions not found")


def board_dimensions(world: World) -> Tuple[int, int]:
    for _, board in world.get_component(Board):
        return board.width, board.height
    raise RuntimeError("Board component not found")


def tile_kind(world: World, tile: int) -> Optional[TileKind]:
    if not world.entity_exists(tile):
        return None
    tile_type = world.try_component(tile, TileType)
    return tile_type.kind if tile_type is not None else None


def tile_state(world: World, tile: int) -> Optional[TileState]:
    if not world.entity_exists(tile):
        return None
    return world.try_component(tile, TileState)


def is_special(world: World, tile: Optional[int]) -> bool:
    if tile is None:
        return False
    kind = tile_kind(world, tile)
    return isinstance(kind, SpecialKind)


def special_effect(world: World, tile: int) -> Optional[SpecialEffect]:
    kind = tile_kind(world, tile)
    if isinstance(kind, SpecialKind):
        return kind.effect
    return None


def set_tile_kind(world: World, tile: int, kind: TileKind) -> None:
    world.component_for_entity(tile, TileType).kind = kind


def detach_tiles(grid: Grid, tiles: Iterable[int]) -> List[int]:
    """Take tiles out of the grid, marking them matched; stale tiles are skipped.

    Returns the tiles actually detached, in the order given.
    """
    detached: List[int] = []
    for tile in tiles:
        if not grid.is_live(tile):
            continue
        pos = grid.position_of(tile)
        if pos is None:
            continue
        grid.clear(*pos)
        state = tile_state(grid.world, tile)
        if state is not None:
            state.is_matched = True
        detached.append(tile)
    return detached


def delete_tiles(world: World, tiles: Iterable[int]) -> None:
    for tile in tiles:
        if world.entity_exists(tile):
            world.delete_entity(tile, immediate=True)


def compute_gravity_moves(grid: Grid) -> List[GravityMove]:
    """Compact every column downward; one move per tile that has to fall."""
    moves: List[GravityMove] = []
    for x in range(grid.width):
        target_y = 0
        for y in range(grid.height):
            tile = grid.get(x, y)
            if tile is None:
                continue
            if y != target_y:
                moves.append(GravityMove(tile=tile, source=(x, y), target=(x, target_y)))
            target_y += 1
    return moves


def apply_gravity_moves(grid: Grid, moves: List[GravityMove]) -> None:
    # Moves are ordered bottom-up per column, so each target is already vacated.
    for move in moves:
        if grid.get(*move.source) != move.tile:
            continue
        grid.clear(*move.source)
        grid.set(move.target[0], move.target[1], move.tile)


def format_grid(grid: Grid) -> str:
    """Text picture of the board, top row first; specials shown as ``*<effect>``."""
    lines: List[str] = []
    for y in reversed(range(grid.height)):
        cells: List[str] = []
        for x in range(grid.width):
            kind = grid.kind_at(x, y)
            if kind is None:
                cells.append(" .")
            elif isinstance(kind, SpecialKind):
                cells.append(f"*{int(kind.effect):x}")
            else:
                cells.append(f"{kind.index:2d}")
        lines.append(" ".join(cells))
    return "\n".join(lines)
