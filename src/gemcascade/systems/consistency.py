from __future__ import annotations

import logging
from typing import Set

from esper import World

from gemcascade.components.board_position import BoardPosition
from gemcascade.components.tile import TileType
from gemcascade.grid import Grid
from gemcascade.systems.board_ops import delete_tiles, tile_state

logger = logging.getLogger(__name__)


def sweep_consistency(world: World, grid: Grid) -> int:
    """Repair drift between tile entities and the grid; returns the repair count.

    Grid cells pointing at deleted entities are emptied, a tile recorded in two
    cells keeps only the first, and a registered tile whose coordinate
    disagrees with its cell is moved back to the cell. Tiles outside the grid
    (other than those already fading out) are re-registered when special and
    destroyed when ordinary.
    """
    repairs = 0
    seen: Set[int] = set()
    for pos, tile in list(grid.occupied()):
        if not world.entity_exists(tile) or tile in seen:
            logger.warning("dropping stale grid entry %s at %s", tile, pos)
            grid.clear(*pos)
            repairs += 1
            continue
        seen.add(tile)
        if grid.position_of(tile) != pos:
            logger.warning("tile %s recorded at %s but stored at %s", tile, grid.position_of(tile), pos)
            grid.set(pos[0], pos[1], tile)
            repairs += 1

    orphans = []
    for ent, (tile_type, position) in world.get_components(TileType, BoardPosition):
        if ent in seen:
            continue
        state = tile_state(world, ent)
        if state is not None and state.is_matched:
            continue
        orphans.append((ent, tile_type, position))

    for ent, tile_type, position in orphans:
        repairs += 1
        if tile_type.is_special:
            target = None
            if grid.is_in_bounds(position.x, position.y) and grid.get(position.x, position.y) is None:
                target = (position.x, position.y)
            else:
                empty = grid.empty_cells()
                if empty:
                    target = empty[0]
            if target is not None:
                logger.warning("re-registering special tile %s at %s", ent, target)
                grid.set(target[0], target[1], ent)
                continue
        logger.warning("destroying unregistered tile %s", ent)
        delete_tiles(world, [ent])
    return repairs
