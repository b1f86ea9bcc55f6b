from __future__ import annotations

import asyncio
import logging
import random
from typing import Iterable, List, Optional, Tuple

from esper import World

from gemcascade.components.tile_catalog import TileCatalog
from gemcascade.components.tile_kinds import SpecialEffect, SpecialKind, TileKind
from gemcascade.config import EngineConfig
from gemcascade.events.bus import (
    EVENT_SPECIAL_ACTIVATED,
    EVENT_TILE_COUNT_CHANGED,
    EVENT_TILE_PROMOTED,
    EVENT_TILES_DESTROYED,
    EventBus,
)
from gemcascade.grid import Grid
from gemcascade.systems.animation import Animator
from gemcascade.systems.board_ops import (
    delete_tiles,
    detach_tiles,
    is_special,
    set_tile_kind,
    special_effect,
    tile_state,
)
from gemcascade.systems.effect_resolver import compute_destruction_set

logger = logging.getLogger(__name__)

Position = Tuple[int, int]


class SpecialActivator:
    """Runs special tile effects, chaining into specials caught in each blast.

    Every tile carries an in-flight marker (``TileState.activating``) so that a
    tile activates at most once per resolution and is never destroyed by a
    sibling blast while its own effect is still running.
    """

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        grid: Grid,
        animator: Animator,
        catalog: TileCatalog,
        config: EngineConfig,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.world = world
        self.event_bus = event_bus
        self.grid = grid
        self.animator = animator
        self.catalog = catalog
        self.config = config
        self._rng = rng or getattr(world, "random", None) or random.Random()

    async def activate(self, tile: int, *, partner_kind: Optional[TileKind] = None) -> List[Position]:
        """Activate ``tile`` and everything it triggers; returns every cleared cell.

        Returns only once the whole activation tree has finished.
        """
        if not self.grid.is_live(tile) or not is_special(self.world, tile):
            logger.debug("skipping stale activation of tile %s", tile)
            return []
        state = tile_state(self.world, tile)
        if state is None or state.activating:
            return []
        state.activating = True

        while state.is_animating:
            await asyncio.sleep(self.config.poll_interval)
        if not self.grid.is_live(tile):
            return []

        effect = special_effect(self.world, tile)
        origin = self.grid.position_of(tile)
        blast = compute_destruction_set(
            self.grid, tile, self.catalog, partner_kind=partner_kind, rng=self._rng
        )
        promoted = self._apply_promotions(blast.promotions)

        ordinary: List[int] = []
        chained: List[int] = []
        for target in blast.targets:
            if target == tile or target in promoted:
                ordinary.append(target)
                continue
            if not self.grid.is_live(target):
                continue
            if is_special(self.world, target):
                target_state = tile_state(self.world, target)
                if target_state is not None and target_state.activating:
                    continue
                chained.append(target)
            else:
                ordinary.append(target)

        target_positions = [self.grid.position_of(t) for t in blast.targets if self.grid.is_live(t)]
        logger.debug("activating %s at %s, %d targets", effect.name, origin, len(target_positions))
        self.event_bus.emit(
            EVENT_SPECIAL_ACTIVATED,
            position=origin,
            effect=effect,
            targets=target_positions,
        )

        cleared = await self.destroy_tiles(ordinary)
        for special in chained:
            await asyncio.sleep(self.config.chain_delay)
            if not self.grid.is_live(special):
                continue
            cleared.extend(await self.activate(special))
        return cleared

    async def activate_all(self, tiles: Iterable[int], *, partner_kind: Optional[TileKind] = None) -> List[Position]:
        """Activate several tiles one after another, spaced by the chain delay."""
        cleared: List[Position] = []
        for index, tile in enumerate(tiles):
            if index:
                await asyncio.sleep(self.config.chain_delay)
            cleared.extend(await self.activate(tile, partner_kind=partner_kind))
        return cleared

    async def destroy_tiles(self, tiles: Iterable[int], *, detached: Iterable[int] = ()) -> List[Position]:
        """Take tiles out of the grid, await their fade, then delete the entities.

        ``detached`` lists tiles the caller already took out of the grid (a
        spawn replacing a matched tile); they share the same fade.
        """
        candidates = list(dict.fromkeys(tiles))
        positions = {tile: self.grid.position_of(tile) for tile in candidates}
        detached = [tile for tile in detached if self.world.entity_exists(tile)] + detach_tiles(self.grid, candidates)
        for tile in detached:
            positions.setdefault(tile, self.grid.position_of(tile))
        if not detached:
            return []
        cleared = [positions[tile] for tile in detached]
        self.event_bus.emit(EVENT_TILES_DESTROYED, positions=cleared)
        self.event_bus.emit(EVENT_TILE_COUNT_CHANGED, count=self.grid.live_count())
        try:
            await self.animator.fade_out_and_destroy(detached, self.config.fade_duration)
        finally:
            delete_tiles(self.world, detached)
        return cleared

    def _apply_promotions(self, tiles: List[int]) -> List[int]:
        promoted: List[int] = []
        for tile in tiles:
            state = tile_state(self.world, tile)
            if not self.grid.is_live(tile) or state is None or state.activating:
                continue
            set_tile_kind(self.world, tile, SpecialKind(SpecialEffect.BOMB))
            # Its bomb blast is already part of the multi-bomb; it must not fire again.
            state.activating = True
            promoted.append(tile)
            self.event_bus.emit(
                EVENT_TILE_PROMOTED,
                position=self.grid.position_of(tile),
                effect=SpecialEffect.BOMB,
            )
        return promoted
