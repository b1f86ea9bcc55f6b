"""The board state machine.

READY -> SWAPPING -> RESOLVING -> FILLING -> READY, with cascades looping
FILLING back into RESOLVING and RESETTING as an external full reshuffle.
Every transition runs inside one coroutine at a time; requests arriving while
the board is not READY are rejected rather than queued.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Coroutine, List, Optional, Sequence, Set, Tuple

from esper import World

from gemcascade.components.board_state import BoardPhase, BoardState
from gemcascade.components.tile_catalog import TileCatalog
from gemcascade.components.tile_kinds import SpecialKind, TileKind
from gemcascade.config import EngineConfig
from gemcascade.errors import BoardStateError, InvalidSwapError
from gemcascade.events.bus import (
    EVENT_BOARD_RECOVERED,
    EVENT_BOARD_RESET_REQUEST,
    EVENT_BOARD_SETTLED,
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_STEP,
    EVENT_GRAVITY_APPLIED,
    EVENT_MATCH_FOUND,
    EVENT_NO_VALID_MOVES,
    EVENT_REFILL_COMPLETED,
    EVENT_SPECIAL_COMBINED,
    EVENT_SPECIAL_SPAWNED,
    EVENT_SWAP_ACCEPTED,
    EVENT_SWAP_INVALID,
    EVENT_SWAP_REJECTED,
    EVENT_TILE_COUNT_CHANGED,
    EVENT_TILE_SWAP_REQUEST,
    EventBus,
)
from gemcascade.factories.tile_factory import TileFactory
from gemcascade.grid import Grid
from gemcascade.systems.activation import SpecialActivator
from gemcascade.systems.animation import Animator, move_tile
from gemcascade.systems.board_ops import (
    apply_gravity_moves,
    compute_gravity_moves,
    detach_tiles,
    is_special,
    set_tile_kind,
    special_effect,
    tile_kind,
    tile_state,
)
from gemcascade.systems.consistency import sweep_consistency
from gemcascade.systems.match_detector import (
    MatchGroup,
    find_all_matches,
    find_possible_swaps,
    has_valid_moves,
)
from gemcascade.systems.special_resolver import combine_specials, plan_spawns
from gemcascade.utils.board_state import get_or_create_board_state, set_board_phase

logger = logging.getLogger(__name__)

Position = Tuple[int, int]


class BoardEngine:
    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        grid: Grid,
        factory: TileFactory,
        activator: SpecialActivator,
        animator: Animator,
        catalog: TileCatalog,
        config: EngineConfig,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.world = world
        self.event_bus = event_bus
        self.grid = grid
        self.factory = factory
        self.activator = activator
        self.animator = animator
        self.catalog = catalog
        self.config = config
        self._rng = rng or getattr(world, "random", None) or random.Random()
        self._tasks: Set[asyncio.Task] = set()
        self.event_bus.subscribe(EVENT_TILE_SWAP_REQUEST, self.on_swap_request)
        self.event_bus.subscribe(EVENT_BOARD_RESET_REQUEST, self.on_reset_request)

    # ------------------------------------------------------------------
    # Read-only surface
    # ------------------------------------------------------------------

    @property
    def board_state(self) -> BoardState:
        return get_or_create_board_state(self.world)

    @property
    def state(self) -> BoardPhase:
        return self.board_state.phase

    def tile_at(self, x: int, y: int) -> Optional[int]:
        return self.grid.get(x, y)

    def kind_at(self, x: int, y: int) -> Optional[TileKind]:
        return self.grid.kind_at(x, y)

    def live_tile_count(self) -> int:
        return self.grid.live_count()

    def possible_swaps(self) -> List[Tuple[Position, Position]]:
        """Hint list: adjacent swaps that would produce a match."""
        return find_possible_swaps(self.grid)

    # ------------------------------------------------------------------
    # Event bus inputs
    # ------------------------------------------------------------------

    def on_swap_request(self, sender, **kwargs):
        src = kwargs.get('src')
        dst = kwargs.get('dst')
        if not src or not dst:
            return
        self._schedule(self.request_swap(src[0], src[1], dst[0], dst[1]))

    def on_reset_request(self, sender, **kwargs):
        self._schedule(self.reset())

    def _schedule(self, coro: Coroutine) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("no running event loop; request dropped")
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every coroutine scheduled from the event bus to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def populate(self) -> List[int]:
        """Fill every empty cell column by column; the result has no matches."""
        created = [self.factory.create_at(x, y) for x, y in self.grid.empty_cells()]
        if created:
            self.event_bus.emit(EVENT_TILE_COUNT_CHANGED, count=self.grid.live_count())
        return created

    def validate_swap(self, src: Position, dst: Position) -> None:
        if self.state is not BoardPhase.READY:
            raise InvalidSwapError(src, dst, f"board is {self.state.name}")
        for x, y in (src, dst):
            if not self.grid.is_in_bounds(x, y):
                raise InvalidSwapError(src, dst, "out of bounds")
        if abs(src[0] - dst[0]) + abs(src[1] - dst[1]) != 1:
            raise InvalidSwapError(src, dst, "cells are not adjacent")
        if self.grid.get(*src) is None or self.grid.get(*dst) is None:
            raise InvalidSwapError(src, dst, "empty cell")

    async def request_swap(self, x1: int, y1: int, x2: int, y2: int) -> bool:
        """Swap two adjacent tiles and resolve the board.

        Returns False without touching the board when the request is rejected;
        otherwise returns True once the board is READY again.
        """
        src, dst = (x1, y1), (x2, y2)
        try:
            self.validate_swap(src, dst)
        except InvalidSwapError as exc:
            logger.debug("%s", exc)
            self.event_bus.emit(EVENT_SWAP_REJECTED, src=src, dst=dst, reason=exc.reason)
            return False
        await self._run_swap(src, dst)
        return True

    async def reset(self) -> bool:
        """Destroy every tile and refill the board; only honoured when READY."""
        if self.state is not BoardPhase.READY:
            logger.info("reset ignored while board is %s", self.state.name)
            return False
        await self._reset_board()
        return True

    # ------------------------------------------------------------------
    # Swap
    # ------------------------------------------------------------------

    async def _run_swap(self, src: Position, dst: Position) -> None:
        state = self.board_state
        state.cascade_depth = 0
        moved = self.grid.get(*src)
        partner = self.grid.get(*dst)
        set_board_phase(self.world, self.event_bus, BoardPhase.SWAPPING)
        try:
            await self._swap_and_animate(src, dst)
            self._check_swap(moved, dst)
            self._check_swap(partner, src)
            moved_special = is_special(self.world, moved)
            partner_special = is_special(self.world, partner)
            groups = find_all_matches(self.grid)
            if not groups and not moved_special and not partner_special:
                logger.debug("swap %s -> %s makes no match, reverting", src, dst)
                self.event_bus.emit(EVENT_SWAP_INVALID, src=src, dst=dst)
                await self._swap_and_animate(dst, src)
                set_board_phase(self.world, self.event_bus, BoardPhase.READY)
                return
            self.event_bus.emit(EVENT_SWAP_ACCEPTED, src=src, dst=dst)
            set_board_phase(self.world, self.event_bus, BoardPhase.RESOLVING)
            await self._resolve_swap(moved, partner, src, dst, groups)
        except BoardStateError as exc:
            self._recover(str(exc))
        except Exception as exc:
            logger.exception("swap %s -> %s failed", src, dst)
            self._recover(f"swap failed: {exc}")
        await self._fill_and_cascade()

    async def _swap_and_animate(self, src: Position, dst: Position) -> None:
        a = self.grid.get(*src)
        b = self.grid.get(*dst)
        self.grid.swap(src[0], src[1], dst[0], dst[1])
        duration = self.config.swap_duration
        moves = []
        if a is not None:
            moves.append(move_tile(self.world, self.animator, a, dst, duration, origin=_as_point(src)))
        if b is not None:
            moves.append(move_tile(self.world, self.animator, b, src, duration, origin=_as_point(dst)))
        await asyncio.gather(*moves)

    def _check_swap(self, tile: Optional[int], expected: Position) -> None:
        if tile is None or not self.world.entity_exists(tile):
            raise BoardStateError(f"swapped tile at {expected} disappeared")
        if self.grid.get(*expected) != tile or self.grid.position_of(tile) != expected:
            raise BoardStateError(f"tile {tile} is not where the swap left it at {expected}")

    async def _resolve_swap(
        self,
        moved: int,
        partner: int,
        src: Position,
        dst: Position,
        groups: List[MatchGroup],
    ) -> None:
        # The player's tile now sits on dst, the partner on src.
        moved_special = is_special(self.world, moved)
        partner_special = is_special(self.world, partner)

        if moved_special and partner_special:
            result = combine_specials(special_effect(self.world, moved), special_effect(self.world, partner))
            if result is None:
                await self.activator.activate_all([moved, partner])
                return
            logger.debug("combining specials at %s into %s", dst, result.name)
            set_tile_kind(self.world, moved, SpecialKind(result))
            self.event_bus.emit(EVENT_SPECIAL_COMBINED, position=dst, effect=result, consumed=src)
            await self.activator.destroy_tiles([partner])
            await asyncio.sleep(self.config.destroy_delay)
            await self.activator.activate(moved)
            return

        if moved_special or partner_special:
            special, ordinary = (moved, partner) if moved_special else (partner, moved)
            ordinary_kind = tile_kind(self.world, ordinary)
            if groups:
                await self._resolve_groups(groups, [dst, src], player=True)
            await self.activator.activate(special, partner_kind=ordinary_kind)
            return

        await self._resolve_groups(groups, [dst, src], player=True)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _resolve_groups(self, groups: Sequence[MatchGroup], swapped_cells: Sequence[Position], *, player: bool) -> None:
        positions = sorted({pos for group in groups for pos in group.positions})
        self.event_bus.emit(
            EVENT_MATCH_FOUND,
            groups=list(groups),
            positions=positions,
            depth=self.board_state.cascade_depth,
        )
        plans = plan_spawns(self.grid, groups, swapped_cells, player=player, rng=self._rng)
        spawn_cells = {plan.cell for plan in plans}

        consumed: List[int] = []
        matched_specials: List[int] = []
        for group in groups:
            for pos, tile in zip(group.positions, group.tiles):
                if pos in spawn_cells or not self.grid.is_live(tile):
                    continue
                if is_special(self.world, tile):
                    matched_specials.append(tile)
                else:
                    consumed.append(tile)

        # Spawns are placed before any consumed tile leaves the grid.
        replaced: List[int] = []
        for plan in plans:
            replaced.extend(detach_tiles(self.grid, [self.grid.get(*plan.cell)]))
            self.factory.create_special(plan.cell[0], plan.cell[1], plan.effect)
            logger.debug("spawned %s at %s", plan.effect.name, plan.cell)
            self.event_bus.emit(EVENT_SPECIAL_SPAWNED, position=plan.cell, effect=plan.effect)

        await self.activator.destroy_tiles(consumed, detached=replaced)
        await asyncio.sleep(self.config.destroy_delay)
        if matched_specials:
            await self.activator.activate_all(matched_specials)

    async def _fill_and_cascade(self) -> None:
        try:
            await self._cascade()
        except Exception as exc:
            logger.exception("board resolution failed")
            self._recover(f"resolution failed: {exc}")
            self._settle_without_animation()
            return
        await self._after_settle()

    async def _cascade(self) -> None:
        state = self.board_state
        repairs = sweep_consistency(self.world, self.grid)
        if repairs:
            logger.warning("consistency sweep repaired %d cells before filling", repairs)
        while True:
            set_board_phase(self.world, self.event_bus, BoardPhase.FILLING)
            await self._apply_gravity()
            await self._refill()
            await asyncio.sleep(self.config.settle_delay)
            groups = find_all_matches(self.grid)
            if not groups:
                break
            if state.cascade_depth >= self.config.max_cascade_depth:
                logger.warning("cascade stopped at depth %d", state.cascade_depth)
                break
            state.cascade_depth += 1
            self.event_bus.emit(EVENT_CASCADE_STEP, depth=state.cascade_depth)
            set_board_phase(self.world, self.event_bus, BoardPhase.RESOLVING)
            await asyncio.sleep(self.config.cascade_delay)
            await self._resolve_groups(groups, (), player=False)
        if state.cascade_depth:
            self.event_bus.emit(EVENT_CASCADE_COMPLETE, depth=state.cascade_depth)
        self.event_bus.emit(EVENT_BOARD_SETTLED, depth=state.cascade_depth)

    def _settle_without_animation(self) -> None:
        """Compact and refill straight in the grid, then hand the board back as READY."""
        moves = compute_gravity_moves(self.grid)
        if moves:
            apply_gravity_moves(self.grid, moves)
            self.event_bus.emit(EVENT_GRAVITY_APPLIED, moves=moves)
        self.populate()
        self.event_bus.emit(EVENT_BOARD_SETTLED, depth=self.board_state.cascade_depth)
        set_board_phase(self.world, self.event_bus, BoardPhase.READY)

    async def _apply_gravity(self) -> None:
        moves = compute_gravity_moves(self.grid)
        if not moves:
            return
        apply_gravity_moves(self.grid, moves)
        self.event_bus.emit(EVENT_GRAVITY_APPLIED, moves=moves)
        await asyncio.gather(*(
            move_tile(
                self.world,
                self.animator,
                move.tile,
                move.target,
                self.config.fall_duration,
                origin=_as_point(move.source),
            )
            for move in moves
        ))

    async def _refill(self) -> None:
        new_tiles: List[Position] = []
        drops: List[asyncio.Task] = []
        for x in range(self.grid.width):
            drop_offset = 0
            for y in range(self.grid.height):
                if self.grid.get(x, y) is not None:
                    continue
                tile = self.factory.create_at(x, y)
                new_tiles.append((x, y))
                origin = (float(x), float(self.grid.height + drop_offset))
                drops.append(asyncio.ensure_future(
                    move_tile(self.world, self.animator, tile, (x, y), self.config.fall_duration, origin=origin)
                ))
                drop_offset += 1
                await asyncio.sleep(self.config.fill_step_delay)
        if drops:
            await asyncio.gather(*drops)
        if new_tiles:
            self.event_bus.emit(EVENT_REFILL_COMPLETED, new_tiles=new_tiles)
            self.event_bus.emit(EVENT_TILE_COUNT_CHANGED, count=self.grid.live_count())

    async def _after_settle(self) -> None:
        state = self.board_state
        if has_valid_moves(self.grid):
            state.stalemate_resets = 0
            set_board_phase(self.world, self.event_bus, BoardPhase.READY)
            return
        logger.info("no valid moves left")
        self.event_bus.emit(EVENT_NO_VALID_MOVES)
        if self.config.auto_reset_on_stalemate and state.stalemate_resets < self.config.max_stalemate_resets:
            state.stalemate_resets += 1
            await self._reset_board()
            return
        if self.config.auto_reset_on_stalemate:
            logger.warning("giving up on stalemate after %d resets", state.stalemate_resets)
        set_board_phase(self.world, self.event_bus, BoardPhase.READY)

    async def _reset_board(self) -> None:
        state = self.board_state
        set_board_phase(self.world, self.event_bus, BoardPhase.RESETTING)
        logger.info("resetting board")
        try:
            await self.activator.destroy_tiles([tile for _, tile in self.grid.occupied()])
        except Exception as exc:
            logger.exception("board reset failed")
            self._recover(f"reset failed: {exc}")
        state.cascade_depth = 0
        await self._fill_and_cascade()

    async def check_consistency(self) -> int:
        """Sweep the board for grid/entity drift; returns the repair count.

        Only runs while READY. Cells emptied by the sweep are refilled and
        resolved before this returns.
        """
        if self.state is not BoardPhase.READY:
            logger.info("consistency check skipped while board is %s", self.state.name)
            return 0
        repairs = sweep_consistency(self.world, self.grid)
        if repairs:
            self.event_bus.emit(EVENT_BOARD_RECOVERED, reason=f"{repairs} inconsistencies repaired")
            self.board_state.cascade_depth = 0
            await self._fill_and_cascade()
        return repairs

    def _recover(self, reason: str) -> None:
        logger.warning("recovering board: %s", reason)
        self.factory.force_fallback_once()
        for _, tile in self.grid.occupied():
            state = tile_state(self.world, tile)
            # In-flight markers only hold within one resolution.
            if state is not None and state.activating:
                state.activating = False
        sweep_consistency(self.world, self.grid)
        self.event_bus.emit(EVENT_BOARD_RECOVERED, reason=reason)


def _as_point(pos: Position) -> Tuple[float, float]:
    return (float(pos[0]), float(pos[1]))
