"""Destruction sets for every special effect.

``compute_destruction_set`` only reads the grid. The one effect that changes
tiles (multi-bomb promoting its picks to bombs) reports the promotions in the
returned Blast and leaves applying them to the activator.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from gemcascade.components.tile_catalog import TileCatalog
from gemcascade.components.tile_kinds import OrdinaryKind, SpecialEffect, SpecialKind, TileKind
from gemcascade.grid import Grid

Position = Tuple[int, int]

_NEIGHBOURS = [(-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1)]
MULTI_BOMB_COUNT = 2
MULTI_BOMB_ATTEMPTS = 3


@dataclass(slots=True)
class Blast:
    targets: List[int] = field(default_factory=list)
    promotions: List[int] = field(default_factory=list)


@dataclass(slots=True)
class BlastContext:
    grid: Grid
    tile: int
    x: int
    y: int
    partner_kind: Optional[TileKind]
    catalog: TileCatalog
    rng: random.Random

    def tiles_at(self, cells: Iterable[Position]) -> List[int]:
        found: List[int] = []
        for x, y in cells:
            tile = self.grid.get(x, y)
            if tile is not None:
                found.append(tile)
        return found

    def row(self, y: int) -> List[Position]:
        return [(x, y) for x in range(self.grid.width)]

    def column(self, x: int) -> List[Position]:
        return [(x, y) for y in range(self.grid.height)]

    def block(self, cx: int, cy: int, radius: int) -> List[Position]:
        return [
            (x, y)
            for x in range(max(cx - radius, 0), min(cx + radius, self.grid.width - 1) + 1)
            for y in range(max(cy - radius, 0), min(cy + radius, self.grid.height - 1) + 1)
        ]


def _random_line_count(rng: random.Random, size: int) -> int:
    low, high = 2, size - 2
    if high <= low:
        return min(low, size)
    return rng.randrange(low, high)


def _horizontal_clear(ctx: BlastContext) -> Blast:
    return Blast(targets=ctx.tiles_at(ctx.row(ctx.y)))


def _vertical_clear(ctx: BlastContext) -> Blast:
    return Blast(targets=ctx.tiles_at(ctx.column(ctx.x)))


def _bomb(ctx: BlastContext) -> Blast:
    return Blast(targets=ctx.tiles_at(ctx.block(ctx.x, ctx.y, 1)))


def _rainbow(ctx: BlastContext) -> Blast:
    target_kind = ctx.partner_kind
    if not isinstance(target_kind, OrdinaryKind):
        target_kind = ctx.rng.choice(ctx.catalog.spawnable_kinds())
    cells = [pos for pos, kind in ctx.grid.kind_map().items() if kind == target_kind]
    return Blast(targets=[ctx.tile] + ctx.tiles_at(cells))


def _cross(ctx: BlastContext) -> Blast:
    return Blast(targets=ctx.tiles_at(ctx.row(ctx.y) + ctx.column(ctx.x)))


def _mega_bomb(ctx: BlastContext) -> Blast:
    return Blast(targets=ctx.tiles_at(ctx.block(ctx.x, ctx.y, 2)))


def _destroy_all(ctx: BlastContext) -> Blast:
    return Blast(targets=[tile for _, tile in ctx.grid.occupied()])


def _random_rows(ctx: BlastContext) -> Blast:
    rows = list(range(ctx.grid.height))
    ctx.rng.shuffle(rows)
    count = _random_line_count(ctx.rng, ctx.grid.height)
    cells: List[Position] = []
    for y in rows[:count]:
        cells.extend(ctx.row(y))
    return Blast(targets=[ctx.tile] + ctx.tiles_at(cells))


def _random_columns(ctx: BlastContext) -> Blast:
    columns = list(range(ctx.grid.width))
    ctx.rng.shuffle(columns)
    count = _random_line_count(ctx.rng, ctx.grid.width)
    cells: List[Position] = []
    for x in columns[:count]:
        cells.extend(ctx.column(x))
    return Blast(targets=[ctx.tile] + ctx.tiles_at(cells))


def _multi_bomb(ctx: BlastContext) -> Blast:
    picks: List[Position] = []
    for _ in range(MULTI_BOMB_ATTEMPTS):
        if len(picks) >= MULTI_BOMB_COUNT:
            break
        pos = (ctx.rng.randrange(ctx.grid.width), ctx.rng.randrange(ctx.grid.height))
        tile = ctx.grid.get(*pos)
        if tile is None or tile == ctx.tile or pos in picks:
            continue
        picks.append(pos)
    blast = Blast(targets=[ctx.tile])
    for px, py in picks:
        blast.promotions.append(ctx.grid.get(px, py))
        blast.targets.extend(ctx.tiles_at(ctx.block(px, py, 1)))
    return blast


def _triple_rows(ctx: BlastContext) -> Blast:
    cells: List[Position] = []
    for y in range(max(ctx.y - 1, 0), min(ctx.y + 1, ctx.grid.height - 1) + 1):
        cells.extend(ctx.row(y))
    return Blast(targets=ctx.tiles_at(cells))


def _triple_columns(ctx: BlastContext) -> Blast:
    cells: List[Position] = []
    for x in range(max(ctx.x - 1, 0), min(ctx.x + 1, ctx.grid.width - 1) + 1):
        cells.extend(ctx.column(x))
    return Blast(targets=ctx.tiles_at(cells))


EFFECT_HANDLERS: Dict[SpecialEffect, Callable[[BlastContext], Blast]] = {
    SpecialEffect.HORIZONTAL_CLEAR: _horizontal_clear,
    SpecialEffect.VERTICAL_CLEAR: _vertical_clear,
    SpecialEffect.BOMB: _bomb,
    SpecialEffect.RAINBOW: _rainbow,
    SpecialEffect.CROSS: _cross,
    SpecialEffect.MEGA_BOMB: _mega_bomb,
    SpecialEffect.DESTROY_ALL: _destroy_all,
    SpecialEffect.RANDOM_ROW_CLEAR: _random_rows,
    SpecialEffect.RANDOM_COLUMN_CLEAR: _random_columns,
    SpecialEffect.MULTI_BOMB: _multi_bomb,
    SpecialEffect.TRIPLE_ROW_CLEAR: _triple_rows,
    SpecialEffect.TRIPLE_COLUMN_CLEAR: _triple_columns,
}


def compute_destruction_set(
    grid: Grid,
    tile: int,
    catalog: TileCatalog,
    *,
    partner_kind: Optional[TileKind] = None,
    rng: random.Random | None = None,
) -> Blast:
    """Tiles destroyed by activating ``tile``; empty for stale or ordinary tiles.

    The activating tile is always part of the result.
    """
    if not grid.is_live(tile):
        return Blast()
    pos = grid.position_of(tile)
    kind = grid.kind_at(*pos)
    if not isinstance(kind, SpecialKind):
        return Blast()
    ctx = BlastContext(
        grid=grid,
        tile=tile,
        x=pos[0],
        y=pos[1],
        partner_kind=partner_kind,
        catalog=catalog,
        rng=rng or random.Random(),
    )
    blast = EFFECT_HANDLERS[kind.effect](ctx)
    targets = list(dict.fromkeys([tile] + blast.targets))
    return Blast(targets=targets, promotions=list(dict.fromkeys(blast.promotions)))
