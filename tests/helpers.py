from __future__ import annotations

import random
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from gemcascade.components.tile_kinds import OrdinaryKind, SpecialEffect, SpecialKind, TileKind
from gemcascade.config import EngineConfig
from gemcascade.events.bus import EventBus
from gemcascade.systems.board_engine import BoardEngine
from gemcascade.world import build_board_engine

Position = Tuple[int, int]

# One character per cell: digits are ordinary kinds, letters are specials, '.' is empty.
SPECIAL_CODES = {
    'H': SpecialEffect.HORIZONTAL_CLEAR,
    'V': SpecialEffect.VERTICAL_CLEAR,
    'B': SpecialEffect.BOMB,
    'R': SpecialEffect.RAINBOW,
    'X': SpecialEffect.CROSS,
    'M': SpecialEffect.MEGA_BOMB,
    'D': SpecialEffect.DESTROY_ALL,
    'r': SpecialEffect.RANDOM_ROW_CLEAR,
    'c': SpecialEffect.RANDOM_COLUMN_CLEAR,
    'm': SpecialEffect.MULTI_BOMB,
    't': SpecialEffect.TRIPLE_ROW_CLEAR,
    'T': SpecialEffect.TRIPLE_COLUMN_CLEAR,
}


def parse_kind(code: str) -> Optional[TileKind]:
    if code == '.':
        return None
    if code.isdigit():
        return OrdinaryKind(int(code))
    return SpecialKind(SPECIAL_CODES[code])


def make_engine(
    seed: int = 7,
    *,
    width: int = 8,
    height: int = 8,
    populate: bool = False,
    animator=None,
    tick_driven: bool = False,
    **overrides,
) -> BoardEngine:
    """Engine with every timing at zero, a seeded rng and (by default) an empty grid."""
    config = EngineConfig.instant(width=width, height=height, **overrides)
    return build_board_engine(
        EventBus(),
        config,
        animator=animator,
        rng=random.Random(seed),
        populate=populate,
        tick_driven=tick_driven,
    )


def lay_out(engine: BoardEngine, cells: Mapping[Position, str]) -> Dict[Position, int]:
    """Place explicit kinds; returns the created tile per position."""
    placed: Dict[Position, int] = {}
    for (x, y), code in cells.items():
        kind = parse_kind(code)
        if kind is None:
            continue
        placed[(x, y)] = engine.factory.create_kind(x, y, kind)
    return placed


def rows_to_cells(rows: Sequence[str]) -> Dict[Position, str]:
    """Rows are written top row first, matching how a board is drawn."""
    height = len(rows)
    cells: Dict[Position, str] = {}
    for row_index, row in enumerate(rows):
        y = height - 1 - row_index
        for x, code in enumerate(row):
            cells[(x, y)] = code
    return cells


def stripes(width: int, height: int, base: int = 3) -> Dict[Position, str]:
    """Diagonal three-kind pattern: no matches and no match-making swap."""
    return {(x, y): str(base + (x + y) % 3) for x in range(width) for y in range(height)}


def stripe_board(engine: BoardEngine, overrides: Mapping[Position, str] | None = None) -> Dict[Position, int]:
    cells = stripes(engine.grid.width, engine.grid.height)
    cells.update(overrides or {})
    return lay_out(engine, cells)


def record(bus: EventBus, *names: str) -> List[Tuple[str, dict]]:
    events: List[Tuple[str, dict]] = []
    for name in names:
        bus.subscribe(name, lambda sender, _name=name, **payload: events.append((_name, payload)))
    return events


def payloads(events: List[Tuple[str, dict]], name: str) -> List[dict]:
    return [payload for event, payload in events if event == name]
