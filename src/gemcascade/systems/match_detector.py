"""Geometric match detection.

Shapes are found before straight runs so that a cell belonging to a cross,
T or L is never reported again as part of a plain row or column run.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from gemcascade.components.tile_kinds import SpecialKind, TileKind
from gemcascade.grid import Grid, KindMap

Position = Tuple[int, int]

MIN_RUN = 3

_LEFT = (-1, 0)
_RIGHT = (1, 0)
_DOWN = (0, -1)
_UP = (0, 1)


class MatchShape(Enum):
    CROSS = "cross"
    T = "t"
    L = "l"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True, slots=True)
class MatchGroup:
    kind: TileKind
    shape: MatchShape
    positions: Tuple[Position, ...]
    tiles: Tuple[int, ...]

    @property
    def size(self) -> int:
        return len(self.positions)


def _arm(kinds: KindMap, start: Position, step: Position, kind: TileKind, processed: Set[Position]) -> List[Position]:
    cells: List[Position] = []
    x, y = start
    dx, dy = step
    x += dx
    y += dy
    while (x, y) in kinds and (x, y) not in processed and kinds[(x, y)] == kind:
        cells.append((x, y))
        x += dx
        y += dy
    return cells


def _arms(kinds: KindMap, pos: Position, processed: Set[Position]) -> Dict[Position, List[Position]]:
    kind = kinds[pos]
    return {step: _arm(kinds, pos, step, kind, processed) for step in (_LEFT, _RIGHT, _DOWN, _UP)}


def _is_cross(arms: Dict[Position, List[Position]]) -> bool:
    left, right, down, up = (len(arms[s]) for s in (_LEFT, _RIGHT, _DOWN, _UP))
    return (
        left >= 1 and right >= 1 and down >= 1 and up >= 1
        and left + right >= MIN_RUN - 1
        and down + up >= MIN_RUN - 1
    )


def _bar_and_stem(bar_a: int, bar_b: int, stem_a: int, stem_b: int) -> bool:
    bar = bar_a >= 1 and bar_b >= 1 and bar_a + bar_b >= MIN_RUN - 1
    stem = (stem_a >= MIN_RUN - 1 and stem_b == 0) or (stem_b >= MIN_RUN - 1 and stem_a == 0)
    return bar and stem


def _classify_corner(arms: Dict[Position, List[Position]]) -> Optional[MatchShape]:
    left, right, down, up = (len(arms[s]) for s in (_LEFT, _RIGHT, _DOWN, _UP))
    if _bar_and_stem(left, right, down, up) or _bar_and_stem(down, up, left, right):
        return MatchShape.T
    horizontal = (left >= MIN_RUN - 1 and right == 0) or (right >= MIN_RUN - 1 and left == 0)
    vertical = (down >= MIN_RUN - 1 and up == 0) or (up >= MIN_RUN - 1 and down == 0)
    if horizontal and vertical:
        return MatchShape.L
    return None


def _make_group(grid: Grid, kinds: KindMap, shape: MatchShape, cells: List[Position]) -> MatchGroup:
    ordered = tuple(sorted(set(cells)))
    tiles = tuple(grid.get(x, y) for x, y in ordered)
    return MatchGroup(kind=kinds[ordered[0]], shape=shape, positions=ordered, tiles=tiles)


def _shape_cells(pos: Position, arms: Dict[Position, List[Position]]) -> List[Position]:
    cells = [pos]
    for arm in arms.values():
        cells.extend(arm)
    return cells


def find_all_matches(grid: Grid) -> List[MatchGroup]:
    """Detect crosses, then T/L shapes, then horizontal and vertical runs."""
    kinds = grid.kind_map()
    if not kinds:
        return []
    processed: Set[Position] = set()
    groups: List[MatchGroup] = []

    # Crosses
    for pos in grid.positions():
        if pos not in kinds or pos in processed:
            continue
        arms = _arms(kinds, pos, processed)
        if _is_cross(arms):
            cells = _shape_cells(pos, arms)
            groups.append(_make_group(grid, kinds, MatchShape.CROSS, cells))
            processed.update(cells)

    # T and L shapes
    for pos in grid.positions():
        if pos not in kinds or pos in processed:
            continue
        arms = _arms(kinds, pos, processed)
        shape = _classify_corner(arms)
        if shape is not None:
            cells = _shape_cells(pos, arms)
            groups.append(_make_group(grid, kinds, shape, cells))
            processed.update(cells)

    # Horizontal runs
    for y in range(grid.height):
        groups.extend(_line_runs(grid, kinds, processed, [(x, y) for x in range(grid.width)], MatchShape.HORIZONTAL))
    # Vertical runs
    for x in range(grid.width):
        groups.extend(_line_runs(grid, kinds, processed, [(x, y) for y in range(grid.height)], MatchShape.VERTICAL))
    return groups


def _line_runs(grid: Grid, kinds: KindMap, processed: Set[Position], line: List[Position], shape: MatchShape) -> List[MatchGroup]:
    found: List[MatchGroup] = []
    run: List[Position] = []
    last_kind: Optional[TileKind] = None
    for pos in line:
        kind = None if pos in processed else kinds.get(pos)
        if kind is not None and kind == last_kind:
            run.append(pos)
            continue
        if len(run) >= MIN_RUN:
            found.append(_make_group(grid, kinds, shape, run))
        run = [pos] if kind is not None else []
        last_kind = kind
    if len(run) >= MIN_RUN:
        found.append(_make_group(grid, kinds, shape, run))
    for group in found:
        processed.update(group.positions)
    return found


def _line_match_at(kinds: KindMap, pos: Position, step: Position) -> bool:
    """Check the three three-cell windows through pos along one axis."""
    center = kinds.get(pos)
    if center is None:
        return False
    x, y = pos
    dx, dy = step

    def at(offset: int) -> Optional[TileKind]:
        return kinds.get((x + dx * offset, y + dy * offset))

    return (
        (at(-2) == center and at(-1) == center)
        or (at(-1) == center and at(1) == center)
        or (at(1) == center and at(2) == center)
    )


def find_match_after_hypothetical_swap(grid: Grid, x: int, y: int, kinds: KindMap | None = None) -> bool:
    """True when the tile at (x, y) sits in a straight three-run.

    ``kinds`` is an optional snapshot (see ``Grid.kind_map``) in which the
    caller has already swapped two kinds; the grid itself is never touched.
    """
    snapshot = kinds if kinds is not None else grid.kind_map()
    pos = (x, y)
    return _line_match_at(snapshot, pos, _RIGHT) or _line_match_at(snapshot, pos, _UP)


def find_possible_swaps(grid: Grid) -> List[Tuple[Position, Position]]:
    """Enumerate adjacent swaps that would produce a straight three-run."""
    kinds = grid.kind_map()
    swaps: List[Tuple[Position, Position]] = []
    candidates: List[Tuple[Position, Position]] = []
    for y in range(grid.height):
        for x in range(grid.width - 1):
            candidates.append(((x, y), (x + 1, y)))
    for x in range(grid.width):
        for y in range(grid.height - 1):
            candidates.append(((x, y), (x, y + 1)))
    for a, b in candidates:
        if a not in kinds or b not in kinds or kinds[a] == kinds[b]:
            continue
        kinds[a], kinds[b] = kinds[b], kinds[a]
        matched = (
            find_match_after_hypothetical_swap(grid, a[0], a[1], kinds)
            or find_match_after_hypothetical_swap(grid, b[0], b[1], kinds)
        )
        kinds[a], kinds[b] = kinds[b], kinds[a]
        if matched:
            swaps.append((a, b))
    return swaps


def has_valid_moves(grid: Grid) -> bool:
    """A special tile on the board always counts as a move."""
    if any(isinstance(kind, SpecialKind) for kind in grid.kind_map().values()):
        return True
    return bool(find_possible_swaps(grid))
