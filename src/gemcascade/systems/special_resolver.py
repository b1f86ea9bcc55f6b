from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from gemcascade import combination_table
from gemcascade.components.tile_kinds import SpecialEffect
from gemcascade.grid import Grid
from gemcascade.systems.board_ops import is_special
from gemcascade.systems.match_detector import MatchGroup

Position = Tuple[int, int]

MIN_SPECIAL_GROUP = 4
LINE_LENGTH = 3


@dataclass(frozen=True, slots=True)
class SpawnPlan:
    group: MatchGroup
    effect: SpecialEffect
    cell: Position


def _has_contiguous_run(values: Iterable[int], *, threshold: int) -> bool:
    sorted_vals = sorted(set(values))
    if len(sorted_vals) < threshold:
        return False
    run_length = 1
    for idx in range(1, len(sorted_vals)):
        if sorted_vals[idx] == sorted_vals[idx - 1] + 1:
            run_length += 1
            if run_length >= threshold:
                return True
        else:
            run_length = 1
    return False


def has_horizontal_line(positions: Sequence[Position]) -> bool:
    by_row: Dict[int, List[int]] = {}
    for x, y in positions:
        by_row.setdefault(y, []).append(x)
    return any(_has_contiguous_run(xs, threshold=LINE_LENGTH) for xs in by_row.values())


def has_vertical_line(positions: Sequence[Position]) -> bool:
    by_col: Dict[int, List[int]] = {}
    for x, y in positions:
        by_col.setdefault(x, []).append(y)
    return any(_has_contiguous_run(ys, threshold=LINE_LENGTH) for ys in by_col.values())


def classify(positions: Sequence[Position]) -> Optional[SpecialEffect]:
    """Decide which special tile, if any, a matched group produces."""
    size = len(set(positions))
    if size < MIN_SPECIAL_GROUP:
        return None
    horizontal = has_horizontal_line(positions)
    vertical = has_vertical_line(positions)
    if horizontal and vertical:
        return SpecialEffect.BOMB if size < 6 else SpecialEffect.RAINBOW
    if size >= 5:
        return SpecialEffect.RAINBOW
    if vertical:
        return SpecialEffect.VERTICAL_CLEAR
    if horizontal:
        return SpecialEffect.HORIZONTAL_CLEAR
    return None


def choose_spawn_cell(
    grid: Grid,
    group: MatchGroup,
    swapped_cells: Sequence[Position],
    claimed: Set[Position],
    *,
    player: bool,
    rng: random.Random,
) -> Optional[Position]:
    """Pick where a group's special tile appears.

    Player swaps prefer a swapped cell inside the group; cascades pick at
    random. Cells holding a special tile or already claimed this pass are
    never chosen.
    """
    candidates = [
        pos for pos in group.positions
        if pos not in claimed and not is_special(grid.world, grid.get(*pos))
    ]
    if not candidates:
        return None
    if player:
        for pos in swapped_cells:
            if pos in candidates:
                return pos
        return candidates[0]
    return rng.choice(candidates)


def plan_spawns(
    grid: Grid,
    groups: Sequence[MatchGroup],
    swapped_cells: Sequence[Position],
    *,
    player: bool,
    rng: random.Random,
) -> List[SpawnPlan]:
    claimed: Set[Position] = set()
    plans: List[SpawnPlan] = []
    for group in groups:
        effect = classify(group.positions)
        if effect is None:
            continue
        cell = choose_spawn_cell(grid, group, swapped_cells, claimed, player=player, rng=rng)
        if cell is None:
            continue
        claimed.add(cell)
        plans.append(SpawnPlan(group=group, effect=effect, cell=cell))
    return plans


def combine_specials(a: SpecialEffect, b: SpecialEffect) -> Optional[SpecialEffect]:
    return combination_table.combine(a, b)
