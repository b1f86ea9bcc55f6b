"""Special + special combination rules.

Single source of truth for what two special tiles become when swapped into
each other. Keys are normalised so lookups are order independent.
"""
from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from gemcascade.components.tile_kinds import SpecialEffect

_H = SpecialEffect.HORIZONTAL_CLEAR
_V = SpecialEffect.VERTICAL_CLEAR
_B = SpecialEffect.BOMB
_R = SpecialEffect.RAINBOW

Pair = Tuple[SpecialEffect, SpecialEffect]


def normalize(a: SpecialEffect, b: SpecialEffect) -> Pair:
    return (a, b) if a <= b else (b, a)


_RULES: Dict[Pair, SpecialEffect] = {
    normalize(_H, _H): SpecialEffect.CROSS,
    normalize(_V, _V): SpecialEffect.CROSS,
    normalize(_H, _V): SpecialEffect.CROSS,
    normalize(_B, _B): SpecialEffect.MEGA_BOMB,
    normalize(_R, _R): SpecialEffect.DESTROY_ALL,
    normalize(_H, _B): SpecialEffect.TRIPLE_ROW_CLEAR,
    normalize(_V, _B): SpecialEffect.TRIPLE_COLUMN_CLEAR,
    normalize(_H, _R): SpecialEffect.RANDOM_ROW_CLEAR,
    normalize(_V, _R): SpecialEffect.RANDOM_COLUMN_CLEAR,
    normalize(_B, _R): SpecialEffect.MULTI_BOMB,
}

COMBINATIONS: Mapping[Pair, SpecialEffect] = _RULES


def combine(a: SpecialEffect, b: SpecialEffect) -> Optional[SpecialEffect]:
    """Return the effect produced by swapping ``a`` into ``b``, or None."""
    return _RULES.get(normalize(a, b))


def can_combine(a: SpecialEffect, b: SpecialEffect) -> bool:
    return normalize(a, b) in _RULES
