"""Tile kinds as a tagged variant.

A tile is either ``OrdinaryKind(index)`` (matched by index) or
``SpecialKind(effect)`` (activates an area effect). Code switches on the
variant type; the numeric ``kind_id`` form (ordinary ``0..K-1``, special
``100 + effect``) exists only for collaborators that persist or display ids.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from gemcascade.constants import SPECIAL_KIND_OFFSET


class SpecialEffect(IntEnum):
    HORIZONTAL_CLEAR = 0
    VERTICAL_CLEAR = 1
    BOMB = 2
    RAINBOW = 3
    CROSS = 4
    MEGA_BOMB = 5
    DESTROY_ALL = 6
    RANDOM_ROW_CLEAR = 7
    RANDOM_COLUMN_CLEAR = 8
    MULTI_BOMB = 9
    TRIPLE_ROW_CLEAR = 10
    TRIPLE_COLUMN_CLEAR = 11


@dataclass(frozen=True, slots=True)
class OrdinaryKind:
    index: int

    @property
    def kind_id(self) -> int:
        return self.index

    @property
    def is_special(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class SpecialKind:
    effect: SpecialEffect

    @property
    def kind_id(self) -> int:
        return SPECIAL_KIND_OFFSET + int(self.effect)

    @property
    def is_special(self) -> bool:
        return True


TileKind = Union[OrdinaryKind, SpecialKind]


def kind_from_id(kind_id: int) -> TileKind:
    if kind_id >= SPECIAL_KIND_OFFSET:
        return SpecialKind(SpecialEffect(kind_id - SPECIAL_KIND_OFFSET))
    if kind_id < 0:
        raise ValueError(f"negative kind id: {kind_id}")
    return OrdinaryKind(kind_id)
