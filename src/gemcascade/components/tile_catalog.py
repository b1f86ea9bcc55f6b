from dataclasses import dataclass, field
from typing import Iterable, List

from gemcascade.components.tile_kinds import OrdinaryKind

DEFAULT_KIND_NAMES = ('ruby', 'emerald', 'sapphire', 'topaz', 'amethyst', 'pearl', 'onyx', 'jade')


@dataclass(slots=True)
class TileCatalog:
    """Ordinary tile kind definitions stored on the board entity.

    ``names[i]`` labels ordinary kind ``i``. ``spawnable`` is the subset of
    kind indices the factory draws from.
    """
    names: List[str]
    spawnable: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.spawnable:
            self.set_spawnable(self.spawnable)
        else:
            self.spawnable = list(range(len(self.names)))

    @classmethod
    def with_kind_count(cls, kind_count: int) -> "TileCatalog":
        names = [
            DEFAULT_KIND_NAMES[i] if i < len(DEFAULT_KIND_NAMES) else f"kind_{i}"
            for i in range(kind_count)
        ]
        return cls(names=names)

    @property
    def kind_count(self) -> int:
        return len(self.names)

    def name_for(self, index: int) -> str:
        return self.names[index]

    def spawnable_kinds(self) -> List[OrdinaryKind]:
        return [OrdinaryKind(i) for i in self.spawnable]

    def set_spawnable(self, indices: Iterable[int]) -> None:
        seen: set[int] = set()
        filtered: List[int] = []
        for index in indices:
            if 0 <= index < len(self.names) and index not in seen:
                filtered.append(index)
                seen.add(index)
        # The factory needs three kinds to always avoid an immediate triple.
        if len(filtered) < 3:
            filtered = list(range(len(self.names)))
        self.spawnable = filtered
