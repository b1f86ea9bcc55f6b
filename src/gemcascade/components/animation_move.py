from dataclasses import dataclass
from typing import Tuple

@dataclass(slots=True)
class MoveAnimation:
    tile: int
    src: Tuple[float, float]
    dst: Tuple[int, int]
    linear: float = 0.0  # 0..1
