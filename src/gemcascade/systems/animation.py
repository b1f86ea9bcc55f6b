from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from esper import World

from gemcascade.components.animation_fade import FadeAnimation
from gemcascade.components.animation_move import MoveAnimation
from gemcascade.components.board_position import BoardPosition
from gemcascade.components.duration import Duration
from gemcascade.events.bus import (
    EVENT_ANIMATION_COMPLETE,
    EVENT_ANIMATION_START,
    EVENT_TICK,
    EventBus,
)
from gemcascade.systems.board_ops import tile_state

logger = logging.getLogger(__name__)

Position = Tuple[int, int]


class Animator(Protocol):
    """Hooks the engine awaits while a collaborator plays animations."""

    async def animate_move(
        self,
        tile: int,
        target: Position,
        duration: float,
        *,
        origin: Optional[Tuple[float, float]] = None,
    ) -> None: ...

    async def fade_out_and_destroy(self, tiles: Sequence[int], duration: float) -> None: ...


async def move_tile(
    world: World,
    animator: Animator,
    tile: int,
    target: Position,
    duration: float,
    *,
    origin: Optional[Tuple[float, float]] = None,
) -> None:
    """Run a move animation with the tile's ``is_animating`` flag raised."""
    state = tile_state(world, tile)
    if state is not None:
        state.is_animating = True
    try:
        await animator.animate_move(tile, target, duration, origin=origin)
    finally:
        state = tile_state(world, tile)
        if state is not None:
            state.is_animating = False


class ImmediateAnimator:
    """Completes every animation on the next loop iteration; keeps a log of calls."""

    def __init__(self) -> None:
        self.moves: List[Tuple[int, Position]] = []
        self.fades: List[List[int]] = []

    async def animate_move(self, tile, target, duration, *, origin=None) -> None:
        self.moves.append((tile, target))
        await asyncio.sleep(0)

    async def fade_out_and_destroy(self, tiles, duration) -> None:
        self.fades.append(list(tiles))
        await asyncio.sleep(0)


class AnimationSystem:
    """Drives timing of animations; each animation is its own component instance.

    Awaiting coroutines resume once the host's EVENT_TICK stream has advanced
    the animation to completion.
    """
    def __init__(self, world: World, event_bus: EventBus):
        self.world = world
        self.event_bus = event_bus
        self._move_waiters: Dict[int, asyncio.Future] = {}
        self._fade_groups: List[Tuple[List[int], asyncio.Future]] = []
        event_bus.subscribe(EVENT_TICK, self.on_tick)

    @property
    def busy(self) -> bool:
        return bool(self._move_waiters or self._fade_groups)

    async def animate_move(self, tile, target, duration, *, origin=None) -> None:
        if origin is None:
            pos = self.world.try_component(tile, BoardPosition) if self.world.entity_exists(tile) else None
            origin = (float(pos.x), float(pos.y)) if pos is not None else (float(target[0]), float(target[1]))
        items = [{'tile': tile, 'from': origin, 'to': target}]
        self.event_bus.emit(EVENT_ANIMATION_START, kind='move', items=items)
        if duration <= 0:
            self.event_bus.emit(EVENT_ANIMATION_COMPLETE, kind='move', items=items)
            await asyncio.sleep(0)
            return
        ent = self.world.create_entity(MoveAnimation(tile=tile, src=origin, dst=target), Duration(duration))
        future = asyncio.get_running_loop().create_future()
        self._move_waiters[ent] = future
        await future

    async def fade_out_and_destroy(self, tiles, duration) -> None:
        tiles = list(tiles)
        positions = []
        for tile in tiles:
            pos = self.world.try_component(tile, BoardPosition) if self.world.entity_exists(tile) else None
            positions.append((pos.x, pos.y) if pos is not None else None)
        self.event_bus.emit(EVENT_ANIMATION_START, kind='fade', items=positions)
        if duration <= 0 or not tiles:
            self.event_bus.emit(EVENT_ANIMATION_COMPLETE, kind='fade', items=positions)
            await asyncio.sleep(0)
            return
        ents = [
            self.world.create_entity(FadeAnimation(tile=tile, pos=pos), Duration(duration))
            for tile, pos in zip(tiles, positions)
        ]
        future = asyncio.get_running_loop().create_future()
        self._fade_groups.append((ents, future))
        await future

    def on_tick(self, sender, **kwargs):
        dt = kwargs.get('dt', 1/60)
        # Move progression
        finished: List[Tuple[int, MoveAnimation]] = []
        for ent, move in list(self.world.get_component(MoveAnimation)):
            if move.linear < 1.0:
                d = self.world.component_for_entity(ent, Duration)
                move.linear = min(1.0, move.linear + dt / d.value)
            if move.linear >= 1.0:
                finished.append((ent, move))
        if finished:
            items = [{'tile': move.tile, 'from': move.src, 'to': move.dst} for _, move in finished]
            for ent, _ in finished:
                self.world.delete_entity(ent, immediate=True)
                self._resolve(self._move_waiters.pop(ent, None))
            self.event_bus.emit(EVENT_ANIMATION_COMPLETE, kind='move', items=items)
        # Fade progression, resolved per group so each awaiting caller resumes together
        remaining: List[Tuple[List[int], asyncio.Future]] = []
        for ents, future in self._fade_groups:
            fades = [self.world.component_for_entity(ent, FadeAnimation) for ent in ents]
            for ent, fade in zip(ents, fades):
                if fade.alpha > 0.0:
                    d = self.world.component_for_entity(ent, Duration)
                    fade.alpha = max(0.0, fade.alpha - dt / d.value)
            if all(fade.alpha <= 0.0 for fade in fades):
                positions = [fade.pos for fade in fades]
                for ent in ents:
                    self.world.delete_entity(ent, immediate=True)
                self._resolve(future)
                self.event_bus.emit(EVENT_ANIMATION_COMPLETE, kind='fade', items=positions)
            else:
                remaining.append((ents, future))
        self._fade_groups = remaining

    @staticmethod
    def _resolve(future: Optional[asyncio.Future]) -> None:
        if future is not None and not future.done():
            future.set_result(None)


async def run_clock(
    event_bus: EventBus,
    until: Callable[[], bool],
    *,
    dt: float = 1/60,
    realtime: bool = False,
    max_ticks: int | None = None,
) -> int:
    """Emit EVENT_TICK until ``until()`` holds; returns the number of ticks sent."""
    ticks = 0
    while not until():
        if max_ticks is not None and ticks >= max_ticks:
            logger.warning("clock stopped after %d ticks", ticks)
            break
        event_bus.emit(EVENT_TICK, dt=dt)
        ticks += 1
        await asyncio.sleep(dt if realtime else 0)
    return ticks
