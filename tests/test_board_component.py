import random

from gemcascade.components.board import Board
from gemcascade.components.board_state import BoardPhase, BoardState
from gemcascade.components.tile_catalog import TileCatalog
from gemcascade.config import EngineConfig
from gemcascade.events.bus import EVENT_TILE_COUNT_CHANGED, EventBus
from gemcascade.systems.animation import AnimationSystem, ImmediateAnimator
from gemcascade.systems.board_ops import board_dimensions
from gemcascade.world import build_board_engine, create_world
from tests.helpers import payloads, record


def test_board_component_exists():
    bus = EventBus()
    world = create_world(bus, EngineConfig(width=6, height=7))
    boards = list(world.get_component(Board))
    assert boards, 'Board component missing'
    ent, comp = boards[0]
    assert comp.width == 6 and comp.height == 7
    assert world.component_for_entity(ent, TileCatalog).kind_count == 6
    assert world.component_for_entity(ent, BoardState).phase is BoardPhase.READY
    assert isinstance(world.random, random.Random)


def test_built_engine_is_populated_and_ready():
    bus = EventBus()
    events = record(bus, EVENT_TILE_COUNT_CHANGED)
    engine = build_board_engine(bus, EngineConfig.instant(width=5, height=6), rng=random.Random(9))
    assert engine.live_tile_count() == 30
    assert payloads(events, EVENT_TILE_COUNT_CHANGED) == [{'count': 30}]
    assert engine.state is BoardPhase.READY
    assert isinstance(engine.animator, ImmediateAnimator)


def test_tick_driven_engine_uses_animation_system():
    engine = build_board_engine(populate=False, tick_driven=True)
    assert isinstance(engine.animator, AnimationSystem)
    assert engine.live_tile_count() == 0


def test_same_seed_builds_same_board():
    first = build_board_engine(rng=random.Random(42))
    second = build_board_engine(rng=random.Random(42))
    assert first.grid.kind_map() == second.grid.kind_map()


def test_grid_takes_its_size_from_board_component():
    engine = build_board_engine(EventBus(), EngineConfig.instant(width=5, height=9), populate=False)
    assert board_dimensions(engine.world) == (5, 9)
    assert (engine.grid.width, engine.grid.height) == (5, 9)
