import random

from esper import World

from gemcascade.components.board import Board
from gemcascade.components.board_state import BoardState
from gemcascade.components.tile_catalog import TileCatalog
from gemcascade.config import EngineConfig
from gemcascade.events.bus import EventBus
from gemcascade.factories.tile_factory import TileFactory
from gemcascade.grid import Grid
from gemcascade.systems.activation import SpecialActivator
from gemcascade.systems.animation import AnimationSystem, Animator, ImmediateAnimator
from gemcascade.systems.board_engine import BoardEngine
from gemcascade.systems.board_ops import board_dimensions, get_tile_catalog


def create_world(
    event_bus: EventBus,
    config: EngineConfig | None = None,
    *,
    rng: random.Random | None = None,
) -> World:
    config = config or EngineConfig()
    world = World()
    setattr(world, "random", rng or random.Random())

    # Single board entity carrying the dimensions, kind catalog and state machine value.
    world.create_entity(
        Board(width=config.width, height=config.height),
        TileCatalog.with_kind_count(config.kind_count),
        BoardState(),
    )
    return world


def build_board_engine(
    event_bus: EventBus | None = None,
    config: EngineConfig | None = None,
    *,
    animator: Animator | None = None,
    rng: random.Random | None = None,
    populate: bool = True,
    tick_driven: bool = False,
) -> BoardEngine:
    """Wire a world, grid, factory and activator into a ready BoardEngine.

    Without an animator every animation completes immediately, which suits
    headless hosts and tests. ``tick_driven`` installs an AnimationSystem
    instead, advanced by the host emitting EVENT_TICK.
    """
    event_bus = event_bus or EventBus()
    config = config or EngineConfig()
    world = create_world(event_bus, config, rng=rng)
    rng = world.random
    catalog = get_tile_catalog(world)
    if animator is None:
        animator = AnimationSystem(world, event_bus) if tick_driven else ImmediateAnimator()
    width, height = board_dimensions(world)
    grid = Grid(world, width, height)
    factory = TileFactory(world, grid, catalog, fallback_kind=config.fallback_kind, rng=rng)
    activator = SpecialActivator(world, event_bus, grid, animator, catalog, config, rng=rng)
    engine = BoardEngine(world, event_bus, grid, factory, activator, animator, catalog, config, rng=rng)
    if populate:
        engine.populate()
    return engine
