import asyncio

from gemcascade.components.tile import TileState
from gemcascade.components.tile_kinds import SpecialEffect, SpecialKind
from gemcascade.events.bus import (
    EVENT_SPECIAL_ACTIVATED,
    EVENT_TILE_PROMOTED,
    EVENT_TILES_DESTROYED,
)
from tests.helpers import make_engine, payloads, record, stripe_board


def test_activation_chains_into_caught_specials():
    engine = make_engine()
    placed = stripe_board(engine, {(0, 3): 'H', (5, 3): 'V', (5, 6): 'B'})
    events = record(engine.event_bus, EVENT_SPECIAL_ACTIVATED)

    asyncio.run(engine.activator.activate(placed[(0, 3)]))

    activated = payloads(events, EVENT_SPECIAL_ACTIVATED)
    assert [p['effect'] for p in activated] == [
        SpecialEffect.HORIZONTAL_CLEAR,
        SpecialEffect.VERTICAL_CLEAR,
        SpecialEffect.BOMB,
    ]
    cleared = (
        {(x, 3) for x in range(8)}
        | {(5, y) for y in range(8)}
        | {(x, y) for x in range(4, 7) for y in range(5, 8)}
    )
    assert set(engine.grid.empty_cells()) == cleared
    for tile in (placed[(0, 3)], placed[(5, 3)], placed[(5, 6)]):
        assert not engine.world.entity_exists(tile)


def test_each_special_activates_once():
    engine = make_engine()
    placed = stripe_board(engine, {(0, 3): 'H', (5, 3): 'H', (5, 5): 'V'})
    events = record(engine.event_bus, EVENT_SPECIAL_ACTIVATED)

    async def run():
        first = engine.activator.activate(placed[(0, 3)])
        again = engine.activator.activate(placed[(0, 3)])
        await asyncio.gather(first, again)

    asyncio.run(run())
    positions = [p['position'] for p in payloads(events, EVENT_SPECIAL_ACTIVATED)]
    # Row 3 reaches the second H; neither touches (5, 5) because column 5 is never cleared.
    assert positions == [(0, 3), (5, 3)]
    assert engine.kind_at(5, 5) == SpecialKind(SpecialEffect.VERTICAL_CLEAR)


def test_stale_reference_is_skipped():
    engine = make_engine()
    placed = stripe_board(engine, {(2, 2): 'B'})
    tile = placed[(2, 2)]
    engine.grid.clear(2, 2)
    cleared = asyncio.run(engine.activator.activate(tile))
    assert cleared == []
    assert engine.live_tile_count() == 63


def test_multi_bomb_promotions_do_not_fire_again():
    engine = make_engine(seed=11)
    placed = stripe_board(engine, {(4, 4): 'm'})
    events = record(engine.event_bus, EVENT_SPECIAL_ACTIVATED, EVENT_TILE_PROMOTED)

    asyncio.run(engine.activator.activate(placed[(4, 4)]))

    assert len(payloads(events, EVENT_SPECIAL_ACTIVATED)) == 1
    promoted = payloads(events, EVENT_TILE_PROMOTED)
    assert len(promoted) <= 2
    for payload in promoted:
        assert payload['effect'] is SpecialEffect.BOMB
        assert engine.tile_at(*payload['position']) is None


def test_activation_waits_for_animation_flag():
    engine = make_engine()
    placed = stripe_board(engine, {(1, 1): 'V'})
    tile = placed[(1, 1)]
    state = engine.world.component_for_entity(tile, TileState)
    state.is_animating = True
    order = []

    async def release():
        for _ in range(3):
            await asyncio.sleep(0)
        order.append('released')
        state.is_animating = False

    async def run():
        task = asyncio.ensure_future(engine.activator.activate(tile))
        await release()
        await task
        order.append('activated')

    asyncio.run(run())
    assert order == ['released', 'activated']
    assert engine.tile_at(1, 5) is None


def test_destroyed_tiles_are_reported():
    engine = make_engine()
    placed = stripe_board(engine, {(7, 7): 'B'})
    events = record(engine.event_bus, EVENT_TILES_DESTROYED)
    asyncio.run(engine.activator.activate(placed[(7, 7)]))
    destroyed = payloads(events, EVENT_TILES_DESTROYED)
    assert set(destroyed[0]['positions']) == {(6, 6), (6, 7), (7, 6), (7, 7)}
    assert engine.animator.fades[-1] and len(engine.animator.fades[-1]) == 4


def test_bomb_triggers_specials_in_its_block_once():
    engine = make_engine()
    placed = stripe_board(engine, {(3, 3): 'B', (4, 4): 'H', (2, 2): 'V'})
    events = record(engine.event_bus, EVENT_SPECIAL_ACTIVATED)

    asyncio.run(engine.activator.activate(placed[(3, 3)]))

    positions = [p['position'] for p in payloads(events, EVENT_SPECIAL_ACTIVATED)]
    assert positions[0] == (3, 3)
    assert sorted(positions[1:]) == [(2, 2), (4, 4)]
    cleared = (
        {(x, y) for x in range(2, 5) for y in range(2, 5)}
        | {(x, 4) for x in range(8)}
        | {(2, y) for y in range(8)}
    )
    assert set(engine.grid.empty_cells()) == cleared
    for pos in ((3, 3), (4, 4), (2, 2)):
        assert not engine.world.entity_exists(placed[pos])
