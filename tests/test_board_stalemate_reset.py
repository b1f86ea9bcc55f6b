import asyncio

from gemcascade.components.board_state import BoardPhase
from gemcascade.events.bus import (
    EVENT_BOARD_RESET_REQUEST,
    EVENT_BOARD_STATE_CHANGED,
    EVENT_NO_VALID_MOVES,
    EVENT_REFILL_COMPLETED,
)
from gemcascade.systems.match_detector import find_all_matches, has_valid_moves
from tests.helpers import make_engine, payloads, record, stripe_board


def test_stalemate_triggers_board_reset():
    engine = make_engine(11)
    placed = stripe_board(engine)
    assert not has_valid_moves(engine.grid), "Pattern should eliminate all valid moves"
    events = record(engine.event_bus, EVENT_NO_VALID_MOVES, EVENT_REFILL_COMPLETED, EVENT_BOARD_STATE_CHANGED)

    asyncio.run(engine._after_settle())

    assert payloads(events, EVENT_NO_VALID_MOVES), "Expected a stalemate notification"
    refills = payloads(events, EVENT_REFILL_COMPLETED)
    assert refills and len(refills[0]['new_tiles']) == 64, "All tiles should be respawned"
    states = [p['state'] for p in payloads(events, EVENT_BOARD_STATE_CHANGED)]
    assert BoardPhase.RESETTING in states
    assert states[-1] is BoardPhase.READY
    assert not any(engine.world.entity_exists(tile) for tile in placed.values())
    assert engine.live_tile_count() == 64
    assert not find_all_matches(engine.grid)


def test_stalemate_without_auto_reset_only_notifies():
    engine = make_engine(auto_reset_on_stalemate=False)
    stripe_board(engine)
    before = engine.grid.kind_map()
    events = record(engine.event_bus, EVENT_NO_VALID_MOVES, EVENT_REFILL_COMPLETED)

    asyncio.run(engine._after_settle())

    assert len(payloads(events, EVENT_NO_VALID_MOVES)) == 1
    assert not payloads(events, EVENT_REFILL_COMPLETED)
    assert engine.grid.kind_map() == before
    assert engine.state is BoardPhase.READY


def test_stalemate_resets_are_bounded():
    engine = make_engine(max_stalemate_resets=0)
    stripe_board(engine)
    events = record(engine.event_bus, EVENT_REFILL_COMPLETED)
    asyncio.run(engine._after_settle())
    assert not payloads(events, EVENT_REFILL_COMPLETED)
    assert engine.state is BoardPhase.READY


def test_reset_replaces_every_tile():
    engine = make_engine(3, populate=True)
    before = {tile for _, tile in engine.grid.occupied()}
    events = record(engine.event_bus, EVENT_REFILL_COMPLETED)

    assert asyncio.run(engine.reset())

    after = {tile for _, tile in engine.grid.occupied()}
    assert not before & after
    assert len(after) == 64
    assert len(payloads(events, EVENT_REFILL_COMPLETED)[0]['new_tiles']) == 64
    assert not find_all_matches(engine.grid)
    assert engine.state is BoardPhase.READY


def test_reset_only_from_ready():
    engine = make_engine(3, populate=True)
    before = engine.grid.kind_map()
    engine.board_state.phase = BoardPhase.RESOLVING
    assert not asyncio.run(engine.reset())
    assert engine.grid.kind_map() == before


def test_reset_request_from_event_bus():
    engine = make_engine(5, populate=True)
    events = record(engine.event_bus, EVENT_REFILL_COMPLETED)

    async def run():
        engine.event_bus.emit(EVENT_BOARD_RESET_REQUEST, reason="test")
        await engine.wait_idle()

    asyncio.run(run())
    assert payloads(events, EVENT_REFILL_COMPLETED)
    assert engine.live_tile_count() == 64
