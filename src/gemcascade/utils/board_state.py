from __future__ import annotations

import logging

from esper import World

from gemcascade.components.board_state import BoardPhase, BoardState
from gemcascade.constants import STATUS_TEXT
from gemcascade.events.bus import EVENT_BOARD_STATE_CHANGED, EventBus

logger = logging.getLogger(__name__)


def get_or_create_board_state(world: World) -> BoardState:
    """Return the shared BoardState component, creating it if absent."""
    existing = list(world.get_component(BoardState))
    if existing:
        return existing[0][1]
    world.create_entity(BoardState())
    return list(world.get_component(BoardState))[0][1]


def status_text(phase: BoardPhase) -> str:
    return STATUS_TEXT.get(phase.name, "In play")


def set_board_phase(world: World, event_bus: EventBus, phase: BoardPhase) -> None:
    """Update the board phase and emit a change event when it differs."""

    state = get_or_create_board_state(world)
    previous = state.phase
    if previous == phase:
        return
    state.phase = phase
    logger.info("board state %s -> %s", previous.name, phase.name)
    event_bus.emit(
        EVENT_BOARD_STATE_CHANGED,
        previous=previous,
        state=phase,
        status=status_text(phase),
    )
