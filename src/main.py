"""Entry point for a headless Gem Cascade session.

Builds a board, plays hinted swaps and logs the board after every move. The
tick-driven AnimationSystem runs with the default timings, so the same
suspension path a renderer would drive is exercised.
"""
import asyncio
import logging
import random
import sys

from gemcascade.config import EngineConfig
from gemcascade.events.bus import (
    EVENT_BOARD_STATE_CHANGED,
    EVENT_NO_VALID_MOVES,
    EVENT_SPECIAL_ACTIVATED,
    EVENT_SPECIAL_SPAWNED,
    EventBus,
)
from gemcascade.systems.animation import run_clock
from gemcascade.systems.board_ops import format_grid
from gemcascade.world import build_board_engine

logger = logging.getLogger("gemcascade.demo")


async def play(moves: int, seed: int | None) -> None:
    bus = EventBus()
    engine = build_board_engine(bus, EngineConfig(), rng=random.Random(seed), tick_driven=True)
    bus.subscribe(EVENT_BOARD_STATE_CHANGED, lambda sender, **k: logger.debug("status: %s", k['status']))
    bus.subscribe(EVENT_SPECIAL_SPAWNED, lambda sender, **k: logger.info("spawned %s at %s", k['effect'].name, k['position']))
    bus.subscribe(EVENT_SPECIAL_ACTIVATED, lambda sender, **k: logger.info("%s fired at %s", k['effect'].name, k['position']))
    bus.subscribe(EVENT_NO_VALID_MOVES, lambda sender, **k: logger.info("no valid moves"))

    logger.info("initial board\n%s", format_grid(engine.grid))
    rng = random.Random(seed)
    for move in range(1, moves + 1):
        hints = engine.possible_swaps()
        if not hints:
            logger.info("no hint available, stopping")
            break
        (x1, y1), (x2, y2) = rng.choice(hints)
        task = asyncio.ensure_future(engine.request_swap(x1, y1, x2, y2))
        ticks = await run_clock(bus, task.done, realtime=False)
        task.result()
        logger.info(
            "move %d: (%d, %d) -> (%d, %d) settled after %d ticks, cascade depth %d\n%s",
            move, x1, y1, x2, y2, ticks, engine.board_state.cascade_depth, format_grid(engine.grid),
        )


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    moves = int(argv[0]) if argv else 10
    seed = int(argv[1]) if len(argv) > 1 else None
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(play(moves, seed))


if __name__ == "__main__":
    main()
