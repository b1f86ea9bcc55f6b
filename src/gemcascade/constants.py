BOARD_WIDTH = 8
BOARD_HEIGHT = 8
ORDINARY_KIND_COUNT = 6

# Special kinds occupy the id range starting here; ``kind_id - SPECIAL_KIND_OFFSET``
# indexes the SpecialEffect enumeration.
SPECIAL_KIND_OFFSET = 100

# Kind placed once by the factory after an inconsistent-swap recovery.
FALLBACK_KIND = 0

# Base move speed of a falling tile (cells per unit); fall duration is derived from it.
GEM_MOVE_SPEED = 5.0

# Animation durations (seconds).
SWAP_DURATION = 0.3
FALL_DURATION = 0.3 / GEM_MOVE_SPEED
FADE_DURATION = 0.2

# Pacing delays between resolution sub-steps (seconds).
DESTROY_DELAY = 0.2
CHAIN_DELAY = 0.1
FILL_STEP_DELAY = 0.1
SETTLE_DELAY = 0.3
CASCADE_DELAY = 0.2

# How often a suspended activation re-checks the tile's animating flag.
POLL_INTERVAL = 1 / 60

MAX_CASCADE_DEPTH = 100
MAX_STALEMATE_RESETS = 3

# Human readable status per board state, shown by the host's status line.
STATUS_TEXT = {
    "READY": "Ready: swap two gems",
    "SWAPPING": "Swapping: gems are moving",
    "RESOLVING": "Resolving: clearing matched gems",
    "FILLING": "Filling: dropping new gems",
    "RESETTING": "Resetting: reshuffling the board",
}
