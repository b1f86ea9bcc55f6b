from blinker import Signal
from typing import Dict

class EventBus:
    """Simple event bus leveraging blinker Signal objects."""
    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn):
        sig = self._signals.setdefault(name, Signal(name))
        # Use weak=False to retain strong reference to bound methods so systems not kept in a variable still receive events.
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn):
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, **payload):
        sig = self._signals.get(name)
        if sig:
            sig.send(self, **payload)


# ============================================================================
# SYSTEM & TIMING
# ============================================================================
EVENT_TICK = "tick"                                # payload: dt=float


# ============================================================================
# INPUT (from collaborators)
# ============================================================================
EVENT_TILE_SWAP_REQUEST = "tile_swap_request"      # payload: src=(x,y), dst=(x,y)
EVENT_BOARD_RESET_REQUEST = "board_reset_request"  # payload: reason=str|None


# ============================================================================
# SWAP OUTCOMES
# ============================================================================
EVENT_SWAP_REJECTED = "swap_rejected"              # payload: src=(x,y), dst=(x,y), reason=str
EVENT_SWAP_ACCEPTED = "swap_accepted"              # payload: src=(x,y), dst=(x,y)
EVENT_SWAP_INVALID = "swap_invalid"                # payload: src=(x,y), dst=(x,y)


# ============================================================================
# TILE & BOARD MECHANICS
# ============================================================================
EVENT_BOARD_STATE_CHANGED = "board_state_changed"  # payload: previous=BoardPhase|None, state=BoardPhase, status=str
EVENT_MATCH_FOUND = "match_found"                  # payload: groups=list[MatchGroup], positions=[(x,y),...], depth=int
EVENT_TILES_DESTROYED = "tiles_destroyed"          # payload: positions=[(x,y),...]
EVENT_GRAVITY_APPLIED = "gravity_applied"          # payload: moves=list[GravityMove]
EVENT_REFILL_COMPLETED = "refill_completed"        # payload: new_tiles=[(x,y),...]
EVENT_CASCADE_STEP = "cascade_step"                # payload: depth=int
EVENT_CASCADE_COMPLETE = "cascade_complete"        # payload: depth=int
EVENT_BOARD_SETTLED = "board_settled"              # payload: depth=int
EVENT_NO_VALID_MOVES = "no_valid_moves"            # payload: None
EVENT_TILE_COUNT_CHANGED = "tile_count_changed"    # payload: count=int
EVENT_BOARD_RECOVERED = "board_recovered"          # payload: reason=str


# ============================================================================
# SPECIAL TILES
# ============================================================================
EVENT_SPECIAL_SPAWNED = "special_spawned"          # payload: position=(x,y), effect=SpecialEffect
EVENT_SPECIAL_COMBINED = "special_combined"        # payload: position=(x,y), effect=SpecialEffect, consumed=(x,y)
EVENT_SPECIAL_ACTIVATED = "special_activated"      # payload: position=(x,y), effect=SpecialEffect, targets=[(x,y),...]
EVENT_TILE_PROMOTED = "tile_promoted"              # payload: position=(x,y), effect=SpecialEffect


# ============================================================================
# ANIMATION
# ============================================================================
EVENT_ANIMATION_START = "animation_start"          # payload: kind=str, items=list
EVENT_ANIMATION_COMPLETE = "animation_complete"    # payload: kind=str, items=list
