from __future__ import annotations

from dataclasses import dataclass, replace

from gemcascade import constants
from gemcascade.errors import ConfigError


@dataclass(slots=True, frozen=True)
class EngineConfig:
    """Board dimensions, kind counts and timings, fixed when the engine is built."""

    width: int = constants.BOARD_WIDTH
    height: int = constants.BOARD_HEIGHT
    kind_count: int = constants.ORDINARY_KIND_COUNT
    fallback_kind: int = constants.FALLBACK_KIND
    swap_duration: float = constants.SWAP_DURATION
    fall_duration: float = constants.FALL_DURATION
    fade_duration: float = constants.FADE_DURATION
    destroy_delay: float = constants.DESTROY_DELAY
    chain_delay: float = constants.CHAIN_DELAY
    fill_step_delay: float = constants.FILL_STEP_DELAY
    settle_delay: float = constants.SETTLE_DELAY
    cascade_delay: float = constants.CASCADE_DELAY
    poll_interval: float = constants.POLL_INTERVAL
    max_cascade_depth: int = constants.MAX_CASCADE_DEPTH
    auto_reset_on_stalemate: bool = True
    max_stalemate_resets: int = constants.MAX_STALEMATE_RESETS

    def __post_init__(self) -> None:
        if self.width < 3 or self.height < 3:
            raise ConfigError(f"board must be at least 3x3, got {self.width}x{self.height}")
        # Three kinds is the minimum for the factory to always find a non-matching draw.
        if not 3 <= self.kind_count < constants.SPECIAL_KIND_OFFSET:
            raise ConfigError(f"kind_count out of range: {self.kind_count}")
        if not 0 <= self.fallback_kind < self.kind_count:
            raise ConfigError(f"fallback_kind {self.fallback_kind} not an ordinary kind")
        for name in (
            "swap_duration",
            "fall_duration",
            "fade_duration",
            "destroy_delay",
            "chain_delay",
            "fill_step_delay",
            "settle_delay",
            "cascade_delay",
            "poll_interval",
        ):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        if self.max_cascade_depth < 1:
            raise ConfigError("max_cascade_depth must be positive")
        if self.max_stalemate_resets < 0:
            raise ConfigError("max_stalemate_resets must not be negative")

    @classmethod
    def instant(cls, **overrides) -> "EngineConfig":
        """Config with every duration and delay at zero (tests, headless runs)."""
        zeroed = dict(
            swap_duration=0.0,
            fall_duration=0.0,
            fade_duration=0.0,
            destroy_delay=0.0,
            chain_delay=0.0,
            fill_step_delay=0.0,
            settle_delay=0.0,
            cascade_delay=0.0,
            poll_interval=0.0,
        )
        zeroed.update(overrides)
        return cls(**zeroed)

    def with_changes(self, **changes) -> "EngineConfig":
        return replace(self, **changes)
