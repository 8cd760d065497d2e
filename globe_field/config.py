"""Tuning constants for the interpolation engine and gesture controller.

The values are grouped in a frozen :class:`EngineConfig` which is handed
to :class:`~globe_field.field.InterpolationTask` and
:class:`~globe_field.gestures.GestureController` at construction time.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Tuple

#: Amount of time (seconds) an interpolation slice may run before yielding.
MAX_TASK_TIME = 0.100
#: Amount of time (seconds) a yielded interpolation waits before resuming.
MIN_SLEEP_TIME = 0.025
#: Quiet period (seconds) before a drag/zoom is considered finished.
MOVE_END_WAIT = 1.0
#: Overlay transparency on the [0, 255] scale (40% opacity).
OVERLAY_ALPHA = int(0.4 * 255)
#: Slack (pixels) before a press becomes a drag.
MIN_MOVE = 4.0
#: Attempts made by ``Field.randomize_seed`` before giving up.
SEED_ATTEMPTS = 30
#: Range of projection scales a globe may be zoomed to.
SCALE_EXTENT = (25.0, 3000.0)


@dataclass(frozen=True)
class EngineConfig:
    """Timing and appearance knobs shared by the engine components.

    Attributes:
        max_task_time: Wall-clock budget of one interpolation slice (s).
        min_sleep_time: Delay between interpolation slices (s).
        move_end_wait: Debounce window for the move-ended signal (s).
        overlay_alpha: Alpha written with every overlay color (0..255).
        min_move: Pointer travel (px) below which a press is still a click.
        seed_attempts: Rejection-sampling attempts for particle seeds.
        scale_extent: ``(min, max)`` projection scale while zooming.
    """

    max_task_time: float = MAX_TASK_TIME
    min_sleep_time: float = MIN_SLEEP_TIME
    move_end_wait: float = MOVE_END_WAIT
    overlay_alpha: int = OVERLAY_ALPHA
    min_move: float = MIN_MOVE
    seed_attempts: int = SEED_ATTEMPTS
    scale_extent: Tuple[float, float] = SCALE_EXTENT

    def __post_init__(self) -> None:
        for name in ("max_task_time", "min_sleep_time", "move_end_wait", "min_move"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if not 0 <= self.overlay_alpha <= 255:
            raise ValueError(
                f"overlay_alpha must be 0-255, got {self.overlay_alpha}"
            )
        if self.seed_attempts < 1:
            raise ValueError("seed_attempts must be at least 1")
        low, high = self.scale_extent
        if low <= 0 or high < low:
            raise ValueError(f"invalid scale_extent {self.scale_extent!r}")

    def replace(self, **changes: Any) -> "EngineConfig":
        """Return a copy with *changes* applied (validated again)."""
        return dataclasses.replace(self, **changes)


DEFAULT_CONFIG = EngineConfig()
