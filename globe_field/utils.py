"""Small numeric helpers, the timezone fallback position, and debouncing.

These are shared by the projection engine, the globe variants and the
gesture controller.  Nothing in here knows about projections.
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable, Optional, Sequence, Tuple


def floor_mod(a: float, n: float) -> float:
    """Return ``a mod n`` with the sign of *n* (unlike C-style remainder).

    Examples:
        >>> floor_mod(-90, 360)
        270.0
    """
    f = a - n * math.floor(a / n)
    # Guard against f == n when a is a tiny negative number.
    return 0.0 if f == n else float(f)


def clamp(x: float, low: float, high: float) -> float:
    """Clamp *x* into ``[low, high]``."""
    return max(low, min(x, high))


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two 2D points."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    return math.sqrt(dx * dx + dy * dy)


def is_value(x: Any) -> bool:
    """True when *x* is neither ``None`` nor a float NaN."""
    if x is None:
        return False
    if isinstance(x, float) and math.isnan(x):
        return False
    return True


def is_finite(x: Any) -> bool:
    """True when *x* is a real number that is not NaN or infinite."""
    try:
        return math.isfinite(x)
    except TypeError:
        return False


def utc_offset_minutes(clock: Optional[Callable[[], float]] = None) -> float:
    """Minutes the local timezone lies *west* of UTC.

    Positive west of Greenwich: UTC-5 yields ``300``.
    """
    now = (clock or time.time)()
    local = time.localtime(now)
    offset = local.tm_gmtoff if local.tm_gmtoff is not None else 0
    return -offset / 60.0


def current_position(offset_minutes: Optional[float] = None) -> Tuple[float, float]:
    """Rotation that points the globe roughly at the user.

    Without geolocation the only hint is the timezone: 24 hours * 60
    minutes / 4 == 360 degrees of longitude.

    Args:
        offset_minutes: Minutes west of UTC.  Defaults to the local
            timezone offset.

    Returns:
        ``(longitude_rotation, 0.0)`` in degrees.
    """
    if offset_minutes is None:
        offset_minutes = utc_offset_minutes()
    return (floor_mod(offset_minutes / 4.0, 360.0), 0.0)


# ---------------------------------------------------------------------------
# Debouncing
# ---------------------------------------------------------------------------

class Debouncer:
    """Fire a callback once a quiet period has elapsed since the last trigger.

    The host loop calls :meth:`trigger` each time the debounced thing
    happens and :meth:`poll` periodically (e.g. once per frame).  The
    callback runs from :meth:`poll` at most once per burst of triggers,
    after *wait* seconds without a new trigger.

    Args:
        callback: Zero-argument callable to invoke when the wait elapses.
        wait: Quiet period in seconds.
        clock: Optional callable returning the current time in seconds
            (defaults to :func:`time.monotonic`).  Useful for testing.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        wait: float,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if wait < 0:
            raise ValueError("wait must be non-negative")
        self._callback = callback
        self._wait = wait
        self._clock = clock or time.monotonic
        self._last_trigger: float = 0.0
        self._pending: bool = False

    @property
    def wait(self) -> float:
        """Quiet period in seconds."""
        return self._wait

    @property
    def pending(self) -> bool:
        """Whether a trigger is waiting to fire."""
        return self._pending

    def trigger(self) -> None:
        """Record a trigger, restarting the quiet period."""
        self._last_trigger = self._clock()
        self._pending = True

    def poll(self) -> bool:
        """Invoke the callback if the quiet period has elapsed.

        Returns:
            ``True`` if the callback ran on this call.
        """
        if not self._pending:
            return False
        if self._clock() - self._last_trigger < self._wait:
            return False
        self._pending = False
        self._callback()
        return True

    def cancel(self) -> None:
        """Drop any pending trigger without firing."""
        self._pending = False
