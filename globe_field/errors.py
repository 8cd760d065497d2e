"""Exception hierarchy for globe_field.

Callers can catch :class:`GlobeFieldError` for anything raised by the
engine, or a specific subclass where they need to.
"""

from __future__ import annotations

from typing import Iterable


class GlobeFieldError(Exception):
    """Base exception for all globe_field errors."""


class UnknownProjection(GlobeFieldError, KeyError):
    """Raised when a globe is requested for an unregistered projection name."""

    def __init__(self, name: str, available: Iterable[str] = ()) -> None:
        self.name = name
        self.available = sorted(available)
        listing = ", ".join(self.available) if self.available else "(none)"
        super().__init__(
            f"Unknown projection '{name}'. Available projections: {listing}"
        )

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])
