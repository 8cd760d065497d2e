"""Typed events emitted while the user moves the globe, and a tiny bus.

Listeners subscribe to an event class (or to :class:`GlobeEvent` for
everything) and are called synchronously, in subscription order, from
:meth:`EventBus.emit`.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, DefaultDict, List, Optional, Tuple, Type, TypeVar


@dataclass(frozen=True)
class GlobeEvent:
    """Base class of all events."""


@dataclass(frozen=True)
class MoveStart(GlobeEvent):
    """The globe started moving (drag, zoom or programmatic reorientation)."""


@dataclass(frozen=True)
class Move(GlobeEvent):
    """The globe moved; emitted once per pointer update."""


@dataclass(frozen=True)
class MoveEnd(GlobeEvent):
    """The globe settled; a new field should be interpolated."""


@dataclass(frozen=True)
class Click(GlobeEvent):
    """A click on the view.

    Attributes:
        point: Screen position ``(x, y)`` of the click, or ``None`` if
            the location has no position on screen.
        coord: ``(longitude, latitude)`` under the click, empty when the
            point is off the globe.
    """

    point: Optional[Tuple[float, float]]
    coord: Tuple[float, ...] = field(default=())


E = TypeVar("E", bound=GlobeEvent)
Handler = Callable[[GlobeEvent], None]


class EventBus:
    """Synchronous publish/subscribe dispatcher for :class:`GlobeEvent`."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[GlobeEvent], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        """Call *handler* for every emitted instance of *event_type*."""
        self._handlers[event_type].append(handler)  # type: ignore[arg-type]

    def unsubscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        """Remove a handler; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)  # type: ignore[arg-type]

    def emit(self, event: GlobeEvent) -> None:
        """Dispatch *event* to handlers of its class and its base classes."""
        for event_type in type(event).__mro__:
            for handler in list(self._handlers.get(event_type, ())):
                handler(event)
