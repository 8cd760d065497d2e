"""Pointer gesture handling: click / drag / zoom classification.

The :class:`GestureController` turns a stream of pointer interactions
into globe manipulation and high-level events.  Each interaction is an
:class:`Operation` that starts out as a tentative click and is
reclassified as the pointer moves:

* ``SPURIOUS``: the pointer has not moved at all;
* ``CLICK``: it moved less than ``min_move`` pixels without zooming;
* ``DRAG``: it moved further, at constant scale;
* ``ZOOM``: the scale changed.  Zoom is sticky: once entered, the
  operation never goes back to being a drag, and pointer movement is
  ignored for rotation (it only adds jitter on touch devices).

When the interaction ends a click is reported with its geographic
coordinate; a drag or zoom arms a debounced move-end signal that saves
the globe's orientation and announces :class:`~globe_field.events.MoveEnd`
once the globe has been still for ``move_end_wait`` seconds.  Call
:meth:`GestureController.poll` from the host loop to deliver it.

Usage inside a host event loop::

    controller = GestureController(store, view)
    controller.set_globe(build_globe("orthographic", view))
    controller.bus.subscribe(MoveEnd, lambda e: start_interpolation())

    controller.start(pointer)           # press / gesture start
    controller.update(pointer, scale)   # each move or pinch
    controller.end()                    # release
    ...
    controller.poll()                   # once per frame
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from globe_field.config import DEFAULT_CONFIG, EngineConfig
from globe_field.events import Click, EventBus, Move, MoveEnd, MoveStart
from globe_field.globes.base import Globe, Manipulator, View
from globe_field.utils import Debouncer, clamp, distance

logger = logging.getLogger(__name__)

#: Source tag of orientation saves made when a move operation settles.
MOVE_END_SOURCE = "move_end"


# ---------------------------------------------------------------------------
# Orientation persistence
# ---------------------------------------------------------------------------

OrientationListener = Callable[[Optional[str], Optional[str]], None]


class OrientationStore(Protocol):
    """Where the orientation string lives between sessions."""

    def get(self) -> Optional[str]: ...

    def save(self, orientation: str, source: Optional[str] = None) -> None: ...

    def subscribe(self, listener: OrientationListener) -> None: ...


class MemoryOrientationStore:
    """In-memory :class:`OrientationStore` notifying listeners on change.

    Listeners receive ``(orientation, source)`` whenever :meth:`save`
    stores a different value.
    """

    def __init__(self, orientation: Optional[str] = None) -> None:
        self._orientation = orientation
        self._listeners: List[OrientationListener] = []

    def get(self) -> Optional[str]:
        return self._orientation

    def save(self, orientation: str, source: Optional[str] = None) -> None:
        if orientation == self._orientation:
            return
        self._orientation = orientation
        for listener in list(self._listeners):
            listener(orientation, source)

    def subscribe(self, listener: OrientationListener) -> None:
        self._listeners.append(listener)


# ---------------------------------------------------------------------------
# Operation state
# ---------------------------------------------------------------------------

class GestureKind(enum.Enum):
    """Classification of one pointer interaction."""

    CLICK = "click"
    SPURIOUS = "spurious"
    DRAG = "drag"
    ZOOM = "zoom"


@dataclass
class Operation:
    """State of the interaction in progress.

    Attributes:
        kind: Current classification; starts as ``CLICK``.
        start_pointer: Pointer position when the interaction began.
        start_scale: Projection scale when the interaction began.
        manipulator: Session mutating the globe's projection.
    """

    start_pointer: Tuple[float, float]
    start_scale: float
    manipulator: Manipulator
    kind: GestureKind = GestureKind.CLICK


# ---------------------------------------------------------------------------
# GestureController
# ---------------------------------------------------------------------------

class GestureController:
    """Classifies interactions and drives the active globe.

    Args:
        store: Orientation persistence.  The controller subscribes to it
            and reorients the globe when the orientation changes from
            elsewhere.
        view: Size of the view the globe is drawn in.
        config: Movement threshold and move-end debounce window.
        bus: Event bus to emit on; a new one is created if omitted.
        clock: Monotonic time source in seconds (for the debounce).

    Attributes:
        bus: The :class:`EventBus` events are emitted on.
        scale: Current zoom scale, kept in sync with the projection.
        scale_extent: ``(min, max)`` zoom range of the active globe.
    """

    def __init__(
        self,
        store: OrientationStore,
        view: View,
        config: EngineConfig = DEFAULT_CONFIG,
        bus: Optional[EventBus] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.store = store
        self.view = view
        self.config = config
        self.bus = bus or EventBus()
        self.scale: float = 1.0
        self.scale_extent: Tuple[float, float] = config.scale_extent
        self._globe: Optional[Globe] = None
        self._op: Optional[Operation] = None
        self._move_end = Debouncer(
            self._signal_end, config.move_end_wait, clock=clock or time.monotonic
        )
        store.subscribe(self._on_orientation_change)

    # -- Globe ----------------------------------------------------------------

    @property
    def globe(self) -> Optional[Globe]:
        return self._globe

    def set_globe(self, globe: Globe) -> None:
        """Make *globe* the active globe and apply the stored orientation."""
        self._globe = globe
        self.scale_extent = globe.scale_extent()
        self.reorient()

    @property
    def operation(self) -> Optional[Operation]:
        """The interaction in progress, if any."""
        return self._op

    # -- Interaction ----------------------------------------------------------

    def _new_op(self, pointer: Sequence[float], scale: float) -> Operation:
        start = (float(pointer[0]), float(pointer[1]))
        return Operation(
            start_pointer=start,
            start_scale=scale,
            manipulator=self._require_globe().manipulator(start, scale),
        )

    def start(self, pointer: Sequence[float]) -> None:
        """Begin an interaction at *pointer*.

        Ignored while another interaction is in progress, so at most one
        manipulator session is ever open.
        """
        if self._op is None:
            self._op = self._new_op(pointer, self.scale)

    def update(self, pointer: Sequence[float], scale: Optional[float] = None) -> None:
        """Pointer moved to *pointer* and/or the zoom changed to *scale*."""
        current_scale = self.scale if scale is None else clamp(scale, *self.scale_extent)
        if self._op is None:
            # Some hosts deliver a move before the start event.
            self._op = self._new_op(pointer, self.scale)
        op = self._op

        if op.kind in (GestureKind.CLICK, GestureKind.SPURIOUS):
            moved = distance(pointer, op.start_pointer)
            if current_scale == op.start_scale and moved < self.config.min_move:
                # Barely moved and not zooming: not a drag yet.
                op.kind = GestureKind.CLICK if moved > 0 else GestureKind.SPURIOUS
                return
            self.bus.emit(MoveStart())
            op.kind = GestureKind.DRAG
        if current_scale != op.start_scale:
            op.kind = GestureKind.ZOOM

        self.scale = current_scale
        op.manipulator.move(None if op.kind is GestureKind.ZOOM else pointer, current_scale)
        self.bus.emit(Move())

    def end(self) -> Optional[GestureKind]:
        """Finish the interaction in progress.

        Returns:
            The final classification, or ``None`` if nothing was in
            progress.
        """
        op = self._op
        if op is None:
            return None
        op.manipulator.end()
        self._op = None
        if op.kind is GestureKind.CLICK:
            coord = self._require_globe().projection.invert(op.start_pointer)
            self.bus.emit(Click(op.start_pointer, tuple(coord) if coord else ()))
        elif op.kind is not GestureKind.SPURIOUS:
            self._move_end.trigger()
        return op.kind

    def poll(self) -> bool:
        """Deliver the debounced move-end signal if it is due.

        Returns:
            ``True`` if the move-end signal fired on this call.
        """
        return self._move_end.poll()

    def _signal_end(self) -> None:
        op = self._op
        if op is not None and op.kind in (GestureKind.DRAG, GestureKind.ZOOM):
            # A new move began in the meantime; it will signal on its own.
            return
        self.store.save(self._require_globe().orientation(), source=MOVE_END_SOURCE)
        self.bus.emit(MoveEnd())

    # -- Orientation ----------------------------------------------------------

    def _on_orientation_change(self, orientation: Optional[str], source: Optional[str]) -> None:
        self.reorient(source)

    def reorient(self, source: Optional[str] = None) -> None:
        """Apply the stored orientation to the globe.

        Skipped when the change came from this controller's own move-end
        save, since the globe is already oriented that way.
        """
        globe = self._globe
        if globe is None or source == MOVE_END_SOURCE:
            return
        self.bus.emit(MoveStart())
        globe.orientation(self.store.get() or "", self.view)
        self.scale = globe.projection.scale
        self.bus.emit(MoveEnd())

    def show_location(self, coord: Optional[Sequence[float]]) -> None:
        """Orient the globe toward a geolocated ``(longitude, latitude)``.

        *coord* is ``None`` when geolocation is unavailable or was denied;
        that is logged and nothing else happens.
        """
        if coord is None:
            logger.warning("geolocation unavailable; globe left unchanged")
            return
        globe = self._require_globe()
        coord = (float(coord[0]), float(coord[1]))
        rotate = globe.locate(coord)
        if rotate is not None:
            globe.projection.rotate = rotate
            # Saving triggers a reorientation through the store listener.
            self.store.save(globe.orientation())
        self.bus.emit(Click(globe.projection(coord), coord))

    def _require_globe(self) -> Globe:
        if self._globe is None:
            raise RuntimeError("no globe has been set on the gesture controller")
        return self._globe
