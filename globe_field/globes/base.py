"""Globe base class: a named projection plus its on-screen behavior.

A :class:`Globe` owns one :class:`~globe_field.projection.Projection`
and implements the behavior every projection variant shares: clamped
bounds, fit-to-view scale, centering, orientation strings, drag/zoom
manipulation and the sphere-outline hooks used for masking and map
drawing.

Variants subclass :class:`Globe`, set a ``name``, implement
:meth:`Globe.new_projection` and override only what differs, e.g.::

    class MyGlobe(Globe):
        name = "my_projection"

        def new_projection(self, view):
            return Projection(Equirectangular(), precision=0.1)

Subclasses defined in modules of the ``globe_field.globes`` package are
registered automatically (see :mod:`globe_field.globes`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from globe_field.config import SCALE_EXTENT
from globe_field.projection import Projection
from globe_field.raw import Point, Polygon
from globe_field.utils import clamp

# Layers a map renderer draws for a standard globe, back to front.
STANDARD_LAYERS = ("background-sphere", "graticule", "hemisphere", "coastline", "lakes")

# Share of the view the fitted globe may occupy.
FIT_MARGIN = 0.9

# Drag sensitivity numerator: degrees of rotation per pixel at scale 60.
DRAG_SENSITIVITY = 60.0

# Precision multiplier while a manipulator session is active.
MANIPULATION_PRECISION_FACTOR = 10.0


@dataclass(frozen=True)
class View:
    """Size of the drawing surface in pixels."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"View dimensions must be non-negative, got {self.width}x{self.height}"
            )


@dataclass(frozen=True)
class Bounds:
    """Sphere-outline bounding box clamped into a view.

    Attributes:
        x: Left-most column (inclusive).
        y: Top-most row (inclusive).
        x_max: Right-most column (inclusive).
        y_max: Bottom-most row (inclusive).
        width: ``x_max - x + 1``, never negative.
        height: ``y_max - y + 1``, never negative.
    """

    x: int
    y: int
    x_max: int
    y_max: int
    width: int
    height: int


def _finite_or(value: float, fallback: float) -> float:
    return value if math.isfinite(value) else fallback


def clamped_bounds(extent: Tuple[Point, Point], view: View) -> Bounds:
    """Clamp projection bounds ``((x0, y0), (x1, y1))`` to *view*.

    Non-finite lower components become 0 and non-finite upper components
    become the view extent before clamping.
    """
    (x0, y0), (x1, y1) = extent
    x = max(math.floor(_finite_or(x0, 0)), 0)
    y = max(math.floor(_finite_or(y0, 0)), 0)
    x_max = min(math.ceil(_finite_or(x1, view.width)), view.width - 1)
    y_max = min(math.ceil(_finite_or(y1, view.height)), view.height - 1)
    width = max(x_max - x + 1, 0)
    height = max(y_max - y + 1, 0)
    return Bounds(x=x, y=y, x_max=x_max, y_max=y_max, width=width, height=height)


@dataclass(frozen=True)
class MapDefinition:
    """Declarative description of what a renderer should draw for a globe.

    Attributes:
        sphere: Outline polygons of the sphere in screen coordinates.
        layers: Layer names, back to front.
        fill_gradient: Optional radial gradient for the sphere background,
            as ``(offset, color)`` stops.
        clip: Optional polygons that map layers must be clipped to
            (used by non-convex outlines).
    """

    sphere: List[Polygon]
    layers: Tuple[str, ...] = STANDARD_LAYERS
    fill_gradient: Optional[Tuple[Tuple[float, str], ...]] = None
    clip: Optional[List[Polygon]] = field(default=None)


class Manipulator:
    """Mutates a projection during one drag/zoom session.

    Drag sensitivity is ``60 / start_scale`` so that a drag feels the same
    at every zoom level.  While the session is open the projection's
    precision is coarsened by :data:`MANIPULATION_PRECISION_FACTOR`;
    :meth:`end` restores it.

    Args:
        projection: The projection to mutate in place.
        start_pointer: Pointer position ``(x, y)`` when the session began.
        start_scale: Projection scale when the session began.
    """

    def __init__(
        self,
        projection: Projection,
        start_pointer: Sequence[float],
        start_scale: float,
    ) -> None:
        self.projection = projection
        self.start_pointer = (float(start_pointer[0]), float(start_pointer[1]))
        self.sensitivity = DRAG_SENSITIVITY / start_scale
        rotate = projection.rotate
        self._offset = (rotate[0] / self.sensitivity, -rotate[1] / self.sensitivity)
        self._original_precision = projection.precision
        projection.precision = self._original_precision * MANIPULATION_PRECISION_FACTOR
        self.ended = False

    def move(self, pointer: Optional[Sequence[float]], scale: float) -> None:
        """Apply the pointer position (if any) and the scale."""
        if pointer is not None:
            xd = pointer[0] - self.start_pointer[0] + self._offset[0]
            yd = pointer[1] - self.start_pointer[1] + self._offset[1]
            self.projection.rotate = (
                xd * self.sensitivity,
                -yd * self.sensitivity,
                self.projection.rotate[2],
            )
        self.projection.scale = float(scale)

    def end(self) -> None:
        """Close the session, restoring the projection's precision."""
        if not self.ended:
            self.projection.precision = self._original_precision
            self.ended = True


class Globe:
    """A model of the earth with a particular projection and behavior.

    Args:
        view: Initial view.  The projection is fitted and centered in it.

    Attributes:
        name: Registry key of the variant.
        projection: The current projection, mutated in place by
            orientation changes and manipulation.
        view: The view the globe was last oriented for.
    """

    name: str = ""

    def __init__(self, view: View) -> None:
        self.view = view
        self.projection = self.new_projection(view)
        self.projection.scale = self.fit(view)
        self.projection.translate = self.center(view)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} {self.orientation()}>"

    def new_projection(self, view: View) -> Projection:
        """Return a fresh default projection of this globe for *view*."""
        raise NotImplementedError("new_projection must be overridden")

    def bounds(self, view: View) -> Bounds:
        """Bounds of the current projection clamped to *view*."""
        return clamped_bounds(self.projection.bounds(), view)

    def fit(self, view: View) -> float:
        """Largest scale at which the whole globe fits inside *view*."""
        default = self.new_projection(view)
        (x0, y0), (x1, y1) = default.bounds()
        h_scale = (x1 - x0) / default.scale
        v_scale = (y1 - y0) / default.scale
        if not (h_scale > 0 and v_scale > 0):
            # Outline collapsed, e.g. clipped to an empty view.
            return 0.0
        return min(view.width / h_scale, view.height / v_scale) * FIT_MARGIN

    def center(self, view: View) -> Tuple[float, float]:
        """Translation at which the globe is centered in *view*."""
        return (view.width / 2.0, view.height / 2.0)

    def scale_extent(self) -> Tuple[float, float]:
        """Range of scales this globe can be zoomed to."""
        return SCALE_EXTENT

    def orientation(self, text: Optional[str] = None, view: Optional[View] = None):
        """Get or set the orientation as a ``"lon,lat,scale"`` string.

        Without arguments, returns the current orientation: the negated
        rotation to two decimals and the scale rounded to an integer.

        With *text*, mutates the projection to match and returns the
        globe.  Parsing is permissive: non-numeric angles restore the
        variant's default rotation and a non-numeric scale fits the globe
        to the view.  The scale is clamped to :meth:`scale_extent` and the
        projection is recentered in *view*.
        """
        projection = self.projection
        rotate = projection.rotate
        if text is None:
            return ",".join((
                _fixed2(-rotate[0]),
                _fixed2(-rotate[1]),
                str(int(math.floor(projection.scale + 0.5))),
            ))

        view = view or self.view
        parts = text.split(",")
        lam = _number(parts, 0)
        phi = _number(parts, 1)
        scale = _number(parts, 2)
        low, high = self.scale_extent()
        if math.isfinite(lam) and math.isfinite(phi):
            projection.rotate = (-lam, -phi, rotate[2])
        else:
            projection.rotate = self.new_projection(view).rotate
        projection.scale = clamp(scale, low, high) if math.isfinite(scale) else self.fit(view)
        projection.translate = self.center(view)
        self.view = view
        return self

    def manipulator(self, start_pointer: Sequence[float], start_scale: float) -> Manipulator:
        """Open a drag/zoom session on the current projection."""
        return Manipulator(self.projection, start_pointer, start_scale)

    def locate(self, coord: Sequence[float]) -> Optional[Tuple[float, float, float]]:
        """Rotation that would center *coord*, or ``None`` if unsupported."""
        return None

    def define_mask(self) -> List[Polygon]:
        """Polygons whose filled interior is the globe's visible area."""
        return self.projection.outline()

    def define_map(self) -> MapDefinition:
        """Describe the layers a renderer draws for this globe."""
        return MapDefinition(sphere=self.projection.outline())


def _fixed2(value: float) -> str:
    # Normalizes -0.0 so "0.00" never renders as "-0.00".
    return f"{round(value, 2) + 0.0:.2f}"


def _number(parts: List[str], index: int) -> float:
    """Parse ``parts[index]`` as a float, NaN when missing or malformed."""
    if index >= len(parts):
        return math.nan
    text = parts[index].strip()
    if not text:
        return math.nan
    try:
        return float(text)
    except ValueError:
        return math.nan
