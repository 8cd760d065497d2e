"""Projection: geographic coordinates <-> screen pixels.

A :class:`Projection` combines a rotation of the sphere, a raw
projection (see :mod:`globe_field.raw`), a scale and a translation.  The
screen coordinate system has its origin at the top-left corner with y
growing downward, so the raw y axis is flipped.

The projection also knows the shape of the sphere on screen:
:meth:`Projection.outline` traces the boundary as one or more polygons,
and :meth:`Projection.bounds` measures their bounding box.  The outline
depends on the clip settings:

* with a clip angle the visible region is the small circle of that
  radius around the projection center;
* without one the sphere is cut along the antimeridian of the rotated
  frame, so the boundary is the image of longitude +/-180 joined across
  the poles;
* raw projections that know their own boundary (polyhedral ones) supply
  it directly.

A clip extent additionally clips every outline polygon to a rectangle.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from globe_field.raw import Point, Polygon, RawProjection
from globe_field.rotation import Rotation, xyz_to_lonlat

# Offset (radians) that keeps antimeridian samples on the near side of the cut.
_ANTIMERIDIAN_EPSILON = 1e-6

Extent = Tuple[Tuple[float, float], Tuple[float, float]]


def _frange(start: float, stop: float, step: float) -> List[float]:
    """Evenly spaced samples from *start* to *stop* inclusive."""
    n = max(1, int(math.ceil(abs(stop - start) / step)))
    return [start + (stop - start) * i / n for i in range(n + 1)]


def clip_polygon(polygon: Sequence[Point], extent: Extent) -> Polygon:
    """Clip a polygon to an axis-aligned rectangle (Sutherland-Hodgman).

    Args:
        polygon: Ring of ``(x, y)`` vertices (closing vertex optional).
        extent: ``((x0, y0), (x1, y1))`` rectangle.

    Returns:
        The clipped ring, possibly empty.
    """
    (x0, y0), (x1, y1) = extent
    edges = (
        (lambda p: p[0] >= x0, lambda a, b: _cross_x(a, b, x0)),
        (lambda p: p[0] <= x1, lambda a, b: _cross_x(a, b, x1)),
        (lambda p: p[1] >= y0, lambda a, b: _cross_y(a, b, y0)),
        (lambda p: p[1] <= y1, lambda a, b: _cross_y(a, b, y1)),
    )
    output: List[Point] = list(polygon)
    for inside, intersect in edges:
        if not output:
            break
        ring, output = output, []
        prev = ring[-1]
        for cur in ring:
            if inside(cur):
                if not inside(prev):
                    output.append(intersect(prev, cur))
                output.append(cur)
            elif inside(prev):
                output.append(intersect(prev, cur))
            prev = cur
    return output


def _cross_x(a: Point, b: Point, x: float) -> Point:
    t = (x - a[0]) / (b[0] - a[0])
    return (x, a[1] + t * (b[1] - a[1]))


def _cross_y(a: Point, b: Point, y: float) -> Point:
    t = (y - a[1]) / (b[1] - a[1])
    return (a[0] + t * (b[0] - a[0]), y)


class Projection:
    """A configured map projection.

    Args:
        raw: The raw projection of the unit sphere.
        rotate: ``[lambda, phi]`` or ``[lambda, phi, gamma]`` in degrees.
            Projections store the *inverse* of the globe's orientation:
            rotating by ``[-lon, -lat]`` centers ``(lon, lat)``.
        scale: Pixels per unit of the raw projection.
        translate: Screen position of the projection center.
        precision: Outline sampling coarseness; larger is coarser.
        clip_angle: Radius in degrees of the visible small circle, or
            ``None`` for an antimeridian cut.
        clip_extent: Rectangle ``((x0, y0), (x1, y1))`` to which the
            outline is clipped, or ``None``.
    """

    def __init__(
        self,
        raw: RawProjection,
        rotate: Sequence[float] = (0.0, 0.0, 0.0),
        scale: float = 150.0,
        translate: Sequence[float] = (480.0, 250.0),
        precision: float = 0.1,
        clip_angle: Optional[float] = None,
        clip_extent: Optional[Extent] = None,
    ) -> None:
        self.raw = raw
        self._rotation = Rotation(rotate)
        self.scale = float(scale)
        self.translate: Tuple[float, float] = (float(translate[0]), float(translate[1]))
        self.precision = float(precision)
        self.clip_angle = clip_angle
        self.clip_extent = clip_extent
        # Raw position of the (unrotated) center, pinned to ``translate``.
        cx, cy = raw.forward(0.0, 0.0)
        self._center = (cx if math.isfinite(cx) else 0.0, cy if math.isfinite(cy) else 0.0)

    def __repr__(self) -> str:
        return (
            f"Projection({type(self.raw).__name__}, rotate={list(self.rotate)!r}, "
            f"scale={self.scale!r}, translate={list(self.translate)!r})"
        )

    # -- Parameters -----------------------------------------------------------

    @property
    def rotate(self) -> Tuple[float, float, float]:
        """Current rotation ``(lambda, phi, gamma)`` in degrees."""
        return self._rotation.angles

    @rotate.setter
    def rotate(self, angles: Sequence[float]) -> None:
        self._rotation = Rotation(angles)

    def copy(self) -> "Projection":
        """Return an independent projection with the same parameters."""
        return Projection(
            self.raw,
            rotate=self.rotate,
            scale=self.scale,
            translate=self.translate,
            precision=self.precision,
            clip_angle=self.clip_angle,
            clip_extent=self.clip_extent,
        )

    # -- Point mapping --------------------------------------------------------

    def _to_screen(self, p: Point) -> Point:
        return (
            self.translate[0] + self.scale * (p[0] - self._center[0]),
            self.translate[1] - self.scale * (p[1] - self._center[1]),
        )

    def __call__(self, coord: Sequence[float]) -> Optional[Point]:
        """Project ``(longitude, latitude)`` in degrees to screen ``(x, y)``.

        Returns ``None`` when the point has no finite image.
        """
        lam, phi = self._rotation(math.radians(coord[0]), math.radians(coord[1]))
        x, y = self._to_screen(self.raw.forward(lam, phi))
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        return (x, y)

    def invert(self, point: Sequence[float]) -> Optional[Point]:
        """Map screen ``(x, y)`` back to ``(longitude, latitude)`` in degrees.

        Returns ``None`` where the raw projection has no inverse.
        """
        if not self.scale:
            return None
        xr = (point[0] - self.translate[0]) / self.scale + self._center[0]
        yr = (self.translate[1] - point[1]) / self.scale + self._center[1]
        geo = self.raw.invert(xr, yr)
        if geo is None or not (math.isfinite(geo[0]) and math.isfinite(geo[1])):
            return None
        lam, phi = self._rotation.invert(*geo)
        return (math.degrees(lam), math.degrees(phi))

    # -- Sphere outline -------------------------------------------------------

    def sample_step(self) -> float:
        """Outline sampling interval in degrees for the current precision."""
        return min(max(self.precision * 10.0, 0.5), 10.0)

    def outline(self) -> List[Polygon]:
        """The sphere boundary on screen as a list of polygons."""
        step = self.sample_step()
        rings = self.raw.outline(step)
        if rings is None:
            if self.clip_angle is not None:
                rings = [self._small_circle(self.clip_angle, step)]
            else:
                rings = [self._antimeridian_ring(step)]
        polygons = []
        for ring in rings:
            screen = [self._to_screen(p) for p in ring]
            screen = [p for p in screen if math.isfinite(p[0]) and math.isfinite(p[1])]
            if self.clip_extent is not None:
                screen = clip_polygon(screen, self.clip_extent)
            if len(screen) >= 3:
                polygons.append(screen)
        return polygons

    def _small_circle(self, radius: float, step: float) -> Polygon:
        r = math.radians(radius)
        cos_r = math.cos(r)
        sin_r = math.sin(r)
        ring = []
        for bearing in _frange(0.0, 360.0, step)[:-1]:
            t = math.radians(bearing)
            lam, phi = xyz_to_lonlat(cos_r, sin_r * math.cos(t), sin_r * math.sin(t))
            ring.append(self.raw.forward(lam, phi))
        return ring

    def _antimeridian_ring(self, step: float) -> Polygon:
        west = -math.pi + _ANTIMERIDIAN_EPSILON
        east = math.pi - _ANTIMERIDIAN_EPSILON
        half = math.pi / 2
        forward = self.raw.forward
        s = math.radians(step)
        ring = [forward(west, phi) for phi in _frange(-half, half, s)]
        ring += [forward(lam, half) for lam in _frange(west, east, s)[1:]]
        ring += [forward(east, phi) for phi in _frange(half, -half, s)[1:]]
        ring += [forward(lam, -half) for lam in _frange(east, west, s)[1:-1]]
        return ring

    def bounds(self) -> Extent:
        """Bounding box ``((x0, y0), (x1, y1))`` of the sphere outline.

        Components are infinite when the outline is empty.
        """
        x0 = y0 = math.inf
        x1 = y1 = -math.inf
        for polygon in self.outline():
            for x, y in polygon:
                x0 = min(x0, x)
                y0 = min(y0, y)
                x1 = max(x1, x)
                y1 = max(y1, y)
        return ((x0, y0), (x1, y1))
