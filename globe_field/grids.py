"""Grid sampling interface consumed by the field interpolation.

Grids are produced by an external data-loading layer.  The engine only
needs three things from one: point sampling by longitude/latitude, a
color scale for overlay rendering and the particle velocity scale.  The
:class:`Grid` protocol spells that out; :class:`FunctionGrid` and
:class:`ConstantGrid` are small concrete grids for analytic fields,
demos and tests.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np

RGBA = Tuple[int, int, int, int]

# A grid sample: a scalar, a [u, v, magnitude] vector, or None.
Sample = Any


@runtime_checkable
class ColorScale(Protocol):
    def gradient(self, value: float, alpha: int) -> RGBA: ...


@runtime_checkable
class Grid(Protocol):
    """What the interpolation engine needs from a data grid."""

    scale: ColorScale
    particles: "Particles"

    def interpolate(self, longitude: float, latitude: float) -> Sample: ...


@dataclass(frozen=True)
class Particles:
    """Particle animation settings attached to a grid.

    Attributes:
        velocity_scale: Screen displacement per unit of grid velocity,
            as a share of the globe's on-screen height.
        max_intensity: Velocity at which particle trails are brightest.
    """

    velocity_scale: float = 1.0 / 60000
    max_intensity: float = 17.0


# Default overlay colors for wind speed in m/s (value, rgb).
WIND_STOPS: Tuple[Tuple[float, Tuple[int, int, int]], ...] = (
    (0.0, (37, 74, 255)),
    (3.0, (0, 150, 254)),
    (6.0, (18, 196, 200)),
    (10.0, (18, 211, 73)),
    (15.0, (0, 240, 0)),
    (20.0, (255, 255, 0)),
    (30.0, (255, 127, 0)),
    (40.0, (255, 0, 0)),
    (60.0, (255, 0, 255)),
)


class SegmentedColorScale:
    """Piecewise-linear color scale between ``(value, rgb)`` stops.

    Values outside the stops are clamped to the end colors.
    """

    def __init__(self, stops: Sequence[Tuple[float, Tuple[int, int, int]]] = WIND_STOPS) -> None:
        if len(stops) < 2:
            raise ValueError("a color scale needs at least two stops")
        ordered = sorted(stops, key=lambda s: s[0])
        self._values = np.array([s[0] for s in ordered], dtype=float)
        self._colors = np.array([s[1] for s in ordered], dtype=float)
        self.bounds = (float(self._values[0]), float(self._values[-1]))

    def gradient(self, value: float, alpha: int) -> RGBA:
        rgb = [
            int(round(float(np.interp(value, self._values, self._colors[:, channel]))))
            for channel in range(3)
        ]
        return (rgb[0], rgb[1], rgb[2], int(alpha))


class FunctionGrid:
    """Grid backed by a Python function of ``(longitude, latitude)``.

    Args:
        sampler: Callable returning a scalar, a ``[u, v, magnitude]``
            vector, or ``None`` where the grid has no data.
        scale: Overlay color scale.
        particles: Particle settings.
    """

    def __init__(
        self,
        sampler: Callable[[float, float], Sample],
        scale: Optional[ColorScale] = None,
        particles: Optional[Particles] = None,
    ) -> None:
        self._sampler = sampler
        self.scale = scale or SegmentedColorScale()
        self.particles = particles or Particles()

    def interpolate(self, longitude: float, latitude: float) -> Sample:
        return self._sampler(longitude, latitude)


class ConstantGrid(FunctionGrid):
    """Grid returning the same sample everywhere."""

    def __init__(
        self,
        value: Sample,
        scale: Optional[ColorScale] = None,
        particles: Optional[Particles] = None,
    ) -> None:
        self.value = value
        super().__init__(self._constant, scale, particles)

    def _constant(self, longitude: float, latitude: float) -> Sample:
        if isinstance(self.value, (list, tuple)):
            return list(self.value)
        return self.value


def vortex_wind(longitude: float, latitude: float) -> Sample:
    """Analytic demo wind: westerlies in mid-latitudes, trades near the equator."""
    phi = math.radians(latitude)
    u = 15.0 * math.sin(3.0 * phi) * math.cos(phi)
    v = 4.0 * math.sin(math.radians(longitude) * 2.0) * math.cos(phi)
    return [u, v, math.hypot(u, v)]


@dataclass(frozen=True)
class Grids:
    """The grids taking part in one interpolation.

    Attributes:
        primary: Drives particle motion, and color when no overlay is given.
        overlay: Drives color only; defaults to *primary*.
    """

    primary: Grid
    overlay: Optional[Grid] = None

    @property
    def overlay_grid(self) -> Grid:
        return self.overlay if self.overlay is not None else self.primary

    @property
    def has_distinct_overlay(self) -> bool:
        return self.overlay is not None and self.overlay is not self.primary
