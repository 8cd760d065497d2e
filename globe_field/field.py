"""Field interpolation: grid samples -> a screen-space vector field.

For every visible pixel of the globe (on a stride of two, each sample
standing in for a 2x2 block) the pixel is inverse-projected to
longitude/latitude, the grids are sampled there, the geographic wind
vector is corrected for the local distortion of the projection, and an
overlay color is written into the mask.

The sweep over columns is time-sliced.  :class:`InterpolationTask`
processes columns until its time budget runs out and then reports that
it wants to continue; :meth:`InterpolationTask.run_async` and
:meth:`InterpolationTask.run` drive those slices with a pause in
between so the host stays responsive.  Cancellation is checked between
slices and abandons the run silently.

Each pixel of the resulting :class:`Field` is one of three variants:

* ``OUTSIDE``: beyond the globe's boundary;
* ``HOLE``: inside the boundary but without a vector (no grid data, or
  no inverse projection);
* ``VECTOR``: a screen-space ``(u, v, magnitude)`` vector.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

import numpy as np

from globe_field.config import DEFAULT_CONFIG, EngineConfig
from globe_field.globes.base import Bounds, Globe, View
from globe_field.grids import Grids
from globe_field.mask import Mask, build_mask
from globe_field.projection import Projection
from globe_field.utils import is_finite, is_value

logger = logging.getLogger(__name__)

# Finite-difference step in degrees (about 4 m of latitude).
DISTORTION_STEP = 0.0000360

# cos(latitude) below this counts as a pole.
_POLE_EPSILON = 1e-12

TRANSPARENT_BLACK = (0, 0, 0, 0)


# ---------------------------------------------------------------------------
# Field vectors
# ---------------------------------------------------------------------------

class VectorKind(enum.IntEnum):
    """Which variant a field pixel holds."""

    OUTSIDE = 0
    HOLE = 1
    VECTOR = 2


@dataclass(frozen=True)
class FieldVector:
    """A field sample: outside the boundary, a hole, or a screen vector.

    ``u`` and ``v`` are in pixels per animation step with y pointing
    down; ``magnitude`` is the grid's scalar magnitude (not the screen
    length).  For ``OUTSIDE`` and ``HOLE`` they are NaN/``None``.
    """

    kind: VectorKind
    u: float = math.nan
    v: float = math.nan
    magnitude: Optional[float] = None

    @property
    def is_defined(self) -> bool:
        return self.kind is VectorKind.VECTOR

    @property
    def is_inside_boundary(self) -> bool:
        return self.kind is not VectorKind.OUTSIDE


OUTSIDE = FieldVector(VectorKind.OUTSIDE)
HOLE = FieldVector(VectorKind.HOLE)


# ---------------------------------------------------------------------------
# Distortion
# ---------------------------------------------------------------------------

def distortion(
    projection: Projection,
    lam: float,
    phi: float,
    x: float,
    y: float,
) -> Optional[Tuple[float, float, float, float]]:
    """Local Jacobian of *projection* at ``(lam, phi)`` (degrees).

    Returns ``(dx/dlam, dy/dlam, dx/dphi, dy/dphi)`` in pixels per degree,
    with the longitude derivatives divided by ``cos(phi)`` so that they
    measure pixels per degree of *distance* rather than of longitude.
    ``(x, y)`` is the already known screen position of the point.

    Returns ``None`` at the poles, where the longitude derivatives are
    undefined, and when the projection cannot be evaluated nearby.
    """
    h_lam = DISTORTION_STEP if lam < 0 else -DISTORTION_STEP
    h_phi = DISTORTION_STEP if phi < 0 else -DISTORTION_STEP
    p_lam = projection((lam + h_lam, phi))
    p_phi = projection((lam, phi + h_phi))
    # Meridian scale factor: one degree of longitude shrinks toward the poles.
    k = math.cos(math.radians(phi))
    if p_lam is None or p_phi is None or abs(k) < _POLE_EPSILON:
        return None
    return (
        (p_lam[0] - x) / h_lam / k,
        (p_lam[1] - y) / h_lam / k,
        (p_phi[0] - x) / h_phi,
        (p_phi[1] - y) / h_phi,
    )


def distort(
    projection: Projection,
    lam: float,
    phi: float,
    x: float,
    y: float,
    scale: float,
    wind: List[float],
) -> Optional[List[float]]:
    """Turn a geographic ``[u, v, magnitude]`` into a screen-space vector.

    *wind* is modified in place and returned; the magnitude is left
    unchanged.  Returns ``None`` (leaving *wind* untouched) when the local
    distortion is undefined, e.g. at a pole.
    """
    d = distortion(projection, lam, phi, x, y)
    if d is None:
        return None
    u = wind[0] * scale
    v = wind[1] * scale
    wind[0] = d[0] * u + d[2] * v
    wind[1] = d[1] * u + d[3] * v
    return wind


# ---------------------------------------------------------------------------
# Field
# ---------------------------------------------------------------------------

class Field:
    """Immutable screen-space vector field produced by an interpolation.

    Args:
        kinds: ``(width, height)`` array of :class:`VectorKind` values.
        vectors: ``(width, height, 3)`` array of ``(u, v, magnitude)``.
        bounds: Bounds of the globe the field was interpolated for.
        overlay: ``(height, width, 4)`` RGBA overlay raster.
        seed_attempts: Rejection-sampling attempts in :meth:`randomize_seed`.
        rng: Random source for :meth:`randomize_seed`.
    """

    def __init__(
        self,
        kinds: np.ndarray,
        vectors: np.ndarray,
        bounds: Bounds,
        overlay: np.ndarray,
        seed_attempts: int = DEFAULT_CONFIG.seed_attempts,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._kinds: Optional[np.ndarray] = kinds
        self._vectors: Optional[np.ndarray] = vectors
        self._inside: Optional[np.ndarray] = None
        self.bounds = bounds
        self.overlay = overlay
        self.seed_attempts = seed_attempts
        self._rng = rng or random.Random()
        kinds.setflags(write=False)
        vectors.setflags(write=False)

    def __repr__(self) -> str:
        state = "released" if self.released else f"{self._kinds.shape[0]}x{self._kinds.shape[1]}"
        return f"<Field {state} bounds={self.bounds}>"

    @property
    def released(self) -> bool:
        return self._kinds is None

    def _index(self, x: float, y: float) -> Optional[Tuple[int, int]]:
        kinds = self._kinds
        if kinds is None or not (math.isfinite(x) and math.isfinite(y)):
            return None
        xi = int(math.floor(x + 0.5))
        yi = int(math.floor(y + 0.5))
        if 0 <= xi < kinds.shape[0] and 0 <= yi < kinds.shape[1]:
            return (xi, yi)
        return None

    def lookup(self, x: float, y: float) -> FieldVector:
        """Vector at pixel ``(x, y)``; coordinates are rounded."""
        index = self._index(x, y)
        if index is None:
            return OUTSIDE
        kind = self._kinds[index]
        if kind == VectorKind.VECTOR:
            u, v, m = self._vectors[index]
            return FieldVector(VectorKind.VECTOR, float(u), float(v), float(m))
        return HOLE if kind == VectorKind.HOLE else OUTSIDE

    __call__ = lookup

    def is_defined(self, x: float, y: float) -> bool:
        """True if a real vector exists at ``(x, y)``."""
        index = self._index(x, y)
        return index is not None and bool(self._kinds[index] == VectorKind.VECTOR)

    def is_inside_boundary(self, x: float, y: float) -> bool:
        """True if ``(x, y)`` lies inside the field's outer boundary.

        Holes (such as an island in a field of ocean currents) are inside.
        """
        index = self._index(x, y)
        return index is not None and bool(self._kinds[index] != VectorKind.OUTSIDE)

    def randomize_seed(self, point: Any = None) -> Any:
        """Pick a random pixel inside the boundary, preferring defined ones.

        Up to ``seed_attempts`` pixels are drawn; the first with a defined
        vector wins, otherwise the last one drawn is used.  When *point*
        is given its ``x`` and ``y`` attributes are set and it is
        returned; otherwise an ``(x, y)`` tuple is returned.
        """
        x, y = self._random_pixel()
        if point is None:
            return (x, y)
        point.x = x
        point.y = y
        return point

    def _random_pixel(self) -> Tuple[int, int]:
        if self._kinds is None:
            return (self.bounds.x, self.bounds.y)
        if self._inside is None:
            self._inside = np.argwhere(self._kinds != VectorKind.OUTSIDE)
        if len(self._inside) == 0:
            return (self.bounds.x, self.bounds.y)
        x = y = 0
        for _ in range(self.seed_attempts):
            x, y = (int(c) for c in self._inside[self._rng.randrange(len(self._inside))])
            if self._kinds[x, y] == VectorKind.VECTOR:
                break
        return (x, y)

    def release(self) -> None:
        """Drop the backing arrays; later lookups return ``OUTSIDE``."""
        self._kinds = None
        self._vectors = None
        self._inside = None


# ---------------------------------------------------------------------------
# Interpolation
# ---------------------------------------------------------------------------

class TaskState(enum.Enum):
    RUNNING = "running"
    DONE = "done"
    CANCELLED = "cancelled"


def _as_vector(sample: Any) -> Optional[List[float]]:
    """``[u, v, magnitude]`` copy of a vector sample, else ``None``."""
    if sample is None or isinstance(sample, (int, float)):
        return None
    try:
        return [sample[0], sample[1], sample[2]]
    except (TypeError, IndexError):
        return None


def _as_scalar(sample: Any) -> Optional[float]:
    vector = _as_vector(sample)
    if vector is not None:
        return vector[2] if is_value(vector[2]) else None
    return sample if is_value(sample) else None


class InterpolationTask:
    """Resumable, time-sliced interpolation of a field for one globe.

    Call :meth:`step` repeatedly; each call processes whole columns until
    ``config.max_task_time`` has elapsed and returns the new
    :class:`TaskState`.  Once ``DONE``, :attr:`result` holds the
    :class:`Field`.

    Args:
        globe: The globe whose projection maps pixels to coordinates.
        grids: Primary (motion) and overlay (color) grids.
        view: The view to interpolate over.
        config: Timing and overlay settings.
        mask: A prebuilt mask for this globe and view; built if omitted.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        globe: Globe,
        grids: Grids,
        view: View,
        config: EngineConfig = DEFAULT_CONFIG,
        mask: Optional[Mask] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.globe = globe
        self.grids = grids
        self.view = view
        self.config = config
        self.mask = mask if mask is not None else build_mask(globe, view)
        self.bounds = globe.bounds(view)
        self._clock = clock or time.monotonic
        # Snapshot, so a drag during a sliced sweep cannot mix two orientations.
        self._projection = globe.projection.copy()
        # How fast particles move on screen, proportional to the globe's size.
        self._velocity_scale = self.bounds.height * grids.primary.particles.velocity_scale
        self._x = self.bounds.x
        self._kinds: Optional[np.ndarray] = np.zeros((view.width, view.height), dtype=np.uint8)
        self._vectors: Optional[np.ndarray] = np.full(
            (view.width, view.height, 3), np.nan, dtype=np.float32
        )
        self._started: Optional[float] = None
        self.state = TaskState.RUNNING
        self.result: Optional[Field] = None
        self._cancel_requested = False

    @property
    def column(self) -> int:
        """Next column to be processed."""
        return self._x

    def cancel(self) -> None:
        """Request cancellation; honored before the next slice starts."""
        self._cancel_requested = True

    def step(self) -> TaskState:
        """Run one time-boxed slice of the column sweep."""
        if self.state is not TaskState.RUNNING:
            return self.state
        if self._cancel_requested:
            self._abandon()
            return self.state

        start = self._clock()
        if self._started is None:
            self._started = start
        while self._x < self.bounds.x_max:
            self._interpolate_column(self._x)
            self._x += 2
            if self._clock() - start > self.config.max_task_time:
                logger.debug("interpolation yielding at column %d", self._x)
                return self.state

        self.result = Field(
            self._kinds,
            self._vectors,
            self.bounds,
            self.mask.image,
            seed_attempts=self.config.seed_attempts,
        )
        self._kinds = self._vectors = None
        self.state = TaskState.DONE
        logger.debug(
            "interpolating field: %s done in %.1f ms",
            self.globe.name, (self._clock() - self._started) * 1000.0,
        )
        return self.state

    def run(self, sleep: Callable[[float], Any] = time.sleep) -> Optional[Field]:
        """Drive the task to completion, blocking between slices.

        Returns the field, or ``None`` if the task was cancelled.
        """
        while self.step() is TaskState.RUNNING:
            sleep(self.config.min_sleep_time)
        return self.result

    async def run_async(self, cancelled: Optional[asyncio.Event] = None) -> Optional[Field]:
        """Drive the task on the running event loop.

        Setting *cancelled* has the same effect as calling :meth:`cancel`.
        Returns the field, or ``None`` if the task was cancelled.
        """
        while True:
            if cancelled is not None and cancelled.is_set():
                self.cancel()
            if self.step() is not TaskState.RUNNING:
                break
            await asyncio.sleep(self.config.min_sleep_time)
        return self.result

    def _abandon(self) -> None:
        self._kinds = self._vectors = None
        self.state = TaskState.CANCELLED
        logger.debug("interpolation cancelled at column %d", self._x)

    def _interpolate_column(self, x: int) -> None:
        mask = self.mask
        projection = self._projection
        primary = self.grids.primary
        overlay = self.grids.overlay_grid
        distinct_overlay = self.grids.has_distinct_overlay
        alpha = self.config.overlay_alpha
        kinds = self._kinds
        vectors = self._vectors
        width, height = kinds.shape

        for y in range(self.bounds.y, self.bounds.y_max + 1, 2):
            if not mask.is_visible(x, y):
                continue
            color: Sequence[int] = TRANSPARENT_BLACK
            wind: Optional[List[float]] = None
            coord = projection.invert((x, y))
            if coord is not None and is_finite(coord[0]):
                lam, phi = coord
                sample = primary.interpolate(lam, phi)
                wind = _as_vector(sample)
                scalar: Optional[float] = None
                if wind is not None:
                    if is_value(wind[2]):
                        wind = distort(projection, lam, phi, x, y, self._velocity_scale, wind)
                    else:
                        wind = None
                    scalar = wind[2] if wind is not None else None
                else:
                    scalar = _as_scalar(sample)
                if distinct_overlay:
                    scalar = _as_scalar(overlay.interpolate(lam, phi))
                if scalar is not None:
                    color = overlay.scale.gradient(scalar, alpha)

            for xi in (x, x + 1):
                if xi >= width:
                    continue
                for yi in (y, y + 1):
                    if yi >= height:
                        continue
                    if wind is None:
                        kinds[xi, yi] = VectorKind.HOLE
                    else:
                        kinds[xi, yi] = VectorKind.VECTOR
                        vectors[xi, yi] = wind
                    mask.set(xi, yi, color)


async def interpolate_field(
    globe: Globe,
    grids: Grids,
    view: View,
    config: EngineConfig = DEFAULT_CONFIG,
    cancelled: Optional[asyncio.Event] = None,
) -> Optional[Field]:
    """Interpolate a field for *globe*, yielding to the event loop between slices.

    Setting *cancelled* abandons the run at the next slice boundary and the
    coroutine returns ``None``.  Errors raised while sampling or projecting
    propagate to the caller.
    """
    task = InterpolationTask(globe, grids, view, config)
    return await task.run_async(cancelled)


def run_interpolation(
    globe: Globe,
    grids: Grids,
    view: View,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Optional[Field]:
    """Blocking counterpart of :func:`interpolate_field`."""
    return InterpolationTask(globe, grids, view, config).run()
