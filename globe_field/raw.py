"""Raw projections of the unit sphere.

A raw projection maps longitude/latitude in radians to plane coordinates
on a sphere of radius one, with y pointing *up*.  Scaling, translation,
screen y-flip, rotation and clipping are applied on top of these by
:class:`globe_field.projection.Projection`.

Every raw projection here also provides ``invert``.  Inverse mappings
return ``None`` where the plane point has no preimage (for example a
point beyond the orthographic disc) instead of raising, so callers can
treat such pixels as holes.
"""

from __future__ import annotations

import math
from typing import Callable, List, Optional, Tuple

EPSILON = 1e-6
HALF_PI = math.pi / 2.0

Point = Tuple[float, float]
Polygon = List[Point]


def _clamp_unit(x: float) -> float:
    return max(-1.0, min(1.0, x))


def _sign(x: float) -> float:
    return (x > 0) - (x < 0)


class RawProjection:
    """Base class for raw projections.

    Subclasses implement :meth:`forward` and :meth:`invert`.  A subclass
    may also override :meth:`outline` when its sphere boundary is not the
    image of the antimeridian cut (see :mod:`globe_field.polyhedral`).
    """

    name = ""

    def forward(self, lam: float, phi: float) -> Point:
        raise NotImplementedError

    def invert(self, x: float, y: float) -> Optional[Point]:
        raise NotImplementedError

    def outline(self, step: float) -> Optional[List[Polygon]]:
        """Sphere boundary as polygons in raw plane coordinates.

        Returns ``None`` to let the projection derive the boundary from
        its clip settings.
        """
        return None

    def __call__(self, lam: float, phi: float) -> Point:
        return self.forward(lam, phi)


# ---------------------------------------------------------------------------
# Azimuthal family
# ---------------------------------------------------------------------------

class Azimuthal(RawProjection):
    """Azimuthal projection defined by a radial scale and its inverse angle.

    Args:
        scale: ``k(cos c)`` giving the radial scale factor for the
            cosine of the angular distance *c* from the center.
        angle: ``c(rho)`` recovering the angular distance from the plane
            radius; may return ``None`` where undefined.
    """

    def __init__(
        self,
        scale: Callable[[float], float],
        angle: Callable[[float], Optional[float]],
    ) -> None:
        self._scale = scale
        self._angle = angle

    def forward(self, lam: float, phi: float) -> Point:
        cos_lam = math.cos(lam)
        cos_phi = math.cos(phi)
        k = self._scale(cos_lam * cos_phi)
        return (k * cos_phi * math.sin(lam), k * math.sin(phi))

    def invert(self, x: float, y: float) -> Optional[Point]:
        z = math.sqrt(x * x + y * y)
        c = self._angle(z)
        if c is None:
            return None
        sc = math.sin(c)
        cc = math.cos(c)
        return (
            math.atan2(x * sc, z * cc),
            math.asin(_clamp_unit(y * sc / z)) if z else 0.0,
        )


def _orthographic_angle(z: float) -> Optional[float]:
    if z > 1.0 + EPSILON:
        return None
    return math.asin(_clamp_unit(z))


def _equidistant_scale(cos_c: float) -> float:
    c = math.acos(_clamp_unit(cos_c))
    if not c:
        return 1.0
    s = math.sin(c)
    return c / s if s else math.inf


class Orthographic(Azimuthal):
    name = "orthographic"

    def __init__(self) -> None:
        super().__init__(lambda cos_c: 1.0, _orthographic_angle)


class Stereographic(Azimuthal):
    name = "stereographic"

    def __init__(self) -> None:
        super().__init__(
            lambda cos_c: 1.0 / (1.0 + cos_c) if cos_c != -1.0 else math.inf,
            lambda z: 2.0 * math.atan(z),
        )


class AzimuthalEquidistant(Azimuthal):
    name = "azimuthal_equidistant"

    def __init__(self) -> None:
        super().__init__(_equidistant_scale, lambda z: z)


# ---------------------------------------------------------------------------
# Cylindrical, conic and pseudo-cylindrical
# ---------------------------------------------------------------------------

class Equirectangular(RawProjection):
    name = "equirectangular"

    def forward(self, lam: float, phi: float) -> Point:
        return (lam, phi)

    def invert(self, x: float, y: float) -> Optional[Point]:
        return (x, y)


class ConicEquidistant(RawProjection):
    """Equidistant conic with two standard parallels (degrees).

    Falls back to equirectangular behaviour when the cone constant is
    degenerate (parallels symmetric about the equator).
    """

    name = "conic_equidistant"

    def __init__(self, parallels: Tuple[float, float] = (0.0, 60.0)) -> None:
        self.parallels = parallels
        y0 = math.radians(parallels[0])
        y1 = math.radians(parallels[1])
        cy0 = math.cos(y0)
        self._n = math.sin(y0) if y0 == y1 else (cy0 - math.cos(y1)) / (y1 - y0)
        self._g = cy0 / self._n + y0 if abs(self._n) >= EPSILON else 0.0

    def forward(self, lam: float, phi: float) -> Point:
        if abs(self._n) < EPSILON:
            return (lam, phi)
        gy = self._g - phi
        nx = self._n * lam
        return (gy * math.sin(nx), self._g - gy * math.cos(nx))

    def invert(self, x: float, y: float) -> Optional[Point]:
        if abs(self._n) < EPSILON:
            return (x, y)
        gy = self._g - y
        lam = math.atan2(x, abs(gy)) * _sign(gy)
        if gy * self._n < 0:
            lam -= math.pi * _sign(x) * _sign(gy)
        return (lam / self._n, self._g - _sign(self._n) * math.sqrt(x * x + gy * gy))


class Mollweide(RawProjection):
    name = "mollweide"

    CX = 2.0 * math.sqrt(2.0) / math.pi
    CY = math.sqrt(2.0)
    CP = math.pi

    @classmethod
    def _theta(cls, phi: float) -> float:
        cp_sin_phi = cls.CP * math.sin(phi)
        for _ in range(30):
            delta = (phi + math.sin(phi) - cp_sin_phi) / (1.0 + math.cos(phi))
            phi -= delta
            if abs(delta) <= EPSILON:
                break
        return phi / 2.0

    def forward(self, lam: float, phi: float) -> Point:
        theta = self._theta(phi)
        return (self.CX * lam * math.cos(theta), self.CY * math.sin(theta))

    def invert(self, x: float, y: float) -> Optional[Point]:
        s = y / self.CY
        if abs(s) > 1.0:
            return None
        theta = math.asin(s)
        cos_theta = math.cos(theta)
        if not cos_theta:
            return None
        return (
            x / (self.CX * cos_theta),
            math.asin(_clamp_unit((2.0 * theta + math.sin(2.0 * theta)) / self.CP)),
        )


def _sinci(x: float) -> float:
    return x / math.sin(x) if x else 1.0


class Winkel3(RawProjection):
    """Winkel tripel: the mean of Aitoff and equirectangular."""

    name = "winkel3"

    def forward(self, lam: float, phi: float) -> Point:
        cos_phi = math.cos(phi)
        half = lam / 2.0
        sincia = _sinci(math.acos(_clamp_unit(cos_phi * math.cos(half))))
        ax = 2.0 * cos_phi * math.sin(half) * sincia
        ay = math.sin(phi) * sincia
        return ((ax + lam / HALF_PI) / 2.0, (ay + phi) / 2.0)

    def invert(self, x: float, y: float) -> Optional[Point]:
        # Newton iteration on the analytic Jacobian.
        lam, phi = x, y
        for _ in range(25):
            cos_phi = math.cos(phi)
            sin_phi = math.sin(phi)
            sin_2phi = math.sin(2.0 * phi)
            sin2_phi = sin_phi * sin_phi
            cos2_phi = cos_phi * cos_phi
            sin_lam = math.sin(lam)
            cos_lam_2 = math.cos(lam / 2.0)
            sin_lam_2 = math.sin(lam / 2.0)
            sin2_lam_2 = sin_lam_2 * sin_lam_2
            c = 1.0 - cos2_phi * cos_lam_2 * cos_lam_2
            if c:
                f = 1.0 / c
                e = math.acos(_clamp_unit(cos_phi * cos_lam_2)) * math.sqrt(f)
            else:
                f = e = 0.0
            fx = 0.5 * (2.0 * e * cos_phi * sin_lam_2 + lam / HALF_PI) - x
            fy = 0.5 * (e * sin_phi + phi) - y
            dx_dlam = 0.5 * f * (cos2_phi * sin2_lam_2 + e * cos_phi * cos_lam_2 * sin2_phi) + 0.5 / HALF_PI
            dx_dphi = f * (sin_lam * sin_2phi / 4.0 - e * sin_phi * sin_lam_2)
            dy_dlam = 0.125 * f * (sin_2phi * sin_lam_2 - e * sin_phi * cos2_phi * sin_lam)
            dy_dphi = 0.5 * f * (sin2_phi * cos_lam_2 + e * sin2_lam_2 * cos_phi) + 0.5
            denominator = dx_dphi * dy_dlam - dy_dphi * dx_dlam
            if not denominator:
                return None
            d_lam = (fy * dx_dphi - fx * dy_dphi) / denominator
            d_phi = (fx * dy_dlam - fy * dx_dlam) / denominator
            lam -= d_lam
            phi -= d_phi
            if abs(d_lam) <= EPSILON and abs(d_phi) <= EPSILON:
                break
        if not (math.isfinite(lam) and math.isfinite(phi)):
            return None
        return (lam, phi)
