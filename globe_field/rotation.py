"""Spherical rotation by Euler angles [lambda, phi, gamma].

A rotation first shifts longitude by *lambda*, then tilts the sphere by
*phi* around the y axis and rolls it by *gamma* around the x axis.  All
functions in this module work in radians; :class:`Rotation` is built
from degrees because that is how globes specify their orientation.

The cartesian convention used here is x toward (0, 0), y toward
(90E, 0) and z toward the north pole.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

TAU = 2.0 * math.pi

Point = Tuple[float, float]


def wrap_longitude(lam: float) -> float:
    """Wrap a longitude (radians) into ``[-pi, pi]``."""
    if lam > math.pi:
        return lam - TAU
    if lam < -math.pi:
        return lam + TAU
    return lam


def lonlat_to_xyz(lam: float, phi: float) -> Tuple[float, float, float]:
    """Convert longitude/latitude (radians) to a unit-sphere point."""
    cos_phi = math.cos(phi)
    return (math.cos(lam) * cos_phi, math.sin(lam) * cos_phi, math.sin(phi))


def xyz_to_lonlat(x: float, y: float, z: float) -> Point:
    """Convert a unit-sphere point back to longitude/latitude (radians)."""
    return (math.atan2(y, x), math.asin(max(-1.0, min(1.0, z))))


class Rotation:
    """Composite rotation of the sphere.

    Args:
        angles: ``[lambda, phi]`` or ``[lambda, phi, gamma]`` in degrees.
    """

    def __init__(self, angles: Sequence[float]) -> None:
        lam = float(angles[0]) if len(angles) > 0 else 0.0
        phi = float(angles[1]) if len(angles) > 1 else 0.0
        gamma = float(angles[2]) if len(angles) > 2 else 0.0
        self.angles: Tuple[float, float, float] = (lam, phi, gamma)

        self._d_lambda = math.fmod(math.radians(lam), TAU)
        d_phi = math.radians(phi)
        d_gamma = math.radians(gamma)
        self._tilted = bool(d_phi or d_gamma)
        self._cos_phi = math.cos(d_phi)
        self._sin_phi = math.sin(d_phi)
        self._cos_gamma = math.cos(d_gamma)
        self._sin_gamma = math.sin(d_gamma)

    def __repr__(self) -> str:
        return f"Rotation({list(self.angles)!r})"

    def __call__(self, lam: float, phi: float) -> Point:
        """Rotate a point given in radians."""
        if self._d_lambda:
            lam = wrap_longitude(lam + self._d_lambda)
        elif abs(lam) > math.pi:
            lam -= round(lam / TAU) * TAU
        if not self._tilted:
            return (lam, phi)

        x, y, z = lonlat_to_xyz(lam, phi)
        k = z * self._cos_phi + x * self._sin_phi
        return (
            math.atan2(
                y * self._cos_gamma - k * self._sin_gamma,
                x * self._cos_phi - z * self._sin_phi,
            ),
            math.asin(max(-1.0, min(1.0, k * self._cos_gamma + y * self._sin_gamma))),
        )

    def invert(self, lam: float, phi: float) -> Point:
        """Undo :meth:`__call__` for a point given in radians."""
        if self._tilted:
            x, y, z = lonlat_to_xyz(lam, phi)
            k = z * self._cos_gamma - y * self._sin_gamma
            lam = math.atan2(
                y * self._cos_gamma + z * self._sin_gamma,
                x * self._cos_phi + k * self._sin_phi,
            )
            phi = math.asin(max(-1.0, min(1.0, k * self._cos_phi - x * self._sin_phi)))
        if self._d_lambda:
            lam = wrap_longitude(lam - self._d_lambda)
        return (lam, phi)
