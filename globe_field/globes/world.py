"""Whole-world globes cut along the antimeridian.

Atlantis is a Mollweide projection rolled onto its side so that the
Atlantic ocean sits in the middle; the others are classic world maps.
"""

from __future__ import annotations

from typing import Tuple

from globe_field.globes.base import Globe, View
from globe_field.projection import Projection
from globe_field.raw import ConicEquidistant, Equirectangular, Mollweide, Winkel3
from globe_field.utils import current_position

# Conic maps look better shifted down by this share of the view height.
CONIC_VERTICAL_OFFSET = 0.065


class AtlantisGlobe(Globe):
    name = "atlantis"

    def new_projection(self, view: View) -> Projection:
        return Projection(Mollweide(), rotate=(30.0, -45.0, 90.0), precision=0.1)


class ConicEquidistantGlobe(Globe):
    name = "conic_equidistant"

    def new_projection(self, view: View) -> Projection:
        return Projection(ConicEquidistant(), rotate=current_position(), precision=0.1)

    def center(self, view: View) -> Tuple[float, float]:
        return (view.width / 2.0, view.height / 2.0 + view.height * CONIC_VERTICAL_OFFSET)


class EquirectangularGlobe(Globe):
    name = "equirectangular"

    def new_projection(self, view: View) -> Projection:
        return Projection(Equirectangular(), rotate=current_position(), precision=0.1)


class Winkel3Globe(Globe):
    name = "winkel3"

    def new_projection(self, view: View) -> Projection:
        return Projection(Winkel3(), precision=0.1)
