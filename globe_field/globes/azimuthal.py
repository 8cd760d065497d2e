"""Azimuthal globes: equidistant, orthographic and stereographic.

Each is clipped to a small circle around its center.  The orthographic
globe is the interactive "3D" view: it can be oriented toward a located
coordinate and carries a shaded background gradient.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from globe_field.globes.base import Globe, MapDefinition, View
from globe_field.projection import Projection
from globe_field.raw import AzimuthalEquidistant, Orthographic, Stereographic
from globe_field.utils import current_position

#: Radial gradient stops (offset, color) shading the orthographic sphere.
ORTHOGRAPHIC_FILL = (
    (0.69, "#303030"),
    (0.91, "#202020"),
    (0.96, "#000005"),
)


class AzimuthalEquidistantGlobe(Globe):
    """Polar view showing the whole world around the north pole."""

    name = "azimuthal_equidistant"

    def new_projection(self, view: View) -> Projection:
        return Projection(
            AzimuthalEquidistant(),
            rotate=(0.0, -90.0),
            precision=0.1,
            clip_angle=180.0 - 0.001,
        )


class OrthographicGlobe(Globe):
    name = "orthographic"

    def new_projection(self, view: View) -> Projection:
        return Projection(
            Orthographic(),
            rotate=current_position(),
            precision=0.1,
            clip_angle=90.0,
        )

    def locate(self, coord: Sequence[float]) -> Optional[Tuple[float, float, float]]:
        # Keeps the current roll.
        return (-coord[0], -coord[1], self.projection.rotate[2])

    def define_map(self) -> MapDefinition:
        return MapDefinition(
            sphere=self.projection.outline(),
            fill_gradient=ORTHOGRAPHIC_FILL,
        )


class StereographicGlobe(Globe):
    """Near-global stereographic view, clipped hard to the view rectangle."""

    name = "stereographic"

    def new_projection(self, view: View) -> Projection:
        return Projection(
            Stereographic(),
            rotate=(-43.0, -20.0),
            precision=1.0,
            clip_angle=180.0 - 0.0001,
            clip_extent=((0.0, 0.0), (float(view.width), float(view.height))),
        )
