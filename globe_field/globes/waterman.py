"""Waterman butterfly globe.

The butterfly outline is not convex, so map layers must be clipped to
the sphere outline rather than drawn over its bounding box.
"""

from __future__ import annotations

from globe_field.globes.base import Globe, MapDefinition, View
from globe_field.polyhedral import WatermanButterfly
from globe_field.projection import Projection


class WatermanGlobe(Globe):
    name = "waterman"

    def new_projection(self, view: View) -> Projection:
        return Projection(WatermanButterfly(), rotate=(20.0, 0.0), precision=0.1)

    def define_map(self) -> MapDefinition:
        sphere = self.projection.outline()
        return MapDefinition(sphere=sphere, clip=sphere)
