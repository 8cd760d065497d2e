"""Visibility mask: the globe's silhouette rasterized into the view.

The outline polygons of a globe are filled into an in-memory bilevel
image with Pillow, so no display surface is needed.  A pixel is visible
when the fill covered it.  Alongside the visibility raster the mask
carries an RGBA buffer, initially transparent black, into which the
field interpolation writes overlay colors.
"""

from __future__ import annotations

import logging
import time
from typing import Sequence

import numpy as np
from PIL import Image, ImageDraw

from globe_field.globes.base import Globe, View

logger = logging.getLogger(__name__)


class Mask:
    """Boolean visibility raster plus a mutable RGBA overlay buffer.

    Attributes:
        width: Raster width in pixels.
        height: Raster height in pixels.
        visible: ``(height, width)`` boolean array.
        image: ``(height, width, 4)`` ``uint8`` RGBA array.
    """

    def __init__(self, visible: np.ndarray) -> None:
        self.visible = np.asarray(visible, dtype=bool)
        self.height, self.width = self.visible.shape
        self.image = np.zeros((self.height, self.width, 4), dtype=np.uint8)

    def __repr__(self) -> str:
        return f"Mask({self.width}x{self.height}, visible={int(self.visible.sum())})"

    def is_visible(self, x: int, y: int) -> bool:
        """True if pixel ``(x, y)`` lies inside the globe's outline."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return bool(self.visible[y, x])
        return False

    def set(self, x: int, y: int, rgba: Sequence[int]) -> "Mask":
        """Write an RGBA color at ``(x, y)``; pixels off the raster are ignored."""
        if 0 <= x < self.width and 0 <= y < self.height:
            self.image[y, x] = rgba
        return self

    def get(self, x: int, y: int) -> tuple:
        """Return the RGBA color at ``(x, y)``."""
        return tuple(int(c) for c in self.image[y, x])


def build_mask(globe: Globe, view: View) -> Mask:
    """Rasterize *globe*'s outline into a :class:`Mask` the size of *view*.

    Every polygon from :meth:`Globe.define_mask` is filled; the visible
    region is the union of the fills.
    """
    start = time.perf_counter()
    canvas = Image.new("1", (view.width, view.height), 0)
    draw = ImageDraw.Draw(canvas)
    for polygon in globe.define_mask():
        if len(polygon) >= 3:
            draw.polygon([(float(x), float(y)) for x, y in polygon], fill=1, outline=1)
    mask = Mask(np.array(canvas, dtype=bool))
    logger.debug(
        "render mask: %s %dx%d in %.1f ms",
        globe.name, view.width, view.height, (time.perf_counter() - start) * 1000.0,
    )
    return mask
