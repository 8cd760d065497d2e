"""Tests for globe_field.projection module.

Covers:
- point mapping with the screen y-flip and rotation
- invert() and undefined inverses
- outline(): small circle, antimeridian ring, raw outline, clip extent
- bounds() and clip_polygon()
"""

from __future__ import annotations

import math

import pytest

from globe_field.polyhedral import WatermanButterfly
from globe_field.projection import Projection, clip_polygon
from globe_field.raw import Equirectangular, Orthographic, Stereographic


def _ortho(**kwargs) -> Projection:
    params = dict(rotate=(0, 0), scale=100, translate=(200, 150), clip_angle=90)
    params.update(kwargs)
    return Projection(Orthographic(), **params)


# ---------------------------------------------------------------------------
# Point mapping
# ---------------------------------------------------------------------------

class TestPointMapping:
    def test_center_maps_to_translate(self) -> None:
        assert _ortho()((0, 0)) == pytest.approx((200, 150))

    def test_east_is_right(self) -> None:
        x, y = _ortho()((90, 0))
        assert x == pytest.approx(300)
        assert y == pytest.approx(150)

    def test_north_is_up(self) -> None:
        x, y = _ortho()((0, 45))
        assert x == pytest.approx(200)
        assert y == pytest.approx(150 - 100 * math.sin(math.radians(45)))

    def test_rotation_centers_coordinate(self) -> None:
        projection = _ortho(rotate=(-10, -20))
        assert projection((10, 20)) == pytest.approx((200, 150))

    def test_non_finite_image_is_none(self) -> None:
        projection = Projection(Stereographic(), rotate=(0, 0))
        assert projection((180, 0)) is None

    def test_rotate_setter(self) -> None:
        projection = _ortho()
        projection.rotate = (5, 6)
        assert projection.rotate == (5.0, 6.0, 0.0)

    def test_copy_is_independent(self) -> None:
        projection = _ortho()
        clone = projection.copy()
        clone.scale = 10
        clone.rotate = (40, 0)
        assert projection.scale == 100
        assert projection.rotate == (0.0, 0.0, 0.0)


class TestInvert:
    def test_center(self) -> None:
        assert _ortho().invert((200, 150)) == pytest.approx((0, 0))

    def test_roundtrip_with_rotation(self) -> None:
        projection = _ortho(rotate=(30, -15, 10))
        point = projection((-25, 30))
        assert projection.invert(point) == pytest.approx((-25, 30))

    def test_off_disc_is_none(self) -> None:
        assert _ortho().invert((400, 150)) is None

    def test_zero_scale_is_none(self) -> None:
        assert _ortho(scale=0).invert((200, 150)) is None


# ---------------------------------------------------------------------------
# Outline and bounds
# ---------------------------------------------------------------------------

class TestOutline:
    def test_sample_step_follows_precision(self) -> None:
        assert _ortho(precision=0.1).sample_step() == pytest.approx(1.0)
        assert _ortho(precision=0.01).sample_step() == pytest.approx(0.5)
        assert _ortho(precision=5).sample_step() == pytest.approx(10.0)

    def test_coarser_precision_has_fewer_vertices(self) -> None:
        fine = _ortho(precision=0.1).outline()[0]
        coarse = _ortho(precision=1.0).outline()[0]
        assert len(coarse) < len(fine)

    def test_clip_angle_gives_circle(self) -> None:
        polygons = _ortho().outline()
        assert len(polygons) == 1
        for x, y in polygons[0]:
            assert math.hypot(x - 200, y - 150) == pytest.approx(100)

    def test_circle_bounds(self) -> None:
        (x0, y0), (x1, y1) = _ortho().bounds()
        assert (x0, y0) == pytest.approx((100, 50), abs=1e-6)
        assert (x1, y1) == pytest.approx((300, 250), abs=1e-6)

    def test_antimeridian_ring_bounds(self) -> None:
        projection = Projection(Equirectangular(), scale=100, translate=(400, 200))
        (x0, y0), (x1, y1) = projection.bounds()
        assert x0 == pytest.approx(400 - 100 * math.pi, abs=1e-3)
        assert x1 == pytest.approx(400 + 100 * math.pi, abs=1e-3)
        assert y0 == pytest.approx(200 - 50 * math.pi, abs=1e-3)
        assert y1 == pytest.approx(200 + 50 * math.pi, abs=1e-3)

    def test_clip_extent_limits_outline(self) -> None:
        projection = Projection(
            Stereographic(),
            scale=500,
            translate=(50, 50),
            clip_angle=179.9999,
            clip_extent=((0, 0), (100, 100)),
        )
        polygons = projection.outline()
        assert polygons
        for polygon in polygons:
            for x, y in polygon:
                assert -1e-9 <= x <= 100 + 1e-9
                assert -1e-9 <= y <= 100 + 1e-9

    def test_raw_outline_is_used(self) -> None:
        projection = Projection(WatermanButterfly(), scale=100, translate=(300, 200))
        assert len(projection.outline()) == 32

    def test_empty_outline_bounds_are_infinite(self) -> None:
        projection = _ortho(clip_extent=((1000, 1000), (1100, 1100)))
        (x0, y0), (x1, y1) = projection.bounds()
        assert math.isinf(x0) and math.isinf(x1)
        assert math.isinf(y0) and math.isinf(y1)


class TestClipPolygon:
    SQUARE = [(-10.0, -10.0), (10.0, -10.0), (10.0, 10.0), (-10.0, 10.0)]

    def test_clipped_to_extent(self) -> None:
        clipped = clip_polygon(self.SQUARE, ((0, 0), (5, 5)))
        assert {(round(x, 9), round(y, 9)) for x, y in clipped} == {
            (0.0, 0.0), (5.0, 0.0), (5.0, 5.0), (0.0, 5.0),
        }

    def test_inside_unchanged(self) -> None:
        assert clip_polygon(self.SQUARE, ((-20, -20), (20, 20))) == self.SQUARE

    def test_outside_is_empty(self) -> None:
        assert clip_polygon(self.SQUARE, ((50, 50), (60, 60))) == []
