"""Tests for globe_field.field module.

Covers:
- FieldVector variants
- distortion() / distort() on a projection with known derivatives
- Field lookup, rounding, release and seed sampling
- InterpolationTask end to end: vectors, holes, outside, overlay colors
- Time slicing with an injected clock, cancellation, async driving
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from types import SimpleNamespace
from unittest import mock

import numpy as np
import pytest

import globe_field.globes.azimuthal as azimuthal
from globe_field.config import EngineConfig
from globe_field.field import (
    HOLE,
    OUTSIDE,
    Field,
    FieldVector,
    InterpolationTask,
    TaskState,
    VectorKind,
    distort,
    distortion,
    interpolate_field,
    run_interpolation,
)
from globe_field.globes import View, build_globe
from globe_field.globes.base import Bounds
from globe_field.grids import ConstantGrid, FunctionGrid, Grids, Particles, SegmentedColorScale
from globe_field.projection import Projection
from globe_field.raw import Equirectangular

VIEW = View(100, 80)
CENTER = (50, 40)


@pytest.fixture
def globe():
    """Orthographic globe centered on (0, 0), radius 36 px in a 100x80 view."""
    with mock.patch.object(azimuthal, "current_position", return_value=(0.0, 0.0)):
        yield build_globe("orthographic", VIEW)


class TickClock:
    """Clock advancing by a fixed amount every time it is read."""

    def __init__(self, tick: float) -> None:
        self.now = 0.0
        self.tick = tick

    def __call__(self) -> float:
        self.now += self.tick
        return self.now


def _small_field(rng=None, seed_attempts=30) -> Field:
    kinds = np.zeros((4, 3), dtype=np.uint8)
    vectors = np.full((4, 3, 3), np.nan, dtype=np.float32)
    kinds[1, 1] = VectorKind.HOLE
    kinds[2, 1] = VectorKind.VECTOR
    vectors[2, 1] = (1.0, -2.0, 3.0)
    bounds = Bounds(x=0, y=0, x_max=3, y_max=2, width=4, height=3)
    overlay = np.zeros((3, 4, 4), dtype=np.uint8)
    return Field(kinds, vectors, bounds, overlay, seed_attempts=seed_attempts, rng=rng)


# ---------------------------------------------------------------------------
# FieldVector
# ---------------------------------------------------------------------------

class TestFieldVector:
    def test_outside(self) -> None:
        assert OUTSIDE.is_defined is False
        assert OUTSIDE.is_inside_boundary is False

    def test_hole(self) -> None:
        assert HOLE.is_defined is False
        assert HOLE.is_inside_boundary is True
        assert math.isnan(HOLE.u) and HOLE.magnitude is None

    def test_vector(self) -> None:
        vector = FieldVector(VectorKind.VECTOR, 1.0, 2.0, 3.0)
        assert vector.is_defined is True
        assert vector.is_inside_boundary is True

    def test_immutable(self) -> None:
        with pytest.raises(AttributeError):
            HOLE.u = 1.0  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Distortion
# ---------------------------------------------------------------------------

class TestDistortion:
    # One pixel per degree, north up.
    PROJECTION = Projection(Equirectangular(), scale=180 / math.pi, translate=(0, 0))

    def test_jacobian(self) -> None:
        x, y = self.PROJECTION((10, 60))
        d = distortion(self.PROJECTION, 10, 60, x, y)
        # Longitude derivative is divided by cos(60) = 0.5.
        assert d == pytest.approx((2.0, 0.0, 0.0, -1.0), abs=1e-6)

    def test_negative_coordinates_step_the_other_way(self) -> None:
        x, y = self.PROJECTION((-10, -60))
        d = distortion(self.PROJECTION, -10, -60, x, y)
        assert d == pytest.approx((2.0, 0.0, 0.0, -1.0), abs=1e-6)

    def test_pole_is_undefined(self) -> None:
        x, y = self.PROJECTION((0, 90))
        assert distortion(self.PROJECTION, 0, 90, x, y) is None

    def test_distort_mutates_and_returns(self) -> None:
        x, y = self.PROJECTION((10, 60))
        wind = [2.0, 3.0, 7.0]
        result = distort(self.PROJECTION, 10, 60, x, y, 0.5, wind)
        assert result is wind
        assert wind == pytest.approx([2.0, -1.5, 7.0], abs=1e-6)

    def test_distort_at_pole_leaves_wind(self) -> None:
        x, y = self.PROJECTION((0, 90))
        wind = [1.0, 1.0, 1.0]
        assert distort(self.PROJECTION, 0, 90, x, y, 1.0, wind) is None
        assert wind == [1.0, 1.0, 1.0]


# ---------------------------------------------------------------------------
# Field
# ---------------------------------------------------------------------------

class TestField:
    def test_lookup_variants(self) -> None:
        field = _small_field()
        assert field.lookup(0, 0) is OUTSIDE
        assert field.lookup(1, 1) is HOLE
        vector = field.lookup(2, 1)
        assert vector.kind is VectorKind.VECTOR
        assert (vector.u, vector.v, vector.magnitude) == (1.0, -2.0, 3.0)

    def test_call_is_lookup(self) -> None:
        field = _small_field()
        assert field(2, 1) == field.lookup(2, 1)

    def test_rounds_to_nearest_pixel(self) -> None:
        field = _small_field()
        assert field.is_defined(1.6, 0.7)
        assert not field.is_defined(1.4, 1.0)
        assert not field.is_defined(2.5, 1.0)  # rounds up to column 3

    def test_off_raster_and_non_finite(self) -> None:
        field = _small_field()
        assert field.lookup(-3, 1) is OUTSIDE
        assert field.lookup(10, 1) is OUTSIDE
        assert field.lookup(math.nan, 1) is OUTSIDE
        assert field.is_inside_boundary(math.inf, 0) is False

    def test_predicates(self) -> None:
        field = _small_field()
        assert field.is_inside_boundary(1, 1) is True
        assert field.is_defined(1, 1) is False
        assert field.is_inside_boundary(2, 1) is True
        assert field.is_defined(2, 1) is True
        assert field.is_inside_boundary(0, 0) is False

    def test_backing_arrays_read_only(self) -> None:
        kinds = np.zeros((2, 2), dtype=np.uint8)
        vectors = np.zeros((2, 2, 3), dtype=np.float32)
        Field(kinds, vectors, Bounds(0, 0, 1, 1, 2, 2), np.zeros((2, 2, 4), dtype=np.uint8))
        with pytest.raises(ValueError):
            kinds[0, 0] = 1

    def test_release(self) -> None:
        field = _small_field()
        field.release()
        assert field.released is True
        assert field.lookup(2, 1) is OUTSIDE
        assert field.is_defined(2, 1) is False
        assert field.is_inside_boundary(1, 1) is False
        assert "released" in repr(field)

    def test_release_twice(self) -> None:
        field = _small_field()
        field.release()
        field.release()
        assert field.lookup(0, 0) is OUTSIDE


class TestRandomizeSeed:
    def test_always_inside_boundary(self) -> None:
        field = _small_field(rng=random.Random(7))
        for _ in range(50):
            x, y = field.randomize_seed()
            assert field.is_inside_boundary(x, y)

    def test_prefers_defined(self) -> None:
        field = _small_field(rng=random.Random(3))
        # Two inside pixels, one defined: 30 draws miss it with p = 2**-30.
        assert field.randomize_seed() == (2, 1)

    def test_falls_back_to_last_draw(self) -> None:
        kinds = np.full((3, 3), VectorKind.HOLE, dtype=np.uint8)
        vectors = np.full((3, 3, 3), np.nan, dtype=np.float32)
        field = Field(
            kinds, vectors, Bounds(0, 0, 2, 2, 3, 3), np.zeros((3, 3, 4), dtype=np.uint8),
            seed_attempts=5, rng=random.Random(1),
        )
        x, y = field.randomize_seed()
        assert field.is_inside_boundary(x, y)
        assert not field.is_defined(x, y)

    def test_sets_point_attributes(self) -> None:
        field = _small_field(rng=random.Random(0))
        point = SimpleNamespace(x=None, y=None, age=4)
        assert field.randomize_seed(point) is point
        assert field.is_inside_boundary(point.x, point.y)
        assert point.age == 4

    def test_empty_field_returns_bounds_origin(self) -> None:
        kinds = np.zeros((3, 3), dtype=np.uint8)
        vectors = np.zeros((3, 3, 3), dtype=np.float32)
        field = Field(kinds, vectors, Bounds(1, 2, 2, 2, 2, 1), np.zeros((3, 3, 4), dtype=np.uint8))
        assert field.randomize_seed() == (1, 2)

    def test_released_field(self) -> None:
        field = _small_field()
        field.release()
        assert field.randomize_seed() == (0, 0)


# ---------------------------------------------------------------------------
# Interpolation
# ---------------------------------------------------------------------------

class TestInterpolation:
    def test_constant_eastward_wind_points_right(self, globe) -> None:
        grid = ConstantGrid([1.0, 0.0, 1.0])
        field = run_interpolation(globe, Grids(grid), VIEW)
        vector = field.lookup(*CENTER)
        assert vector.is_defined
        bounds = globe.bounds(VIEW)
        pixels_per_degree = globe.projection.scale * math.pi / 180.0
        expected = bounds.height * grid.particles.velocity_scale * pixels_per_degree
        assert vector.u == pytest.approx(expected, rel=1e-3)
        assert vector.v == pytest.approx(0.0, abs=1e-9)
        assert vector.magnitude == pytest.approx(1.0)

    def test_northward_wind_points_up(self, globe) -> None:
        field = run_interpolation(globe, Grids(ConstantGrid([0.0, 1.0, 1.0])), VIEW)
        vector = field.lookup(*CENTER)
        assert vector.v < 0
        assert vector.u == pytest.approx(0.0, abs=1e-9)

    def test_velocity_scale_proportional_to_particles(self, globe) -> None:
        slow = ConstantGrid([1.0, 0.0, 1.0], particles=Particles(velocity_scale=1e-5))
        fast = ConstantGrid([1.0, 0.0, 1.0], particles=Particles(velocity_scale=2e-5))
        u_slow = run_interpolation(globe, Grids(slow), VIEW).lookup(*CENTER).u
        u_fast = run_interpolation(globe, Grids(fast), VIEW).lookup(*CENTER).u
        assert u_fast == pytest.approx(2 * u_slow, rel=1e-5)

    def test_two_by_two_replication(self, globe) -> None:
        field = run_interpolation(globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), VIEW)
        center = field.lookup(*CENTER)
        for dx, dy in ((1, 0), (0, 1), (1, 1)):
            assert field.lookup(CENTER[0] + dx, CENTER[1] + dy) == center

    def test_outside_globe(self, globe) -> None:
        field = run_interpolation(globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), VIEW)
        assert field.lookup(0, 0) is OUTSIDE
        assert field.lookup(99, 79) is OUTSIDE
        assert tuple(field.overlay[0, 0]) == (0, 0, 0, 0)

    def test_missing_samples_are_holes(self, globe) -> None:
        field = run_interpolation(globe, Grids(FunctionGrid(lambda lon, lat: None)), VIEW)
        assert field.lookup(*CENTER) is HOLE
        assert field.is_inside_boundary(*CENTER)
        assert not field.is_defined(*CENTER)
        assert not field.overlay.any()

    def test_nan_magnitude_is_hole(self, globe) -> None:
        field = run_interpolation(globe, Grids(ConstantGrid([1.0, 0.0, math.nan])), VIEW)
        assert field.lookup(*CENTER) is HOLE
        assert tuple(field.overlay[CENTER[1], CENTER[0]]) == (0, 0, 0, 0)

    def test_overlay_colored_by_magnitude(self, globe) -> None:
        field = run_interpolation(globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), VIEW)
        expected = SegmentedColorScale().gradient(1.0, 102)
        assert tuple(field.overlay[CENTER[1], CENTER[0]]) == expected
        assert expected[3] == 102

    def test_overlay_alpha_from_config(self, globe) -> None:
        config = EngineConfig(overlay_alpha=200)
        field = run_interpolation(globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), VIEW, config)
        assert field.overlay[CENTER[1], CENTER[0], 3] == 200

    def test_distinct_overlay_drives_color(self, globe) -> None:
        grids = Grids(ConstantGrid([1.0, 0.0, 1.0]), overlay=ConstantGrid(50.0))
        field = run_interpolation(globe, grids, VIEW)
        expected = SegmentedColorScale().gradient(50.0, 102)
        assert tuple(field.overlay[CENTER[1], CENTER[0]]) == expected
        # Motion still comes from the primary grid.
        assert field.lookup(*CENTER).magnitude == pytest.approx(1.0)

    def test_distinct_overlay_colors_holes(self, globe) -> None:
        grids = Grids(FunctionGrid(lambda lon, lat: None), overlay=ConstantGrid(10.0))
        field = run_interpolation(globe, grids, VIEW)
        assert field.lookup(*CENTER) is HOLE
        assert field.overlay[CENTER[1], CENTER[0], 3] == 102

    def test_scalar_primary_colors_without_motion(self, globe) -> None:
        field = run_interpolation(globe, Grids(ConstantGrid(5.0)), VIEW)
        assert field.lookup(*CENTER) is HOLE
        expected = SegmentedColorScale().gradient(5.0, 102)
        assert tuple(field.overlay[CENTER[1], CENTER[0]]) == expected

    def test_samples_geographic_coordinates(self, globe) -> None:
        sampler = mock.Mock(return_value=[1.0, 0.0, 1.0])
        run_interpolation(globe, Grids(FunctionGrid(sampler)), VIEW)
        calls = [c.args for c in sampler.call_args_list]
        assert any(lon == pytest.approx(0.0, abs=1e-9) and lat == pytest.approx(0.0, abs=1e-9)
                   for lon, lat in calls)
        assert all(-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0 for lon, lat in calls)

    def test_errors_propagate(self, globe) -> None:
        def broken(lon, lat):
            raise RuntimeError("corrupt grid")

        with pytest.raises(RuntimeError, match="corrupt grid"):
            run_interpolation(globe, Grids(FunctionGrid(broken)), VIEW)

    def test_every_projection_interpolates(self) -> None:
        with mock.patch.object(azimuthal, "current_position", return_value=(0.0, 0.0)):
            for name in ("atlantis", "stereographic", "waterman", "winkel3"):
                globe = build_globe(name, View(60, 40))
                field = run_interpolation(globe, Grids(ConstantGrid([1.0, 1.0, 1.5])), View(60, 40))
                assert field is not None
                assert field.randomize_seed() is not None

    @pytest.mark.parametrize("view", [View(0, 0), View(3, 0), View(0, 3), View(1, 2)])
    def test_degenerate_views(self, view) -> None:
        with mock.patch.object(azimuthal, "current_position", return_value=(0.0, 0.0)):
            for name in ("orthographic", "stereographic", "waterman", "winkel3"):
                globe = build_globe(name, view)
                field = run_interpolation(globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), view)
                assert field is not None
                assert field.overlay.shape == (view.height, view.width, 4)


# ---------------------------------------------------------------------------
# Time slicing and cancellation
# ---------------------------------------------------------------------------

class TestInterpolationTask:
    GRID = ConstantGrid([1.0, 0.0, 1.0])

    def test_step_yields_when_budget_spent(self, globe) -> None:
        task = InterpolationTask(globe, Grids(self.GRID), VIEW, clock=TickClock(0.06))
        start = task.column
        assert task.step() is TaskState.RUNNING
        # Two columns fit in 0.1 s when each clock read costs 0.06 s.
        assert task.column == start + 4
        assert task.result is None

    def test_sliced_run_matches_single_slice(self, globe) -> None:
        grids = Grids(self.GRID)
        sliced = InterpolationTask(globe, grids, VIEW, clock=TickClock(0.06))
        steps = 1
        while sliced.step() is TaskState.RUNNING:
            steps += 1
        assert steps > 1
        assert sliced.state is TaskState.DONE

        whole = InterpolationTask(globe, grids, VIEW, clock=TickClock(0.0))
        assert whole.step() is TaskState.DONE
        assert np.array_equal(sliced.result.overlay, whole.result.overlay)
        assert sliced.result.lookup(*CENTER) == whole.result.lookup(*CENTER)

    def test_run_sleeps_between_slices(self, globe) -> None:
        config = EngineConfig(min_sleep_time=0.5)
        task = InterpolationTask(globe, Grids(self.GRID), VIEW, config, clock=TickClock(0.06))
        sleep = mock.Mock()
        field = task.run(sleep=sleep)
        assert field is task.result
        assert sleep.call_count >= 1
        sleep.assert_called_with(0.5)

    def test_step_after_done_is_noop(self, globe) -> None:
        task = InterpolationTask(globe, Grids(self.GRID), VIEW, clock=TickClock(0.0))
        task.step()
        result = task.result
        assert task.step() is TaskState.DONE
        assert task.result is result

    def test_cancel_between_slices(self, globe) -> None:
        task = InterpolationTask(globe, Grids(self.GRID), VIEW, clock=TickClock(0.06))
        assert task.step() is TaskState.RUNNING
        task.cancel()
        assert task.step() is TaskState.CANCELLED
        assert task.result is None
        assert task.step() is TaskState.CANCELLED

    def test_cancel_before_start(self, globe) -> None:
        task = InterpolationTask(globe, Grids(self.GRID), VIEW)
        task.cancel()
        sleep = mock.Mock()
        assert task.run(sleep=sleep) is None
        sleep.assert_not_called()
        assert task.state is TaskState.CANCELLED

    def test_cancel_during_run(self, globe) -> None:
        task = InterpolationTask(globe, Grids(self.GRID), VIEW, clock=TickClock(0.06))
        field = task.run(sleep=lambda _: task.cancel())
        assert field is None
        assert task.state is TaskState.CANCELLED

    def test_projection_changes_mid_run_are_ignored(self, globe) -> None:
        grids = Grids(self.GRID)
        expected = InterpolationTask(globe, grids, VIEW, clock=TickClock(0.0)).run()

        task = InterpolationTask(globe, grids, VIEW, clock=TickClock(0.06))
        assert task.step() is TaskState.RUNNING
        globe.projection.rotate = (90.0, 45.0, 0.0)
        field = task.run(sleep=lambda _: None)
        assert np.array_equal(field.overlay, expected.overlay)
        assert field.lookup(*CENTER) == expected.lookup(*CENTER)

    def test_uses_supplied_mask(self, globe) -> None:
        from globe_field.mask import Mask

        mask = Mask(np.zeros((VIEW.height, VIEW.width), dtype=bool))
        field = InterpolationTask(globe, Grids(self.GRID), VIEW, mask=mask).run()
        assert field.lookup(*CENTER) is OUTSIDE

    def test_logs_completion(self, globe, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="globe_field.field"):
            run_interpolation(globe, Grids(self.GRID), VIEW)
        assert "interpolating field: orthographic done in" in caplog.text


class TestAsync:
    def test_interpolate_field(self, globe) -> None:
        field = asyncio.run(interpolate_field(globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), VIEW))
        assert field.is_defined(*CENTER)

    def test_run_async_yields_to_loop(self, globe) -> None:
        config = EngineConfig(min_sleep_time=0.0)
        task = InterpolationTask(
            globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), VIEW, config, clock=TickClock(0.06)
        )
        ticks = []

        async def main():
            async def ticker():
                while task.state is TaskState.RUNNING:
                    ticks.append(task.column)
                    await asyncio.sleep(0)

            ticker_task = asyncio.ensure_future(ticker())
            field = await task.run_async()
            await ticker_task
            return field

        field = asyncio.run(main())
        assert field is not None
        assert len(ticks) > 1

    def test_cancelled_run_async_returns_none(self, globe) -> None:
        config = EngineConfig(min_sleep_time=0.0)
        task = InterpolationTask(
            globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), VIEW, config, clock=TickClock(0.06)
        )

        async def main():
            run = asyncio.ensure_future(task.run_async())
            await asyncio.sleep(0)
            task.cancel()
            return await run

        assert asyncio.run(main()) is None

    def test_interpolate_field_cancelled_before_start(self, globe) -> None:
        async def main():
            cancelled = asyncio.Event()
            cancelled.set()
            return await interpolate_field(
                globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), VIEW, cancelled=cancelled
            )

        assert asyncio.run(main()) is None

    def test_interpolate_field_cancelled_mid_run(self, globe) -> None:
        # A zero budget yields after every column.
        config = EngineConfig(max_task_time=0.0, min_sleep_time=0.01)

        async def main():
            cancelled = asyncio.Event()
            run = asyncio.ensure_future(
                interpolate_field(
                    globe, Grids(ConstantGrid([1.0, 0.0, 1.0])), VIEW, config, cancelled
                )
            )
            await asyncio.sleep(0)
            assert not run.done()
            cancelled.set()
            return await run

        assert asyncio.run(main()) is None

    def test_async_errors_propagate(self, globe) -> None:
        def broken(lon, lat):
            raise ValueError("bad sample")

        with pytest.raises(ValueError, match="bad sample"):
            asyncio.run(interpolate_field(globe, Grids(FunctionGrid(broken)), VIEW))
