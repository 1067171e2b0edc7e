"""Tests for distortion module."""

import math

import numpy as np
import pytest

from camera_intrinsics.distortion import (
    FISHEYE_UNDISTORT_ITERATIONS,
    BrownT2Distortion,
    FisheyeDistortion,
    NoDistortion,
    RadialK1Distortion,
    RadialK3Distortion,
    radial_k1_functor,
    radial_k3_functor,
)


GRID = [
    np.array([x, y])
    for x in (-0.4, -0.15, 0.0, 0.2, 0.35)
    for y in (-0.3, 0.0, 0.1, 0.25)
]


# ---------------------------------------------------------------------------
# No distortion
# ---------------------------------------------------------------------------


class TestNoDistortion:
    def test_identity(self):
        d = NoDistortion()
        pt = np.array([0.3, -0.7])
        np.testing.assert_array_equal(d.add(pt), pt)
        np.testing.assert_array_equal(d.remove(pt), pt)

    def test_no_params(self):
        assert NoDistortion().params == ()
        assert NoDistortion.have_disto is False


# ---------------------------------------------------------------------------
# Radial distortion
# ---------------------------------------------------------------------------


class TestRadialFunctors:
    def test_k1_functor(self):
        assert radial_k1_functor([0.5], 0.04) == pytest.approx(0.04 * 1.02 ** 2)

    def test_k3_functor_matches_expanded_polynomial(self):
        k1, k2, k3 = -0.2, 0.05, -0.01
        r2 = 0.3
        expected = r2 * (1.0 + k1 * r2 + k2 * r2 ** 2 + k3 * r2 ** 3) ** 2
        assert radial_k3_functor([k1, k2, k3], r2) == pytest.approx(expected, rel=1e-12)

    def test_overflow_gives_inf(self):
        assert radial_k1_functor([0.1], 1e160) == math.inf
        assert radial_k3_functor([0.1, 0.0, 0.0], 1e160) == math.inf


class TestRadialK1Distortion:
    def test_params(self):
        assert RadialK1Distortion(-0.1).params == (-0.1,)

    def test_add_scales_by_radial_coefficient(self):
        d = RadialK1Distortion(-0.1)
        np.testing.assert_allclose(d.add([0.1, 0.0]), [0.1 * 0.999, 0.0], atol=1e-15)

    def test_positive_k1_expands_point(self):
        pt_d = RadialK1Distortion(0.5).add([0.1, 0.0])
        assert abs(pt_d[0]) > 0.1

    def test_round_trip(self):
        d = RadialK1Distortion(-0.1)
        np.testing.assert_allclose(d.remove(d.add([0.1, 0.0])), [0.1, 0.0], atol=1e-6)

    @pytest.mark.parametrize("pt", GRID)
    def test_round_trip_grid(self, pt):
        d = RadialK1Distortion(-0.1)
        np.testing.assert_allclose(d.remove(d.add(pt)), pt, atol=1e-6)

    def test_remove_origin(self):
        np.testing.assert_array_equal(RadialK1Distortion(-0.1).remove([0.0, 0.0]), [0.0, 0.0])

    def test_remove_huge_radius_does_not_raise(self):
        result = RadialK1Distortion(0.1).remove([1e80, 0.0])
        assert result.shape == (2,)
        assert np.all(np.isfinite(result))


class TestRadialK3Distortion:
    def test_params_order(self):
        assert RadialK3Distortion(0.1, 0.2, 0.3).params == (0.1, 0.2, 0.3)

    def test_add(self):
        d = RadialK3Distortion(-0.2, 0.05, -0.01)
        pt = np.array([0.3, 0.4])
        r2 = 0.25
        expected = pt * (1.0 - 0.2 * r2 + 0.05 * r2 ** 2 - 0.01 * r2 ** 3)
        np.testing.assert_allclose(d.add(pt), expected, atol=1e-15)

    @pytest.mark.parametrize("pt", GRID)
    def test_round_trip_grid(self, pt):
        d = RadialK3Distortion(-0.2, 0.05, -0.01)
        np.testing.assert_allclose(d.remove(d.add(pt)), pt, atol=1e-6)


# ---------------------------------------------------------------------------
# Fisheye distortion
# ---------------------------------------------------------------------------


class TestFisheyeDistortion:
    def test_params_order(self):
        assert FisheyeDistortion(0.1, 0.2, 0.3, 0.4).params == (0.1, 0.2, 0.3, 0.4)

    def test_zero_coefficients_equidistant(self):
        """Zero coefficients apply the pure equidistant mapping θ = atan(r)."""
        pt = np.array([0.2, -0.15])
        r = float(np.linalg.norm(pt))
        expected = pt * (math.atan(r) / r)
        np.testing.assert_allclose(FisheyeDistortion().add(pt), expected, atol=1e-12)

    def test_zero_coefficients_round_trip(self):
        d = FisheyeDistortion()
        pt = np.array([0.1, 0.3])
        np.testing.assert_allclose(d.remove(d.add(pt)), pt, atol=1e-12)

    def test_origin_unchanged(self):
        d = FisheyeDistortion(0.1, -0.05, 0.0, 0.0)
        np.testing.assert_array_equal(d.add([0.0, 0.0]), [0.0, 0.0])
        np.testing.assert_array_equal(d.remove([0.0, 0.0]), [0.0, 0.0])

    def test_tiny_radius_uses_unit_scale(self):
        d = FisheyeDistortion(0.1, 0.0, 0.0, 0.0)
        pt = np.array([1e-10, 0.0])
        np.testing.assert_array_equal(d.add(pt), pt)
        np.testing.assert_array_equal(d.remove(pt), pt)

    @pytest.mark.parametrize("pt", GRID)
    def test_round_trip_grid(self, pt):
        d = FisheyeDistortion(0.05, -0.02, 0.003, -0.001)
        np.testing.assert_allclose(d.remove(d.add(pt)), pt, atol=1e-6)

    def test_remove_runs_fixed_iteration_count(self):
        """The inverse is exactly ten fixed-point steps from θ = θ_d."""
        k = (0.3, 0.1, 0.05, 0.02)
        pt = np.array([0.9, -0.6])
        theta_d = float(np.linalg.norm(pt))
        theta = theta_d
        for _ in range(10):
            t2 = theta * theta
            t4 = t2 * t2
            t6 = t4 * t2
            t8 = t6 * t2
            theta = theta_d / (1.0 + k[0] * t2 + k[1] * t4 + k[2] * t6 + k[3] * t8)
        expected = pt * (math.tan(theta) / theta_d)
        assert FISHEYE_UNDISTORT_ITERATIONS == 10
        np.testing.assert_allclose(FisheyeDistortion(*k).remove(pt), expected, rtol=1e-12)

    def test_remove_vanishing_polynomial_does_not_raise(self):
        """1 + k1·θ² is zero at θ = 1, so the iteration leaves the finite range."""
        result = FisheyeDistortion(-1.0, 0.0, 0.0, 0.0).remove([1.0, 0.0])
        assert result.shape == (2,)
        assert not np.all(np.isfinite(result))


# ---------------------------------------------------------------------------
# Brown-Conrady distortion
# ---------------------------------------------------------------------------


class TestBrownT2Distortion:
    def test_params_order(self):
        assert BrownT2Distortion(0.1, 0.2, 0.3, 0.4, 0.5).params == (0.1, 0.2, 0.3, 0.4, 0.5)

    def test_zero_coefficients_no_distortion(self):
        pt = np.array([0.1, 0.2])
        np.testing.assert_allclose(BrownT2Distortion().add(pt), pt, atol=1e-15)

    def test_tangential_offset(self):
        d = BrownT2Distortion(t1=0.01)
        x, y = 0.2, 0.1
        r2 = x * x + y * y
        np.testing.assert_allclose(
            d.offset([x, y]), [2.0 * 0.01 * x * y, 0.01 * (r2 + 2.0 * y * y)], atol=1e-15
        )

    @pytest.mark.parametrize("pt", GRID)
    def test_round_trip_grid(self, pt):
        d = BrownT2Distortion(-0.3, 0.1, 0.0, 0.001, -0.001)
        np.testing.assert_allclose(d.remove(d.add(pt)), pt, atol=1e-7)
