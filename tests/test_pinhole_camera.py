"""Tests for pinhole_camera module."""

import math

import numpy as np
import pytest

from camera_intrinsics.intrinsics import PinholeIntrinsic
from camera_intrinsics.pinhole_camera import (
    PinholeCamera,
    krt_from_p,
    p_from_krt,
    project,
    project_points,
)
from camera_intrinsics.pose import Pose3


def rotation_xyz(ax, ay, az):
    cx, sx = math.cos(ax), math.sin(ax)
    cy, sy = math.cos(ay), math.sin(ay)
    cz, sz = math.cos(az), math.sin(az)
    Rx = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    Ry = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    Rz = np.array([[cz, -sz, 0.0], [sz, cz, 0.0], [0.0, 0.0, 1.0]])
    return Rz @ Ry @ Rx


K = np.array([[800.0, 0.0, 320.0], [0.0, 800.0, 240.0], [0.0, 0.0, 1.0]])
R = rotation_xyz(0.1, -0.2, 0.3)
T = np.array([0.5, -0.25, 4.0])


# ---------------------------------------------------------------------------
# Projection matrix helpers
# ---------------------------------------------------------------------------


class TestProjectionMatrix:
    def test_p_from_krt_shape(self):
        P = p_from_krt(K, R, T)
        assert P.shape == (3, 4)
        np.testing.assert_allclose(P[:, :3], K @ R, atol=1e-12)
        np.testing.assert_allclose(P[:, 3], K @ T, atol=1e-12)

    def test_krt_round_trip(self):
        K2, R2, t2 = krt_from_p(p_from_krt(K, R, T))
        np.testing.assert_allclose(K2, K, atol=1e-8)
        np.testing.assert_allclose(R2, R, atol=1e-10)
        np.testing.assert_allclose(t2, T, atol=1e-10)

    @pytest.mark.parametrize("scale", [2.5, -0.5])
    def test_krt_scale_invariant(self, scale):
        K2, R2, t2 = krt_from_p(scale * p_from_krt(K, R, T))
        np.testing.assert_allclose(K2, K, atol=1e-8)
        np.testing.assert_allclose(R2, R, atol=1e-10)
        np.testing.assert_allclose(t2, T, atol=1e-10)
        assert np.linalg.det(R2) == pytest.approx(1.0)

    def test_krt_wrong_shape_raises(self):
        with pytest.raises(ValueError, match="3×4"):
            krt_from_p(np.eye(3))

    def test_project_points_matches_single(self):
        P = p_from_krt(K, R, T)
        pts = np.array([[0.0, 0.0, 0.0], [0.5, 0.2, 1.0], [-0.3, 0.1, -0.5]])
        result = project_points(P, pts)
        assert result.shape == (3, 2)
        for row, pt in zip(result, pts):
            np.testing.assert_allclose(row, project(P, pt), atol=1e-10)

    def test_project_points_wrong_shape_raises(self):
        with pytest.raises(ValueError):
            project_points(np.eye(3, 4), np.zeros((2, 2)))


# ---------------------------------------------------------------------------
# PinholeCamera
# ---------------------------------------------------------------------------


class TestPinholeCamera:
    def test_default_is_identity(self):
        cam = PinholeCamera()
        np.testing.assert_allclose(cam.P, np.eye(3, 4))
        np.testing.assert_allclose(cam.C, np.zeros(3))

    def test_center(self):
        cam = PinholeCamera(K, R, T)
        np.testing.assert_allclose(cam.C, -R.T @ T, atol=1e-12)
        assert cam.depth(cam.C) == pytest.approx(0.0, abs=1e-12)

    def test_from_projection_matrix(self):
        P = p_from_krt(K, R, T)
        cam = PinholeCamera.from_projection_matrix(P)
        np.testing.assert_allclose(cam.K, K, atol=1e-8)
        np.testing.assert_allclose(cam.R, R, atol=1e-10)
        np.testing.assert_allclose(cam.t, T, atol=1e-10)
        np.testing.assert_array_equal(cam.P, P)

    def test_project_matches_intrinsic_model(self):
        pose = Pose3.from_rotation_translation(R, T)
        intrinsic = PinholeIntrinsic(640, 480, 800.0, 320.0, 240.0)
        cam = PinholeCamera(K, R, T)
        X = np.array([0.2, -0.1, 0.7])
        np.testing.assert_allclose(cam.project(X), intrinsic.project(pose, X), atol=1e-9)

    def test_residual(self):
        cam = PinholeCamera(K, np.eye(3), np.zeros(3))
        X = np.array([0.0, 0.0, 2.0])
        assert cam.residual(X, [323.0, 244.0]) == pytest.approx(5.0)
        assert cam.residual_squared(X, [323.0, 244.0]) == pytest.approx(25.0)

    def test_depth(self):
        cam = PinholeCamera(K, np.eye(3), [0.0, 0.0, 1.0])
        assert cam.depth([0.0, 0.0, 2.0]) == pytest.approx(3.0)

    def test_wrong_k_shape_raises(self):
        with pytest.raises(ValueError, match="K must be"):
            PinholeCamera(np.eye(2))

    def test_angle_between_ray_right_angle(self):
        Ry = rotation_xyz(0.0, math.pi / 2, 0.0)
        cam1 = PinholeCamera(K)
        cam2 = PinholeCamera(K, Ry)
        angle = PinholeCamera.angle_between_ray(cam1, cam2, [320.0, 240.0], [320.0, 240.0])
        assert angle == pytest.approx(90.0, abs=1e-6)

    def test_angle_between_ray_same_ray(self):
        cam = PinholeCamera(K, R, T)
        angle = PinholeCamera.angle_between_ray(cam, cam, [100.0, 50.0], [100.0, 50.0])
        assert angle == pytest.approx(0.0, abs=1e-2)
