"""
pinhole_camera.py

Projective pinhole camera described by its 3×4 projection matrix::

    P = K [R | t],    t = -R C

Unlike the intrinsic models this camera carries its own pose and no lens
distortion.  It is the representation produced by linear resection and used
by linear triangulation.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from camera_intrinsics.ray_geometry import angle_between_rays


# ---------------------------------------------------------------------------
# Projection matrix helpers
# ---------------------------------------------------------------------------


def p_from_krt(K: np.ndarray, R: np.ndarray, t: Sequence[float]) -> np.ndarray:
    """Compose the 3×4 projection matrix ``K [R | t]``."""
    K = np.asarray(K, dtype=float)
    R = np.asarray(R, dtype=float)
    t = np.asarray(t, dtype=float).reshape(3, 1)
    return K @ np.hstack([R, t])


def krt_from_p(P: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Decompose a projection matrix into ``(K, R, t)``.

    The left 3×3 block is split by an RQ decomposition.  *K* is returned with
    a positive diagonal and ``K[2, 2] == 1``; *R* is a proper rotation
    (``det(R) == +1``).  Since *P* is only defined up to scale, the sign of
    ``[R | t]`` is flipped when needed.

    Args:
        P: 3×4 projection matrix.

    Returns:
        ``(K, R, t)`` with shapes ``(3, 3)``, ``(3, 3)`` and ``(3,)``.
    """
    P = np.asarray(P, dtype=float)
    if P.shape != (3, 4):
        raise ValueError(f"Projection matrix must be 3×4, got {P.shape}.")

    # RQ decomposition of M via the QR decomposition of the row-reversed Mᵀ.
    flip = np.flipud(np.eye(3))
    Q, U = np.linalg.qr((flip @ P[:, :3]).T)
    K = flip @ U.T @ flip
    R = flip @ Q.T

    signs = np.diag(np.where(np.diag(K) < 0.0, -1.0, 1.0))
    K = K @ signs
    R = signs @ R

    t = np.linalg.solve(K, P[:, 3])
    K = K / K[2, 2]

    if np.linalg.det(R) < 0.0:
        R = -R
        t = -t
    return K, R, t


def project(P: np.ndarray, point: Sequence[float]) -> np.ndarray:
    """Project a single 3-D point with the projection matrix *P*."""
    X = np.append(np.asarray(point, dtype=float), 1.0)
    x = np.asarray(P, dtype=float) @ X
    with np.errstate(divide="ignore", invalid="ignore"):
        return x[:2] / x[2]


def project_points(P: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Project an (N, 3) array of 3-D points; returns an (N, 2) array."""
    pts = np.asarray(points, dtype=float)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError(f"Points must have shape (N, 3), got {pts.shape}.")
    homogeneous = np.hstack([pts, np.ones((pts.shape[0], 1))])
    x = homogeneous @ np.asarray(P, dtype=float).T
    with np.errstate(divide="ignore", invalid="ignore"):
        return x[:, :2] / x[:, 2:3]


# ---------------------------------------------------------------------------
# PinholeCamera
# ---------------------------------------------------------------------------


class PinholeCamera:
    """Pinhole camera ``P = K [R | t]``.

    Args:
        K: 3×3 intrinsic matrix.  Defaults to identity.
        R: 3×3 rotation.  Defaults to identity.
        t: Translation vector.  Defaults to zero.
    """

    def __init__(
        self,
        K: np.ndarray | None = None,
        R: np.ndarray | None = None,
        t: Sequence[float] | None = None,
    ) -> None:
        self._K = np.eye(3) if K is None else np.array(K, dtype=float)
        self._R = np.eye(3) if R is None else np.array(R, dtype=float)
        self._t = np.zeros(3) if t is None else np.array(t, dtype=float).reshape(3)
        if self._K.shape != (3, 3):
            raise ValueError(f"K must be 3×3, got {self._K.shape}.")
        if self._R.shape != (3, 3):
            raise ValueError(f"R must be 3×3, got {self._R.shape}.")
        self._C = -self._R.T @ self._t
        self._P = p_from_krt(self._K, self._R, self._t)

    @classmethod
    def from_projection_matrix(cls, P: np.ndarray) -> "PinholeCamera":
        """Build a camera by decomposing a 3×4 projection matrix."""
        K, R, t = krt_from_p(P)
        camera = cls(K, R, t)
        camera._P = np.array(P, dtype=float)
        return camera

    @property
    def P(self) -> np.ndarray:
        return self._P

    @property
    def K(self) -> np.ndarray:
        return self._K

    @property
    def R(self) -> np.ndarray:
        return self._R

    @property
    def t(self) -> np.ndarray:
        return self._t

    @property
    def C(self) -> np.ndarray:
        """Camera centre in world coordinates."""
        return self._C

    def project(self, point: Sequence[float]) -> np.ndarray:
        return project(self._P, point)

    def residual(self, point: Sequence[float], ref: Sequence[float]) -> float:
        """Euclidean distance between *ref* and the projection of *point*."""
        return float(np.linalg.norm(np.asarray(ref, dtype=float) - self.project(point)))

    def residual_squared(self, point: Sequence[float], ref: Sequence[float]) -> float:
        diff = np.asarray(ref, dtype=float) - self.project(point)
        return float(diff @ diff)

    def depth(self, point: Sequence[float]) -> float:
        """Depth of *point* in the camera frame: ``(R X + t)_z``."""
        return float((self._R @ np.asarray(point, dtype=float) + self._t)[2])

    @staticmethod
    def angle_between_ray(
        cam1: "PinholeCamera",
        cam2: "PinholeCamera",
        x1: Sequence[float],
        x2: Sequence[float],
    ) -> float:
        """Angle in degrees between the rays through pixels *x1* and *x2*."""
        ray1 = cam1._R.T @ np.linalg.solve(cam1._K, np.array([x1[0], x1[1], 1.0]))
        ray2 = cam2._R.T @ np.linalg.solve(cam2._K, np.array([x2[0], x2[1], 1.0]))
        return angle_between_rays(ray1, ray2)

    def __repr__(self) -> str:
        return f"PinholeCamera(\nK=\n{self._K},\nR=\n{self._R},\nt={self._t})"
