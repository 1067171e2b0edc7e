"""
pose.py

Rigid camera pose mapping world points into the camera frame.

A pose stores the world-to-camera rotation *R* and the camera centre *C*
expressed in world coordinates.  A world point *X* is mapped to the camera
frame as::

    X_cam = R @ (X - C)

so the usual translation vector is ``t = -R @ C``.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np


class Pose3:
    """Camera pose built from a 3×3 rotation and a camera centre.

    Supports composition (``@`` or ``*``) and application to 3-D points by
    calling the pose.

    Args:
        rotation: A 3×3 array-like.  Defaults to the identity rotation.
        center: Camera centre ``[x, y, z]`` in world coordinates.  Defaults to
            the origin.
    """

    def __init__(
        self,
        rotation: np.ndarray | None = None,
        center: Sequence[float] | None = None,
    ) -> None:
        if rotation is None:
            self._rotation = np.eye(3, dtype=float)
        else:
            self._rotation = np.array(rotation, dtype=float)
            if self._rotation.shape != (3, 3):
                raise ValueError(f"Rotation must be 3×3, got {self._rotation.shape}.")
        if center is None:
            self._center = np.zeros(3, dtype=float)
        else:
            self._center = np.array(center, dtype=float)
            if self._center.shape != (3,):
                raise ValueError(f"Center must be length 3, got {self._center.shape}.")

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def identity(cls) -> "Pose3":
        """Return the identity pose (camera at the origin, axes aligned)."""
        return cls()

    @classmethod
    def from_rotation_translation(
        cls, rotation: np.ndarray, translation: Sequence[float]
    ) -> "Pose3":
        """Build a pose from ``[R | t]``; the centre is ``-Rᵀ t``."""
        R = np.asarray(rotation, dtype=float)
        t = np.asarray(translation, dtype=float)
        return cls(R, -R.T @ t)

    @classmethod
    def from_quaternion(
        cls, quaternion: Sequence[float], center: Sequence[float] | None = None
    ) -> "Pose3":
        """Build a pose from a quaternion ``[w, x, y, z]`` and optional centre."""
        return cls(_quaternion_to_rotation_matrix(list(quaternion)), center)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def rotation(self) -> np.ndarray:
        """The 3×3 world-to-camera rotation."""
        return self._rotation

    @property
    def center(self) -> np.ndarray:
        """The camera centre in world coordinates."""
        return self._center

    @property
    def translation(self) -> np.ndarray:
        """The translation vector ``t = -R @ C``."""
        return -(self._rotation @ self._center)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def __call__(self, points: Sequence[float] | np.ndarray) -> np.ndarray:
        """Map a (3,) point or an (N, 3) array of points into the camera frame."""
        pts = np.asarray(points, dtype=float)
        if pts.shape == (3,):
            return self._rotation @ (pts - self._center)
        if pts.ndim != 2 or pts.shape[1] != 3:
            raise ValueError(f"Points must have shape (3,) or (N, 3), got {pts.shape}.")
        return (pts - self._center) @ self._rotation.T

    def depth(self, point: Sequence[float]) -> float:
        """Return the depth (camera-frame Z) of a world point."""
        return float(self(point)[2])

    def inverse(self) -> "Pose3":
        """Return the inverse pose."""
        return Pose3(self._rotation.T, -(self._rotation @ self._center))

    def __matmul__(self, other: "Pose3") -> "Pose3":
        """Compose two poses: ``(self @ other)(X) == self(other(X))``."""
        if isinstance(other, Pose3):
            return Pose3(
                self._rotation @ other._rotation,
                other._center + other._rotation.T @ self._center,
            )
        return NotImplemented

    __mul__ = __matmul__

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pose3):
            return NotImplemented
        return bool(
            np.allclose(self._rotation, other._rotation)
            and np.allclose(self._center, other._center)
        )

    def __repr__(self) -> str:
        return f"Pose3(rotation=\n{self._rotation},\ncenter={self._center})"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _quaternion_to_rotation_matrix(q: List[float]) -> np.ndarray:
    """Convert a unit quaternion [w, x, y, z] to a 3×3 rotation matrix."""
    w, x, y, z = q
    norm = np.sqrt(w * w + x * x + y * y + z * z)
    if norm < 1e-10:
        raise ValueError("Quaternion has near-zero norm; cannot normalise.")
    w, x, y, z = w / norm, x / norm, y / norm, z / norm

    return np.array([
        [1 - 2 * (y * y + z * z),     2 * (x * y - w * z),     2 * (x * z + w * y)],
        [    2 * (x * y + w * z), 1 - 2 * (x * x + z * z),     2 * (y * z - w * x)],
        [    2 * (x * z - w * y),     2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
    ], dtype=float)
