"""
ray_geometry.py

Angle between the bearing rays of two observations of the same scene point.

A pixel ``x`` seen by a camera with rotation ``R`` back-projects to the world
direction::

    ray = Rᵀ @ bearing(x)

where ``bearing`` is the undistorted unit vector returned by calling the
intrinsic model.  Robust estimators use the angle between two such rays to
reject nearly-parallel (degenerate) triangulations.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

#: Margin keeping the cosine strictly inside ``acos``'s domain.
ANGLE_EPSILON = 1e-8


def angle_between_rays(ray1: np.ndarray, ray2: np.ndarray) -> float:
    """Return the angle in degrees between two 3-D directions."""
    ray1 = np.asarray(ray1, dtype=float)
    ray2 = np.asarray(ray2, dtype=float)
    mag = float(np.linalg.norm(ray1) * np.linalg.norm(ray2))
    dot = float(ray1 @ ray2)
    with np.errstate(divide="ignore", invalid="ignore"):
        cosine = np.clip(np.float64(dot) / mag, -1.0 + ANGLE_EPSILON, 1.0 - ANGLE_EPSILON)
    return math.degrees(math.acos(cosine))


def angle_between_ray(
    pose1,
    intrinsic1,
    pose2,
    intrinsic2,
    x1: Sequence[float],
    x2: Sequence[float],
) -> float:
    """Compute the angle between the bearing rays of two image observations.

    Args:
        pose1: Pose of the first camera; only ``pose1.rotation`` is read.
        intrinsic1: Intrinsic model of the first camera.  Calling it with a
            pixel returns the undistorted unit bearing vector.
        pose2: Pose of the second camera.
        intrinsic2: Intrinsic model of the second camera.
        x1: Pixel observed in the first image.
        x2: Pixel observed in the second image.

    Returns:
        Angle between the two world-space rays, in degrees.
    """
    ray1 = _normalized(pose1.rotation.T @ intrinsic1(x1))
    ray2 = _normalized(pose2.rotation.T @ intrinsic2(x2))
    return angle_between_rays(ray1, ray2)


def _normalized(v: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(v)
    if norm == 0.0:
        return v
    return v / norm
