"""
distortion.py

Lens distortion models acting on normalised camera coordinates
``(x, y) = (X / Z, Y / Z)``.

Every model provides a closed-form forward map :meth:`add` (ideal ->
distorted) and an inverse :meth:`remove` (distorted -> ideal).

Radial (K1 / K3)
    Even polynomial in the radius::

        p_d = p * (1 + k1*r² + k2*r⁴ + k3*r⁶)

    The inverse finds the ideal squared radius by bisection on the monotonic
    functor ``f(r²) = r² * (1 + k1*r² + k2*r⁴ + k3*r⁶)²``.

Fisheye (equidistant, Kannala-Brandt)
    Odd polynomial in the incidence angle ``θ = atan(r)``::

        θ_d = θ + k1*θ³ + k2*θ⁵ + k3*θ⁷ + k4*θ⁹

    The inverse runs exactly 10 fixed-point iterations of
    ``θ = θ_d / (1 + k1*θ² + k2*θ⁴ + k3*θ⁶ + k4*θ⁸)``.

Brown-Conrady (3 radial + 2 tangential)
    ``p_d = p + d(p)``; the inverse iterates ``p_u = p_d - d(p_u)``
    (Heikkila, 2000).
"""

from __future__ import annotations

import logging
import math
from dataclasses import astuple, dataclass
from typing import Callable, ClassVar, Sequence, Tuple

import numpy as np

from camera_intrinsics.root_finding import bisection_radius_solve, fixed_point_iterate

logger = logging.getLogger(__name__)

#: Radii below this threshold are treated as the optical axis.
EPSILON = 1e-8

#: Number of fixed-point iterations used by the fisheye inverse.
FISHEYE_UNDISTORT_ITERATIONS = 10


def _as_point(p: Sequence[float]) -> np.ndarray:
    return np.asarray(p, dtype=float).reshape(2)


# ---------------------------------------------------------------------------
# Radial functors
# ---------------------------------------------------------------------------


def radial_k1_functor(params: Sequence[float], r2: float) -> float:
    """Distorted squared radius of an ideal point with squared radius *r2*
    under the single-coefficient radial model."""
    k1 = params[0]
    scale = 1.0 + r2 * k1
    return r2 * scale * scale


def radial_k3_functor(params: Sequence[float], r2: float) -> float:
    """Distorted squared radius of an ideal point with squared radius *r2*
    under the three-coefficient radial model."""
    k1, k2, k3 = params[0], params[1], params[2]
    # Multiply rather than ``** 2``: float power raises on overflow.
    scale = 1.0 + r2 * (k1 + r2 * (k2 + r2 * k3))
    return r2 * scale * scale


# ---------------------------------------------------------------------------
# Distortion models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoDistortion:
    """Identity distortion of the ideal pinhole camera."""

    have_disto: ClassVar[bool] = False

    @property
    def params(self) -> Tuple[float, ...]:
        return ()

    def add(self, p: Sequence[float]) -> np.ndarray:
        return _as_point(p)

    def remove(self, p: Sequence[float]) -> np.ndarray:
        return _as_point(p)


@dataclass(frozen=True)
class _RadialDistortion:
    """Shared inverse of the radial models.

    Subclasses bind ``_functor`` to the squared-radius functor of their
    polynomial.
    """

    have_disto: ClassVar[bool] = True
    _functor: ClassVar[Callable[[Sequence[float], float], float]]

    @property
    def params(self) -> Tuple[float, ...]:
        return tuple(float(v) for v in astuple(self))

    def remove(self, p: Sequence[float]) -> np.ndarray:
        """Remove radial distortion using a bisection on the squared radius."""
        p = _as_point(p)
        r2 = float(p[0] * p[0] + p[1] * p[1])
        if r2 == 0.0:
            return p
        radius = math.sqrt(bisection_radius_solve(self.params, r2, self._functor) / r2)
        return p * radius


@dataclass(frozen=True)
class RadialK1Distortion(_RadialDistortion):
    """Radial distortion with one coefficient.

    Attributes:
        k1: Second-order radial coefficient.
    """

    k1: float = 0.0

    _functor = staticmethod(radial_k1_functor)

    def add(self, p: Sequence[float]) -> np.ndarray:
        p = _as_point(p)
        r2 = p[0] * p[0] + p[1] * p[1]
        return p * (1.0 + self.k1 * r2)


@dataclass(frozen=True)
class RadialK3Distortion(_RadialDistortion):
    """Radial distortion with three coefficients ``k1, k2, k3``."""

    k1: float = 0.0
    k2: float = 0.0
    k3: float = 0.0

    _functor = staticmethod(radial_k3_functor)

    def add(self, p: Sequence[float]) -> np.ndarray:
        p = _as_point(p)
        r2 = p[0] * p[0] + p[1] * p[1]
        r4 = r2 * r2
        r6 = r4 * r2
        return p * (1.0 + self.k1 * r2 + self.k2 * r4 + self.k3 * r6)


@dataclass(frozen=True)
class FisheyeDistortion:
    """Equidistant fisheye distortion with four coefficients ``k1..k4``."""

    k1: float = 0.0
    k2: float = 0.0
    k3: float = 0.0
    k4: float = 0.0

    have_disto: ClassVar[bool] = True

    @property
    def params(self) -> Tuple[float, ...]:
        return (float(self.k1), float(self.k2), float(self.k3), float(self.k4))

    def add(self, p: Sequence[float]) -> np.ndarray:
        p = _as_point(p)
        r = math.sqrt(p[0] * p[0] + p[1] * p[1])
        theta = math.atan(r)
        theta2 = theta * theta
        theta3 = theta2 * theta
        theta4 = theta2 * theta2
        theta5 = theta4 * theta
        theta6 = theta3 * theta3
        theta7 = theta6 * theta
        theta8 = theta4 * theta4
        theta9 = theta8 * theta
        theta_dist = (
            theta + self.k1 * theta3 + self.k2 * theta5 + self.k3 * theta7 + self.k4 * theta9
        )
        scale = theta_dist / r if r > EPSILON else 1.0
        return p * scale

    def remove(self, p: Sequence[float]) -> np.ndarray:
        p = _as_point(p)
        theta_dist = np.float64(math.sqrt(p[0] * p[0] + p[1] * p[1]))
        scale = 1.0
        if theta_dist > EPSILON:
            # A vanishing polynomial yields a non-finite angle, not an error.
            with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
                theta = fixed_point_iterate(
                    lambda t: theta_dist / self._theta_polynomial(t),
                    theta_dist,
                    FISHEYE_UNDISTORT_ITERATIONS,
                )
                scale = float(np.tan(theta) / theta_dist)
        return p * scale

    def _theta_polynomial(self, theta: float) -> float:
        theta2 = theta * theta
        theta4 = theta2 * theta2
        theta6 = theta4 * theta2
        theta8 = theta6 * theta2
        return 1.0 + self.k1 * theta2 + self.k2 * theta4 + self.k3 * theta6 + self.k4 * theta8


@dataclass(frozen=True)
class BrownT2Distortion:
    """Brown-Conrady distortion: radial ``k1, k2, k3`` and tangential ``t1, t2``.

    Attributes:
        k1: Second-order radial coefficient.
        k2: Fourth-order radial coefficient.
        k3: Sixth-order radial coefficient.
        t1: First tangential coefficient.
        t2: Second tangential coefficient.
    """

    k1: float = 0.0
    k2: float = 0.0
    k3: float = 0.0
    t1: float = 0.0
    t2: float = 0.0

    have_disto: ClassVar[bool] = True

    #: L1 distance below which the inverse iteration stops.
    tolerance: ClassVar[float] = 1e-10
    max_iterations: ClassVar[int] = 1000

    @property
    def params(self) -> Tuple[float, ...]:
        return tuple(float(v) for v in astuple(self))

    def offset(self, p: Sequence[float]) -> np.ndarray:
        """Distortion offset ``d(p)`` such that ``add(p) == p + d(p)``."""
        x, y = float(p[0]), float(p[1])
        r2 = x * x + y * y
        r4 = r2 * r2
        r6 = r4 * r2
        k_diff = self.k1 * r2 + self.k2 * r4 + self.k3 * r6
        t_x = self.t2 * (r2 + 2.0 * x * x) + 2.0 * self.t1 * x * y
        t_y = self.t1 * (r2 + 2.0 * y * y) + 2.0 * self.t2 * x * y
        return np.array([x * k_diff + t_x, y * k_diff + t_y], dtype=float)

    def add(self, p: Sequence[float]) -> np.ndarray:
        p = _as_point(p)
        return p + self.offset(p)

    def remove(self, p: Sequence[float]) -> np.ndarray:
        p = _as_point(p)
        p_u = p.copy()
        d = self.offset(p_u)
        for _ in range(self.max_iterations):
            if np.abs(p_u + d - p).sum() <= self.tolerance:
                break
            p_u = p - d
            d = self.offset(p_u)
        else:
            logger.debug("Brown undistortion did not converge for %s", p)
        return p_u
