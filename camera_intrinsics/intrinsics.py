"""
intrinsics.py

Calibrated camera intrinsic models.

Every model couples the image size, a calibration matrix with a single focal
length::

    K = [[f, 0, ppx],
         [0, f, ppy],
         [0, 0,   1]]

and a lens distortion model from :mod:`camera_intrinsics.distortion`.  A 3-D
point *X* is projected to a pixel via::

    x = cam2ima(add_disto(hnormalize(pose(X))))

where ``cam2ima(p) = f * p + pp``.

Non-linear optimizers see a model through its parameter vector::

    [f, ppx, ppy, <distortion coefficients>]

read with :meth:`IntrinsicBase.get_params`, written back with
:meth:`IntrinsicBase.update_from_params`, and partially frozen with
:meth:`IntrinsicBase.subset_parameterization`.
"""

from __future__ import annotations

import abc
import logging
from typing import Dict, Hashable, List, Mapping, Sequence, Type

import numpy as np

from camera_intrinsics.camera_common import EIntrinsic, IntrinsicParameterType
from camera_intrinsics.distortion import (
    BrownT2Distortion,
    FisheyeDistortion,
    NoDistortion,
    RadialK1Distortion,
    RadialK3Distortion,
)
from camera_intrinsics.pinhole_camera import p_from_krt

logger = logging.getLogger(__name__)

_HASH_MASK = (1 << 64) - 1
_HASH_GOLDEN = 0x9E3779B97F4A7C15


def hash_combine(seed: int, value: int) -> int:
    """Mix the integer *value* into *seed* (order-sensitive, 64-bit)."""
    return (seed ^ ((value + _HASH_GOLDEN + (seed << 6) + (seed >> 2)) & _HASH_MASK)) & _HASH_MASK


def _float_bits(value: float) -> int:
    """IEEE-754 bit pattern of *value*; ``-0.0`` maps onto ``0.0``."""
    return int(np.float64(float(value) + 0.0).view(np.int64))


# ---------------------------------------------------------------------------
# Abstract contract
# ---------------------------------------------------------------------------


class IntrinsicBase(abc.ABC):
    """Common contract of every camera intrinsic model.

    Args:
        w: Image width in pixels.
        h: Image height in pixels.
    """

    def __init__(self, w: int, h: int) -> None:
        if int(w) <= 0 or int(h) <= 0:
            raise ValueError(f"Image size must be positive, got {w}x{h}.")
        self._w = int(w)
        self._h = int(h)

    @property
    def w(self) -> int:
        """Image width in pixels."""
        return self._w

    @property
    def h(self) -> int:
        """Image height in pixels."""
        return self._h

    @abc.abstractmethod
    def get_type(self) -> EIntrinsic:
        ...

    @abc.abstractmethod
    def cam2ima(self, p: Sequence[float]) -> np.ndarray:
        """Normalised camera plane -> image plane."""

    @abc.abstractmethod
    def ima2cam(self, p: Sequence[float]) -> np.ndarray:
        """Image plane -> normalised camera plane."""

    @abc.abstractmethod
    def have_disto(self) -> bool:
        ...

    @abc.abstractmethod
    def add_disto(self, p: Sequence[float]) -> np.ndarray:
        ...

    @abc.abstractmethod
    def remove_disto(self, p: Sequence[float]) -> np.ndarray:
        ...

    @abc.abstractmethod
    def get_d_pixel(self, p: Sequence[float]) -> np.ndarray:
        ...

    @abc.abstractmethod
    def get_ud_pixel(self, p: Sequence[float]) -> np.ndarray:
        ...

    @abc.abstractmethod
    def get_params(self) -> List[float]:
        ...

    @abc.abstractmethod
    def update_from_params(self, params: Sequence[float]) -> bool:
        ...

    @abc.abstractmethod
    def subset_parameterization(self, parametrization: int) -> List[int]:
        ...

    @abc.abstractmethod
    def clone(self) -> "IntrinsicBase":
        ...

    @abc.abstractmethod
    def __call__(self, p: Sequence[float]) -> np.ndarray:
        """Unit bearing vector of pixel *p*."""

    @abc.abstractmethod
    def image_plane_to_camera_plane_error(self, value: float) -> float:
        ...

    @abc.abstractmethod
    def get_projective_equivalent(self, pose) -> np.ndarray:
        ...

    def project(self, pose, point: Sequence[float]) -> np.ndarray:
        """Project a 3-D world point to a pixel.

        Points at zero depth produce non-finite coordinates; callers are
        expected to discard points behind or at the camera beforehand.

        Args:
            pose: Camera pose; calling it maps a world point to the camera
                frame.
            point: (3,) world point.

        Returns:
            (2,) pixel coordinates.
        """
        X = np.asarray(pose(point), dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            x = X[:2] / X[2]
        if self.have_disto():
            return self.cam2ima(self.add_disto(x))
        return self.cam2ima(x)

    def residual(self, pose, point: Sequence[float], x: Sequence[float]) -> np.ndarray:
        """Return ``x - project(pose, point)``."""
        return np.asarray(x, dtype=float) - self.project(pose, point)

    def hash_value(self) -> int:
        """Deterministic hash of the variant, image size and parameters.

        Models sharing the same calibration hash identically, which is used
        to group views with shared intrinsics.
        """
        seed = 0
        seed = hash_combine(seed, int(self.get_type()))
        seed = hash_combine(seed, self._w)
        seed = hash_combine(seed, self._h)
        for param in self.get_params():
            seed = hash_combine(seed, _float_bits(param))
        return seed

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IntrinsicBase):
            return NotImplemented
        return (
            self.get_type() == other.get_type()
            and self._w == other._w
            and self._h == other._h
            and self.get_params() == other.get_params()
        )

    __hash__ = None  # mutable through update_from_params; use hash_value()


# ---------------------------------------------------------------------------
# Pinhole models
# ---------------------------------------------------------------------------


class PinholeIntrinsic(IntrinsicBase):
    """Ideal pinhole camera without distortion.

    Args:
        w: Image width in pixels.
        h: Image height in pixels.
        focal_length_pix: Focal length in pixels.
        ppx: Principal point x-coordinate (pixels).
        ppy: Principal point y-coordinate (pixels).
    """

    intrinsic_type = EIntrinsic.PINHOLE_CAMERA

    def __init__(
        self,
        w: int,
        h: int,
        focal_length_pix: float,
        ppx: float,
        ppy: float,
    ) -> None:
        super().__init__(w, h)
        if not np.isfinite(focal_length_pix) or focal_length_pix <= 0:
            raise ValueError(f"focal_length_pix must be positive, got {focal_length_pix}.")
        self._K = np.array(
            [[focal_length_pix, 0.0, ppx],
             [0.0, focal_length_pix, ppy],
             [0.0, 0.0, 1.0]],
            dtype=float,
        )
        self._Kinv = np.linalg.inv(self._K)
        self._distortion = NoDistortion()

    @classmethod
    def from_matrix(cls, w: int, h: int, K: np.ndarray, *distortion_params: float):
        """Build a model from a 3×3 calibration matrix.

        The two diagonal scale terms are averaged into a single focal length.
        Distortion coefficients of the variant may follow *K*.
        """
        K = np.asarray(K, dtype=float)
        if K.shape != (3, 3):
            raise ValueError(f"K must be 3×3, got {K.shape}.")
        focal = (K[0, 0] + K[1, 1]) / 2.0
        return cls(w, h, focal, K[0, 2], K[1, 2], *distortion_params)

    # ------------------------------------------------------------------
    # Calibration accessors
    # ------------------------------------------------------------------

    def get_type(self) -> EIntrinsic:
        return self.intrinsic_type

    @property
    def K(self) -> np.ndarray:
        """The 3×3 calibration matrix."""
        return self._K

    @property
    def Kinv(self) -> np.ndarray:
        """Inverse of the calibration matrix."""
        return self._Kinv

    @property
    def focal(self) -> float:
        """Focal length in pixels."""
        return float(self._K[0, 0])

    @property
    def principal_point(self) -> np.ndarray:
        return np.array([self._K[0, 2], self._K[1, 2]], dtype=float)

    @property
    def distortion(self):
        """The distortion model applied in normalised camera coordinates."""
        return self._distortion

    def is_valid(self) -> bool:
        return self.focal > 0 and self._w > 0 and self._h > 0

    # ------------------------------------------------------------------
    # Coordinate mappings
    # ------------------------------------------------------------------

    def cam2ima(self, p: Sequence[float]) -> np.ndarray:
        return self.focal * np.asarray(p, dtype=float) + self.principal_point

    def ima2cam(self, p: Sequence[float]) -> np.ndarray:
        return (np.asarray(p, dtype=float) - self.principal_point) / self.focal

    def have_disto(self) -> bool:
        return self._distortion.have_disto

    def add_disto(self, p: Sequence[float]) -> np.ndarray:
        """Apply distortion to a point in normalised camera coordinates."""
        return self._distortion.add(p)

    def remove_disto(self, p: Sequence[float]) -> np.ndarray:
        """Remove distortion from a point in normalised camera coordinates."""
        return self._distortion.remove(p)

    def get_d_pixel(self, p: Sequence[float]) -> np.ndarray:
        """Return the distorted pixel corresponding to the ideal pixel *p*."""
        if not self.have_disto():
            return np.asarray(p, dtype=float)
        return self.cam2ima(self.add_disto(self.ima2cam(p)))

    def get_ud_pixel(self, p: Sequence[float]) -> np.ndarray:
        """Return the ideal pixel corresponding to the distorted pixel *p*."""
        if not self.have_disto():
            return np.asarray(p, dtype=float)
        return self.cam2ima(self.remove_disto(self.ima2cam(p)))

    def __call__(self, p: Sequence[float]) -> np.ndarray:
        x = self.remove_disto(self.ima2cam(p))
        ray = np.array([x[0], x[1], 1.0], dtype=float)
        return ray / np.linalg.norm(ray)

    def image_plane_to_camera_plane_error(self, value: float) -> float:
        """Convert an error in pixels to the normalised camera plane."""
        return value / self.focal

    def get_projective_equivalent(self, pose) -> np.ndarray:
        """Return the 3×4 projection matrix ``K [R | t]`` for *pose*.

        Distortion is ignored.
        """
        return p_from_krt(self._K, pose.rotation, pose.translation)

    # ------------------------------------------------------------------
    # Optimizer interface
    # ------------------------------------------------------------------

    def get_params(self) -> List[float]:
        """Return ``[f, ppx, ppy, <distortion coefficients>]``."""
        return [
            float(self._K[0, 0]),
            float(self._K[0, 2]),
            float(self._K[1, 2]),
            *self._distortion.params,
        ]

    @property
    def n_params(self) -> int:
        return 3 + len(self._distortion.params)

    def update_from_params(self, params: Sequence[float]) -> bool:
        """Replace the calibration with the values in *params*.

        The model is rebuilt through its constructor and swapped in as a
        whole.  Nothing is modified when *params* has the wrong length or
        holds values the constructor rejects.

        Returns:
            ``True`` on success, ``False`` otherwise.
        """
        params = list(params)
        if len(params) != self.n_params:
            logger.debug(
                "%s expects %d parameters, got %d",
                type(self).__name__, self.n_params, len(params),
            )
            return False
        try:
            updated = type(self)(self._w, self._h, *params)
        except ValueError as exc:
            logger.debug("Rejected parameter update for %s: %s", type(self).__name__, exc)
            return False
        vars(self).update(vars(updated))
        return True

    def subset_parameterization(self, parametrization: int) -> List[int]:
        """Return the parameter indices an optimizer must hold constant.

        Args:
            parametrization: :class:`IntrinsicParameterType` mask.  A mask
                containing ``NONE`` freezes every parameter.

        Returns:
            Sorted list of constant indices into :meth:`get_params`.
        """
        param = int(parametrization)
        frozen = bool(param & IntrinsicParameterType.NONE)
        constant_index: List[int] = []
        if not param & IntrinsicParameterType.ADJUST_FOCAL_LENGTH or frozen:
            constant_index.append(0)
        if not param & IntrinsicParameterType.ADJUST_PRINCIPAL_POINT or frozen:
            constant_index.extend([1, 2])
        if not param & IntrinsicParameterType.ADJUST_DISTORTION or frozen:
            constant_index.extend(range(3, self.n_params))
        return constant_index

    def clone(self) -> "PinholeIntrinsic":
        """Return an independent copy of this model."""
        return type(self)(self._w, self._h, *self.get_params())

    def __repr__(self) -> str:
        params = ", ".join(f"{v:g}" for v in self.get_params())
        return f"{type(self).__name__}(w={self._w}, h={self._h}, params=[{params}])"


class PinholeIntrinsicRadialK1(PinholeIntrinsic):
    """Pinhole camera with one radial distortion coefficient.

    Parameter vector: ``[f, ppx, ppy, k1]``.
    """

    intrinsic_type = EIntrinsic.PINHOLE_CAMERA_RADIAL1

    def __init__(
        self,
        w: int,
        h: int,
        focal_length_pix: float,
        ppx: float,
        ppy: float,
        k1: float = 0.0,
    ) -> None:
        super().__init__(w, h, focal_length_pix, ppx, ppy)
        self._distortion = RadialK1Distortion(float(k1))


class PinholeIntrinsicRadialK3(PinholeIntrinsic):
    """Pinhole camera with three radial distortion coefficients.

    Parameter vector: ``[f, ppx, ppy, k1, k2, k3]``.
    """

    intrinsic_type = EIntrinsic.PINHOLE_CAMERA_RADIAL3

    def __init__(
        self,
        w: int,
        h: int,
        focal_length_pix: float,
        ppx: float,
        ppy: float,
        k1: float = 0.0,
        k2: float = 0.0,
        k3: float = 0.0,
    ) -> None:
        super().__init__(w, h, focal_length_pix, ppx, ppy)
        self._distortion = RadialK3Distortion(float(k1), float(k2), float(k3))


class PinholeIntrinsicBrownT2(PinholeIntrinsic):
    """Pinhole camera with Brown-Conrady distortion.

    Parameter vector: ``[f, ppx, ppy, k1, k2, k3, t1, t2]``.
    """

    intrinsic_type = EIntrinsic.PINHOLE_CAMERA_BROWN

    def __init__(
        self,
        w: int,
        h: int,
        focal_length_pix: float,
        ppx: float,
        ppy: float,
        k1: float = 0.0,
        k2: float = 0.0,
        k3: float = 0.0,
        t1: float = 0.0,
        t2: float = 0.0,
    ) -> None:
        super().__init__(w, h, focal_length_pix, ppx, ppy)
        self._distortion = BrownT2Distortion(
            float(k1), float(k2), float(k3), float(t1), float(t2)
        )


class PinholeIntrinsicFisheye(PinholeIntrinsic):
    """Pinhole camera with equidistant fisheye distortion.

    Parameter vector: ``[f, ppx, ppy, k1, k2, k3, k4]``.
    """

    intrinsic_type = EIntrinsic.PINHOLE_CAMERA_FISHEYE

    def __init__(
        self,
        w: int,
        h: int,
        focal_length_pix: float,
        ppx: float,
        ppy: float,
        k1: float = 0.0,
        k2: float = 0.0,
        k3: float = 0.0,
        k4: float = 0.0,
    ) -> None:
        super().__init__(w, h, focal_length_pix, ppx, ppy)
        self._distortion = FisheyeDistortion(float(k1), float(k2), float(k3), float(k4))


# ---------------------------------------------------------------------------
# Factory and grouping helpers
# ---------------------------------------------------------------------------


INTRINSIC_CLASSES: Dict[EIntrinsic, Type[PinholeIntrinsic]] = {
    EIntrinsic.PINHOLE_CAMERA: PinholeIntrinsic,
    EIntrinsic.PINHOLE_CAMERA_RADIAL1: PinholeIntrinsicRadialK1,
    EIntrinsic.PINHOLE_CAMERA_RADIAL3: PinholeIntrinsicRadialK3,
    EIntrinsic.PINHOLE_CAMERA_BROWN: PinholeIntrinsicBrownT2,
    EIntrinsic.PINHOLE_CAMERA_FISHEYE: PinholeIntrinsicFisheye,
}


def create_intrinsic(
    intrinsic_type: int,
    w: int,
    h: int,
    params: Sequence[float],
) -> PinholeIntrinsic:
    """Build an intrinsic model from its variant tag and parameter vector.

    Args:
        intrinsic_type: :class:`EIntrinsic` tag.
        w: Image width in pixels.
        h: Image height in pixels.
        params: ``[f, ppx, ppy, <distortion coefficients>]``.

    Returns:
        The constructed model.

    Raises:
        ValueError: If the tag is unknown or *params* does not match the
            variant's parameter count.
    """
    try:
        cls = INTRINSIC_CLASSES[EIntrinsic(intrinsic_type)]
    except (ValueError, KeyError):
        raise ValueError(f"Unknown intrinsic type {intrinsic_type!r}.") from None
    params = [float(v) for v in params]
    if len(params) < 3:
        raise ValueError(f"{cls.__name__} expects focal and principal point, got {params}.")
    model = cls(w, h, *params[:3])
    if not model.update_from_params(params):
        raise ValueError(
            f"{cls.__name__} expects {model.n_params} parameters, got {len(params)}."
        )
    return model


def group_intrinsics(intrinsics: Mapping[Hashable, IntrinsicBase]) -> Dict[int, List[Hashable]]:
    """Group intrinsic ids by :meth:`IntrinsicBase.hash_value`.

    Args:
        intrinsics: Mapping of intrinsic id to model.

    Returns:
        Mapping of hash value to the ids sharing that calibration, in the
        iteration order of *intrinsics*.
    """
    groups: Dict[int, List[Hashable]] = {}
    for key, intrinsic in intrinsics.items():
        groups.setdefault(intrinsic.hash_value(), []).append(key)
    return groups
