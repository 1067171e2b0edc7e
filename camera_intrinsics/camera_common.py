"""
camera_common.py

Shared enumerations for the camera intrinsic models.

:class:`EIntrinsic` tags every concrete camera variant; the integer value is
part of the hashing and serialization contract and must not change.

:class:`IntrinsicParameterType` is the bit-flag request an optimizer passes
to :meth:`~camera_intrinsics.intrinsics.IntrinsicBase.subset_parameterization`
to decide which parameter groups may vary.  ``NONE`` owns a dedicated bit so
that a ``NONE`` request freezes every parameter regardless of the other bits.
"""

from __future__ import annotations

import enum
import logging
from typing import List

logger = logging.getLogger(__name__)


class EIntrinsic(enum.IntEnum):
    """Tag of the camera intrinsic variants."""

    PINHOLE_CAMERA_START = 0
    PINHOLE_CAMERA = 1
    PINHOLE_CAMERA_RADIAL1 = 2
    PINHOLE_CAMERA_RADIAL3 = 3
    PINHOLE_CAMERA_BROWN = 4
    PINHOLE_CAMERA_FISHEYE = 5
    PINHOLE_CAMERA_END = 6


def is_pinhole(intrinsic_type: int) -> bool:
    """Return ``True`` if *intrinsic_type* is one of the pinhole variants."""
    return EIntrinsic.PINHOLE_CAMERA_START < intrinsic_type < EIntrinsic.PINHOLE_CAMERA_END


def is_valid(intrinsic_type: int) -> bool:
    """Return ``True`` if *intrinsic_type* names a concrete camera variant."""
    return is_pinhole(intrinsic_type)


class IntrinsicParameterType(enum.IntFlag):
    """Parameter groups an optimizer is allowed to refine."""

    NONE = 1
    ADJUST_FOCAL_LENGTH = 2
    ADJUST_PRINCIPAL_POINT = 4
    ADJUST_DISTORTION = 8
    ADJUST_ALL = ADJUST_FOCAL_LENGTH | ADJUST_PRINCIPAL_POINT | ADJUST_DISTORTION


_TOKENS = {
    "ADJUST_FOCAL_LENGTH": IntrinsicParameterType.ADJUST_FOCAL_LENGTH,
    "ADJUST_PRINCIPAL_POINT": IntrinsicParameterType.ADJUST_PRINCIPAL_POINT,
    "ADJUST_DISTORTION": IntrinsicParameterType.ADJUST_DISTORTION,
}


def string_to_intrinsic_parameter_type(text: str) -> IntrinsicParameterType:
    """Parse a ``|``-delimited token string into a parameter mask.

    Recognised tokens are ``NONE``, ``ADJUST_FOCAL_LENGTH``,
    ``ADJUST_PRINCIPAL_POINT``, ``ADJUST_DISTORTION`` and ``ADJUST_ALL``.

    A ``NONE`` token returns ``NONE`` straight away.  The first unknown token
    resets the mask to the empty value ``0`` and stops parsing, so callers
    must inspect the result.

    Args:
        text: Token string, e.g. ``"ADJUST_FOCAL_LENGTH|ADJUST_PRINCIPAL_POINT"``.

    Returns:
        The combined :class:`IntrinsicParameterType`.
    """
    mask = IntrinsicParameterType(0)
    for item in text.split("|"):
        if item == "NONE":
            return IntrinsicParameterType.NONE
        if item == "ADJUST_ALL":
            mask = IntrinsicParameterType.ADJUST_ALL
        elif item in _TOKENS:
            mask |= _TOKENS[item]
        else:
            logger.warning("Unknown intrinsic parameter key: %s", item)
            mask = IntrinsicParameterType(0)
            break
    return mask


def intrinsic_parameter_type_to_string(mask: int) -> str:
    """Format *mask* as the ``|``-delimited string accepted by
    :func:`string_to_intrinsic_parameter_type`.

    The empty mask formats as an empty string.
    """
    mask = IntrinsicParameterType(mask)
    if mask & IntrinsicParameterType.NONE:
        return "NONE"
    if mask & IntrinsicParameterType.ADJUST_ALL == IntrinsicParameterType.ADJUST_ALL:
        return "ADJUST_ALL"
    items: List[str] = [name for name, flag in _TOKENS.items() if mask & flag]
    return "|".join(items)
