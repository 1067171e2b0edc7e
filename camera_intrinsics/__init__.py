"""
camera_intrinsics: calibrated camera intrinsic models, lens distortion and
the parameter-vector interface used by non-linear optimizers.
"""

from camera_intrinsics.camera_common import (
    EIntrinsic,
    IntrinsicParameterType,
    intrinsic_parameter_type_to_string,
    is_pinhole,
    is_valid,
    string_to_intrinsic_parameter_type,
)
from camera_intrinsics.intrinsics import (
    IntrinsicBase,
    PinholeIntrinsic,
    PinholeIntrinsicBrownT2,
    PinholeIntrinsicFisheye,
    PinholeIntrinsicRadialK1,
    PinholeIntrinsicRadialK3,
    create_intrinsic,
    group_intrinsics,
)
from camera_intrinsics.intrinsics_io import IntrinsicsConfig, intrinsic_from_dict, intrinsic_to_dict
from camera_intrinsics.pinhole_camera import PinholeCamera
from camera_intrinsics.pose import Pose3
from camera_intrinsics.ray_geometry import angle_between_ray
from camera_intrinsics import distortion
from camera_intrinsics import root_finding

__all__ = [
    "EIntrinsic",
    "IntrinsicParameterType",
    "intrinsic_parameter_type_to_string",
    "is_pinhole",
    "is_valid",
    "string_to_intrinsic_parameter_type",
    "IntrinsicBase",
    "PinholeIntrinsic",
    "PinholeIntrinsicBrownT2",
    "PinholeIntrinsicFisheye",
    "PinholeIntrinsicRadialK1",
    "PinholeIntrinsicRadialK3",
    "create_intrinsic",
    "group_intrinsics",
    "IntrinsicsConfig",
    "intrinsic_from_dict",
    "intrinsic_to_dict",
    "PinholeCamera",
    "Pose3",
    "angle_between_ray",
    "distortion",
    "root_finding",
]
