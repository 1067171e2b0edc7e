"""
intrinsics_io.py

YAML persistence of intrinsic models.

Each model is stored as its variant tag, image size and parameter vector::

    intrinsics:
      0:
        type: PINHOLE_CAMERA_RADIAL3
        width: 1920
        height: 1080
        params: [1000.0, 960.0, 540.0, -0.1, 0.01, 0.0]
    refine: ADJUST_FOCAL_LENGTH|ADJUST_DISTORTION

Models are always rebuilt through their constructor so that loaded values go
through the same checks as freshly created ones.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Hashable, Iterator, List, Optional

import yaml

from camera_intrinsics.camera_common import (
    EIntrinsic,
    IntrinsicParameterType,
    intrinsic_parameter_type_to_string,
    is_valid,
    string_to_intrinsic_parameter_type,
)
from camera_intrinsics.intrinsics import PinholeIntrinsic, create_intrinsic, group_intrinsics


# ---------------------------------------------------------------------------
# Single model
# ---------------------------------------------------------------------------


def intrinsic_to_dict(intrinsic: PinholeIntrinsic) -> dict:
    return {
        "type": intrinsic.get_type().name,
        "width": int(intrinsic.w),
        "height": int(intrinsic.h),
        "params": [float(v) for v in intrinsic.get_params()],
    }


def intrinsic_from_dict(data: dict) -> PinholeIntrinsic:
    """Rebuild an intrinsic model from :func:`intrinsic_to_dict` output.

    The ``type`` entry may be the variant name or its integer tag.

    Raises:
        ValueError: On an unknown type or a parameter vector of the wrong
            length.
    """
    raw_type = data["type"]
    if isinstance(raw_type, str):
        if raw_type not in EIntrinsic.__members__:
            raise ValueError(f"Unknown intrinsic type {raw_type!r}.")
        intrinsic_type = EIntrinsic[raw_type]
    else:
        intrinsic_type = int(raw_type)
    if not is_valid(intrinsic_type):
        raise ValueError(f"Unknown intrinsic type {raw_type!r}.")
    return create_intrinsic(
        intrinsic_type,
        int(data["width"]),
        int(data["height"]),
        [float(v) for v in data.get("params", [])],
    )


# ---------------------------------------------------------------------------
# IntrinsicsConfig
# ---------------------------------------------------------------------------


class IntrinsicsConfig:
    """A collection of intrinsic models keyed by id, with the parameter mask
    used when refining them.

    Example::

        config = IntrinsicsConfig.from_yaml("intrinsics.yaml")
        for intrinsic_id, intrinsic in config.items():
            constant = intrinsic.subset_parameterization(config.refine)
    """

    def __init__(
        self,
        intrinsics: Optional[Dict[Hashable, PinholeIntrinsic]] = None,
        refine: IntrinsicParameterType = IntrinsicParameterType.ADJUST_ALL,
    ) -> None:
        self._intrinsics: Dict[Hashable, PinholeIntrinsic] = dict(intrinsics or {})
        self.refine = IntrinsicParameterType(refine)

    # ------------------------------------------------------------------
    # Collection management
    # ------------------------------------------------------------------

    def add_intrinsic(self, intrinsic_id: Hashable, intrinsic: PinholeIntrinsic) -> None:
        """Add or replace an intrinsic model."""
        self._intrinsics[intrinsic_id] = intrinsic

    def remove_intrinsic(self, intrinsic_id: Hashable) -> None:
        del self._intrinsics[intrinsic_id]

    def get_intrinsic(self, intrinsic_id: Hashable) -> PinholeIntrinsic:
        if intrinsic_id not in self._intrinsics:
            raise KeyError(f"Intrinsic '{intrinsic_id}' not found. "
                           f"Available: {list(self._intrinsics)}")
        return self._intrinsics[intrinsic_id]

    @property
    def ids(self) -> List[Hashable]:
        return list(self._intrinsics)

    def items(self) -> Iterator:
        return iter(self._intrinsics.items())

    def shared_groups(self) -> List[List[Hashable]]:
        """Return the lists of ids whose models share the same calibration."""
        return list(group_intrinsics(self._intrinsics).values())

    def __len__(self) -> int:
        return len(self._intrinsics)

    def __contains__(self, intrinsic_id: Hashable) -> bool:
        return intrinsic_id in self._intrinsics

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "intrinsics": {
                key: intrinsic_to_dict(intrinsic) for key, intrinsic in self._intrinsics.items()
            },
            "refine": intrinsic_parameter_type_to_string(self.refine),
        }

    def to_yaml(self, path: str | os.PathLike) -> None:
        """Write the collection to a YAML file."""
        Path(path).write_text(yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False))

    @classmethod
    def from_dict(cls, data: dict) -> "IntrinsicsConfig":
        intrinsics = {
            key: intrinsic_from_dict(idata)
            for key, idata in (data.get("intrinsics") or {}).items()
        }
        refine = data.get("refine")
        if refine is None:
            return cls(intrinsics)
        return cls(intrinsics, string_to_intrinsic_parameter_type(str(refine)))

    @classmethod
    def from_yaml(cls, path: str | os.PathLike) -> "IntrinsicsConfig":
        """Load an IntrinsicsConfig from a YAML file."""
        raw = yaml.safe_load(Path(path).read_text())
        return cls.from_dict(raw or {})
