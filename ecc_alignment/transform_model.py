"""
Transform models and feature-initialization methods for ECC alignment.

Each transform model fixes three things: the shape of its warp matrix, its
number of free parameters (NoP) and its default (identity) warp. These live
in a single dispatch table, ``TRANSFORM_TRAITS``, so every per-transform rule
is defined exactly once:

    ============  ===========  ===  ===========================
    transform     warp shape   NoP  default warp
    ============  ===========  ===  ===========================
    translation   2x1          2    [[0], [0]]
    euclidean     2x3          3    [[1, 0, 0], [0, 1, 0]]
    affine        2x3          6    [[1, 0, 0], [0, 1, 0]]
    homography    3x3          8    identity(3)
    ============  ===========  ===  ===========================

The OpenCV motion constants are included so the parameters can be handed
straight to ``cv2.findTransformECC``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

import cv2
import numpy as np

from ecc_alignment.exceptions import UnknownInitMethodError, UnknownTransformError
from ecc_alignment.types import ParameterCount


class TransformModel(Enum):
    """Geometric transform models supported by the ECC optimizer."""

    TRANSLATION = "translation"
    """Pure 2D shift (tx, ty)."""

    EUCLIDEAN = "euclidean"
    """Rotation plus translation."""

    AFFINE = "affine"
    """Full 2x3 affine transform (rotation, scale, shear, translation)."""

    HOMOGRAPHY = "homography"
    """Projective 3x3 transform, defined up to scale."""

    @classmethod
    def from_name(cls, name: str) -> TransformModel:
        """Parse a transform name case-insensitively.

        Args:
            name: Transform name, e.g. ``'Affine'``.

        Returns:
            Matching TransformModel.

        Raises:
            UnknownTransformError: If the name matches no supported model.
        """
        try:
            return cls(name.lower())
        except ValueError:
            valid = [t.value for t in cls]
            raise UnknownTransformError(
                f"Unknown transform '{name}'. Must be one of: {', '.join(valid)}"
            ) from None

    @property
    def traits(self) -> TransformTraits:
        return TRANSFORM_TRAITS[self]

    @property
    def warp_shape(self) -> tuple[int, int]:
        """Shape the initial warp matrix must have for this model."""
        return self.traits.warp_shape

    @property
    def nop(self) -> ParameterCount:
        """Number of free parameters of this model."""
        return self.traits.nop

    @property
    def motion_type(self) -> int:
        """OpenCV ``MOTION_*`` constant for this model."""
        return self.traits.motion_type

    def default_warp(self) -> np.ndarray:
        """Return a fresh copy of the default initial warp for this model."""
        return self.traits.default_warp()


class InitMethod(Enum):
    """Estimator used to seed the warp from point correspondences."""

    LS = "LS"
    """Plain least squares over all correspondences."""

    RANSAC = "RANSAC"
    """RANSAC-based robust estimation."""

    @classmethod
    def from_name(cls, name: str) -> InitMethod:
        """Parse an initialization method name case-insensitively.

        Raises:
            UnknownInitMethodError: If the name is neither LS nor RANSAC.
        """
        try:
            return cls(name.upper())
        except ValueError:
            valid = [m.value for m in cls]
            raise UnknownInitMethodError(
                f"Unknown init_method '{name}'. Must be one of: {', '.join(valid)}"
            ) from None

    @property
    def homography_method(self) -> int:
        """Method flag accepted by ``cv2.findHomography``."""
        return 0 if self is InitMethod.LS else cv2.RANSAC


@dataclass(frozen=True)
class TransformTraits:
    """Per-model constants.

    Attributes:
        warp_shape: Required (rows, cols) of the warp matrix.
        nop: Number of free parameters.
        motion_type: OpenCV motion model constant.
        default_warp: Factory returning the default warp matrix.
    """

    warp_shape: tuple[int, int]
    nop: ParameterCount
    motion_type: int
    default_warp: Callable[[], np.ndarray]


def _identity_2x3() -> np.ndarray:
    return np.eye(2, 3, dtype=np.float64)


TRANSFORM_TRAITS: dict[TransformModel, TransformTraits] = {
    TransformModel.TRANSLATION: TransformTraits(
        warp_shape=(2, 1),
        nop=ParameterCount(2),
        motion_type=cv2.MOTION_TRANSLATION,
        default_warp=lambda: np.zeros((2, 1), dtype=np.float64),
    ),
    TransformModel.EUCLIDEAN: TransformTraits(
        warp_shape=(2, 3),
        nop=ParameterCount(3),
        motion_type=cv2.MOTION_EUCLIDEAN,
        default_warp=_identity_2x3,
    ),
    TransformModel.AFFINE: TransformTraits(
        warp_shape=(2, 3),
        nop=ParameterCount(6),
        motion_type=cv2.MOTION_AFFINE,
        default_warp=_identity_2x3,
    ),
    TransformModel.HOMOGRAPHY: TransformTraits(
        warp_shape=(3, 3),
        nop=ParameterCount(8),
        motion_type=cv2.MOTION_HOMOGRAPHY,
        default_warp=lambda: np.eye(3, dtype=np.float64),
    ),
}
