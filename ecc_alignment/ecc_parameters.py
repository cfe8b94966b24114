"""Immutable parameter records for a multi-level ECC alignment run.

This module builds and validates everything the ECC optimizer needs before
it starts: pyramid levels, iteration budget, transform model, the initial
warp matrix (caller-supplied or defaulted), and optional point
correspondences for a feature-based warm start.

Two entry points are provided:

    - ``ecc_params(levels, iterations, transform, manual_init, feature_init, *extra)``
      consumes the flag-dependent positional tail: one warp matrix when
      ``manual_init`` is set, then image points, template points and the
      init method when ``feature_init`` is set.
    - ``EccParameters.create(...)`` takes the same data as keyword arguments.

Both return a frozen ``EccParameters``. Numpy arrays are stored as bytes for
hashability and are handed back as read-only arrays.

Example:
    >>> params = ecc_params(4, 30, "affine", False, False)
    >>> params.nop
    6
    >>> params.init_warp
    array([[1., 0., 0.],
           [0., 1., 0.]])
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Any, ClassVar, Sequence

import numpy as np

from ecc_alignment.exceptions import (
    ArityError,
    ParameterTypeError,
    ParameterValueError,
    ShapeError,
    format_shape,
)
from ecc_alignment.transform_model import InitMethod, TransformModel
from ecc_alignment.types import Iterations, ParameterCount, PyramidLevels

logger = logging.getLogger(__name__)

# levels, iterations, transform, manual_init, feature_init
LEADING_ARG_COUNT = 5


def _validate_matrix_shape(matrix: np.ndarray, expected_shape: tuple[int, ...], name: str) -> None:
    """Validate that a matrix has the expected shape.

    Args:
        matrix: The numpy array to validate.
        expected_shape: Expected shape tuple.
        name: Name of the matrix for error messages.

    Raises:
        ShapeError: If shape does not match.
    """
    if matrix.shape != expected_shape:
        raise ShapeError(name, expected_shape, matrix.shape)


def _validate_finite(matrix: np.ndarray, name: str) -> None:
    """Validate that all elements in a matrix are finite.

    Raises:
        ParameterValueError: If any element is NaN or Infinity.
    """
    if not np.all(np.isfinite(matrix)):
        raise ParameterValueError(f"{name} contains NaN or Infinity values")


def _validate_point_set(points: np.ndarray, name: str) -> None:
    """Point sets are 2xM: x coordinates in row 0, y in row 1."""
    if points.ndim != 2 or points.shape[0] != 2:
        raise ShapeError(name, (2, None), points.shape)


def _is_ragged(value: Any) -> bool:
    """True if ``value`` is a nested sequence whose rows differ in length."""
    try:
        np.array(value, dtype=np.float64)
    except ValueError as e:
        message = str(e)
        return "inhomogeneous" in message or "sequence" in message
    except TypeError:
        return False
    return False


def _as_matrix(value: Any, name: str, expected_shape: tuple[int | None, ...]) -> np.ndarray:
    """Convert a nested sequence or array to a float64 matrix.

    Raises:
        ShapeError: If the nested sequence is ragged (rows of unequal length).
        ParameterTypeError: If the value is a string or is not numeric.
    """
    if isinstance(value, (str, bytes)):
        raise ParameterTypeError(f"{name} must be a numeric matrix, got a string")
    try:
        return np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        if _is_ragged(value):
            actual = np.array(value, dtype=object).shape
            raise ShapeError(
                name,
                expected_shape,
                actual,
                detail=(
                    f"{name} must be {format_shape(expected_shape)}, "
                    f"got rows of unequal length"
                ),
            ) from e
        raise ParameterTypeError(f"{name} must be a numeric matrix: {e}") from e


def _scalar_item(value: Any, name: str) -> Any:
    """Return the single Python number held by ``value``.

    Accepts Python numbers, numpy scalars and size-1 arrays.

    Raises:
        ParameterTypeError: If value is a string, a sequence, a larger array,
            or anything non-numeric.
    """
    if isinstance(value, (str, bytes)):
        raise ParameterTypeError(f"{name} must be a numeric scalar, got a string")
    if isinstance(value, np.ndarray):
        if value.size != 1:
            raise ParameterTypeError(
                f"{name} must be a numeric scalar, got an array of shape {format_shape(value.shape)}"
            )
        value = value.item()
    elif isinstance(value, np.generic):
        value = value.item()
    if not isinstance(value, numbers.Number):
        raise ParameterTypeError(
            f"{name} must be a numeric scalar, got {type(value).__name__}"
        )
    return value


def _coerce_count(value: Any, name: str) -> int:
    """Validate a level/iteration count and return it as int."""
    item = _scalar_item(value, name)
    if isinstance(item, bool) or not isinstance(item, numbers.Real):
        raise ParameterTypeError(f"{name} must be a real number, got {type(item).__name__}")
    if not math.isfinite(item) or item != int(item):
        raise ParameterValueError(f"{name} must be a whole number, got {item}")
    if item < 1:
        raise ParameterValueError(f"{name} must be at least 1, got {item}")
    return int(item)


def _coerce_flag(value: Any, name: str) -> bool:
    item = _scalar_item(value, name)
    if isinstance(item, float) and math.isnan(item):
        raise ParameterValueError(f"{name} cannot be converted to a boolean: NaN")
    return bool(item)


def _parse_transform(transform: Any) -> TransformModel:
    if isinstance(transform, TransformModel):
        return transform
    if not isinstance(transform, str):
        raise ParameterTypeError(
            f"transform must be a string, got {type(transform).__name__}"
        )
    return TransformModel.from_name(transform)


def _validate_count_field(value: Any, name: str) -> None:
    """Stored levels/iterations must already be plain ints >= 1."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParameterTypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 1:
        raise ParameterValueError(f"{name} must be at least 1, got {value}")


def _validate_buffer(data: Any, element_count: int, name: str) -> None:
    """Stored array bytes must hold exactly ``element_count`` float64 values."""
    if not isinstance(data, bytes):
        raise ParameterTypeError(f"{name} data must be bytes, got {type(data).__name__}")
    expected = element_count * np.dtype(np.float64).itemsize
    if len(data) != expected:
        raise ParameterValueError(
            f"{name} data must be {expected} bytes for {element_count} values, got {len(data)}"
        )


def _read_only(data: bytes, shape: tuple[int, ...]) -> np.ndarray:
    if not data:
        arr = np.empty(shape, dtype=np.float64)
    else:
        arr = np.frombuffer(data, dtype=np.float64).reshape(shape)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True)
class ManualWarpInit:
    """Caller-supplied initial warp, validated against its transform.

    Attributes:
        transform: Transform model the warp belongs to.
        normalized: True if the homography bottom-right entry was rewritten to 1.
        notice: Human-readable description of the rewrite, if any.
    """

    ARG_COUNT: ClassVar[int] = 1

    transform: TransformModel
    _warp_data: bytes = field(repr=False)
    normalized: bool = False
    notice: str | None = None

    def __post_init__(self) -> None:
        """Validate the transform and the stored warp size."""
        if not isinstance(self.transform, TransformModel):
            raise ParameterTypeError(
                f"transform must be a TransformModel, got {type(self.transform).__name__}"
            )
        rows, cols = self.transform.warp_shape
        _validate_buffer(self._warp_data, rows * cols, "init_warp")

    @property
    def warp(self) -> np.ndarray:
        """Validated warp matrix (read-only)."""
        return _read_only(self._warp_data, self.transform.warp_shape)

    @classmethod
    def create(cls, transform: TransformModel, warp: Any) -> ManualWarpInit:
        """Validate ``warp`` for ``transform``.

        A homography is only defined up to scale, so a bottom-right entry
        other than 1 is rewritten to 1 and reported as a notice rather than
        rejected.

        Raises:
            ShapeError: If the warp does not have the transform's shape.
            ParameterTypeError: If the warp is not numeric.
            ParameterValueError: If the warp contains NaN or Infinity.
        """
        W = _as_matrix(warp, "init_warp", transform.warp_shape)
        _validate_matrix_shape(W, transform.warp_shape, f"init_warp for '{transform.value}'")
        _validate_finite(W, "init_warp")

        notice = None
        if transform is TransformModel.HOMOGRAPHY and W[2, 2] != 1.0:
            notice = (
                f"init_warp[2, 2] for 'homography' must be 1; "
                f"got {W[2, 2]:g}, so it has been changed to 1"
            )
            logger.info(notice)
            W[2, 2] = 1.0

        return cls(
            transform=transform,
            _warp_data=W.tobytes(),
            normalized=notice is not None,
            notice=notice,
        )

    @classmethod
    def parse(cls, transform: TransformModel, args: Sequence[Any]) -> ManualWarpInit:
        """Build from the one positional argument reserved for the initial warp."""
        (warp,) = args
        return cls.create(transform, warp)


@dataclass(frozen=True)
class FeatureBasedInit:
    """Point correspondences used to seed the warp before ECC refinement.

    Attributes:
        point_count: Number of correspondences M (may be 0).
        init_method: Estimator used on the correspondences.
    """

    ARG_COUNT: ClassVar[int] = 3

    _image_points_data: bytes = field(repr=False)
    _template_points_data: bytes = field(repr=False)
    point_count: int
    init_method: InitMethod

    def __post_init__(self) -> None:
        """Validate the point count, stored point sizes and init method."""
        if isinstance(self.point_count, bool) or not isinstance(self.point_count, int):
            raise ParameterTypeError(
                f"point_count must be an int, got {type(self.point_count).__name__}"
            )
        if self.point_count < 0:
            raise ParameterValueError(f"point_count must be non-negative, got {self.point_count}")
        _validate_buffer(self._image_points_data, 2 * self.point_count, "image_points")
        _validate_buffer(self._template_points_data, 2 * self.point_count, "template_points")
        if not isinstance(self.init_method, InitMethod):
            raise ParameterTypeError(
                f"init_method must be an InitMethod, got {type(self.init_method).__name__}"
            )

    @property
    def image_points(self) -> np.ndarray:
        """2xM image points (read-only)."""
        return _read_only(self._image_points_data, (2, self.point_count))

    @property
    def template_points(self) -> np.ndarray:
        """2xM template points (read-only)."""
        return _read_only(self._template_points_data, (2, self.point_count))

    @classmethod
    def create(
        cls,
        image_points: Any,
        template_points: Any,
        init_method: InitMethod | str,
    ) -> FeatureBasedInit:
        """Validate a pair of point sets and the init method.

        Both point sets must be 2xM with the same M; ``init_method`` is
        matched case-insensitively against LS and RANSAC.

        Raises:
            ShapeError: If either set is not 2xM or the two sets differ in size.
            ParameterTypeError: If init_method is not a string.
            UnknownInitMethodError: If init_method is neither LS nor RANSAC.
        """
        image_pts = _as_matrix(image_points, "image_points", (2, None))
        template_pts = _as_matrix(template_points, "template_points", (2, None))

        _validate_point_set(image_pts, "image_points")
        _validate_point_set(template_pts, "template_points")

        if image_pts.shape != template_pts.shape:
            raise ShapeError(
                "template_points",
                image_pts.shape,
                template_pts.shape,
                detail=(
                    "image_points and template_points must have the same size, got "
                    f"{format_shape(image_pts.shape)} and {format_shape(template_pts.shape)}"
                ),
            )

        _validate_finite(image_pts, "image_points")
        _validate_finite(template_pts, "template_points")

        if isinstance(init_method, InitMethod):
            method = init_method
        elif isinstance(init_method, str):
            method = InitMethod.from_name(init_method)
        else:
            raise ParameterTypeError(
                f"init_method must be a string, got {type(init_method).__name__}"
            )

        return cls(
            _image_points_data=image_pts.tobytes(),
            _template_points_data=template_pts.tobytes(),
            point_count=int(image_pts.shape[1]),
            init_method=method,
        )

    @classmethod
    def parse(cls, args: Sequence[Any]) -> FeatureBasedInit:
        """Build from the three positional arguments: image points, template points, method."""
        image_points, template_points, init_method = args
        return cls.create(image_points, template_points, init_method)


@dataclass(frozen=True)
class EccParameters:
    """Immutable configuration for one ECC alignment run.

    Absent extensions are ``None`` rather than empty arrays, so the optimizer
    can tell "no feature points" from "an empty set of feature points".

    Attributes:
        levels: Number of pyramid levels.
        iterations: Optimizer iterations per level.
        transform: Transform model being estimated.
        manual_init: Caller-supplied initial warp, or None to use the default.
        feature_init: Point correspondences for a warm start, or None.
    """

    levels: PyramidLevels
    iterations: Iterations
    transform: TransformModel
    manual_init: ManualWarpInit | None = None
    feature_init: FeatureBasedInit | None = None

    def __post_init__(self) -> None:
        """Validate all configuration fields."""
        _validate_count_field(self.levels, "levels")
        _validate_count_field(self.iterations, "iterations")

        if not isinstance(self.transform, TransformModel):
            raise ParameterTypeError(
                f"transform must be a TransformModel, got {type(self.transform).__name__}"
            )

        if self.manual_init is not None and not isinstance(self.manual_init, ManualWarpInit):
            raise ParameterTypeError(
                f"manual_init must be a ManualWarpInit or None, "
                f"got {type(self.manual_init).__name__}"
            )
        if self.feature_init is not None and not isinstance(self.feature_init, FeatureBasedInit):
            raise ParameterTypeError(
                f"feature_init must be a FeatureBasedInit or None, "
                f"got {type(self.feature_init).__name__}"
            )

        if self.manual_init is not None and self.manual_init.transform is not self.transform:
            raise ParameterValueError(
                f"init_warp was validated for '{self.manual_init.transform.value}' "
                f"but transform is '{self.transform.value}'"
            )

    @property
    def nop(self) -> ParameterCount:
        """Number of free parameters; depends on the transform only."""
        return self.transform.nop

    @property
    def init_warp(self) -> np.ndarray:
        """Initial warp: the supplied matrix, or the transform's default."""
        if self.manual_init is not None:
            return self.manual_init.warp
        arr = self.transform.default_warp()
        arr.flags.writeable = False
        return arr

    @property
    def image_points(self) -> np.ndarray | None:
        return None if self.feature_init is None else self.feature_init.image_points

    @property
    def template_points(self) -> np.ndarray | None:
        return None if self.feature_init is None else self.feature_init.template_points

    @property
    def init_method(self) -> InitMethod | None:
        return None if self.feature_init is None else self.feature_init.init_method

    @property
    def notices(self) -> tuple[str, ...]:
        """Non-fatal adjustments made while validating the inputs."""
        if self.manual_init is not None and self.manual_init.notice:
            return (self.manual_init.notice,)
        return ()

    @property
    def motion_type(self) -> int:
        """OpenCV motion model constant for ``cv2.findTransformECC``."""
        return self.transform.motion_type

    def warp_for_opencv(self) -> np.ndarray:
        """Return a writable float32 warp in the layout OpenCV's ECC expects.

        OpenCV has no 2x1 warp: a translation (tx, ty) becomes
        ``[[1, 0, tx], [0, 1, ty]]``.
        """
        warp = self.init_warp
        if self.transform is TransformModel.TRANSLATION:
            out = np.eye(2, 3, dtype=np.float32)
            out[:, 2] = warp[:, 0]
            return out
        return warp.astype(np.float32)

    @classmethod
    def create(
        cls,
        levels: Any,
        iterations: Any,
        transform: TransformModel | str,
        init_warp: Any = None,
        image_points: Any = None,
        template_points: Any = None,
        init_method: InitMethod | str | None = None,
    ) -> EccParameters:
        """Create EccParameters from keyword arguments.

        Args:
            levels: Number of pyramid levels (whole number >= 1).
            iterations: Iterations per level (whole number >= 1).
            transform: Transform model or its name (case-insensitive).
            init_warp: Optional initial warp; the transform default is used if None.
            image_points: Optional 2xM image points.
            template_points: Optional 2xM template points.
            init_method: 'LS' or 'RANSAC'; required with the point sets.

        Returns:
            New EccParameters instance.

        Raises:
            ArityError: If only some of the feature-init arguments are given.
            EccParamsError: If any input fails validation.
        """
        levels = _coerce_count(levels, "levels")
        iterations = _coerce_count(iterations, "iterations")
        model = _parse_transform(transform)

        manual_init = None
        if init_warp is not None:
            manual_init = ManualWarpInit.create(model, init_warp)

        feature_args = (image_points, template_points, init_method)
        feature_init = None
        if any(arg is not None for arg in feature_args):
            if any(arg is None for arg in feature_args):
                raise ArityError(
                    "image_points, template_points and init_method must be given together"
                )
            feature_init = FeatureBasedInit.create(*feature_args)

        return cls(
            levels=PyramidLevels(levels),
            iterations=Iterations(iterations),
            transform=model,
            manual_init=manual_init,
            feature_init=feature_init,
        )

    @classmethod
    def from_dict(cls, config: dict) -> EccParameters:
        """Create EccParameters from a plain dictionary.

        Args:
            config: Dictionary with keys:
                - 'levels', 'iterations', 'transform' (required)
                - 'init_warp': nested list (optional)
                - 'feature_init': dict with 'image_points', 'template_points'
                  and 'init_method' (optional)
                Any 'derived' section written by ``to_dict`` is ignored.

        Raises:
            ParameterTypeError: If config or its feature_init section is not a dict.
            ArityError: If a required key is missing.
            EccParamsError: If any value fails validation.

        Example:
            >>> params = EccParameters.from_dict(
            ...     {'levels': 2, 'iterations': 20, 'transform': 'translation'}
            ... )
        """
        if not isinstance(config, dict):
            raise ParameterTypeError(f"Configuration must be a dictionary, got {type(config)}")

        for key in ("levels", "iterations", "transform"):
            if key not in config:
                raise ArityError(f"Configuration missing required '{key}' field")

        feature = config.get("feature_init")
        feature_kwargs: dict[str, Any] = {}
        if feature is not None:
            if not isinstance(feature, dict):
                raise ParameterTypeError(
                    f"'feature_init' must be a dictionary, got {type(feature)}"
                )
            for key in ("image_points", "template_points", "init_method"):
                if key not in feature:
                    raise ArityError(f"'feature_init' missing required '{key}' field")
                feature_kwargs[key] = feature[key]

        return cls.create(
            levels=config["levels"],
            iterations=config["iterations"],
            transform=config["transform"],
            init_warp=config.get("init_warp"),
            **feature_kwargs,
        )

    def to_dict(self, include_derived: bool = False) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for YAML or JSON.

        Args:
            include_derived: Also emit a 'derived' section with NoP, the
                effective initial warp and any notices.
        """
        result: dict[str, Any] = {
            "levels": int(self.levels),
            "iterations": int(self.iterations),
            "transform": self.transform.value,
        }
        if self.manual_init is not None:
            result["init_warp"] = self.manual_init.warp.tolist()
        if self.feature_init is not None:
            result["feature_init"] = {
                "image_points": self.feature_init.image_points.tolist(),
                "template_points": self.feature_init.template_points.tolist(),
                "init_method": self.feature_init.init_method.value,
            }
        if include_derived:
            result["derived"] = {
                "nop": int(self.nop),
                "init_warp": self.init_warp.tolist(),
                "notices": list(self.notices),
            }
        return result


def ecc_params(*args: Any) -> EccParameters:
    """Build ECC parameters from positional arguments.

    Call as::

        ecc_params(levels, iterations, transform, manual_init, feature_init, *extra)

    ``extra`` is consumed left to right: the initial warp if ``manual_init``
    is truthy, then image points, template points and init method if
    ``feature_init`` is truthy. Extra trailing arguments are ignored.

    Returns:
        New EccParameters instance.

    Raises:
        ArityError: If fewer than five leading arguments are given, or the
            extra arguments are too few for the active flags.
        ParameterTypeError: If a scalar field is not scalar, or transform or
            init method is not a string.
        UnknownTransformError: If transform is not a supported model.
        ShapeError: If the warp or a point set has the wrong shape.
        UnknownInitMethodError: If init method is neither LS nor RANSAC.

    Example:
        >>> params = ecc_params(2, 20, "homography", True, False,
        ...                     [[1, 0, 5], [0, 1, 5], [0, 0, 0.5]])
        >>> params.init_warp[2, 2]
        1.0
    """
    if len(args) < LEADING_ARG_COUNT:
        raise ArityError(
            f"ecc_params expects at least {LEADING_ARG_COUNT} arguments "
            f"(levels, iterations, transform, manual_init, feature_init), got {len(args)}"
        )

    levels, iterations, transform, manual_flag, feature_flag = args[:LEADING_ARG_COUNT]
    extra = args[LEADING_ARG_COUNT:]

    levels = _coerce_count(levels, "levels")
    iterations = _coerce_count(iterations, "iterations")
    if not isinstance(transform, str):
        raise ParameterTypeError(f"transform must be a string, got {type(transform).__name__}")
    manual = _coerce_flag(manual_flag, "manual_init")
    feature = _coerce_flag(feature_flag, "feature_init")
    model = TransformModel.from_name(transform)

    required = ManualWarpInit.ARG_COUNT * manual + FeatureBasedInit.ARG_COUNT * feature
    if len(extra) < required:
        expected_names = (["init_warp"] if manual else []) + (
            ["image_points", "template_points", "init_method"] if feature else []
        )
        raise ArityError(
            f"Insufficient arguments: manual_init={manual}, feature_init={feature} "
            f"requires {required} extra argument(s) ({', '.join(expected_names)}), "
            f"got {len(extra)}"
        )
    if len(extra) > required:
        logger.debug(f"Ignoring {len(extra) - required} unused extra argument(s)")

    manual_init = None
    if manual:
        manual_init = ManualWarpInit.parse(model, extra[:ManualWarpInit.ARG_COUNT])
        extra = extra[ManualWarpInit.ARG_COUNT:]

    feature_init = None
    if feature:
        feature_init = FeatureBasedInit.parse(extra[:FeatureBasedInit.ARG_COUNT])

    params = EccParameters(
        levels=PyramidLevels(levels),
        iterations=Iterations(iterations),
        transform=model,
        manual_init=manual_init,
        feature_init=feature_init,
    )
    logger.debug(
        f"Built ECC parameters: transform={model.value}, NoP={params.nop}, "
        f"levels={levels}, iterations={iterations}, "
        f"manual_init={manual}, feature_init={feature}"
    )
    return params
