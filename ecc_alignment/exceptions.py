"""
Validation errors raised while building ECC alignment parameters.

Every error is a caller-input problem, never a transient condition, so none
of them are retried. Each class also derives from the builtin exception a
caller would naturally catch (TypeError or ValueError).
"""

from __future__ import annotations


class EccParamsError(Exception):
    """Base class for all ECC parameter validation failures."""


class ArityError(EccParamsError, TypeError):
    """Too few leading arguments, or too few extra arguments for the active flags."""


class ParameterTypeError(EccParamsError, TypeError):
    """A field has the wrong kind of value (e.g. a vector where a scalar is expected)."""


class ParameterValueError(EccParamsError, ValueError):
    """A field has the right kind but an unusable value (e.g. zero levels)."""


class UnknownTransformError(EccParamsError, ValueError):
    """The transform name is not one of the supported models."""


class UnknownInitMethodError(EccParamsError, ValueError):
    """The feature-based initialization method is neither LS nor RANSAC."""


class ShapeError(EccParamsError, ValueError):
    """A matrix does not have the shape required for its role.

    Attributes:
        name: Field that failed validation.
        expected: Required shape. ``None`` entries mean "any size".
        actual: Shape that was supplied.
    """

    def __init__(
        self,
        name: str,
        expected: tuple[int | None, ...],
        actual: tuple[int, ...],
        detail: str | None = None,
    ) -> None:
        self.name = name
        self.expected = expected
        self.actual = actual
        message = detail or (
            f"{name} must be {format_shape(expected)}, got {format_shape(actual)}"
        )
        super().__init__(message)


def format_shape(shape: tuple[int | None, ...]) -> str:
    """Render a shape as ``2x3``; unconstrained axes render as ``M``."""
    if not shape:
        return "scalar"
    return "x".join("M" if dim is None else str(dim) for dim in shape)
