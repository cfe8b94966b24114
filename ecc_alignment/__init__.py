"""
ECC Alignment Parameters Package.

This package builds and validates the parameters for a multi-level, iterative
Enhanced Correlation Coefficient (ECC) image alignment, before the optimizer
runs. It fixes the number of free parameters of the chosen transform, checks
or defaults the initial warp matrix, and packages optional point
correspondences for a feature-based warm start.

Supported transform models:
    - translation: 2x1 warp, 2 parameters
    - euclidean: 2x3 warp, 3 parameters
    - affine: 2x3 warp, 6 parameters
    - homography: 3x3 warp, 8 parameters (bottom-right entry fixed to 1)

Example Usage:
    >>> from ecc_alignment import ecc_params
    >>>
    >>> params = ecc_params(4, 30, "affine", False, False)
    >>> params.nop
    6
    >>>
    >>> # Manual homography warp plus feature-based warm start
    >>> params = ecc_params(
    ...     2, 20, "homography", True, True,
    ...     [[1, 0, 5], [0, 1, 5], [0, 0, 1]],
    ...     image_pts, template_pts, "ransac",
    ... )
    >>> params.init_method
    <InitMethod.RANSAC: 'RANSAC'>

Available Classes:
    - EccParameters: Frozen record handed to the optimizer
    - ManualWarpInit: Validated caller-supplied initial warp
    - FeatureBasedInit: Validated point correspondences and init method
    - TransformModel, InitMethod: Enumerations of supported models/methods
"""

# Core builder and records
from ecc_alignment.ecc_parameters import (
    EccParameters,
    FeatureBasedInit,
    ManualWarpInit,
    ecc_params,
)

# Transform models
from ecc_alignment.transform_model import InitMethod, TransformModel

# Configuration files
from ecc_alignment.ecc_config import get_default_params, load_ecc_params, save_ecc_params

# Errors
from ecc_alignment.exceptions import (
    ArityError,
    EccParamsError,
    ParameterTypeError,
    ParameterValueError,
    ShapeError,
    UnknownInitMethodError,
    UnknownTransformError,
)

# Define public API
__all__ = [
    # Builder
    'ecc_params',
    'EccParameters',
    'ManualWarpInit',
    'FeatureBasedInit',

    # Models
    'TransformModel',
    'InitMethod',

    # Configuration
    'load_ecc_params',
    'save_ecc_params',
    'get_default_params',

    # Errors
    'EccParamsError',
    'ArityError',
    'ParameterTypeError',
    'ParameterValueError',
    'UnknownTransformError',
    'ShapeError',
    'UnknownInitMethodError',
]

# Package metadata
__version__ = '0.1.0'
__description__ = 'Parameter builder and validator for multi-level ECC image alignment'
