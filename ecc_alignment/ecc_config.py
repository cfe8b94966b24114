"""
YAML persistence for ECC alignment parameters.

Parameters live under a top-level ``ecc`` section:

    ecc:
      levels: 2
      iterations: 20
      transform: homography
      init_warp: [[1, 0, 5], [0, 1, 5], [0, 0, 1]]
      feature_init:
        image_points: [[10, 20, 30, 40], [10, 15, 40, 45]]
        template_points: [[11, 21, 31, 41], [12, 16, 42, 47]]
        init_method: RANSAC

``init_warp`` and ``feature_init`` are optional.
"""

import logging
from pathlib import Path

import yaml

from ecc_alignment.ecc_parameters import EccParameters
from ecc_alignment.transform_model import TransformModel

logger = logging.getLogger(__name__)

CONFIG_SECTION = 'ecc'
DEFAULT_LEVELS = 1
DEFAULT_ITERATIONS = 50


def load_ecc_params(path: str) -> EccParameters:
    """Load ECC parameters from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated EccParameters

    Raises:
        FileNotFoundError: If configuration file does not exist
        ValueError: If the file is malformed or has no 'ecc' section
        EccParamsError: If the parameters fail validation

    Example:
        >>> params = load_ecc_params('config/ecc.yaml')
        >>> print(params.transform)
        TransformModel.AFFINE
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {path}\n"
            f"Please create a configuration file or use get_default_params()"
        )

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML configuration file: {e}") from e

    if not data:
        raise ValueError(
            f"Configuration file is empty: {path}\n"
            f"Expected an '{CONFIG_SECTION}' section with alignment parameters"
        )

    if not isinstance(data, dict) or CONFIG_SECTION not in data:
        raise ValueError(
            f"Configuration file missing '{CONFIG_SECTION}' section: {path}\n"
            f"Expected structure: {CONFIG_SECTION}:\n  levels: ...\n  iterations: ...\n"
            f"  transform: ..."
        )

    params = EccParameters.from_dict(data[CONFIG_SECTION])
    logger.info(
        f"Loaded ECC parameters from {config_path} "
        f"(transform={params.transform.value}, levels={params.levels}, "
        f"iterations={params.iterations})"
    )
    return params


def save_ecc_params(params: EccParameters, path: str) -> None:
    """Save ECC parameters to a YAML file.

    Args:
        params: Parameters to write
        path: Destination path. Must resolve inside the current directory.

    Raises:
        IOError: If file cannot be written
        ValueError: If path escapes the current directory
    """
    config_path = Path(path).resolve()

    # Prevent directory traversal outside the working directory
    try:
        config_path.relative_to(Path.cwd().resolve())
    except ValueError:
        raise ValueError(
            f"Path '{path}' must be within the project directory. "
            f"Resolved path: {config_path}, Current directory: {Path.cwd().resolve()}"
        ) from None

    config_path.parent.mkdir(parents=True, exist_ok=True)

    output = {CONFIG_SECTION: params.to_dict()}

    try:
        with open(config_path, 'w') as f:
            yaml.safe_dump(output, f, default_flow_style=None, sort_keys=False)
    except IOError as e:
        raise IOError(f"Failed to write configuration file: {e}") from e

    logger.info(f"Saved ECC parameters to {config_path}")


def get_default_params(transform: str = 'affine') -> EccParameters:
    """Return single-level parameters with the transform's default warp.

    Example:
        >>> params = get_default_params('homography')
        >>> params.nop
        8
    """
    return EccParameters.create(
        levels=DEFAULT_LEVELS,
        iterations=DEFAULT_ITERATIONS,
        transform=TransformModel.from_name(transform),
    )
