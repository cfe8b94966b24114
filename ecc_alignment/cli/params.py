"""ECC parameter CLI commands."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer
import yaml

from ecc_alignment.cli.main import params_app
from ecc_alignment.ecc_config import get_default_params, load_ecc_params
from ecc_alignment.ecc_parameters import EccParameters, ecc_params
from ecc_alignment.exceptions import EccParamsError


class OutputFormat(str, Enum):
    """Output format options."""

    HUMAN = "human"
    JSON = "json"
    YAML = "yaml"


def _parse_matrix_option(value: str, option: str) -> Any:
    """Decode a JSON matrix given on the command line."""
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {option} must be a JSON matrix, e.g. [[1, 0, 0], [0, 1, 0]]: {e}", err=True)
        raise typer.Exit(1)


@params_app.command("defaults")
def defaults_command(
    transform: str = typer.Option("affine", help="Transform model name"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.HUMAN,
        "--format",
        "-f",
        help="Output format",
    ),
) -> None:
    """
    Show the default parameters for a transform model.

    Example:
        ecc params defaults --transform homography
    """
    try:
        params = get_default_params(transform)
    except EccParamsError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(_format(params, output_format))


@params_app.command("show")
def show_command(
    levels: int = typer.Option(..., help="Number of pyramid levels"),
    iterations: int = typer.Option(..., help="Iterations per pyramid level"),
    transform: str = typer.Option(..., help="translation, euclidean, affine or homography"),
    init_warp: Optional[str] = typer.Option(
        None, help="Initial warp as a JSON matrix (defaults to the identity warp)"
    ),
    image_points: Optional[str] = typer.Option(None, help="2xM image points as a JSON matrix"),
    template_points: Optional[str] = typer.Option(
        None, help="2xM template points as a JSON matrix"
    ),
    init_method: Optional[str] = typer.Option(None, help="Feature init method: LS or RANSAC"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.HUMAN,
        "--format",
        "-f",
        help="Output format",
    ),
) -> None:
    """
    Build and validate ECC parameters from command-line options.

    Feature-based initialization is enabled when any of --image-points,
    --template-points or --init-method is given; all three are then required.

    Example:
        ecc params show --levels 4 --iterations 30 --transform affine
        ecc params show --levels 2 --iterations 20 --transform homography \\
            --init-warp "[[1,0,5],[0,1,5],[0,0,0.5]]" --format json
    """
    manual_init = init_warp is not None
    feature_init = any(v is not None for v in (image_points, template_points, init_method))

    extra: list[Any] = []
    if manual_init:
        extra.append(_parse_matrix_option(init_warp, "--init-warp"))
    if feature_init:
        if image_points is None or template_points is None or init_method is None:
            typer.echo(
                "Error: --image-points, --template-points and --init-method "
                "must be given together",
                err=True,
            )
            raise typer.Exit(1)
        extra.append(_parse_matrix_option(image_points, "--image-points"))
        extra.append(_parse_matrix_option(template_points, "--template-points"))
        extra.append(init_method)

    try:
        params = ecc_params(levels, iterations, transform, manual_init, feature_init, *extra)
    except EccParamsError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(_format(params, output_format))


@params_app.command("validate")
def validate_command(
    config_file: Path = typer.Argument(..., help="YAML file with an 'ecc' section"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.HUMAN,
        "--format",
        "-f",
        help="Output format",
    ),
) -> None:
    """
    Load and validate ECC parameters from a YAML file.

    Example:
        ecc params validate config/ecc.yaml
    """
    try:
        params = load_ecc_params(str(config_file))
    except (OSError, ValueError, EccParamsError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(_format(params, output_format))


def _format(params: EccParameters, output_format: OutputFormat) -> str:
    if output_format == OutputFormat.HUMAN:
        return _format_human_readable(params)
    elif output_format == OutputFormat.JSON:
        return json.dumps(params.to_dict(include_derived=True), indent=2)
    else:  # YAML
        return yaml.safe_dump(
            {"ecc": params.to_dict(include_derived=True)},
            default_flow_style=None,
            sort_keys=False,
        )


def _format_human_readable(params: EccParameters) -> str:
    """Format parameters for human-readable output."""
    warp_source = "supplied" if params.manual_init is not None else "default"

    lines = [
        "=" * 60,
        f"ECC PARAMETERS - {params.transform.value.upper()}",
        "=" * 60,
        "",
        f"  Pyramid levels:     {params.levels}",
        f"  Iterations/level:   {params.iterations}",
        f"  Transform:          {params.transform.value}",
        f"  Free parameters:    {params.nop}",
        "",
        f"Initial warp ({warp_source}):",
    ]
    for row in params.init_warp:
        lines.append("  [" + "  ".join(f"{v:10.4f}" for v in row) + "]")

    lines.append("")
    if params.feature_init is None:
        lines.append("Feature-based init:   none")
    else:
        lines.extend([
            "Feature-based init:",
            f"  Correspondences:    {params.feature_init.point_count}",
            f"  Method:             {params.feature_init.init_method.value}",
        ])

    if params.notices:
        lines.append("")
        lines.append("Notices:")
        lines.extend(f"  - {notice}" for notice in params.notices)

    lines.extend(["", "=" * 60])
    return "\n".join(lines)
