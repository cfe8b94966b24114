"""Main Typer CLI application for ECC alignment tools."""

import typer

app = typer.Typer(
    help="Tools for building and validating ECC image-alignment parameters",
    no_args_is_help=True,
)

params_app = typer.Typer(help="ECC parameter commands")

app.add_typer(params_app, name="params")


def _register_commands() -> None:
    """
    Import command modules to register commands with their respective apps.

    Commands use decorators like @params_app.command() which register
    themselves when the module is imported.
    """
    from ecc_alignment.cli import params

    # Avoid "imported but unused" warnings by explicitly using the module
    _ = params


_register_commands()


if __name__ == "__main__":
    app()
