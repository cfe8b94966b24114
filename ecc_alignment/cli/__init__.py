"""CLI module for ECC alignment tools.

Provides the `ecc` command-line interface for building and checking ECC
alignment parameters.
"""

from ecc_alignment.cli.main import app

__all__ = ["app"]
