"""
Type annotations for the scalar ECC run parameters.

This module defines NewType aliases for the counts that describe an ECC
alignment run. They are zero-overhead hints that keep pyramid levels,
iteration budgets and parameter counts from being mixed up in signatures,
while remaining plain ints at runtime.

Usage Example:
    >>> from ecc_alignment.types import PyramidLevels, Iterations
    >>>
    >>> def describe(levels: PyramidLevels, iterations: Iterations) -> str:
    ...     return f"{levels} levels x {iterations} iterations"
    >>>
    >>> describe(PyramidLevels(4), Iterations(30))
    '4 levels x 30 iterations'
"""

from typing import NewType

PyramidLevels = NewType('PyramidLevels', int)
"""Number of levels in the coarse-to-fine image pyramid (>= 1)"""

Iterations = NewType('Iterations', int)
"""Number of optimizer iterations run at each pyramid level (>= 1)"""

ParameterCount = NewType('ParameterCount', int)
"""Number of free parameters of a transform model (NoP)"""
