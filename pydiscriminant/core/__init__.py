"""
Core infrastructure for pydiscriminant.

This module provides shared abstractions and utilities used by the
discriminant domain package.

Key components:
    result: Generic Result[P] envelope and tagged Section outcome
    exceptions: Exception hierarchy
    kinds: Error kind constants carried by every exception
    validation: Input validators
    compute: Timing, tolerances, distributions, linear algebra kernels
"""

from pydiscriminant.core.result import Result, Section
from pydiscriminant.core.exceptions import (
    DiscriminantError,
    ValidationError,
    DimensionError,
    InsufficientDataError,
    InvalidGroupSizeError,
    NotEnoughGroupsError,
    NotEnoughVariablesError,
    NumericalError,
    ComputationError,
    SingularMatrixError,
    NotPositiveDefiniteError,
)

__all__ = [
    # Result
    "Result",
    "Section",
    # Exceptions
    "DiscriminantError",
    "ValidationError",
    "DimensionError",
    "InsufficientDataError",
    "InvalidGroupSizeError",
    "NotEnoughGroupsError",
    "NotEnoughVariablesError",
    "NumericalError",
    "ComputationError",
    "SingularMatrixError",
    "NotPositiveDefiniteError",
]
