"""
Numeric primitives shared by the linear algebra kernels.

Small, dependency-free helpers: dot product, Euclidean norm,
normalization, decimal rounding, arg-max/arg-min, and the square-matrix
input check every kernel starts with.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.compute.tolerances import COLLAPSE_TOLERANCE
from pydiscriminant.core.exceptions import ComputationError, DimensionError
from pydiscriminant.core.validation import check_array, check_finite, check_square


def as_square_matrix(M: ArrayLike, name: str) -> NDArray[np.floating[Any]]:
    """Validate M as a finite, non-empty square matrix and return a float64 copy."""
    A = check_array(M, name)
    check_square(A, name)
    check_finite(A, name)
    return np.array(A, dtype=np.float64, copy=True)


def dot(a: ArrayLike, b: ArrayLike) -> float:
    """Inner product of two equal-length vectors."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise DimensionError(f"dot: shape mismatch {a.shape} vs {b.shape}")
    return float(np.sum(a * b))


def norm(v: ArrayLike) -> float:
    """Euclidean norm."""
    v = np.asarray(v, dtype=np.float64)
    return math.sqrt(dot(v, v))


def normalize(v: ArrayLike) -> NDArray[np.floating[Any]]:
    """
    Scale v to unit Euclidean norm.

    Raises:
        ComputationError: If ||v|| is below the collapse tolerance
    """
    v = np.asarray(v, dtype=np.float64)
    length = norm(v)
    if length < COLLAPSE_TOLERANCE:
        raise ComputationError(
            f"Cannot normalize vector: norm {length:.3e} below {COLLAPSE_TOLERANCE:.0e}"
        )
    return v / length


def round_to_decimal(x: float, places: int) -> float:
    """Round half away from zero to the given number of decimal places."""
    if not math.isfinite(x):
        return x
    factor = 10.0 ** places
    return math.copysign(math.floor(abs(x) * factor + 0.5) / factor, x)


def argmax(v: ArrayLike) -> int | None:
    """Index of the largest element (first on ties), None for empty input."""
    v = np.asarray(v, dtype=np.float64)
    if v.size == 0:
        return None
    return int(np.argmax(v))


def argmin(v: ArrayLike) -> int | None:
    """Index of the smallest element (first on ties), None for empty input."""
    v = np.asarray(v, dtype=np.float64)
    if v.size == 0:
        return None
    return int(np.argmin(v))


def has_extreme_entries(A: NDArray[np.floating[Any]], large: float, small: float) -> bool:
    """True if some entry has |x| > large or 0 < |x| < small."""
    magnitude = np.abs(A)
    return bool(np.any(magnitude > large) or np.any((magnitude > 0) & (magnitude < small)))
