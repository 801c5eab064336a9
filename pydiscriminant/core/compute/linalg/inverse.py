"""
Matrix inversion by Gauss-Jordan elimination with partial pivoting.
"""

from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.compute.linalg.basics import as_square_matrix, has_extreme_entries
from pydiscriminant.core.compute.tolerances import (
    EXTREME_LARGE,
    EXTREME_SMALL,
    PIVOT_TOLERANCE,
)
from pydiscriminant.core.exceptions import SingularMatrixError


def inverse(M: ArrayLike, name: str = 'matrix') -> NDArray[np.floating[Any]]:
    """
    Invert a square matrix.

    Gauss-Jordan elimination on the augmented matrix [M | I], choosing
    the largest-magnitude pivot in each column. Matrices holding
    extreme-magnitude entries (|x| > 1e50 or 0 < |x| < 1e-50) are first
    divided by their largest absolute entry; the inverse of the scaled
    matrix is divided by the same factor on the way out.

    Args:
        M: Square matrix (k x k)
        name: Matrix description used in error messages

    Returns:
        M⁻¹ as a new (k x k) array

    Raises:
        DimensionError: If M is not a non-empty square matrix
        ValidationError: If M contains NaN or Inf
        SingularMatrixError: If the best available pivot at some
            elimination step is below 1e-10 in magnitude

    Examples:
        >>> inverse([[4.0, 7.0], [2.0, 6.0]])
        array([[ 0.6, -0.7],
               [-0.2,  0.4]])
    """
    A = as_square_matrix(M, name)
    k = A.shape[0]

    scale = 1.0
    if has_extreme_entries(A, EXTREME_LARGE, EXTREME_SMALL):
        scale = float(np.max(np.abs(A)))
        A = A / scale

    aug = np.hstack([A, np.eye(k)])

    for col in range(k):
        pivot_row = col + int(np.argmax(np.abs(aug[col:, col])))
        pivot = aug[pivot_row, col]
        if abs(pivot) < PIVOT_TOLERANCE:
            raise SingularMatrixError(
                f"{name} is singular: largest pivot in column {col} is {abs(pivot):.3e} "
                f"(threshold {PIVOT_TOLERANCE:.0e})",
                matrix_name=name,
                rank=col,
                expected_rank=k,
            )
        if pivot_row != col:
            aug[[col, pivot_row]] = aug[[pivot_row, col]]

        aug[col] /= pivot
        factors = aug[:, col].copy()
        factors[col] = 0.0
        aug -= np.outer(factors, aug[col])

    return aug[:, k:] / scale
