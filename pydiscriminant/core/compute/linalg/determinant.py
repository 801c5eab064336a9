"""
Determinant and log-determinant.

determinant() favours exact closed forms for small matrices and falls
back to pivoted LU; log_determinant() goes through Cholesky for
symmetric input and LU otherwise.
"""

import math
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.compute.linalg.basics import as_square_matrix, has_extreme_entries
from pydiscriminant.core.compute.linalg.cholesky import cholesky
from pydiscriminant.core.compute.linalg.lu import eliminate, lu_decomposition
from pydiscriminant.core.compute.tolerances import (
    EXTREME_LARGE,
    EXTREME_SMALL,
    NEGLIGIBLE_PRODUCT,
    SYMMETRY_TOLERANCE,
)
from pydiscriminant.core.exceptions import ComputationError
from pydiscriminant.core.validation import is_symmetric


def _cofactor_3x3(A: NDArray[np.floating[Any]]) -> float:
    return float(
        A[0, 0] * (A[1, 1] * A[2, 2] - A[1, 2] * A[2, 1])
        - A[0, 1] * (A[1, 0] * A[2, 2] - A[1, 2] * A[2, 0])
        + A[0, 2] * (A[1, 0] * A[2, 1] - A[1, 1] * A[2, 0])
    )


def _lu_determinant(A: NDArray[np.floating[Any]]) -> float:
    packed, _, sign, failed = eliminate(A)
    if failed is not None:
        return 0.0
    product = 1.0
    for u in np.diag(packed):
        product *= float(u)
        if abs(product) < NEGLIGIBLE_PRODUCT:
            return 0.0
    return sign * product


def determinant(M: ArrayLike, name: str = 'matrix') -> float:
    """
    Determinant of a square matrix.

    Closed forms for 1x1 and 2x2, cofactor expansion for 3x3, and
    det = sign·Π u_ii from pivoted LU for larger matrices or matrices
    with extreme-magnitude entries. Returns 0.0 as soon as a pivot is
    below the singularity threshold or the running product becomes
    negligibly small.

    Args:
        M: Square matrix (k x k)
        name: Matrix description used in error messages

    Returns:
        det(M)
    """
    A = as_square_matrix(M, name)
    k = A.shape[0]

    if k == 1:
        return float(A[0, 0])
    if has_extreme_entries(A, EXTREME_LARGE, EXTREME_SMALL):
        return _lu_determinant(A)
    if k == 2:
        return float(A[0, 0] * A[1, 1] - A[0, 1] * A[1, 0])
    if k == 3:
        return _cofactor_3x3(A)
    return _lu_determinant(A)


def log_determinant(M: ArrayLike, name: str = 'matrix') -> float:
    """
    Natural log of det(M) for matrices with positive determinant.

    Symmetric matrices: 2·Σ ln L_ii from the Cholesky factor.
    Otherwise: Σ ln U_ii from pivoted LU.

    Raises:
        NotPositiveDefiniteError: Symmetric M that is not positive definite
        SingularMatrixError: Non-symmetric M with a vanishing pivot
        ComputationError: Non-symmetric M with a non-positive U_ii or a
            negative permutation sign
    """
    A = as_square_matrix(M, name)

    if is_symmetric(A, SYMMETRY_TOLERANCE):
        L = cholesky(A, name)
        return float(2.0 * np.sum(np.log(np.diag(L))))

    lu = lu_decomposition(A, name)
    diagonal = np.diag(lu.U)
    if lu.sign < 0 or np.any(diagonal <= 0.0):
        raise ComputationError(
            f"log_determinant of {name}: LU factors imply a non-positive determinant "
            f"(sign {lu.sign:+.0f}, min U_ii {float(np.min(diagonal)):.3e})"
        )
    return float(sum(math.log(u) for u in diagonal))
