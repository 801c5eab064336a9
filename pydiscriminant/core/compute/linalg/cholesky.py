"""
Cholesky decomposition for symmetric positive definite matrices.
"""

from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.compute.linalg.basics import as_square_matrix
from pydiscriminant.core.compute.tolerances import SYMMETRY_TOLERANCE
from pydiscriminant.core.exceptions import NotPositiveDefiniteError
from pydiscriminant.core.validation import check_symmetric


def cholesky(M: ArrayLike, name: str = 'matrix') -> NDArray[np.floating[Any]]:
    """
    Lower triangular L with M = L·Lᵀ.

    Column-by-column (Cholesky-Crout) factorization:

        L_jj = sqrt(a_jj - Σ_k<j L_jk²)
        L_ij = (a_ij - Σ_k<j L_ik L_jk) / L_jj      for i > j

    Args:
        M: Symmetric matrix (k x k)
        name: Matrix description used in error messages

    Returns:
        L (k x k), zero above the diagonal

    Raises:
        ValidationError: If M is not symmetric within 1e-10
        NotPositiveDefiniteError: The first time a diagonal term
            a_jj - Σ L_jk² is not positive
    """
    A = as_square_matrix(M, name)
    check_symmetric(A, name, SYMMETRY_TOLERANCE)

    k = A.shape[0]
    L = np.zeros_like(A)
    for j in range(k):
        d = A[j, j] - L[j, :j] @ L[j, :j]
        if d <= 0.0:
            raise NotPositiveDefiniteError(
                f"{name} is not positive definite: diagonal term {d:.3e} at column {j}",
                matrix_name=name,
                column=j,
                pivot=float(d),
            )
        L[j, j] = np.sqrt(d)
        L[j + 1:, j] = (A[j + 1:, j] - L[j + 1:, :j] @ L[j, :j]) / L[j, j]

    return L
