"""
Eigen solvers.

Two solvers with different contracts:

power_iteration / find_eigenpairs
    Dominant eigenpairs of a general (possibly non-symmetric) matrix by
    power iteration with deflation. Deflation by λvvᵀ is exact only for
    symmetric matrices; for the canonical-analysis matrix (T-W)W⁻¹,
    which is diagonalizable with real non-negative eigenvalues in
    well-posed problems, it is an adequate approximation.

symmetric_eigendecomposition
    Full decomposition of a symmetric matrix by classical Jacobi
    rotations.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.compute.linalg.basics import as_square_matrix, normalize
from pydiscriminant.core.compute.tolerances import (
    COLLAPSE_TOLERANCE,
    EIGEN_MAX_ITER,
    EIGEN_TOLERANCE,
    SYMMETRY_TOLERANCE,
)
from pydiscriminant.core.exceptions import ComputationError, ValidationError
from pydiscriminant.core.validation import check_symmetric, is_symmetric


@dataclass(frozen=True)
class EigenResult:
    """
    Ordered eigenpairs.

    Attributes:
        values: Eigenvalues, non-increasing (k,)
        vectors: Unit eigenvectors as columns (n x k), vectors[:, i]
            belongs to values[i]
    """
    values: NDArray[np.floating[Any]]
    vectors: NDArray[np.floating[Any]]


def _sorted_descending(
    values: NDArray[np.floating[Any]],
    vectors: NDArray[np.floating[Any]],
) -> EigenResult:
    order = np.argsort(-values, kind='stable')
    return EigenResult(values=values[order], vectors=vectors[:, order])


def power_iteration(
    M: ArrayLike,
    max_iter: int = EIGEN_MAX_ITER,
    tol: float = EIGEN_TOLERANCE,
) -> tuple[float, NDArray[np.floating[Any]]]:
    """
    Dominant eigenpair by power iteration.

    Starts from v_i = 1/sqrt(i+1) (normalized), iterates v <- Mv/||Mv||
    and tracks the Rayleigh quotient vᵀMv. Converged when successive
    estimates differ by less than tol·|λ|.

    Args:
        M: Square matrix (k x k)
        max_iter: Maximum number of iterations
        tol: Relative convergence tolerance on the eigenvalue

    Returns:
        (eigenvalue, unit eigenvector)

    Raises:
        ComputationError: If ||Mv|| collapses below 1e-10

    Warns:
        RuntimeWarning: If max_iter is reached without convergence; the
            last estimate is returned.
    """
    A = as_square_matrix(M, 'M')
    k = A.shape[0]

    v = normalize(1.0 / np.sqrt(np.arange(1, k + 1, dtype=np.float64)))
    eigenvalue = float(v @ A @ v)

    for _ in range(max_iter):
        w = A @ v
        length = float(np.linalg.norm(w))
        if length < COLLAPSE_TOLERANCE:
            raise ComputationError(
                f"Power iteration collapsed: ||Mv|| = {length:.3e} "
                f"(threshold {COLLAPSE_TOLERANCE:.0e})"
            )
        v = w / length
        estimate = float(v @ A @ v)
        if abs(estimate - eigenvalue) < tol * abs(estimate):
            return estimate, v
        eigenvalue = estimate

    warnings.warn(
        f"Power iteration did not converge in {max_iter} iterations "
        f"(last eigenvalue estimate {eigenvalue:.6g})",
        RuntimeWarning,
        stacklevel=2,
    )
    return eigenvalue, v


def find_eigenpairs(
    M: ArrayLike,
    k: int,
    max_iter: int = EIGEN_MAX_ITER,
    tol: float = EIGEN_TOLERANCE,
) -> EigenResult:
    """
    Top-k eigenpairs of a square matrix.

    Symmetric input is handed to the Jacobi solver and truncated. General
    input is solved by repeated power iteration with deflation
    M <- M - λvvᵀ; from the second pair on, (v·u)·u is also subtracted
    from the diagonal for every previously found eigenvector u, which
    steers the iteration away from directions already found.

    Args:
        M: Square matrix (n x n)
        k: Number of eigenpairs, 0 <= k <= n
        max_iter: Power iteration limit per eigenpair
        tol: Relative convergence tolerance

    Returns:
        EigenResult with eigenvalues sorted non-increasing

    Raises:
        ValidationError: If k is outside [0, n]
        ComputationError: If an iterate collapses
    """
    A = as_square_matrix(M, 'M')
    n = A.shape[0]
    if not 0 <= k <= n:
        raise ValidationError(f"k: must be between 0 and {n}, got {k}")

    if is_symmetric(A, SYMMETRY_TOLERANCE):
        full = symmetric_eigendecomposition(A, tol=tol)
        return EigenResult(values=full.values[:k], vectors=full.vectors[:, :k])

    values = np.zeros(k)
    vectors = np.zeros((n, k))
    working = A.copy()
    diagonal = np.arange(n)

    for idx in range(k):
        eigenvalue, v = power_iteration(working, max_iter=max_iter, tol=tol)
        values[idx] = eigenvalue
        vectors[:, idx] = v

        working -= eigenvalue * np.outer(v, v)
        for prev in range(idx):
            u = vectors[:, prev]
            working[diagonal, diagonal] -= float(v @ u) * u

    for idx in range(k):
        vectors[:, idx] = normalize(vectors[:, idx])

    return _sorted_descending(values, vectors)


def symmetric_eigendecomposition(
    M: ArrayLike,
    tol: float = EIGEN_TOLERANCE,
    max_sweeps: int = EIGEN_MAX_ITER,
) -> EigenResult:
    """
    Full eigendecomposition of a symmetric matrix (classical Jacobi).

    Each rotation zeroes the largest off-diagonal element a_pq using
    θ = ½·atan2(2a_pq, a_pp - a_qq); rotations are accumulated into the
    eigenvector matrix. Stops when max |a_pq| < tol.

    Args:
        M: Symmetric matrix (n x n)
        tol: Off-diagonal magnitude at which to stop
        max_sweeps: Rotation budget in units of n(n-1)/2 rotations

    Returns:
        EigenResult with all n eigenpairs, eigenvalues non-increasing

    Raises:
        ValidationError: If M is not symmetric

    Warns:
        RuntimeWarning: If the rotation budget runs out first
    """
    S = as_square_matrix(M, 'M')
    check_symmetric(S, 'M', SYMMETRY_TOLERANCE)
    n = S.shape[0]
    V = np.eye(n)

    if n == 1:
        return EigenResult(values=np.array([S[0, 0]]), vectors=V)

    upper = np.triu_indices(n, 1)
    max_rotations = max_sweeps * n * (n - 1) // 2
    converged = False

    for _ in range(max_rotations):
        off = np.abs(S[upper])
        largest = int(np.argmax(off))
        if off[largest] < tol:
            converged = True
            break
        p, q = int(upper[0][largest]), int(upper[1][largest])

        theta = 0.5 * math.atan2(2.0 * S[p, q], S[p, p] - S[q, q])
        c, s = math.cos(theta), math.sin(theta)

        row_p, row_q = S[p].copy(), S[q].copy()
        S[p] = c * row_p + s * row_q
        S[q] = -s * row_p + c * row_q

        col_p, col_q = S[:, p].copy(), S[:, q].copy()
        S[:, p] = c * col_p + s * col_q
        S[:, q] = -s * col_p + c * col_q
        S[p, q] = S[q, p] = 0.0

        v_p, v_q = V[:, p].copy(), V[:, q].copy()
        V[:, p] = c * v_p + s * v_q
        V[:, q] = -s * v_p + c * v_q
    else:
        converged = bool(np.max(np.abs(S[upper])) < tol)

    if not converged:
        warnings.warn(
            f"Jacobi eigendecomposition did not converge in {max_rotations} rotations "
            f"(max off-diagonal {float(np.max(np.abs(S[upper]))):.3e})",
            RuntimeWarning,
            stacklevel=2,
        )

    return _sorted_descending(np.diag(S).copy(), V)
