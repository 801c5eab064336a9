"""
QR decomposition by Householder reflections.

Used to establish the numerical rank of the within-groups SSCP matrix
before the canonical solve: a rank-deficient W means some variable is
an exact linear combination of the others within groups.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.validation import check_array, check_2d, check_finite


@dataclass(frozen=True)
class QRResult:
    """
    Result of QR decomposition.

    Attributes:
        Q: Orthonormal columns (n x k where k = min(n, p))
        R: Upper triangular matrix (k x p)
        rank: Numerical rank determined from R diagonal
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    rank: int


def _householder_vector(x: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]] | None:
    """Unit vector v with (I - 2vvᵀ)x = -sign(x₀)·||x||·e₁, or None if x = 0."""
    length = float(np.linalg.norm(x))
    if length == 0.0:
        return None
    v = x.copy()
    v[0] += (-1.0 if x[0] < 0.0 else 1.0) * length
    return v / np.linalg.norm(v)


def qr_decomposition(X: ArrayLike, name: str = 'X') -> QRResult:
    """
    Reduced QR decomposition X = QR.

    Args:
        X: Matrix to decompose (n x p)
        name: Matrix description used in error messages

    Returns:
        QRResult with Q (n x k), R (k x p) and numerical rank, where
        k = min(n, p). Rank counts |r_ii| above max(n, p)·eps·|r_11|.
    """
    A = check_array(X, name)
    check_2d(A, name)
    check_finite(A, name)

    n, p = A.shape
    k = min(n, p)
    R = np.array(A, dtype=np.float64, copy=True)
    Q = np.eye(n)

    for j in range(k):
        v = _householder_vector(R[j:, j])
        if v is None:
            continue
        R[j:, j:] -= 2.0 * np.outer(v, v @ R[j:, j:])
        Q[:, j:] -= 2.0 * np.outer(Q[:, j:] @ v, v)

    Q = Q[:, :k]
    R = np.triu(R[:k, :])

    # Tolerance based on matrix size and machine epsilon
    diag_R = np.abs(np.diag(R))
    if len(diag_R) > 0 and diag_R[0] > 0:
        tol = max(n, p) * np.finfo(np.float64).eps * diag_R[0]
        rank = int(np.sum(diag_R > tol))
    else:
        rank = 0

    return QRResult(Q=Q, R=R, rank=rank)
