"""
LU decomposition with partial pivoting, and linear solves through it.

    P·M = L·U

where P is the row permutation recorded in ``pivots`` (row i of P·M is
row ``pivots[i]`` of M), L is unit lower triangular and U is upper
triangular. ``sign`` is the determinant of P (±1).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.compute.linalg.basics import as_square_matrix
from pydiscriminant.core.compute.tolerances import PIVOT_TOLERANCE
from pydiscriminant.core.exceptions import DimensionError, SingularMatrixError
from pydiscriminant.core.validation import check_array, check_finite


@dataclass(frozen=True)
class LUResult:
    """
    Result of LU decomposition.

    Attributes:
        L: Unit lower triangular factor (k x k)
        U: Upper triangular factor (k x k)
        pivots: Row permutation, P·M = M[pivots]
        sign: Permutation parity, +1.0 or -1.0
    """
    L: NDArray[np.floating[Any]]
    U: NDArray[np.floating[Any]]
    pivots: NDArray[np.intp]
    sign: float


def eliminate(
    A: NDArray[np.floating[Any]],
) -> tuple[NDArray[np.floating[Any]], NDArray[np.intp], float, int | None]:
    """
    Doolittle elimination with partial pivoting, in place on A.

    Stops at the first column whose best pivot is below the singularity
    threshold instead of raising, so callers that only need "is it zero"
    (the determinant) can treat that as an answer.

    Returns:
        (packed, pivots, sign, failed_column). ``packed`` holds U on and
        above the diagonal and the L multipliers below it.
        ``failed_column`` is None when elimination completed.
    """
    k = A.shape[0]
    pivots = np.arange(k)
    sign = 1.0

    for col in range(k):
        pivot_row = col + int(np.argmax(np.abs(A[col:, col])))
        if abs(A[pivot_row, col]) < PIVOT_TOLERANCE:
            return A, pivots, sign, col
        if pivot_row != col:
            A[[col, pivot_row]] = A[[pivot_row, col]]
            pivots[[col, pivot_row]] = pivots[[pivot_row, col]]
            sign = -sign

        A[col + 1:, col] /= A[col, col]
        A[col + 1:, col + 1:] -= np.outer(A[col + 1:, col], A[col, col + 1:])

    return A, pivots, sign, None


def lu_decomposition(M: ArrayLike, name: str = 'matrix') -> LUResult:
    """
    Factor a square matrix as P·M = L·U.

    Args:
        M: Square matrix (k x k)
        name: Matrix description used in error messages

    Returns:
        LUResult with L, U, pivots and permutation sign

    Raises:
        DimensionError: If M is not a non-empty square matrix
        SingularMatrixError: If a pivot falls below 1e-10
    """
    A = as_square_matrix(M, name)
    k = A.shape[0]
    packed, pivots, sign, failed = eliminate(A)
    if failed is not None:
        raise SingularMatrixError(
            f"{name} is singular: no usable pivot in column {failed} "
            f"(threshold {PIVOT_TOLERANCE:.0e})",
            matrix_name=name,
            rank=failed,
            expected_rank=k,
        )

    L = np.tril(packed, -1) + np.eye(k)
    U = np.triu(packed)
    return LUResult(L=L, U=U, pivots=pivots, sign=sign)


def forward_substitution(
    L: NDArray[np.floating[Any]],
    b: NDArray[np.floating[Any]],
    unit_diagonal: bool = False,
) -> NDArray[np.floating[Any]]:
    """Solve L·y = b for lower triangular L (b may hold several columns)."""
    k = L.shape[0]
    y = np.array(b, dtype=np.float64, copy=True)
    for i in range(k):
        y[i] -= L[i, :i] @ y[:i]
        if not unit_diagonal:
            y[i] /= L[i, i]
    return y


def back_substitution(
    U: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
) -> NDArray[np.floating[Any]]:
    """Solve U·x = y for upper triangular U (y may hold several columns)."""
    k = U.shape[0]
    x = np.array(y, dtype=np.float64, copy=True)
    for i in range(k - 1, -1, -1):
        x[i] -= U[i, i + 1:] @ x[i + 1:]
        x[i] /= U[i, i]
    return x


def solve(A: ArrayLike, b: ArrayLike, name: str = 'matrix') -> NDArray[np.floating[Any]]:
    """
    Solve A·x = b through the LU factors of A.

    Args:
        A: Square coefficient matrix (k x k)
        b: Right-hand side, shape (k,) or (k, r)
        name: Matrix description used in error messages

    Returns:
        x with the same shape as b

    Raises:
        DimensionError: If b's leading dimension does not match A
        SingularMatrixError: If A is singular
    """
    lu = lu_decomposition(A, name)
    rhs = check_array(b, 'b')
    check_finite(rhs, 'b')
    if rhs.ndim not in (1, 2) or rhs.shape[0] != lu.L.shape[0]:
        raise DimensionError(
            f"b: expected leading dimension {lu.L.shape[0]}, got shape {rhs.shape}"
        )

    y = forward_substitution(lu.L, rhs[lu.pivots], unit_diagonal=True)
    return back_substitution(lu.U, y)
