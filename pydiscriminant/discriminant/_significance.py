"""
Significance tests for discriminant analysis.

    univariate_f_lambda     one-way F and Wilks' Λ per variable
    box_m_test              Box's M for equal group covariance matrices
    function_wilks_lambda   Λ for canonical functions k..m (Bartlett χ²)
    rao_f_approximation     F transform of a Wilks' Λ (Rao)
    mahalanobis_distance    squared distance under an inverse covariance
"""

from __future__ import annotations

import math
import warnings
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.compute.distributions import chi_square_p_value, f_test_p_value
from pydiscriminant.core.compute.linalg import determinant, log_determinant
from pydiscriminant.core.compute.tolerances import (
    BOX_M_CHI_SQUARE_DF,
    BOX_M_DETERMINANT_THRESHOLD,
)
from pydiscriminant.core.exceptions import (
    DimensionError,
    InsufficientDataError,
    NotEnoughGroupsError,
    NotEnoughVariablesError,
)
from pydiscriminant.discriminant._common import BoxMParams, ChiSquareRow, FLambdaParams
from pydiscriminant.discriminant._group_stats import GroupStatistics


def univariate_f_lambda(
    stats: GroupStatistics,
    variable: int,
    name: str | None = None,
) -> FLambdaParams:
    """
    Test of equality of group means for one variable.

        F = (T_ii - W_ii)(n - g) / (W_ii (g - 1)),   Λ = W_ii / T_ii

    with df1 = g - 1 and df2 = n - g.

    Raises:
        NotEnoughVariablesError: If variable is out of range
        NotEnoughGroupsError: If g < 2
        InsufficientDataError: If W_ii or T_ii is not positive (the
            variable is constant within groups)
    """
    p = stats.n_variables
    if not 0 <= variable < p:
        raise NotEnoughVariablesError(f"variable index {variable} out of range for {p} variables")
    g = stats.n_groups
    if g < 2:
        raise NotEnoughGroupsError(f"Univariate F needs at least 2 groups, got {g}")

    n = stats.n_total
    w_ii = float(stats.within_sscp[variable, variable])
    t_ii = float(stats.total_sscp[variable, variable])
    label = name if name is not None else f"X{variable + 1}"
    if w_ii <= 0 or t_ii <= 0:
        raise InsufficientDataError(
            f"Variable {label} has no within-group variance (W_ii = {w_ii:g}, T_ii = {t_ii:g})"
        )

    df1 = g - 1
    df2 = n - g
    f_value = (t_ii - w_ii) * df2 / (w_ii * df1)
    return FLambdaParams(
        variable=label,
        wilks_lambda=w_ii / t_ii,
        f_value=f_value,
        df1=df1,
        df2=int(round(df2)),
        significance=f_test_p_value(f_value, df1, df2),
    )


def box_m_test(stats: GroupStatistics) -> BoxMParams:
    """
    Box's M test of equality of group covariance matrices.

    Only groups with |C_j| > 1e-10 take part (g' groups, n' cases);
    their covariances are pooled as C' = Σ (n_j - 1) C_j / (n' - g').

        M  = (n' - g') ln|C'| - Σ (n_j - 1) ln|C_j|
        e1 = (Σ 1/(n_j-1) - 1/(n'-g')) (2p² + 3p - 1) / (6 (g'-1)(p+1))
        e2 = (Σ 1/(n_j-1)² - 1/(n'-g')²) (p-1)(p+2) / (6 (g'-1))
        t1 = (g'-1) p (p+1) / 2

    If e2 > e1²:  t2 = (t1 + 2)/(e2 - e1²),  b = t1/(1 - e1 - t1/t2),  F = M/b
    otherwise:    t2 = t1(1/(1-e1) - 1),  F = M/((1-e1) t1)

    When t2 exceeds 10,000 (or is not positive) the F approximation is
    replaced by χ² = M(1 - e1) on t1 degrees of freedom.

    Raises:
        NotEnoughGroupsError: If fewer than 2 groups have a non-singular
            covariance matrix

    Warns:
        RuntimeWarning: When groups are left out for singular covariance
    """
    p = stats.n_variables
    usable: list[int] = []
    for j in range(stats.n_groups):
        if determinant(stats.group_covariances[j], f'group {stats.group_values[j]} covariance') > BOX_M_DETERMINANT_THRESHOLD:
            usable.append(j)

    if len(usable) < 2:
        raise NotEnoughGroupsError(
            f"Box's M needs at least 2 groups with non-singular covariance matrices, "
            f"got {len(usable)}"
        )
    if len(usable) < stats.n_groups:
        skipped = [stats.group_values[j] for j in range(stats.n_groups) if j not in usable]
        warnings.warn(
            f"Box's M: groups {skipped} left out (singular covariance matrix)",
            RuntimeWarning,
            stacklevel=2,
        )

    dof = np.array([stats.n_weighted[j] - 1.0 for j in usable])
    g_used = len(usable)
    error_df = float(np.sum(dof))          # n' - g'

    pooled = sum(dof[i] * stats.group_covariances[j] for i, j in enumerate(usable)) / error_df
    pooled = (pooled + pooled.T) / 2.0

    log_dets = [
        log_determinant(stats.group_covariances[j], f'group {stats.group_values[j]} covariance')
        for j in usable
    ]
    pooled_log_det = log_determinant(pooled, 'pooled covariance')
    m = error_df * pooled_log_det - float(np.sum(dof * np.array(log_dets)))

    e1 = (np.sum(1.0 / dof) - 1.0 / error_df) * (2 * p * p + 3 * p - 1) / (6.0 * (g_used - 1) * (p + 1))
    e2 = (np.sum(1.0 / dof ** 2) - 1.0 / error_df ** 2) * (p - 1) * (p + 2) / (6.0 * (g_used - 1))
    t1 = (g_used - 1) * p * (p + 1) / 2.0

    if e2 > e1 * e1:
        t2 = (t1 + 2.0) / abs(e2 - e1 * e1)
        b = t1 / (1.0 - e1 - t1 / t2)
        f_value = m / b
    else:
        correction = 1.0 / (1.0 - e1)
        f_value = m * correction / t1
        t2 = t1 * (correction - 1.0)

    chi_square = None
    if t2 > BOX_M_CHI_SQUARE_DF or t2 <= 0:
        chi_square = m * (1.0 - e1)
        p_value = chi_square_p_value(chi_square, t1)
    else:
        p_value = f_test_p_value(f_value, t1, t2)

    return BoxMParams(
        m=float(m),
        f_value=float(f_value),
        df1=float(t1),
        df2=float(t2),
        p_value=float(p_value),
        log_determinants=tuple(
            (stats.group_values[j], float(ld)) for j, ld in zip(usable, log_dets)
        ),
        pooled_log_determinant=float(pooled_log_det),
        chi_square=None if chi_square is None else float(chi_square),
    )


def function_wilks_lambda(
    eigenvalues: ArrayLike,
    n: float,
    p: int,
    g: int,
) -> tuple[ChiSquareRow, ...]:
    """
    Wilks' Lambda for canonical functions k..m, k = 1..m.

        Λ_k = Π_{i>=k} 1/(1 + λ_i)
        χ²  = -(n - (p + g)/2 - 1) ln Λ_k,   df = (p - k)(g - k - 1)

    with k zero-based; rows report first_function = k + 1.
    """
    values = np.asarray(eigenvalues, dtype=np.float64)
    factor = n - (p + g) / 2.0 - 1.0
    rows = []
    for k in range(len(values)):
        lam = float(np.prod(1.0 / (1.0 + values[k:])))
        chi_square = -factor * math.log(lam) if lam > 0 else math.inf
        df = (p - k) * (g - k - 1)
        significance = chi_square_p_value(chi_square, df) if df > 0 else math.nan
        rows.append(ChiSquareRow(
            first_function=k + 1,
            wilks_lambda=lam,
            chi_square=chi_square,
            df=df,
            significance=significance,
        ))
    return tuple(rows)


def rao_f_approximation(
    wilks_lambda: float,
    p: int,
    q: int,
    error_df: float,
) -> tuple[float, float, float]:
    """
    Rao's F transform of Wilks' Λ(p, q, ν).

        s   = sqrt((p²q² - 4)/(p² + q² - 5))  if p² + q² - 5 > 0, else 1
        r   = ν - (p - q + 1)/2
        df1 = pq,   df2 = r·s - (pq - 2)/2
        F   = (1 - Λ^(1/s)) / Λ^(1/s) · df2 / df1

    Exact when min(p, q) <= 2.

    Args:
        wilks_lambda: Λ in (0, 1]
        p: Number of variables
        q: Hypothesis degrees of freedom (g - 1)
        error_df: Error degrees of freedom ν (n - g)

    Returns:
        (F, df1, df2); F is NaN when Λ is not in (0, 1] or df2 <= 0
    """
    denominator = p * p + q * q - 5
    s = math.sqrt((p * p * q * q - 4) / denominator) if denominator > 0 else 1.0
    r = error_df - (p - q + 1) / 2.0
    df1 = float(p * q)
    df2 = r * s - (p * q - 2) / 2.0
    if not 0 < wilks_lambda <= 1 or df2 <= 0 or df1 <= 0:
        return math.nan, df1, df2
    root = wilks_lambda ** (1.0 / s)
    return (1.0 - root) / root * df2 / df1, df1, df2


def mahalanobis_distance(
    x: ArrayLike,
    mean: ArrayLike,
    inverse_covariance: ArrayLike,
) -> float:
    """
    Squared Mahalanobis distance (x - μ)ᵀ S⁻¹ (x - μ).

    Raises:
        DimensionError: If the shapes do not line up
    """
    diff = np.asarray(x, dtype=np.float64) - np.asarray(mean, dtype=np.float64)
    S_inv: NDArray[np.floating[Any]] = np.asarray(inverse_covariance, dtype=np.float64)
    if diff.ndim != 1 or S_inv.shape != (diff.shape[0], diff.shape[0]):
        raise DimensionError(
            f"mahalanobis_distance: vector of length {diff.shape} does not match "
            f"inverse covariance of shape {S_inv.shape}"
        )
    return float(diff @ S_inv @ diff)
