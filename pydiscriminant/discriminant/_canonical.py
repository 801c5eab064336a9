"""
Canonical discriminant solver.

The m = min(q, g-1) canonical functions are the top eigenpairs of

    A = (T - W) W⁻¹

Derived quantities:
    standardized     raw_ik · sqrt(W_ii/(n-g)), each column rescaled to unit length
    unstandardized   raw_ik · sqrt(λ_k), constant -Σ_i coef_ik · mean_i
    structure        correlation of each variable with each function's scores
    centroids        unstandardized functions at the group means, centred on
                     their n_j/n-weighted mean and scaled to unit weighted variance
    correlations     sqrt(λ/(1+λ))
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.compute.linalg import find_eigenpairs, inverse
from pydiscriminant.core.compute.tolerances import NORMALIZE_TOLERANCE
from pydiscriminant.core.exceptions import ComputationError, SingularMatrixError
from pydiscriminant.discriminant._common import CanonicalParams, EigenStatistic
from pydiscriminant.discriminant._group_stats import GroupStatistics
from pydiscriminant.discriminant._significance import function_wilks_lambda


def _standardized(
    raw: NDArray[np.floating[Any]],
    stats: GroupStatistics,
) -> NDArray[np.floating[Any]]:
    error_df = stats.n_total - stats.n_groups
    scaled = raw * np.sqrt(np.maximum(np.diag(stats.within_sscp), 0.0) / error_df)[:, None]
    lengths = np.linalg.norm(scaled, axis=0)
    safe = np.where(lengths > NORMALIZE_TOLERANCE, lengths, 1.0)
    return scaled / safe


def _structure_matrix(
    X: NDArray[np.floating[Any]],
    raw: NDArray[np.floating[Any]],
) -> NDArray[np.floating[Any]]:
    """Pearson correlation of every variable with every function's scores, over all cases."""
    scores = X @ raw
    X_c = X - X.mean(axis=0)
    S_c = scores - scores.mean(axis=0)
    numerator = X_c.T @ S_c
    spread = np.sqrt(np.outer(np.sum(X_c ** 2, axis=0), np.sum(S_c ** 2, axis=0)))
    structure = np.zeros_like(numerator)
    np.divide(numerator, spread, out=structure, where=spread > 0)
    return structure


def solve_canonical(stats: GroupStatistics, X: NDArray[np.floating[Any]]) -> CanonicalParams:
    """
    Canonical discriminant functions for a set of group statistics.

    Args:
        stats: Group moments
        X: All valid cases (n_cases, p), for the structure matrix

    Returns:
        CanonicalParams

    Raises:
        ComputationError: If there are no functions to extract
            (min(q, g-1) = 0), if W is singular, or if the eigen solver fails
    """
    p = stats.n_variables
    g = stats.n_groups
    n = stats.n_total
    m = min(p, g - 1)
    if m <= 0:
        raise ComputationError(
            f"No discriminant functions: min(variables, groups - 1) = min({p}, {g - 1}) = {m}"
        )

    try:
        W_inv = inverse(stats.within_sscp, 'within-groups SSCP')
    except SingularMatrixError as exc:
        raise ComputationError(f"Canonical solve impossible: {exc}") from exc

    A = (stats.total_sscp - stats.within_sscp) @ W_inv
    eig = find_eigenpairs(A, m)
    eigenvalues = eig.values
    raw = eig.vectors
    positive = np.maximum(eigenvalues, 0.0)

    standardized = _standardized(raw, stats)
    structure = _structure_matrix(X, raw)

    coefficients = raw * np.sqrt(positive)
    constant = -(stats.means_overall @ coefficients)
    unstandardized = np.vstack([coefficients, constant])

    # Centroids: evaluate, centre on the weighted mean, scale to unit weighted variance
    proportions = stats.n_weighted / n
    raw_centroids = stats.means_by_group @ coefficients + constant
    shift = proportions @ raw_centroids
    centred = raw_centroids - shift
    variance = proportions @ centred ** 2
    scale = np.where(variance > 0, 1.0 / np.sqrt(np.where(variance > 0, variance, 1.0)), 1.0)
    centroids = centred * scale

    correlations = np.sqrt(positive / (1.0 + positive))
    total = float(np.sum(eigenvalues))
    cumulative = 0.0
    eigen_rows = []
    for k in range(m):
        pct = 100.0 * float(eigenvalues[k]) / total if total > 0 else 0.0
        cumulative += pct
        eigen_rows.append(EigenStatistic(
            function=k + 1,
            eigenvalue=float(eigenvalues[k]),
            pct_of_variance=pct,
            cumulative_pct=cumulative,
            canonical_correlation=float(correlations[k]),
        ))

    return CanonicalParams(
        eigenvalues=eigenvalues,
        raw_coefficients=raw,
        standardized_coefficients=standardized,
        unstandardized_coefficients=unstandardized,
        structure_matrix=structure,
        group_centroids=centroids,
        canonical_correlations=correlations,
        eigen_statistics=tuple(eigen_rows),
        function_wilks=function_wilks_lambda(eigenvalues, n, p, g),
        centroid_shift=shift,
        centroid_scale=scale,
    )


def canonical_scores(model: CanonicalParams, x: ArrayLike) -> NDArray[np.floating[Any]]:
    """
    Function values of one case (p,) or many cases (k, p), in the same
    centred and scaled space as the group centroids.
    """
    values = np.asarray(x, dtype=np.float64)
    coefficients = model.unstandardized_coefficients[:-1]
    constant = model.unstandardized_coefficients[-1]
    return (values @ coefficients + constant - model.centroid_shift) * model.centroid_scale

