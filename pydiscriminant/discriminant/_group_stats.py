"""
Group statistics builder.

Computes, once per design, every moment the rest of the analysis reads:

    means_by_group      μ_j = Σ w·x / n_j                        (g, p)
    means_overall       Σ_j Σ w·x / n                            (p,)
    within_sscp         W = Σ_j (Σ w·xxᵀ - s_j s_jᵀ / n_j)        (p, p)
    total_sscp          T = Σ w·xxᵀ - s sᵀ / n                   (p, p)
    pooled_covariance   C = W / (n - g)
    group_covariances   C_j = W_j / (n_j - 1)                    (g, p, p)
    within_correlation  R_il = W_il / sqrt(W_ii W_ll), NaN if a diagonal <= 0
    total_covariance    T' = T / (n - 1)

where s_j = Σ w·x over group j. W and T are symmetric by construction:
only the lower triangle is kept and mirrored. All arrays are read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pydiscriminant.core.exceptions import InsufficientDataError, InvalidGroupSizeError
from pydiscriminant.discriminant.design import DiscriminantDesign


@dataclass(frozen=True)
class GroupStatistics:
    """Immutable moments of one design. Build with build_group_statistics()."""
    group_values: tuple[Any, ...]
    n_cases: tuple[int, ...]
    n_weighted: NDArray[np.floating[Any]]
    n_total: float
    means_by_group: NDArray[np.floating[Any]]
    means_overall: NDArray[np.floating[Any]]
    within_sscp: NDArray[np.floating[Any]]
    total_sscp: NDArray[np.floating[Any]]
    pooled_covariance: NDArray[np.floating[Any]]
    group_covariances: NDArray[np.floating[Any]]
    within_correlation: NDArray[np.floating[Any]]
    total_covariance: NDArray[np.floating[Any]]

    @property
    def n_groups(self) -> int:
        return len(self.group_values)

    @property
    def n_variables(self) -> int:
        return self.means_overall.shape[0]

    @property
    def between_sscp(self) -> NDArray[np.floating[Any]]:
        """B = T - W."""
        return self.total_sscp - self.within_sscp

    @property
    def total_correlation(self) -> NDArray[np.floating[Any]]:
        """Correlation matrix of T, NaN where a variable has no spread."""
        with np.errstate(invalid='ignore', divide='ignore'):
            return correlation_from_sscp(self.total_sscp)

    @property
    def group_std_devs(self) -> NDArray[np.floating[Any]]:
        """(g, p) standard deviations from each group's covariance."""
        return np.sqrt(np.maximum(np.diagonal(self.group_covariances, axis1=1, axis2=2), 0.0))

    @property
    def overall_std_devs(self) -> NDArray[np.floating[Any]]:
        """(p,) standard deviations from the total covariance."""
        return np.sqrt(np.maximum(np.diag(self.total_covariance), 0.0))


def _mirror_lower(A: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    return np.tril(A) + np.tril(A, -1).T


def _readonly(array: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    array.flags.writeable = False
    return array


def _sscp(X: NDArray[np.floating[Any]], w: NDArray[np.floating[Any]], n: float) -> NDArray[np.floating[Any]]:
    """Σ w·xxᵀ - (Σ w·x)(Σ w·x)ᵀ / n, lower triangle mirrored."""
    s = w @ X
    cross = (X * w[:, None]).T @ X
    return _mirror_lower(cross - np.outer(s, s) / n)


def correlation_from_sscp(S: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """S_il / sqrt(S_ii S_ll), NaN wherever either diagonal is <= 0."""
    d = np.diag(S)
    positive = d > 0
    scale = np.where(positive, np.sqrt(np.where(positive, d, 1.0)), np.nan)
    return S / np.outer(scale, scale)


def build_group_statistics(design: DiscriminantDesign) -> GroupStatistics:
    """
    Compute all group moments for a design.

    Raises:
        InvalidGroupSizeError: If some n_j <= 0, or n_j <= 1 (group
            covariance undefined)
        InsufficientDataError: If n <= 0, n <= g or n <= 1
    """
    g = design.n_groups
    p = design.n_variables

    n_weighted = np.zeros(g)
    means = np.zeros((g, p))
    within = np.zeros((p, p))
    group_sscp = np.zeros((g, p, p))

    for j, (X_j, w_j) in enumerate(zip(design.data, design.weights)):
        n_j = float(np.sum(w_j))
        if n_j <= 0:
            raise InvalidGroupSizeError(
                f"Group {design.group_values[j]}: weighted size {n_j:g} must be positive",
                group=design.group_values[j], size=n_j,
            )
        n_weighted[j] = n_j
        means[j] = (w_j @ X_j) / n_j
        group_sscp[j] = _sscp(X_j, w_j, n_j)
        within += group_sscp[j]

    n = float(np.sum(n_weighted))
    if n <= 0:
        raise InsufficientDataError(f"Total weight n = {n:g} must be positive", n=n, required=0)

    X, w, _ = design.stacked()
    means_overall = (w @ X) / n
    within = _mirror_lower(within)
    total = _sscp(X, w, n)

    if n <= g:
        raise InsufficientDataError(
            f"Pooled covariance needs n > g (n = {n:g}, g = {g})", n=n, required=g,
        )
    pooled = within / (n - g)

    group_cov = np.zeros((g, p, p))
    for j in range(g):
        if n_weighted[j] <= 1:
            raise InvalidGroupSizeError(
                f"Group {design.group_values[j]}: covariance needs n_j > 1 "
                f"(n_j = {n_weighted[j]:g})",
                group=design.group_values[j], size=float(n_weighted[j]),
            )
        group_cov[j] = group_sscp[j] / (n_weighted[j] - 1)

    with np.errstate(invalid='ignore', divide='ignore'):
        correlation = correlation_from_sscp(within)

    if n <= 1:
        raise InsufficientDataError(f"Total covariance needs n > 1 (n = {n:g})", n=n, required=1)
    total_cov = total / (n - 1)

    return GroupStatistics(
        group_values=design.group_values,
        n_cases=design.n_cases,
        n_weighted=_readonly(n_weighted),
        n_total=n,
        means_by_group=_readonly(means),
        means_overall=_readonly(means_overall),
        within_sscp=_readonly(within),
        total_sscp=_readonly(total),
        pooled_covariance=_readonly(pooled),
        group_covariances=_readonly(group_cov),
        within_correlation=_readonly(correlation),
        total_covariance=_readonly(total_cov),
    )
