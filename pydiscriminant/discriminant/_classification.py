"""
Classification and cross-validation.

Fisher classification functions (one linear function per group):

    b_ij = (n - g) Σ_l W⁻¹_il μ_jl
    c_j  = ln(prior_j) - ½ Σ_i b_ij μ_ji        (prior <= 0 taken as 1e-10)

Case classification works in canonical space: squared distance to each
group centroid, g_j = ln(prior_j) - ½ d_j, posteriors from exp(g_j - max g)
normalized, with terms more than 46 below the maximum set to exactly 0.

Leave-one-out cross-validation ranks groups by d_j - 2 ln(prior_j), with
d_j the Mahalanobis distance under the pooled covariance and the held-out
case removed from its own group's mean.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.compute.distributions import chi_square_p_value
from pydiscriminant.core.compute.linalg import argmax, argmin, inverse
from pydiscriminant.core.compute.tolerances import POSTERIOR_UNDERFLOW, ZERO_PRIOR
from pydiscriminant.core.exceptions import ComputationError, DimensionError
from pydiscriminant.core.validation import check_array, check_1d, check_finite
from pydiscriminant.discriminant._canonical import canonical_scores
from pydiscriminant.discriminant._common import (
    CanonicalParams,
    CaseClassification,
    CasewiseRow,
    CrossValidationParams,
)
from pydiscriminant.discriminant._group_stats import GroupStatistics
from pydiscriminant.discriminant._significance import mahalanobis_distance
from pydiscriminant.discriminant.design import DiscriminantDesign


def classification_functions(
    stats: GroupStatistics,
    priors: ArrayLike,
) -> NDArray[np.floating[Any]]:
    """
    Fisher linear classification function coefficients.

    Returns:
        (p+1, g) array; column j holds group j's coefficients with the
        constant term in the last row

    Raises:
        SingularMatrixError: If W is singular
    """
    prior_arr = np.asarray(priors, dtype=np.float64)
    W_inv = inverse(stats.within_sscp, 'within-groups SSCP')
    error_df = stats.n_total - stats.n_groups

    coefficients = error_df * W_inv @ stats.means_by_group.T           # (p, g)
    safe_priors = np.where(prior_arr > 0, prior_arr, ZERO_PRIOR)
    constants = np.log(safe_priors) - 0.5 * np.sum(coefficients * stats.means_by_group.T, axis=0)
    return np.vstack([coefficients, constants])


def _posteriors(
    squared_distances: NDArray[np.floating[Any]],
    priors: NDArray[np.floating[Any]],
) -> NDArray[np.floating[Any]]:
    scores = np.full(len(priors), -math.inf)
    positive = priors > 0
    if not np.any(positive):
        raise ComputationError("Cannot classify: no group has a positive prior probability")
    scores[positive] = np.log(priors[positive]) - 0.5 * squared_distances[positive]

    gaps = scores - np.max(scores)
    terms = np.where(gaps > -POSTERIOR_UNDERFLOW, np.exp(np.maximum(gaps, -POSTERIOR_UNDERFLOW)), 0.0)
    return terms / np.sum(terms)


def classify(
    model: CanonicalParams,
    stats: GroupStatistics,
    priors: ArrayLike,
    x: ArrayLike,
) -> CaseClassification:
    """
    Classify one case.

    Args:
        model: Canonical functions
        stats: Group moments (for group values)
        priors: Prior probability per group
        x: Case vector (p,)

    Returns:
        CaseClassification with predicted group, posteriors, canonical
        scores, squared centroid distances and their chi-square tail
        probabilities (df = number of functions)

    Raises:
        DimensionError: If len(x) != p
        ComputationError: If no prior is positive
    """
    case = check_array(x, 'x')
    check_1d(case, 'x')
    check_finite(case, 'x')
    if case.shape[0] != stats.n_variables:
        raise DimensionError(
            f"x: expected {stats.n_variables} values (one per variable), got {case.shape[0]}"
        )

    prior_arr = np.asarray(priors, dtype=np.float64)
    scores = canonical_scores(model, case)
    distances = np.sum((model.group_centroids - scores) ** 2, axis=1)
    df = model.n_functions
    chi_probs = np.array([chi_square_p_value(float(d), df) for d in distances])

    posterior = _posteriors(distances, prior_arr)
    best = argmax(posterior)
    return CaseClassification(
        predicted_group=stats.group_values[best],
        posterior_probabilities=posterior,
        discriminant_scores=scores,
        squared_distances=distances,
        chi_square_probabilities=chi_probs,
    )


def _leave_one_out_group(
    x: NDArray[np.floating[Any]],
    weight: float,
    own: int,
    stats: GroupStatistics,
    C_inv: NDArray[np.floating[Any]],
    priors: NDArray[np.floating[Any]],
) -> int:
    """Group index with the smallest prior-adjusted distance, case held out of its own group."""
    adjusted = np.full(stats.n_groups, math.inf)
    for k in range(stats.n_groups):
        if priors[k] <= 0:
            continue
        if k == own:
            remaining = stats.n_weighted[k] - weight
            if remaining <= 0:
                continue
            mean = (stats.n_weighted[k] * stats.means_by_group[k] - weight * x) / remaining
        else:
            mean = stats.means_by_group[k]
        adjusted[k] = mahalanobis_distance(x, mean, C_inv) - 2.0 * math.log(priors[k])

    if not np.any(np.isfinite(adjusted)):
        raise ComputationError("Leave-one-out: no group is eligible for the held-out case")
    return argmin(adjusted)


def _row_percentages(counts: NDArray[np.int_], row_totals: NDArray[np.int_]) -> NDArray[np.floating[Any]]:
    pct = np.zeros(counts.shape, dtype=np.float64)
    np.divide(100.0 * counts, row_totals[:, None], out=pct, where=row_totals[:, None] > 0)
    return pct


def _classify_all(
    model: CanonicalParams,
    stats: GroupStatistics,
    design: DiscriminantDesign,
) -> list[tuple[int, int, CaseClassification, int]]:
    """(case index, actual group, classification, LOO group) for every valid case."""
    priors = np.asarray(design.priors, dtype=np.float64)
    C_inv = inverse(stats.pooled_covariance, 'pooled within-groups covariance')
    rows = []
    for j, (X_j, w_j, idx_j) in enumerate(zip(design.data, design.weights, design.case_indices)):
        for x, w, case in zip(X_j, w_j, idx_j):
            result = classify(model, stats, priors, x)
            loo = _leave_one_out_group(x, float(w), j, stats, C_inv, priors)
            rows.append((int(case), j, result, loo))
    return rows


def cross_validate(
    model: CanonicalParams,
    stats: GroupStatistics,
    design: DiscriminantDesign,
) -> CrossValidationParams:
    """
    Original and leave-one-out classification tables.

    Row j of each table counts the cases of group j by predicted group.
    Percentages are relative to the group's case count; the correct
    percentages are relative to all valid cases.

    Raises:
        SingularMatrixError: If the pooled covariance is singular
        ComputationError: If no prior is positive
    """
    g = stats.n_groups
    index_of = {value: j for j, value in enumerate(stats.group_values)}
    original = np.zeros((g, g), dtype=np.int_)
    cross = np.zeros((g, g), dtype=np.int_)

    rows = _classify_all(model, stats, design)
    for _, actual, result, loo in rows:
        original[actual, index_of[result.predicted_group]] += 1
        cross[actual, loo] += 1

    row_totals = original.sum(axis=1)
    total_cases = int(row_totals.sum())
    return CrossValidationParams(
        original_count=original,
        original_percentage=_row_percentages(original, row_totals),
        cross_validated_count=cross,
        cross_validated_percentage=_row_percentages(cross, row_totals),
        original_correct_pct=100.0 * int(np.trace(original)) / total_cases if total_cases else 0.0,
        cross_validated_correct_pct=100.0 * int(np.trace(cross)) / total_cases if total_cases else 0.0,
    )


def casewise_classification(
    model: CanonicalParams,
    stats: GroupStatistics,
    design: DiscriminantDesign,
) -> tuple[CasewiseRow, ...]:
    """Per-case listing of actual, predicted and leave-one-out groups, in input order."""
    rows = _classify_all(model, stats, design)
    listing = []
    for case, actual, result, loo in rows:
        best = argmax(result.posterior_probabilities)
        listing.append(CasewiseRow(
            case=case,
            actual_group=stats.group_values[actual],
            predicted_group=result.predicted_group,
            posterior_probability=float(result.posterior_probabilities[best]),
            squared_distance=float(result.squared_distances[best]),
            cross_validated_group=stats.group_values[loo],
        ))
    return tuple(sorted(listing, key=lambda row: row.case))
