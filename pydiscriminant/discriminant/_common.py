"""
Common data types for discriminant analysis.

Contains the frozen parameter payloads that go inside Result[P] envelopes
and Section outcomes. Each payload is a pure data container; the only
methods are derived read-only properties.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pydiscriminant.core.compute.linalg import round_to_decimal
from pydiscriminant.core.result import Section


# =====================================================================
# Case processing
# =====================================================================

@dataclass(frozen=True)
class CaseProcessingSummary:
    """
    Counts of cases used and excluded when the design was built.

    A case is excluded when its group code is missing or out of range,
    when at least one discriminating variable is missing, or both.
    """
    total: int
    valid: int
    missing_group: int
    missing_variables: int
    missing_both: int

    @property
    def excluded(self) -> int:
        return self.missing_group + self.missing_variables + self.missing_both

    def percent(self, count: int) -> float:
        """Share of all cases, in percent, rounded to one decimal."""
        if self.total == 0:
            return 0.0
        return round_to_decimal(100.0 * count / self.total, 1)


# =====================================================================
# Significance tests
# =====================================================================

@dataclass(frozen=True)
class FLambdaParams:
    """Univariate test of equality of group means for one variable."""
    variable: str
    wilks_lambda: float
    f_value: float
    df1: int
    df2: int
    significance: float


@dataclass(frozen=True)
class BoxMParams:
    """
    Box's M test of equality of group covariance matrices.

    ``log_determinants`` lists (group value, ln|C_j|) for the groups that
    took part (non-singular covariance). ``chi_square`` is set only when
    the chi-square approximation was used.
    """
    m: float
    f_value: float
    df1: float
    df2: float
    p_value: float
    log_determinants: tuple[tuple[Any, float], ...]
    pooled_log_determinant: float
    chi_square: float | None = None


@dataclass(frozen=True)
class ChiSquareRow:
    """Wilks' Lambda for functions first_function..m (one table row)."""
    first_function: int
    wilks_lambda: float
    chi_square: float
    df: int
    significance: float


@dataclass(frozen=True)
class EigenStatistic:
    """One row of the eigenvalue table."""
    function: int
    eigenvalue: float
    pct_of_variance: float
    cumulative_pct: float
    canonical_correlation: float


# =====================================================================
# Canonical model
# =====================================================================

@dataclass(frozen=True)
class CanonicalParams:
    """
    Canonical discriminant functions.

    m = min(q, g-1) functions over p variables.

    Attributes:
        eigenvalues: (m,) non-increasing
        raw_coefficients: (p, m) eigenvectors of (T-W)W⁻¹
        standardized_coefficients: (p, m)
        unstandardized_coefficients: (p+1, m), last row is the constant
        structure_matrix: (p, m) variable/score correlations
        group_centroids: (g, m) centroids in normalized function space
        canonical_correlations: (m,)
        eigen_statistics: eigenvalue table rows
        function_wilks: Wilks' Lambda table rows
        centroid_shift: (m,) weighted mean of raw group scores
        centroid_scale: (m,) factor giving unit weighted centroid variance
    """
    eigenvalues: NDArray[np.floating[Any]]
    raw_coefficients: NDArray[np.floating[Any]]
    standardized_coefficients: NDArray[np.floating[Any]]
    unstandardized_coefficients: NDArray[np.floating[Any]]
    structure_matrix: NDArray[np.floating[Any]]
    group_centroids: NDArray[np.floating[Any]]
    canonical_correlations: NDArray[np.floating[Any]]
    eigen_statistics: tuple[EigenStatistic, ...]
    function_wilks: tuple[ChiSquareRow, ...]
    centroid_shift: NDArray[np.floating[Any]]
    centroid_scale: NDArray[np.floating[Any]]

    @property
    def n_functions(self) -> int:
        return len(self.eigenvalues)


# =====================================================================
# Classification
# =====================================================================

@dataclass(frozen=True)
class CaseClassification:
    """Classification of a single case."""
    predicted_group: Any
    posterior_probabilities: NDArray[np.floating[Any]]
    discriminant_scores: NDArray[np.floating[Any]]
    squared_distances: NDArray[np.floating[Any]]
    chi_square_probabilities: NDArray[np.floating[Any]]


@dataclass(frozen=True)
class CrossValidationParams:
    """
    Original and leave-one-out classification tables.

    Counts are (g, g) with rows = actual group, columns = predicted group.
    Percentages are row percentages of the actual group's case count.
    """
    original_count: NDArray[np.int_]
    original_percentage: NDArray[np.floating[Any]]
    cross_validated_count: NDArray[np.int_]
    cross_validated_percentage: NDArray[np.floating[Any]]
    original_correct_pct: float
    cross_validated_correct_pct: float


@dataclass(frozen=True)
class CasewiseRow:
    """Per-case classification listing."""
    case: int
    actual_group: Any
    predicted_group: Any
    posterior_probability: float
    squared_distance: float
    cross_validated_group: Any


# =====================================================================
# Stepwise selection
# =====================================================================

@dataclass(frozen=True)
class StepInfo:
    """
    One entry/removal step.

    wilks_lambda is the overall Λ after the step with degrees of freedom
    (df1, df2, df3) = (variables in model, g-1, n-g); exact_f is its F
    transform with (exact_f_df1, exact_f_df2).
    """
    step: int
    variable_index: int
    variable_name: str
    action: str                 # 'entered' or 'removed'
    statistic: float            # F-to-enter or F-to-remove that drove the step
    wilks_lambda: float
    df1: int
    df2: int
    df3: int
    exact_f: float
    exact_f_df1: float
    exact_f_df2: float
    significance: float


@dataclass(frozen=True)
class VariableInAnalysis:
    """A variable in the model at a given step."""
    step: int
    variable_index: int
    variable_name: str
    tolerance: float
    f_to_remove: float


@dataclass(frozen=True)
class VariableNotInAnalysis:
    """A candidate variable outside the model at a given step."""
    step: int
    variable_index: int
    variable_name: str
    tolerance: float
    min_tolerance: float
    f_to_enter: float
    wilks_lambda: float


@dataclass(frozen=True)
class PairwiseComparison:
    """F test for the distance between two groups at a given step."""
    step: int
    group1: Any
    group2: Any
    f_value: float
    df1: int
    df2: int
    significance: float


@dataclass(frozen=True)
class StepwiseParams:
    """
    Outcome of a stepwise run.

    ``selected`` lists the variables in the final model in entry order.
    ``working_within`` / ``working_total`` are the swept scratch copies
    of W and T as they stood at the end of the run.
    """
    steps: tuple[StepInfo, ...]
    variables_in: tuple[VariableInAnalysis, ...]
    variables_not_in: tuple[VariableNotInAnalysis, ...]
    pairwise: tuple[PairwiseComparison, ...]
    selected: tuple[int, ...]
    working_within: NDArray[np.floating[Any]]
    working_total: NDArray[np.floating[Any]]
    stopped_at_max_steps: bool


# =====================================================================
# Aggregate report
# =====================================================================

@dataclass(frozen=True)
class GroupStatisticsTable:
    """Means and standard deviations by group and overall."""
    group_means: NDArray[np.floating[Any]]
    group_std_devs: NDArray[np.floating[Any]]
    overall_means: NDArray[np.floating[Any]]
    overall_std_devs: NDArray[np.floating[Any]]
    total_correlation: NDArray[np.floating[Any]]
    n_cases: tuple[int, ...]
    n_weighted: tuple[float, ...]


@dataclass(frozen=True)
class DiscriminantReport:
    """
    Every statistic of one analysis, each as a tagged Section.

    A section that failed carries the error kind and message, never a
    placeholder value.
    """
    variable_names: tuple[str, ...]
    group_values: tuple[Any, ...]
    case_processing: Section[CaseProcessingSummary]
    group_statistics: Section[GroupStatisticsTable]
    univariate_tests: Section[tuple[FLambdaParams, ...]]
    pooled_covariance: Section[NDArray[np.floating[Any]]]
    pooled_correlation: Section[NDArray[np.floating[Any]]]
    group_covariances: Section[NDArray[np.floating[Any]]]
    total_covariance: Section[NDArray[np.floating[Any]]]
    box_m: Section[BoxMParams]
    canonical: Section[CanonicalParams]
    classification_functions: Section[NDArray[np.floating[Any]]]
    classification_results: Section[CrossValidationParams]
    stepwise: Section[StepwiseParams] | None = None

    def sections(self) -> dict[str, Section[Any]]:
        """All sections by name (stepwise only when it was run)."""
        named = {
            'case_processing': self.case_processing,
            'group_statistics': self.group_statistics,
            'univariate_tests': self.univariate_tests,
            'pooled_covariance': self.pooled_covariance,
            'pooled_correlation': self.pooled_correlation,
            'group_covariances': self.group_covariances,
            'total_covariance': self.total_covariance,
            'box_m': self.box_m,
            'canonical': self.canonical,
            'classification_functions': self.classification_functions,
            'classification_results': self.classification_results,
        }
        if self.stepwise is not None:
            named['stepwise'] = self.stepwise
        return named

    @property
    def failed(self) -> tuple[str, ...]:
        """Names of sections that could not be computed."""
        return tuple(name for name, section in self.sections().items() if not section.ok)
