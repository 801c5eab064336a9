"""
Discriminant analysis over one design.

DiscriminantAnalysis computes the group statistics once at construction
and everything else on demand. The canonical model is cached on first
use; classification, cross-validation and stepwise runs are recomputed
on every call.
"""

from __future__ import annotations

from functools import cached_property
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.result import Section
from pydiscriminant.discriminant._canonical import solve_canonical
from pydiscriminant.discriminant._classification import (
    casewise_classification,
    classification_functions,
    classify,
    cross_validate,
)
from pydiscriminant.discriminant._common import (
    BoxMParams,
    CanonicalParams,
    CaseClassification,
    CaseProcessingSummary,
    CasewiseRow,
    CrossValidationParams,
    DiscriminantReport,
    FLambdaParams,
    GroupStatisticsTable,
    StepwiseParams,
)
from pydiscriminant.discriminant._group_stats import GroupStatistics, build_group_statistics
from pydiscriminant.discriminant._significance import box_m_test, univariate_f_lambda
from pydiscriminant.discriminant._stepwise import StepwiseOptions, run_stepwise
from pydiscriminant.discriminant.design import DiscriminantDesign


class DiscriminantAnalysis:
    """
    Named discriminant-analysis operations over a validated design.

    Every operation raises a DiscriminantError subclass on failure;
    get_results() collects all of them into a report of tagged Sections.

    Example:
        >>> design = DiscriminantDesign.from_arrays(X, groups)
        >>> analysis = DiscriminantAnalysis(design)
        >>> analysis.univariate_f_lambda(0).f_value
        >>> analysis.compute_canonical_discriminant_functions().eigenvalues
        >>> analysis.classify(X[0]).predicted_group
    """

    def __init__(self, design: DiscriminantDesign):
        self._design = design
        self._stats = build_group_statistics(design)

    @property
    def design(self) -> DiscriminantDesign:
        return self._design

    @property
    def statistics(self) -> GroupStatistics:
        return self._stats

    @cached_property
    def canonical_model(self) -> CanonicalParams:
        """Canonical functions, solved once per analysis."""
        X, _, _ = self._design.stacked()
        return solve_canonical(self._stats, X)

    # === Tests ===

    def univariate_f_lambda(self, variable: int) -> FLambdaParams:
        name = (
            self._design.variable_names[variable]
            if 0 <= variable < self._design.n_variables else None
        )
        return univariate_f_lambda(self._stats, variable, name)

    def univariate_tests(self) -> tuple[FLambdaParams, ...]:
        """Tests of equality of group means, one per variable."""
        return tuple(self.univariate_f_lambda(i) for i in range(self._design.n_variables))

    def box_m_test(self) -> BoxMParams:
        return box_m_test(self._stats)

    # === Canonical functions and classification ===

    def compute_canonical_discriminant_functions(self) -> CanonicalParams:
        return self.canonical_model

    def classification_functions(self) -> NDArray[np.floating[Any]]:
        """Fisher coefficients (p+1, g), constant in the last row."""
        return classification_functions(self._stats, self._design.priors)

    def classify(self, x: ArrayLike) -> CaseClassification:
        return classify(self.canonical_model, self._stats, self._design.priors, x)

    def cross_validate(self) -> CrossValidationParams:
        return cross_validate(self.canonical_model, self._stats, self._design)

    def casewise_classification(self) -> tuple[CasewiseRow, ...]:
        return casewise_classification(self.canonical_model, self._stats, self._design)

    # === Stepwise ===

    def perform_stepwise_analysis(self, options: StepwiseOptions | None = None) -> StepwiseParams:
        return run_stepwise(self._stats, options, self._design.variable_names)

    # === Descriptives ===

    def case_processing_summary(self) -> CaseProcessingSummary:
        return self._design.case_summary

    def group_statistics(self) -> GroupStatisticsTable:
        return GroupStatisticsTable(
            group_means=self._stats.means_by_group,
            group_std_devs=self._stats.group_std_devs,
            overall_means=self._stats.means_overall,
            overall_std_devs=self._stats.overall_std_devs,
            total_correlation=self._stats.total_correlation,
            n_cases=self._stats.n_cases,
            n_weighted=tuple(float(v) for v in self._stats.n_weighted),
        )

    # === Aggregate report ===

    def get_results(self, stepwise: StepwiseOptions | None = None) -> DiscriminantReport:
        """
        Compute every statistic, tagging each one Ok or Err.

        Args:
            stepwise: When given, a stepwise run with these options is
                included as the 'stepwise' section

        Returns:
            DiscriminantReport; a failed section records the error kind
            and message and the remaining sections are unaffected
        """
        stats = self._stats
        return DiscriminantReport(
            variable_names=self._design.variable_names,
            group_values=self._design.group_values,
            case_processing=Section.success(self.case_processing_summary()),
            group_statistics=Section.capture(self.group_statistics),
            univariate_tests=Section.capture(self.univariate_tests),
            pooled_covariance=Section.success(stats.pooled_covariance),
            pooled_correlation=Section.success(stats.within_correlation),
            group_covariances=Section.success(stats.group_covariances),
            total_covariance=Section.success(stats.total_covariance),
            box_m=Section.capture(self.box_m_test),
            canonical=Section.capture(self.compute_canonical_discriminant_functions),
            classification_functions=Section.capture(self.classification_functions),
            classification_results=Section.capture(self.cross_validate),
            stepwise=(
                Section.capture(self.perform_stepwise_analysis, stepwise)
                if stepwise is not None else None
            ),
        )
