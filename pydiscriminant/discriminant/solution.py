"""
User-facing discriminant analysis solution types.

Each solution wraps a Result[Params] and provides convenient accessors
and an SPSS-style text summary.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pydiscriminant.core.result import Result, Section
from pydiscriminant.discriminant._common import (
    BoxMParams,
    CanonicalParams,
    CaseProcessingSummary,
    CasewiseRow,
    CrossValidationParams,
    DiscriminantReport,
    FLambdaParams,
    GroupStatisticsTable,
    PairwiseComparison,
    StepInfo,
    StepwiseParams,
    VariableInAnalysis,
    VariableNotInAnalysis,
)


def _significance_stars(p: float) -> str:
    if p < 0.001:
        return '***'
    if p < 0.01:
        return '**'
    if p < 0.05:
        return '*'
    if p < 0.1:
        return '.'
    return ''


def _failed_line(title: str, section: Section[Any]) -> str:
    return f"{title}: not available [{section.error}] {section.message}"


# =====================================================================
# DiscriminantSolution
# =====================================================================


@dataclass
class DiscriminantSolution:
    """
    User-facing result of a discriminant analysis.

    Produced by discriminant(). Accessors for statistics raise the
    original error kind when that section could not be computed; the
    full tagged report is available as .report.
    """
    _result: Result[DiscriminantReport]

    @property
    def report(self) -> DiscriminantReport:
        return self._result.params

    @property
    def variable_names(self) -> tuple[str, ...]:
        return self._result.params.variable_names

    @property
    def group_values(self) -> tuple[Any, ...]:
        return self._result.params.group_values

    @property
    def case_processing(self) -> CaseProcessingSummary:
        return self._result.params.case_processing.unwrap()

    @property
    def group_statistics(self) -> GroupStatisticsTable:
        return self._result.params.group_statistics.unwrap()

    @property
    def univariate_tests(self) -> tuple[FLambdaParams, ...]:
        return self._result.params.univariate_tests.unwrap()

    @property
    def pooled_covariance(self) -> NDArray[np.floating[Any]]:
        return self._result.params.pooled_covariance.unwrap()

    @property
    def pooled_correlation(self) -> NDArray[np.floating[Any]]:
        return self._result.params.pooled_correlation.unwrap()

    @property
    def box_m(self) -> BoxMParams:
        return self._result.params.box_m.unwrap()

    @property
    def canonical(self) -> CanonicalParams:
        return self._result.params.canonical.unwrap()

    @property
    def eigenvalues(self) -> NDArray[np.floating[Any]]:
        return self.canonical.eigenvalues

    @property
    def classification_functions(self) -> NDArray[np.floating[Any]]:
        """Fisher coefficients (p+1, g), constant in the last row."""
        return self._result.params.classification_functions.unwrap()

    @property
    def classification_results(self) -> CrossValidationParams:
        return self._result.params.classification_results.unwrap()

    @property
    def casewise(self) -> tuple[CasewiseRow, ...] | None:
        return self._result.info.get('casewise')

    @property
    def stepwise(self) -> StepwiseParams | None:
        section = self._result.params.stepwise
        return None if section is None else section.unwrap()

    @property
    def failed_sections(self) -> tuple[str, ...]:
        return self._result.params.failed

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """SPSS-style discriminant analysis summary."""
        report = self.report
        names = report.variable_names
        lines = [
            "Discriminant Analysis",
            "=" * 72,
        ]

        if report.case_processing.ok:
            cp = report.case_processing.value
            lines.append(
                f"Cases: {cp.total} total, {cp.valid} valid ({cp.percent(cp.valid):.1f}%), "
                f"{cp.excluded} excluded"
            )
        lines.append(f"Groups: {', '.join(str(g) for g in report.group_values)}")
        lines.append(f"Variables: {', '.join(names)}")

        lines.append("")
        lines.append("Tests of Equality of Group Means")
        if report.univariate_tests.ok:
            lines.append(
                f"{'Variable':<16} {'Wilks L':>10} {'F':>12} {'df1':>5} {'df2':>7} {'Sig.':>12}"
            )
            lines.append("-" * 72)
            for row in report.univariate_tests.value:
                lines.append(
                    f"{row.variable:<16} {row.wilks_lambda:>10.4f} {row.f_value:>12.4f} "
                    f"{row.df1:>5} {row.df2:>7} {row.significance:>12.4e} "
                    f"{_significance_stars(row.significance)}"
                )
        else:
            lines.append(_failed_line("Univariate tests", report.univariate_tests))

        lines.append("")
        if report.box_m.ok:
            box = report.box_m.value
            if box.chi_square is None:
                lines.append(
                    f"Box's M = {box.m:.4f}, F({box.df1:.0f}, {box.df2:.1f}) = "
                    f"{box.f_value:.4f}, p = {box.p_value:.4e}"
                )
            else:
                lines.append(
                    f"Box's M = {box.m:.4f}, Chi-sq({box.df1:.0f}) = "
                    f"{box.chi_square:.4f}, p = {box.p_value:.4e}"
                )
        else:
            lines.append(_failed_line("Box's M", report.box_m))

        lines.append("")
        lines.append("Canonical Discriminant Functions")
        if report.canonical.ok:
            model = report.canonical.value
            lines.append(
                f"{'Function':>8} {'Eigenvalue':>12} {'% Var':>8} {'Cum %':>8} {'Canon. R':>10}"
            )
            lines.append("-" * 72)
            for row in model.eigen_statistics:
                lines.append(
                    f"{row.function:>8} {row.eigenvalue:>12.4f} {row.pct_of_variance:>8.2f} "
                    f"{row.cumulative_pct:>8.2f} {row.canonical_correlation:>10.4f}"
                )
            lines.append("")
            lines.append(
                f"{'Test of':>8} {'Wilks L':>10} {'Chi-sq':>12} {'df':>5} {'Sig.':>12}"
            )
            for row in model.function_wilks:
                through = f"{row.first_function}-{model.n_functions}" if row.first_function < model.n_functions else f"{row.first_function}"
                lines.append(
                    f"{through:>8} {row.wilks_lambda:>10.4f} {row.chi_square:>12.4f} "
                    f"{row.df:>5} {row.significance:>12.4e} {_significance_stars(row.significance)}"
                )
        else:
            lines.append(_failed_line("Canonical functions", report.canonical))

        lines.append("")
        if report.classification_results.ok:
            cv = report.classification_results.value
            lines.append(
                f"Correctly classified: {cv.original_correct_pct:.1f}% original, "
                f"{cv.cross_validated_correct_pct:.1f}% cross-validated"
            )
        else:
            lines.append(_failed_line("Classification", report.classification_results))

        if report.stepwise is not None:
            lines.append("")
            if report.stepwise.ok:
                lines.append(_stepwise_lines(report.stepwise.value))
            else:
                lines.append(_failed_line("Stepwise", report.stepwise))

        lines.append("-" * 72)
        lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"DiscriminantSolution(groups={len(self.group_values)}, "
            f"variables={len(self.variable_names)}, failed={list(self.failed_sections)})"
        )


def _stepwise_lines(params: StepwiseParams) -> str:
    lines = [
        "Variables Entered/Removed",
        f"{'Step':>4} {'Action':<8} {'Variable':<16} {'Wilks L':>10} {'Exact F':>10} {'Sig.':>12}",
        "-" * 72,
    ]
    for step in params.steps:
        lines.append(
            f"{step.step:>4} {step.action:<8} {step.variable_name:<16} "
            f"{step.wilks_lambda:>10.4f} {step.exact_f:>10.4f} {step.significance:>12.4e}"
        )
    if not params.steps:
        lines.append("  (no variable met the entry criterion)")
    if params.stopped_at_max_steps:
        lines.append("  Stopped at the maximum number of steps")
    return "\n".join(lines)


# =====================================================================
# StepwiseSolution
# =====================================================================


@dataclass
class StepwiseSolution:
    """
    User-facing result of a stepwise variable selection.

    Produced by stepwise_discriminant().
    """
    _result: Result[StepwiseParams]

    @property
    def steps(self) -> tuple[StepInfo, ...]:
        return self._result.params.steps

    @property
    def selected(self) -> tuple[int, ...]:
        """Indices of the selected variables, in entry order."""
        return self._result.params.selected

    @property
    def selected_names(self) -> tuple[str, ...]:
        names = self._result.info['variable_names']
        return tuple(names[i] for i in self.selected)

    @property
    def variables_in(self) -> tuple[VariableInAnalysis, ...]:
        return self._result.params.variables_in

    @property
    def variables_not_in(self) -> tuple[VariableNotInAnalysis, ...]:
        return self._result.params.variables_not_in

    @property
    def pairwise(self) -> tuple[PairwiseComparison, ...]:
        return self._result.params.pairwise

    @property
    def stopped_at_max_steps(self) -> bool:
        return self._result.params.stopped_at_max_steps

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """SPSS-style stepwise summary."""
        lines = [
            f"Stepwise Discriminant Analysis (method: {self._result.info['method']})",
            "=" * 72,
            _stepwise_lines(self._result.params),
            "",
            f"Selected: {', '.join(self.selected_names) or '(none)'}",
        ]
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"StepwiseSolution(selected={list(self.selected_names)}, steps={len(self.steps)})"
