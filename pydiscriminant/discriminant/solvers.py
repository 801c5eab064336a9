"""
Discriminant analysis solver dispatch.

Public API:
    discriminant(X, groups, ...) -> DiscriminantSolution
    stepwise_discriminant(X, groups, ...) -> StepwiseSolution
"""

import warnings
from dataclasses import replace
from typing import Any, Callable, Sequence, TypeVar

from numpy.typing import ArrayLike

from pydiscriminant.core.compute.linalg import qr_decomposition
from pydiscriminant.core.compute.timing import Timer
from pydiscriminant.core.exceptions import NotEnoughVariablesError, ValidationError
from pydiscriminant.core.result import Result, Section
from pydiscriminant.discriminant._common import DiscriminantReport
from pydiscriminant.discriminant._stepwise import StepwiseOptions
from pydiscriminant.discriminant.analysis import DiscriminantAnalysis
from pydiscriminant.discriminant.design import DiscriminantDesign
from pydiscriminant.discriminant.solution import DiscriminantSolution, StepwiseSolution


T = TypeVar('T')

METHODS = ('direct', 'stepwise')


def _collect(warn_list: list[str], func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run func, recording RuntimeWarnings it raises into warn_list and re-issuing them.

    Warnings issued before func fails are still recorded and re-issued.
    """
    caught: list[warnings.WarningMessage] = []
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always', RuntimeWarning)
            value = func(*args, **kwargs)
    finally:
        for w in caught:
            if issubclass(w.category, RuntimeWarning):
                warn_list.append(str(w.message))
            warnings.warn(str(w.message), w.category, stacklevel=3)
    return value


def _rank_check(design: DiscriminantDesign, warn_list: list[str]) -> None:
    """Warn when the variables are linearly dependent over the valid cases."""
    X, _, _ = design.stacked()
    centred = X - X.mean(axis=0)
    if centred.shape[0] < centred.shape[1]:
        return
    rank = qr_decomposition(centred, 'X').rank
    if rank < design.n_variables:
        msg = (
            f"Discriminating variables are collinear (rank {rank} < {design.n_variables}); "
            f"W may be singular"
        )
        warnings.warn(msg, RuntimeWarning, stacklevel=3)
        warn_list.append(msg)


def discriminant(
    X: ArrayLike,
    groups: ArrayLike,
    *,
    weights: ArrayLike | None = None,
    priors: ArrayLike | None = None,
    variable_names: Sequence[str] | None = None,
    group_range: tuple[float, float] | None = None,
    method: str = 'direct',
    stepwise_options: StepwiseOptions | None = None,
    casewise: bool = False,
) -> DiscriminantSolution:
    """
    Linear discriminant analysis.

    Args:
        X: Discriminating variables (n, p); NaN marks a missing value
        groups: Numeric group code per case (n,)
        weights: Case weights (n,), default 1.0
        priors: Prior probability per group in sorted group order
            (default 0.5 each, not renormalized)
        variable_names: Column names, default X1..Xp
        group_range: (min, max) accepted integer group codes
        method: 'direct' enters all variables together; 'stepwise'
            selects variables first and analyzes the selected subset
        stepwise_options: Options for method='stepwise'
        casewise: Also list per-case classification in info['casewise']

    Returns:
        DiscriminantSolution. Sections that cannot be computed (for
        example Box's M with singular group covariances) are reported as
        failures in the solution's report, not raised.

    Raises:
        ValidationError: On malformed input or an unknown method
        NotEnoughGroupsError, InvalidGroupSizeError, InsufficientDataError:
            When the data cannot support any analysis

    Examples:
        >>> result = discriminant(X, groups)
        >>> print(result.summary())
        >>> result.canonical.eigenvalues
        >>> result.classification_results.cross_validated_correct_pct
    """
    if method not in METHODS:
        raise ValidationError(f"method must be one of {METHODS}, got {method!r}")

    timer = Timer()
    timer.start()
    warn_list: list[str] = []

    with timer.section('design'):
        design = DiscriminantDesign.from_arrays(
            X, groups,
            weights=weights,
            priors=priors,
            variable_names=variable_names,
            group_range=group_range,
        )
        _rank_check(design, warn_list)

    stepwise_section = None
    analyzed = design
    if method == 'stepwise':
        opts = stepwise_options if stepwise_options is not None else StepwiseOptions()
        with timer.section('stepwise'):
            full = DiscriminantAnalysis(design)
            stepwise_section = _collect(
                warn_list, Section.capture, full.perform_stepwise_analysis, opts,
            )
        if stepwise_section.ok and stepwise_section.value.selected:
            analyzed = design.select_variables(stepwise_section.value.selected)

    with timer.section('group_statistics'):
        analysis = DiscriminantAnalysis(analyzed)

    with timer.section('report'):
        report = _collect(warn_list, analysis.get_results)

    if method == 'stepwise':
        report = _stepwise_report(report, stepwise_section)

    info: dict[str, Any] = {
        'method': method,
        'n_cases': sum(design.n_cases),
        'n_weighted': sum(design.n_weighted),
        'priors': tuple(float(v) for v in design.priors),
        'analyzed_variables': analyzed.variable_names,
    }
    if casewise and report.canonical.ok:
        with timer.section('casewise'):
            listing = Section.capture(analysis.casewise_classification)
        if listing.ok:
            info['casewise'] = listing.value

    timer.stop()

    result = Result(
        params=report,
        info=info,
        timing=timer.result(),
        backend_name='cpu_discriminant',
        warnings=tuple(warn_list),
    )
    return DiscriminantSolution(_result=result)


def _stepwise_report(
    report: DiscriminantReport,
    stepwise_section: Section[Any],
) -> DiscriminantReport:
    """Attach the stepwise section; with nothing selected, model sections fail as NotEnoughVariables."""
    if stepwise_section.ok and not stepwise_section.value.selected:
        none_selected = Section.failure(
            NotEnoughVariablesError("Stepwise selection entered no variables")
        )
        return replace(
            report,
            stepwise=stepwise_section,
            canonical=none_selected,
            classification_functions=none_selected,
            classification_results=none_selected,
        )
    return replace(report, stepwise=stepwise_section)


def stepwise_discriminant(
    X: ArrayLike,
    groups: ArrayLike,
    *,
    weights: ArrayLike | None = None,
    variable_names: Sequence[str] | None = None,
    group_range: tuple[float, float] | None = None,
    options: StepwiseOptions | None = None,
) -> StepwiseSolution:
    """
    Stepwise variable selection for discriminant analysis.

    Args:
        X, groups, weights, variable_names, group_range: As in discriminant()
        options: Method, criteria and limits (default: Wilks' Lambda,
            F to enter 3.84, F to remove 2.71, at most 10 steps)

    Returns:
        StepwiseSolution

    Raises:
        NotEnoughGroupsError: If there are fewer than 2 groups
        SingularMatrixError: If a sweep pivot vanishes

    Examples:
        >>> result = stepwise_discriminant(X, groups)
        >>> result.selected_names
        >>> print(result.summary())
    """
    opts = options if options is not None else StepwiseOptions()

    timer = Timer()
    timer.start()
    warn_list: list[str] = []

    with timer.section('design'):
        design = DiscriminantDesign.from_arrays(
            X, groups,
            weights=weights,
            variable_names=variable_names,
            group_range=group_range,
        )

    with timer.section('stepwise'):
        analysis = DiscriminantAnalysis(design)
        params = _collect(warn_list, analysis.perform_stepwise_analysis, opts)

    timer.stop()

    result = Result(
        params=params,
        info={
            'method': opts.method,
            'criteria': opts.criteria.kind,
            'entry': opts.criteria.entry,
            'removal': opts.criteria.removal,
            'max_steps': opts.max_steps,
            'variable_names': design.variable_names,
        },
        timing=timer.result(),
        backend_name='cpu_stepwise',
        warnings=tuple(warn_list),
    )
    return StepwiseSolution(_result=result)
