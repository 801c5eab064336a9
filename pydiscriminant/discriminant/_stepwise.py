"""
Stepwise variable selection.

Forward entry / backward removal driven by the sweep operator on working
copies of W and T. Sweeping pivot k of a symmetric matrix A:

    a_kk' = -1/d,   a_ik' = a_ik/d,   a_kj' = a_kj/d,   a_ij' = a_ij - a_ik a_kj/d

with d = a_kk. After the set S has been swept, an excluded diagonal
W'_ii holds the residual w_ii.S and the S block holds -W_SS⁻¹, so the
partial Wilks' Lambda of an included variable j is T'_jj / W'_jj.
reverse_sweep undoes one sweep.

Candidates are screened by tolerance, read off the swept working matrix,

    tol_i = W'_ii / w_ii = |W_{S+i}| / (|W_S| · w_ii)     (1 - R² of i on S)

and ranked by F-to-enter:

    k = 0:   F = (t_ii - w_ii)(n - g) / (w_ii (g - 1))
    k > 0:   F = (1 - Λ_{S+i}/Λ_S) / (Λ_{S+i}/Λ_S) · (n - g - k)/(g - 1)

with Λ_S = |W_S| / |T_S|, evaluated on W and T rescaled by the total
standard deviations so that no statistic depends on the units of X.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from pydiscriminant.core.compute.distributions import f_test_p_value
from pydiscriminant.core.compute.linalg import determinant
from pydiscriminant.core.compute.tolerances import PIVOT_TOLERANCE
from pydiscriminant.core.exceptions import (
    NotEnoughGroupsError,
    SingularMatrixError,
    ValidationError,
)
from pydiscriminant.discriminant._common import (
    PairwiseComparison,
    StepInfo,
    StepwiseParams,
    VariableInAnalysis,
    VariableNotInAnalysis,
)
from pydiscriminant.discriminant._group_stats import GroupStatistics
from pydiscriminant.discriminant._significance import rao_f_approximation


METHODS = ('wilks', 'unexplained', 'mahalanobis', 'smallest_f', 'rao_v')
CRITERIA_KINDS = ('f', 'probability')

ENTERED = 'Entered'
REMOVED = 'Removed'


# === Configuration ===

@dataclass(frozen=True)
class StepwiseCriteria:
    """
    Entry and removal thresholds.

    kind 'f' compares F statistics (enter when F >= entry, remove when
    F <= removal); kind 'probability' compares F-test p-values (enter when
    p <= entry, remove when p >= removal). v_to_enter is the minimum
    change in Rao's V for method 'rao_v'.
    """
    kind: str = 'f'
    entry: float = 3.84
    removal: float = 2.71
    v_to_enter: float = 0.0

    def __post_init__(self):
        if self.kind not in CRITERIA_KINDS:
            raise ValidationError(f"criteria kind must be one of {CRITERIA_KINDS}, got {self.kind!r}")
        if self.kind == 'f':
            if self.removal < 0 or self.entry <= self.removal:
                raise ValidationError(
                    f"F criteria need entry > removal >= 0, got entry={self.entry}, removal={self.removal}"
                )
        else:
            if not (0 < self.entry < self.removal <= 1):
                raise ValidationError(
                    f"probability criteria need 0 < entry < removal <= 1, "
                    f"got entry={self.entry}, removal={self.removal}"
                )

    @classmethod
    def f_values(cls, entry: float = 3.84, removal: float = 2.71) -> StepwiseCriteria:
        return cls(kind='f', entry=entry, removal=removal)

    @classmethod
    def probabilities(cls, entry: float = 0.05, removal: float = 0.10) -> StepwiseCriteria:
        return cls(kind='probability', entry=entry, removal=removal)

    def admits(self, f_value: float, df1: float, df2: float) -> bool:
        if self.kind == 'f':
            return f_value >= self.entry
        return f_test_p_value(f_value, df1, df2) <= self.entry

    def expels(self, f_value: float, df1: float, df2: float) -> bool:
        if self.kind == 'f':
            return f_value <= self.removal
        return f_test_p_value(f_value, df1, df2) >= self.removal


@dataclass(frozen=True)
class StepwiseOptions:
    """Stepwise run configuration."""
    method: str = 'wilks'
    criteria: StepwiseCriteria = field(default_factory=StepwiseCriteria)
    max_steps: int = 10
    min_tolerance: float = 0.001
    display_pairwise: bool = False

    def __post_init__(self):
        if self.method not in METHODS:
            raise ValidationError(f"method must be one of {METHODS}, got {self.method!r}")
        if self.max_steps < 0:
            raise ValidationError(f"max_steps must be non-negative, got {self.max_steps}")
        if not 0 <= self.min_tolerance < 1:
            raise ValidationError(f"min_tolerance must be in [0, 1), got {self.min_tolerance}")


# === Sweep operator ===

def _pivot(A: NDArray[np.floating[Any]], k: int) -> float:
    d = float(A[k, k])
    if abs(d) < PIVOT_TOLERANCE:
        raise SingularMatrixError(
            f"Sweep on variable {k}: pivot {d:.3g} is below {PIVOT_TOLERANCE:g}",
            matrix_name='working SSCP',
        )
    return d


def sweep(A: NDArray[np.floating[Any]], k: int) -> NDArray[np.floating[Any]]:
    """
    Sweep A on pivot k in place and return it.

    Raises:
        SingularMatrixError: If |a_kk| < 1e-10
    """
    d = _pivot(A, k)
    col = A[:, k].copy()
    row = A[k, :].copy()
    A -= np.outer(col, row) / d
    A[:, k] = col / d
    A[k, :] = row / d
    A[k, k] = -1.0 / d
    return A


def reverse_sweep(A: NDArray[np.floating[Any]], k: int) -> NDArray[np.floating[Any]]:
    """
    Undo sweep(A, k) in place and return it.

    Raises:
        SingularMatrixError: If |a_kk| < 1e-10
    """
    d = _pivot(A, k)
    col = A[:, k].copy()
    row = A[k, :].copy()
    A -= np.outer(col, row) / d
    A[:, k] = -col / d
    A[k, :] = -row / d
    A[k, k] = -1.0 / d
    return A


# === Subset statistics ===

def _subset_det(M: NDArray[np.floating[Any]], subset: Sequence[int]) -> float:
    if not subset:
        return 1.0
    idx = np.asarray(subset)
    return determinant(M[np.ix_(idx, idx)], 'submatrix')


def _wilks(W: NDArray, T: NDArray, subset: Sequence[int]) -> float:
    """|W_S| / |T_S|, NaN when |T_S| vanishes."""
    det_t = _subset_det(T, subset)
    if det_t <= 0:
        return math.nan
    return _subset_det(W, subset) / det_t


def _unit_scaled(M: NDArray, scale: NDArray) -> NDArray:
    return M / np.outer(scale, scale)


def _min_tolerance(W0: NDArray, members: Sequence[int]) -> float:
    """
    Smallest tolerance of any variable in members against the others.

    Sweeps the within correlation matrix of members; afterwards its
    diagonal holds -1/tol_j. Each pivot is itself a tolerance in [0, 1],
    so the singularity test is relative.
    """
    idx = np.asarray(members)
    block = W0[np.ix_(idx, idx)]
    diag = np.diag(block)
    if np.any(diag <= 0):
        return 0.0
    R = np.array(_unit_scaled(block, np.sqrt(diag)), dtype=np.float64, copy=True)
    try:
        for k in range(len(members)):
            sweep(R, k)
    except SingularMatrixError:
        return 0.0
    return float(min(-1.0 / R[k, k] for k in range(len(members))))


# === Controller ===

class _Controller:
    """Scratch state of one stepwise run."""

    def __init__(self, stats: GroupStatistics, options: StepwiseOptions, names: Sequence[str]):
        self.options = options
        self.names = tuple(names)
        self.p = stats.n_variables
        self.g = stats.n_groups
        self.n = stats.n_total
        self.error_df = self.n - self.g
        self.means = stats.means_by_group
        self.n_weighted = stats.n_weighted
        self.group_values = stats.group_values

        self.W0 = stats.within_sscp
        self.T0 = stats.total_sscp
        scale = np.sqrt(np.diag(self.T0))
        scale = np.where(scale > 0, scale, 1.0)
        self.W_unit = _unit_scaled(self.W0, scale)
        self.T_unit = _unit_scaled(self.T0, scale)
        self.W = np.array(stats.within_sscp, dtype=np.float64, copy=True)
        self.T = np.array(stats.total_sscp, dtype=np.float64, copy=True)

        self.selected: list[int] = []
        self.steps: list[StepInfo] = []
        self.variables_in: list[VariableInAnalysis] = []
        self.variables_not_in: list[VariableNotInAnalysis] = []
        self.pairwise: list[PairwiseComparison] = []

    # --- candidate statistics ---

    def f_to_enter(self, i: int) -> tuple[float, float]:
        """(F-to-enter, Λ of S+i); F is NaN when undefined."""
        k = len(self.selected)
        lam_next = _wilks(self.W_unit, self.T_unit, self.selected + [i])
        if k == 0:
            w_ii, t_ii = float(self.W0[i, i]), float(self.T0[i, i])
            if w_ii <= 0 or t_ii <= 0:
                return math.nan, lam_next
            return (t_ii - w_ii) * self.error_df / (w_ii * (self.g - 1)), lam_next

        lam_now = _wilks(self.W_unit, self.T_unit, self.selected)
        if not (lam_now > 0 and lam_next > 0):
            return math.nan, lam_next
        partial = lam_next / lam_now
        return (1.0 - partial) / partial * (self.error_df - k) / (self.g - 1), lam_next

    def f_to_remove(self, j: int) -> float:
        k = len(self.selected)
        partial = self.T[j, j] / self.W[j, j]
        if partial <= 0:
            return math.nan
        return (1.0 - partial) / partial * (self.error_df - k + 1) / (self.g - 1)

    def candidate_tolerance(self, i: int) -> float:
        """1 - R² of excluded i on the selected set, 0 when i is (near) collinear."""
        w_ii = float(self.W0[i, i])
        if w_ii <= 0:
            return 0.0
        ratio = float(self.W[i, i]) / w_ii
        return ratio if ratio > 0 else 0.0

    def included_tolerance(self, j: int) -> float:
        return float(-1.0 / (self.W[j, j] * self.W0[j, j]))

    # --- snapshots ---

    def record_not_in(self, step: int) -> None:
        for i in range(self.p):
            if i in self.selected:
                continue
            f_value, lam = self.f_to_enter(i)
            self.variables_not_in.append(VariableNotInAnalysis(
                step=step,
                variable_index=i,
                variable_name=self.names[i],
                tolerance=self.candidate_tolerance(i),
                min_tolerance=_min_tolerance(self.W0, self.selected + [i]),
                f_to_enter=f_value,
                wilks_lambda=lam,
            ))

    def record_in(self, step: int) -> None:
        for j in self.selected:
            self.variables_in.append(VariableInAnalysis(
                step=step,
                variable_index=j,
                variable_name=self.names[j],
                tolerance=self.included_tolerance(j),
                f_to_remove=self.f_to_remove(j),
            ))

    def record_step(self, step: int, variable: int, action: str, statistic: float) -> None:
        k = len(self.selected)
        lam = _wilks(self.W_unit, self.T_unit, self.selected)
        exact_f, f_df1, f_df2 = rao_f_approximation(lam, k, self.g - 1, self.error_df)
        significance = f_test_p_value(exact_f, f_df1, f_df2) if f_df2 > 0 else math.nan
        self.steps.append(StepInfo(
            step=step,
            variable_index=variable,
            variable_name=self.names[variable],
            action=action,
            statistic=statistic,
            wilks_lambda=lam,
            df1=k,
            df2=self.g - 1,
            df3=self.error_df,
            exact_f=exact_f,
            exact_f_df1=f_df1,
            exact_f_df2=f_df2,
            significance=significance,
        ))

    def record_pairwise(self, step: int) -> None:
        q = len(self.selected)
        if q == 0:
            return
        idx = np.asarray(self.selected)
        W_inv = -self.W[np.ix_(idx, idx)]
        for a in range(self.g):
            for b in range(a + 1, self.g):
                na, nb = float(self.n_weighted[a]), float(self.n_weighted[b])
                diff = self.means[a, idx] - self.means[b, idx]
                if q == 1:
                    variance = float(self.W0[idx[0], idx[0]]) / self.error_df
                    f_value = na * nb / (na + nb) * float(diff[0]) ** 2 / variance
                    df1, df2 = 1.0, self.error_df
                else:
                    d2 = self.error_df * float(diff @ W_inv @ diff)
                    df1, df2 = float(q), self.error_df - q + 1
                    f_value = df2 * na * nb * d2 / (q * self.error_df * (na + nb))
                self.pairwise.append(PairwiseComparison(
                    step=step,
                    group1=self.group_values[a],
                    group2=self.group_values[b],
                    f_value=f_value,
                    df1=df1,
                    df2=df2,
                    significance=f_test_p_value(f_value, df1, df2) if df2 > 0 else math.nan,
                ))

    # --- actions ---

    def best_candidate(self) -> tuple[int, float, float] | None:
        """(variable, F-to-enter, Λ) of the preferred eligible candidate, or None."""
        k = len(self.selected)
        if self.error_df - k <= 0:
            return None
        method = self.options.method
        best = None
        for i in range(self.p):
            if i in self.selected:
                continue
            if self.candidate_tolerance(i) <= self.options.min_tolerance:
                continue
            f_value, lam = self.f_to_enter(i)
            if not math.isfinite(f_value):
                continue
            if method == 'rao_v' and f_value < self.options.criteria.v_to_enter:
                continue
            if best is None:
                best = (i, f_value, lam)
            elif method == 'wilks' and lam < best[2]:
                best = (i, f_value, lam)
            elif method != 'wilks' and f_value > best[1]:
                best = (i, f_value, lam)
        return best

    def would_enter(self) -> bool:
        candidate = self.best_candidate()
        if candidate is None:
            return False
        df2 = self.error_df - len(self.selected)
        return self.options.criteria.admits(candidate[1], self.g - 1, df2)

    def enter(self, i: int) -> None:
        sweep(self.W, i)
        sweep(self.T, i)
        self.selected.append(i)

    def remove(self, j: int) -> None:
        reverse_sweep(self.W, j)
        reverse_sweep(self.T, j)
        self.selected.remove(j)

    def removal_candidate(self) -> tuple[int, float] | None:
        """Included variable with the smallest F-to-remove, if it meets the removal rule."""
        scored = [(j, self.f_to_remove(j)) for j in self.selected]
        scored = [(j, f) for j, f in scored if math.isfinite(f)]
        if not scored:
            return None
        j, f_value = min(scored, key=lambda item: item[1])
        k = len(self.selected)
        if self.options.criteria.expels(f_value, self.g - 1, self.error_df - k + 1):
            return j, f_value
        return None

    def run(self) -> StepwiseParams:
        step = 0
        stopped = False
        first_entry = True
        self.record_not_in(step)

        while True:
            if step >= self.options.max_steps:
                stopped = True
                break
            if not self.would_enter():
                break
            i, f_value, _ = self.best_candidate()

            self.enter(i)
            step += 1
            self.record_step(step, i, ENTERED, f_value)
            self.record_in(step)
            self.record_not_in(step)
            if self.options.display_pairwise:
                self.record_pairwise(step)

            if first_entry:
                first_entry = False
                continue
            if step >= self.options.max_steps:
                stopped = True
                break

            removal = self.removal_candidate()
            if removal is not None:
                j, f_remove = removal
                self.remove(j)
                step += 1
                self.record_step(step, j, REMOVED, f_remove)
                self.record_in(step)
                self.record_not_in(step)
                if self.options.display_pairwise:
                    self.record_pairwise(step)

        return StepwiseParams(
            steps=tuple(self.steps),
            variables_in=tuple(self.variables_in),
            variables_not_in=tuple(self.variables_not_in),
            pairwise=tuple(self.pairwise),
            selected=tuple(self.selected),
            working_within=self.W,
            working_total=self.T,
            stopped_at_max_steps=stopped and self.would_enter(),
        )


def run_stepwise(
    stats: GroupStatistics,
    options: StepwiseOptions | None = None,
    variable_names: Sequence[str] | None = None,
) -> StepwiseParams:
    """
    Run stepwise selection over the variables of a set of group statistics.

    Args:
        stats: Group moments (never modified)
        options: Method, criteria and limits; defaults to Wilks' Lambda
            with F criteria 3.84 / 2.71 and at most 10 steps
        variable_names: Labels for the variables, default X1..Xp

    Returns:
        StepwiseParams; selected lists the final variables in entry order

    Raises:
        NotEnoughGroupsError: If g < 2
        SingularMatrixError: If a sweep pivot vanishes

    Warns:
        RuntimeWarning: If the step limit stopped the search while a
            candidate still qualified for entry
    """
    opts = options if options is not None else StepwiseOptions()
    if stats.n_groups < 2:
        raise NotEnoughGroupsError(f"Stepwise selection needs at least 2 groups, got {stats.n_groups}")
    names = (
        tuple(variable_names) if variable_names is not None
        else tuple(f"X{i + 1}" for i in range(stats.n_variables))
    )
    if len(names) != stats.n_variables:
        raise ValidationError(
            f"variable_names: expected {stats.n_variables} names, got {len(names)}"
        )

    result = _Controller(stats, opts, names).run()
    if result.stopped_at_max_steps:
        warnings.warn(
            f"Stepwise selection stopped at max_steps={opts.max_steps}",
            RuntimeWarning,
            stacklevel=2,
        )
    return result
