"""
Discriminant analysis design object.

Wraps validated grouped data and metadata for discriminant analysis.
Factory methods accept arrays, pandas DataFrames or loosely typed
record collections; all of them funnel into one validating builder, so
a DiscriminantDesign that exists is always usable: at least one group,
every group with at least one valid case and positive weight, and more
total weight than groups.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Sequence, TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pydiscriminant.core.exceptions import (
    InsufficientDataError,
    InvalidGroupSizeError,
    NotEnoughGroupsError,
    NotEnoughVariablesError,
    ValidationError,
)
from pydiscriminant.core.validation import (
    check_1d,
    check_2d,
    check_array,
    check_consistent_length,
    check_finite,
    check_min_samples,
)
from pydiscriminant.discriminant._common import CaseProcessingSummary
from pydiscriminant.discriminant._records import extract_records

if TYPE_CHECKING:
    import pandas as pd


DEFAULT_PRIOR = 0.5


def _label(value: float) -> Any:
    """Group code as int when integral, float otherwise."""
    return int(value) if float(value).is_integer() else float(value)


def _frozen(array: NDArray) -> NDArray:
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class DiscriminantDesign:
    """
    Validated data container for discriminant analysis.

    Created via factory methods, not directly.

    Attributes:
        data: Per-group case matrices, data[j] is (m_j, p)
        weights: Per-group case weights, weights[j] is (m_j,)
        case_indices: Per-group row positions in the caller's input
        group_values: Sorted group codes, one per group
        variable_names: One name per column
        priors: Prior probability per group (default 0.5 each)
        case_summary: Counts of valid and excluded input rows
    """
    data: tuple[NDArray[np.floating[Any]], ...]
    weights: tuple[NDArray[np.floating[Any]], ...]
    case_indices: tuple[NDArray[np.intp], ...]
    group_values: tuple[Any, ...]
    variable_names: tuple[str, ...]
    priors: NDArray[np.floating[Any]]
    case_summary: CaseProcessingSummary

    # === Factory methods ===

    @staticmethod
    def from_arrays(
        X: ArrayLike,
        groups: ArrayLike,
        *,
        weights: ArrayLike | None = None,
        priors: ArrayLike | None = None,
        variable_names: Sequence[str] | None = None,
        group_range: tuple[float, float] | None = None,
    ) -> DiscriminantDesign:
        """
        Create design from a case matrix and a group code per case.

        Args:
            X: Discriminating variables (n, p); NaN marks a missing value
            groups: Numeric group code per case (n,); NaN marks missing
            weights: Non-negative case weights (n,), default 1.0
            priors: Prior probability per group in sorted group order.
                Default 0.5 for every group (not renormalized).
            variable_names: Column names, default X1..Xp
            group_range: (min_range, max_range). Cases whose group code is
                not an integer inside the range are excluded, and every
                variable value v is mapped through
                min + (v - min)(max - min)/(max - min) when max > min.

        Returns:
            DiscriminantDesign

        Raises:
            ValidationError: Malformed input, bad priors or names
            NotEnoughVariablesError: X has no columns
            NotEnoughGroupsError: No case has a usable group code
            InvalidGroupSizeError: A group has no valid case or zero weight
            InsufficientDataError: Total weight n <= number of groups
        """
        X_arr = check_array(X, 'X')
        if X_arr.ndim == 1:
            X_arr = X_arr.reshape(-1, 1)
        check_2d(X_arr, 'X')
        check_min_samples(X_arr, 1, 'X')
        if X_arr.shape[1] == 0:
            raise NotEnoughVariablesError("X: no discriminating variables (0 columns)")

        group_arr = check_array(groups, 'groups')
        check_1d(group_arr, 'groups')
        check_consistent_length(X_arr, group_arr, names=('X', 'groups'))

        if weights is None:
            w_arr = np.ones(X_arr.shape[0])
        else:
            w_arr = check_array(weights, 'weights')
            check_1d(w_arr, 'weights')
            check_finite(w_arr, 'weights')
            check_consistent_length(X_arr, w_arr, names=('X', 'weights'))
            if np.any(w_arr < 0):
                raise ValidationError("weights: must be non-negative")

        p = X_arr.shape[1]
        if variable_names is None:
            names = tuple(f"X{i + 1}" for i in range(p))
        else:
            names = tuple(str(name) for name in variable_names)
            if len(names) != p:
                raise ValidationError(
                    f"variable_names: expected {p} names, got {len(names)}"
                )

        return DiscriminantDesign._build(X_arr, group_arr, w_arr, priors, names, group_range)

    @staticmethod
    def from_records(
        group_records: Sequence[Mapping[str, Any]],
        variable_records: Sequence[Sequence[Mapping[str, Any]]],
        *,
        min_range: float,
        max_range: float,
        priors: ArrayLike | None = None,
    ) -> DiscriminantDesign:
        """
        Create design from loosely typed record collections.

        Args:
            group_records: One mapping per case holding the group code
            variable_records: One list of mappings per variable
            min_range, max_range: Accepted group code range (inclusive)
            priors: Prior probability per group, default 0.5 each

        Returns:
            DiscriminantDesign with variable names taken from the records

        Examples:
            >>> design = DiscriminantDesign.from_records(
            ...     [{'g': 1}, {'g': 1}, {'g': 2}, {'g': 2}],
            ...     [[{'x': 1.0}, {'x': 2.0}, {'x': 6.0}, {'x': 7.0}]],
            ...     min_range=1, max_range=2,
            ... )
        """
        groups, X, names, _ = extract_records(group_records, variable_records)
        return DiscriminantDesign.from_arrays(
            X, groups,
            priors=priors,
            variable_names=names,
            group_range=(min_range, max_range),
        )

    @staticmethod
    def from_dataframe(
        df: 'pd.DataFrame',
        *,
        group: str,
        variables: Sequence[str] | None = None,
        weights: str | None = None,
        priors: ArrayLike | None = None,
        group_range: tuple[float, float] | None = None,
    ) -> DiscriminantDesign:
        """
        Create design from a pandas DataFrame.

        Args:
            df: One row per case
            group: Column holding the numeric group code
            variables: Discriminating columns, default every other column
            weights: Optional column of case weights
            priors, group_range: As in from_arrays
        """
        for column in [group] + ([weights] if weights else []) + list(variables or []):
            if column not in df.columns:
                raise ValidationError(f"DataFrame has no column {column!r}")

        if variables is None:
            variables = [c for c in df.columns if c not in (group, weights)]
        try:
            X = df[list(variables)].to_numpy(dtype=np.float64)
            groups = df[group].to_numpy(dtype=np.float64)
            w = df[weights].to_numpy(dtype=np.float64) if weights else None
        except (TypeError, ValueError) as e:
            raise ValidationError(f"DataFrame columns must be numeric: {e}") from e

        return DiscriminantDesign.from_arrays(
            X, groups,
            weights=w,
            priors=priors,
            variable_names=[str(v) for v in variables],
            group_range=group_range,
        )

    @staticmethod
    def _build(
        X: NDArray[np.floating[Any]],
        groups: NDArray[np.floating[Any]],
        weights: NDArray[np.floating[Any]],
        priors: ArrayLike | None,
        names: tuple[str, ...],
        group_range: tuple[float, float] | None,
    ) -> DiscriminantDesign:
        """Internal builder: case screening, grouping and prior validation."""
        group_ok = np.isfinite(groups)

        if group_range is not None:
            lo, hi = float(group_range[0]), float(group_range[1])
            if lo > hi:
                raise ValidationError(f"group_range: min {lo} exceeds max {hi}")
            with np.errstate(invalid='ignore'):
                group_ok &= (groups == np.floor(groups)) & (groups >= lo) & (groups <= hi)
            if hi > lo:
                X = lo + (X - lo) * (hi - lo) / (hi - lo)

        vars_ok = np.all(np.isfinite(X), axis=1)
        valid = group_ok & vars_ok
        summary = CaseProcessingSummary(
            total=int(X.shape[0]),
            valid=int(np.sum(valid)),
            missing_group=int(np.sum(~group_ok & vars_ok)),
            missing_variables=int(np.sum(group_ok & ~vars_ok)),
            missing_both=int(np.sum(~group_ok & ~vars_ok)),
        )

        codes = np.unique(groups[group_ok])
        if len(codes) == 0:
            raise NotEnoughGroupsError(
                "No case has a usable group code"
                + (f" in range {group_range}" if group_range is not None else "")
            )

        data, case_weights, indices = [], [], []
        for code in codes:
            rows = np.flatnonzero(valid & (groups == code))
            if len(rows) == 0:
                raise InvalidGroupSizeError(
                    f"Group {_label(code)} has no valid cases (all have missing values)",
                    group=_label(code), size=0.0,
                )
            n_j = float(np.sum(weights[rows]))
            if n_j <= 0:
                raise InvalidGroupSizeError(
                    f"Group {_label(code)} has zero total weight",
                    group=_label(code), size=n_j,
                )
            data.append(_frozen(np.array(X[rows], copy=True)))
            case_weights.append(_frozen(np.array(weights[rows], copy=True)))
            indices.append(_frozen(rows))

        g = len(codes)
        n = float(sum(np.sum(w) for w in case_weights))
        if n <= g:
            raise InsufficientDataError(
                f"Total weight n = {n:g} must exceed the number of groups g = {g}",
                n=n, required=g,
            )

        if priors is None:
            prior_arr = np.full(g, DEFAULT_PRIOR)
        else:
            prior_arr = check_array(priors, 'priors')
            check_1d(prior_arr, 'priors')
            check_finite(prior_arr, 'priors')
            if len(prior_arr) != g:
                raise ValidationError(
                    f"priors: expected {g} values (one per group), got {len(prior_arr)}"
                )
            prior_arr = np.array(prior_arr, dtype=np.float64, copy=True)

        return DiscriminantDesign(
            data=tuple(data),
            weights=tuple(case_weights),
            case_indices=tuple(indices),
            group_values=tuple(_label(code) for code in codes),
            variable_names=names,
            priors=_frozen(prior_arr),
            case_summary=summary,
        )

    # === Derived designs ===

    def select_variables(self, indices: Sequence[int]) -> DiscriminantDesign:
        """
        Design restricted to a subset of variables (same cases and groups).

        Raises:
            NotEnoughVariablesError: If indices is empty
            ValidationError: On out-of-range or repeated indices
        """
        idx = [int(i) for i in indices]
        if not idx:
            raise NotEnoughVariablesError("select_variables: no variables selected")
        if len(set(idx)) != len(idx) or any(i < 0 or i >= self.n_variables for i in idx):
            raise ValidationError(
                f"select_variables: indices must be distinct and in [0, {self.n_variables}), got {idx}"
            )
        return replace(
            self,
            data=tuple(_frozen(np.array(block[:, idx], copy=True)) for block in self.data),
            variable_names=tuple(self.variable_names[i] for i in idx),
        )

    # === Properties ===

    @property
    def n_groups(self) -> int:
        return len(self.group_values)

    @property
    def n_variables(self) -> int:
        return len(self.variable_names)

    @property
    def n_cases(self) -> tuple[int, ...]:
        """Unweighted case count m_j per group."""
        return tuple(block.shape[0] for block in self.data)

    @property
    def n_weighted(self) -> tuple[float, ...]:
        """Weighted case count n_j per group."""
        return tuple(float(np.sum(w)) for w in self.weights)

    def stacked(self) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]], NDArray[np.intp]]:
        """All valid cases as (X, weights, group index), groups in order."""
        X = np.vstack(self.data)
        w = np.concatenate(self.weights)
        group_index = np.concatenate([
            np.full(block.shape[0], j, dtype=np.intp) for j, block in enumerate(self.data)
        ])
        return X, w, group_index
