"""
Tests for stepwise variable selection.

Validates:
    - Sweep / reverse sweep algebra
    - Criteria and options validation
    - The hand example run (X1 enters, X2 rejected)
    - Partial F and tolerance statistics against determinant formulas
    - Step limits, selection methods and pairwise group tests
    - Removal of a variable made redundant by later entries
    - Invariance of the selection to the units of X
"""

import warnings

import numpy as np
import pytest
from scipy import stats as sp_stats

from pydiscriminant.core.compute.tolerances import ITERATIVE_FP64
from pydiscriminant.core.exceptions import (
    NotEnoughGroupsError,
    SingularMatrixError,
    ValidationError,
)
from pydiscriminant.discriminant import (
    DiscriminantAnalysis,
    DiscriminantDesign,
    StepwiseCriteria,
    StepwiseOptions,
)
from pydiscriminant.discriminant._group_stats import build_group_statistics
from pydiscriminant.discriminant._stepwise import (
    ENTERED,
    METHODS,
    REMOVED,
    reverse_sweep,
    run_stepwise,
    sweep,
)


def _run(X, groups, options=None):
    return DiscriminantAnalysis(DiscriminantDesign.from_arrays(X, groups)).perform_stepwise_analysis(options)


# ═══════════════════════════════════════════════════════════════════════
# Sweep operator
# ═══════════════════════════════════════════════════════════════════════


class TestSweep:

    def test_single_pivot(self):
        A = np.array([[4.0, 2.0], [2.0, 4.0]])
        sweep(A, 0)
        np.testing.assert_allclose(A, [[-0.25, 0.5], [0.5, 3.0]])

    def test_swept_block_is_negative_inverse(self, spd_matrix):
        A = spd_matrix.copy()
        sweep(A, 0)
        sweep(A, 1)
        block = spd_matrix[:2, :2]
        np.testing.assert_allclose(A[:2, :2], -np.linalg.inv(block), rtol=1e-10)
        schur = spd_matrix[2:, 2:] - spd_matrix[2:, :2] @ np.linalg.solve(block, spd_matrix[:2, 2:])
        np.testing.assert_allclose(A[2:, 2:], schur, rtol=1e-10)

    def test_reverse_restores(self, spd_matrix):
        A = spd_matrix.copy()
        sweep(A, 2)
        sweep(A, 0)
        reverse_sweep(A, 2)
        reverse_sweep(A, 0)
        np.testing.assert_allclose(A, spd_matrix, rtol=1e-10, atol=1e-12)

    def test_order_does_not_matter(self, spd_matrix):
        A, B = spd_matrix.copy(), spd_matrix.copy()
        sweep(sweep(A, 1), 3)
        sweep(sweep(B, 3), 1)
        np.testing.assert_allclose(A, B, rtol=1e-10)

    def test_vanishing_pivot(self):
        with pytest.raises(SingularMatrixError, match="pivot"):
            sweep(np.array([[0.0, 1.0], [1.0, 2.0]]), 0)
        with pytest.raises(SingularMatrixError):
            reverse_sweep(np.zeros((2, 2)), 1)


# ═══════════════════════════════════════════════════════════════════════
# Configuration
# ═══════════════════════════════════════════════════════════════════════


class TestCriteria:

    def test_defaults(self):
        criteria = StepwiseCriteria()
        assert (criteria.kind, criteria.entry, criteria.removal) == ('f', 3.84, 2.71)

    def test_f_rules(self):
        criteria = StepwiseCriteria.f_values()
        assert criteria.admits(3.84, 1, 10)
        assert not criteria.admits(3.83, 1, 10)
        assert criteria.expels(2.70, 1, 10)
        assert criteria.expels(2.71, 1, 10)
        assert not criteria.expels(2.72, 1, 10)

    def test_probability_rules(self):
        criteria = StepwiseCriteria.probabilities()
        assert criteria.admits(37.5, 1, 4)
        assert not criteria.admits(0.5, 1, 4)
        assert criteria.expels(0.5, 1, 4)
        assert not criteria.expels(37.5, 1, 4)

    @pytest.mark.parametrize("entry, removal", [(2.0, 3.0), (3.0, 3.0), (3.84, -1.0)])
    def test_f_thresholds_that_would_cycle(self, entry, removal):
        with pytest.raises(ValidationError, match="entry > removal"):
            StepwiseCriteria.f_values(entry, removal)

    @pytest.mark.parametrize("entry, removal", [(0.10, 0.05), (0.0, 0.1), (0.05, 1.5)])
    def test_bad_probability_thresholds(self, entry, removal):
        with pytest.raises(ValidationError, match="probability criteria"):
            StepwiseCriteria.probabilities(entry, removal)

    def test_unknown_kind(self):
        with pytest.raises(ValidationError, match="criteria kind"):
            StepwiseCriteria(kind='aic')


class TestOptions:

    def test_defaults(self):
        options = StepwiseOptions()
        assert options.method == 'wilks'
        assert options.max_steps == 10
        assert options.min_tolerance == 0.001
        assert not options.display_pairwise

    def test_unknown_method(self):
        with pytest.raises(ValidationError, match="method"):
            StepwiseOptions(method='lasso')

    def test_negative_max_steps(self):
        with pytest.raises(ValidationError, match="max_steps"):
            StepwiseOptions(max_steps=-1)

    def test_min_tolerance_range(self):
        with pytest.raises(ValidationError, match="min_tolerance"):
            StepwiseOptions(min_tolerance=1.0)


# ═══════════════════════════════════════════════════════════════════════
# Hand example
# ═══════════════════════════════════════════════════════════════════════


class TestHandExample:

    def test_selects_first_variable_only(self, hand_data):
        with warnings.catch_warnings():
            warnings.simplefilter('error', RuntimeWarning)
            result = _run(*hand_data)
        assert result.selected == (0,)
        assert not result.stopped_at_max_steps

    def test_step_record(self, hand_data):
        (step,) = _run(*hand_data).steps
        assert step.step == 1
        assert step.variable_name == 'X1'
        assert step.action == ENTERED
        assert step.statistic == pytest.approx(37.5)
        assert step.wilks_lambda == pytest.approx(4.0 / 41.5)
        assert (step.df1, step.df2, step.df3) == (1, 1, 4)
        assert step.exact_f == pytest.approx(37.5)
        assert (step.exact_f_df1, step.exact_f_df2) == (1.0, 4.0)
        assert step.significance == pytest.approx(sp_stats.f.sf(37.5, 1, 4), rel=ITERATIVE_FP64.rtol)

    def test_not_in_snapshots(self, hand_data):
        rows = _run(*hand_data).variables_not_in
        assert [(r.step, r.variable_name) for r in rows] == [(0, 'X1'), (0, 'X2'), (1, 'X2')]

        first, second, after = rows
        assert first.f_to_enter == pytest.approx(37.5)
        assert second.f_to_enter == pytest.approx(13.5)
        assert first.tolerance == pytest.approx(1.0)
        assert after.tolerance == pytest.approx(0.75)
        assert after.min_tolerance == pytest.approx(0.75)
        assert after.wilks_lambda == pytest.approx(1.0 / 10.5)
        assert after.f_to_enter == pytest.approx(1.5 / 41.5)

    def test_in_snapshot(self, hand_data):
        (row,) = _run(*hand_data).variables_in
        assert row.step == 1
        assert row.variable_index == 0
        assert row.tolerance == pytest.approx(1.0)
        assert row.f_to_remove == pytest.approx(37.5)

    def test_working_matrices_swept(self, hand_data):
        result = _run(*hand_data)
        np.testing.assert_allclose(result.working_within, [[-0.25, 0.5], [0.5, 3.0]])
        assert result.working_total[1, 1] == pytest.approx(17.5 - 24.5 ** 2 / 41.5)

    def test_pairwise(self, hand_data):
        result = _run(*hand_data, StepwiseOptions(display_pairwise=True))
        (pair,) = result.pairwise
        assert (pair.step, pair.group1, pair.group2) == (1, 1, 2)
        assert pair.f_value == pytest.approx(37.5)
        assert (pair.df1, pair.df2) == (1, 4)
        assert pair.significance == pytest.approx(sp_stats.f.sf(37.5, 1, 4), rel=ITERATIVE_FP64.rtol)

    def test_pairwise_off_by_default(self, hand_data):
        assert _run(*hand_data).pairwise == ()

    def test_probability_criteria(self, hand_data):
        result = _run(*hand_data, StepwiseOptions(criteria=StepwiseCriteria.probabilities()))
        assert result.selected == (0,)


# ═══════════════════════════════════════════════════════════════════════
# Step limits
# ═══════════════════════════════════════════════════════════════════════


class TestStepLimits:

    def test_zero_steps(self, hand_data):
        X, groups = hand_data
        stats = build_group_statistics(DiscriminantDesign.from_arrays(X, groups))
        with pytest.warns(RuntimeWarning, match="max_steps=0"):
            result = run_stepwise(stats, StepwiseOptions(max_steps=0))
        assert result.selected == ()
        assert result.steps == ()
        assert result.stopped_at_max_steps
        np.testing.assert_array_equal(result.working_within, stats.within_sscp)
        np.testing.assert_array_equal(result.working_total, stats.total_sscp)
        assert len(result.variables_not_in) == 2

    def test_limit_reached_without_candidate(self, hand_data):
        with warnings.catch_warnings():
            warnings.simplefilter('error', RuntimeWarning)
            result = _run(*hand_data, StepwiseOptions(max_steps=1))
        assert result.selected == (0,)
        assert not result.stopped_at_max_steps

    def test_statistics_never_modified(self, hand_data):
        X, groups = hand_data
        stats = build_group_statistics(DiscriminantDesign.from_arrays(X, groups))
        before = stats.within_sscp.copy()
        run_stepwise(stats)
        np.testing.assert_array_equal(stats.within_sscp, before)


# ═══════════════════════════════════════════════════════════════════════
# Larger runs
# ═══════════════════════════════════════════════════════════════════════


class TestThreeGroups:

    def test_strongest_variables_enter_first(self, three_group_data):
        result = _run(*three_group_data)
        assert result.steps[0].variable_index == 0
        assert result.steps[1].variable_index == 1
        assert all(step.action == ENTERED for step in result.steps[:2])
        lambdas = [step.wilks_lambda for step in result.steps[:2]]
        assert lambdas[1] < lambdas[0]

    def test_f_to_remove_matches_determinants(self, three_group_data):
        X, groups = three_group_data
        result = _run(X, groups)
        stats = build_group_statistics(DiscriminantDesign.from_arrays(X, groups))
        W, T = stats.within_sscp, stats.total_sscp

        def wilks(idx):
            idx = np.asarray(idx)
            return np.linalg.det(W[np.ix_(idx, idx)]) / np.linalg.det(T[np.ix_(idx, idx)])

        row = next(r for r in result.variables_in if r.step == 2 and r.variable_index == 0)
        partial = wilks([0, 1]) / wilks([1])
        assert row.f_to_remove == pytest.approx((1 - partial) / partial * 56 / 2, rel=1e-8)

        r01 = W[0, 1] / np.sqrt(W[0, 0] * W[1, 1])
        assert row.tolerance == pytest.approx(1 - r01 ** 2, rel=1e-8)

    def test_overall_lambda_matches_determinants(self, three_group_data):
        X, groups = three_group_data
        result = _run(X, groups)
        stats = build_group_statistics(DiscriminantDesign.from_arrays(X, groups))
        idx = np.asarray([0, 1])
        expected = (
            np.linalg.det(stats.within_sscp[np.ix_(idx, idx)])
            / np.linalg.det(stats.total_sscp[np.ix_(idx, idx)])
        )
        assert result.steps[1].wilks_lambda == pytest.approx(expected, rel=1e-10)

    @pytest.mark.parametrize("method", METHODS)
    def test_every_method_picks_strongest_first(self, three_group_data, method):
        result = _run(*three_group_data, StepwiseOptions(method=method))
        assert result.steps[0].variable_index == 0

    def test_rao_v_threshold_blocks_entry(self, three_group_data):
        options = StepwiseOptions(method='rao_v', criteria=StepwiseCriteria(v_to_enter=1e9))
        result = _run(*three_group_data, options)
        assert result.selected == ()
        assert not result.stopped_at_max_steps

    def test_pairwise_after_two_variables(self, three_group_data):
        result = _run(*three_group_data, StepwiseOptions(display_pairwise=True))
        step_two = [pair for pair in result.pairwise if pair.step == 2]
        assert [(p.group1, p.group2) for p in step_two] == [(1, 2), (1, 3), (2, 3)]
        assert all(p.df1 == 2 and p.df2 == 56 for p in step_two)
        assert all(p.f_value > 0 for p in step_two)


class TestSelectionEdgeCases:

    def test_noise_variables_enter_after_signal(self, noisy_two_group_data):
        result = _run(*noisy_two_group_data)
        assert result.steps[0].variable_index == 1

    def test_duplicated_variable_screened_by_tolerance(self, hand_data):
        X, groups = hand_data
        X = np.column_stack([X, X[:, 0]])
        result = _run(X, groups)
        assert not {0, 2} <= set(result.selected)

    def test_single_group(self):
        stats = build_group_statistics(DiscriminantDesign.from_arrays([[1.0], [2.0], [4.0]], [1, 1, 1]))
        with pytest.raises(NotEnoughGroupsError):
            run_stepwise(stats)

    def test_name_count_mismatch(self, hand_data):
        X, groups = hand_data
        stats = build_group_statistics(DiscriminantDesign.from_arrays(X, groups))
        with pytest.raises(ValidationError, match="variable_names"):
            run_stepwise(stats, variable_names=['only_one'])


# ═══════════════════════════════════════════════════════════════════════
# Removal
# ═══════════════════════════════════════════════════════════════════════


class TestRemoval:

    def test_redundant_variable_removed(self, removal_data):
        result = _run(*removal_data)
        assert [(s.action, s.variable_index) for s in result.steps] == [
            (ENTERED, 0), (ENTERED, 1), (ENTERED, 2), (REMOVED, 0),
        ]
        assert result.selected == (1, 2)
        assert not result.stopped_at_max_steps

    def test_entry_statistics(self, removal_data):
        steps = _run(*removal_data).steps
        assert steps[0].statistic == pytest.approx(21.875)
        assert steps[1].statistic == pytest.approx(13.0 / 2.5625)
        assert steps[2].statistic == pytest.approx(12.0 * 16.0 / 3.5625)

    def test_removal_step_record(self, removal_data):
        removed = _run(*removal_data).steps[-1]
        assert removed.step == 4
        assert removed.variable_name == 'X1'
        assert removed.statistic == pytest.approx(25.0 / 24.0)
        assert removed.statistic <= StepwiseCriteria().removal
        assert removed.df1 == 2
        assert removed.wilks_lambda == pytest.approx(1.0 / 18.0)

    def test_no_removal_while_every_variable_contributes(self, removal_data):
        result = _run(*removal_data)
        step_two = {r.variable_index: r.f_to_remove for r in result.variables_in if r.step == 2}
        assert step_two[0] == pytest.approx(1.5625 / 2.0 * 13.0)
        assert step_two[1] == pytest.approx(13.0 / 2.5625)

    def test_f_to_remove_before_removal(self, removal_data):
        result = _run(*removal_data)
        step_three = {r.variable_index: r.f_to_remove for r in result.variables_in if r.step == 3}
        assert min(step_three, key=step_three.get) == 0
        assert step_three[0] == pytest.approx(25.0 / 24.0)

    def test_working_matrices_match_final_selection(self, removal_data):
        X, groups = removal_data
        result = _run(X, groups)
        stats = build_group_statistics(DiscriminantDesign.from_arrays(X, groups))
        W = np.array(stats.within_sscp, dtype=float)
        T = np.array(stats.total_sscp, dtype=float)
        for k in result.selected:
            sweep(W, k)
            sweep(T, k)
        np.testing.assert_allclose(result.working_within, W, atol=1e-9)
        np.testing.assert_allclose(result.working_total, T, atol=1e-9)

    def test_removed_variable_rejected_on_reentry(self, removal_data):
        result = _run(*removal_data)
        (row,) = [r for r in result.variables_not_in if r.step == 4]
        assert row.variable_index == 0
        assert row.tolerance == pytest.approx(1.0)
        assert row.f_to_enter == pytest.approx(25.0 / 24.0)

    def test_candidate_tolerance_from_working_matrix(self, removal_data):
        result = _run(*removal_data)
        (row,) = [r for r in result.variables_not_in if r.step == 2]
        assert row.variable_index == 2
        assert row.tolerance == pytest.approx(1.0 / 17.0)
        assert row.min_tolerance == pytest.approx(1.0 / 17.0)


# ═══════════════════════════════════════════════════════════════════════
# Units of measurement
# ═══════════════════════════════════════════════════════════════════════


class TestScaleInvariance:

    @pytest.mark.parametrize("dataset", ['three_group_data', 'removal_data', 'noisy_two_group_data'])
    @pytest.mark.parametrize("factor", [1e-3, 1e3])
    def test_rescaled_variables_select_the_same_model(self, request, dataset, factor):
        X, groups = request.getfixturevalue(dataset)
        base = _run(X, groups)
        scaled = _run(X * factor, groups)

        assert scaled.selected == base.selected
        assert [(s.action, s.variable_index) for s in scaled.steps] == [
            (s.action, s.variable_index) for s in base.steps
        ]
        for a, b in zip(scaled.steps, base.steps):
            assert a.statistic == pytest.approx(b.statistic, rel=1e-8)
            assert a.wilks_lambda == pytest.approx(b.wilks_lambda, rel=1e-8)
        assert len(scaled.variables_not_in) == len(base.variables_not_in)
        for a, b in zip(scaled.variables_not_in, base.variables_not_in):
            assert a.tolerance == pytest.approx(b.tolerance, rel=1e-8, abs=1e-12)
            assert a.min_tolerance == pytest.approx(b.min_tolerance, rel=1e-8, abs=1e-12)
            assert a.f_to_enter == pytest.approx(b.f_to_enter, rel=1e-8, abs=1e-10)
        for a, b in zip(scaled.variables_in, base.variables_in):
            assert a.tolerance == pytest.approx(b.tolerance, rel=1e-8)
            assert a.f_to_remove == pytest.approx(b.f_to_remove, rel=1e-8)

    def test_small_variance_variables_keep_entering(self, three_group_data):
        X, groups = three_group_data
        result = _run(X * 1e-3, groups)
        assert result.selected[:2] == (0, 1)
        assert all(row.tolerance > 0.5 for row in result.variables_not_in if row.step == 1)
