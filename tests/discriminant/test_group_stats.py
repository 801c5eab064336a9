"""
Tests for the group statistics builder.

The hand example has W = [[4, 2], [2, 4]] and T = [[41.5, 24.5],
[24.5, 17.5]]; larger cases are checked against direct numpy formulas.
"""

import numpy as np
import pytest

from pydiscriminant.core.exceptions import InvalidGroupSizeError
from pydiscriminant.discriminant import DiscriminantDesign
from pydiscriminant.discriminant._group_stats import build_group_statistics, correlation_from_sscp


# ═══════════════════════════════════════════════════════════════════════
# Hand example
# ═══════════════════════════════════════════════════════════════════════


class TestHandExample:

    def test_means(self, hand_design):
        stats = build_group_statistics(hand_design)
        np.testing.assert_allclose(stats.means_by_group, [[2.0, 3.0], [7.0, 6.0]])
        np.testing.assert_allclose(stats.means_overall, [4.5, 4.5])

    def test_sscp(self, hand_design):
        stats = build_group_statistics(hand_design)
        np.testing.assert_allclose(stats.within_sscp, [[4.0, 2.0], [2.0, 4.0]], atol=1e-12)
        np.testing.assert_allclose(stats.total_sscp, [[41.5, 24.5], [24.5, 17.5]], atol=1e-12)
        np.testing.assert_allclose(stats.between_sscp, [[37.5, 22.5], [22.5, 13.5]], atol=1e-12)

    def test_covariances(self, hand_design):
        stats = build_group_statistics(hand_design)
        expected = [[1.0, 0.5], [0.5, 1.0]]
        np.testing.assert_allclose(stats.pooled_covariance, expected, atol=1e-12)
        np.testing.assert_allclose(stats.group_covariances[0], expected, atol=1e-12)
        np.testing.assert_allclose(stats.group_covariances[1], expected, atol=1e-12)
        np.testing.assert_allclose(stats.total_covariance, np.array([[41.5, 24.5], [24.5, 17.5]]) / 5)

    def test_correlation(self, hand_design):
        stats = build_group_statistics(hand_design)
        np.testing.assert_allclose(stats.within_correlation, [[1.0, 0.5], [0.5, 1.0]], atol=1e-12)

    def test_counts(self, hand_design):
        stats = build_group_statistics(hand_design)
        assert stats.n_total == 6.0
        assert stats.n_groups == 2
        assert stats.n_variables == 2
        assert stats.n_cases == (3, 3)


# ═══════════════════════════════════════════════════════════════════════
# General properties
# ═══════════════════════════════════════════════════════════════════════


class TestProperties:

    def test_against_numpy(self, three_group_data):
        X, groups = three_group_data
        stats = build_group_statistics(DiscriminantDesign.from_arrays(X, groups))

        T = (X - X.mean(axis=0)).T @ (X - X.mean(axis=0))
        W = sum(
            (X[groups == k] - X[groups == k].mean(axis=0)).T
            @ (X[groups == k] - X[groups == k].mean(axis=0))
            for k in (1, 2, 3)
        )
        np.testing.assert_allclose(stats.total_sscp, T, rtol=1e-10, atol=1e-10)
        np.testing.assert_allclose(stats.within_sscp, W, rtol=1e-10, atol=1e-10)
        np.testing.assert_allclose(stats.total_covariance, np.cov(X, rowvar=False), rtol=1e-10)
        np.testing.assert_allclose(
            stats.group_covariances[1], np.cov(X[groups == 2], rowvar=False), rtol=1e-10,
        )

    def test_exactly_symmetric(self, three_group_data):
        X, groups = three_group_data
        stats = build_group_statistics(DiscriminantDesign.from_arrays(X, groups))
        np.testing.assert_array_equal(stats.within_sscp, stats.within_sscp.T)
        np.testing.assert_array_equal(stats.total_sscp, stats.total_sscp.T)

    def test_between_is_positive_semidefinite(self, three_group_data):
        X, groups = three_group_data
        stats = build_group_statistics(DiscriminantDesign.from_arrays(X, groups))
        assert np.min(np.linalg.eigvalsh(stats.between_sscp)) > -1e-8

    def test_weights_match_replication(self, hand_data):
        X, groups = hand_data
        w = np.array([2.0, 1.0, 1.0, 1.0, 1.0, 2.0])
        weighted = build_group_statistics(DiscriminantDesign.from_arrays(X, groups, weights=w))
        replicated = build_group_statistics(DiscriminantDesign.from_arrays(
            np.vstack([X, X[[0, 5]]]), np.concatenate([groups, groups[[0, 5]]]),
        ))
        np.testing.assert_allclose(weighted.within_sscp, replicated.within_sscp, atol=1e-10)
        np.testing.assert_allclose(weighted.total_sscp, replicated.total_sscp, atol=1e-10)
        np.testing.assert_allclose(weighted.means_by_group, replicated.means_by_group)

    def test_read_only(self, hand_design):
        stats = build_group_statistics(hand_design)
        with pytest.raises(ValueError):
            stats.within_sscp[0, 0] = 0.0

    def test_std_devs(self, hand_design):
        stats = build_group_statistics(hand_design)
        np.testing.assert_allclose(stats.group_std_devs, np.ones((2, 2)), atol=1e-12)
        np.testing.assert_allclose(stats.overall_std_devs, np.sqrt([41.5 / 5, 17.5 / 5]))


class TestCorrelationFromSSCP:

    def test_zero_diagonal_gives_nan(self):
        with np.errstate(invalid='ignore', divide='ignore'):
            R = correlation_from_sscp(np.array([[4.0, 0.0], [0.0, 0.0]]))
        assert R[0, 0] == 1.0
        assert np.isnan(R[1, 1])
        assert np.isnan(R[0, 1])


class TestErrors:

    def test_single_case_group(self):
        design = DiscriminantDesign.from_arrays(
            [[1.0], [2.0], [3.0], [9.0]], [1, 1, 1, 2],
        )
        with pytest.raises(InvalidGroupSizeError, match="covariance needs n_j > 1"):
            build_group_statistics(design)
