"""
Tests for the linear algebra kernels.

Reference values come from numpy.linalg; the kernels themselves never
call LAPACK.
"""

import math

import numpy as np
import pytest

from pydiscriminant.core.compute.linalg import (
    argmax,
    argmin,
    cholesky,
    determinant,
    dot,
    inverse,
    log_determinant,
    lu_decomposition,
    norm,
    normalize,
    qr_decomposition,
    round_to_decimal,
    solve,
)
from pydiscriminant.core.compute.tolerances import EXACT_FP64
from pydiscriminant.core.exceptions import (
    ComputationError,
    DimensionError,
    NotPositiveDefiniteError,
    SingularMatrixError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Primitives
# ═══════════════════════════════════════════════════════════════════════


class TestPrimitives:

    def test_dot_and_norm(self):
        assert dot([1.0, 2.0, 3.0], [4.0, 5.0, 6.0]) == 32.0
        assert norm([3.0, 4.0]) == 5.0

    def test_dot_shape_mismatch(self):
        with pytest.raises(DimensionError):
            dot([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_normalize(self):
        np.testing.assert_allclose(normalize([3.0, 4.0]), [0.6, 0.8])

    def test_normalize_zero_vector(self):
        with pytest.raises(ComputationError, match="normalize"):
            normalize([0.0, 1e-12])

    @pytest.mark.parametrize("x, places, expected", [
        (2.345, 2, 2.35),
        (-2.5, 0, -3.0),
        (0.5, 0, 1.0),
        (1.2344, 3, 1.234),
    ])
    def test_round_half_away_from_zero(self, x, places, expected):
        assert round_to_decimal(x, places) == pytest.approx(expected)

    def test_round_non_finite_passthrough(self):
        assert math.isnan(round_to_decimal(math.nan, 3))

    def test_argmax_argmin(self):
        assert argmax([1.0, 5.0, 5.0, 2.0]) == 1
        assert argmin([3.0, -1.0, -1.0]) == 1
        assert argmax([]) is None
        assert argmin([]) is None


# ═══════════════════════════════════════════════════════════════════════
# Inverse
# ═══════════════════════════════════════════════════════════════════════


class TestInverse:

    def test_known_2x2(self):
        np.testing.assert_allclose(
            inverse([[4.0, 7.0], [2.0, 6.0]]),
            [[0.6, -0.7], [-0.2, 0.4]],
            rtol=EXACT_FP64.rtol, atol=EXACT_FP64.atol,
        )

    def test_matches_numpy(self, general_matrix):
        np.testing.assert_allclose(
            inverse(general_matrix), np.linalg.inv(general_matrix), rtol=1e-9, atol=1e-12,
        )

    def test_double_inverse_roundtrip(self, spd_matrix):
        np.testing.assert_allclose(inverse(inverse(spd_matrix)), spd_matrix, rtol=1e-9)

    def test_needs_pivoting(self):
        A = np.array([[0.0, 1.0], [1.0, 0.0]])
        np.testing.assert_allclose(inverse(A), A)

    def test_zero_row_is_singular(self):
        A = np.array([[1.0, 2.0, 3.0], [0.0, 0.0, 0.0], [4.0, 5.0, 6.0]])
        with pytest.raises(SingularMatrixError) as exc_info:
            inverse(A, 'W')
        assert exc_info.value.matrix_name == 'W'

    def test_extreme_entries_rescaled(self):
        A = np.diag([1e60, 2e60])
        np.testing.assert_allclose(inverse(A), np.diag([1e-60, 0.5e-60]), rtol=1e-12)

    def test_input_not_modified(self, general_matrix):
        copy = general_matrix.copy()
        inverse(general_matrix)
        np.testing.assert_array_equal(general_matrix, copy)

    def test_non_square(self):
        with pytest.raises(DimensionError):
            inverse(np.zeros((2, 3)))

    def test_non_finite(self):
        with pytest.raises(ValidationError):
            inverse([[1.0, np.nan], [0.0, 1.0]])


# ═══════════════════════════════════════════════════════════════════════
# LU and solve
# ═══════════════════════════════════════════════════════════════════════


class TestLU:

    def test_reconstruction(self, general_matrix):
        lu = lu_decomposition(general_matrix)
        np.testing.assert_allclose(lu.L @ lu.U, general_matrix[lu.pivots], atol=1e-12)
        np.testing.assert_allclose(np.diag(lu.L), 1.0)
        assert lu.sign in (1.0, -1.0)

    def test_singular(self):
        with pytest.raises(SingularMatrixError):
            lu_decomposition([[1.0, 2.0], [2.0, 4.0]])

    def test_solve_vector(self, general_matrix):
        b = np.arange(1.0, 6.0)
        np.testing.assert_allclose(solve(general_matrix, b), np.linalg.solve(general_matrix, b), rtol=1e-10)

    def test_solve_matrix_rhs(self, spd_matrix):
        B = np.eye(4)
        np.testing.assert_allclose(solve(spd_matrix, B), np.linalg.inv(spd_matrix), rtol=1e-9, atol=1e-12)

    def test_solve_shape_mismatch(self, spd_matrix):
        with pytest.raises(DimensionError):
            solve(spd_matrix, np.ones(3))


# ═══════════════════════════════════════════════════════════════════════
# Cholesky
# ═══════════════════════════════════════════════════════════════════════


class TestCholesky:

    def test_reconstruction(self, spd_matrix):
        L = cholesky(spd_matrix)
        np.testing.assert_allclose(L @ L.T, spd_matrix, rtol=1e-12)
        np.testing.assert_allclose(L, np.linalg.cholesky(spd_matrix), rtol=1e-10)
        assert np.allclose(np.triu(L, 1), 0.0)

    def test_asymmetric_rejected(self):
        with pytest.raises(ValidationError, match="symmetric"):
            cholesky([[2.0, 1.0], [0.0, 2.0]])

    def test_not_positive_definite(self):
        with pytest.raises(NotPositiveDefiniteError) as exc_info:
            cholesky([[1.0, 2.0], [2.0, 1.0]], 'C')
        assert exc_info.value.column == 1
        assert exc_info.value.pivot < 0


# ═══════════════════════════════════════════════════════════════════════
# Determinant
# ═══════════════════════════════════════════════════════════════════════


class TestDeterminant:

    @pytest.mark.parametrize("k", [1, 2, 3, 4, 6])
    def test_matches_numpy(self, rng, k):
        A = rng.standard_normal((k, k)) + 2.0 * np.eye(k)
        assert determinant(A) == pytest.approx(np.linalg.det(A), rel=1e-9)

    def test_closed_forms(self):
        assert determinant([[3.0]]) == 3.0
        assert determinant([[1.0, 2.0], [3.0, 4.0]]) == pytest.approx(-2.0)
        assert determinant(np.diag([2.0, 3.0, 4.0])) == pytest.approx(24.0)

    def test_singular_is_zero(self):
        A = np.array([[1.0, 2.0, 3.0, 4.0]] * 4)
        assert determinant(A) == 0.0

    def test_negligible_product_is_zero(self):
        assert determinant(np.diag([1e-200, 1e-200, 1.0, 1.0])) == 0.0

    def test_extreme_entries_use_lu(self):
        A = np.array([[1e60, 0.0], [0.0, 2.0]])
        assert determinant(A) == pytest.approx(2e60)

    def test_log_determinant_symmetric(self, spd_matrix):
        sign, logdet = np.linalg.slogdet(spd_matrix)
        assert sign == 1.0
        assert log_determinant(spd_matrix) == pytest.approx(logdet, rel=1e-10)

    def test_log_determinant_general(self):
        A = np.array([[4.0, 1.0], [2.0, 3.0]])
        assert log_determinant(A) == pytest.approx(math.log(10.0))

    def test_log_determinant_not_pd(self):
        with pytest.raises(NotPositiveDefiniteError):
            log_determinant([[1.0, 0.0], [0.0, -1.0]])

    def test_log_determinant_negative_general(self):
        with pytest.raises(ComputationError):
            log_determinant([[1.0, 2.0], [3.0, 4.0]])


# ═══════════════════════════════════════════════════════════════════════
# QR
# ═══════════════════════════════════════════════════════════════════════


class TestQR:

    def test_reconstruction(self, rng):
        X = rng.standard_normal((20, 4))
        qr = qr_decomposition(X)
        np.testing.assert_allclose(qr.Q @ qr.R, X, atol=1e-12)
        np.testing.assert_allclose(qr.Q.T @ qr.Q, np.eye(4), atol=1e-12)
        assert qr.rank == 4

    def test_rank_deficient(self, rng):
        x1 = rng.standard_normal(30)
        x2 = rng.standard_normal(30)
        X = np.column_stack([x1, x2, x1 + x2])
        assert qr_decomposition(X).rank == 2

    def test_zero_matrix(self):
        assert qr_decomposition(np.zeros((5, 2))).rank == 0
