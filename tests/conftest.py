"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def spd_matrix(rng):
    """Well-conditioned 4x4 symmetric positive definite matrix."""
    A = rng.standard_normal((4, 4))
    return A @ A.T + 4.0 * np.eye(4)


@pytest.fixture
def general_matrix(rng):
    """Well-conditioned non-symmetric 5x5 matrix."""
    return rng.standard_normal((5, 5)) + 5.0 * np.eye(5)
