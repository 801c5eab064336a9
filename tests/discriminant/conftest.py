"""
Shared fixtures for discriminant analysis tests.
"""

import numpy as np
import pytest


@pytest.fixture
def hand_data():
    """
    Two groups, two variables, three cases each.

    Group 1 mean (2, 3), group 2 mean (7, 6); both groups have
    deviations (-1,-1), (0,1), (1,0), so

        W = [[4, 2], [2, 4]]
        T = [[41.5, 24.5], [24.5, 17.5]]
        C_1 = C_2 = C = [[1, .5], [.5, 1]]
    """
    X = np.array([
        [1.0, 2.0], [2.0, 4.0], [3.0, 3.0],
        [6.0, 5.0], [7.0, 7.0], [8.0, 6.0],
    ])
    groups = np.array([1, 1, 1, 2, 2, 2])
    return X, groups


@pytest.fixture
def three_group_data():
    """
    Three groups of 20 cases on three variables.

    Groups separate strongly along X1, moderately along X2; X3 is noise.
    """
    rng = np.random.default_rng(7)
    means = np.array([[0.0, 0.0, 0.0], [5.0, 0.0, 0.0], [0.0, 2.0, 0.0]])
    X = np.vstack([rng.standard_normal((20, 3)) + mu for mu in means])
    groups = np.repeat([1, 2, 3], 20)
    return X, groups


@pytest.fixture
def noisy_two_group_data():
    """Two overlapping groups of 15 on four variables; only X2 separates them."""
    rng = np.random.default_rng(11)
    X = rng.standard_normal((30, 4))
    X[15:, 1] += 2.5
    groups = np.repeat([0, 1], 15)
    return X, groups


@pytest.fixture
def hand_design(hand_data):
    from pydiscriminant.discriminant import DiscriminantDesign

    X, groups = hand_data
    return DiscriminantDesign.from_arrays(X, groups)


@pytest.fixture
def removal_data():
    """
    Two groups of eight on three variables where X1 enters first and is
    later made redundant by X2 and X3 together.

    Within each group the deviations are orthogonal contrasts
    h1, h2, h3 (sum zero, norm² 8):

        X1 = s + 0.8 h1
        X2 = s + h2
        X3 = h2 + 0.25 h3

    with s = 0 in group 1 and s = 2 in group 2, so X2 - X3 carries s
    almost exactly. Then

        W = [[10.24, 0, 0], [0, 16, 16], [0, 16, 17]],   T = W + 4 δδᵀ,  δ = (2, 2, 0)

    and the run is X1 (F 21.875), X2 (F 5.07), X3 (F 53.9), then X1
    removed with F-to-remove 25/24.
    """
    h1 = np.array([1, 1, 1, 1, -1, -1, -1, -1], dtype=float)
    h2 = np.array([1, 1, -1, -1, 1, 1, -1, -1], dtype=float)
    h3 = np.array([1, -1, 1, -1, 1, -1, 1, -1], dtype=float)
    blocks = []
    for shift in (0.0, 2.0):
        blocks.append(np.column_stack([
            10.0 + shift + 0.8 * h1,
            5.0 + shift + h2,
            -3.0 + h2 + 0.25 * h3,
        ]))
    X = np.vstack(blocks)
    groups = np.repeat([1, 2], 8)
    return X, groups
