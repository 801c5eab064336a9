"""
Linear algebra kernels for pydiscriminant.

Written against NumPy arrays but implemented from the algorithms up
(no LAPACK calls), so that pivot thresholds, singularity decisions and
deflation behave identically everywhere in the package.

All functions follow these conventions:
    - Inputs are validated (square, finite) and never modified
    - Each decomposition returns a structured result dataclass
    - Errors are raised immediately with clear messages

Submodules:
    basics: dot, norm, normalize, round_to_decimal, argmax/argmin
    inverse: Gauss-Jordan inversion
    lu: LU decomposition, triangular solves, solve()
    cholesky: Cholesky decomposition
    determinant: determinant and log-determinant
    qr: Householder QR with numerical rank
    eigen: power iteration, deflation, Jacobi
"""

from pydiscriminant.core.compute.linalg.basics import (
    argmax,
    argmin,
    dot,
    norm,
    normalize,
    round_to_decimal,
)
from pydiscriminant.core.compute.linalg.inverse import inverse
from pydiscriminant.core.compute.linalg.lu import LUResult, lu_decomposition, solve
from pydiscriminant.core.compute.linalg.cholesky import cholesky
from pydiscriminant.core.compute.linalg.determinant import determinant, log_determinant
from pydiscriminant.core.compute.linalg.qr import QRResult, qr_decomposition
from pydiscriminant.core.compute.linalg.eigen import (
    EigenResult,
    find_eigenpairs,
    power_iteration,
    symmetric_eigendecomposition,
)

__all__ = [
    # Primitives
    "argmax",
    "argmin",
    "dot",
    "norm",
    "normalize",
    "round_to_decimal",
    # Decompositions
    "inverse",
    "LUResult",
    "lu_decomposition",
    "solve",
    "cholesky",
    "determinant",
    "log_determinant",
    "QRResult",
    "qr_decomposition",
    # Eigen
    "EigenResult",
    "find_eigenpairs",
    "power_iteration",
    "symmetric_eigendecomposition",
]
