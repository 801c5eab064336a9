"""
Numerical thresholds and tolerance tiers.

Two kinds of constants live here:
- thresholds the kernels use to decide "singular", "negligible",
  "underflowed" (single definition, imported everywhere);
- ToleranceTier comparison tiers used by the test suite when checking
  the from-scratch kernels against reference implementations.
"""

from dataclasses import dataclass


# Pivot magnitude below which a matrix is treated as singular
PIVOT_TOLERANCE = 1e-10

# Entries beyond these magnitudes trigger pre-scaling in inverse()
EXTREME_LARGE = 1e50
EXTREME_SMALL = 1e-50

# Running determinant product below this is reported as 0
NEGLIGIBLE_PRODUCT = 1e-300

# |a_ij - a_ji| allowed for a matrix to count as symmetric
SYMMETRY_TOLERANCE = 1e-10

# Vector norm below which power iteration has collapsed
COLLAPSE_TOLERANCE = 1e-10

# Eigen solver defaults
EIGEN_MAX_ITER = 100
EIGEN_TOLERANCE = 1e-10

# Groups with |C_j| at or below this are left out of Box's M
BOX_M_DETERMINANT_THRESHOLD = 1e-10

# Box's M switches to the chi-square approximation above this df2
BOX_M_CHI_SQUARE_DF = 10_000

# Posterior terms more than this far below the max are exactly zero
POSTERIOR_UNDERFLOW = 46.0

# Stand-in for a zero prior inside a logarithm
ZERO_PRIOR = 1e-10

# Column norms below this are not renormalized
NORMALIZE_TOLERANCE = 1e-10


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Exact kernels (inverse, LU, Cholesky, Jacobi) against LAPACK
EXACT_FP64 = ToleranceTier(
    rtol=1e-9,
    atol=1e-10,
    name='exact_fp64',
    description='Direct double-precision kernels, matches LAPACK',
)

# Iterative kernels (power iteration) and series (incomplete beta, Lanczos)
ITERATIVE_FP64 = ToleranceTier(
    rtol=1e-6,
    atol=1e-8,
    name='iterative_fp64',
    description='Iterative or series evaluation, converged to 1e-10 relative',
)

# Abramowitz-Stegun erf: |error| < 1.5e-7
RATIONAL_APPROXIMATION = ToleranceTier(
    rtol=1e-6,
    atol=5e-7,
    name='rational_approximation',
    description='Rational approximation of erf and the normal CDF',
)

# Wilson-Hilferty cube-root chi-square approximation
WILSON_HILFERTY = ToleranceTier(
    rtol=5e-2,
    atol=1e-2,
    name='wilson_hilferty',
    description='Wilson-Hilferty chi-square approximation, df >= 3',
)
