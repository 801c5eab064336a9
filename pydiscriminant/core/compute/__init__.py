"""
Shared compute infrastructure for pydiscriminant.

IMPORTANT: This is NOT where discriminant-analysis logic lives. That goes
in pydiscriminant/discriminant/. This module contains shared NUMERIC
infrastructure.

Submodules:
    timing: Execution timing utilities
    tolerances: Numerical thresholds and comparison tiers
    distributions: Normal / chi-square / F / gamma approximations
    linalg: Linear algebra kernels (inverse, LU, Cholesky, QR, eigen)
"""

from pydiscriminant.core.compute.timing import Timer

__all__ = [
    "Timer",
]
