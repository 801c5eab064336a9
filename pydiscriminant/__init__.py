"""
pydiscriminant: linear discriminant analysis for Python.

Canonical discriminant functions, Fisher classification, leave-one-out
cross-validation and stepwise variable selection, built on a small
self-contained linear algebra and distribution toolkit.

Submodules:
    discriminant: Design, analysis operations and solvers
    core: Result envelope, exceptions, validation, compute kernels
"""

__version__ = "0.1.0"

from pydiscriminant import discriminant
from pydiscriminant.discriminant import (
    DiscriminantAnalysis,
    DiscriminantDesign,
    StepwiseCriteria,
    StepwiseOptions,
    stepwise_discriminant,
)

__all__ = [
    "__version__",
    "discriminant",
    "stepwise_discriminant",
    "DiscriminantAnalysis",
    "DiscriminantDesign",
    "StepwiseCriteria",
    "StepwiseOptions",
]
