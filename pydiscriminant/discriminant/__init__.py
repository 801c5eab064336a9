"""
Linear discriminant analysis.

Public API:
    discriminant(X, groups, ...) -> DiscriminantSolution     # direct or stepwise
    stepwise_discriminant(X, groups, ...) -> StepwiseSolution
    DiscriminantDesign                                       # validated grouped data
    DiscriminantAnalysis(design)                             # named operations, get_results()
    StepwiseOptions, StepwiseCriteria                        # stepwise configuration
"""

from pydiscriminant.discriminant.solvers import discriminant, stepwise_discriminant
from pydiscriminant.discriminant.solution import DiscriminantSolution, StepwiseSolution
from pydiscriminant.discriminant.design import DiscriminantDesign
from pydiscriminant.discriminant.analysis import DiscriminantAnalysis
from pydiscriminant.discriminant._stepwise import StepwiseCriteria, StepwiseOptions
from pydiscriminant.discriminant._common import DiscriminantReport

__all__ = [
    "discriminant",
    "stepwise_discriminant",
    "DiscriminantSolution",
    "StepwiseSolution",
    "DiscriminantDesign",
    "DiscriminantAnalysis",
    "DiscriminantReport",
    "StepwiseCriteria",
    "StepwiseOptions",
]
