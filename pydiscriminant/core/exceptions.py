"""
Exception hierarchy for pydiscriminant.

All exceptions inherit from DiscriminantError to allow catching any
library-specific error. Every class carries a ``kind`` attribute (one of
the constants in core.kinds) so that callers which collect failures,
such as the aggregate report, can tag them without isinstance chains.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""

from pydiscriminant.core.kinds import (
    KIND_INVALID_INPUT,
    KIND_INSUFFICIENT_DATA,
    KIND_INVALID_GROUP_SIZE,
    KIND_NOT_ENOUGH_GROUPS,
    KIND_NOT_ENOUGH_VARIABLES,
    KIND_SINGULAR_MATRIX,
    KIND_COMPUTATION_ERROR,
)


class DiscriminantError(Exception):
    """Base exception for all pydiscriminant errors."""
    kind: str = KIND_COMPUTATION_ERROR


class ValidationError(DiscriminantError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks: malformed
    records, undetectable field names, bad priors, bad options.
    """
    kind = KIND_INVALID_INPUT


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions or
    when multiple arrays have inconsistent shapes.
    """
    pass


class InsufficientDataError(ValidationError):
    """
    Too few cases (or too little total weight) for a statistic.

    Attributes:
        n: Number of cases / total weight available
        required: Minimum needed, if meaningful
    """
    kind = KIND_INSUFFICIENT_DATA

    def __init__(
        self,
        message: str,
        n: float | None = None,
        required: float | None = None,
    ):
        super().__init__(message)
        self.n = n
        self.required = required


class InvalidGroupSizeError(ValidationError):
    """
    A group's case count or weight sum is too small.

    Attributes:
        group: Group value of the offending group
        size: Its weighted case count
    """
    kind = KIND_INVALID_GROUP_SIZE

    def __init__(
        self,
        message: str,
        group: int | None = None,
        size: float | None = None,
    ):
        super().__init__(message)
        self.group = group
        self.size = size


class NotEnoughGroupsError(ValidationError):
    """Fewer groups than the statistic needs."""
    kind = KIND_NOT_ENOUGH_GROUPS


class NotEnoughVariablesError(ValidationError):
    """No (or too few) variables available for the statistic."""
    kind = KIND_NOT_ENOUGH_VARIABLES


class NumericalError(DiscriminantError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    kind = KIND_COMPUTATION_ERROR


class ComputationError(NumericalError):
    """
    A solver could not produce a result.

    Raised e.g. when a power-iteration vector collapses to zero, when a
    log-determinant hits a non-positive factor, or when there are no
    discriminant functions to extract.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Raised when a matrix operation requires invertibility but a pivot
    (or determinant) falls below the singularity threshold.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Expected rank (typically the matrix order)
    """
    kind = KIND_SINGULAR_MATRIX

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank


class NotPositiveDefiniteError(ValidationError, NumericalError):
    """
    Matrix is not positive definite.

    Raised by the Cholesky factorization when a diagonal term
    a_jj - sum(l_jk^2) is not positive. Reported as invalid input: the
    caller handed in a matrix the operation is not defined for.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        column: Column at which the factorization broke down
        pivot: The non-positive diagonal term
    """
    kind = KIND_INVALID_INPUT

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        column: int | None = None,
        pivot: float | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.column = column
        self.pivot = pivot
