"""
Error kind string constants for pydiscriminant.

This module is the SINGLE SOURCE OF TRUTH for error kind strings.
Every exception class in core.exceptions carries one of these as its
``kind`` attribute, and report sections that failed are tagged with it.
Import from here, never use raw strings.

Usage:
    from pydiscriminant.core.kinds import KIND_SINGULAR_MATRIX

    section = report.box_m
    if not section.ok and section.error == KIND_SINGULAR_MATRIX:
        ...
"""

# Malformed or missing fields, dimension mismatches
KIND_INVALID_INPUT = 'invalid_input'

# Too few cases or weights for a statistic
KIND_INSUFFICIENT_DATA = 'insufficient_data'

# A group's case or weight count is too small
KIND_INVALID_GROUP_SIZE = 'invalid_group_size'

KIND_NOT_ENOUGH_GROUPS = 'not_enough_groups'

KIND_NOT_ENOUGH_VARIABLES = 'not_enough_variables'

# Pivot or determinant below threshold
KIND_SINGULAR_MATRIX = 'singular_matrix'

# Catch-all for solver failures (e.g. eigenvector collapse)
KIND_COMPUTATION_ERROR = 'computation_error'

ALL_KINDS = frozenset({
    KIND_INVALID_INPUT,
    KIND_INSUFFICIENT_DATA,
    KIND_INVALID_GROUP_SIZE,
    KIND_NOT_ENOUGH_GROUPS,
    KIND_NOT_ENOUGH_VARIABLES,
    KIND_SINGULAR_MATRIX,
    KIND_COMPUTATION_ERROR,
})

__all__ = [
    'KIND_INVALID_INPUT',
    'KIND_INSUFFICIENT_DATA',
    'KIND_INVALID_GROUP_SIZE',
    'KIND_NOT_ENOUGH_GROUPS',
    'KIND_NOT_ENOUGH_VARIABLES',
    'KIND_SINGULAR_MATRIX',
    'KIND_COMPUTATION_ERROR',
    'ALL_KINDS',
]
