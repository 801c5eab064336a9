"""
Record extraction.

Turns loosely typed record collections (one mapping per case) into the
typed arrays DiscriminantDesign is built from. This is the only place
that knows about field names inside records; everything downstream sees
a float matrix plus a tuple of variable names.

Input shape:
    group_records     [{'region': 1}, {'region': 2}, ...]       one per case
    variable_records  [[{'income': 3.2}, ...], [{'age': 41}, ...]]
                      one list per variable, one mapping per case

A value that is missing, None, boolean or non-numeric becomes NaN and
the case is later counted as excluded.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Sequence

import numpy as np
from numpy.typing import NDArray

from pydiscriminant.core.exceptions import DimensionError, ValidationError


def detect_field(records: Sequence[Mapping[str, Any]], what: str) -> str:
    """
    Name of the field a record collection carries.

    The field is the first key of the first record. Every record is
    expected to use the same key; records lacking it are read as missing.

    Raises:
        ValidationError: If the collection is empty or its first record
            has no keys
    """
    if len(records) == 0:
        raise ValidationError(f"{what}: no records")
    first = records[0]
    if not isinstance(first, Mapping) or len(first) == 0:
        raise ValidationError(f"{what}: cannot detect field name from first record {first!r}")
    return str(next(iter(first)))


def _as_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        return math.nan
    return float(value)


def read_column(records: Sequence[Mapping[str, Any]], field: str) -> NDArray[np.floating[Any]]:
    """Values of one field across records, NaN where absent or non-numeric."""
    return np.array(
        [_as_float(record.get(field)) if isinstance(record, Mapping) else math.nan
         for record in records],
        dtype=np.float64,
    )


def extract_records(
    group_records: Sequence[Mapping[str, Any]],
    variable_records: Sequence[Sequence[Mapping[str, Any]]],
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]], tuple[str, ...], str]:
    """
    Typed arrays from record collections.

    Args:
        group_records: One mapping per case holding the group code
        variable_records: One record list per discriminating variable

    Returns:
        (groups, X, variable_names, group_field) where groups is (n,),
        X is (n, p) and may contain NaN for missing values.

    Raises:
        ValidationError: On empty input or an undetectable field name
        DimensionError: If case counts differ across collections
    """
    if len(variable_records) == 0:
        raise ValidationError("variable_records: no discriminating variables given")

    group_field = detect_field(group_records, 'group_records')
    groups = read_column(group_records, group_field)

    names: list[str] = []
    columns: list[NDArray[np.floating[Any]]] = []
    for position, records in enumerate(variable_records):
        field = detect_field(records, f'variable_records[{position}]')
        if len(records) != len(groups):
            raise DimensionError(
                f"variable '{field}' has {len(records)} cases, "
                f"group variable '{group_field}' has {len(groups)}"
            )
        names.append(field)
        columns.append(read_column(records, field))

    return groups, np.column_stack(columns), tuple(names), group_field
