"""
Column kinds for the in-memory table.

The table itself is a plain pandas DataFrame; this module maps pandas dtypes
onto the small set of kinds the axis selector and renderer care about.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import List

import pandas as pd
import pandas.api.types as ptypes


class ColumnKind(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"


NUMERIC_KINDS = (ColumnKind.INTEGER, ColumnKind.FLOAT)
TIME_KINDS = (ColumnKind.DATE, ColumnKind.DATETIME)


def column_kind(series: pd.Series) -> ColumnKind:
    """
    Classify a column by dtype.
    Object columns are inspected: all datetime.date values -> DATE,
    all datetime.datetime values -> DATETIME, anything else -> STRING.
    """
    if ptypes.is_bool_dtype(series):
        return ColumnKind.BOOLEAN
    if ptypes.is_integer_dtype(series):
        return ColumnKind.INTEGER
    if ptypes.is_float_dtype(series):
        return ColumnKind.FLOAT
    if ptypes.is_datetime64_any_dtype(series):
        return ColumnKind.DATETIME

    non_null = series.dropna()
    if ptypes.is_object_dtype(series) and len(non_null) > 0:
        if all(isinstance(v, dt.datetime) for v in non_null):
            return ColumnKind.DATETIME
        if all(isinstance(v, dt.date) for v in non_null):
            return ColumnKind.DATE
    return ColumnKind.STRING


def is_numeric(series: pd.Series) -> bool:
    return column_kind(series) in NUMERIC_KINDS


def is_text(series: pd.Series) -> bool:
    """True for the pandas "string" dtype produced by the loader."""
    return isinstance(series.dtype, pd.StringDtype)


def describe_table(df: pd.DataFrame) -> List[str]:
    lines = ["Detected columns:"]
    for name in df.columns:
        col = df[name]
        lines.append(f"  - {name}: {col.dtype} ({column_kind(col).value})")
    lines.append(f"Shape: {df.shape[0]} rows x {df.shape[1]} cols")
    return lines
