"""
Choose the X column and the Y columns to plot.

X priority:
1. explicit --index column
2. first column when --use-first-column is set
3. a column named sample_index (audio files)
4. first date/datetime column that is not entirely null
5. a synthesized row_index 0..n-1
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from scatters.config import DEFAULT_MARKER
from scatters.errors import ColumnNotFound, NoNumericColumns, TableParseError
from scatters.table import TIME_KINDS, ColumnKind, column_kind, is_numeric

logger = logging.getLogger(__name__)

SAMPLE_INDEX = "sample_index"
ROW_INDEX = "row_index"


def has_marker(series: pd.Series, marker: str = DEFAULT_MARKER) -> bool:
    """True if any trimmed text value equals the marker."""
    values = series.dropna()
    if values.empty:
        return False
    if isinstance(series.dtype, pd.StringDtype):
        return bool((values.str.strip() == marker).any())
    return any(isinstance(v, str) and v.strip() == marker for v in values)


def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name not in df.columns:
        raise ColumnNotFound(name)
    return df[name]


def select_x(df: pd.DataFrame, index: Optional[str] = None, use_first_column: bool = False) -> Tuple[pd.Series, str]:
    if index:
        return _column(df, index), index

    if use_first_column:
        if df.shape[1] == 0:
            raise TableParseError("Table is empty")
        first = df.columns[0]
        return df[first], str(first)

    if SAMPLE_INDEX in df.columns:
        return df[SAMPLE_INDEX], SAMPLE_INDEX

    for name in df.columns:
        col = df[name]
        if column_kind(col) in TIME_KINDS and col.notna().any():
            return col, str(name)

    logger.warning("No index specified and no datetime column found; using row numbers as index")
    return pd.Series(np.arange(len(df), dtype="int64"), name=ROW_INDEX), ROW_INDEX


def select_y(
    df: pd.DataFrame,
    x_name: str,
    columns: Optional[Sequence[str]] = None,
    marker: str = DEFAULT_MARKER,
) -> List[pd.Series]:
    """
    Explicit columns are resolved by name. Otherwise every numeric column
    other than X is used, along with text columns that carry the marker.
    """
    selected: List[pd.Series] = []

    if columns:
        for name in columns:
            selected.append(_column(df, name))
    else:
        for name in df.columns:
            if name == x_name:
                continue
            col = df[name]
            if is_numeric(col) or (column_kind(col) == ColumnKind.STRING and has_marker(col, marker)):
                logger.debug("Including Y-axis column '%s' (%d values)", name, len(col))
                selected.append(col)
            else:
                logger.debug("Skipping column '%s'", name)

    if not selected:
        raise NoNumericColumns()
    return selected
