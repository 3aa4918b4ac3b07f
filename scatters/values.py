"""
Conversions from table cells to plain floats and JSON-native values.

Cells can be any of the column kinds (numbers, text, booleans, dates,
datetimes, missing). Dates and datetimes are expressed as milliseconds since
the Unix epoch, which is what the chart's time axis consumes.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Any, List, Optional

import numpy as np
import pandas as pd

from scatters.table import ColumnKind, column_kind

MS_PER_DAY = 86_400_000
_EPOCH_DATE = dt.date(1970, 1, 1)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def epoch_ms(value: Any) -> Optional[int]:
    """Milliseconds since the epoch for a date/datetime-like value, else None."""
    if _is_missing(value):
        return None
    if isinstance(value, (pd.Timestamp, dt.datetime, np.datetime64)):
        ts = pd.Timestamp(value)
        return int(ts.value // 1_000_000)
    if isinstance(value, dt.date):
        return (value - _EPOCH_DATE).days * MS_PER_DAY
    return None


def to_float(value: Any) -> Optional[float]:
    """
    Numeric view of a single cell.
    Booleans have no numeric view. Text is trimmed and thousands separators
    are dropped before parsing.
    """
    if _is_missing(value):
        return None
    if isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", ""))
        except ValueError:
            return None
    ms = epoch_ms(value)
    return float(ms) if ms is not None else None


def to_json_value(value: Any) -> Any:
    if _is_missing(value):
        return None
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        f = float(value)
        return f if math.isfinite(f) else None
    if isinstance(value, str):
        return value
    ms = epoch_ms(value)
    if ms is not None:
        return ms
    return str(value)


def _datetime_ms(series: pd.Series) -> np.ndarray:
    if getattr(series.dt, "tz", None) is not None:
        series = series.dt.tz_convert(None)
    arr = series.to_numpy(dtype="datetime64[ns]")
    ms = arr.astype("datetime64[ms]").astype("int64").astype("float64")
    ms[np.isnat(arr)] = np.nan
    return ms


def float_values(series: pd.Series) -> np.ndarray:
    """Vectorized to_float over a whole column; missing/unparseable -> NaN."""
    kind = column_kind(series)
    if kind in (ColumnKind.INTEGER, ColumnKind.FLOAT):
        return series.to_numpy(dtype="float64", na_value=np.nan)
    if kind == ColumnKind.BOOLEAN:
        return np.full(len(series), np.nan)
    if kind == ColumnKind.DATETIME and pd.api.types.is_datetime64_any_dtype(series):
        return _datetime_ms(series)
    if isinstance(series.dtype, pd.StringDtype):
        cleaned = series.str.strip().str.replace(",", "", regex=False)
        return pd.to_numeric(cleaned, errors="coerce").to_numpy(dtype="float64", na_value=np.nan)
    out = [to_float(v) for v in series.tolist()]
    return np.array([np.nan if v is None else v for v in out], dtype="float64")


def json_values(series: pd.Series) -> List[Any]:
    """Vectorized to_json_value over a whole column; missing -> None."""
    kind = column_kind(series)
    if kind == ColumnKind.DATETIME and pd.api.types.is_datetime64_any_dtype(series):
        return [None if math.isnan(v) else int(v) for v in _datetime_ms(series)]
    if kind == ColumnKind.FLOAT:
        return [v if math.isfinite(v) else None for v in series.to_numpy(dtype="float64", na_value=np.nan).tolist()]
    if kind == ColumnKind.INTEGER and not series.isna().any():
        return series.astype("int64").tolist()
    return [to_json_value(v) for v in series.tolist()]
