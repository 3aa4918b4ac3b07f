"""
Load supported files into a DataFrame and infer column types.

Tabular formats (CSV, Parquet, JSON, Excel) go through a coercion pass:
text columns that are entirely numeric become float64, remaining text
columns that look like dates/datetimes become datetime64. Audio files are
decoded into one float column per channel plus a sample counter.
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Any, Callable, List, Optional

import numpy as np
import pandas as pd
import soundfile as sf

from scatters.config import DEFAULT_MARKER
from scatters.errors import (
    AudioDecodeError,
    FileIOError,
    SpreadsheetParseError,
    TableParseError,
    UnsupportedFormat,
)
from scatters.table import is_text
from scatters.values import epoch_ms

logger = logging.getLogger(__name__)

TABLE_EXTENSIONS = frozenset({"csv", "parquet", "json", "jsonl", "ndjson", "xlsx", "xls"})
AUDIO_EXTENSIONS = frozenset({"wav", "mp3", "flac", "ogg", "m4a", "aac"})
SUPPORTED_EXTENSIONS = TABLE_EXTENSIONS | AUDIO_EXTENSIONS

CSV_ENCODINGS = ("utf-8-sig", "latin-1")
EXCEL_ERROR_VALUES = frozenset({"#NULL!", "#DIV/0!", "#VALUE!", "#REF!", "#NAME?", "#NUM!", "#N/A", "#GETTING_DATA"})

# Loose shape shared by every candidate date format; values that fail it are never tried.
_DATE_SHAPE = r"^\d{1,4}[-/. ]\d{1,2}[-/. ]\d{1,4}"


def file_extension(path: Path | str) -> str:
    return Path(path).suffix.lower().lstrip(".")


def is_supported(path: Path | str) -> bool:
    return file_extension(path) in SUPPORTED_EXTENSIONS


def load_table(path: Path | str, marker: str = DEFAULT_MARKER, datetime_ratio: float = 0.9) -> pd.DataFrame:
    """
    Read a supported file into a DataFrame.

    Raises UnsupportedFormat for unknown extensions, FileIOError for I/O
    failures and a format-specific parse error otherwise.
    """
    p = Path(path)
    ext = file_extension(p)

    if ext in AUDIO_EXTENSIONS:
        return read_audio(p)

    if ext == "csv":
        df = read_csv(p)
    elif ext == "parquet":
        df = _read_tabular(p, lambda: pd.read_parquet(p))
    elif ext in ("json", "jsonl", "ndjson"):
        df = _read_tabular(p, lambda: read_json(p, lines_only=ext != "json"))
    elif ext in ("xlsx", "xls"):
        df = read_excel(p)
    else:
        raise UnsupportedFormat(p)

    df = normalize_text_columns(df)
    df = coerce_numeric_columns(df, marker)
    df = coerce_datetime_columns(df, datetime_ratio)
    return df.reset_index(drop=True)


def _read_tabular(path: Path, reader: Callable[[], pd.DataFrame]) -> pd.DataFrame:
    try:
        return reader()
    except OSError as e:
        raise FileIOError(f"Failed to read {path}: {e}") from e
    except Exception as e:
        raise TableParseError(f"Failed to parse {path}: {e}") from e


# ---------------------------------------------------------------------------
# CSV / JSON
# ---------------------------------------------------------------------------

def _blank_to_na(s: pd.Series) -> pd.Series:
    s = s.str.strip()
    return s.mask((s == "").fillna(False))


def read_csv(path: Path) -> pd.DataFrame:
    """
    Every field is read as text and trimmed; empty fields become missing.
    Short rows are padded with missing values, long rows truncated to the
    header width.
    """
    last_err: Optional[Exception] = None
    for enc in CSV_ENCODINGS:
        try:
            df = _read_csv_encoded(path, enc)
            break
        except UnicodeDecodeError as e:
            last_err = e
            continue
    else:
        raise TableParseError(f"Could not decode {path}: {last_err}")

    df.columns = [str(c).strip() for c in df.columns]
    for col in df.columns:
        df[col] = _blank_to_na(df[col])
    return df


def _read_csv_encoded(path: Path, encoding: str) -> pd.DataFrame:
    opts = dict(dtype="string", keep_default_na=False, index_col=False, encoding=encoding)
    try:
        header = pd.read_csv(path, nrows=0, **opts)
    except OSError as e:
        raise FileIOError(f"Failed to read {path}: {e}") from e
    except pd.errors.EmptyDataError as e:
        raise TableParseError(f"CSV file is empty: {path}") from e
    except UnicodeDecodeError:
        raise
    except Exception as e:
        raise TableParseError(f"Failed to read CSV {path}: {e}") from e

    width = len(header.columns)
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", pd.errors.ParserWarning)
            df = pd.read_csv(path, **opts)
        for w in caught:
            if issubclass(w.category, pd.errors.ParserWarning):
                logger.debug("Truncated rows in %s to %d fields: %s", path, width, w.message)
            else:
                warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)
        return df
    except pd.errors.ParserError:
        logger.debug("Uneven rows in %s, truncating to %d fields", path, width)
    except UnicodeDecodeError:
        raise
    except Exception as e:
        raise TableParseError(f"Failed to read CSV {path}: {e}") from e

    try:
        return pd.read_csv(path, engine="python", on_bad_lines=lambda fields: fields[:width], **opts)
    except UnicodeDecodeError:
        raise
    except Exception as e:
        raise TableParseError(f"Failed to read CSV {path}: {e}") from e


def read_json(path: Path, lines_only: bool) -> pd.DataFrame:
    """A .json file is tried as a regular document, then as JSON Lines."""
    if not lines_only:
        try:
            return pd.read_json(path, convert_dates=False)
        except ValueError:
            logger.debug("%s is not a single JSON document, trying JSON Lines", path)
    return pd.read_json(path, lines=True, convert_dates=False)


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------

def _is_blank_cell(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        s = value.strip()
        return s == "" or s in EXCEL_ERROR_VALUES
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _cell_text(value: Any) -> Optional[str]:
    if _is_blank_cell(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _unique_names(names: List[str]) -> List[str]:
    seen: dict = {}
    out = []
    for name in names:
        if name in seen:
            seen[name] += 1
            out.append(f"{name}.{seen[name]}")
        else:
            seen[name] = 0
            out.append(name)
    return out


def read_excel(path: Path) -> pd.DataFrame:
    """
    First sheet only. The first row that is not entirely empty/error cells is
    the header; every cell below it is kept as text.
    """
    try:
        raw = pd.read_excel(path, sheet_name=0, header=None, dtype=object)
    except OSError as e:
        raise FileIOError(f"Failed to read {path}: {e}") from e
    except Exception as e:
        raise SpreadsheetParseError(f"Failed to parse workbook {path}: {e}") from e

    width = raw.shape[1]
    blank_rows = [all(_is_blank_cell(v) for v in row) for row in raw.itertuples(index=False)]
    header_idx = next((i for i, blank in enumerate(blank_rows) if not blank), None)
    if header_idx is None or width == 0:
        raise SpreadsheetParseError(f"No header row found in {path}")

    headers = []
    for i in range(width):
        name = _cell_text(raw.iat[header_idx, i])
        headers.append(name.strip() if name and name.strip() else f"col_{i + 1}")
    headers = _unique_names(headers)

    body = raw.iloc[header_idx + 1:]
    data = {
        name: pd.Series([_cell_text(v) for v in body.iloc[:, i]], dtype="string")
        for i, name in enumerate(headers)
    }
    return pd.DataFrame(data)


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------

def read_audio(path: Path) -> pd.DataFrame:
    """Decode an audio file into sample_index + channel_<i> columns."""
    try:
        samples, sample_rate = sf.read(str(path), always_2d=True, dtype="float32")
    except (sf.SoundFileError, RuntimeError, TypeError) as e:
        raise AudioDecodeError(f"Failed to decode audio {path}: {e}") from e
    except OSError as e:
        raise FileIOError(f"Failed to read {path}: {e}") from e

    num_samples, num_channels = samples.shape
    logger.debug("Decoded %s: %d samples x %d channels at %d Hz", path, num_samples, num_channels, sample_rate)
    if num_samples == 0:
        return pd.DataFrame()

    data = {"sample_index": np.arange(num_samples, dtype="int64")}
    for i in range(num_channels):
        data[f"channel_{i}"] = samples[:, i]
    return pd.DataFrame(data)


# ---------------------------------------------------------------------------
# Type coercion
# ---------------------------------------------------------------------------

def normalize_text_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Object columns holding only str values become the pandas "string" dtype."""
    df = df.copy()
    for name in df.columns:
        col = df[name]
        if pd.api.types.is_object_dtype(col) and all(isinstance(v, str) for v in col.dropna()):
            df[name] = col.astype("string")
    return df


def coerce_numeric_columns(df: pd.DataFrame, marker: str = DEFAULT_MARKER) -> pd.DataFrame:
    """
    Replace text columns whose every non-null trimmed value parses as a float.
    Columns containing the vertical marker are left alone.
    """
    df = df.copy()
    for name in df.columns:
        col = df[name]
        if not is_text(col):
            continue
        stripped = col.str.strip()
        present = stripped.dropna()
        if present.empty:
            continue
        if (present == marker).any():
            logger.debug("Column '%s' holds the marker %r, keeping it as text", name, marker)
            continue

        parsed = pd.to_numeric(stripped, errors="coerce")
        parsed_count = int(parsed.notna().sum())
        logger.debug(
            "Numeric check for '%s': %d rows, %d non-null, %d parsed",
            name, len(col), len(present), parsed_count,
        )
        if parsed_count == len(present):
            df[name] = pd.Series(parsed.to_numpy(dtype="float64", na_value=np.nan), index=df.index)
    return df


def datetime_format_candidates() -> List[str]:
    """Y-M-D and D-M-Y date formats, date-only first, then with time suffixes."""
    fmts: List[str] = []
    for sep in ("-", "/", ".", " "):
        ymd = f"%Y{sep}%m{sep}%d"
        dmy = f"%d{sep}%m{sep}%Y"
        fmts.append(ymd)
        fmts.append(dmy)
        for joiner in ("T", " "):
            for t in ("%H", "%H:%M", "%H:%M:%S"):
                fmts.append(f"{ymd}{joiner}{t}")
                fmts.append(f"{dmy}{joiner}{t}")
    return fmts


def _meets_ratio(parsed: int, total: int, ratio: float) -> bool:
    return total > 0 and parsed >= ratio * total - 1e-9


def _iso_datetimes(values: pd.Series) -> pd.Series:
    """ISO 8601 values carrying a full date; bare years or year-months stay unparsed."""
    shaped = values.str.match(_DATE_SHAPE).fillna(False).astype(bool)
    try:
        parsed = pd.to_datetime(values.where(shaped), errors="coerce", format="ISO8601", utc=True)
    except (ValueError, TypeError, OverflowError):
        return pd.Series(pd.NaT, index=values.index, dtype="datetime64[ns]")
    return parsed.dt.tz_convert(None)


def _candidate_datetimes(values: pd.Series) -> pd.Series:
    normalized = values.str.replace(r"\s+", " ", regex=True).str.strip()
    result = pd.Series(pd.NaT, index=values.index, dtype="datetime64[ns]")
    shaped = normalized.str.match(_DATE_SHAPE).fillna(False).astype(bool)
    if not shaped.any():
        return result

    for fmt in datetime_format_candidates():
        pending = shaped & result.isna()
        if not pending.any():
            break
        attempt = pd.to_datetime(normalized[pending], format=fmt, errors="coerce")
        result[pending] = attempt
    return result


def parse_datetime_text(text: str) -> Optional[int]:
    """Epoch milliseconds for text matching one of the candidate formats, else None."""
    parsed = _candidate_datetimes(pd.Series([text], dtype="string")).iloc[0]
    return None if pd.isna(parsed) else epoch_ms(parsed)


def coerce_datetime_columns(df: pd.DataFrame, ratio: float = 0.9) -> pd.DataFrame:
    """
    Convert text columns where at least `ratio` of non-null values parse as
    datetimes, first with the ISO 8601 parser, then with the candidate formats.
    """
    df = df.copy()
    for name in df.columns:
        col = df[name]
        if not is_text(col):
            continue
        total = int(col.notna().sum())
        if total == 0:
            continue
        stripped = col.str.strip()

        parsed = _iso_datetimes(stripped)
        if _meets_ratio(int(parsed.notna().sum()), total, ratio):
            logger.debug("Column '%s' parsed as ISO 8601 datetimes", name)
            df[name] = parsed
            continue

        parsed = _candidate_datetimes(stripped)
        if _meets_ratio(int(parsed.notna().sum()), total, ratio):
            logger.debug("Column '%s' parsed with candidate date formats", name)
            df[name] = parsed.astype("datetime64[ms]")
    return df
