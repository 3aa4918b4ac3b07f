"""
Drive loading, axis selection, downsampling and rendering for each file.

Files are processed one at a time. By default the first failure stops the
batch (raised as FileProcessingError naming the file); with keep_going every
file is attempted and failures are collected as error results.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import wraps
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import pandas as pd

from scatters.axes import select_x, select_y
from scatters.config import Settings
from scatters.downsample import downsample_series
from scatters.errors import FileProcessingError, FileIOError, InvalidInputPath, ScattersError, UnsupportedFormat
from scatters.loader import is_supported, load_table
from scatters.renderer import build_plot_series, render_html, x_axis_type
from scatters.table import column_kind, describe_table

logger = logging.getLogger(__name__)


class SeriesPair(NamedTuple):
    name: str
    x: pd.Series
    y: pd.Series


@dataclass
class RunReport:
    results: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def succeeded(self) -> List[Dict[str, Any]]:
        return [r for r in self.results if r.get("status") == "ok"]

    @property
    def failed(self) -> List[Dict[str, Any]]:
        return [r for r in self.results if r.get("status") == "error"]

    @property
    def ok(self) -> bool:
        return not self.failed


def result_guard(fn):
    """Turn a ScattersError from a per-file step into an error result."""
    @wraps(fn)
    def wrapper(path, *args, **kwargs):
        try:
            return fn(path, *args, **kwargs)
        except ScattersError as e:
            return {
                "status": "error",
                "input": str(path),
                "error": {
                    "type": e.__class__.__name__,
                    "message": str(e),
                },
            }
    return wrapper


def find_supported_files(path: Path) -> List[Path]:
    """
    A supported file yields itself, a directory yields every supported file
    below it (sorted). Unsupported single files and missing paths raise.
    """
    path = Path(path)
    if path.is_file():
        if not is_supported(path):
            raise UnsupportedFormat(path)
        return [path]
    if path.is_dir():
        return sorted(p for p in path.rglob("*") if p.is_file() and is_supported(p))
    raise InvalidInputPath(path)


def output_path_for(input_path: Path, output_dir: Optional[Path] = None) -> Path:
    name = f"{Path(input_path).stem}.html"
    if output_dir is not None:
        return Path(output_dir) / name
    return Path(input_path).with_name(name)


def prepare_series(df: pd.DataFrame, settings: Settings) -> Tuple[List[SeriesPair], str, pd.Series, bool]:
    """
    Select X and Y columns and downsample long series.
    Returns (pairs, x_name, original_x, downsampled).
    """
    x, x_name = select_x(df, index=settings.index, use_first_column=settings.use_first_column)
    logger.debug("Selected X-axis column '%s' with %d values", x_name, len(x))
    y_columns = select_y(df, x_name, columns=settings.columns, marker=settings.marker)

    pairs: List[SeriesPair] = []
    downsampled = False
    threshold = settings.downsample_threshold
    for y in y_columns:
        name = str(y.name)
        if threshold is not None and len(y) > threshold:
            logger.info("  -> Downsampling '%s' from %d to %d points...", name, len(y), threshold)
            ds_x, ds_y = downsample_series(x, y, threshold)
            pairs.append(SeriesPair(name, ds_x, ds_y))
            downsampled = True
        else:
            pairs.append(SeriesPair(name, x, y))
    return pairs, x_name, x, downsampled


def _write_atomic(path: Path, content: str) -> None:
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        os.replace(tmp, path)
    except OSError as e:
        if tmp.exists():
            tmp.unlink()
        raise FileIOError(f"Failed to write output to {path}: {e}") from e


def process_file(path: Path, settings: Settings) -> Dict[str, Any]:
    """Load one file, render its plot and write <stem>.html."""
    path = Path(path)
    df = load_table(path, marker=settings.marker, datetime_ratio=settings.datetime_ratio)
    for line in describe_table(df):
        logger.debug("  -> %s", line)

    pairs, x_name, x, downsampled = prepare_series(df, settings)
    series = [build_plot_series(p.name, p.x, p.y, settings.marker) for p in pairs]

    config = settings.plot_config(
        title=settings.title or path.name,
        x_axis_type=x_axis_type(column_kind(x)),
        x_title=x_name,
        downsampled=downsampled,
    )
    page = render_html(series, config)

    out_path = output_path_for(path, settings.output_dir)
    _write_atomic(out_path, page)
    logger.info("  -> Plot saved to '%s'", out_path)

    return {
        "status": "ok",
        "kind": "scatter",
        "input": str(path),
        "html_path": str(out_path),
        "x": x_name,
        "series": [s.name for s in series],
        "points": sum(s.n for s in series),
        "markers": sum(len(s.markers) for s in series),
        "downsampled": downsampled,
    }


def run(settings: Settings) -> RunReport:
    report = RunReport()
    files = find_supported_files(settings.input_path)
    if not files:
        logger.info("No supported files found in the specified path.")
        return report

    logger.info("Found %d files to process...", len(files))
    guarded = result_guard(process_file)
    for file_path in files:
        logger.info("Processing '%s'...", file_path)
        if settings.keep_going:
            result = guarded(file_path, settings)
            if result["status"] == "error":
                logger.error("  -> Failed: %s", result["error"]["message"])
            report.results.append(result)
            continue
        try:
            report.results.append(process_file(file_path, settings))
        except ScattersError as e:
            raise FileProcessingError(file_path, e) from e

    logger.info("Done.")
    return report
