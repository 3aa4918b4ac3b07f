"""
Error types raised while turning a data file into a plot.

Every failure that aborts a file derives from ScattersError so the CLI can
report it without a traceback. Coercion heuristics never raise these; a
column that cannot be converted simply stays as text.
"""

from __future__ import annotations

from pathlib import Path


class ScattersError(Exception):
    """Base class for all plotting failures."""


class InvalidInputPath(ScattersError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Invalid input path: {path} does not exist or is not a file/directory")


class UnsupportedFormat(ScattersError):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Unsupported file format for: {path}")


class FileIOError(ScattersError):
    """Reading an input file or writing an output file failed."""


class TableParseError(ScattersError):
    """A tabular file (CSV, Parquet, JSON) could not be parsed."""


class AudioDecodeError(ScattersError):
    """An audio file could not be decoded."""


class SpreadsheetParseError(ScattersError):
    """An Excel workbook could not be parsed."""


class SerializationError(ScattersError):
    """Plot data could not be converted to JSON."""


class ColumnNotFound(ScattersError):
    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(f"Column '{column}' not found in the data")


class NoNumericColumns(ScattersError):
    def __init__(self) -> None:
        super().__init__("No numeric columns found to plot")


class RenderError(ScattersError):
    """The HTML page could not be produced."""


class FileProcessingError(ScattersError):
    """A per-file failure, qualified with the file that caused it."""

    def __init__(self, path: Path | str, cause: Exception) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to process file: {path}: {cause}")
