"""
Command-line entry point: parse flags, configure logging, run the batch.

Exit status is 0 on success (including an empty directory) and 1 when
any file fails, with "Error: <message>" on stderr.
"""

import argparse
import logging
import sys
from typing import List, Optional

from scatters import __version__
from scatters.config import DEFAULT_LARGE_MODE_THRESHOLD, DEFAULT_MARKER, DEFAULT_MAX_DECIMALS, Settings
from scatters.errors import ScattersError
from scatters.pipeline import run


def _downsample_threshold(value: str) -> int:
    n = int(value)
    if n < 3:
        raise argparse.ArgumentTypeError("downsample threshold must be at least 3")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scatters",
        description="Generate interactive scatter plots (HTML) from CSV, Parquet, JSON, Excel or audio files.",
    )
    parser.add_argument("input_path", help="Input file or folder to scan for data")
    parser.add_argument("-o", "--output-dir", help="Directory for the generated HTML plots (default: next to each input)")
    parser.add_argument("-i", "--index", help="Column to use as the X-axis; overrides --use-first-column")
    parser.add_argument("-f", "--use-first-column", action="store_true", help="Use the first column as the X-axis")
    parser.add_argument("-c", "--columns", help="Comma-separated Y columns (default: all numeric columns)")
    parser.add_argument("-t", "--title", help="Plot title (default: input file name)")
    parser.add_argument(
        "-d", "--downsample-threshold", type=_downsample_threshold, default=None,
        help="Downsample series longer than N points with LTTB (default: off)",
    )
    parser.add_argument("-n", "--no-autoscale-y", action="store_true", help="Keep the initial Y range when zooming")
    parser.add_argument("-a", "--animations", action="store_true", help="Enable chart animations")
    parser.add_argument(
        "-m", "--max-decimals", type=int, default=DEFAULT_MAX_DECIMALS,
        help="Maximum decimal places for numbers; -1 for unlimited",
    )
    parser.add_argument(
        "-M", "--special-marker", default=DEFAULT_MARKER,
        help="Value that marks a vertical line instead of a point",
    )
    parser.add_argument(
        "-l", "--large-mode-threshold", type=int, default=DEFAULT_LARGE_MODE_THRESHOLD,
        help="Render series with more visible points than this with WebGL",
    )
    parser.add_argument("-D", "--debug", action="store_true", help="Print detected columns, dtypes and shapes")
    parser.add_argument("-w", "--white-theme", action="store_true", help="Use a light theme instead of the dark one")
    parser.add_argument("-k", "--keep-going", action="store_true", help="Continue with remaining files after a failure")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_args(args)

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(message)s",
        stream=sys.stdout,
    )

    try:
        report = run(settings)
    except ScattersError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not report.ok:
        print(f"Error: {len(report.failed)} of {len(report.results)} files failed", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
