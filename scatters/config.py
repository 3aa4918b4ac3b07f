"""
Resolved run settings and per-plot rendering options.

Settings mirrors the command line one-to-one and also carries the policy
thresholds (datetime acceptance ratio, y padding, symbol sizing) so tests
can tune them without going through argparse.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

DEFAULT_MARKER = "|"
DEFAULT_MAX_DECIMALS = 2
DEFAULT_LARGE_MODE_THRESHOLD = 2000


@dataclass
class PlotConfig:
    """Options consumed by the renderer for a single page."""

    title: str
    x_axis_type: str = "linear"
    x_title: str = ""
    max_decimals: int = DEFAULT_MAX_DECIMALS
    light_theme: bool = False
    autoscale_y: bool = True
    animations: bool = False
    large_mode_threshold: int = DEFAULT_LARGE_MODE_THRESHOLD
    y_padding_ratio: float = 0.1
    symbol_size_max: float = 10.0
    symbol_size_min: float = 2.0
    symbol_size_reference: int = 500
    autoscale_scan_limit: int = 20000
    downsampled: bool = False


@dataclass
class Settings:
    input_path: Path
    output_dir: Optional[Path] = None
    index: Optional[str] = None
    use_first_column: bool = False
    columns: Optional[List[str]] = None
    title: Optional[str] = None
    downsample_threshold: Optional[int] = None
    autoscale_y: bool = True
    animations: bool = False
    max_decimals: int = DEFAULT_MAX_DECIMALS
    marker: str = DEFAULT_MARKER
    large_mode_threshold: int = DEFAULT_LARGE_MODE_THRESHOLD
    debug: bool = False
    light_theme: bool = False
    keep_going: bool = False

    # Policy thresholds
    datetime_ratio: float = 0.9
    y_padding_ratio: float = 0.1
    symbol_size_max: float = 10.0
    symbol_size_min: float = 2.0
    symbol_size_reference: int = 500
    autoscale_scan_limit: int = 20000

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "Settings":
        columns = None
        if args.columns:
            columns = [c.strip() for c in args.columns.split(",") if c.strip()]
        return cls(
            input_path=Path(args.input_path),
            output_dir=Path(args.output_dir) if args.output_dir else None,
            index=args.index,
            use_first_column=args.use_first_column,
            columns=columns or None,
            title=args.title,
            downsample_threshold=args.downsample_threshold,
            autoscale_y=not args.no_autoscale_y,
            animations=args.animations,
            max_decimals=args.max_decimals,
            marker=args.special_marker,
            large_mode_threshold=args.large_mode_threshold,
            debug=args.debug,
            light_theme=args.white_theme,
            keep_going=args.keep_going,
        )

    def plot_config(self, title: str, x_axis_type: str, x_title: str, downsampled: bool = False) -> PlotConfig:
        return PlotConfig(
            title=title,
            x_axis_type=x_axis_type,
            x_title=x_title,
            max_decimals=self.max_decimals,
            light_theme=self.light_theme,
            autoscale_y=self.autoscale_y,
            animations=self.animations,
            large_mode_threshold=self.large_mode_threshold,
            y_padding_ratio=self.y_padding_ratio,
            symbol_size_max=self.symbol_size_max,
            symbol_size_min=self.symbol_size_min,
            symbol_size_reference=self.symbol_size_reference,
            autoscale_scan_limit=self.autoscale_scan_limit,
            downsampled=downsampled,
        )
