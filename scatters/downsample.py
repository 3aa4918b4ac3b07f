"""
Largest-Triangle-Three-Buckets (LTTB) downsampling.

The first and last points are always kept. The points between them are
split into n_out - 2 buckets; each bucket keeps the point forming the
largest triangle with the previously kept point and the mean of the next
bucket, which preserves peaks and troughs far better than a fixed stride.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
import pandas as pd

from scatters.values import float_values


def lttb_indices(x: np.ndarray, y: np.ndarray, n_out: int) -> np.ndarray:
    """Indices (strictly increasing) of the points LTTB keeps."""
    n = len(x)
    if n_out >= n:
        return np.arange(n)
    if n_out < 3:
        raise ValueError(f"n_out must be at least 3, got {n_out}")

    buckets = n_out - 2
    span = n - 2
    kept = np.empty(n_out, dtype="int64")
    kept[0] = 0
    a = 0

    for i in range(buckets):
        start = 1 + (i * span) // buckets
        end = 1 + ((i + 1) * span) // buckets
        next_end = min(1 + ((i + 2) * span) // buckets, n)

        avg_x = x[end:next_end].mean()
        avg_y = y[end:next_end].mean()

        ax, ay = x[a], y[a]
        areas = np.abs((ax - avg_x) * (y[start:end] - ay) - (ax - x[start:end]) * (avg_y - ay))
        a = start + int(np.argmax(areas))
        kept[i + 1] = a

    kept[-1] = n - 1
    return kept


def lttb(x: np.ndarray, y: np.ndarray, n_out: int) -> Tuple[np.ndarray, np.ndarray]:
    idx = lttb_indices(x, y, n_out)
    return x[idx], y[idx]


def downsample_series(x: pd.Series, y: pd.Series, threshold: int) -> Tuple[pd.Series, pd.Series]:
    """
    Reduce an aligned x/y pair to at most `threshold` points.

    Both sides are converted to float first (dates become epoch
    milliseconds) and pairs with a non-finite member are dropped, so the
    result no longer carries the original column types.
    """
    xs = float_values(x)
    ys = float_values(y)
    keep = np.isfinite(xs) & np.isfinite(ys)
    xs, ys = xs[keep], ys[keep]

    ds_x, ds_y = lttb(xs, ys, threshold)
    return pd.Series(ds_x, name=x.name, dtype="float64"), pd.Series(ds_y, name=y.name, dtype="float64")
