"""
Build the interactive scatter page with Plotly.

Each Y column becomes one marker trace. Rows whose Y value equals the
vertical marker become full-height line shapes instead of points. The page
loads plotly.js from the CDN and carries a small script that resizes
symbols and refits the Y axis to the visible X window on zoom/pan.
"""

from __future__ import annotations

import html
import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
import plotly.graph_objects as go

from scatters.config import DEFAULT_MARKER, PlotConfig
from scatters.errors import RenderError, SerializationError
from scatters.table import ColumnKind
from scatters.values import float_values, json_values

MARKER_LINE_COLOR = "#c23531"
ANIMATION_MS = 300
TICK_COUNT = 8


@dataclass
class PlotSeries:
    """Emitted points of one Y column plus the metadata used for autoscaling."""

    name: str
    x: List[Any] = field(default_factory=list)
    y: List[Any] = field(default_factory=list)
    markers: List[Any] = field(default_factory=list)
    x_min: Optional[float] = None
    x_max: Optional[float] = None
    y_min: Optional[float] = None
    y_max: Optional[float] = None

    @property
    def n(self) -> int:
        return len(self.x)

    @property
    def points(self) -> List[List[Any]]:
        return [[xv, yv] for xv, yv in zip(self.x, self.y)]

    def meta(self) -> Dict[str, Any]:
        return {
            "n": self.n,
            "x_min": self.x_min,
            "x_max": self.x_max,
            "y_min": self.y_min,
            "y_max": self.y_max,
        }


def x_axis_type(kind: ColumnKind) -> str:
    if kind in (ColumnKind.DATETIME, ColumnKind.DATE):
        return "date"
    if kind == ColumnKind.STRING:
        return "category"
    return "linear"


def _trim_zeros(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def format_number(value: float, max_decimals: int = 2) -> str:
    """
    Label for a single value: fixed notation for magnitudes in [1e-4, 1e6)
    (and zero), scientific outside. At most `max_decimals` decimals with
    trailing zeros dropped; a negative precision means unlimited.
    Mirrors formatNumber() in the page script.
    """
    if not math.isfinite(value):
        return str(value)
    magnitude = abs(value)
    if magnitude != 0 and (magnitude < 1e-4 or magnitude >= 1e6):
        text = f"{value:.15e}" if max_decimals < 0 else f"{value:.{max_decimals}e}"
        mantissa, exponent = text.split("e")
        return f"{_trim_zeros(mantissa)}e{int(exponent):+d}"
    if max_decimals < 0:
        return _trim_zeros(f"{value:.15g}")
    return _trim_zeros(f"{value:.{max_decimals}f}")


def nice_ticks(lo: float, hi: float, count: int = TICK_COUNT) -> List[float]:
    """Round tick positions (steps of 1, 2 or 5 x 10^k) covering [lo, hi]."""
    span = hi - lo
    if not (math.isfinite(span) and span > 0):
        return [lo] if math.isfinite(lo) else []
    raw = span / count
    mag = 10 ** math.floor(math.log10(raw))
    norm = raw / mag
    step = (1 if norm < 1.5 else 2 if norm < 3 else 5 if norm < 7 else 10) * mag
    first = math.ceil(lo / step - 1e-9)
    last = math.floor(hi / step + 1e-9)
    return [0.0 if k == 0 else k * step for k in range(first, last + 1)]


def tick_labels(lo: float, hi: float, max_decimals: int = 2) -> Dict[str, Any]:
    vals = nice_ticks(lo, hi)
    return dict(tickmode="array", tickvals=vals, ticktext=[format_number(v, max_decimals) for v in vals])


def _hover_template(series_name: str, x_title: str, x_axis: str) -> str:
    x_part = "%{customdata[0]}" if x_axis == "linear" else "%{x}"
    x_label = html.escape(x_title or "x")
    return f"{x_label}: {x_part}<br>{html.escape(series_name)}: %{{customdata[1]}}<extra></extra>"


def _hover_text(s: PlotSeries, config: PlotConfig) -> List[List[str]]:
    def label(v: Any) -> str:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return format_number(float(v), config.max_decimals)
        return str(v)

    linear_x = config.x_axis_type == "linear"
    return [[label(xv) if linear_x else "", label(yv)] for xv, yv in zip(s.x, s.y)]


def build_plot_series(name: str, x: pd.Series, y: pd.Series, marker: str = DEFAULT_MARKER) -> PlotSeries:
    """
    Zip X with Y into plottable points.
    Missing X skips the row. A Y equal to the marker records a vertical line
    at that X. Other text Y values are plotted as numbers when they parse,
    otherwise skipped like missing Y.
    """
    series = PlotSeries(name=str(name))
    x_min = y_min = math.inf
    x_max = y_max = -math.inf

    for xv, yv, xn, yn in zip(json_values(x), json_values(y), float_values(x), float_values(y)):
        if xv is None:
            continue
        if isinstance(yv, str):
            if yv.strip() == marker:
                series.markers.append(xv)
                continue
            yv = yn if math.isfinite(yn) else None
        if yv is None:
            continue
        series.x.append(xv)
        series.y.append(yv)
        if math.isfinite(xn):
            x_min, x_max = min(x_min, xn), max(x_max, xn)
        if math.isfinite(yn):
            y_min, y_max = min(y_min, yn), max(y_max, yn)

    if math.isfinite(x_min):
        series.x_min, series.x_max = x_min, x_max
    if math.isfinite(y_min):
        series.y_min, series.y_max = y_min, y_max
    return series


def initial_y_range(series_list: Sequence[PlotSeries], padding_ratio: float = 0.1) -> Optional[Tuple[float, float]]:
    """Global Y bounds padded by `padding_ratio` of the span (1.0 for a flat span)."""
    lows = [s.y_min for s in series_list if s.y_min is not None]
    highs = [s.y_max for s in series_list if s.y_max is not None]
    if not lows or not highs:
        return None
    lo, hi = min(lows), max(highs)
    span = abs(hi - lo)
    pad = 1.0 if span == 0 else span * padding_ratio
    return lo - pad, hi + pad


def symbol_size(visible: float, config: PlotConfig) -> float:
    """Marker size shrinking with the number of points on screen."""
    v = max(visible, 1.0)
    size = config.symbol_size_max * math.sqrt(config.symbol_size_reference / v)
    return max(config.symbol_size_min, min(config.symbol_size_max, size))


def _marker_shape(x: Any) -> Dict[str, Any]:
    return dict(
        type="line",
        xref="x",
        yref="paper",
        x0=x,
        x1=x,
        y0=0,
        y1=1,
        line=dict(color=MARKER_LINE_COLOR, width=2),
    )


def build_figure(series_list: Sequence[PlotSeries], config: PlotConfig) -> go.Figure:
    fig = go.Figure()
    shapes = []
    for s in series_list:
        trace_cls = go.Scattergl if s.n > config.large_mode_threshold else go.Scatter
        fig.add_trace(
            trace_cls(
                x=s.x,
                y=s.y,
                mode="markers",
                name=s.name,
                marker=dict(size=symbol_size(s.n, config)),
                meta=s.meta(),
                customdata=_hover_text(s, config),
                hovertemplate=_hover_template(s.name, config.x_title, config.x_axis_type),
            )
        )
        shapes.extend(_marker_shape(mx) for mx in s.markers)

    title = config.title + (" (downsampled)" if config.downsampled else "")
    fig.update_layout(
        title=title,
        template="plotly_white" if config.light_theme else "plotly_dark",
        hovermode="closest",
        legend_title_text="",
        margin=dict(l=60, r=20, t=60, b=40),
        shapes=shapes,
        transition=dict(duration=ANIMATION_MS if config.animations else 0),
    )

    fig.update_xaxes(title=config.x_title, type=config.x_axis_type, showgrid=True)
    fig.update_yaxes(type="linear", showgrid=True)

    # Value-axis labels are set per tick; the page script relabels on zoom.
    y_range = initial_y_range(series_list, config.y_padding_ratio)
    if y_range is not None:
        fig.update_yaxes(range=list(y_range), **tick_labels(*y_range, config.max_decimals))
    if config.x_axis_type == "linear":
        bounds = [(s.x_min, s.x_max) for s in series_list if s.x_min is not None]
        if bounds:
            lo, hi = min(b[0] for b in bounds), max(b[1] for b in bounds)
            fig.update_xaxes(**tick_labels(lo, hi, config.max_decimals))
    return fig


# Runs after Plotly.newPlot; {plot_id} is substituted by plotly.
_CLIENT_SCRIPT = """
var gd = document.getElementById('{plot_id}');
var busy = false;

function symbolSize(visible) {
  var v = Math.max(visible, 1);
  var s = cfg.sizeMax * Math.sqrt(cfg.sizeRef / v);
  return Math.max(cfg.sizeMin, Math.min(cfg.sizeMax, s));
}

function visibleFraction(meta, lo, hi) {
  if (!meta || meta.x_min === null || meta.x_max === null) return 1;
  var span = meta.x_max - meta.x_min;
  if (span <= 0) return (meta.x_min >= lo && meta.x_min <= hi) ? 1 : 0;
  var overlap = Math.min(hi, meta.x_max) - Math.max(lo, meta.x_min);
  return Math.max(0, Math.min(1, overlap / span));
}

function xWindow() {
  var ax = gd._fullLayout.xaxis;
  var a = ax.r2l(ax.range[0]), b = ax.r2l(ax.range[1]);
  return [Math.min(a, b), Math.max(a, b)];
}

function applySizing(lo, hi, full) {
  var sizes = [], types = [], idx = [];
  gd.data.forEach(function (trace, i) {
    var meta = trace.meta || {};
    var n = meta.n || (trace.x ? trace.x.length : 0);
    var visible = full ? n : n * visibleFraction(meta, lo, hi);
    var size = symbolSize(visible);
    var type = visible > cfg.largeThreshold ? 'scattergl' : 'scatter';
    if ((trace.marker || {}).size !== size || trace.type !== type) {
      sizes.push(size);
      types.push(type);
      idx.push(i);
    }
  });
  if (!idx.length) return Promise.resolve();
  return Plotly.restyle(gd, {'marker.size': sizes, 'type': types}, idx);
}

function fitY(lo, hi) {
  var ax = gd._fullLayout.xaxis;
  var yMin = Infinity, yMax = -Infinity;
  gd.data.forEach(function (trace) {
    if (trace.visible === 'legendonly' || trace.visible === false) return;
    var xs = trace.x || [], ys = trace.y || [];
    var stride = Math.max(1, Math.ceil(xs.length / cfg.scanLimit));
    for (var i = 0; i < xs.length; i += stride) {
      var xv = ax.d2l(xs[i]);
      if (!(xv >= lo && xv <= hi)) continue;
      var yv = Number(ys[i]);
      if (!isFinite(yv)) continue;
      if (yv < yMin) yMin = yv;
      if (yv > yMax) yMax = yv;
    }
  });
  if (!isFinite(yMin) || !isFinite(yMax)) return null;
  var pad = yMax > yMin ? (yMax - yMin) * cfg.yPadding : 1.0;
  return [yMin - pad, yMax + pad];
}

function setYRange(range) {
  if (!range) return Plotly.relayout(gd, {'yaxis.autorange': true});
  if (cfg.animations) {
    return Plotly.animate(gd, {layout: {yaxis: {range: range}}}, {
      transition: {duration: cfg.animationMs, easing: 'cubic-in-out'},
      frame: {duration: cfg.animationMs, redraw: false}
    });
  }
  return Plotly.relayout(gd, {'yaxis.range': range});
}

function trimZeros(text) {
  if (text.indexOf('.') >= 0) text = text.replace(/0+$/, '').replace(/\.$/, '');
  return text === '-0' ? '0' : text;
}

function formatNumber(v) {
  if (!isFinite(v)) return String(v);
  var a = Math.abs(v);
  if (a !== 0 && (a < 1e-4 || a >= 1e6)) {
    var parts = (cfg.maxDecimals < 0 ? v.toExponential() : v.toExponential(cfg.maxDecimals)).split('e');
    return trimZeros(parts[0]) + 'e' + parts[1];
  }
  if (cfg.maxDecimals < 0) return trimZeros(String(v));
  return trimZeros(v.toFixed(cfg.maxDecimals));
}

function niceTicks(lo, hi) {
  var span = hi - lo;
  if (!(isFinite(span) && span > 0)) return isFinite(lo) ? [lo] : [];
  var raw = span / cfg.tickCount;
  var mag = Math.pow(10, Math.floor(Math.log10(raw)));
  var norm = raw / mag;
  var step = (norm < 1.5 ? 1 : norm < 3 ? 2 : norm < 7 ? 5 : 10) * mag;
  var first = Math.ceil(lo / step - 1e-9), last = Math.floor(hi / step + 1e-9);
  var out = [];
  for (var k = first; k <= last; k++) out.push(k === 0 ? 0 : k * step);
  return out;
}

function applyTickLabels() {
  var update = {};
  ['xaxis', 'yaxis'].forEach(function (name) {
    var ax = gd._fullLayout[name];
    if (!ax || ax.type !== 'linear') return;
    var lo = Math.min(ax.range[0], ax.range[1]), hi = Math.max(ax.range[0], ax.range[1]);
    var vals = niceTicks(lo, hi);
    update[name + '.tickmode'] = 'array';
    update[name + '.tickvals'] = vals;
    update[name + '.ticktext'] = vals.map(formatNumber);
  });
  return Plotly.relayout(gd, update);
}

function release() { busy = false; }

gd.on('plotly_relayout', function (ev) {
  if (busy || !ev) return;
  var reset = ev['xaxis.autorange'] === true;
  var zoomed = ('xaxis.range[0]' in ev) || ('xaxis.range' in ev);
  var yMoved = ('yaxis.range[0]' in ev) || ('yaxis.range' in ev) || ev['yaxis.autorange'] === true;
  if (!reset && !zoomed && !yMoved) return;
  busy = true;
  var done;
  if (reset) {
    done = applySizing(0, 0, true).then(function () { return setYRange(cfg.yRange); });
  } else if (zoomed) {
    var w = xWindow();
    done = applySizing(w[0], w[1], false).then(function () {
      if (!cfg.autoscaleY) return;
      var r = fitY(w[0], w[1]);
      if (r) return setYRange(r);
    });
  }
  Promise.resolve(done).then(applyTickLabels).then(release, release);
});

busy = true;
applyTickLabels().then(release, release);
"""


def client_script(series_list: Sequence[PlotSeries], config: PlotConfig) -> str:
    y_range = initial_y_range(series_list, config.y_padding_ratio)
    cfg = {
        "autoscaleY": config.autoscale_y,
        "animations": config.animations,
        "animationMs": ANIMATION_MS,
        "largeThreshold": config.large_mode_threshold,
        "sizeMax": config.symbol_size_max,
        "sizeMin": config.symbol_size_min,
        "sizeRef": config.symbol_size_reference,
        "scanLimit": config.autoscale_scan_limit,
        "yPadding": config.y_padding_ratio,
        "yRange": list(y_range) if y_range else None,
        "maxDecimals": config.max_decimals,
        "tickCount": TICK_COUNT,
    }
    try:
        cfg_json = json.dumps(cfg, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to serialize plot settings to JSON: {e}") from e
    return f"var cfg = {cfg_json};\n{_CLIENT_SCRIPT}"


def _page_head(config: PlotConfig) -> str:
    background = "#ffffff" if config.light_theme else "#111111"
    return (
        f"<title>{html.escape(config.title)}</title>"
        f"<style>html, body {{ margin: 0; height: 100%; background: {background}; }}</style>"
    )


def render_html(series_list: Sequence[PlotSeries], config: PlotConfig) -> str:
    """Complete HTML document; plotly.js is loaded from the CDN."""
    script = client_script(series_list, config)
    try:
        fig = build_figure(series_list, config)
        page = fig.to_html(
            include_plotlyjs="cdn",
            full_html=True,
            post_script=script,
            config={"displaylogo": False, "responsive": True},
            default_width="100%",
            default_height="100vh",
        )
    except (TypeError, ValueError) as e:
        raise RenderError(f"Failed to render plot '{config.title}': {e}") from e
    return page.replace("<head>", "<head>" + _page_head(config), 1)
