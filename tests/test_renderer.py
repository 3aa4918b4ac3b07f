"""Tests for plot series building and HTML rendering."""

from __future__ import annotations

import pandas as pd
import plotly.graph_objects as go
import pytest

from scatters.config import PlotConfig
from scatters.errors import RenderError, SerializationError
from scatters.renderer import (
    MARKER_LINE_COLOR,
    PlotSeries,
    build_figure,
    build_plot_series,
    client_script,
    format_number,
    initial_y_range,
    nice_ticks,
    render_html,
    symbol_size,
    tick_labels,
    x_axis_type,
)
from scatters.table import ColumnKind

pytestmark = pytest.mark.unit


def test_points_follow_x_and_y() -> None:
    """Each row becomes one [x, y] point."""

    s = build_plot_series("v", pd.Series([1.0, 2.0, 3.0]), pd.Series([10.0, 20.0, 30.0]))

    assert s.points == [[1, 10], [2, 20], [3, 30]]
    assert s.markers == []
    assert (s.x_min, s.x_max, s.y_min, s.y_max) == (1.0, 3.0, 10.0, 30.0)


def test_marker_rows_become_vertical_lines() -> None:
    """A marker Y records its X as a line and emits no point."""

    y = pd.Series(["10", "|", "30"], dtype="string")

    s = build_plot_series("v", pd.Series([1.0, 2.0, 3.0]), y)

    assert s.points == [[1.0, 10.0], [3.0, 30.0]]
    assert s.markers == [2.0]


def test_missing_values_are_skipped() -> None:
    """Rows with a missing X or Y produce nothing."""

    x = pd.Series([1.0, None, 3.0, 4.0])
    y = pd.Series([10.0, 20.0, None, 40.0])

    s = build_plot_series("v", x, y)

    assert s.points == [[1.0, 10.0], [4.0, 40.0]]


def test_datetime_x_emitted_as_epoch_ms() -> None:
    """Datetime X values are milliseconds since the epoch."""

    x = pd.Series(pd.to_datetime(["2024-01-15", "2024-01-16"]))

    s = build_plot_series("v", x, pd.Series([1.0, 2.0]))

    assert s.x == [1705276800000, 1705363200000]


def test_initial_y_range_pads_span() -> None:
    """Ten percent of the span is added on both sides."""

    a = PlotSeries(name="a", y_min=0.0, y_max=10.0)
    b = PlotSeries(name="b", y_min=-10.0, y_max=5.0)

    assert initial_y_range([a, b]) == pytest.approx((-12.0, 12.0))


def test_initial_y_range_flat_and_empty() -> None:
    """A flat span pads by one; no data gives no range."""

    flat = PlotSeries(name="flat", y_min=3.0, y_max=3.0)

    assert initial_y_range([flat]) == (2.0, 4.0)
    assert initial_y_range([PlotSeries(name="empty")]) is None


def test_x_axis_type_by_kind() -> None:
    """Time kinds use a date axis, text a category axis."""

    assert x_axis_type(ColumnKind.DATETIME) == "date"
    assert x_axis_type(ColumnKind.DATE) == "date"
    assert x_axis_type(ColumnKind.STRING) == "category"
    assert x_axis_type(ColumnKind.FLOAT) == "linear"
    assert x_axis_type(ColumnKind.INTEGER) == "linear"


def test_format_number_switches_on_magnitude() -> None:
    """Fixed notation inside [1e-4, 1e6), scientific outside, trailing zeros dropped."""

    assert format_number(1.2345, 2) == "1.23"
    assert format_number(2.0, 2) == "2"
    assert format_number(0.0, 2) == "0"
    assert format_number(-0.001, 2) == "0"
    assert format_number(1e-5, 2) == "1e-5"
    assert format_number(1500002.0, 2) == "1.5e+6"
    assert format_number(1e6, 0) == "1e+6"
    assert format_number(123456.789, -1) == "123456.789"


def test_tick_labels_follow_each_value() -> None:
    """Ticks crossing 1e6 change notation per tick, not per spacing."""

    labels = tick_labels(0.0, 2e6, 2)

    assert labels["tickmode"] == "array"
    assert labels["ticktext"][0] == "0"
    assert labels["ticktext"][4] == "800000"
    assert labels["ticktext"][5] == "1e+6"
    assert labels["ticktext"][-1] == "2e+6"


def test_nice_ticks_cover_range() -> None:
    """Round steps span the range; a flat range yields a single tick."""

    ticks = nice_ticks(0.0, 1.0)

    assert len(ticks) == 11
    assert ticks[0] == 0.0
    assert ticks[-1] == pytest.approx(1.0)
    assert nice_ticks(3.0, 3.0) == [3.0]


def test_hover_keeps_tiny_values() -> None:
    """Hover text formats each value so small magnitudes are not rounded away."""

    s = build_plot_series("v", pd.Series([1.0, 2.0]), pd.Series([1e-5, 2.5]))

    fig = build_figure([s], PlotConfig(title="t", x_title="t"))

    assert "%{customdata[1]}" in fig.data[0].hovertemplate
    assert list(fig.data[0].customdata[0]) == ["1", "1e-5"]
    assert list(fig.data[0].customdata[1]) == ["2", "2.5"]


def test_symbol_size_bounds() -> None:
    """Symbols shrink with point count but stay within limits."""

    config = PlotConfig(title="t")

    assert symbol_size(1, config) == config.symbol_size_max
    assert symbol_size(10_000_000, config) == config.symbol_size_min
    assert config.symbol_size_min < symbol_size(2000, config) < config.symbol_size_max


def test_large_series_use_webgl() -> None:
    """Series above the large-mode threshold render with Scattergl."""

    small = build_plot_series("small", pd.Series([1.0, 2.0]), pd.Series([1.0, 2.0]))
    big = build_plot_series("big", pd.Series(range(50), dtype="float64"), pd.Series(range(50), dtype="float64"))

    fig = build_figure([small, big], PlotConfig(title="t", large_mode_threshold=10))

    assert isinstance(fig.data[0], go.Scatter)
    assert isinstance(fig.data[1], go.Scattergl)


def test_figure_layout_reflects_config() -> None:
    """Theme, title suffix and marker shapes end up in the layout."""

    s = build_plot_series("v", pd.Series([1.0, 2.0]), pd.Series(["5", "|"], dtype="string"))
    config = PlotConfig(title="Data", light_theme=True, downsampled=True)

    fig = build_figure([s], config)

    assert fig.layout.title.text == "Data (downsampled)"
    assert len(fig.layout.shapes) == 1
    assert fig.layout.shapes[0].x0 == 2.0
    assert fig.layout.shapes[0].line.color == MARKER_LINE_COLOR
    assert list(fig.layout.yaxis.range) == [4.0, 6.0]


def test_render_html_is_complete_page() -> None:
    """The page loads plotly from the CDN and carries title and zoom script."""

    s = build_plot_series("v", pd.Series([1.0, 2.0]), pd.Series([3.0, 4.0]))
    config = PlotConfig(title="My <Plot>", autoscale_y=False)

    page = render_html([s], config)

    assert "<html>" in page
    assert page.index("<html>") < page.index("<head><title>")
    assert "cdn.plot.ly" in page
    assert "<title>My &lt;Plot&gt;</title>" in page
    assert "plotly_relayout" in page
    assert '"autoscaleY": false' in page


def test_text_x_still_bounds_y() -> None:
    """Category X values do not hide the Y bounds used for the initial range."""

    s = build_plot_series("v", pd.Series(["a", "b", "c"], dtype="string"), pd.Series([1.0, 5.0, 9.0]))

    assert s.points == [["a", 1.0], ["b", 5.0], ["c", 9.0]]
    assert (s.x_min, s.x_max) == (None, None)
    assert (s.y_min, s.y_max) == (1.0, 9.0)
    assert initial_y_range([s]) == pytest.approx((0.2, 9.8))


def test_non_finite_settings_fail_serialization() -> None:
    """Settings that cannot be expressed in JSON raise SerializationError."""

    s = build_plot_series("v", pd.Series([1.0, 2.0]), pd.Series([3.0, 4.0]))

    with pytest.raises(SerializationError, match="JSON"):
        client_script([s], PlotConfig(title="t", y_padding_ratio=float("nan")))


def test_invalid_figure_option_raises_render_error() -> None:
    """Plotly validation failures surface as RenderError naming the plot."""

    s = build_plot_series("v", pd.Series([1.0, 2.0]), pd.Series([3.0, 4.0]))

    with pytest.raises(RenderError, match="bogus-plot"):
        render_html([s], PlotConfig(title="bogus-plot", x_axis_type="not-an-axis"))
