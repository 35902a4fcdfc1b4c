"""
addon_atlas/viz/chart_presenter.py — Plotly rendering of a ChartModel.

Two states, toggled by the user (ViewState.mode):

    GROUPED  Horizontal grouped bar chart. One category axis (the labels,
             rank 1 at the top) and one value axis per series present in the
             model: the first series uses "x", each further series gets an
             overlaying axis ("x2", "x3", ...). Each trace has its own offsetgroup
             in one shared alignmentgroup, so bars sit side by side within a
             row instead of stacking over each other. Series with visible=False are
             drawn as "legendonly", so they start hidden but stay togglable.
             Height scales with max(requested window, chart_min_rows).

    SINGLE   Pie chart of the one series whose sort-key alias equals the
             active sort key (first series if none does), forced visible,
             one slice per windowed entry, fixed square size.

A presenter owns at most one live figure: the previous figure is torn down
before a new one is built.
"""

import logging
from dataclasses import replace
from typing import Optional

import plotly.graph_objects as go

from addon_atlas.config import DEFAULT_CONFIG, AddonAtlasConfig
from addon_atlas.ranking.series import ChartModel, SeriesDescriptor
from addon_atlas.ranking.state import ViewMode, ViewState

logger = logging.getLogger(__name__)

_AXIS_TITLE_FONT = {"size": 11}


def grouped_height(requested_window: int, config: AddonAtlasConfig = DEFAULT_CONFIG) -> int:
    """Pixel height of the grouped view for a requested window size."""
    return max(requested_window, config.chart_min_rows) * config.chart_row_height


def _axis_ref(index: int) -> str:
    return "x" if index == 0 else f"x{index + 1}"


def _axis_layout_key(index: int) -> str:
    return "xaxis" if index == 0 else f"xaxis{index + 1}"


def build_grouped_figure(
    model: ChartModel,
    state: ViewState,
    config: AddonAtlasConfig = DEFAULT_CONFIG,
) -> go.Figure:
    """Multi-series horizontal bar chart with one value axis per series."""
    traces = []
    layout_axes: dict[str, dict] = {}

    for i, series in enumerate(model.series):
        traces.append(
            go.Bar(
                x=list(series.values),
                y=list(model.labels),
                orientation="h",
                name=series.label,
                xaxis=_axis_ref(i),
                offsetgroup=str(i),
                alignmentgroup="series",
                visible=True if series.visible else "legendonly",
                marker_color=series.color,
                meta={"axis_id": series.axis_id, "sort_key": series.sort_key},
            )
        )
        axis = {
            "title": {"text": series.label, "font": _AXIS_TITLE_FONT},
            "rangemode": "tozero",
            "side": "bottom" if i % 2 == 0 else "top",
        }
        if i > 0:
            axis.update({"overlaying": "x", "showgrid": False})
        layout_axes[_axis_layout_key(i)] = axis

    fig = go.Figure(data=traces)
    fig.update_layout(
        barmode="group",
        height=grouped_height(state.window, config),
        yaxis={"autorange": "reversed", "automargin": True, "type": "category"},
        legend={"orientation": "h", "y": 1.02, "yanchor": "bottom"},
        margin={"l": 20, "r": 20, "t": 60, "b": 40},
        paper_bgcolor="white",
        plot_bgcolor="white",
        **layout_axes,
    )
    return fig


def build_single_figure(
    model: ChartModel,
    state: ViewState,
    config: AddonAtlasConfig = DEFAULT_CONFIG,
) -> go.Figure:
    """Proportional (pie) chart of the series matching the active sort key."""
    series: SeriesDescriptor = replace(model.series_for(state.sort_key), visible=True)
    fig = go.Figure(
        data=[
            go.Pie(
                labels=list(model.labels),
                values=list(series.values),
                name=series.label,
                sort=False,
                meta={"axis_id": series.axis_id, "sort_key": series.sort_key},
            )
        ]
    )
    fig.update_layout(
        title=series.label,
        height=config.pie_size,
        width=config.pie_size,
        showlegend=len(model.labels) <= config.chart_min_rows,
    )
    return fig


class ChartPresenter:
    """
    Renders ChartModels, keeping at most one live figure.

    Attributes:
        figure: The currently rendered figure, or None.
    """

    def __init__(self, config: AddonAtlasConfig = DEFAULT_CONFIG) -> None:
        self._config = config
        self.figure: Optional[go.Figure] = None
        self.renders = 0

    def teardown(self) -> None:
        """Discard the current figure and its traces."""
        if self.figure is not None:
            self.figure.data = ()
            self.figure = None

    def render(self, model: Optional[ChartModel], state: ViewState) -> go.Figure:
        """
        Tear down the previous figure and build a new one for `state.mode`.

        A None or series-less model renders the failure indicator.
        """
        self.teardown()
        if model is None or not model.series:
            fig = build_unavailable_figure()
        elif state.mode is ViewMode.SINGLE:
            fig = build_single_figure(model, state, self._config)
        else:
            fig = build_grouped_figure(model, state, self._config)
        self.figure = fig
        self.renders += 1
        logger.debug(
            "Rendered %s view: %d labels, %d traces.",
            state.mode.value, len(model.labels) if model else 0, len(fig.data),
        )
        return fig


def build_unavailable_figure(message: str = "Failed to load chart data.") -> go.Figure:
    """Empty figure carrying an inline failure indicator."""
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        showarrow=False,
        font={"color": "red", "size": 14},
        xref="paper",
        yref="paper",
        x=0.5,
        y=0.5,
    )
    fig.update_layout(
        xaxis={"visible": False},
        yaxis={"visible": False},
        height=200,
    )
    return fig


def save_chart_html(fig: go.Figure, output_path: str) -> None:
    """Write a figure to a self-contained HTML file (plotly.js from CDN)."""
    fig.write_html(output_path, include_plotlyjs="cdn")
    logger.info("Chart saved to: %s", output_path)
