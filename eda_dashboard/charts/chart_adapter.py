"""Aggregation result -> Plotly chart spec.

- Input must already have passed ``result_validator.validate``.
- Output is a ChartSpec (one trace + layout + display config); ``build_figure``
  turns it into a ``plotly.graph_objects.Figure`` when a figure is needed.
"""
from __future__ import annotations

import json
import numbers
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

import plotly.graph_objects as go
import plotly.io as pio

from eda_dashboard.config.settings import get_settings
from eda_dashboard.models.contracts import AggregationResult, ChartKind, ChartSpec, Summary

_ACCENT_COLOR = "#3B82F6"
_ACCENT_OUTLINE = "#1D4ED8"
_PIE_PALETTE = (
    "#3B82F6",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#F97316",
    "#06B6D4",
    "#84CC16",
)
_MISSING_FILL = "rgba(239, 68, 68, 0.7)"
_MISSING_OUTLINE = "rgba(239, 68, 68, 1)"
_TRANSPARENT = "rgba(0,0,0,0)"
_CHART_MARGIN = {"t": 50, "b": 80, "l": 60, "r": 50}
_SUMMARY_CHART_HEIGHT = 400
_SUMMARY_CHART_MARGIN = {"t": 50, "b": 50, "l": 50, "r": 50}
_ROTATED_TICK_ANGLE = -45

_MODEBAR_REMOVED = ("pan2d", "lasso2d", "select2d")


def _chart_config() -> Dict[str, Any]:
    return {
        "displayModeBar": True,
        "modeBarButtonsToRemove": list(_MODEBAR_REMOVED),
        "displaylogo": False,
    }


def format_point_label(value: Any) -> Any:
    """Two-decimal text for numbers; anything else is shown as-is."""
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return f"{value:.2f}"
    return value


def pie_colors(count: int) -> List[str]:
    return [_PIE_PALETTE[i % len(_PIE_PALETTE)] for i in range(count)]


def chart_title(result: AggregationResult | Mapping, value_key: str, group_key: str, aggregation_function: str) -> str:
    aggregate = result.aggregate if isinstance(result, AggregationResult) else result.get("aggregate")
    continuous = value_key
    if isinstance(aggregate, Mapping) and aggregate:
        continuous = str(next(iter(aggregate)))
    return f"{aggregation_function}({continuous}) by {group_key}"


def _columns(result: AggregationResult | Mapping, group_key: str, value_key: str) -> tuple[list, list]:
    data = result.data if isinstance(result, AggregationResult) else result.get("data")
    return list(data[group_key]), list(data[value_key])


def _base_layout(title: str, height: int) -> Dict[str, Any]:
    return {
        "title": {"text": title},
        "height": height,
        "margin": dict(_CHART_MARGIN),
        "plot_bgcolor": _TRANSPARENT,
        "paper_bgcolor": _TRANSPARENT,
    }


def _bar_series(categories: list, values: list, value_key: str) -> Dict[str, Any]:
    return {
        "type": "bar",
        "x": categories,
        "y": values,
        "marker": {"color": _ACCENT_COLOR, "line": {"color": _ACCENT_OUTLINE, "width": 2}},
        "text": [format_point_label(v) for v in values],
        "textposition": "outside",
        "hovertemplate": f"<b>%{{x}}</b><br>{value_key}: %{{y}}<extra></extra>",
    }


def _line_series(categories: list, values: list, value_key: str) -> Dict[str, Any]:
    return {
        "type": "scatter",
        "mode": "lines+markers",
        "x": categories,
        "y": values,
        "marker": {"color": _ACCENT_COLOR, "size": 8},
        "line": {"color": _ACCENT_COLOR, "width": 3},
        "text": [format_point_label(v) for v in values],
        "hovertemplate": f"<b>%{{x}}</b><br>{value_key}: %{{y}}<extra></extra>",
    }


def _pie_series(categories: list, values: list) -> Dict[str, Any]:
    return {
        "type": "pie",
        "labels": categories,
        "values": values,
        "marker": {"colors": pie_colors(len(categories))},
        "textinfo": "label+percent+value",
        "textposition": "auto",
        "hovertemplate": "<b>%{label}</b><br>Value: %{value}<br>Percentage: %{percent}<extra></extra>",
    }


def adapt(
    result: AggregationResult | Mapping,
    group_key: str,
    value_key: str,
    kind: ChartKind | str,
    aggregation_function: str,
    *,
    height: Optional[int] = None,
    rotate_threshold: Optional[int] = None,
) -> ChartSpec:
    """Build the ChartSpec for one chart kind.

    ``group_key``/``value_key`` are the keys returned by a successful
    validation. An empty result yields an empty (but valid) spec.
    """
    chart_kind = ChartKind(kind)
    settings = get_settings()
    height = settings.chart_height if height is None else height
    rotate_threshold = settings.bar_rotate_threshold if rotate_threshold is None else rotate_threshold

    categories, values = _columns(result, group_key, value_key)
    function_name = getattr(aggregation_function, "value", aggregation_function)
    layout = _base_layout(chart_title(result, value_key, group_key, function_name), height)

    if chart_kind is ChartKind.PIE:
        # no axes to carry the category labels
        layout["showlegend"] = True
        return ChartSpec(kind=chart_kind, series=_pie_series(categories, values), layout=layout, config=_chart_config())

    if chart_kind is ChartKind.BAR:
        series = _bar_series(categories, values, value_key)
        tick_angle = _ROTATED_TICK_ANGLE if len(categories) > rotate_threshold else 0
        layout["xaxis"] = {"title": {"text": group_key}, "tickangle": tick_angle}
    else:
        series = _line_series(categories, values, value_key)
        layout["xaxis"] = {"title": {"text": group_key}}
    layout["yaxis"] = {"title": {"text": value_key}}
    return ChartSpec(kind=chart_kind, series=series, layout=layout, config=_chart_config())


def adapt_missing_values(summary: Optional[Summary]) -> Optional[ChartSpec]:
    """Bar chart of missing counts per column; None when nothing is missing."""
    if summary is None:
        return None
    missing = [meta for meta in summary.columns if meta.missing > 0]
    if not missing:
        return None

    series = {
        "type": "bar",
        "name": "Missing Values",
        "x": [meta.column for meta in missing],
        "y": [meta.missing for meta in missing],
        "marker": {"color": _MISSING_FILL, "line": {"color": _MISSING_OUTLINE, "width": 2}},
    }
    layout = {
        "title": {"text": "Missing Values by Column"},
        "xaxis": {"title": {"text": "Columns"}},
        "yaxis": {"title": {"text": "Count of Missing Values"}},
        "height": _SUMMARY_CHART_HEIGHT,
        "margin": dict(_SUMMARY_CHART_MARGIN),
        "plot_bgcolor": _TRANSPARENT,
        "paper_bgcolor": _TRANSPARENT,
    }
    return ChartSpec(kind=ChartKind.BAR, series=series, layout=layout, config={"displayModeBar": False})


def build_figure(spec: ChartSpec) -> go.Figure:
    return go.Figure(data=[spec.series], layout=spec.layout)


def figure_json(spec: ChartSpec) -> Dict[str, Any]:
    return json.loads(pio.to_json(build_figure(spec)))
