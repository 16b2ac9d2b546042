"""
ChartEngine: groups/aggregates filtered rows and reshapes them into a
renderer-ready ChartData payload (labels + datasets).
"""

from __future__ import annotations

from typing import Any, Optional

import pandas as pd

from sliceboard.schemas.chart_data import ChartData, Dataset, Point
from sliceboard.schemas.project import (
    CategoricalConfig,
    MultiSeriesConfig,
    ScatterConfig,
    SingleSeriesConfig,
)
from sliceboard.services.cells import to_label, to_number

# "none" is first-wins sampling, not a pass-through.
_REDUCERS = {
    "sum": "sum",
    "average": "mean",
    "count": "count",
    "min": "min",
    "max": "max",
    "none": "first",
}

DEFAULT_SERIES_LABEL = "Default"
SCATTER_DATASET_LABEL = "Data Points"

_SINGLE_SAMPLE = (["Category 1", "Category 2", "Category 3", "Category 4"], [("Value", [45, 32, 28, 38])])
_LINE_SAMPLE = (["Jan", "Feb", "Mar", "Apr", "May", "Jun"], [("Revenue", [12, 19, 15, 25, 22, 30])])
_PIE_SAMPLE = (["Product A", "Product B", "Product C", "Product D"], [("Sales", [35, 25, 20, 20])])
_MULTI_SAMPLE = (
    ["Q1", "Q2", "Q3", "Q4"],
    [
        ("Series A", [20, 25, 30, 22]),
        ("Series B", [15, 18, 12, 25]),
        ("Series C", [10, 12, 18, 15]),
    ],
)
_SCATTER_POINTS = [(10, 15), (25, 28), (18, 12), (35, 32), (22, 20), (30, 25)]

_PLACEHOLDERS = {
    "pie-chart": _PIE_SAMPLE,
    "simple-line": _LINE_SAMPLE,
    "area-chart": _LINE_SAMPLE,
    "stacked-bar": _MULTI_SAMPLE,
    "multi-series-bar": _MULTI_SAMPLE,
    "multi-line": _MULTI_SAMPLE,
}


def placeholder_chart_data(template_id: Optional[str]) -> ChartData:
    """Fixed demo series shown while a chart's configuration is incomplete."""
    if template_id == "scatter-plot":
        return ChartData(
            labels=[f"Point {i + 1}" for i in range(len(_SCATTER_POINTS))],
            datasets=[
                Dataset(
                    label=SCATTER_DATASET_LABEL,
                    data=[Point(x=x, y=y) for x, y in _SCATTER_POINTS],
                )
            ],
            is_placeholder=True,
        )

    labels, series = _PLACEHOLDERS.get(template_id or "", _SINGLE_SAMPLE)
    return ChartData(
        labels=list(labels),
        datasets=[Dataset(label=name, data=list(values)) for name, values in series],
        is_placeholder=True,
    )


def _round(value: Any) -> float:
    out = float(value)
    if pd.isna(out):
        return 0.0
    return round(out, 3)


class ChartEngine:
    def __init__(self, rows: list[dict[str, Any]]):
        self.rows = rows

    def reshape(self, config) -> ChartData:
        """Dispatch on the config variant; incomplete configs yield the placeholder."""
        match config:
            case CategoricalConfig() if config.category_field and config.value_field:
                return self._categorical(config)
            case ScatterConfig() if config.x_axis_field and config.y_field:
                return self._scatter(config)
            case MultiSeriesConfig() if config.series_field and config.x_axis_field and config.y_field:
                return self._multi_series(config)
            case SingleSeriesConfig() | MultiSeriesConfig() if config.x_axis_field and config.y_field:
                return self._single_series(config)
            case _:
                return placeholder_chart_data(getattr(config, "template_id", None))

    # ── Variants ──────────────────────────────────────────────────────────────

    def _group(self, label_field: str, value_field: str, aggregation: str) -> pd.Series:
        df = pd.DataFrame(
            {
                "label": [to_label(row.get(label_field)) for row in self.rows],
                "value": [to_number(row.get(value_field)) for row in self.rows],
            }
        )
        return df.groupby("label", sort=False)["value"].agg(_REDUCERS[aggregation])

    def _categorical(self, config: CategoricalConfig) -> ChartData:
        grouped = self._group(config.category_field, config.value_field, config.aggregation)
        return ChartData(
            labels=[str(k) for k in grouped.index],
            datasets=[Dataset(label=config.value_field, data=[_round(v) for v in grouped.values])],
        )

    def _single_series(self, config) -> ChartData:
        y_field = config.y_field
        grouped = self._group(config.x_axis_field, y_field, config.aggregation)
        return ChartData(
            labels=[str(k) for k in grouped.index],
            datasets=[Dataset(label=y_field, data=[_round(v) for v in grouped.values])],
        )

    def _multi_series(self, config: MultiSeriesConfig) -> ChartData:
        x_field, y_field, series_field = config.x_axis_field, config.y_field, config.series_field
        df = pd.DataFrame(
            {
                "x": [to_label(row.get(x_field)) for row in self.rows],
                "series": [to_label(row.get(series_field), DEFAULT_SERIES_LABEL) for row in self.rows],
                "value": [to_number(row.get(y_field)) for row in self.rows],
            }
        )
        x_values = list(dict.fromkeys(df["x"]))
        series_values = list(dict.fromkeys(df["series"]))
        grouped = df.groupby(["series", "x"], sort=False)["value"].agg(_REDUCERS[config.aggregation])

        cells = grouped.to_dict()
        datasets = [
            Dataset(
                label=series,
                data=[_round(cells.get((series, x), 0.0)) for x in x_values],
            )
            for series in series_values
        ]
        return ChartData(labels=x_values, datasets=datasets)

    def _scatter(self, config: ScatterConfig) -> ChartData:
        x_field, y_field = config.x_axis_field, config.y_field
        points = [
            Point(x=_round(to_number(row.get(x_field))), y=_round(to_number(row.get(y_field))))
            for row in self.rows
        ]
        return ChartData(
            labels=[f"Point {i + 1}" for i in range(len(points))],
            datasets=[Dataset(label=SCATTER_DATASET_LABEL, data=points)],
        )


def reshape(rows: list[dict[str, Any]], config) -> ChartData:
    return ChartEngine(rows).reshape(config)
