"""
Tests for ChartEngine reshaping: grouping order, reducers, multi-series
matrices, scatter points and placeholder handling.
"""

from __future__ import annotations

import pytest

from conftest import SALES_ROWS

from sliceboard.schemas.chart_data import Point
from sliceboard.schemas.project import (
    CategoricalConfig,
    MultiSeriesConfig,
    ScatterConfig,
    SingleSeriesConfig,
)
from sliceboard.services.chart_engine import ChartEngine, placeholder_chart_data, reshape


def bar(aggregation="sum", **kwargs):
    fields = {"x_axis_field": "region", "y_axis_field": "amount"}
    fields.update(kwargs)
    return SingleSeriesConfig(template_id="simple-bar", aggregation=aggregation, **fields)


class TestSingleSeries:
    def test_sum_in_first_seen_order(self):
        data = reshape(SALES_ROWS, bar())
        assert data.labels == ["North", "South", "East"]
        assert data.datasets[0].label == "amount"
        # "bad" coerces to 0
        assert data.datasets[0].data == [130.0, 120.0, 0.0]
        assert data.is_placeholder is False

    @pytest.mark.parametrize(
        "aggregation, expected",
        [
            ("average", [65.0, 60.0, 0.0]),
            ("count", [2, 2, 1]),
            ("min", [30.0, 50.0, 0.0]),
            ("max", [100.0, 70.0, 0.0]),
            ("none", [100.0, 50.0, 0.0]),
        ],
    )
    def test_reducers(self, aggregation, expected):
        data = reshape(SALES_ROWS, bar(aggregation))
        assert data.datasets[0].data == expected

    def test_missing_label_becomes_unknown(self):
        rows = [
            {"region": None, "amount": 5},
            {"region": "", "amount": 2},
            {"region": 0, "amount": 1},
            {"region": False, "amount": 4},
        ]
        data = reshape(rows, bar())
        assert data.labels == ["Unknown", "0", "false"]
        assert data.datasets[0].data == [7.0, 1.0, 4.0]

    def test_y_axis_list_uses_first_field(self):
        data = reshape(SALES_ROWS, bar(y_axis_field=["amount", "other"]))
        assert data.datasets[0].label == "amount"

    def test_values_are_rounded(self):
        rows = [{"region": "a", "amount": 1 / 3}]
        assert reshape(rows, bar()).datasets[0].data == [0.333]

    def test_line_and_area_share_the_shape(self):
        for template in ("simple-line", "area-chart"):
            config = SingleSeriesConfig(template_id=template, x_axis_field="region", y_axis_field="amount")
            assert reshape(SALES_ROWS, config).labels == ["North", "South", "East"]


class TestCategorical:
    def test_pie_reduces_by_category(self):
        config = CategoricalConfig(template_id="pie-chart", category_field="product", value_field="amount")
        data = reshape(SALES_ROWS, config)
        assert data.labels == ["Widget", "Gadget"]
        assert data.datasets[0].data == [220.0, 30.0]


class TestMultiSeries:
    def test_dense_matrix_filled_with_zero(self):
        config = MultiSeriesConfig(
            template_id="multi-series-bar",
            x_axis_field="region",
            y_axis_field="amount",
            series_field="product",
        )
        data = reshape(SALES_ROWS, config)
        assert data.labels == ["North", "South", "East"]
        assert [d.label for d in data.datasets] == ["Widget", "Gadget"]
        assert data.datasets[0].data == [100.0, 120.0, 0.0]
        assert data.datasets[1].data == [30.0, 0.0, 0.0]

    def test_missing_series_value_goes_to_default(self):
        rows = [{"region": "North", "amount": 5, "product": None}]
        config = MultiSeriesConfig(
            template_id="stacked-bar", x_axis_field="region", y_axis_field="amount", series_field="product"
        )
        assert reshape(rows, config).datasets[0].label == "Default"

    def test_without_series_field_falls_back_to_single_series(self):
        config = MultiSeriesConfig(template_id="multi-line", x_axis_field="region", y_axis_field="amount")
        data = reshape(SALES_ROWS, config)
        assert len(data.datasets) == 1
        assert data.datasets[0].data == [130.0, 120.0, 0.0]


class TestScatter:
    def test_one_point_per_row(self):
        rows = [{"x": 1, "y": "2"}, {"x": "oops", "y": 4}]
        config = ScatterConfig(template_id="scatter-plot", x_axis_field="x", y_axis_field="y")
        data = reshape(rows, config)
        assert data.labels == ["Point 1", "Point 2"]
        assert data.datasets[0].label == "Data Points"
        assert data.datasets[0].data == [Point(x=1, y=2), Point(x=0, y=4)]


class TestPlaceholder:
    def test_incomplete_config_returns_sample(self):
        config = SingleSeriesConfig(template_id="simple-bar", x_axis_field="region")
        data = ChartEngine(SALES_ROWS).reshape(config)
        assert data.is_placeholder is True
        assert data == placeholder_chart_data("simple-bar")

    def test_pie_without_value_field(self):
        config = CategoricalConfig(template_id="pie-chart", category_field="product")
        data = reshape(SALES_ROWS, config)
        assert data.is_placeholder
        assert data.labels == ["Product A", "Product B", "Product C", "Product D"]

    def test_scatter_placeholder_has_points(self):
        data = placeholder_chart_data("scatter-plot")
        assert all(isinstance(p, Point) for p in data.datasets[0].data)

    def test_multi_series_placeholder_has_three_series(self):
        assert len(placeholder_chart_data("stacked-bar").datasets) == 3

    def test_only_registered_template_ids_get_special_samples(self):
        default = placeholder_chart_data("simple-bar")
        for alias in ("pie", "line", "scatter", None):
            assert placeholder_chart_data(alias) == default


class TestWorkedExamples:
    ROWS = [{"x": "A", "y": 10}, {"x": "A", "y": 20}, {"x": "B", "y": 5}]

    def test_average_and_count(self):
        average = SingleSeriesConfig(template_id="simple-bar", x_axis_field="x", y_axis_field="y", aggregation="average")
        count = average.model_copy(update={"aggregation": "count"})
        assert reshape(self.ROWS, average).labels == ["A", "B"]
        assert reshape(self.ROWS, average).datasets[0].data == [15, 5]
        assert reshape(self.ROWS, count).datasets[0].data == [2, 1]

    def test_pie_sum(self):
        rows = [{"category": "X", "value": 1}, {"category": "X", "value": 2}, {"category": "Y", "value": 3}]
        config = CategoricalConfig(template_id="pie-chart", category_field="category", value_field="value")
        data = reshape(rows, config)
        assert data.labels == ["X", "Y"]
        assert data.datasets[0].data == [3, 3]
