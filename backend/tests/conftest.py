"""
Shared fixtures: small sales/orders tables and a project wiring them up.

Run with:
    pytest backend/tests -v
"""

from __future__ import annotations

import os
import sys

# ── Make the backend package importable without installing it ──────────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from sliceboard.schemas.project import (
    Chart,
    Column,
    DateRange,
    Project,
    Slicer,
    Table,
)
from sliceboard.services.cache import MemoryBlobStore


SALES_ROWS = [
    {"region": "North", "product": "Widget", "amount": 100, "date": "2024-01-05"},
    {"region": "South", "product": "Widget", "amount": 50, "date": "2024-01-20"},
    {"region": "North", "product": "Gadget", "amount": 30, "date": "2024-02-03"},
    {"region": "East", "product": "Gadget", "amount": "bad", "date": "2024-02-14"},
    {"region": "South", "product": "Widget", "amount": 70, "date": "2024-03-01"},
]


def make_table(table_id: str, rows: list[dict], types: dict[str, str] | None = None, name: str = "") -> Table:
    names = list(dict.fromkeys(k for row in rows for k in row))
    types = types or {}
    return Table(
        id=table_id,
        name=name or table_id,
        rows=rows,
        columns=[Column(name=n, type=types.get(n, "string")) for n in names],
    )


def make_slicer(slicer_id: str, column: str, selected=(), available=(), table_id=None, mode="multi-select") -> Slicer:
    return Slicer(
        id=slicer_id,
        name=column.title(),
        column_name=column,
        table_id=table_id,
        filter_mode=mode,
        selected_values=list(selected),
        available_values=list(available),
    )


def make_chart(chart_id: str, config: dict) -> Chart:
    return Chart.model_validate({"id": chart_id, "name": chart_id, "config": config})


@pytest.fixture
def sales_table() -> Table:
    return make_table(
        "main",
        [dict(r) for r in SALES_ROWS],
        types={"amount": "number", "date": "date"},
        name="Sales",
    )


@pytest.fixture
def bar_chart() -> Chart:
    return make_chart(
        "chart-bar",
        {"template_id": "simple-bar", "x_axis_field": "region", "y_axis_field": "amount"},
    )


@pytest.fixture
def project(sales_table, bar_chart) -> Project:
    return Project(
        id="p1",
        name="Demo",
        tables=[sales_table],
        charts=[bar_chart],
        date_ranges=[
            DateRange(id="jan", name="January", start_date="2024-01-01", end_date="2024-01-31"),
            DateRange(id="mar", name="March", start_date="2024-03-01", end_date="2024-03-31"),
        ],
    )


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()
