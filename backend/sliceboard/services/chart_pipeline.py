"""
Chart Data Pipeline: resolve table, filter, reshape.

Outcomes:
  ChartData            real series
  ChartData (sample)   configuration incomplete, or reshaping blew up
  None                 table reference broken, or no rows survive filtering
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from sliceboard.schemas.chart_data import ChartData
from sliceboard.schemas.project import (
    MAIN_TABLE_ID,
    Chart,
    DateRange,
    Project,
    Slicer,
    Table,
    normalize_table_id,
)
from sliceboard.services.chart_engine import ChartEngine, placeholder_chart_data
from sliceboard.services.filters import apply_date_ranges, apply_slicers

logger = logging.getLogger(__name__)


def resolve_table(chart: Chart, tables: Sequence[Table]) -> Optional[Table]:
    table_id = normalize_table_id(chart.config.table_id)
    if table_id == MAIN_TABLE_ID:
        primary = next((t for t in tables if t.id == MAIN_TABLE_ID), None)
        return primary or (tables[0] if tables else None)
    return next((t for t in tables if t.id == table_id), None)


def filter_chart_rows(
    chart: Chart,
    table: Table,
    active_date_range_ids: Sequence[str],
    all_date_ranges: Iterable[DateRange],
    all_slicers: Iterable[Slicer],
) -> list[dict]:
    rows = apply_date_ranges(table.rows, active_date_range_ids, all_date_ranges)
    return apply_slicers(
        rows,
        chart.config.applied_slicers,
        all_slicers,
        table_id=chart.table_id,
        columns=table.column_names(),
    )


def compute_chart_data(
    chart: Chart,
    tables: Sequence[Table],
    active_date_range_ids: Sequence[str] = (),
    all_date_ranges: Iterable[DateRange] = (),
    all_slicers: Iterable[Slicer] = (),
) -> Optional[ChartData]:
    table = resolve_table(chart, tables)
    if table is None:
        logger.warning(
            "Chart %s references missing table %r", chart.id, chart.config.table_id
        )
        return None

    try:
        rows = filter_chart_rows(chart, table, active_date_range_ids, all_date_ranges, all_slicers)
        if not rows:
            return None
        return ChartEngine(rows).reshape(chart.config)
    except Exception:
        logger.exception("Failed to compute data for chart %s", chart.id)
        return placeholder_chart_data(chart.config.template_id)


def compute_project_chart(
    project: Project, chart: Chart, active_date_range_ids: Sequence[str] = ()
) -> Optional[ChartData]:
    return compute_chart_data(
        chart,
        project.tables,
        active_date_range_ids,
        project.date_ranges,
        project.slicers,
    )
