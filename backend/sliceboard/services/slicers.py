"""
Slicer Registry: named filters and their chart associations.

Each chart's ``applied_slicers`` list and the project's ChartSlicer records
describe the same relation from two sides; every mutation here rewrites
both in one replacement.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from itertools import combinations
from typing import Any, Iterable, Optional

from sliceboard.schemas.project import Chart, ChartSlicer, Project, Slicer, Table
from sliceboard.services.cells import is_missing, normalize_token
from sliceboard.services.column_classifier import classify
from sliceboard.services.projects import NotFoundError, with_applied_slicers

_CATEGORICAL_MIX = {"string", "number"}


def create_slicer(
    name: str,
    column_name: str,
    kind: str = "table-specific",
    table_id: Optional[str] = None,
    available_values: Optional[list[Any]] = None,
    filter_mode: str = "multi-select",
) -> Slicer:
    """New slicer with an empty selection (no filtering until values are picked)."""
    now = datetime.utcnow()
    return Slicer(
        id=f"slicer-{uuid.uuid4().hex}",
        name=name,
        column_name=column_name,
        kind=kind,
        table_id=table_id,
        filter_mode=filter_mode,
        selected_values=[],
        available_values=list(available_values or []),
        created_at=now,
        updated_at=now,
    )


def _normalized_values(table: Table, column_name: str) -> set[str]:
    return {
        normalize_token(row.get(column_name))
        for row in table.rows
        if not is_missing(row.get(column_name))
    }


def detect_universal_slicers(tables: list[Table]) -> list[str]:
    """
    Columns that could back one slicer across several tables.

    A candidate appears in two or more tables with identical declared types
    (or a string/number mix) and shares at least one normalised value
    between some pair of those tables.
    """
    if len(tables) == 1:
        only = tables[0]
        return [c.name for c in only.columns if classify(c.name, [only]) is not None]

    names = list(dict.fromkeys(c.name for t in tables for c in t.columns))
    candidates = []
    for name in names:
        holders = [t for t in tables if t.has_column(name)]
        if len(holders) < 2:
            continue

        types = {t.column_type(name) for t in holders}
        if len(types) > 1 and not types <= _CATEGORICAL_MIX:
            continue

        value_sets = [_normalized_values(t, name) for t in holders]
        if any(a & b for a, b in combinations(value_sets, 2)):
            candidates.append(name)
    return candidates


# ── Registry mutations ───────────────────────────────────────────────────────

def _require_slicer(project: Project, slicer_id: str) -> Slicer:
    slicer = project.get_slicer(slicer_id)
    if slicer is None:
        raise NotFoundError("slicer", slicer_id)
    return slicer


def _require_chart(project: Project, chart_id: str) -> Chart:
    chart = project.get_chart(chart_id)
    if chart is None:
        raise NotFoundError("chart", chart_id)
    return chart


def add_slicer(project: Project, slicer: Slicer) -> Project:
    return project.model_copy(update={"slicers": [*project.slicers, slicer]})


def update_selection(project: Project, slicer_id: str, values: Iterable[Any]) -> Project:
    slicer = _require_slicer(project, slicer_id)
    selected = list(dict.fromkeys(values))
    unknown = [v for v in selected if v not in slicer.available_values]
    if unknown:
        raise ValueError(f"Values not available for slicer '{slicer.name}': {unknown}")

    updated = slicer.model_copy(update={"selected_values": selected, "updated_at": datetime.utcnow()})
    return project.model_copy(
        update={"slicers": [updated if s.id == slicer_id else s for s in project.slicers]}
    )


def delete_slicer(project: Project, slicer_id: str) -> Project:
    _require_slicer(project, slicer_id)
    return project.model_copy(
        update={
            "slicers": [s for s in project.slicers if s.id != slicer_id],
            "charts": [
                with_applied_slicers(c, [sid for sid in c.config.applied_slicers if sid != slicer_id])
                for c in project.charts
            ],
            "chart_slicers": [cs for cs in project.chart_slicers if cs.slicer_id != slicer_id],
        }
    )


# ── Chart associations ───────────────────────────────────────────────────────

def set_slicer_enabled(project: Project, chart_id: str, slicer_id: str, enabled: bool) -> Project:
    """
    Create or update the chart/slicer association.

    Enabled associations are listed in the chart's ``applied_slicers``;
    disabled ones keep their record but leave that list.
    """
    chart = _require_chart(project, chart_id)
    _require_slicer(project, slicer_id)

    applied = [sid for sid in chart.config.applied_slicers if sid != slicer_id]
    if enabled:
        applied.append(slicer_id)

    records = [
        cs for cs in project.chart_slicers
        if not (cs.chart_id == chart_id and cs.slicer_id == slicer_id)
    ]
    records.append(ChartSlicer(chart_id=chart_id, slicer_id=slicer_id, enabled=enabled))

    updated_chart = with_applied_slicers(chart, applied)
    return project.model_copy(
        update={
            "charts": [updated_chart if c.id == chart_id else c for c in project.charts],
            "chart_slicers": records,
        }
    )


def attach_slicer(project: Project, chart_id: str, slicer_id: str) -> Project:
    return set_slicer_enabled(project, chart_id, slicer_id, True)


def toggle_slicer(project: Project, chart_id: str, slicer_id: str) -> Project:
    current = next(
        (cs for cs in project.chart_slicers if cs.chart_id == chart_id and cs.slicer_id == slicer_id),
        None,
    )
    enabled = not current.enabled if current is not None else True
    return set_slicer_enabled(project, chart_id, slicer_id, enabled)


def detach_slicer(project: Project, chart_id: str, slicer_id: str) -> Project:
    chart = _require_chart(project, chart_id)
    return project.model_copy(
        update={
            "charts": [
                with_applied_slicers(c, [sid for sid in c.config.applied_slicers if sid != slicer_id])
                if c.id == chart.id else c
                for c in project.charts
            ],
            "chart_slicers": [
                cs for cs in project.chart_slicers
                if not (cs.chart_id == chart_id and cs.slicer_id == slicer_id)
            ],
        }
    )


def slicers_for_chart(project: Project, chart_id: str) -> list[Slicer]:
    chart = _require_chart(project, chart_id)
    by_id = {s.id: s for s in project.slicers}
    return [by_id[sid] for sid in chart.config.applied_slicers if sid in by_id]


def charts_for_slicer(project: Project, slicer_id: str) -> list[str]:
    return [cs.chart_id for cs in project.chart_slicers if cs.slicer_id == slicer_id and cs.enabled]
