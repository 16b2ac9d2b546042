"""
Project aggregate operations and persistence.

Every operation returns a new Project; the caller saves it. Deleting a
table or chart cascades to everything that depended on it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any, Optional

from sliceboard.schemas.project import (
    MAIN_TABLE_ID,
    Chart,
    ChartSlicer,
    Column,
    DateRange,
    Project,
    Table,
)
from sliceboard.services.column_classifier import infer_columns

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    def __init__(self, kind: str, item_id: str):
        super().__init__(f"{kind} '{item_id}' not found")
        self.kind = kind
        self.item_id = item_id


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def create_project(name: str, project_id: Optional[str] = None) -> Project:
    return Project(id=project_id or new_id("project"), name=name)


# ── Tables ───────────────────────────────────────────────────────────────────

def add_table(
    project: Project,
    name: str,
    rows: list[dict[str, Any]],
    columns: Optional[list[Column]] = None,
) -> tuple[Project, Table]:
    """The first table imported into a project becomes the primary ("main") table."""
    table = Table(
        id=MAIN_TABLE_ID if not project.tables else new_id("table"),
        name=name,
        rows=list(rows),
        columns=columns if columns else infer_columns(rows),
    )
    return project.model_copy(update={"tables": [*project.tables, table]}), table


def rename_table(project: Project, table_id: str, name: str) -> Project:
    table = project.get_table(table_id)
    if table is None:
        raise NotFoundError("table", table_id)
    renamed = table.model_copy(update={"name": name, "updated_at": datetime.utcnow()})
    return project.model_copy(
        update={"tables": [renamed if t.id == table.id else t for t in project.tables]}
    )


def _table_aliases(project: Project, table: Table) -> set[str]:
    aliases = {table.id}
    primary = project.primary_table()
    if primary is not None and primary.id == table.id:
        aliases.add(MAIN_TABLE_ID)
    return aliases


def delete_table(project: Project, table_id: str) -> tuple[Project, list[str]]:
    """Remove a table with its charts, slicers and associations. Returns removed chart ids."""
    table = project.get_table(table_id)
    if table is None:
        raise NotFoundError("table", table_id)

    aliases = _table_aliases(project, table)
    removed_charts = [c.id for c in project.charts if c.table_id in aliases]
    removed_slicers = {s.id for s in project.slicers if s.effective_table_id in aliases}
    logger.info(
        "Deleting table %s: %d chart(s), %d slicer(s) cascade",
        table.id, len(removed_charts), len(removed_slicers),
    )

    charts = [
        with_applied_slicers(c, [sid for sid in c.config.applied_slicers if sid not in removed_slicers])
        for c in project.charts
        if c.id not in removed_charts
    ]
    updated = project.model_copy(
        update={
            "tables": [t for t in project.tables if t.id != table.id],
            "charts": charts,
            "slicers": [s for s in project.slicers if s.id not in removed_slicers],
            "chart_slicers": [
                cs for cs in project.chart_slicers
                if cs.chart_id not in removed_charts and cs.slicer_id not in removed_slicers
            ],
        }
    )
    return updated, removed_charts


# ── Date ranges ──────────────────────────────────────────────────────────────

def add_date_range(project: Project, name: str, start_date: date, end_date: date) -> tuple[Project, DateRange]:
    date_range = DateRange(id=new_id("range"), name=name, start_date=start_date, end_date=end_date)
    return project.model_copy(update={"date_ranges": [*project.date_ranges, date_range]}), date_range


def delete_date_range(project: Project, range_id: str) -> Project:
    if not any(r.id == range_id for r in project.date_ranges):
        raise NotFoundError("date range", range_id)
    return project.model_copy(
        update={"date_ranges": [r for r in project.date_ranges if r.id != range_id]}
    )


# ── Charts ───────────────────────────────────────────────────────────────────

def with_applied_slicers(chart: Chart, slicer_ids: list[str]) -> Chart:
    if slicer_ids == chart.config.applied_slicers:
        return chart
    config = chart.config.model_copy(update={"applied_slicers": slicer_ids})
    return chart.model_copy(update={"config": config, "updated_at": datetime.utcnow()})


def _associations_for(chart: Chart) -> list[ChartSlicer]:
    return [ChartSlicer(chart_id=chart.id, slicer_id=sid) for sid in chart.config.applied_slicers]


def add_chart(project: Project, name: str, config, chart_type: str = "bar") -> tuple[Project, Chart]:
    known = {s.id for s in project.slicers}
    chart = Chart(id=new_id("chart"), name=name, type=chart_type, config=config)
    chart = with_applied_slicers(chart, [sid for sid in dict.fromkeys(chart.config.applied_slicers) if sid in known])
    updated = project.model_copy(
        update={
            "charts": [*project.charts, chart],
            "chart_slicers": [*project.chart_slicers, *_associations_for(chart)],
        }
    )
    return updated, chart


def update_chart(project: Project, chart_id: str, name: Optional[str] = None, config=None) -> tuple[Project, Chart]:
    """Replace a chart's name/config; the association list is rebuilt from the new config."""
    chart = project.get_chart(chart_id)
    if chart is None:
        raise NotFoundError("chart", chart_id)

    changes: dict[str, Any] = {"updated_at": datetime.utcnow()}
    if name is not None:
        changes["name"] = name
    if config is not None:
        changes["config"] = config
    updated_chart = chart.model_copy(update=changes)
    known = {s.id for s in project.slicers}
    updated_chart = with_applied_slicers(
        updated_chart, [sid for sid in dict.fromkeys(updated_chart.config.applied_slicers) if sid in known]
    )

    # Disabled associations survive a config edit; enabled ones follow applied_slicers.
    disabled = [
        cs for cs in project.chart_slicers
        if cs.chart_id == chart_id and not cs.enabled
        and cs.slicer_id not in updated_chart.config.applied_slicers
    ]
    others = [cs for cs in project.chart_slicers if cs.chart_id != chart_id]
    updated = project.model_copy(
        update={
            "charts": [updated_chart if c.id == chart_id else c for c in project.charts],
            "chart_slicers": [*others, *_associations_for(updated_chart), *disabled],
        }
    )
    return updated, updated_chart


def delete_chart(project: Project, chart_id: str) -> Project:
    if project.get_chart(chart_id) is None:
        raise NotFoundError("chart", chart_id)
    return project.model_copy(
        update={
            "charts": [c for c in project.charts if c.id != chart_id],
            "chart_slicers": [cs for cs in project.chart_slicers if cs.chart_id != chart_id],
        }
    )


# ── Persistence ──────────────────────────────────────────────────────────────

class ProjectRepository:
    def __init__(self, blob_store):
        self._store = blob_store

    @staticmethod
    def _key(project_id: str) -> str:
        return f"project:{project_id}"

    def get(self, project_id: str) -> Optional[Project]:
        raw = self._store.get(self._key(project_id))
        if raw is None:
            return None
        return Project.model_validate_json(raw)

    def save(self, project: Project) -> Project:
        self._store.set(self._key(project.id), project.model_dump_json())
        return project

    def delete(self, project_id: str) -> None:
        self._store.delete(self._key(project_id))
