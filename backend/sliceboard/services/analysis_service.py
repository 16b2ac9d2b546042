"""
Analysis generation: one in-flight request per (chart, fingerprint).

A request always writes to the fingerprint it was started for, so a filter
change while the model is thinking cannot overwrite the entry of the new
filter state.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Optional, Sequence

from sliceboard.schemas.analysis import AnalysisEntry
from sliceboard.schemas.chart_data import ChartData
from sliceboard.schemas.project import Chart, Project
from sliceboard.services.ai_insights import generate_chart_insights
from sliceboard.services.analysis_cache import AnalysisCache, AnalysisCacheStore
from sliceboard.services.chart_pipeline import compute_project_chart, filter_chart_rows, resolve_table
from sliceboard.services.fallback_analysis import build_fallback_analysis
from sliceboard.services.fingerprint import fingerprint

logger = logging.getLogger(__name__)

InsightFn = Callable[[ChartData, object], str]
ProjectLoader = Callable[[str], Optional[Project]]


class AnalysisInProgressError(Exception):
    def __init__(self, chart_id: str, fingerprint: str):
        super().__init__(f"Analysis already running for chart {chart_id}")
        self.chart_id = chart_id
        self.fingerprint = fingerprint


class NoChartDataError(ValueError):
    pass


def analysis_status(cache: AnalysisCache, chart_id: str, fp: str, in_flight: bool = False) -> str:
    """
    fresh: analysed under this exact filter state; failed: the last attempt for
    it errored (content may be earlier text or the fallback); stale: only
    analysed under other states.
    """
    if in_flight:
        return "generating"
    entry = cache.get(chart_id, fp)
    if entry is not None and entry.content.strip():
        return "failed" if entry.error else "fresh"
    if cache.has_any_entry(chart_id):
        return "stale"
    return "missing"


class AnalysisGenerator:
    def __init__(
        self,
        store: AnalysisCacheStore,
        insight_fn: Optional[InsightFn] = None,
        project_loader: Optional[ProjectLoader] = None,
    ):
        self._store = store
        self._insight_fn = insight_fn or generate_chart_insights
        self._project_loader = project_loader
        self._in_flight: dict[tuple[str, str], datetime] = {}
        self._lock = threading.Lock()

    @property
    def store(self) -> AnalysisCacheStore:
        return self._store

    def is_in_flight(self, chart_id: str, fp: str) -> bool:
        with self._lock:
            return (chart_id, fp) in self._in_flight

    def _claim(self, chart_id: str, fp: str) -> None:
        with self._lock:
            if (chart_id, fp) in self._in_flight:
                raise AnalysisInProgressError(chart_id, fp)
            self._in_flight[(chart_id, fp)] = datetime.utcnow()

    def _release(self, chart_id: str, fp: str) -> None:
        with self._lock:
            self._in_flight.pop((chart_id, fp), None)

    def generate(
        self, project: Project, chart: Chart, date_range_ids: Sequence[str] = ()
    ) -> tuple[str, AnalysisEntry]:
        """
        Generate and store the analysis for the chart's current filter state.

        Raises AnalysisInProgressError when the same fingerprint is already
        being generated. Model failures never raise: the error is recorded on
        the entry and earlier content is kept.
        """
        fp = fingerprint(chart, date_range_ids, project.slicers)
        self._claim(chart.id, fp)
        try:
            previous = self._store.load(project.id).get(chart.id, fp)
            chart_data = compute_project_chart(project, chart, date_range_ids)
            try:
                if chart_data is None or chart_data.is_placeholder:
                    raise NoChartDataError("No data available for analysis")
                content = self._insight_fn(chart_data, chart.config)
                entry = AnalysisEntry(content=content, generated_at=datetime.utcnow())
            except Exception as exc:
                logger.exception("Analysis generation failed for chart %s", chart.id)
                entry = self._failed_entry(project, chart, date_range_ids, chart_data, previous, exc)

            self._store.update(project.id, lambda cache: self._write(cache, project.id, chart.id, fp, entry))
            return fp, entry
        finally:
            self._release(chart.id, fp)

    def _write(self, cache: AnalysisCache, project_id: str, chart_id: str, fp: str, entry: AnalysisEntry) -> None:
        """Store the entry unless the chart was deleted while the model was running."""
        if self._project_loader is not None:
            current = self._project_loader(project_id)
            valid = {c.id for c in current.charts} if current is not None else set()
            orphans = set(cache.chart_ids()) - valid
            if orphans:
                logger.info("Pruning analyses of deleted charts %s", sorted(orphans))
                cache.prune(valid)
            if chart_id not in valid:
                logger.warning("Chart %s was deleted during generation; discarding analysis", chart_id)
                return
        cache.put(chart_id, fp, entry)

    def _failed_entry(
        self,
        project: Project,
        chart: Chart,
        date_range_ids: Sequence[str],
        chart_data: Optional[ChartData],
        previous: Optional[AnalysisEntry],
        exc: Exception,
    ) -> AnalysisEntry:
        if previous is not None and previous.content.strip():
            return previous.model_copy(update={"error": str(exc), "is_generating": False})

        table = resolve_table(chart, project.tables)
        row_count = 0
        if table is not None:
            row_count = len(filter_chart_rows(chart, table, date_range_ids, project.date_ranges, project.slicers))
        usable = chart_data if chart_data is not None and not chart_data.is_placeholder else None
        return AnalysisEntry(
            content=build_fallback_analysis(chart.config.template_id, usable, row_count),
            error=str(exc),
            generated_at=datetime.utcnow(),
        )
