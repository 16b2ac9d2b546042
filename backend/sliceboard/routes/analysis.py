from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from sliceboard.dependencies import (
    get_analysis_generator,
    get_chart_or_404,
    get_project_or_404,
    get_project_repository,
)
from sliceboard.schemas.analysis import AnalysisEntry, AnalysisRequest, ChartAnalysisResponse
from sliceboard.services.analysis_parser import parse_analysis_content
from sliceboard.services.analysis_service import (
    AnalysisGenerator,
    AnalysisInProgressError,
    analysis_status,
)
from sliceboard.services.fingerprint import fingerprint
from sliceboard.services.projects import ProjectRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["analysis"])


def _response(chart_id: str, fp: str, status: str, entry: AnalysisEntry | None) -> ChartAnalysisResponse:
    has_content = entry is not None and entry.content.strip()
    return ChartAnalysisResponse(
        chart_id=chart_id,
        fingerprint=fp,
        status=status,
        entry=entry,
        sections=parse_analysis_content(entry.content) if has_content else None,
    )


@router.get("/{project_id}/charts/{chart_id}/analysis", response_model=ChartAnalysisResponse)
def get_chart_analysis(
    project_id: str,
    chart_id: str,
    date_range: list[str] = Query(default=[]),
    repo: ProjectRepository = Depends(get_project_repository),
    generator: AnalysisGenerator = Depends(get_analysis_generator),
):
    """
    Cached analysis for the chart's current filter state.

    Only an exact fingerprint match is returned as ``fresh``; ``stale`` tells
    the client an analysis exists for some other filter combination.
    """
    project = get_project_or_404(project_id, repo)
    chart = get_chart_or_404(project, chart_id)
    fp = fingerprint(chart, date_range, project.slicers)

    cache = generator.store.load(project_id)
    status = analysis_status(cache, chart.id, fp, in_flight=generator.is_in_flight(chart.id, fp))
    entry = cache.get(chart.id, fp)
    if status == "generating":
        entry = (entry or AnalysisEntry()).model_copy(update={"is_generating": True})
    return _response(chart.id, fp, status, entry)


@router.post("/{project_id}/charts/{chart_id}/analysis", response_model=ChartAnalysisResponse)
def generate_chart_analysis(
    project_id: str,
    chart_id: str,
    payload: AnalysisRequest,
    repo: ProjectRepository = Depends(get_project_repository),
    generator: AnalysisGenerator = Depends(get_analysis_generator),
):
    project = get_project_or_404(project_id, repo)
    chart = get_chart_or_404(project, chart_id)
    try:
        fp, entry = generator.generate(project, chart, payload.date_range_ids)
    except AnalysisInProgressError:
        raise HTTPException(status_code=409, detail="Analysis already in progress for this filter state")

    logger.info("Stored analysis for chart %s under %s", chart.id, fp[:12])
    if not entry.content.strip():
        status = "missing"
    else:
        status = "failed" if entry.error else "fresh"
    return _response(chart.id, fp, status, entry)
