from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from sliceboard.dependencies import (
    get_analysis_store,
    get_chart_or_404,
    get_project_or_404,
    get_project_repository,
    service_errors,
)
from sliceboard.schemas.analysis import ChartDataResponse
from sliceboard.schemas.api import CreateChartRequest, UpdateChartRequest
from sliceboard.schemas.project import Chart
from sliceboard.services.analysis_cache import AnalysisCacheStore
from sliceboard.services.chart_pipeline import compute_project_chart
from sliceboard.services.fingerprint import fingerprint
from sliceboard.services.projects import ProjectRepository, add_chart, delete_chart, update_chart

router = APIRouter(prefix="/projects", tags=["charts"])


# ── CRUD ─────────────────────────────────────────────────────────────────────

@router.get("/{project_id}/charts", response_model=list[Chart])
def list_charts(
    project_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    return get_project_or_404(project_id, repo).charts


@router.post("/{project_id}/charts", response_model=Chart, status_code=201)
def create_chart(
    project_id: str,
    payload: CreateChartRequest,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project, chart = add_chart(project, payload.name, payload.config, payload.type)
    repo.save(project)
    return chart


@router.get("/{project_id}/charts/{chart_id}", response_model=Chart)
def get_chart(
    project_id: str,
    chart_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    return get_chart_or_404(project, chart_id)


@router.patch("/{project_id}/charts/{chart_id}", response_model=Chart)
def edit_chart(
    project_id: str,
    chart_id: str,
    payload: UpdateChartRequest,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project, chart = update_chart(project, chart_id, name=payload.name, config=payload.config)
    repo.save(project)
    return chart


@router.delete("/{project_id}/charts/{chart_id}", status_code=204)
def remove_chart(
    project_id: str,
    chart_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
    analyses: AnalysisCacheStore = Depends(get_analysis_store),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project = delete_chart(project, chart_id)
    repo.save(project)
    analyses.update(project_id, lambda cache: cache.drop_chart(chart_id))


# ── Data ─────────────────────────────────────────────────────────────────────

@router.get("/{project_id}/charts/{chart_id}/data", response_model=ChartDataResponse)
def chart_data(
    project_id: str,
    chart_id: str,
    date_range: list[str] = Query(default=[]),
    repo: ProjectRepository = Depends(get_project_repository),
):
    """
    Series for the chart under the active date ranges and its applied slicers.

    ``data`` is null when the chart's table is gone or no rows survive the
    filters; a sample series (``is_placeholder``) means the chart is not
    fully configured yet.
    """
    project = get_project_or_404(project_id, repo)
    chart = get_chart_or_404(project, chart_id)
    return ChartDataResponse(
        chart_id=chart.id,
        fingerprint=fingerprint(chart, date_range, project.slicers),
        data=compute_project_chart(project, chart, date_range),
    )
