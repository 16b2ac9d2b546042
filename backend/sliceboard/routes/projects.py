from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from sliceboard.dependencies import (
    get_analysis_store,
    get_project_or_404,
    get_project_repository,
    service_errors,
)
from sliceboard.schemas.api import (
    CreateDateRangeRequest,
    CreateProjectRequest,
    CreateTableRequest,
    DeleteTableResponse,
    RenameTableRequest,
)
from sliceboard.schemas.project import DateRange, Project, Table
from sliceboard.services.analysis_cache import AnalysisCacheStore
from sliceboard.services.projects import (
    ProjectRepository,
    add_date_range,
    add_table,
    create_project,
    delete_date_range,
    delete_table,
    rename_table,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


# ── Projects ─────────────────────────────────────────────────────────────────

@router.post("", response_model=Project, status_code=201)
def create_new_project(
    payload: CreateProjectRequest,
    repo: ProjectRepository = Depends(get_project_repository),
):
    if payload.id and repo.get(payload.id) is not None:
        raise HTTPException(status_code=409, detail="Project already exists")
    return repo.save(create_project(payload.name, payload.id))


@router.get("/{project_id}", response_model=Project)
def get_project(
    project_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    return get_project_or_404(project_id, repo)


@router.delete("/{project_id}", status_code=204)
def delete_project(
    project_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
    analyses: AnalysisCacheStore = Depends(get_analysis_store),
):
    get_project_or_404(project_id, repo)
    repo.delete(project_id)
    analyses.delete(project_id)


# ── Tables ───────────────────────────────────────────────────────────────────

@router.post("/{project_id}/tables", response_model=Table, status_code=201)
def import_table(
    project_id: str,
    payload: CreateTableRequest,
    repo: ProjectRepository = Depends(get_project_repository),
):
    """Store a table. Columns are inferred from the rows when not supplied."""
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project, table = add_table(project, payload.name, payload.rows, payload.columns)
    repo.save(project)
    logger.info("Imported table %s (%d rows) into project %s", table.id, len(table.rows), project_id)
    return table


@router.patch("/{project_id}/tables/{table_id}", response_model=Table)
def rename_project_table(
    project_id: str,
    table_id: str,
    payload: RenameTableRequest,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project = rename_table(project, table_id, payload.name)
    repo.save(project)
    return project.get_table(table_id)


@router.delete("/{project_id}/tables/{table_id}", response_model=DeleteTableResponse)
def remove_table(
    project_id: str,
    table_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
    analyses: AnalysisCacheStore = Depends(get_analysis_store),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project, removed = delete_table(project, table_id)
    repo.save(project)

    def _drop(cache):
        for chart_id in removed:
            cache.drop_chart(chart_id)

    if removed:
        analyses.update(project_id, _drop)
    return DeleteTableResponse(table_id=table_id, removed_chart_ids=removed)


# ── Date ranges ──────────────────────────────────────────────────────────────

@router.post("/{project_id}/date-ranges", response_model=DateRange, status_code=201)
def create_date_range(
    project_id: str,
    payload: CreateDateRangeRequest,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project, date_range = add_date_range(project, payload.name, payload.start_date, payload.end_date)
    repo.save(project)
    return date_range


@router.delete("/{project_id}/date-ranges/{range_id}", status_code=204)
def remove_date_range(
    project_id: str,
    range_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project = delete_date_range(project, range_id)
    repo.save(project)
