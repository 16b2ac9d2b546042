from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from sliceboard.dependencies import get_project_or_404, get_project_repository, service_errors
from sliceboard.schemas.api import (
    AssociationRequest,
    CreateSlicerRequest,
    FilterModeSuggestion,
    SelectionRequest,
    SlicerCandidatesResponse,
)
from sliceboard.schemas.project import Project, Slicer, Table, normalize_table_id
from sliceboard.services.column_classifier import classify, get_column_values
from sliceboard.services.projects import ProjectRepository
from sliceboard.services.slicers import (
    add_slicer,
    create_slicer,
    delete_slicer,
    detach_slicer,
    detect_universal_slicers,
    set_slicer_enabled,
    slicers_for_chart,
    toggle_slicer,
    update_selection,
)

router = APIRouter(prefix="/projects", tags=["slicers"])


def _tables_for(project: Project, table_id: Optional[str]) -> list[Table]:
    """A universal slicer draws from every table; a table-specific one from its own."""
    if table_id is None:
        return list(project.tables)
    table = project.get_table(table_id)
    if table is None:
        raise HTTPException(status_code=404, detail="Table not found")
    return [table]


# ── Candidates ───────────────────────────────────────────────────────────────

@router.get("/{project_id}/slicers/candidates", response_model=SlicerCandidatesResponse)
def slicer_candidates(
    project_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    return SlicerCandidatesResponse(columns=detect_universal_slicers(project.tables))


@router.get("/{project_id}/slicers/suggest", response_model=FilterModeSuggestion)
def suggest_filter_mode(
    project_id: str,
    column_name: str = Query(...),
    table_id: Optional[str] = Query(default=None),
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    tables = _tables_for(project, table_id)
    return FilterModeSuggestion(
        column_name=column_name,
        filter_mode=classify(column_name, tables),
        values=get_column_values(column_name, tables),
    )


# ── Registry ─────────────────────────────────────────────────────────────────

@router.get("/{project_id}/slicers", response_model=list[Slicer])
def list_slicers(
    project_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    return get_project_or_404(project_id, repo).slicers


@router.post("/{project_id}/slicers", response_model=Slicer, status_code=201)
def create_project_slicer(
    project_id: str,
    payload: CreateSlicerRequest,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    table_id = None if payload.kind == "universal" else payload.table_id
    tables = list(project.tables) if payload.kind == "universal" else _tables_for(project, normalize_table_id(table_id))

    filter_mode = payload.filter_mode or classify(payload.column_name, tables)
    if filter_mode is None:
        raise HTTPException(
            status_code=400,
            detail=f"Column '{payload.column_name}' cannot be used as a slicer",
        )
    values = payload.available_values
    if values is None:
        values = get_column_values(payload.column_name, tables)

    slicer = create_slicer(
        payload.name,
        payload.column_name,
        kind=payload.kind,
        table_id=table_id,
        available_values=values,
        filter_mode=filter_mode,
    )
    repo.save(add_slicer(project, slicer))
    return slicer


@router.put("/{project_id}/slicers/{slicer_id}/selection", response_model=Slicer)
def select_values(
    project_id: str,
    slicer_id: str,
    payload: SelectionRequest,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project = update_selection(project, slicer_id, payload.values)
    repo.save(project)
    return project.get_slicer(slicer_id)


@router.delete("/{project_id}/slicers/{slicer_id}", status_code=204)
def remove_slicer(
    project_id: str,
    slicer_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project = delete_slicer(project, slicer_id)
    repo.save(project)


# ── Chart associations ───────────────────────────────────────────────────────

@router.get("/{project_id}/charts/{chart_id}/slicers", response_model=list[Slicer])
def chart_slicers(
    project_id: str,
    chart_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        return slicers_for_chart(project, chart_id)


@router.put("/{project_id}/charts/{chart_id}/slicers/{slicer_id}", response_model=list[Slicer])
def set_chart_slicer(
    project_id: str,
    chart_id: str,
    slicer_id: str,
    payload: AssociationRequest,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project = set_slicer_enabled(project, chart_id, slicer_id, payload.enabled)
    repo.save(project)
    return slicers_for_chart(project, chart_id)


@router.post("/{project_id}/charts/{chart_id}/slicers/{slicer_id}/toggle", response_model=list[Slicer])
def toggle_chart_slicer(
    project_id: str,
    chart_id: str,
    slicer_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project = toggle_slicer(project, chart_id, slicer_id)
    repo.save(project)
    return slicers_for_chart(project, chart_id)


@router.delete("/{project_id}/charts/{chart_id}/slicers/{slicer_id}", response_model=list[Slicer])
def detach_chart_slicer(
    project_id: str,
    chart_id: str,
    slicer_id: str,
    repo: ProjectRepository = Depends(get_project_repository),
):
    project = get_project_or_404(project_id, repo)
    with service_errors():
        project = detach_slicer(project, chart_id, slicer_id)
    repo.save(project)
    return slicers_for_chart(project, chart_id)
