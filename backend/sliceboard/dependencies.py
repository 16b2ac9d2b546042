"""Request-scoped providers shared by the routers."""

from contextlib import contextmanager
from functools import lru_cache

from fastapi import Depends, HTTPException

from sliceboard.schemas.project import Chart, Project
from sliceboard.services.analysis_cache import AnalysisCacheStore
from sliceboard.services.analysis_service import AnalysisGenerator
from sliceboard.services.cache import get_blob_store
from sliceboard.services.projects import NotFoundError, ProjectRepository


def get_project_repository(blob_store=Depends(get_blob_store)) -> ProjectRepository:
    return ProjectRepository(blob_store)


def get_analysis_store(blob_store=Depends(get_blob_store)) -> AnalysisCacheStore:
    return AnalysisCacheStore(blob_store)


@lru_cache()
def get_analysis_generator() -> AnalysisGenerator:
    # One generator per process so the in-flight registry is shared by all requests.
    blob_store = get_blob_store()
    return AnalysisGenerator(
        AnalysisCacheStore(blob_store),
        project_loader=ProjectRepository(blob_store).get,
    )


def get_project_or_404(project_id: str, repo: ProjectRepository) -> Project:
    project = repo.get(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def get_chart_or_404(project: Project, chart_id: str) -> Chart:
    chart = project.get_chart(chart_id)
    if chart is None:
        raise HTTPException(status_code=404, detail="Chart not found")
    return chart


@contextmanager
def service_errors():
    """Map service-layer lookup/validation failures onto 404/400."""
    try:
        yield
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
