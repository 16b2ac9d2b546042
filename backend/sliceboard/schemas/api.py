from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel

from sliceboard.schemas.project import ChartConfig, Column, FilterMode, Scalar, SlicerKind


# ── Projects & tables ────────────────────────────────────────────────────────

class CreateProjectRequest(BaseModel):
    name: str
    id: Optional[str] = None


class CreateTableRequest(BaseModel):
    name: str
    rows: list[dict[str, Any]]
    columns: Optional[list[Column]] = None


class RenameTableRequest(BaseModel):
    name: str


class DeleteTableResponse(BaseModel):
    table_id: str
    removed_chart_ids: list[str]


class CreateDateRangeRequest(BaseModel):
    name: str
    start_date: date
    end_date: date


# ── Slicers ──────────────────────────────────────────────────────────────────

class CreateSlicerRequest(BaseModel):
    name: str
    column_name: str
    kind: SlicerKind = "table-specific"
    table_id: Optional[str] = None
    filter_mode: Optional[FilterMode] = None
    available_values: Optional[list[Scalar]] = None


class SelectionRequest(BaseModel):
    values: list[Scalar]


class AssociationRequest(BaseModel):
    enabled: bool = True


class SlicerCandidatesResponse(BaseModel):
    columns: list[str]


class FilterModeSuggestion(BaseModel):
    column_name: str
    filter_mode: Optional[FilterMode]
    values: list[Scalar]


# ── Charts ───────────────────────────────────────────────────────────────────

class CreateChartRequest(BaseModel):
    name: str
    type: str = "bar"
    config: ChartConfig


class UpdateChartRequest(BaseModel):
    name: Optional[str] = None
    config: Optional[ChartConfig] = None
