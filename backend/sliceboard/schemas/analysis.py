from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from sliceboard.schemas.chart_data import ChartData


class AnalysisEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str = ""
    is_generating: bool = False
    error: Optional[str] = None
    generated_at: Optional[datetime] = None


class AnalysisSections(BaseModel):
    analysis: str
    insights: str


class AnalysisRequest(BaseModel):
    date_range_ids: list[str] = []


class ChartAnalysisResponse(BaseModel):
    chart_id: str
    fingerprint: str
    status: Literal["fresh", "failed", "stale", "missing", "generating"]
    entry: Optional[AnalysisEntry] = None
    sections: Optional[AnalysisSections] = None


class ChartDataResponse(BaseModel):
    chart_id: str
    fingerprint: str
    data: Optional[ChartData]
