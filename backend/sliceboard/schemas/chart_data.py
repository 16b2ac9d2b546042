from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class Dataset(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    data: Union[list[Point], list[float]]


class ChartData(BaseModel):
    """Renderer-ready series payload. Rebuilt on every recompute."""

    model_config = ConfigDict(frozen=True)

    labels: list[str]
    datasets: list[Dataset]
    is_placeholder: bool = Field(default=False)
