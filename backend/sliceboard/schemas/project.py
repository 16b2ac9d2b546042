from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

MAIN_TABLE_ID = "main"

Scalar = Union[str, int, float, bool, None]
Aggregation = Literal["sum", "average", "count", "min", "max", "none"]
FilterMode = Literal["dropdown", "multi-select", "date-range"]
SlicerKind = Literal["universal", "table-specific"]
ColumnType = Literal["string", "number", "date", "boolean"]


def normalize_table_id(table_id: Optional[str]) -> str:
    """Charts and slicers without an explicit table point at the primary table."""
    return table_id or MAIN_TABLE_ID


# ── Tables ───────────────────────────────────────────────────────────────────

class Column(BaseModel):
    name: str
    type: ColumnType = "string"
    nullable: bool = True
    unique: bool = False


class Table(BaseModel):
    id: str
    name: str
    columns: list[Column] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def has_column(self, name: str) -> bool:
        return any(c.name == name for c in self.columns)

    def column_type(self, name: str) -> Optional[str]:
        for col in self.columns:
            if col.name == name:
                return col.type
        return None


# ── Filters ──────────────────────────────────────────────────────────────────

class Slicer(BaseModel):
    id: str
    name: str
    column_name: str
    table_id: Optional[str] = None
    kind: SlicerKind = "table-specific"
    filter_mode: FilterMode = "multi-select"
    selected_values: list[Scalar] = Field(default_factory=list)
    available_values: list[Scalar] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def effective_table_id(self) -> str:
        return normalize_table_id(self.table_id)


class DateRange(BaseModel):
    id: str
    name: str
    start_date: date
    end_date: date
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class ChartSlicer(BaseModel):
    chart_id: str
    slicer_id: str
    enabled: bool = True


# ── Chart configuration (tagged on template_id) ──────────────────────────────

class _BaseChartConfig(BaseModel):
    table_id: str = MAIN_TABLE_ID
    title: str = ""
    aggregation: Aggregation = "sum"
    applied_slicers: list[str] = Field(default_factory=list)


class SingleSeriesConfig(_BaseChartConfig):
    template_id: Literal["simple-bar", "simple-line", "area-chart"]
    x_axis_field: Optional[str] = None
    y_axis_field: Union[str, list[str], None] = None

    @property
    def y_field(self) -> Optional[str]:
        return _first_field(self.y_axis_field)


class MultiSeriesConfig(_BaseChartConfig):
    template_id: Literal["multi-series-bar", "stacked-bar", "multi-line"]
    x_axis_field: Optional[str] = None
    y_axis_field: Union[str, list[str], None] = None
    series_field: Optional[str] = None

    @property
    def y_field(self) -> Optional[str]:
        return _first_field(self.y_axis_field)


class CategoricalConfig(_BaseChartConfig):
    template_id: Literal["pie-chart"]
    category_field: Optional[str] = None
    value_field: Optional[str] = None


class ScatterConfig(_BaseChartConfig):
    template_id: Literal["scatter-plot"]
    x_axis_field: Optional[str] = None
    y_axis_field: Union[str, list[str], None] = None

    @property
    def y_field(self) -> Optional[str]:
        return _first_field(self.y_axis_field)


ChartConfig = Annotated[
    Union[SingleSeriesConfig, MultiSeriesConfig, CategoricalConfig, ScatterConfig],
    Field(discriminator="template_id"),
]


def _first_field(value: Union[str, list[str], None]) -> Optional[str]:
    if isinstance(value, list):
        return value[0] if value else None
    return value or None


class Chart(BaseModel):
    id: str
    name: str
    type: str = "bar"
    config: ChartConfig
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def table_id(self) -> str:
        return normalize_table_id(self.config.table_id)


# ── Project aggregate ────────────────────────────────────────────────────────

class Project(BaseModel):
    id: str
    name: str
    tables: list[Table] = Field(default_factory=list)
    charts: list[Chart] = Field(default_factory=list)
    slicers: list[Slicer] = Field(default_factory=list)
    chart_slicers: list[ChartSlicer] = Field(default_factory=list)
    date_ranges: list[DateRange] = Field(default_factory=list)

    def primary_table(self) -> Optional[Table]:
        for table in self.tables:
            if table.id == MAIN_TABLE_ID:
                return table
        return self.tables[0] if self.tables else None

    def get_table(self, table_id: Optional[str]) -> Optional[Table]:
        if normalize_table_id(table_id) == MAIN_TABLE_ID:
            return self.primary_table()
        return next((t for t in self.tables if t.id == table_id), None)

    def get_chart(self, chart_id: str) -> Optional[Chart]:
        return next((c for c in self.charts if c.id == chart_id), None)

    def get_slicer(self, slicer_id: str) -> Optional[Slicer]:
        return next((s for s in self.slicers if s.id == slicer_id), None)
