"""
Column Classifier: decides whether (and how) a column can back a slicer.

Numeric measures are reserved for aggregation and are never filterable.
Date columns need both a date-like name and mostly date-like values.
"""

from typing import Any, Iterable, Optional

import pandas as pd

from sliceboard.config import settings
from sliceboard.schemas.project import Column, Table
from sliceboard.services.cells import is_missing, is_numeric, looks_like_date, parse_date

DATE_NAME_INDICATORS = ("date", "created_at", "updated_at", "timestamp", "time")

TYPE_SAMPLE_SIZE = 100


def get_column_values(column_name: str, tables: Iterable[Table]) -> list[Any]:
    """De-duplicated non-empty values of ``column_name`` across the tables that declare it."""
    seen: dict[Any, None] = {}
    for table in tables:
        if not table.has_column(column_name):
            continue
        for row in table.rows:
            value = row.get(column_name)
            if is_missing(value):
                continue
            try:
                seen.setdefault((type(value) is bool, value), None)
            except TypeError:
                # unhashable cell (list/dict), not a usable filter value
                continue
    return [value for _, value in seen]


def classify(
    column_name: str,
    tables: Iterable[Table],
    max_multi_select: Optional[int] = None,
) -> Optional[str]:
    """Return ``"date-range"``, ``"multi-select"``, ``"dropdown"`` or None (unfilterable)."""
    values = get_column_values(column_name, tables)
    if not values:
        return None

    lowered = column_name.lower()
    if any(indicator in lowered for indicator in DATE_NAME_INDICATORS):
        date_like = sum(1 for v in values if looks_like_date(v))
        if date_like > len(values) * 0.5:
            return "date-range"

    if all(is_numeric(v) for v in values):
        return None

    limit = max_multi_select if max_multi_select is not None else settings.MULTI_SELECT_MAX_VALUES
    return "dropdown" if len(values) > limit else "multi-select"


def infer_columns(rows: list[dict[str, Any]]) -> list[Column]:
    """
    Infer a column list for imported rows that arrive without one.

    Looks at the first 100 rows. A column is a number/boolean only when every
    sampled value is one; date wins over a date+string mix.
    """
    if not rows:
        return []

    sample = pd.DataFrame.from_records(rows[:TYPE_SAMPLE_SIZE])
    columns: list[Column] = []
    for name in sample.columns:
        raw = [v for v in sample[name].tolist() if not is_missing(v)]
        if not raw:
            columns.append(Column(name=str(name), type="string", nullable=True, unique=False))
            continue

        kinds = set()
        for value in raw:
            if isinstance(value, bool):
                kinds.add("boolean")
            elif isinstance(value, (int, float)):
                kinds.add("number")
            elif isinstance(value, str) and parse_date(value) is not None and not is_numeric(value):
                kinds.add("date")
            elif looks_like_date(value):
                kinds.add("date")
            else:
                kinds.add("string")

        if kinds == {"number"}:
            col_type = "number"
        elif kinds == {"boolean"}:
            col_type = "boolean"
        elif kinds == {"date"} or kinds == {"date", "string"}:
            col_type = "date"
        else:
            col_type = "string"

        try:
            distinct = len(set(raw))
        except TypeError:
            distinct = 0
        columns.append(
            Column(
                name=str(name),
                type=col_type,
                nullable=len(raw) < len(sample),
                unique=distinct == len(raw),
            )
        )
    return columns
