"""
Filter Evaluator: date-range stage and slicer stage.

Date ranges are OR'd with each other; slicers are AND'd with each other;
the two stages compose by AND. Neither stage mutates its input rows.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from sliceboard.schemas.project import DateRange, Slicer, normalize_table_id
from sliceboard.services.cells import is_missing, parse_calendar_date

Row = dict[str, Any]


# ── Date-range stage ─────────────────────────────────────────────────────────

def resolve_date_ranges(active_range_ids: Sequence[str], all_ranges: Iterable[DateRange]) -> list[DateRange]:
    by_id = {r.id: r for r in all_ranges}
    return [by_id[rid] for rid in active_range_ids if rid in by_id]


def _row_in_range(row: Row, date_range: DateRange) -> bool:
    # Any field may carry the date; the column's declared type is not consulted.
    for value in row.values():
        day = parse_calendar_date(value)
        if day is not None and date_range.start_date <= day <= date_range.end_date:
            return True
    return False


def apply_date_ranges(
    rows: list[Row],
    active_range_ids: Optional[Sequence[str]],
    all_ranges: Iterable[DateRange],
) -> list[Row]:
    if not active_range_ids:
        return rows
    ranges = resolve_date_ranges(active_range_ids, all_ranges)
    if not ranges:
        return rows
    return [row for row in rows if any(_row_in_range(row, r) for r in ranges)]


# ── Slicer stage ─────────────────────────────────────────────────────────────

def active_slicers(
    active_slicer_ids: Sequence[str],
    all_slicers: Iterable[Slicer],
    table_id: Optional[str] = None,
    columns: Optional[Iterable[str]] = None,
) -> list[Slicer]:
    """
    Slicers that will actually filter.

    Empty selections mean "all values" and are dropped. When ``table_id`` is
    given, slicers built against another table are dropped, and when
    ``columns`` is given so are slicers on undeclared columns.
    """
    wanted = set(active_slicer_ids)
    known_columns = set(columns) if columns is not None else None
    target = normalize_table_id(table_id) if table_id is not None else None

    result = []
    for slicer in all_slicers:
        if slicer.id not in wanted or not slicer.selected_values:
            continue
        if target is not None and slicer.effective_table_id != target:
            continue
        if known_columns is not None and slicer.column_name not in known_columns:
            continue
        result.append(slicer)
    return result


def row_matches_slicer(row: Row, slicer: Slicer) -> bool:
    cell = row.get(slicer.column_name)
    if is_missing(cell):
        return False

    if slicer.filter_mode == "date-range" and len(slicer.selected_values) == 2:
        day = parse_calendar_date(cell)
        start = parse_calendar_date(slicer.selected_values[0])
        end = parse_calendar_date(slicer.selected_values[1])
        if day is None or start is None or end is None:
            return False
        return start <= day <= end

    return cell in slicer.selected_values


def apply_slicers(
    rows: list[Row],
    active_slicer_ids: Optional[Sequence[str]],
    all_slicers: Iterable[Slicer],
    table_id: Optional[str] = None,
    columns: Optional[Iterable[str]] = None,
) -> list[Row]:
    if not active_slicer_ids:
        return rows
    slicers = active_slicers(active_slicer_ids, all_slicers, table_id=table_id, columns=columns)
    if not slicers:
        return rows
    return [row for row in rows if all(row_matches_slicer(row, s) for s in slicers)]
