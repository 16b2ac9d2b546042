"""
Filter fingerprint: a stable key for the *effective* filter state of a chart.

Slicers that cannot change the chart's rows (other table, empty selection,
everything selected) are left out, so their presence never changes the key.
"""

import hashlib
import json
from typing import Any, Iterable, Sequence

from sliceboard.schemas.project import Chart, Slicer
from sliceboard.services.cells import to_label


def _sort_key(value: Any) -> str:
    return to_label(value, default="")


def selects_everything(slicer: Slicer) -> bool:
    if not slicer.available_values:
        return False
    selected = {_sort_key(v) for v in slicer.selected_values}
    return all(_sort_key(v) in selected for v in slicer.available_values)


def effective_slicers(chart: Chart, slicers: Iterable[Slicer]) -> list[Slicer]:
    applied = set(chart.config.applied_slicers)
    table_id = chart.table_id
    return sorted(
        (
            s
            for s in slicers
            if s.id in applied
            and s.effective_table_id == table_id
            and s.selected_values
            and not selects_everything(s)
        ),
        key=lambda s: s.id,
    )


def canonical_filter_state(
    chart: Chart, active_date_range_ids: Sequence[str], slicers: Iterable[Slicer]
) -> dict:
    return {
        "table": chart.table_id,
        "date_ranges": sorted(set(active_date_range_ids or ())),
        "slicers": [
            {
                "id": s.id,
                "column": s.column_name,
                "values": sorted(s.selected_values, key=_sort_key),
            }
            for s in effective_slicers(chart, slicers)
        ],
    }


def fingerprint(
    chart: Chart, active_date_range_ids: Sequence[str], slicers: Iterable[Slicer]
) -> str:
    state = canonical_filter_state(chart, active_date_range_ids, slicers)
    payload = json.dumps(state, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
