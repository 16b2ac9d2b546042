"""
Tests for the slicer registry: creation, selection validation, universal
candidate detection and keeping both sides of the chart association in sync.
"""

from __future__ import annotations

import pytest

from conftest import make_slicer, make_table

from sliceboard.services.projects import NotFoundError
from sliceboard.services.slicers import (
    add_slicer,
    attach_slicer,
    charts_for_slicer,
    create_slicer,
    delete_slicer,
    detach_slicer,
    detect_universal_slicers,
    set_slicer_enabled,
    slicers_for_chart,
    toggle_slicer,
    update_selection,
)


def assert_in_sync(project):
    """applied_slicers and enabled ChartSlicer records describe the same pairs."""
    applied = {(c.id, sid) for c in project.charts for sid in c.config.applied_slicers}
    enabled = {(cs.chart_id, cs.slicer_id) for cs in project.chart_slicers if cs.enabled}
    assert applied == enabled


@pytest.fixture
def with_slicer(project):
    slicer = make_slicer("s1", "region", available=["North", "South", "East"])
    return add_slicer(project, slicer)


class TestCreateSlicer:
    def test_new_slicer_selects_nothing(self):
        slicer = create_slicer("Region", "region", available_values=["North", "South"])
        assert slicer.id.startswith("slicer-")
        assert slicer.selected_values == []
        assert slicer.filter_mode == "multi-select"
        assert slicer.effective_table_id == "main"


class TestSelection:
    def test_update_selection(self, with_slicer):
        project = update_selection(with_slicer, "s1", ["North", "North", "South"])
        assert project.get_slicer("s1").selected_values == ["North", "South"]
        assert with_slicer.get_slicer("s1").selected_values == []

    def test_unknown_value_is_rejected(self, with_slicer):
        with pytest.raises(ValueError):
            update_selection(with_slicer, "s1", ["Atlantis"])

    def test_unknown_slicer(self, project):
        with pytest.raises(NotFoundError):
            update_selection(project, "nope", [])


class TestAssociations:
    def test_attach_updates_both_sides(self, with_slicer, bar_chart):
        project = attach_slicer(with_slicer, bar_chart.id, "s1")
        assert project.get_chart(bar_chart.id).config.applied_slicers == ["s1"]
        assert charts_for_slicer(project, "s1") == [bar_chart.id]
        assert [s.id for s in slicers_for_chart(project, bar_chart.id)] == ["s1"]
        assert_in_sync(project)

    def test_attach_twice_is_idempotent(self, with_slicer, bar_chart):
        project = attach_slicer(attach_slicer(with_slicer, bar_chart.id, "s1"), bar_chart.id, "s1")
        assert project.get_chart(bar_chart.id).config.applied_slicers == ["s1"]
        assert len(project.chart_slicers) == 1
        assert_in_sync(project)

    def test_disable_keeps_record_but_stops_filtering(self, with_slicer, bar_chart):
        project = set_slicer_enabled(attach_slicer(with_slicer, bar_chart.id, "s1"), bar_chart.id, "s1", False)
        assert project.get_chart(bar_chart.id).config.applied_slicers == []
        assert len(project.chart_slicers) == 1 and not project.chart_slicers[0].enabled
        assert charts_for_slicer(project, "s1") == []
        assert_in_sync(project)

    def test_toggle(self, with_slicer, bar_chart):
        on = toggle_slicer(with_slicer, bar_chart.id, "s1")
        off = toggle_slicer(on, bar_chart.id, "s1")
        assert on.get_chart(bar_chart.id).config.applied_slicers == ["s1"]
        assert off.get_chart(bar_chart.id).config.applied_slicers == []
        assert_in_sync(on)
        assert_in_sync(off)

    def test_detach(self, with_slicer, bar_chart):
        project = detach_slicer(attach_slicer(with_slicer, bar_chart.id, "s1"), bar_chart.id, "s1")
        assert project.chart_slicers == []
        assert project.get_chart(bar_chart.id).config.applied_slicers == []

    def test_unknown_chart_or_slicer(self, with_slicer, bar_chart):
        with pytest.raises(NotFoundError):
            attach_slicer(with_slicer, "ghost", "s1")
        with pytest.raises(NotFoundError):
            attach_slicer(with_slicer, bar_chart.id, "ghost")

    def test_delete_slicer_cascades(self, with_slicer, bar_chart):
        project = delete_slicer(attach_slicer(with_slicer, bar_chart.id, "s1"), "s1")
        assert project.slicers == []
        assert project.chart_slicers == []
        assert project.get_chart(bar_chart.id).config.applied_slicers == []


class TestUniversalDetection:
    def test_shared_column_with_overlapping_values(self):
        a = make_table("a", [{"region": "North", "amount": 1}], types={"amount": "number"})
        b = make_table("b", [{"region": " north ", "target": 3}], types={"target": "number"})
        assert detect_universal_slicers([a, b]) == ["region"]

    def test_no_overlap(self):
        a = make_table("a", [{"region": "North"}])
        b = make_table("b", [{"region": "South"}])
        assert detect_universal_slicers([a, b]) == []

    def test_incompatible_types(self):
        a = make_table("a", [{"when": "2024-01-01"}], types={"when": "date"})
        b = make_table("b", [{"when": "2024-01-01"}], types={"when": "string"})
        assert detect_universal_slicers([a, b]) == []

    def test_string_number_mix_is_allowed(self):
        a = make_table("a", [{"code": 7}], types={"code": "number"})
        b = make_table("b", [{"code": "7"}], types={"code": "string"})
        assert detect_universal_slicers([a, b]) == ["code"]

    def test_single_table_lists_filterable_columns(self):
        rows = [
            {"region": "North", "amount": 10, "order_date": "2024-01-05"},
            {"region": "South", "amount": 12.5, "order_date": "2024-02-05"},
        ]
        table = make_table("main", rows, types={"amount": "number", "order_date": "date"})
        assert detect_universal_slicers([table]) == ["region", "order_date"]
