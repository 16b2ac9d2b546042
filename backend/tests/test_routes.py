"""
End-to-end tests for the HTTP API with the blob store swapped for an
in-memory one and the AI client mocked.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import SALES_ROWS

from sliceboard.dependencies import get_analysis_generator
from sliceboard.main import app
from sliceboard.services.analysis_cache import AnalysisCacheStore
from sliceboard.services.analysis_service import AnalysisGenerator, AnalysisInProgressError
from sliceboard.services.cache import MemoryBlobStore, get_blob_store
from sliceboard.services.projects import ProjectRepository

AI_TEXT = "ANALYSIS:\nNorth leads.\n\nINSIGHTS:\nDouble down on North."


@pytest.fixture
def insight_fn():
    return MagicMock(return_value=AI_TEXT)


@pytest.fixture
def client(insight_fn):
    store = MemoryBlobStore()
    generator = AnalysisGenerator(
        AnalysisCacheStore(store),
        insight_fn=insight_fn,
        project_loader=ProjectRepository(store).get,
    )
    app.dependency_overrides[get_blob_store] = lambda: store
    app.dependency_overrides[get_analysis_generator] = lambda: generator
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def project_id(client):
    res = client.post("/projects", json={"name": "Demo", "id": "p1"})
    assert res.status_code == 201
    res = client.post("/projects/p1/tables", json={"name": "Sales", "rows": SALES_ROWS})
    assert res.status_code == 201
    return "p1"


@pytest.fixture
def chart_id(client, project_id):
    res = client.post(
        f"/projects/{project_id}/charts",
        json={
            "name": "Sales by region",
            "config": {"template_id": "simple-bar", "x_axis_field": "region", "y_axis_field": "amount"},
        },
    )
    assert res.status_code == 201
    return res.json()["id"]


def date_range(client, project_id, name, start, end):
    res = client.post(
        f"/projects/{project_id}/date-ranges",
        json={"name": name, "start_date": start, "end_date": end},
    )
    assert res.status_code == 201
    return res.json()["id"]


class TestHealth:
    def test_root_and_health(self, client):
        assert client.get("/").json()["message"] == "Sliceboard API is running"
        assert client.get("/health").json() == {"status": "healthy"}


class TestProjects:
    def test_get_project(self, client, project_id):
        body = client.get(f"/projects/{project_id}").json()
        assert body["tables"][0]["id"] == "main"
        assert {c["name"] for c in body["tables"][0]["columns"]} == {"region", "product", "amount", "date"}

    def test_unknown_project_is_404(self, client):
        assert client.get("/projects/ghost").status_code == 404

    def test_duplicate_id_is_409(self, client, project_id):
        assert client.post("/projects", json={"name": "again", "id": project_id}).status_code == 409

    def test_bad_date_range_is_400(self, client, project_id):
        res = client.post(
            f"/projects/{project_id}/date-ranges",
            json={"name": "bad", "start_date": "2024-05-01", "end_date": "2024-04-01"},
        )
        assert res.status_code == 400

    def test_rename_table(self, client, project_id):
        res = client.patch(f"/projects/{project_id}/tables/main", json={"name": "Revenue"})
        assert res.status_code == 200
        assert res.json()["name"] == "Revenue"


class TestChartData:
    def test_unfiltered(self, client, project_id, chart_id):
        body = client.get(f"/projects/{project_id}/charts/{chart_id}/data").json()
        assert body["data"]["labels"] == ["North", "South", "East"]
        assert body["data"]["datasets"][0]["data"] == [130.0, 120.0, 0.0]
        assert body["data"]["is_placeholder"] is False

    def test_date_ranges_are_ored(self, client, project_id, chart_id):
        jan = date_range(client, project_id, "Jan", "2024-01-01", "2024-01-31")
        mar = date_range(client, project_id, "Mar", "2024-03-01", "2024-03-31")
        res = client.get(
            f"/projects/{project_id}/charts/{chart_id}/data",
            params=[("date_range", jan), ("date_range", mar)],
        )
        assert res.json()["data"]["datasets"][0]["data"] == [100.0, 120.0]

    def test_no_rows_is_null(self, client, project_id, chart_id):
        empty = date_range(client, project_id, "1999", "1999-01-01", "1999-12-31")
        res = client.get(f"/projects/{project_id}/charts/{chart_id}/data", params={"date_range": empty})
        assert res.status_code == 200
        assert res.json()["data"] is None

    def test_incomplete_chart_is_placeholder(self, client, project_id):
        res = client.post(
            f"/projects/{project_id}/charts",
            json={"name": "Pie", "config": {"template_id": "pie-chart"}},
        )
        chart_id = res.json()["id"]
        body = client.get(f"/projects/{project_id}/charts/{chart_id}/data").json()
        assert body["data"]["is_placeholder"] is True

    def test_unknown_template_is_422(self, client, project_id):
        res = client.post(
            f"/projects/{project_id}/charts",
            json={"name": "X", "config": {"template_id": "radar"}},
        )
        assert res.status_code == 422


class TestSlicerRoutes:
    def test_suggest_and_create(self, client, project_id, chart_id):
        suggestion = client.get(
            f"/projects/{project_id}/slicers/suggest", params={"column_name": "region"}
        ).json()
        assert suggestion["filter_mode"] == "multi-select"
        assert suggestion["values"] == ["North", "South", "East"]

        slicer = client.post(
            f"/projects/{project_id}/slicers", json={"name": "Region", "column_name": "region"}
        ).json()
        assert slicer["available_values"] == ["North", "South", "East"]

        res = client.put(
            f"/projects/{project_id}/charts/{chart_id}/slicers/{slicer['id']}", json={"enabled": True}
        )
        assert [s["id"] for s in res.json()] == [slicer["id"]]

        res = client.put(
            f"/projects/{project_id}/slicers/{slicer['id']}/selection", json={"values": ["North"]}
        )
        assert res.json()["selected_values"] == ["North"]

        data = client.get(f"/projects/{project_id}/charts/{chart_id}/data").json()["data"]
        assert data["labels"] == ["North"]

    def test_column_without_values_cannot_back_a_slicer(self, client, project_id):
        res = client.post(
            f"/projects/{project_id}/slicers",
            json={"name": "Qty", "column_name": "qty", "available_values": []},
        )
        assert res.status_code == 400

    def test_invalid_selection_is_400(self, client, project_id):
        slicer = client.post(
            f"/projects/{project_id}/slicers", json={"name": "Region", "column_name": "region"}
        ).json()
        res = client.put(
            f"/projects/{project_id}/slicers/{slicer['id']}/selection", json={"values": ["Atlantis"]}
        )
        assert res.status_code == 400

    def test_unknown_slicer_is_404(self, client, project_id, chart_id):
        res = client.post(f"/projects/{project_id}/charts/{chart_id}/slicers/ghost/toggle")
        assert res.status_code == 404


class TestAnalysisRoutes:
    def test_missing_then_fresh_then_stale(self, client, project_id, chart_id, insight_fn):
        url = f"/projects/{project_id}/charts/{chart_id}/analysis"
        assert client.get(url).json()["status"] == "missing"

        res = client.post(url, json={"date_range_ids": []})
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "fresh"
        assert body["sections"] == {"analysis": "North leads.", "insights": "Double down on North."}
        insight_fn.assert_called_once()

        assert client.get(url).json()["status"] == "fresh"

        jan = date_range(client, project_id, "Jan", "2024-01-01", "2024-01-31")
        stale = client.get(url, params={"date_range": jan}).json()
        assert stale["status"] == "stale"
        assert stale["entry"] is None

    def test_failed_generation_is_reported_as_failed(self, client, project_id, chart_id, insight_fn):
        insight_fn.side_effect = RuntimeError("quota")
        url = f"/projects/{project_id}/charts/{chart_id}/analysis"

        body = client.post(url, json={}).json()
        assert body["status"] == "failed"
        assert body["entry"]["error"] == "quota"
        assert body["entry"]["content"].startswith("ANALYSIS:")
        assert client.get(url).json()["status"] == "failed"

    def test_in_flight_is_409(self, client, project_id, chart_id):
        generator = app.dependency_overrides[get_analysis_generator]()
        generator.generate = MagicMock(side_effect=AnalysisInProgressError(chart_id, "fp"))
        res = client.post(f"/projects/{project_id}/charts/{chart_id}/analysis", json={})
        assert res.status_code == 409

    def test_deleting_chart_drops_its_analyses(self, client, project_id, chart_id):
        url = f"/projects/{project_id}/charts/{chart_id}/analysis"
        client.post(url, json={})
        assert client.delete(f"/projects/{project_id}/charts/{chart_id}").status_code == 204

        generator = app.dependency_overrides[get_analysis_generator]()
        assert generator.store.load(project_id).chart_ids() == []

    def test_deleting_table_cascades(self, client, project_id, chart_id):
        client.post(f"/projects/{project_id}/charts/{chart_id}/analysis", json={})
        res = client.delete(f"/projects/{project_id}/tables/main")
        assert res.json()["removed_chart_ids"] == [chart_id]
        assert client.get(f"/projects/{project_id}/charts/{chart_id}").status_code == 404

        generator = app.dependency_overrides[get_analysis_generator]()
        assert generator.store.load(project_id).chart_ids() == []
