"""Tests for the FastAPI routes (upload, analysis, download)."""

import io

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from backend.app import app

from conftest import linear_table, mixed_table


def _csv_bytes(rows) -> bytes:
    buffer = io.StringIO()
    pd.DataFrame(rows).to_csv(buffer, header=False, index=False)
    return buffer.getvalue().encode()


@pytest.fixture
def client(workspace):
    with TestClient(app) as c:
        yield c


def _upload(client, name="weekly.csv", rows=None, **params):
    content = _csv_bytes(rows if rows is not None else mixed_table())
    return client.post("/api/upload/", files={"file": (name, content, "text/csv")}, params=params)


RAGGED_LINE = b"2024,1,2-BCBS,99213,1,2,3,4,5,6,7,8,extra\n"


class TestHealthEndpoint:

    def test_health(self, client) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestUploadRoutes:

    def test_upload_and_list(self, client) -> None:
        response = _upload(client)
        assert response.status_code == 200
        assert response.json()["file"]["filename"] == "weekly.csv"

        listed = client.get("/api/upload/list").json()["files"]
        assert [f["filename"] for f in listed] == ["weekly.csv"]

    def test_rejects_unsupported_type(self, client) -> None:
        response = client.post("/api/upload/", files={"file": ("notes.txt", b"hello", "text/plain")})
        assert response.status_code == 400

    def test_upload_and_run(self, client) -> None:
        data = _upload(client, run_after_upload=True).json()
        assert data["status"] == "ok"
        assert data["analysis"]["totalWeeks"] == 8
        assert "weekly_weekly_insights.csv" in data["analysis"]["outputs"]

    def test_upload_and_run_reports_analysis_errors(self, client) -> None:
        response = _upload(client, rows=linear_table(n_weeks=3), run_after_upload=True)
        assert response.status_code == 400
        assert "At least 5 weeks" in response.json()["detail"]
        # the file stays uploaded
        listed = client.get("/api/upload/list").json()["files"]
        assert [f["filename"] for f in listed] == ["weekly.csv"]

    def test_upload_and_run_rejects_ragged_csv(self, client) -> None:
        content = _csv_bytes(mixed_table()) + RAGGED_LINE
        response = client.post("/api/upload/", files={"file": ("ragged.csv", content, "text/csv")},
                               params={"run_after_upload": True})
        assert response.status_code == 400
        assert "Could not read ragged.csv" in response.json()["detail"]

    def test_delete_upload(self, client) -> None:
        _upload(client)
        assert client.delete("/api/upload/", params={"filename": "weekly.csv"}).status_code == 200
        assert client.delete("/api/upload/", params={"filename": "weekly.csv"}).status_code == 404


class TestAnalysisRoutes:

    def test_run_defaults_to_latest_upload(self, client) -> None:
        _upload(client)
        response = client.post("/api/analysis/run")
        assert response.status_code == 200
        data = response.json()
        assert data["input_file"] == "weekly.csv"
        assert data["outputs"]["summary"] == "weekly_summary.json"
        assert len(data["results"]["finalResults"]) == 8

    def test_run_with_test_size(self, client) -> None:
        _upload(client, name="linear.csv", rows=linear_table())
        data = client.post("/api/analysis/run", params={"filename": "linear.csv", "test_size": 0.3}).json()
        assert len(data["results"]["bestModel"]["predictions"]) == 3

    def test_run_without_uploads(self, client) -> None:
        assert client.post("/api/analysis/run").status_code == 404

    def test_run_unknown_file(self, client) -> None:
        assert client.post("/api/analysis/run", params={"filename": "missing.csv"}).status_code == 404

    def test_run_rejects_bad_test_size(self, client) -> None:
        _upload(client)
        assert client.post("/api/analysis/run", params={"test_size": 1.5}).status_code == 422

    def test_insufficient_data_is_a_400(self, client) -> None:
        _upload(client, name="short.csv", rows=linear_table(n_weeks=3))
        response = client.post("/api/analysis/run", params={"filename": "short.csv"})
        assert response.status_code == 400
        assert "At least 5 weeks" in response.json()["detail"]

    def test_unreadable_csv_is_a_400(self, client) -> None:
        content = _csv_bytes(mixed_table()) + RAGGED_LINE
        client.post("/api/upload/", files={"file": ("ragged.csv", content, "text/csv")})
        response = client.post("/api/analysis/run", params={"filename": "ragged.csv"})
        assert response.status_code == 400
        assert "Could not read ragged.csv" in response.json()["detail"]

    def test_summary_and_weeks(self, client) -> None:
        _upload(client, rows=linear_table())
        client.post("/api/analysis/run")

        summary = client.get("/api/analysis/summary").json()
        assert summary["bestModel"]["modelName"] == "Business Logic"
        assert summary["benchmarks"]["totalWeeks"] == 10

        weeks = client.get("/api/analysis/weeks").json()
        assert weeks["count"] == 10
        average = client.get("/api/analysis/weeks", params={"diagnostic": "Average Performance"}).json()
        assert average["count"] == 10
        over = client.get("/api/analysis/weeks", params={"diagnostic": "Over Performed"}).json()
        assert over["count"] == 0

    def test_weeks_rejects_unknown_diagnostic(self, client) -> None:
        _upload(client)
        client.post("/api/analysis/run")
        assert client.get("/api/analysis/weeks", params={"diagnostic": "Great"}).status_code == 400

    def test_summary_before_any_run(self, client) -> None:
        assert client.get("/api/analysis/summary").status_code == 404


class TestDownloadRoutes:

    def test_list_download_and_delete(self, client) -> None:
        _upload(client, run_after_upload=True)
        names = {f["name"] for f in client.get("/api/download/list").json()["files"]}
        assert {"weekly_weekly_insights.csv", "weekly_weekly_insights.xlsx",
                "weekly_summary.json", "_ARTIFACTS.json"} <= names

        response = client.get("/api/download/file", params={"filename": "weekly_weekly_insights.csv"})
        assert response.status_code == 200
        assert response.text.startswith("Year,Week,Actual Total Payments")

        assert client.delete("/api/download/file", params={"filename": "weekly_summary.json"}).status_code == 200
        assert client.get("/api/download/file", params={"filename": "weekly_summary.json"}).status_code == 404

    def test_path_traversal_is_blocked(self, client) -> None:
        response = client.get("/api/download/file", params={"filename": "../uploads/weekly.csv"})
        assert response.status_code == 400
