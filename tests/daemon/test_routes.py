"""Tests for daemon/routes.py module.

Covers:
- create_routes() function
- /health and /status endpoints
- /search query validation, results and embedding failures
- /directories add, list and remove
- /stop
"""

from __future__ import annotations

from pathlib import Path

import pytest
from starlette.testclient import TestClient

from similo.core.errors import EmbeddingError
from similo.daemon.app import create_app
from similo.daemon.lifecycle import ServerController
from similo.daemon.routes import create_routes
from tests.support import FakeEmbeddingProvider, axis, write_file


@pytest.fixture
def client(controller: ServerController) -> TestClient:
    return TestClient(create_app(controller, with_mcp=False))


class TestCreateRoutes:
    def test_route_table(self, controller: ServerController) -> None:
        routes = create_routes(controller)
        assert {(r.path, m) for r in routes for m in (r.methods or ()) if m != "HEAD"} == {
            ("/health", "GET"),
            ("/status", "GET"),
            ("/search", "GET"),
            ("/directories", "GET"),
            ("/directories", "POST"),
            ("/directories", "DELETE"),
            ("/stop", "POST"),
        }


class TestHealthAndStatus:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_status_reports_counts_and_model(self, client: TestClient) -> None:
        data = client.get("/status").json()

        assert data["status"] == "running"
        assert data["model"] == "fake-model"
        assert data["indexed_files"] == 0
        assert data["queued_files"] == 0
        assert data["directories"] == 0
        assert data["worker"]["state"] == "stopped"


class TestSearch:
    def test_missing_query_is_400(self, client: TestClient) -> None:
        response = client.get("/search")

        assert response.status_code == 400
        assert "q" in response.json()["error"]

    def test_non_integer_limit_is_400(self, client: TestClient) -> None:
        assert client.get("/search", params={"q": "x", "limit": "many"}).status_code == 400

    def test_returns_ranked_results(
        self,
        client: TestClient,
        controller: ServerController,
        fake_provider: FakeEmbeddingProvider,
        docs_root: Path,
    ) -> None:
        fake_provider.vectors["close"] = axis(0, 1.0)
        fake_provider.vectors["far"] = axis(0, 4.0)
        fake_provider.vectors["what"] = axis(0, 1.0)
        controller.coordinator.index_file(str(write_file(docs_root / "close.md", "close")))
        controller.coordinator.index_file(str(write_file(docs_root / "far.md", "far")))

        response = client.get("/search", params={"q": "what", "limit": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["query"] == "what"
        assert [r["path"] for r in body["results"]] == [str(docs_root / "close.md")]
        assert body["results"][0]["score"] == pytest.approx(1.0)
        assert "took_ms" in body

    def test_embedding_outage_is_503(
        self, client: TestClient, fake_provider: FakeEmbeddingProvider
    ) -> None:
        fake_provider.errors["down"] = EmbeddingError.connection_failed("http://x", "refused")

        response = client.get("/search", params={"q": "down"})

        assert response.status_code == 503
        body = response.json()
        assert body["code"] == 4001
        assert body["retryable"] is True
        assert "Cannot connect" in body["error"]


class TestDirectories:
    def test_add_returns_201_and_queues(self, client: TestClient, docs_root: Path) -> None:
        write_file(docs_root / "a.md", "a")

        response = client.post("/directories", json={"path": str(docs_root)})

        assert response.status_code == 201
        body = response.json()
        assert body["queued_count"] == 1
        assert body["directory"]["path"] == str(docs_root)

    def test_add_existing_returns_200(self, client: TestClient, docs_root: Path) -> None:
        client.post("/directories", json={"path": str(docs_root)})

        response = client.post("/directories", json={"path": str(docs_root)})

        assert response.status_code == 200
        assert response.json()["created"] is False

    def test_add_missing_path_field_is_400(self, client: TestClient) -> None:
        assert client.post("/directories", json={}).status_code == 400

    def test_add_invalid_json_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/directories", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400

    def test_add_nonexistent_directory_is_400(self, client: TestClient, tmp_path: Path) -> None:
        response = client.post("/directories", json={"path": str(tmp_path / "nope")})

        assert response.status_code == 400
        assert response.json()["code"] == 3001

    def test_list(self, client: TestClient, docs_root: Path) -> None:
        client.post("/directories", json={"path": str(docs_root)})

        body = client.get("/directories").json()

        assert [d["path"] for d in body["directories"]] == [str(docs_root)]

    def test_remove(self, client: TestClient, docs_root: Path) -> None:
        client.post("/directories", json={"path": str(docs_root)})

        response = client.delete("/directories", params={"path": str(docs_root)})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert client.get("/directories").json()["directories"] == []

    def test_remove_unregistered_is_404(self, client: TestClient, docs_root: Path) -> None:
        response = client.delete("/directories", params={"path": str(docs_root)})

        assert response.status_code == 404
        assert response.json()["code"] == 3002

    def test_remove_without_path_is_400(self, client: TestClient) -> None:
        assert client.delete("/directories").status_code == 400


class TestStop:
    def test_stop_requests_shutdown(self, client: TestClient, controller: ServerController) -> None:
        response = client.post("/stop")

        assert response.status_code == 200
        assert controller.stop_requested.is_set()
