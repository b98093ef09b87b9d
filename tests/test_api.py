"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from porter.api.main import app
from porter.api.routes import runs


@pytest.fixture
def client(config):
    app.dependency_overrides[runs.get_config] = lambda: config
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSupportEndpoints:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_list_sources(self, client):
        response = client.get("/api/support/sources")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert {"id": "webwiz", "name": "Web Wiz Forums"} in data["packages"]

    def test_features(self, client):
        """Feature rows come back with display names."""
        response = client.get("/api/support/target/vanilla")

        assert response.status_code == 200
        assert {"feature": "Private Messages", "support": "yes"} in response.json()["features"]

    def test_unknown(self, client):
        assert client.get("/api/support/target/phpbb").status_code == 404
        assert client.get("/api/support/plugins").status_code == 404


class TestRunEndpoint:

    def test_run(self, client, source_connection, sample_packages, tmp_path):
        """A run executes to completion and returns its state."""
        response = client.post("/api/runs", json={
            "source": "source",
            "package": "sample",
            "output": "sample_target",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "done"
        assert data["rows"] == {"PORT_User": 3, "dst_members": 3}
        assert data["comments"][-1].startswith("ELAPSED: ")

    def test_failed_run(self, client, source_connection, sample_packages):
        """Failed runs still return 200 with the failure recorded."""
        response = client.post("/api/runs", json={
            "source": "source",
            "package": "signature",
            "output": "sample_target",
        })

        data = response.json()
        assert data["status"] == "failed"
        assert data["errors"][0]["type"] == "MissingSourceStructure"

    def test_unknown_package(self, client):
        response = client.post("/api/runs", json={"source": "source", "package": "nope"})
        assert response.status_code == 404

    def test_unknown_alias(self, client, sample_packages):
        response = client.post("/api/runs", json={"source": "missing", "package": "sample"})
        assert response.status_code == 400
