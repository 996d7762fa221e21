"""Tests for the health endpoint.

The health endpoint is a liveness check that does not touch the database.
"""

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for GET /health"""

    def test_health_returns_correct_envelope(self, client: TestClient):
        """Health endpoint returns 200 with the success envelope."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"data": {"status": "ok"}}

    def test_health_content_type_is_json(self, client: TestClient):
        response = client.get("/health")
        assert response.headers["content-type"] == "application/json"

    def test_unknown_route_uses_error_envelope(self, client: TestClient):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_NOT_FOUND"
