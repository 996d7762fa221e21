"""Tests for X-Request-ID middleware.

Tests cover:
- Request ID generation when missing
- Request ID preservation when valid
- Request ID normalization (UUID lowercase)
- Request ID replacement when invalid
- Request ID in error response body
"""

from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from minix.app import add_request_id_middleware
from minix.middleware.request_id import (
    is_valid_request_id,
    normalize_request_id,
    resolve_request_id,
)


@pytest.fixture
def rid_client(app: FastAPI):
    """Client for an app with request-id middleware added last."""
    add_request_id_middleware(app, log_requests=False)
    with TestClient(app) as client:
        yield client


class TestRequestIdMiddleware:
    """Tests for X-Request-ID middleware."""

    def test_request_id_generated_when_missing(self, rid_client: TestClient):
        response = rid_client.get("/health")

        assert response.status_code == 200
        UUID(response.headers["X-Request-ID"])  # Raises if invalid

    def test_request_id_preserved_when_valid(self, rid_client: TestClient):
        response = rid_client.get("/health", headers={"X-Request-ID": "abc_def-123"})

        assert response.headers["X-Request-ID"] == "abc_def-123"

    def test_uuid_request_id_lowercased(self, rid_client: TestClient):
        upper = "A1B2C3D4-E5F6-4789-ABCD-EF0123456789"
        response = rid_client.get("/health", headers={"X-Request-ID": upper})

        assert response.headers["X-Request-ID"] == upper.lower()

    def test_invalid_request_id_replaced(self, rid_client: TestClient):
        response = rid_client.get("/health", headers={"X-Request-ID": "has spaces!"})

        assert response.headers["X-Request-ID"] != "has spaces!"
        UUID(response.headers["X-Request-ID"])

    def test_error_body_carries_request_id(self, rid_client: TestClient):
        response = rid_client.get(
            "/conversations/missing/messages", headers={"X-Request-ID": "trace-42"}
        )

        assert response.status_code == 404
        assert response.headers["X-Request-ID"] == "trace-42"
        assert response.json()["error"]["request_id"] == "trace-42"


class TestRequestIdValidation:
    @pytest.mark.parametrize(
        "value,valid",
        [
            ("abc-123", True),
            ("a.b_c", True),
            ("x" * 128, True),
            ("x" * 129, False),
            ("", False),
            ("semi;colon", False),
        ],
    )
    def test_is_valid_request_id(self, value: str, valid: bool):
        assert is_valid_request_id(value) is valid

    def test_non_uuid_preserved(self):
        assert normalize_request_id("Trace-ABC") == "Trace-ABC"


class TestResolveRequestId:
    def test_valid_incoming_id_is_reused(self):
        assert resolve_request_id("trace-42") == "trace-42"

    @pytest.mark.parametrize("incoming", [None, "", "x" * 129])
    def test_missing_or_invalid_id_is_replaced(self, incoming):
        UUID(resolve_request_id(incoming))
