"""
Unit tests for middleware components.
"""

from __future__ import annotations

import pytest
import structlog
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from sync_calendars.middleware import RequestIDMiddleware


@pytest.fixture
def app_with_middleware() -> FastAPI:
    """Create FastAPI app with RequestIDMiddleware for testing."""
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/test")
    async def test_endpoint(request: Request) -> dict[str, str]:
        """Test endpoint that returns the request ID and the bound log context."""
        bound = structlog.contextvars.get_contextvars()
        return {
            "request_id": request.state.request_id,
            "log_request_id": bound.get("request_id", ""),
        }

    return app


@pytest.fixture
def middleware_client(app_with_middleware: FastAPI) -> TestClient:
    """FastAPI test client with middleware."""
    return TestClient(app_with_middleware)


@pytest.mark.unit
def test_request_id_middleware_adds_header(middleware_client: TestClient) -> None:
    """Test that RequestIDMiddleware adds X-Request-ID header to response."""
    response = middleware_client.get("/test")

    assert response.status_code == 200
    assert "X-Request-ID" in response.headers
    assert len(response.headers["X-Request-ID"]) == 36  # UUID length


@pytest.mark.unit
def test_request_id_middleware_matches_header_and_state(middleware_client: TestClient) -> None:
    """Test that request ID in header matches request ID in state."""
    response = middleware_client.get("/test")

    assert response.headers["X-Request-ID"] == response.json()["request_id"]


@pytest.mark.unit
def test_request_id_middleware_unique_per_request(middleware_client: TestClient) -> None:
    """Test that each request gets a unique request ID."""
    response1 = middleware_client.get("/test")
    response2 = middleware_client.get("/test")

    assert response1.headers["X-Request-ID"] != response2.headers["X-Request-ID"]


@pytest.mark.unit
def test_request_id_middleware_reuses_incoming_header(middleware_client: TestClient) -> None:
    """Test that a caller-supplied request ID is propagated instead of replaced."""
    response = middleware_client.get("/test", headers={"X-Request-ID": "trace-123"})

    assert response.headers["X-Request-ID"] == "trace-123"
    assert response.json()["request_id"] == "trace-123"


@pytest.mark.unit
def test_request_id_is_bound_to_log_context(middleware_client: TestClient) -> None:
    """Test that log lines written while serving the request carry its ID."""
    response = middleware_client.get("/test", headers={"X-Request-ID": "trace-456"})

    assert response.json()["log_request_id"] == "trace-456"
