"""
Unit tests for metrics endpoint.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from sync_calendars.main import app
from sync_calendars.metrics import (
    conflicts_rejected,
    feed_requests,
    hold_transitions,
    poll_duration,
    poll_total,
    reconcile_outcomes,
)


@pytest.fixture
def metrics_client() -> TestClient:
    """FastAPI test client."""
    return TestClient(app)


@pytest.mark.unit
def test_metrics_endpoint_returns_prometheus_format(metrics_client: TestClient) -> None:
    """Test that /metrics endpoint returns Prometheus text format."""
    response = metrics_client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]


@pytest.mark.unit
def test_metrics_endpoint_contains_custom_metrics(metrics_client: TestClient) -> None:
    """Test that /metrics endpoint includes the calendar sync metrics."""
    poll_total.labels(integration_id="999", status="success").inc()
    poll_duration.labels(integration_id="999").observe(1.23)
    feed_requests.labels(status_code="200").inc()
    reconcile_outcomes.labels(outcome="linked").inc()
    conflicts_rejected.labels(source="manual").inc()
    hold_transitions.labels(transition="expired").inc()

    content = metrics_client.get("/metrics").text

    assert "calendar_sync_feed_polls_total" in content
    assert "calendar_sync_feed_poll_duration_seconds" in content
    assert "calendar_sync_feed_requests_total" in content
    assert "calendar_sync_reconcile_outcomes_total" in content
    assert "calendar_sync_conflicts_rejected_total" in content
    assert "calendar_sync_hold_transitions_total" in content


@pytest.mark.unit
def test_metrics_endpoint_includes_help_and_type_metadata(metrics_client: TestClient) -> None:
    """Test that metrics include Prometheus HELP and TYPE metadata."""
    content = metrics_client.get("/metrics").text

    assert "# HELP calendar_sync_reconcile_outcomes_total" in content
    assert "# TYPE calendar_sync_reconcile_outcomes_total counter" in content
