"""
Unit tests for domain error to HTTP status mapping.
"""

from __future__ import annotations

import pytest

from sync_calendars.errors import (
    CalendarSyncError,
    ConfigurationError,
    ConflictError,
    FeedFetchError,
    InvalidTransitionError,
    MergeRefusedError,
    NotFoundError,
    ValidationError,
)
from sync_calendars.routes._helpers import http_error, internal_error


@pytest.mark.unit
@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (NotFoundError("Reservation not found", reservation_id=1), 404),
        (ConflictError("Room taken", room_id=3, conflicting_reservation_id=9), 409),
        (InvalidTransitionError("Hold cannot move", reservation_id=1), 409),
        (MergeRefusedError("Stay dates differ", "dates_differ", reservation_id=1), 409),
        (ValidationError("Bad window"), 422),
        (ConfigurationError("No timezone", property_id=1), 422),
    ],
)
def test_http_error_maps_known_errors(error: CalendarSyncError, status_code: int) -> None:
    """Test that each domain error becomes its documented status code."""
    exc = http_error(error)

    assert exc.status_code == status_code
    assert exc.detail["error"] == type(error).__name__
    assert exc.detail["message"] == error.message


@pytest.mark.unit
def test_http_error_carries_context() -> None:
    """Test that the conflict's context reaches the response body."""
    exc = http_error(ConflictError("Room taken", room_id=3, conflicting_reservation_id=9))

    assert exc.detail["room_id"] == 3
    assert exc.detail["conflicting_reservation_id"] == 9


@pytest.mark.unit
def test_merge_refusal_exposes_reason() -> None:
    """Test that a refused merge reports a machine-readable reason."""
    exc = http_error(MergeRefusedError("Target locked", "target_locked", reservation_id=4))

    assert exc.detail["reason"] == "target_locked"


@pytest.mark.unit
def test_http_error_hides_unmapped_errors() -> None:
    """Test that errors outside the table become a bare 500."""
    exc = http_error(FeedFetchError("Feed could not be fetched", url="https://x"))

    assert exc.status_code == 500
    assert exc.detail == "Internal server error"


@pytest.mark.unit
def test_internal_error_returns_500() -> None:
    """Test that unexpected exceptions are not leaked to the client."""
    exc = internal_error("something_failed", RuntimeError("db exploded"), reservation_id=1)

    assert exc.status_code == 500
    assert "exploded" not in str(exc.detail)
