"""
Integration tests for the HTTP API.

Requests go through the full FastAPI stack (validation, error mapping,
middleware) against the per-test SQLite database.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable
from unittest.mock import patch

import pytest
from conftest import Hotel
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from sync_calendars.db.readers.inbox import list_unresolved
from sync_calendars.db.readers.integrations import get_integration
from sync_calendars.db.writers.inbox import record_unassigned
from sync_calendars.normalizers.events import StayWindow

START, END = "2030-04-10", "2030-04-13"


def _stay(hotel: Hotel, **extra: Any) -> dict[str, Any]:
    return {"property_id": hotel.property_id, "start_date": START, "end_date": END, **extra}


@pytest.mark.integration
def test_create_reservation_returns_201(client: TestClient, hotel: Hotel) -> None:
    """Test that a valid reservation is created with its merge outcome."""
    response = client.post(
        "/reservations",
        json=_stay(hotel, room_id=hotel.room_101, contact={"email": "ion@example.com"}),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["reservation_id"] > 0
    assert body["merge"]["merged"] is False


@pytest.mark.integration
def test_overlapping_reservation_returns_409_with_context(client: TestClient, hotel: Hotel) -> None:
    """Test that a conflict answers 409 and names the reservation in the way."""
    first = client.post("/reservations", json=_stay(hotel, room_id=hotel.room_101)).json()

    response = client.post("/reservations", json=_stay(hotel, room_id=hotel.room_101))

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "ConflictError"
    assert detail["conflicting_reservation_id"] == first["reservation_id"]
    assert detail["room_id"] == hotel.room_101


@pytest.mark.integration
@pytest.mark.parametrize(
    "payload_overrides, expected_status",
    [
        ({"property_id": 9999}, 404),
        ({"room_id": 9999}, 422),
        ({"start_date": END, "end_date": START}, 422),
        ({"start_date": "not-a-date"}, 422),
    ],
)
def test_create_reservation_error_statuses(
    client: TestClient, hotel: Hotel, payload_overrides: dict, expected_status: int
) -> None:
    """Test that domain and request validation errors map to the documented statuses."""
    payload = {**_stay(hotel, room_id=hotel.room_101), **payload_overrides}

    response = client.post("/reservations", json=payload)

    assert response.status_code == expected_status


@pytest.mark.integration
def test_update_and_cancel_reservation(client: TestClient, hotel: Hotel) -> None:
    """Test the move, no-op update and idempotent cancel endpoints."""
    reservation_id = client.post(
        "/reservations", json=_stay(hotel, room_id=hotel.room_101)
    ).json()["reservation_id"]

    moved = client.patch(f"/reservations/{reservation_id}", json={"room_id": hotel.room_102})
    empty = client.patch(f"/reservations/{reservation_id}", json={})
    half = client.patch(f"/reservations/{reservation_id}", json={"start_date": START})
    first_cancel = client.post(f"/reservations/{reservation_id}/cancel")
    second_cancel = client.post(f"/reservations/{reservation_id}/cancel")

    assert moved.status_code == 200
    assert empty.json() == {"message": "No fields to update"}
    assert half.status_code == 422
    assert first_cancel.json()["message"].endswith("cancelled")
    assert "already cancelled" in second_cancel.json()["message"]
    assert client.patch("/reservations/9999", json={"room_id": hotel.room_101}).status_code == 404


@pytest.mark.integration
def test_placeholder_lifecycle_and_merge(client: TestClient, hotel: Hotel) -> None:
    """Test that a placeholder is created, refused a second cancel, and merges on request."""
    placeholder = client.post(
        "/placeholders",
        json=_stay(
            hotel,
            room_category_id=hotel.double_id,
            guest_first_name="Ana",
            contact={"phone": "+40 700 000 000"},
            hold_hours=48,
        ),
    )
    assert placeholder.status_code == 201
    placeholder_id = placeholder.json()["reservation_id"]
    assert placeholder.json()["hold_status"] == "pending"

    # Same stay on a room absorbs the placeholder
    created = client.post("/reservations", json=_stay(hotel, room_id=hotel.room_101)).json()
    assert created["merge"]["merged"] is True
    assert created["merge"]["placeholder_id"] == placeholder_id

    cancel = client.post(f"/placeholders/{placeholder_id}/cancel")
    assert cancel.status_code == 409

    refused = client.post(
        f"/reservations/{created['reservation_id']}/merge", json={"placeholder_id": placeholder_id}
    )
    assert refused.status_code == 409
    assert refused.json()["detail"]["reason"] == "not_a_placeholder"


@pytest.mark.integration
def test_reconcile_endpoint_reports_no_candidates(client: TestClient, hotel: Hotel) -> None:
    """Test that reconciling a reservation without placeholders reports why nothing merged."""
    reservation_id = client.post(
        "/reservations", json=_stay(hotel, room_id=hotel.room_101)
    ).json()["reservation_id"]

    response = client.post(f"/reservations/{reservation_id}/reconcile")

    assert response.status_code == 200
    assert response.json()["merged"] is False
    assert response.json()["reason"] == "no_candidates"


@pytest.mark.integration
def test_inbox_list_and_assign(client: TestClient, db_engine: Engine, hotel: Hotel) -> None:
    """Test that an open entry is listed and can be placed on a room."""
    with db_engine.begin() as conn:
        entry_id, _ = record_unassigned(
            conn,
            property_id=hotel.property_id,
            window=StayWindow(date(2030, 4, 10), date(2030, 4, 13)),
            reason="no_free_room",
            now=datetime(2030, 1, 1, tzinfo=timezone.utc),
            uid="x@airbnb",
            summary="Reserved",
            room_category_id=hotel.double_id,
        )

    listed = client.get(f"/properties/{hotel.property_id}/inbox")
    both = client.post(
        f"/inbox/{entry_id}/assign", json={"room_id": hotel.room_101, "reservation_id": 1}
    )
    assigned = client.post(f"/inbox/{entry_id}/assign", json={"room_id": hotel.room_101})

    assert listed.status_code == 200
    assert [entry["uid"] for entry in listed.json()] == ["x@airbnb"]
    assert both.status_code == 422
    assert assigned.status_code == 200
    assert assigned.json()["entry_id"] == entry_id
    with db_engine.connect() as conn:
        assert list_unresolved(conn, hotel.property_id) == []
    assert client.get("/properties/9999/inbox").status_code == 404


@pytest.mark.integration
def test_integration_endpoints(client: TestClient, db_engine: Engine, hotel: Hotel) -> None:
    """Test that a feed is registered with a scheduled first sync, listed, and soft-deleted."""
    with patch("sync_calendars.routes.integrations.sync_integration") as mock_sync:
        created = client.post(
            f"/properties/{hotel.property_id}/integrations",
            json={
                "provider": "airbnb",
                "url": "https://www.airbnb.com/calendar/ical/1.ics",
                "room_id": hotel.room_101,
            },
        )
        integration_id = created.json()["integration_id"]
        triggered = client.post(f"/integrations/{integration_id}/sync?dry_run=true")

    assert created.status_code == 201
    assert triggered.status_code == 202
    assert mock_sync.call_count == 2
    assert mock_sync.call_args.kwargs == {"integration_id": integration_id, "dry_run": True}

    listed = client.get(f"/properties/{hotel.property_id}/integrations").json()
    assert [row["provider"] for row in listed] == ["airbnb"]

    assert client.delete(f"/integrations/{integration_id}").status_code == 200
    with db_engine.connect() as conn:
        assert get_integration(conn, integration_id).is_active is False
    assert client.post(f"/integrations/{integration_id}/sync").status_code == 422
    assert client.delete("/integrations/9999").status_code == 404


@pytest.mark.integration
@pytest.mark.parametrize(
    "payload",
    [
        {"provider": "booking", "url": "https://x.example/a.ics"},
        {"provider": "booking", "url": "not a url", "room_id": 1},
    ],
)
def test_integration_payload_validation(client: TestClient, hotel: Hotel, payload: dict) -> None:
    """Test that a feed needs a single scope and a real URL."""
    response = client.post(f"/properties/{hotel.property_id}/integrations", json=payload)

    assert response.status_code == 422


@pytest.mark.integration
def test_feed_endpoints_serve_icalendar(
    client: TestClient, hotel: Hotel, make_reservation: Callable[..., int]
) -> None:
    """Test that room and category feeds are served as text/calendar."""
    make_reservation(date(2030, 4, 10), date(2030, 4, 13), room_id=hotel.room_101)

    room = client.get(f"/feeds/rooms/{hotel.room_101}.ics")
    category = client.get(f"/feeds/categories/{hotel.double_id}.ics")

    assert room.status_code == 200
    assert room.headers["content-type"].startswith("text/calendar")
    assert b"BEGIN:VEVENT" in room.content
    assert category.status_code == 200
    assert b"BEGIN:VEVENT" not in category.content
    assert client.get("/feeds/rooms/9999.ics").status_code == 404


@pytest.mark.integration
def test_events_are_paged_in_commit_order(client: TestClient, hotel: Hotel) -> None:
    """Test that the outbox endpoint pages by id."""
    client.post("/reservations", json=_stay(hotel, room_id=hotel.room_101))
    client.post("/reservations", json=_stay(hotel, room_id=hotel.room_102))

    first_page = client.get("/events?limit=1").json()
    rest = client.get(f"/events?after_id={first_page[0]['id']}").json()

    assert len(first_page) == 1
    assert first_page[0]["event_type"] == "reservation.created"
    assert all(event["id"] > first_page[0]["id"] for event in rest)
    assert client.get("/events?limit=0").status_code == 422


@pytest.mark.integration
def test_job_endpoints(client: TestClient, hotel: Hotel) -> None:
    """Test that the sweep and retry jobs report counts and feed sync is scheduled."""
    with patch("sync_calendars.routes.jobs.sync_all_integrations") as mock_sync_all:
        feed_sync = client.post("/jobs/feed-sync?dry_run=true")
    sweep = client.post(f"/jobs/hold-sweep?property_id={hotel.property_id}")
    retry = client.post("/jobs/inbox-retry")

    assert feed_sync.status_code == 202
    mock_sync_all.assert_called_once()
    assert sweep.json() == {"promoted": 0, "expired": 0, "promoted_ids": [], "expired_ids": []}
    assert retry.json()["resolved"] == 0


@pytest.mark.integration
def test_health_and_readiness(client: TestClient) -> None:
    """Test the liveness probe and both readiness outcomes."""
    assert client.get("/health").json() == {"status": "ok"}

    with patch("sync_calendars.routes.health.check_engine_health", return_value=True):
        ready = client.get("/ready")
    with patch("sync_calendars.routes.health.check_engine_health", return_value=False):
        not_ready = client.get("/ready")

    assert ready.status_code == 200
    assert ready.json()["checks"] == {"database": "ok"}
    assert not_ready.status_code == 503
