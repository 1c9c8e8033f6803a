"""
Integration tests for guest placeholders and the soft-hold sweep.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Callable

import pytest
from conftest import NOW, Hotel
from sqlalchemy import select
from sqlalchemy.engine import Engine

from sync_calendars.db.readers.contacts import get_contact
from sync_calendars.db.writers.contacts import fill_empty_contact
from sync_calendars.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from sync_calendars.models.events import DomainEvent
from sync_calendars.normalizers.events import StayWindow
from sync_calendars.services.holds import sweep_holds
from sync_calendars.services.placeholders import cancel_placeholder, create_placeholder
from sync_calendars.services.reservations import create_reservation

APRIL_10_13 = StayWindow(date(2025, 4, 10), date(2025, 4, 13))


def _event_types(engine: Engine) -> list[str]:
    with engine.connect() as conn:
        return list(conn.execute(select(DomainEvent.event_type).order_by(DomainEvent.id)).scalars())


@pytest.mark.integration
def test_create_placeholder_holds_the_room(
    db_engine: Engine, hotel: Hotel, fetch_reservation: Callable[[int], Any]
) -> None:
    """Test that a guest submission becomes a pending hold that blocks the room."""
    result = create_placeholder(
        db_engine,
        hotel.property_id,
        APRIL_10_13,
        NOW,
        room_id=hotel.room_101,
        guest_first_name="Ana",
        guest_last_name="Pop",
        contact={"phone": "+40 700 000 000"},
        hold_hours=24,
    )

    row = fetch_reservation(result.reservation_id)
    assert result.hold_status == "pending"
    assert result.hold_expires_at == NOW + timedelta(hours=24)
    assert result.merged_into is None
    assert row.provenance == "guest-form"
    assert row.is_soft_hold is True
    assert row.form_submitted_at is not None
    assert "hold.created" in _event_types(db_engine)

    with pytest.raises(ConflictError):
        create_reservation(db_engine, hotel.property_id, APRIL_10_13, NOW, room_id=hotel.room_101)


@pytest.mark.integration
def test_placeholder_for_existing_booking_merges_immediately(
    db_engine: Engine,
    hotel: Hotel,
    make_reservation: Callable[..., int],
    fetch_reservation: Callable[[int], Any],
) -> None:
    """Test that a submission for an already booked stay enriches the booking instead of colliding."""
    target_id = make_reservation(
        date(2025, 4, 10), date(2025, 4, 13), room_id=hotel.room_101, guest_first_name="Ion"
    )
    with db_engine.begin() as conn:
        fill_empty_contact(conn, target_id, {"email": "ion@example.com"})

    result = create_placeholder(
        db_engine,
        hotel.property_id,
        APRIL_10_13,
        NOW,
        room_id=hotel.room_101,
        guest_first_name="Ana",
        guest_last_name="Pop",
        contact={"email": "ana@example.com", "phone": "123"},
    )

    assert result.merged_into == target_id
    assert result.hold_status == "cancelled"
    target = fetch_reservation(target_id)
    assert target.guest_first_name == "Ion"
    assert target.guest_last_name == "Pop"
    assert target.form_submitted_at is not None
    with db_engine.connect() as conn:
        contact = get_contact(conn, target_id)
    assert contact["email"] == "ion@example.com"
    assert contact["phone"] == "123"
    assert fetch_reservation(result.reservation_id).hold_status == "cancelled"


@pytest.mark.integration
def test_placeholder_overlapping_other_stay_is_refused(
    db_engine: Engine, hotel: Hotel, make_reservation: Callable[..., int]
) -> None:
    """Test that a hold on an occupied room is rejected like any reservation."""
    make_reservation(date(2025, 4, 9), date(2025, 4, 12), room_id=hotel.room_101)

    with pytest.raises(ConflictError):
        create_placeholder(db_engine, hotel.property_id, APRIL_10_13, NOW, room_id=hotel.room_101)


@pytest.mark.integration
def test_roomless_placeholder_refused_when_category_is_full(db_engine: Engine, hotel: Hotel) -> None:
    """Test that a second room-less hold cannot claim a one-room category for an overlapping stay."""
    first = create_placeholder(
        db_engine, hotel.property_id, APRIL_10_13, NOW, room_category_id=hotel.suite_id
    )

    with pytest.raises(ConflictError) as exc_info:
        create_placeholder(
            db_engine,
            hotel.property_id,
            StayWindow(date(2025, 4, 12), date(2025, 4, 15)),
            NOW,
            room_category_id=hotel.suite_id,
        )

    assert exc_info.value.room_id is None
    assert exc_info.value.conflicting_reservation_id == first.reservation_id
    assert exc_info.value.context["room_category_id"] == hotel.suite_id


@pytest.mark.integration
def test_cancel_placeholder(
    db_engine: Engine, hotel: Hotel, fetch_reservation: Callable[[int], Any]
) -> None:
    """Test that a pending hold can be cancelled once."""
    result = create_placeholder(
        db_engine, hotel.property_id, APRIL_10_13, NOW, room_id=hotel.room_101
    )

    cancel_placeholder(db_engine, result.reservation_id, NOW)

    row = fetch_reservation(result.reservation_id)
    assert row.hold_status == "cancelled"
    assert row.status == "cancelled"
    with pytest.raises(InvalidTransitionError):
        cancel_placeholder(db_engine, result.reservation_id, NOW)


@pytest.mark.integration
def test_cancel_placeholder_rejects_regular_reservation(
    db_engine: Engine, hotel: Hotel, make_reservation: Callable[..., int]
) -> None:
    """Test that the hold endpoint does not cancel ordinary bookings."""
    reservation_id = make_reservation(date(2025, 4, 10), date(2025, 4, 13), room_id=hotel.room_101)

    with pytest.raises(ValidationError):
        cancel_placeholder(db_engine, reservation_id, NOW)
    with pytest.raises(NotFoundError):
        cancel_placeholder(db_engine, 9999, NOW)


@pytest.mark.integration
def test_sweep_expires_lapsed_holds_only(
    db_engine: Engine, hotel: Hotel, fetch_reservation: Callable[[int], Any]
) -> None:
    """Test that holds expire at their deadline, release the room, and expire only once."""
    result = create_placeholder(
        db_engine, hotel.property_id, APRIL_10_13, NOW, room_id=hotel.room_101, hold_hours=1
    )

    early = sweep_holds(db_engine, NOW + timedelta(minutes=30))
    late = sweep_holds(db_engine, NOW + timedelta(hours=2))
    again = sweep_holds(db_engine, NOW + timedelta(hours=3))

    assert early.expired == []
    assert late.expired == [result.reservation_id]
    assert again.expired == []
    row = fetch_reservation(result.reservation_id)
    assert row.hold_status == "expired"
    assert row.is_soft_hold is False
    assert _event_types(db_engine).count("hold.expired") == 1

    reservation_id, _ = create_reservation(
        db_engine, hotel.property_id, APRIL_10_13, NOW, room_id=hotel.room_101
    )
    assert reservation_id != result.reservation_id


@pytest.mark.integration
def test_sweep_promotes_confirmed_hold_before_expiry(
    db_engine: Engine,
    hotel: Hotel,
    make_reservation: Callable[..., int],
    fetch_reservation: Callable[[int], Any],
) -> None:
    """Test that a hold carrying a channel reference is promoted, never expired."""
    hold_id = make_reservation(
        date(2025, 4, 10),
        date(2025, 4, 13),
        room_id=hotel.room_101,
        provenance="guest-form",
        is_soft_hold=True,
        hold_status="pending",
        hold_expires_at=NOW + timedelta(hours=1),
        ota_reservation_id="BK-778812",
    )

    report = sweep_holds(db_engine, NOW + timedelta(hours=2))

    assert report.promoted == [hold_id]
    assert report.expired == []
    row = fetch_reservation(hold_id)
    assert row.hold_status == "promoted"
    assert row.is_soft_hold is False


@pytest.mark.integration
def test_sweep_can_be_limited_to_one_property(db_engine: Engine, hotel: Hotel) -> None:
    """Test that a property filter leaves other properties' holds alone."""
    create_placeholder(
        db_engine, hotel.property_id, APRIL_10_13, NOW, room_id=hotel.room_101, hold_hours=1
    )

    report = sweep_holds(db_engine, NOW + timedelta(hours=2), property_id=hotel.property_id + 1)

    assert report.expired == []
