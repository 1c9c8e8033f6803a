"""
Integration tests for the outbound room and category calendars.
"""

from __future__ import annotations

from datetime import date
from typing import Callable

import pytest
from conftest import NOW, Hotel
from sqlalchemy.engine import Engine

from sync_calendars.errors import NotFoundError
from sync_calendars.normalizers.events import AllDay
from sync_calendars.normalizers.ical import parse_feed
from sync_calendars.services.export import build_category_calendar, build_room_calendar, export_uid


@pytest.mark.integration
def test_room_calendar_lists_live_stays(
    db_engine: Engine, hotel: Hotel, make_reservation: Callable[..., int]
) -> None:
    """Test that the room feed carries live stays with stable UIDs and skips cancelled ones."""
    live_id = make_reservation(
        date(2025, 4, 10),
        date(2025, 4, 13),
        room_id=hotel.room_101,
        guest_first_name="Ana",
        guest_last_name="Pop",
    )
    make_reservation(date(2025, 4, 20), date(2025, 4, 22), room_id=hotel.room_101, status="cancelled")
    make_reservation(date(2025, 4, 10), date(2025, 4, 13), room_id=hotel.room_102)

    first = build_room_calendar(db_engine, hotel.room_101, now=NOW)
    second = build_room_calendar(db_engine, hotel.room_101, now=NOW)

    parsed = parse_feed(first)
    assert parsed.malformed == 0
    (event,) = parsed.events
    assert event.uid == export_uid(live_id, date(2025, 4, 10), date(2025, 4, 13))
    assert event.summary == "Ana Pop"
    assert event.start == AllDay(date(2025, 4, 10))
    assert event.end == AllDay(date(2025, 4, 13))
    assert first == second


@pytest.mark.integration
def test_room_calendar_without_guest_name(
    db_engine: Engine, hotel: Hotel, make_reservation: Callable[..., int]
) -> None:
    """Test that a stay with no guest details is exported as a plain block."""
    make_reservation(date(2025, 4, 10), date(2025, 4, 13), room_id=hotel.room_201)

    (event,) = parse_feed(build_room_calendar(db_engine, hotel.room_201, now=NOW)).events

    assert event.summary == "Reserved"


@pytest.mark.integration
def test_category_calendar_blocks_only_fully_booked_nights(
    db_engine: Engine, hotel: Hotel, make_reservation: Callable[..., int]
) -> None:
    """Test that the category feed closes a night only when every room is taken."""
    make_reservation(date(2025, 4, 10), date(2025, 4, 13), room_id=hotel.room_101)
    make_reservation(date(2025, 4, 12), date(2025, 4, 15), room_id=hotel.room_102)
    make_reservation(date(2025, 4, 13), date(2025, 4, 14), room_id=hotel.room_101, status="cancelled")

    (event,) = parse_feed(build_category_calendar(db_engine, hotel.double_id, now=NOW)).events

    assert event.summary == "Fully booked"
    assert event.start == AllDay(date(2025, 4, 12))
    assert event.end == AllDay(date(2025, 4, 13))
    assert event.uid == export_uid(hotel.double_id, date(2025, 4, 12), date(2025, 4, 13))

    assert parse_feed(build_category_calendar(db_engine, hotel.suite_id, now=NOW)).events == []


@pytest.mark.integration
def test_export_unknown_room_or_category(db_engine: Engine, hotel: Hotel) -> None:
    """Test that exporting a missing room or category raises NotFoundError."""
    with pytest.raises(NotFoundError):
        build_room_calendar(db_engine, 9999)
    with pytest.raises(NotFoundError):
        build_category_calendar(db_engine, 9999)
