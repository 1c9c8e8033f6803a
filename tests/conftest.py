"""
Shared fixtures.

Tests run against a fresh in-memory SQLite database per test. The environment
is prepared before any ``sync_calendars`` import, since ``config`` reads it at
import time.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["DB_SCHEMA"] = ""
os.environ.setdefault("ALLOWED_ORIGINS", "*")

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert, select
from sqlalchemy.engine import Engine

from sync_calendars.db.engine import build_engine
from sync_calendars.dependencies import get_db_engine
from sync_calendars.main import app
from sync_calendars.models.integrations import FeedIntegration
from sync_calendars.models.properties import Property, Room, RoomCategory
from sync_calendars.models.registry import Base
from sync_calendars.models.reservations import Reservation
from sync_calendars.normalizers.events import AllDay, FeedEvent, ParsedFeed

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Hotel:
    """Ids of the seeded property: two Double rooms and one Suite."""

    property_id: int
    double_id: int
    suite_id: int
    room_101: int
    room_102: int
    room_201: int


@pytest.fixture
def db_engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database with the full schema."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


def _insert(engine: Engine, model: Any, **values: Any) -> int:
    with engine.begin() as conn:
        result = conn.execute(insert(model).values(**values))
        return int(result.inserted_primary_key[0])


@pytest.fixture
def hotel(db_engine: Engine) -> Hotel:
    """
    Seed a fully configured property.

    Europe/Bucharest, check-in 14:00, check-out 11:00.
    """
    property_id = _insert(
        db_engine,
        Property,
        name="Hotel Test",
        timezone="Europe/Bucharest",
        check_in_time=time(14, 0),
        check_out_time=time(11, 0),
    )
    double_id = _insert(db_engine, RoomCategory, property_id=property_id, name="Double")
    suite_id = _insert(db_engine, RoomCategory, property_id=property_id, name="Suite")
    return Hotel(
        property_id=property_id,
        double_id=double_id,
        suite_id=suite_id,
        room_101=_insert(db_engine, Room, property_id=property_id, room_category_id=double_id, name="101"),
        room_102=_insert(db_engine, Room, property_id=property_id, room_category_id=double_id, name="102"),
        room_201=_insert(db_engine, Room, property_id=property_id, room_category_id=suite_id, name="201"),
    )


@pytest.fixture
def make_reservation(db_engine: Engine, hotel: Hotel) -> Callable[..., int]:
    """Insert a reservation row directly, bypassing the services."""

    def _make(start: date, end: date, **values: Any) -> int:
        row = {
            "property_id": hotel.property_id,
            "start_date": start,
            "end_date": end,
            "status": "confirmed",
            "provenance": "manual",
            "is_soft_hold": False,
            **values,
        }
        return _insert(db_engine, Reservation, **row)

    return _make


@pytest.fixture
def make_integration(db_engine: Engine, hotel: Hotel) -> Callable[..., int]:
    """Insert an active feed integration for a room or a category."""

    def _make(
        room_id: Optional[int] = None,
        room_category_id: Optional[int] = None,
        provider: str = "booking",
        is_active: bool = True,
    ) -> int:
        return _insert(
            db_engine,
            FeedIntegration,
            property_id=hotel.property_id,
            room_id=room_id,
            room_category_id=room_category_id,
            provider=provider,
            url="https://channel.example/feed.ics",
            is_active=is_active,
        )

    return _make


@pytest.fixture
def fetch_reservation(db_engine: Engine) -> Callable[[int], Any]:
    """Read one reservation row back."""

    def _fetch(reservation_id: int) -> Any:
        with db_engine.connect() as conn:
            return conn.execute(
                select(Reservation).where(Reservation.id == reservation_id)
            ).fetchone()

    return _fetch


@pytest.fixture
def client(db_engine: Engine) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to the test database."""
    app.dependency_overrides[get_db_engine] = lambda: db_engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def all_day(
    uid: Optional[str],
    start: date,
    end: Optional[date],
    summary: Optional[str] = "Guest",
    status: Optional[str] = None,
) -> FeedEvent:
    return FeedEvent(
        uid=uid,
        summary=summary,
        start=AllDay(start),
        end=AllDay(end) if end is not None else None,
        status=status,
    )


def feed(*events: FeedEvent, malformed: int = 0) -> ParsedFeed:
    return ParsedFeed(events=list(events), malformed=malformed)
