"""
Outbound iCalendar feeds, per room and per room category.

Events are whole-day and their UIDs derive from the reservation (or category)
key plus the date range, so a channel re-importing the feed sees the same
identifiers until the stay itself changes.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from icalendar import Calendar, Event
from sqlalchemy.engine import Engine

from sync_calendars.config import EXPORT_UID_DOMAIN
from sync_calendars.db.readers.reservations import list_live_for_category, list_live_for_room
from sync_calendars.db.readers.rooms import count_rooms_in_category, get_category, get_room
from sync_calendars.errors import NotFoundError
from sync_calendars.utils.datetime import utc_now

PRODID = "-//sync-calendars//Calendar Reconciliation Engine//EN"
ONE_DAY = timedelta(days=1)


def export_uid(key: int, start: date, end: date) -> str:
    return f"{key}-{start:%Y%m%d}-{end:%Y%m%d}@{EXPORT_UID_DOMAIN}"


def _new_calendar(name: str) -> Calendar:
    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", name)
    return cal


def _all_day_event(
    uid: str, start: date, end: date, summary: str, stamp: datetime, description: Optional[str] = None
) -> Event:
    event = Event()
    event.add("uid", uid)
    event.add("dtstamp", stamp)
    event.add("dtstart", start)
    # Same-day stays still block the day
    event.add("dtend", max(end, start + ONE_DAY))
    event.add("summary", summary)
    event.add("transp", "OPAQUE")
    if description:
        event.add("description", description)
    return event


def _guest_label(row: Any) -> str:
    if row.guest_name:
        return str(row.guest_name)
    names = " ".join(part for part in (row.guest_first_name, row.guest_last_name) if part)
    return names or "Reserved"


def build_room_calendar(engine: Engine, room_id: int, now: Optional[datetime] = None) -> bytes:
    """
    Render every live reservation on a room as an all-day event.

    Raises:
        NotFoundError: unknown room
    """
    stamp = now or utc_now()
    with engine.connect() as conn:
        room = get_room(conn, room_id)
        if room is None:
            raise NotFoundError("Room not found", room_id=room_id)
        rows = list_live_for_room(conn, room_id)

    cal = _new_calendar(str(room.name))
    for row in rows:
        cal.add_component(
            _all_day_event(
                export_uid(row.id, row.start_date, row.end_date),
                row.start_date,
                row.end_date,
                _guest_label(row),
                stamp,
                description=f"Reservation {row.id}",
            )
        )
    return cal.to_ical()


def fully_booked_ranges(
    reservations: Iterable[Any], room_count: int
) -> list[tuple[date, date]]:
    """
    Collapse per-night occupancy into ``[start, end)`` ranges where every room is taken.

    A reservation without a room holds one unit of the category's capacity.
    """
    if room_count <= 0:
        return []

    rooms_by_night: dict[date, set[int]] = defaultdict(set)
    unplaced_by_night: dict[date, int] = defaultdict(int)
    for row in reservations:
        night = row.start_date
        last = max(row.end_date, row.start_date + ONE_DAY)
        while night < last:
            if row.room_id is not None:
                rooms_by_night[night].add(row.room_id)
            else:
                unplaced_by_night[night] += 1
            night += ONE_DAY

    full = sorted(
        night
        for night in set(rooms_by_night) | set(unplaced_by_night)
        if len(rooms_by_night[night]) + unplaced_by_night[night] >= room_count
    )

    ranges: list[tuple[date, date]] = []
    for night in full:
        if ranges and ranges[-1][1] == night:
            ranges[-1] = (ranges[-1][0], night + ONE_DAY)
        else:
            ranges.append((night, night + ONE_DAY))
    return ranges


def build_category_calendar(
    engine: Engine, category_id: int, now: Optional[datetime] = None
) -> bytes:
    """
    Render the date ranges on which a category has no free room.

    Raises:
        NotFoundError: unknown category
    """
    stamp = now or utc_now()
    with engine.connect() as conn:
        category = get_category(conn, category_id)
        if category is None:
            raise NotFoundError("Room category not found", room_category_id=category_id)
        room_count = count_rooms_in_category(conn, category_id)
        rows = list_live_for_category(conn, category_id)

    cal = _new_calendar(str(category.name))
    for start, end in fully_booked_ranges(rows, room_count):
        cal.add_component(
            _all_day_event(export_uid(category_id, start, end), start, end, "Fully booked", stamp)
        )
    return cal.to_ical()
