"""Outbound iCalendar feeds for channels to subscribe to."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.engine import Engine

from sync_calendars.dependencies import get_db_engine
from sync_calendars.errors import CalendarSyncError
from sync_calendars.routes._helpers import http_error, internal_error
from sync_calendars.services.export import build_category_calendar, build_room_calendar

logger = structlog.get_logger(__name__)
router = APIRouter()

ICS_MEDIA_TYPE = "text/calendar; charset=utf-8"


@router.get("/feeds/rooms/{room_id}.ics", response_class=Response)
def room_feed(room_id: int, engine: Engine = Depends(get_db_engine)) -> Response:
    """Live reservations on a room as all-day events."""
    try:
        return Response(content=build_room_calendar(engine, room_id), media_type=ICS_MEDIA_TYPE)
    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("room_feed_failed", e, room_id=room_id)


@router.get("/feeds/categories/{category_id}.ics", response_class=Response)
def category_feed(category_id: int, engine: Engine = Depends(get_db_engine)) -> Response:
    """Date ranges on which every room of the category is occupied."""
    try:
        return Response(
            content=build_category_calendar(engine, category_id), media_type=ICS_MEDIA_TYPE
        )
    except CalendarSyncError as e:
        raise http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("category_feed_failed", e, room_category_id=category_id)
