"""
Internal helper functions for route handlers.

Translates the engine's error taxonomy into HTTP responses so every router
maps failures the same way.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import HTTPException, status

from sync_calendars.errors import (
    CalendarSyncError,
    ConfigurationError,
    ConflictError,
    InvalidTransitionError,
    MergeRefusedError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

STATUS_BY_ERROR: tuple[tuple[type[CalendarSyncError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (MergeRefusedError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConfigurationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def http_error(exc: CalendarSyncError) -> HTTPException:
    """
    Map a domain error to an HTTPException carrying its context.

    Args:
        exc: Error raised by a service

    Returns:
        HTTPException: 404, 409 or 422 for known errors, 500 otherwise
    """
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.to_dict())

    logger.error("unmapped_domain_error", error=type(exc).__name__, **exc.context)
    return HTTPException(status_code=500, detail="Internal server error")


def internal_error(event: str, exc: Exception, **context: Any) -> HTTPException:
    """Log an unexpected failure with its traceback and return a bare 500."""
    logger.exception(event, error=str(exc), **context)
    return HTTPException(status_code=500, detail="Internal server error")


def row_to_dict(row: Any) -> dict[str, Any]:
    return dict(row._mapping)
