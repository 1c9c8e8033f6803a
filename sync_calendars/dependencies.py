"""
FastAPI dependency injection providers.

Routes receive the database engine through ``Depends(get_db_engine)`` so that
tests can swap in an in-memory SQLite engine via ``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Generator

from sqlalchemy.engine import Engine

from sync_calendars.db.engine import engine


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide database engine for dependency injection.

    Yields:
        Engine: SQLAlchemy database engine

    Testing Example:
        >>> test_engine = build_engine("sqlite://")
        >>> app.dependency_overrides[get_db_engine] = lambda: test_engine
        >>> client = TestClient(app)
        >>> client.post("/reservations", json={...})
    """
    yield engine
