from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

from sync_calendars.config import SCHEMA

# JSONB on Postgres, plain JSON elsewhere (SQLite test engines)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models in this application inherit from this base class to provide
    consistent table metadata and ORM functionality across the database schema.
    """

    pass


def table_args(*constraints: object) -> tuple:
    """Build ``__table_args__`` with the configured schema appended."""
    return (*constraints, {"schema": SCHEMA})


def fk(target: str) -> str:
    """Qualify a ``table.column`` foreign key target with the configured schema."""
    return f"{SCHEMA}.{target}" if SCHEMA else target
