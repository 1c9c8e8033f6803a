"""
Generic upsert helper with IS DISTINCT FROM optimization.

Builds ``INSERT ... ON CONFLICT DO UPDATE`` for the connection's dialect
(Postgres in production, SQLite in tests). The update only fires when one of
the watched columns actually changed, so re-running a sync on an unchanged
feed leaves rows (and their updated_at) untouched.
"""

from typing import Any

from sqlalchemy import or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection


def _insert_for(conn: Connection, table: type) -> Any:
    if conn.dialect.name == "postgresql":
        return postgresql.insert(table)
    if conn.dialect.name == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"upsert not supported for dialect {conn.dialect.name}")


def upsert_with_distinct_check(
    conn: Connection,
    table: type,
    rows: list[dict[str, Any]],
    conflict_columns: list[str],
    distinct_columns: list[str],
    update_columns: list[str] | None = None,
) -> None:
    """
    Perform upsert with IS DISTINCT FROM optimization.

    Args:
        conn: Active database connection (within transaction)
        table: SQLAlchemy ORM table class (e.g., UidMapping)
        rows: List of row dicts to upsert
        conflict_columns: Columns of the unique constraint used for ON CONFLICT
        distinct_columns: Columns whose change justifies an update
        update_columns: Columns to update on conflict (default: distinct_columns + "updated_at")

    Example:
        >>> with engine.begin() as conn:
        ...     upsert_with_distinct_check(
        ...         conn=conn,
        ...         table=UidMapping,
        ...         rows=[{"property_id": 1, "uid": "abc@channel", ...}],
        ...         conflict_columns=["property_id", "uid"],
        ...         distinct_columns=["reservation_id", "start_date", "end_date"],
        ...     )
    """
    if not rows:
        return

    if update_columns is None:
        update_columns = [*distinct_columns, "updated_at"]

    stmt = _insert_for(conn, table).values(rows)

    set_dict = {col: getattr(stmt.excluded, col) for col in update_columns}

    distinct_check = or_(
        *[
            getattr(table, col).is_distinct_from(getattr(stmt.excluded, col))
            for col in distinct_columns
        ]
    )

    stmt = stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_=set_dict,
        where=distinct_check,
    )

    conn.execute(stmt)
