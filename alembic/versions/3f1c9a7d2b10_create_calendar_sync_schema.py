"""Create calendar sync schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2025-03-02 10:14:08.412339

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op  # type: ignore[attr-defined]
from sync_calendars.config import SCHEMA

# revision identifiers, used by Alembic.
revision = "3f1c9a7d2b10"
down_revision = None
branch_labels = None
depends_on = None


def _fk(target: str) -> str:
    return f"{SCHEMA}.{target}" if SCHEMA else target


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("timezone", sa.String(), nullable=True),
        sa.Column("check_in_time", sa.Time(), nullable=True),
        sa.Column("check_out_time", sa.Time(), nullable=True),
        *_timestamps(),
        schema=SCHEMA,
    )

    op.create_table(
        "room_categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            sa.Integer(),
            sa.ForeignKey(_fk("properties.id"), ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        schema=SCHEMA,
    )

    op.create_table(
        "rooms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            sa.Integer(),
            sa.ForeignKey(_fk("properties.id"), ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "room_category_id",
            sa.Integer(),
            sa.ForeignKey(_fk("room_categories.id"), ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        schema=SCHEMA,
    )

    op.create_table(
        "feed_integrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            sa.Integer(),
            sa.ForeignKey(_fk("properties.id"), ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey(_fk("rooms.id"), ondelete="CASCADE"), nullable=True),
        sa.Column(
            "room_category_id",
            sa.Integer(),
            sa.ForeignKey(_fk("room_categories.id"), ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("provider", sa.String(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_status", sa.String(), nullable=True),
        sa.Column("last_error", sa.String(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(room_id IS NULL) <> (room_category_id IS NULL)",
            name="ck_feed_integrations_single_scope",
        ),
        schema=SCHEMA,
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            sa.Integer(),
            sa.ForeignKey(_fk("properties.id"), ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey(_fk("rooms.id"), ondelete="SET NULL"), nullable=True),
        sa.Column(
            "room_category_id",
            sa.Integer(),
            sa.ForeignKey(_fk("room_categories.id"), ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="confirmed"),
        sa.Column("provenance", sa.String(), nullable=False),
        sa.Column("is_soft_hold", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("hold_status", sa.String(), nullable=True),
        sa.Column("hold_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("external_uid", sa.String(), nullable=True, index=True),
        sa.Column(
            "integration_id",
            sa.Integer(),
            sa.ForeignKey(_fk("feed_integrations.id"), ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("channel_name", sa.String(), nullable=True),
        sa.Column("ota_reservation_id", sa.String(), nullable=True),
        sa.Column("guest_first_name", sa.String(), nullable=True),
        sa.Column("guest_last_name", sa.String(), nullable=True),
        sa.Column("guest_name", sa.String(), nullable=True),
        sa.Column("form_submitted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_reservations_property_dates",
        "reservations",
        ["property_id", "start_date", "end_date"],
        schema=SCHEMA,
    )
    op.create_index(
        "ix_reservations_room_dates", "reservations", ["room_id", "start_date", "end_date"], schema=SCHEMA
    )

    op.create_table(
        "reservation_contacts",
        sa.Column(
            "reservation_id",
            sa.Integer(),
            sa.ForeignKey(_fk("reservations.id"), ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        schema=SCHEMA,
    )

    op.create_table(
        "reservation_documents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "reservation_id",
            sa.Integer(),
            sa.ForeignKey(_fk("reservations.id"), ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("storage_path", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        schema=SCHEMA,
    )

    op.create_table(
        "uid_mappings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            sa.Integer(),
            sa.ForeignKey(_fk("properties.id"), ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("uid", sa.String(), nullable=False),
        sa.Column(
            "integration_id",
            sa.Integer(),
            sa.ForeignKey(_fk("feed_integrations.id"), ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "reservation_id",
            sa.Integer(),
            sa.ForeignKey(_fk("reservations.id"), ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("room_id", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("last_changed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("property_id", "uid", name="uq_uid_mappings_property_uid"),
        schema=SCHEMA,
    )

    op.create_table(
        "unassigned_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "property_id",
            sa.Integer(),
            sa.ForeignKey(_fk("properties.id"), ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "integration_id",
            sa.Integer(),
            sa.ForeignKey(_fk("feed_integrations.id"), ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("room_id", sa.Integer(), nullable=True),
        sa.Column("room_category_id", sa.Integer(), nullable=True),
        sa.Column("uid", sa.String(), nullable=True),
        sa.Column("summary", sa.String(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("detail", sa.String(), nullable=True),
        sa.Column("raw_payload", json_type, nullable=True),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "resolved_reservation_id",
            sa.Integer(),
            sa.ForeignKey(_fk("reservations.id"), ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_unassigned_events_property_resolved",
        "unassigned_events",
        ["property_id", "resolved"],
        schema=SCHEMA,
    )

    op.create_table(
        "feed_sync_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "integration_id",
            sa.Integer(),
            sa.ForeignKey(_fk("feed_integrations.id"), ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("counters", json_type, nullable=True),
        sa.Column("error_message", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        schema=SCHEMA,
    )

    op.create_table(
        "domain_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_type", sa.String(), nullable=False, index=True),
        sa.Column("property_id", sa.Integer(), nullable=False),
        sa.Column("reservation_id", sa.Integer(), nullable=True),
        sa.Column("payload", json_type, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        schema=SCHEMA,
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "domain_events",
        "feed_sync_logs",
        "unassigned_events",
        "uid_mappings",
        "reservation_documents",
        "reservation_contacts",
        "reservations",
        "feed_integrations",
        "rooms",
        "room_categories",
        "properties",
    ):
        op.drop_table(table, schema=SCHEMA)
