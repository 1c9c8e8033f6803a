from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.engine import Connection

from sync_calendars.errors import ConfigurationError, NotFoundError
from sync_calendars.models.properties import Property


@dataclass(frozen=True)
class PropertySettings:
    """The slice of property configuration the engine depends on."""

    id: int
    timezone: Optional[str]
    check_in_time: Optional[time]
    check_out_time: Optional[time]

    def zone(self) -> ZoneInfo:
        """
        Resolve the property's timezone.

        Raises:
            ConfigurationError: if the timezone is missing or unknown
        """
        if not self.timezone:
            raise ConfigurationError("Property has no timezone configured", property_id=self.id)
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(
                "Property timezone is not a known IANA zone",
                property_id=self.id,
                timezone=self.timezone,
            ) from exc

    def require_complete(self) -> ZoneInfo:
        """
        Fail closed unless timezone and both default times are configured.

        Returns:
            ZoneInfo: the property timezone
        """
        zone = self.zone()
        missing = [
            name
            for name, value in (
                ("check_in_time", self.check_in_time),
                ("check_out_time", self.check_out_time),
            )
            if value is None
        ]
        if missing:
            raise ConfigurationError(
                "Property is missing default check-in/check-out times",
                property_id=self.id,
                missing=missing,
            )
        return zone


def _settings_query(property_id: int):  # type: ignore[no-untyped-def]
    return select(
        Property.id, Property.timezone, Property.check_in_time, Property.check_out_time
    ).where(Property.id == property_id)


def get_property_settings(conn: Connection, property_id: int) -> PropertySettings:
    """
    Read a property's configuration without locking it.

    Raises:
        NotFoundError: if the property does not exist
    """
    row = conn.execute(_settings_query(property_id)).fetchone()
    if row is None:
        raise NotFoundError("Property not found", property_id=property_id)
    return PropertySettings(row.id, row.timezone, row.check_in_time, row.check_out_time)


def lock_property(conn: Connection, property_id: int) -> PropertySettings:
    """
    Lock the property row for the rest of the transaction and return its settings.

    This is the serialization point for every write that touches the property's
    reservations, UID map or inbox: two overlapping jobs (or a job and an
    operator) that want to change the same property queue up here, so identity
    lookup, candidate selection and the conflict check see a stable state.
    SQLite has no row locks and ignores FOR UPDATE; its writers are already
    serialized by the database lock.

    Raises:
        NotFoundError: if the property does not exist
    """
    row = conn.execute(_settings_query(property_id).with_for_update()).fetchone()
    if row is None:
        raise NotFoundError("Property not found", property_id=property_id)
    return PropertySettings(row.id, row.timezone, row.check_in_time, row.check_out_time)
