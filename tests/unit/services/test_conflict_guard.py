"""
Unit tests for conflict guard interval arithmetic.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone

import pytest

from sync_calendars.db.readers.properties import PropertySettings
from sync_calendars.errors import ConfigurationError
from sync_calendars.normalizers.events import StayWindow
from sync_calendars.services.conflict_guard import overlaps, resolve_window

SETTINGS = PropertySettings(1, "Europe/Bucharest", time(14, 0), time(11, 0))


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.unit
def test_overlaps_is_half_open() -> None:
    """Test that touching intervals do not overlap."""
    assert overlaps(_utc(2025, 4, 10), _utc(2025, 4, 12), _utc(2025, 4, 11), _utc(2025, 4, 13))
    assert not overlaps(_utc(2025, 4, 10), _utc(2025, 4, 12), _utc(2025, 4, 12), _utc(2025, 4, 14))


@pytest.mark.unit
def test_resolve_window_applies_default_times() -> None:
    """Test that missing times fall back to check-in/check-out in the property zone."""
    start, end = resolve_window(StayWindow(date(2025, 4, 10), date(2025, 4, 13)), SETTINGS)

    assert start == _utc(2025, 4, 10, 11, 0)
    assert end == _utc(2025, 4, 13, 8, 0)


@pytest.mark.unit
def test_resolve_window_keeps_explicit_times() -> None:
    """Test that explicit local times win over the defaults."""
    window = StayWindow(date(2025, 4, 10), date(2025, 4, 13), time(18, 0), time(9, 0))

    start, end = resolve_window(window, SETTINGS)

    assert start == _utc(2025, 4, 10, 15, 0)
    assert end == _utc(2025, 4, 13, 6, 0)


@pytest.mark.unit
def test_back_to_back_stays_do_not_collide() -> None:
    """Test that a check-out and a check-in on the same day leave a gap."""
    first = resolve_window(StayWindow(date(2025, 4, 10), date(2025, 4, 13)), SETTINGS)
    second = resolve_window(StayWindow(date(2025, 4, 13), date(2025, 4, 15)), SETTINGS)

    assert not overlaps(*first, *second)


@pytest.mark.unit
def test_late_checkout_collides_with_early_checkin() -> None:
    """Test that explicit times can turn a turnover day into a conflict."""
    first = resolve_window(
        StayWindow(date(2025, 4, 10), date(2025, 4, 13), None, time(15, 0)), SETTINGS
    )
    second = resolve_window(
        StayWindow(date(2025, 4, 13), date(2025, 4, 15), time(12, 0), None), SETTINGS
    )

    assert overlaps(*first, *second)


@pytest.mark.unit
def test_resolve_window_requires_timezone() -> None:
    """Test that a property without a timezone fails closed."""
    settings = PropertySettings(1, None, time(14, 0), time(11, 0))

    with pytest.raises(ConfigurationError):
        resolve_window(StayWindow(date(2025, 4, 10), date(2025, 4, 13)), settings)


@pytest.mark.unit
def test_resolve_window_rejects_unknown_timezone() -> None:
    """Test that an unknown IANA name is a configuration error."""
    settings = PropertySettings(1, "Mars/Olympus_Mons", time(14, 0), time(11, 0))

    with pytest.raises(ConfigurationError):
        resolve_window(StayWindow(date(2025, 4, 10), date(2025, 4, 13)), settings)


@pytest.mark.unit
def test_resolve_window_requires_default_times() -> None:
    """Test that missing default times are reported by name."""
    settings = PropertySettings(1, "Europe/Bucharest", None, time(11, 0))

    with pytest.raises(ConfigurationError) as exc_info:
        resolve_window(StayWindow(date(2025, 4, 10), date(2025, 4, 13)), settings)

    assert exc_info.value.context["missing"] == ["check_in_time"]
