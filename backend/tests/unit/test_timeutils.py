"""
Tests for time-of-day parsing and timezone helpers.
"""
from datetime import date, datetime, timezone

import pytest

from salonbook.lib import timeutils
from salonbook.lib.settings import settings


@pytest.mark.unit
def test_parse_time_of_day():
    """Test parsing HH:MM into minutes after midnight."""
    assert timeutils.parse_time_of_day("00:00") == 0
    assert timeutils.parse_time_of_day("09:30") == 570
    assert timeutils.parse_time_of_day("9:05") == 545
    assert timeutils.parse_time_of_day("23:59") == 1439


@pytest.mark.unit
@pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", None, "12-30"])
def test_parse_time_of_day_rejects_invalid(value):
    """Test that malformed times raise ValueError."""
    with pytest.raises(ValueError):
        timeutils.parse_time_of_day(value)


@pytest.mark.unit
def test_format_minutes_zero_pads():
    """Test formatting minutes back to HH:MM."""
    assert timeutils.format_minutes(545) == "09:05"
    assert timeutils.format_minutes(0) == "00:00"


@pytest.mark.unit
def test_ensure_utc_naive_and_aware():
    """Test that naive datetimes are read as UTC and aware ones are converted."""
    naive = datetime(2025, 3, 3, 10, 0)
    assert timeutils.ensure_utc(naive) == datetime(2025, 3, 3, 10, 0, tzinfo=timezone.utc)

    aware = datetime.fromisoformat("2025-03-03T12:00:00+02:00")
    assert timeutils.ensure_utc(aware) == datetime(2025, 3, 3, 10, 0, tzinfo=timezone.utc)


@pytest.mark.unit
def test_combine_local_in_business_timezone(monkeypatch):
    """Test that schedule times are interpreted in the business timezone."""
    monkeypatch.setattr(settings, "business_timezone", "Asia/Dhaka")

    instant = timeutils.combine_local(date(2025, 3, 3), "10:00")

    # Dhaka is UTC+6 with no DST
    assert instant == datetime(2025, 3, 3, 4, 0, tzinfo=timezone.utc)
    assert timeutils.to_business_time(instant).hour == 10


@pytest.mark.unit
def test_local_day_bounds_utc():
    """Test day bounds for the default UTC business timezone."""
    start, end = timeutils.local_day_bounds(date(2025, 3, 3))

    assert start == datetime(2025, 3, 3, tzinfo=timezone.utc)
    assert end == datetime(2025, 3, 4, tzinfo=timezone.utc)
