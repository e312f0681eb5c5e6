"""
Tests for staff availability: working days, slot generation and
booked-slot filtering.
"""
from datetime import timedelta

import pytest

from salonbook.models.bookings import BookingStatus
from salonbook.models.staff import default_schedule
from salonbook.services.availability_service import (
    AvailabilityService,
    DaySchedule,
    generate_slots,
    get_day_schedule,
    works_at,
    works_on,
)
from tests.helpers import at, next_monday


MONDAY_60_MIN_SLOTS = [
    "09:00", "09:30", "10:00", "10:30", "11:00", "11:30", "12:00",
    "14:00", "14:30", "15:00", "15:30", "16:00", "16:30", "17:00",
]


@pytest.mark.unit
def test_get_day_schedule_parses_weekday_entry():
    """Test reading the entry for a date's weekday."""
    day = get_day_schedule(default_schedule(), next_monday())

    assert day == DaySchedule(is_available=True, start=540, end=1080, breaks=((780, 840),))


@pytest.mark.unit
def test_get_day_schedule_missing_or_malformed():
    """Test that missing and malformed entries read as no schedule."""
    monday = next_monday()

    assert get_day_schedule({}, monday) is None
    assert get_day_schedule(None, monday) is None
    assert get_day_schedule({"monday": {"is_available": True, "start_time": "nine"}}, monday) is None


@pytest.mark.unit
def test_generate_slots_skips_break():
    """Test 60 minute slots on a 09-18 day with a 13-14 lunch break."""
    day = get_day_schedule(default_schedule(), next_monday())

    assert generate_slots(day, 60) == MONDAY_60_MIN_SLOTS


@pytest.mark.unit
def test_generate_slots_last_slot_ends_at_close():
    """Test that a slot ending exactly at close is offered and one past it is not."""
    day = DaySchedule(is_available=True, start=9 * 60, end=11 * 60)

    assert generate_slots(day, 90) == ["09:00", "09:30"]
    assert generate_slots(day, 120) == ["09:00"]
    assert generate_slots(day, 121) == []


@pytest.mark.unit
def test_generate_slots_custom_interval():
    """Test stepping by a non-default interval."""
    day = DaySchedule(is_available=True, start=9 * 60, end=10 * 60)

    assert generate_slots(day, 15, interval_minutes=15) == ["09:00", "09:15", "09:30", "09:45"]


@pytest.mark.unit
def test_generate_slots_day_off():
    """Test that unavailable days produce no slots."""
    assert generate_slots(None, 60) == []
    assert generate_slots(DaySchedule(is_available=False, start=540, end=1080), 60) == []


@pytest.mark.unit
def test_works_on(make_staff, vendor):
    """Test working-day rules: available flag, sane hours, active staff."""
    monday = next_monday()
    sunday = monday - timedelta(days=1)
    staff = make_staff(vendor)

    assert works_on(staff, monday) is True
    assert works_on(staff, sunday) is False

    inverted = default_schedule()
    inverted["monday"]["start_time"] = "18:00"
    inverted["monday"]["end_time"] = "09:00"
    assert works_on(make_staff(vendor, schedule=inverted), monday) is False

    assert works_on(make_staff(vendor, is_active=False), monday) is False


@pytest.mark.unit
def test_works_at_is_date_level(make_staff, vendor):
    """Test that works_at checks the day only, not the working hours."""
    monday = next_monday()
    staff = make_staff(vendor)

    assert works_at(staff, at(monday, 7)) is True
    assert works_at(staff, at(monday - timedelta(days=1), 10)) is False


@pytest.mark.unit
def test_staff_availability_removes_booked_slots(
    db_session, make_staff, make_booking, vendor, customer, service
):
    """Test that a 10:00-11:00 booking removes every overlapping 60 minute slot."""
    monday = next_monday()
    staff = make_staff(vendor)
    make_booking(customer, service, at(monday, 10), staff=staff)

    result = AvailabilityService(db_session).get_staff_availability(staff, monday, 60)

    assert result.is_available is True
    assert "09:00" in result.available_slots
    assert "09:30" not in result.available_slots
    assert "10:00" not in result.available_slots
    assert "10:30" not in result.available_slots
    assert "11:00" in result.available_slots


@pytest.mark.unit
def test_staff_availability_ignores_inactive_bookings(
    db_session, make_staff, make_booking, vendor, customer, service
):
    """Test that cancelled, completed and no-show bookings free their slot."""
    monday = next_monday()
    staff = make_staff(vendor)
    for status, hour in ((BookingStatus.CANCELLED, 10), (BookingStatus.COMPLETED, 11), (BookingStatus.NO_SHOW, 14)):
        make_booking(customer, service, at(monday, hour), staff=staff, status=status)

    result = AvailabilityService(db_session).get_staff_availability(staff, monday, 60)

    assert result.available_slots == MONDAY_60_MIN_SLOTS


@pytest.mark.unit
def test_staff_availability_day_off(db_session, make_staff, vendor):
    """Test that a day off reports unavailable with no slots."""
    sunday = next_monday() - timedelta(days=1)

    result = AvailabilityService(db_session).get_staff_availability(make_staff(vendor), sunday, 60)

    assert result.is_available is False
    assert result.available_slots == []


@pytest.mark.unit
def test_vendor_availability_unions_staff_slots(
    db_session, make_staff, make_booking, vendor, customer, service
):
    """Test that a slot stays open while any qualified staff member is free."""
    monday = next_monday()
    first = make_staff(vendor)
    second_schedule = default_schedule()
    second_schedule["monday"].update(start_time="08:00", end_time="20:00", breaks=[])
    second = make_staff(vendor, schedule=second_schedule)
    make_booking(customer, service, at(monday, 10), staff=first)
    make_booking(customer, service, at(monday, 10), staff=second)

    result = AvailabilityService(db_session).get_vendor_availability(vendor.id, monday, 60)

    assert result.is_open is True
    assert result.opens_at == "08:00"
    assert result.closes_at == "20:00"
    assert result.staff_count == 2
    assert "10:00" not in result.available_slots
    assert "13:00" in result.available_slots  # second has no lunch break
    assert result.available_slots == sorted(result.available_slots)


@pytest.mark.unit
def test_vendor_availability_filters_by_service(
    db_session, make_staff, make_service, vendor
):
    """Test that only staff qualified for the service count."""
    monday = next_monday()
    nails = make_service(vendor, name="Manicure", category="nails")
    make_staff(vendor, service_ids=["00000000-0000-0000-0000-000000000001"])

    result = AvailabilityService(db_session).get_vendor_availability(vendor.id, monday, 60, nails.id)

    assert result.is_open is False
    assert result.available_slots == []
    assert result.opens_at is None
