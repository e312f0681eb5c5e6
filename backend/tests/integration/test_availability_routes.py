"""
Integration tests for the staff and vendor availability endpoints.
"""
from datetime import timedelta
from uuid import uuid4

import pytest

from salonbook.models.bookings import BookingStatus
from tests.helpers import at, auth_headers, next_monday


@pytest.mark.integration
def test_staff_availability_response_shape(client, staff):
    """Test the staff availability body on a regular working day."""
    monday = next_monday()

    response = client.get(f"/staff/{staff.id}/availability", params={"date": monday.isoformat()})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["staffId"] == str(staff.id)
    assert data["staffName"] == staff.full_name
    assert data["date"] == monday.isoformat()
    assert data["isAvailable"] is True
    assert data["availableSlots"][0] == "09:00"
    assert data["availableSlots"][-1] == "17:00"
    assert "13:00" not in data["availableSlots"]
    assert data["schedule"]["monday"]["start_time"] == "09:00"


@pytest.mark.integration
def test_staff_availability_removes_booked_slot(client, customer, service, staff, make_booking):
    """Test a confirmed booking hides the overlapping start times."""
    monday = next_monday()
    make_booking(customer, service, at(monday, 10), staff=staff)

    response = client.get(
        f"/staff/{staff.id}/availability",
        params={"date": monday.isoformat(), "duration": 60},
    )

    slots = response.json()["data"]["availableSlots"]
    assert "09:00" in slots
    assert "09:30" not in slots
    assert "10:00" not in slots
    assert "10:30" not in slots
    assert "11:00" in slots


@pytest.mark.integration
def test_staff_availability_cancelled_booking_frees_slot(client, customer, service, staff, make_booking):
    """Test cancelled bookings do not block start times."""
    monday = next_monday()
    make_booking(customer, service, at(monday, 10), staff=staff, status=BookingStatus.CANCELLED)

    response = client.get(f"/staff/{staff.id}/availability", params={"date": monday.isoformat()})

    assert "10:00" in response.json()["data"]["availableSlots"]


@pytest.mark.integration
def test_staff_availability_day_off(client, staff):
    """Test Sunday is reported unavailable with no slots."""
    sunday = next_monday() - timedelta(days=1)

    response = client.get(f"/staff/{staff.id}/availability", params={"date": sunday.isoformat()})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["isAvailable"] is False
    assert data["availableSlots"] == []


@pytest.mark.integration
def test_staff_availability_accepts_signed_in_user(client, customer, staff):
    """Test the endpoint works with or without a token."""
    response = client.get(
        f"/staff/{staff.id}/availability",
        params={"date": next_monday().isoformat()},
        headers=auth_headers(customer),
    )

    assert response.status_code == 200


@pytest.mark.integration
def test_staff_availability_unknown_staff(client):
    """Test 404 STAFF_NOT_FOUND for an unknown staff id."""
    response = client.get(f"/staff/{uuid4()}/availability", params={"date": next_monday().isoformat()})

    assert response.status_code == 404
    assert response.json()["code"] == "STAFF_NOT_FOUND"


@pytest.mark.integration
@pytest.mark.parametrize(
    "params",
    [
        {"duration": 60},
        {"date": "not-a-date"},
        {"date": "2030-01-07", "duration": 0},
        {"date": "2030-01-07", "duration": 481},
    ],
)
def test_staff_availability_validation(client, staff, params):
    """Test missing or invalid query parameters are rejected with 400."""
    response = client.get(f"/staff/{staff.id}/availability", params=params)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.integration
def test_vendor_availability_response_shape(client, vendor, make_staff):
    """Test the vendor availability body with two working staff members."""
    monday = next_monday()
    make_staff(vendor)
    make_staff(vendor)

    response = client.get(f"/vendors/{vendor.id}/availability", params={"date": monday.isoformat()})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["vendorId"] == str(vendor.id)
    assert data["date"] == monday.isoformat()
    assert data["dayOfWeek"] == "monday"
    assert data["isOpen"] is True
    assert data["businessHours"] == {"open": "09:00", "close": "18:00"}
    assert data["staffCount"] == 2
    assert "10:00" in data["availableSlots"]


@pytest.mark.integration
def test_vendor_availability_slot_open_while_anyone_free(
    client, customer, service, vendor, make_staff, make_booking
):
    """Test a slot stays listed until every staff member is booked."""
    monday = next_monday()
    first = make_staff(vendor)
    second = make_staff(vendor)
    make_booking(customer, service, at(monday, 10), staff=first)

    slots = client.get(
        f"/vendors/{vendor.id}/availability", params={"date": monday.isoformat()}
    ).json()["data"]["availableSlots"]
    assert "10:00" in slots

    make_booking(customer, service, at(monday, 10), staff=second)

    slots = client.get(
        f"/vendors/{vendor.id}/availability", params={"date": monday.isoformat()}
    ).json()["data"]["availableSlots"]
    assert "10:00" not in slots


@pytest.mark.integration
def test_vendor_availability_service_filter(client, vendor, make_service, make_staff):
    """Test serviceId limits the count to qualified staff."""
    facial = make_service(vendor, name="Facial", category="skin")
    make_staff(vendor, service_ids=[str(facial.id)])
    make_staff(vendor, service_ids=[str(uuid4())])

    response = client.get(
        f"/vendors/{vendor.id}/availability",
        params={"date": next_monday().isoformat(), "serviceId": str(facial.id)},
    )

    assert response.json()["data"]["staffCount"] == 1


@pytest.mark.integration
def test_vendor_closed_day(client, vendor, make_staff):
    """Test a day with nobody working reports closed without hours."""
    make_staff(vendor)
    sunday = next_monday() - timedelta(days=1)

    response = client.get(f"/vendors/{vendor.id}/availability", params={"date": sunday.isoformat()})

    data = response.json()["data"]
    assert data["isOpen"] is False
    assert data["businessHours"] is None
    assert data["staffCount"] == 0
    assert data["availableSlots"] == []


@pytest.mark.integration
def test_vendor_availability_unknown_vendor(client, customer):
    """Test 404 VENDOR_NOT_FOUND for unknown ids and non-vendor users."""
    params = {"date": next_monday().isoformat()}

    assert client.get(f"/vendors/{uuid4()}/availability", params=params).json()["code"] == "VENDOR_NOT_FOUND"

    response = client.get(f"/vendors/{customer.id}/availability", params=params)
    assert response.status_code == 404
    assert response.json()["code"] == "VENDOR_NOT_FOUND"
