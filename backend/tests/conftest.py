"""
Shared fixtures: a file-backed SQLite database per test, model factories,
and an authenticated API client.

DATABASE_URL must point at SQLite before salonbook is imported, since the
engine is built at import time.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

_DB_DIR = Path(tempfile.mkdtemp(prefix="salonbook-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ.setdefault("NOTIFICATION_PROVIDER", "console")
os.environ.setdefault("REFUND_PROVIDER", "console")
os.environ.setdefault("REMINDERS_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from salonbook.lib.db import SessionLocal, drop_db, engine, init_db
from salonbook.lib.metrics import reset_metrics
from salonbook.models.bookings import Booking, BookingStatus, PaymentStatus
from salonbook.models.services import Service
from salonbook.models.staff import Staff, default_schedule
from salonbook.models.users import User, UserRole, VendorStatus


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    drop_db(engine)
    init_db(engine)
    yield engine
    drop_db(engine)


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def db_session(database):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client():
    """Test client for FastAPI app."""
    from salonbook.api.app import app

    return TestClient(app)


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.CUSTOMER, **kwargs) -> User:
        counter["n"] += 1
        fields = {
            "name": f"{role.value.title()} {counter['n']}",
            "email": f"{role.value}{counter['n']}@example.com",
            "phone": f"+8801700000{counter['n']:03d}",
            "role": role,
        }
        if role == UserRole.VENDOR:
            fields["business_name"] = f"Glow Studio {counter['n']}"
            fields["vendor_status"] = VendorStatus.APPROVED
        fields.update(kwargs)
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def customer(make_user):
    return make_user(UserRole.CUSTOMER)


@pytest.fixture
def vendor(make_user):
    return make_user(UserRole.VENDOR)


@pytest.fixture
def make_service(db_session):
    def _make(vendor: User, **kwargs) -> Service:
        fields = {
            "vendor_id": vendor.id,
            "name": "Haircut & Styling",
            "category": "hair",
            "price": Decimal("45.00"),
            "duration_minutes": 60,
            "active": True,
        }
        fields.update(kwargs)
        service = Service(**fields)
        db_session.add(service)
        db_session.commit()
        return service

    return _make


@pytest.fixture
def service(make_service, vendor):
    return make_service(vendor)


@pytest.fixture
def make_staff(db_session):
    counter = {"n": 0}

    def _make(vendor: User, **kwargs) -> Staff:
        counter["n"] += 1
        fields = {
            "vendor_id": vendor.id,
            "first_name": "Stylist",
            "last_name": str(counter["n"]),
            "service_ids": [],
            "schedule": default_schedule(),
            "is_active": True,
            # Distinct creation times keep the auto-assignment order explicit
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=counter["n"]),
        }
        fields.update(kwargs)
        staff = Staff(**fields)
        db_session.add(staff)
        db_session.commit()
        return staff

    return _make


@pytest.fixture
def staff(make_staff, vendor):
    return make_staff(vendor)


@pytest.fixture
def make_booking(db_session):
    def _make(
        customer: User,
        service: Service,
        scheduled_at: datetime,
        staff: Staff = None,
        **kwargs,
    ) -> Booking:
        fields = {
            "customer_id": customer.id,
            "vendor_id": service.vendor_id,
            "service_id": service.id,
            "staff_id": staff.id if staff else None,
            "scheduled_at": scheduled_at,
            "duration_minutes": service.duration_minutes,
            "status": BookingStatus.CONFIRMED,
            "total_price": service.price,
            "payment_status": PaymentStatus.PENDING,
        }
        fields.update(kwargs)
        booking = Booking(**fields)
        db_session.add(booking)
        db_session.commit()
        return booking

    return _make
