"""
SQLAlchemy models package.
Import all models here to ensure they're registered with Base.metadata.
"""
from salonbook.models.users import User
from salonbook.models.services import Service
from salonbook.models.staff import Staff
from salonbook.models.bookings import Booking
from salonbook.models.notifications import NotificationLog

__all__ = [
    "User",
    "Service",
    "Staff",
    "Booking",
    "NotificationLog",
]
