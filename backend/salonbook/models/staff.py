"""
Staff model - bookable team members belonging to a vendor.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4, UUID
import copy
import enum

from sqlalchemy import JSON, String, Boolean, DateTime, ForeignKey, Uuid, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from salonbook.lib.db import Base


class DayOfWeek(str, enum.Enum):
    """Weekly schedule keys, indexed like date.weekday()."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        return list(cls)[weekday]


def _day(start: str, end: str, available: bool = True, breaks: Optional[list] = None) -> dict:
    return {
        "is_available": available,
        "start_time": start,
        "end_time": end,
        "breaks": breaks or [],
    }


_LUNCH = [{"start_time": "13:00", "end_time": "14:00"}]

# Schedule given to new staff: weekdays 09-18, Saturday 09-17, Sunday off
DEFAULT_SCHEDULE: dict[str, dict] = {
    DayOfWeek.MONDAY.value: _day("09:00", "18:00", breaks=_LUNCH),
    DayOfWeek.TUESDAY.value: _day("09:00", "18:00", breaks=_LUNCH),
    DayOfWeek.WEDNESDAY.value: _day("09:00", "18:00", breaks=_LUNCH),
    DayOfWeek.THURSDAY.value: _day("09:00", "18:00", breaks=_LUNCH),
    DayOfWeek.FRIDAY.value: _day("09:00", "18:00", breaks=_LUNCH),
    DayOfWeek.SATURDAY.value: _day("09:00", "17:00", breaks=_LUNCH),
    DayOfWeek.SUNDAY.value: _day("09:00", "17:00", available=False),
}


def default_schedule() -> dict[str, dict]:
    return copy.deepcopy(DEFAULT_SCHEDULE)


class Staff(Base):
    """
    Staff entity - belongs to exactly one vendor.

    service_ids lists the services this member may perform; an empty list
    means every service of the vendor.
    """
    __tablename__ = "staff"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    vendor_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Profile
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Qualifications
    service_ids: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=list,
    )

    # Weekly schedule: {monday: {is_available, start_time, end_time, breaks}, ...}
    schedule: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=default_schedule,
    )

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_staff_vendor_active", "vendor_id", "is_active"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def can_perform(self, service_id) -> bool:
        """Whether this member is qualified for the given service."""
        if not self.service_ids:
            return True
        return str(service_id) in {str(s) for s in self.service_ids}

    def __repr__(self) -> str:
        return f"<Staff(id={self.id}, name={self.full_name}, vendor_id={self.vendor_id})>"
