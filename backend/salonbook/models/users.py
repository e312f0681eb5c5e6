"""
User model - base entity for customers, vendors, staff logins, and admins.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import String, Boolean, DateTime, Uuid, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from salonbook.lib.db import Base


class UserRole(str, enum.Enum):
    """User role enumeration."""
    CUSTOMER = "customer"
    VENDOR = "vendor"
    STAFF = "staff"
    ADMIN = "admin"


class VendorStatus(str, enum.Enum):
    """Vendor onboarding/approval status."""
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"
    REJECTED = "rejected"


# Vendors in these states cannot take bookings
INACTIVE_VENDOR_STATUSES = frozenset({VendorStatus.SUSPENDED, VendorStatus.REJECTED})


class User(Base):
    """
    User entity - represents all system users.
    Vendors are users with role=vendor and carry a business name and status.
    """
    __tablename__ = "users"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Contact info
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        index=True,
    )
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Profile
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role"),
        nullable=False,
        index=True,
    )

    # Vendor-only fields
    business_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    vendor_status: Mapped[Optional[VendorStatus]] = mapped_column(
        SQLEnum(VendorStatus, name="vendor_status"),
        nullable=True,
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
        CheckConstraint(
            "phone IS NOT NULL OR email IS NOT NULL",
            name="user_contact_required",
        ),
    )

    @property
    def is_vendor_active(self) -> bool:
        """Whether this user is a vendor able to take bookings."""
        return (
            self.role == UserRole.VENDOR
            and self.vendor_status not in INACTIVE_VENDOR_STATUSES
        )

    @property
    def display_name(self) -> str:
        return self.business_name or self.name

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name}, role={self.role})>"
