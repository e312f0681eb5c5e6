"""
Bookings API routes.

Handlers are sync (run in the threadpool) and share the request's session
with the booking service; notifications are queued as background tasks
and only after the booking decision is committed.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from pydantic import AwareDatetime, BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from salonbook.api.dependencies import get_current_user, get_db, require_customer
from salonbook.lib.deadline import RequestDeadline
from salonbook.models.bookings import Booking, BookingStatus, PaymentStatus, StaffPreference
from salonbook.models.notifications import NotificationType
from salonbook.models.services import Service
from salonbook.models.staff import Staff
from salonbook.models.users import User
from salonbook.services.booking_service import BookingRequest, BookingService
from salonbook.services.notification_service import dispatch_booking_notification


# Pydantic schemas
class BookingCreateRequest(BaseModel):
    """Booking creation body. vendorId is checked against the service, never trusted."""
    service_id: UUID = Field(alias="serviceId")
    vendor_id: Optional[UUID] = Field(None, alias="vendorId")
    # Naive times are ambiguous once business_timezone is not UTC
    scheduled_at: AwareDatetime = Field(alias="datetime")
    notes: Optional[str] = Field(None, max_length=500)
    staff_id: Optional[UUID] = Field(None, alias="staffId")
    staff_preference: StaffPreference = Field(StaffPreference.ANY, alias="staffPreference")

    model_config = ConfigDict(populate_by_name=True)


class BookingSummary(BaseModel):
    id: UUID
    scheduled_at: datetime = Field(alias="datetime")
    status: BookingStatus
    total_price: float = Field(alias="totalPrice")
    staff_id: Optional[UUID] = Field(None, alias="staffId")

    model_config = ConfigDict(populate_by_name=True)


class BookingCreatedResponse(BaseModel):
    id: UUID
    success: bool = True
    booking: BookingSummary


class BookingDetail(BookingSummary):
    duration_minutes: int = Field(alias="duration")
    payment_status: PaymentStatus = Field(alias="paymentStatus")
    staff_preference: StaffPreference = Field(alias="staffPreference")
    notes: Optional[str] = None
    customer_id: UUID = Field(alias="customerId")
    vendor_id: UUID = Field(alias="vendorId")
    vendor_name: Optional[str] = Field(None, alias="vendorName")
    service_id: UUID = Field(alias="serviceId")
    service_name: Optional[str] = Field(None, alias="serviceName")
    staff_name: Optional[str] = Field(None, alias="staffName")
    cancelled_at: Optional[datetime] = Field(None, alias="cancelledAt")
    created_at: datetime = Field(alias="createdAt")


class BookingDetailResponse(BaseModel):
    success: bool = True
    booking: BookingDetail


class BookingCancelledResponse(BaseModel):
    success: bool = True
    id: UUID
    status: BookingStatus
    payment_status: PaymentStatus = Field(alias="paymentStatus")
    refund_status: Optional[str] = Field(None, alias="refundStatus")
    cancelled_at: Optional[datetime] = Field(None, alias="cancelledAt")

    model_config = ConfigDict(populate_by_name=True)


# Router
router = APIRouter(prefix="/bookings", tags=["bookings"])


def _correlation_id(request: Request) -> Optional[str]:
    return getattr(request.state, "correlation_id", None)


def _deadline(request: Request) -> Optional[RequestDeadline]:
    return getattr(request.state, "deadline", None)


@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    body: BookingCreateRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    customer: User = Depends(require_customer),
    db: Session = Depends(get_db),
) -> BookingCreatedResponse:
    """
    Create a booking for the authenticated customer.

    Staff is the requested staffId, or auto-assigned when staffPreference
    is "any". The booking is created pending with the service's current
    duration and price.

    Returns:
        201 with the booking summary; rejections carry a reason code
    """
    booking = BookingService(db).create_booking(
        BookingRequest(
            customer_id=customer.id,
            service_id=body.service_id,
            scheduled_at=body.scheduled_at,
            vendor_id=body.vendor_id,
            staff_id=body.staff_id,
            staff_preference=body.staff_preference,
            notes=body.notes,
        ),
        deadline=_deadline(request),
    )

    background_tasks.add_task(
        dispatch_booking_notification,
        booking.id,
        NotificationType.BOOKING_CONFIRMATION,
        _correlation_id(request),
    )

    return BookingCreatedResponse(
        id=booking.id,
        booking=BookingSummary(
            id=booking.id,
            scheduled_at=booking.starts_at,
            status=booking.status,
            total_price=float(booking.total_price),
            staff_id=booking.staff_id,
        ),
    )


@router.get("/{booking_id}", response_model=BookingDetailResponse)
def get_booking(
    booking_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BookingDetailResponse:
    """
    Get a booking visible to its customer, its vendor, or an admin.
    """
    booking = BookingService(db).get_booking_for_user(booking_id, user)
    service = db.get(Service, booking.service_id)
    vendor = db.get(User, booking.vendor_id)
    staff = db.get(Staff, booking.staff_id) if booking.staff_id else None

    return BookingDetailResponse(booking=_detail(booking, service, vendor, staff))


@router.patch("/{booking_id}/cancel", response_model=BookingCancelledResponse)
def cancel_booking(
    booking_id: UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BookingCancelledResponse:
    """
    Cancel a booking on behalf of its customer.

    Paid bookings move to refund_pending and a refund is requested; a
    failed refund request leaves paymentStatus at refund_failed.
    """
    result = BookingService(db).cancel_booking(booking_id, user, deadline=_deadline(request))
    booking = result.booking
    correlation_id = _correlation_id(request)

    background_tasks.add_task(
        dispatch_booking_notification,
        booking.id,
        NotificationType.BOOKING_CANCELLATION,
        correlation_id,
    )
    if result.refund_initiated:
        background_tasks.add_task(
            dispatch_booking_notification,
            booking.id,
            NotificationType.REFUND_INITIATED,
            correlation_id,
        )

    return BookingCancelledResponse(
        id=booking.id,
        status=booking.status,
        payment_status=booking.payment_status,
        refund_status=result.refund_status,
        cancelled_at=booking.cancelled_at,
    )


def _detail(
    booking: Booking,
    service: Optional[Service],
    vendor: Optional[User],
    staff: Optional[Staff],
) -> BookingDetail:
    return BookingDetail(
        id=booking.id,
        scheduled_at=booking.starts_at,
        status=booking.status,
        total_price=float(booking.total_price),
        staff_id=booking.staff_id,
        duration_minutes=booking.duration_minutes,
        payment_status=booking.payment_status,
        staff_preference=booking.staff_preference,
        notes=booking.notes,
        customer_id=booking.customer_id,
        vendor_id=booking.vendor_id,
        vendor_name=vendor.display_name if vendor else None,
        service_id=booking.service_id,
        service_name=service.name if service else None,
        staff_name=staff.full_name if staff else None,
        cancelled_at=booking.cancelled_at,
        created_at=booking.created_at,
    )
