"""
Booking creation and cancellation.

Creation runs as one unit of work on the request's session: resolve the
service and its vendor, resolve staff (explicit or auto-assigned), re-check
availability and conflicts with the staff row locked, insert the booking
and commit. Any failure rolls the whole unit back. Notifications are the
caller's job and only happen after commit.

Atomicity between the final conflict check and the insert comes from the
storage engine (row lock on PostgreSQL, BEGIN IMMEDIATE on SQLite, see
salonbook.lib.db); there is no in-process locking.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from salonbook.api.middleware.error_handler import (
    AppException,
    RequestTimeoutException,
    ServiceUnavailableException,
    STORAGE_ERRORS,
)
from salonbook.lib.deadline import RequestDeadline
from salonbook.lib.logging import get_logger
from salonbook.lib.metrics import get_metrics_collector
from salonbook.lib.settings import settings
from salonbook.lib.timeutils import ensure_utc, utcnow
from salonbook.models.bookings import (
    Booking,
    BookingStatus,
    FINAL_STATUSES,
    PaymentStatus,
    StaffPreference,
)
from salonbook.models.services import Service
from salonbook.models.staff import Staff
from salonbook.models.users import User, UserRole, INACTIVE_VENDOR_STATUSES
from salonbook.services.assignment_service import AssignmentService
from salonbook.services.availability_service import works_at
from salonbook.services.conflict_service import ConflictService
from salonbook.services.errors import (
    BookingForbiddenError,
    BookingInPastError,
    BookingNotCancellableError,
    BookingNotFoundError,
    CancellationWindowClosedError,
    NoStaffAvailableError,
    ServiceInactiveError,
    ServiceNotFoundError,
    StaffNotFoundError,
    StaffServiceMismatchError,
    StaffTimeConflictError,
    StaffUnavailableError,
    StaffVendorMismatchError,
    VendorInactiveError,
    VendorNotFoundError,
    VendorServiceMismatchError,
)
from salonbook.services.refund_service import RefundService


logger = get_logger(__name__)


@dataclass
class BookingRequest:
    """A validated booking request from an authenticated customer."""
    customer_id: UUID
    service_id: UUID
    scheduled_at: datetime
    vendor_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    staff_preference: StaffPreference = StaffPreference.ANY
    notes: Optional[str] = None


@dataclass
class CancellationResult:
    booking: Booking
    refund_requested: bool = False
    refund_initiated: Optional[bool] = None

    @property
    def refund_status(self) -> Optional[str]:
        if not self.refund_requested:
            return None
        return "initiated" if self.refund_initiated else "failed"


def _claim_commit(deadline: Optional[RequestDeadline]) -> None:
    if deadline is not None and not deadline.claim_commit():
        raise RequestTimeoutException()


class BookingService:
    """Booking lifecycle operations that must be atomic."""

    def __init__(self, db: Session, refund_service: Optional[RefundService] = None):
        self.db = db
        self.conflicts = ConflictService(db)
        self.assignment = AssignmentService(db)
        self._refund_service = refund_service

    @property
    def refunds(self) -> RefundService:
        if self._refund_service is None:
            self._refund_service = RefundService(self.db)
        return self._refund_service

    # ===== Creation =====

    def create_booking(
        self,
        request: BookingRequest,
        now: Optional[datetime] = None,
        deadline: Optional[RequestDeadline] = None,
    ) -> Booking:
        """
        Create a pending booking or reject it with a coded error.

        Args:
            request: Booking request
            now: Current instant (defaults to the wall clock)
            deadline: Request deadline; the commit is skipped once it has passed

        Returns:
            The committed Booking

        Raises:
            AppException: Subclass carrying the rejection reason code
            ServiceUnavailableException: Storage unreachable or timed out
            RequestTimeoutException: The request deadline passed before commit
        """
        now = ensure_utc(now) if now else utcnow()
        start = ensure_utc(request.scheduled_at)

        if start < now - timedelta(minutes=settings.booking_past_tolerance_minutes):
            self._reject(BookingInPastError(), request)

        try:
            booking = self._create_in_transaction(request, start)
            _claim_commit(deadline)
            self.db.commit()
        except AppException as e:
            self.db.rollback()
            self._reject(e, request)
        except STORAGE_ERRORS as e:
            self.db.rollback()
            logger.error(
                f"Storage failure while creating booking: {e.__class__.__name__}",
                extra={"service_id": str(request.service_id)},
                exc_info=True,
            )
            self._reject(ServiceUnavailableException(), request)
        except Exception:
            self.db.rollback()
            raise

        assignment = "none"
        if booking.staff_id is not None:
            assignment = "specific" if request.staff_id else "auto"
        get_metrics_collector().increment_bookings_created(assignment=assignment)
        logger.info(
            "Booking created",
            extra={
                "booking_id": str(booking.id),
                "customer_id": str(booking.customer_id),
                "vendor_id": str(booking.vendor_id),
                "service_id": str(booking.service_id),
                "staff_id": str(booking.staff_id) if booking.staff_id else None,
                "scheduled_at": start.isoformat(),
                "assignment": assignment,
            },
        )
        return booking

    def _create_in_transaction(self, request: BookingRequest, start: datetime) -> Booking:
        service = self.db.get(Service, request.service_id)
        if service is None:
            raise ServiceNotFoundError(str(request.service_id))
        if not service.active:
            raise ServiceInactiveError()

        vendor = self.db.get(User, service.vendor_id)
        if vendor is None or vendor.role != UserRole.VENDOR:
            raise VendorNotFoundError(str(service.vendor_id))
        if vendor.vendor_status in INACTIVE_VENDOR_STATUSES:
            raise VendorInactiveError()

        if request.vendor_id is not None and request.vendor_id != service.vendor_id:
            if settings.strict_vendor_check:
                raise VendorServiceMismatchError()
            logger.warning(
                "Ignoring client vendor id that does not own the service",
                extra={
                    "requested_vendor_id": str(request.vendor_id),
                    "service_vendor_id": str(service.vendor_id),
                },
            )

        duration = service.duration_minutes or settings.default_service_duration_minutes
        staff = self._resolve_staff(request, service, start, duration)

        # Final gate: the staff row is locked, so nothing can slip in between
        # this check and the insert below.
        if staff is not None:
            if not works_at(staff, start):
                raise StaffUnavailableError()
            if self.conflicts.has_conflict(staff.id, start, duration):
                raise StaffTimeConflictError()

        booking = Booking(
            customer_id=request.customer_id,
            vendor_id=service.vendor_id,
            service_id=service.id,
            staff_id=staff.id if staff else None,
            staff_preference=request.staff_preference,
            scheduled_at=start,
            duration_minutes=duration,
            status=BookingStatus.PENDING,
            total_price=service.price,
            payment_status=PaymentStatus.PENDING,
            notes=request.notes,
        )
        self.db.add(booking)
        self.db.flush()
        return booking

    def _resolve_staff(
        self,
        request: BookingRequest,
        service: Service,
        start: datetime,
        duration: int,
    ) -> Optional[Staff]:
        if request.staff_id is not None:
            staff = self._lock_staff(request.staff_id)
            if staff is None:
                raise StaffNotFoundError(str(request.staff_id))
            if staff.vendor_id != service.vendor_id:
                raise StaffVendorMismatchError()
            if not staff.can_perform(service.id):
                raise StaffServiceMismatchError()
            return staff

        if request.staff_preference == StaffPreference.ANY:
            # A concurrent request can book the pick between search and lock;
            # once the lock is held a second search sees that booking.
            for _ in range(2):
                candidate = self.assignment.find_available_staff(service.vendor_id, service.id, start, duration)
                if candidate is None:
                    raise NoStaffAvailableError()
                staff = self._lock_staff(candidate.id)
                if not self.conflicts.has_conflict(staff.id, start, duration):
                    return staff
                logger.info(
                    "Auto-assigned staff taken before lock, searching again",
                    extra={"staff_id": str(staff.id), "start": start.isoformat()},
                )
            return staff

        return None

    def _lock_staff(self, staff_id: UUID) -> Optional[Staff]:
        """Load a staff row with FOR UPDATE (a no-op on SQLite)."""
        stmt = select(Staff).where(Staff.id == staff_id).with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def _reject(self, error: AppException, request: BookingRequest):
        get_metrics_collector().increment_booking_rejections(code=error.code)
        logger.info(
            "Booking rejected",
            extra={
                "code": error.code,
                "customer_id": str(request.customer_id),
                "service_id": str(request.service_id),
                "staff_id": str(request.staff_id) if request.staff_id else None,
            },
        )
        raise error

    # ===== Lookup =====

    def get_booking_for_user(self, booking_id: UUID, user: User) -> Booking:
        """Booking visible to its customer, its vendor, or an admin."""
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            raise BookingNotFoundError(str(booking_id))
        if user.role != UserRole.ADMIN and user.id not in (booking.customer_id, booking.vendor_id):
            raise BookingForbiddenError()
        return booking

    # ===== Cancellation =====

    def cancel_booking(
        self,
        booking_id: UUID,
        actor: User,
        now: Optional[datetime] = None,
        deadline: Optional[RequestDeadline] = None,
    ) -> CancellationResult:
        """
        Cancel a booking on behalf of its customer.

        A paid booking moves to refund_pending and a refund is requested
        after the cancellation commits. A failed refund request leaves the
        booking cancelled with payment_status refund_failed.

        Raises:
            BookingNotFoundError, BookingForbiddenError,
            BookingNotCancellableError, CancellationWindowClosedError,
            ServiceUnavailableException, RequestTimeoutException
        """
        now = ensure_utc(now) if now else utcnow()
        window = timedelta(hours=settings.cancellation_window_hours)

        try:
            stmt = select(Booking).where(Booking.id == booking_id).with_for_update()
            booking = self.db.execute(stmt).scalar_one_or_none()
            if booking is None:
                raise BookingNotFoundError(str(booking_id))
            if booking.customer_id != actor.id:
                raise BookingForbiddenError("Only the customer who made the booking can cancel it")
            if booking.status in FINAL_STATUSES:
                raise BookingNotCancellableError(booking.status.value)
            if booking.starts_at - now < window:
                raise CancellationWindowClosedError(settings.cancellation_window_hours)

            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = now
            booking.cancelled_by = actor.id
            refund_requested = booking.payment_status == PaymentStatus.PAID
            if refund_requested:
                booking.payment_status = PaymentStatus.REFUND_PENDING
            _claim_commit(deadline)
            self.db.commit()
        except AppException as e:
            self.db.rollback()
            get_metrics_collector().increment_booking_rejections(code=e.code)
            logger.info(
                "Cancellation rejected",
                extra={"code": e.code, "booking_id": str(booking_id), "actor_id": str(actor.id)},
            )
            raise
        except STORAGE_ERRORS as e:
            self.db.rollback()
            logger.error(
                f"Storage failure while cancelling booking: {e.__class__.__name__}",
                extra={"booking_id": str(booking_id)},
                exc_info=True,
            )
            get_metrics_collector().increment_booking_rejections(code=ServiceUnavailableException.code)
            raise ServiceUnavailableException() from e
        except Exception:
            self.db.rollback()
            raise

        get_metrics_collector().increment_cancellations()
        logger.info(
            "Booking cancelled",
            extra={
                "booking_id": str(booking.id),
                "actor_id": str(actor.id),
                "refund_requested": refund_requested,
            },
        )

        result = CancellationResult(booking=booking, refund_requested=refund_requested)
        if refund_requested:
            result.refund_initiated = self.refunds.initiate_refund(booking)
        return result
