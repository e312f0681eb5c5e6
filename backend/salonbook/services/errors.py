"""
Booking domain rejections.

Each class pins one stable reason code onto the matching HTTP error class so
routes can let them propagate to the app exception handler unchanged.
"""
from typing import Optional

from salonbook.api.middleware.error_handler import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)


class BookingInPastError(BadRequestException):
    code = "BOOKING_IN_PAST"

    def __init__(self, message: str = "Booking time cannot be in the past"):
        super().__init__(message)


class ServiceNotFoundError(NotFoundException):
    code = "SERVICE_NOT_FOUND"

    def __init__(self, service_id: Optional[str] = None):
        super().__init__("Service", service_id)


class ServiceInactiveError(BadRequestException):
    code = "SERVICE_INACTIVE"

    def __init__(self, message: str = "Service is not currently offered"):
        super().__init__(message)


class VendorNotFoundError(NotFoundException):
    code = "VENDOR_NOT_FOUND"

    def __init__(self, vendor_id: Optional[str] = None):
        super().__init__("Vendor", vendor_id)


class VendorInactiveError(BadRequestException):
    code = "VENDOR_INACTIVE"

    def __init__(self, message: str = "Vendor is not currently accepting bookings"):
        super().__init__(message)


class VendorServiceMismatchError(BadRequestException):
    code = "VENDOR_SERVICE_MISMATCH"

    def __init__(self, message: str = "Service does not belong to the specified vendor"):
        super().__init__(message)


class StaffNotFoundError(NotFoundException):
    code = "STAFF_NOT_FOUND"

    def __init__(self, staff_id: Optional[str] = None):
        super().__init__("Staff", staff_id)


class StaffVendorMismatchError(BadRequestException):
    code = "STAFF_VENDOR_MISMATCH"

    def __init__(self, message: str = "Staff member does not belong to this vendor"):
        super().__init__(message)


class StaffServiceMismatchError(BadRequestException):
    code = "STAFF_SERVICE_MISMATCH"

    def __init__(self, message: str = "Staff member cannot perform this service"):
        super().__init__(message)


class StaffUnavailableError(BadRequestException):
    code = "STAFF_UNAVAILABLE"

    def __init__(self, message: str = "Staff member is not available at the requested time"):
        super().__init__(message)


class StaffTimeConflictError(BadRequestException):
    code = "STAFF_TIME_CONFLICT"

    def __init__(self, message: str = "Staff member already has a booking at this time"):
        super().__init__(message)


class NoStaffAvailableError(BadRequestException):
    code = "NO_STAFF_AVAILABLE"

    def __init__(self, message: str = "No staff available at the requested time"):
        super().__init__(message)


class BookingNotFoundError(NotFoundException):
    code = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: Optional[str] = None):
        super().__init__("Booking", booking_id)


class BookingForbiddenError(ForbiddenException):
    code = "BOOKING_FORBIDDEN"

    def __init__(self, message: str = "You do not have access to this booking"):
        super().__init__(message)


class BookingNotCancellableError(ConflictException):
    code = "BOOKING_NOT_CANCELLABLE"

    def __init__(self, status: str):
        super().__init__(
            f"Booking cannot be cancelled in status '{status}'",
            details={"status": status},
        )


class CancellationWindowClosedError(BadRequestException):
    code = "CANCELLATION_WINDOW_CLOSED"

    def __init__(self, window_hours: float):
        super().__init__(
            f"Bookings cannot be cancelled less than {window_hours:g} hours before the start time",
            details={"window_hours": window_hours},
        )
