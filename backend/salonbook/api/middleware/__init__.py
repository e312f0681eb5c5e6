"""
API middleware module.
"""
from salonbook.api.middleware.error_handler import (
    AppException,
    NotFoundException,
    UnauthorizedException,
    ForbiddenException,
    BadRequestException,
    ConflictException,
    ServiceUnavailableException,
    RequestTimeoutException,
    STORAGE_ERRORS,
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    storage_exception_handler,
    unhandled_exception_handler,
)
from salonbook.api.middleware.timeout import TimeoutMiddleware

__all__ = [
    "AppException",
    "NotFoundException",
    "UnauthorizedException",
    "ForbiddenException",
    "BadRequestException",
    "ConflictException",
    "ServiceUnavailableException",
    "RequestTimeoutException",
    "STORAGE_ERRORS",
    "app_exception_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "storage_exception_handler",
    "unhandled_exception_handler",
    "TimeoutMiddleware",
]
