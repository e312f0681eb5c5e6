"""
Tests for error handler middleware and custom exceptions.
"""
import pytest
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

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
from salonbook.services.errors import (
    BookingNotCancellableError,
    CancellationWindowClosedError,
    StaffNotFoundError,
    StaffTimeConflictError,
)


@pytest.mark.unit
def test_app_exception_creation():
    """Test creating custom AppException."""
    exc = AppException(
        message="Test error",
        status_code=500,
        details={"key": "value"},
    )

    assert exc.message == "Test error"
    assert exc.status_code == 500
    assert exc.details == {"key": "value"}
    assert exc.code == "INTERNAL_ERROR"


@pytest.mark.unit
def test_not_found_exception():
    """Test NotFoundException creation."""
    exc = NotFoundException("Booking", "123")

    assert exc.message == "Booking with id '123' not found"
    assert exc.status_code == 404
    assert exc.code == "NOT_FOUND"
    assert exc.details == {"resource": "Booking", "resource_id": "123"}


@pytest.mark.unit
def test_not_found_exception_without_id():
    """Test NotFoundException without resource ID."""
    exc = NotFoundException("Booking")

    assert exc.message == "Booking not found"
    assert exc.status_code == 404


@pytest.mark.unit
@pytest.mark.parametrize(
    "exc, status_code, code",
    [
        (UnauthorizedException(), 401, "UNAUTHORIZED"),
        (ForbiddenException("Access denied"), 403, "FORBIDDEN"),
        (BadRequestException("Invalid input"), 400, "BAD_REQUEST"),
        (ConflictException("Already cancelled"), 409, "CONFLICT"),
        (ServiceUnavailableException(), 503, "STORAGE_UNAVAILABLE"),
        (RequestTimeoutException(), 504, "REQUEST_TIMEOUT"),
    ],
)
def test_exception_status_and_code(exc, status_code, code):
    """Test each exception class carries its HTTP status and default code."""
    assert exc.status_code == status_code
    assert exc.code == code


@pytest.mark.unit
def test_explicit_code_overrides_class_code():
    """Test passing a code to the constructor."""
    exc = BadRequestException("Nope", code="CUSTOM_CODE")

    assert exc.code == "CUSTOM_CODE"
    assert BadRequestException.code == "BAD_REQUEST"


@pytest.mark.unit
def test_domain_errors_pin_codes():
    """Test booking errors map to their reason codes and statuses."""
    assert (StaffTimeConflictError().status_code, StaffTimeConflictError().code) == (400, "STAFF_TIME_CONFLICT")
    assert (StaffNotFoundError("x").status_code, StaffNotFoundError("x").code) == (404, "STAFF_NOT_FOUND")

    not_cancellable = BookingNotCancellableError("completed")
    assert not_cancellable.status_code == 409
    assert not_cancellable.details == {"status": "completed"}

    window = CancellationWindowClosedError(2)
    assert "2 hours" in window.message
    assert window.details == {"window_hours": 2}


@pytest.mark.integration
def test_app_exception_handler_in_route():
    """Test custom exception handler in actual route."""
    app = FastAPI()
    app.add_exception_handler(AppException, app_exception_handler)

    @app.get("/test-error")
    async def test_error():
        raise StaffTimeConflictError()

    client = TestClient(app)
    response = client.get("/test-error")

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "STAFF_TIME_CONFLICT"
    assert data["error"] == "Staff member already has a booking at this time"
    assert "correlation_id" in data
    assert "details" not in data  # Empty details are omitted


@pytest.mark.integration
def test_validation_error_handler():
    """Test Pydantic validation errors become 400 VALIDATION_ERROR."""
    app = FastAPI()
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    class TestModel(BaseModel):
        email: str = Field(..., pattern=r"^[\w\.-]+@[\w\.-]+\.\w+$")
        age: int = Field(..., ge=0, le=150)

    @app.post("/test-validation")
    async def test_validation(data: TestModel):
        return {"ok": True}

    client = TestClient(app)
    response = client.post("/test-validation", json={"email": "invalid", "age": 200})

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Invalid input"
    assert data["code"] == "VALIDATION_ERROR"
    assert len(data["details"]["errors"]) == 2


@pytest.mark.integration
def test_http_exception_handler():
    """Test HTTP exception handler."""
    app = FastAPI()
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    @app.get("/test-http-error")
    async def test_http_error():
        raise StarletteHTTPException(status_code=404, detail="Page not found")

    client = TestClient(app)
    response = client.get("/test-http-error")

    assert response.status_code == 404
    data = response.json()
    assert data["error"] == "Page not found"
    assert data["code"] == "HTTP_404"
    assert "correlation_id" in data


@pytest.mark.integration
def test_storage_exception_handler():
    """Test storage errors escaping a route become 503."""
    app = FastAPI()
    for storage_error in STORAGE_ERRORS:
        app.add_exception_handler(storage_error, storage_exception_handler)

    @app.get("/test-storage")
    def test_storage():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    client = TestClient(app, raise_server_exceptions=False)
    response = client.get("/test-storage")

    assert response.status_code == 503
    assert response.json()["code"] == "STORAGE_UNAVAILABLE"


@pytest.mark.integration
def test_unhandled_exception_handler():
    """Test handler for unhandled exceptions."""
    app = FastAPI()
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/test-unhandled")
    async def test_unhandled():
        raise ValueError("Unexpected error")

    client = TestClient(app, raise_server_exceptions=False)
    response = client.get("/test-unhandled")

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "Internal server error"
    assert data["code"] == "INTERNAL_ERROR"


@pytest.mark.integration
def test_exception_with_correlation_id():
    """Test that correlation ID is included in error response."""
    app = FastAPI()
    app.add_exception_handler(AppException, app_exception_handler)

    @app.get("/test-correlation")
    async def test_correlation(request: Request):
        request.state.correlation_id = "test-correlation-123"
        raise BadRequestException("Test error")

    client = TestClient(app)
    response = client.get("/test-correlation")

    assert response.status_code == 400
    assert response.json()["correlation_id"] == "test-correlation-123"


@pytest.mark.integration
def test_exception_details_included():
    """Test that exception details are included in response."""
    app = FastAPI()
    app.add_exception_handler(AppException, app_exception_handler)

    @app.get("/test-details")
    async def test_details():
        raise BookingNotCancellableError("cancelled")

    client = TestClient(app)
    response = client.get("/test-details")

    assert response.status_code == 409
    data = response.json()
    assert data["code"] == "BOOKING_NOT_CANCELLABLE"
    assert data["details"] == {"status": "cancelled"}
