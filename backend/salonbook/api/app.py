"""
FastAPI application entry point with health check route.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from salonbook.api.routes import bookings, services, staff, vendors
from salonbook.api.middleware import (
    AppException,
    STORAGE_ERRORS,
    TimeoutMiddleware,
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    storage_exception_handler,
    unhandled_exception_handler,
)
from salonbook.jobs.reminders import register_reminder_jobs
from salonbook.jobs.scheduler import get_scheduler
from salonbook.lib.logging import get_logger, set_correlation_id
from salonbook.lib.metrics import get_metrics_collector
from salonbook.lib.settings import settings

logger = get_logger(__name__)


# Correlation ID middleware
class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation_id to all requests for distributed tracing.
    Accepts X-Correlation-ID from incoming requests or generates a new one.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        # Request state for handlers, context var for log records
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            }
        )

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id

        logger.info("Response sent", extra={"status_code": response.status_code})

        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup/shutdown events.
    """
    logger.info(f"{settings.app_name} starting up...")
    scheduler = None
    if settings.reminders_enabled:
        scheduler = get_scheduler()
        register_reminder_jobs(scheduler)
        scheduler.start()
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    logger.info(f"{settings.app_name} shutting down...")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Staff scheduling and conflict-free booking for salons and spas",
    lifespan=lifespan,
)


# CORS middleware - configure allowed origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Next.js / React dev server
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Correlation ID middleware wraps the timeout middleware so 504s carry the id
app.add_middleware(TimeoutMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
for storage_error in STORAGE_ERRORS:
    app.add_exception_handler(storage_error, storage_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


# Include routers
app.include_router(bookings.router)
app.include_router(services.router)
app.include_router(staff.router)
app.include_router(vendors.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics_endpoint():
    """
    Prometheus-compatible metrics endpoint.

    Exposes application metrics in Prometheus text format for scraping.
    Not included in OpenAPI docs (internal/ops endpoint).

    Metrics exposed:
    - bookings_created_total: Bookings created by assignment mode
    - booking_rejections_total: Rejections by reason code
    - bookings_cancelled_total: Successful cancellations
    - staff_auto_assignments_total: Auto-assignment outcomes
    - notifications_total: Notification attempts by type, channel, status
    - refunds_total: Refund initiations by status
    - reminders_sent_total: Reminders dispatched by the reminder job
    """
    metrics = get_metrics_collector()
    return PlainTextResponse(
        content=metrics.export_prometheus(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )
