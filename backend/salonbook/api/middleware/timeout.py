"""
Request timeout middleware.

Bounds every request by settings.request_timeout_seconds and answers
504 REQUEST_TIMEOUT when the budget is exceeded. Sync handlers keep
running in the threadpool after the 504, so booking writes check the
request's RequestDeadline before committing; a write that already
claimed its commit is waited for instead. Storage-level timeouts inside
the booking transaction are handled separately (503).
"""
import asyncio
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from salonbook.api.middleware.error_handler import RequestTimeoutException
from salonbook.lib.deadline import RequestDeadline
from salonbook.lib.logging import get_logger
from salonbook.lib.settings import settings

logger = get_logger(__name__)


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Abort requests that take longer than the configured timeout."""

    def __init__(self, app, timeout_seconds: Optional[float] = None):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds or settings.request_timeout_seconds

    async def dispatch(self, request: Request, call_next):
        deadline = RequestDeadline(self.timeout_seconds)
        request.state.deadline = deadline

        response_task = asyncio.ensure_future(call_next(request))
        done, _ = await asyncio.wait({response_task}, timeout=self.timeout_seconds)
        if response_task in done:
            return response_task.result()

        if not deadline.expire():
            logger.warning(
                "Request past its timeout is committing, waiting for it",
                extra={"path": request.url.path, "method": request.method},
            )
            return await response_task

        response_task.cancel()
        exc = RequestTimeoutException()
        correlation_id = getattr(request.state, "correlation_id", "unknown")
        logger.error(
            "Request timed out",
            extra={
                "correlation_id": correlation_id,
                "path": request.url.path,
                "method": request.method,
                "timeout_seconds": self.timeout_seconds,
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "code": exc.code,
                "correlation_id": correlation_id,
            },
        )
