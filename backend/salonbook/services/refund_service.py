"""
Refund initiation for cancelled, already-paid bookings.

Initiation is best-effort: the cancellation has been committed before a
refund is requested, and a failure only moves payment_status to
refund_failed for manual reconciliation.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import httpx
from sqlalchemy.orm import Session
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from salonbook.lib.logging import get_logger, get_correlation_id
from salonbook.lib.metrics import get_metrics_collector
from salonbook.lib.settings import settings
from salonbook.models.bookings import Booking, PaymentStatus


logger = get_logger(__name__)


class RefundGatewayError(Exception):
    """Payment gateway answered with a retryable failure."""


class RefundProvider(ABC):
    """
    Abstract base class for refund initiation providers.
    """

    @abstractmethod
    def initiate_refund(self, booking_id: UUID, amount: Decimal, reason: str) -> str:
        """
        Ask the payment gateway to refund a booking.

        Returns:
            Gateway reference for the refund

        Raises:
            Exception: If the refund could not be initiated
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used in logs."""


class ConsoleRefundProvider(RefundProvider):
    """
    Console refund provider for development/testing.
    Logs the request and returns a synthetic reference.
    """

    @property
    def name(self) -> str:
        return "console"

    def initiate_refund(self, booking_id: UUID, amount: Decimal, reason: str) -> str:
        reference = f"console-refund-{uuid4().hex[:12]}"
        logger.info(
            "Refund logged to console",
            extra={"booking_id": str(booking_id), "amount": str(amount), "reference": reference},
        )
        return reference


class HttpRefundProvider(RefundProvider):
    """
    Refund provider posting to a payment gateway over HTTP.

    Transport errors and 5xx answers are retried with exponential backoff;
    4xx answers fail immediately.
    """

    def __init__(
        self,
        gateway_url: Optional[str] = None,
        api_key: Optional[str] = None,
        max_attempts: Optional[int] = None,
        client: Optional[httpx.Client] = None,
        backoff_seconds: float = 1.0,
    ):
        self.gateway_url = gateway_url or settings.refund_gateway_url
        self.api_key = api_key or settings.refund_gateway_api_key
        self.client = client or httpx.Client(timeout=10.0)

        self._post = retry(
            stop=stop_after_attempt(max_attempts or settings.refund_max_attempts),
            wait=wait_exponential(multiplier=backoff_seconds, max=10),
            retry=retry_if_exception_type((httpx.TransportError, RefundGatewayError)),
            reraise=True,
        )(self._post_once)

    @property
    def name(self) -> str:
        return "http"

    def _post_once(self, payload: dict) -> dict:
        response = self.client.post(
            self.gateway_url,
            json=payload,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Idempotency-Key": payload["booking_id"],
            },
        )
        if response.status_code >= 500:
            raise RefundGatewayError(f"Gateway returned {response.status_code}")
        response.raise_for_status()
        return response.json()

    def initiate_refund(self, booking_id: UUID, amount: Decimal, reason: str) -> str:
        if not self.gateway_url:
            raise ValueError("Refund gateway URL is not configured")

        body = self._post({
            "booking_id": str(booking_id),
            "amount": str(amount),
            "reason": reason,
        })
        reference = body.get("refund_id") or body.get("id")
        if not reference:
            raise ValueError("Gateway response did not include a refund reference")
        return str(reference)


class RefundService:
    """Starts refunds and records the outcome on the booking."""

    def __init__(self, db: Session, provider: Optional[RefundProvider] = None):
        self.db = db
        self.provider = provider or get_refund_provider()

    def initiate_refund(self, booking: Booking, reason: str = "booking_cancelled") -> bool:
        """
        Request a refund for a booking in refund_pending state.

        Never raises: on failure the booking is marked refund_failed.

        Returns:
            True if the gateway accepted the refund request
        """
        metrics = get_metrics_collector()
        extra = {
            "booking_id": str(booking.id),
            "amount": str(booking.total_price),
            "provider": self.provider.name,
            "correlation_id": get_correlation_id(),
        }

        try:
            reference = self.provider.initiate_refund(booking.id, booking.total_price, reason)
        except Exception as e:
            logger.error(f"Refund initiation failed: {e}", extra=extra, exc_info=True)
            metrics.increment_refunds(status="failed")
            self._record(booking, PaymentStatus.REFUND_FAILED, None)
            return False

        logger.info("Refund initiated", extra={**extra, "reference": reference})
        metrics.increment_refunds(status="initiated")
        self._record(booking, PaymentStatus.REFUND_PENDING, reference)
        return True

    def _record(self, booking: Booking, status: PaymentStatus, reference: Optional[str]) -> None:
        try:
            booking.payment_status = status
            booking.refund_reference = reference
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(
                "Failed to record refund outcome",
                extra={"booking_id": str(booking.id), "payment_status": status.value},
                exc_info=True,
            )


def get_refund_provider() -> RefundProvider:
    """Provider selected by settings.refund_provider."""
    if settings.refund_provider == "http":
        return HttpRefundProvider()
    return ConsoleRefundProvider()
