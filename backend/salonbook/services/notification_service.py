"""
Notification service for booking lifecycle messages.

Every attempt is logged to the notification_logs table. Delivery is
best-effort: callers run it after the booking decision has been committed,
and no failure here is ever raised back into a booking operation.
Supports console (dev), email (SMTP) and SMS (Twilio) delivery.
"""
import asyncio
import smtplib
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from salonbook.lib.db import get_db_context
from salonbook.lib.logging import get_logger, get_correlation_id, set_correlation_id
from salonbook.lib.metrics import get_metrics_collector
from salonbook.lib.settings import settings
from salonbook.lib.timeutils import to_business_time
from salonbook.models.bookings import Booking
from salonbook.models.notifications import (
    NotificationLog,
    NotificationChannel,
    NotificationType,
    DeliveryStatus,
)
from salonbook.models.services import Service
from salonbook.models.staff import Staff
from salonbook.models.users import User


logger = get_logger(__name__)


class NotificationProvider(ABC):
    """
    Abstract base class for notification delivery providers.
    """

    @abstractmethod
    async def send(self, to: str, subject: str, message: str) -> bool:
        """
        Send notification via this provider.

        Args:
            to: Recipient address (email or phone number)
            subject: Short title; ignored by channels without one
            message: Message body

        Returns:
            True if sent successfully, False otherwise
        """

    @property
    @abstractmethod
    def channel(self) -> NotificationChannel:
        """Return the channel this provider supports."""

    def recipient_for(self, user: User) -> Optional[str]:
        """Address of the user on this channel, or None if they have none."""
        return user.email or user.phone


class ConsoleNotificationProvider(NotificationProvider):
    """
    Console provider for development/testing.
    Logs messages instead of sending them.
    """

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.CONSOLE

    async def send(self, to: str, subject: str, message: str) -> bool:
        logger.info(
            "Notification logged to console",
            extra={"to": to, "subject": subject, "body": message},
        )
        return True


class EmailNotificationProvider(NotificationProvider):
    """Email provider using SMTP.

    Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
    """

    def __init__(self):
        if not settings.smtp_username or not settings.smtp_password:
            raise ValueError(
                "SMTP credentials not configured. "
                "Set SMTP_USERNAME and SMTP_PASSWORD environment variables."
            )

        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_username = settings.smtp_username
        self.smtp_password = settings.smtp_password
        self.from_email = settings.smtp_from_email or settings.smtp_username
        self.from_name = settings.smtp_from_name

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.EMAIL

    def recipient_for(self, user: User) -> Optional[str]:
        return user.email

    def _deliver(self, msg: MIMEMultipart) -> None:
        timeout = settings.smtp_timeout_seconds
        if self.smtp_port == 465:
            with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, timeout=timeout) as server:
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=timeout) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

    async def send(self, to: str, subject: str, message: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to
        msg.attach(MIMEText(message, "plain"))

        # smtplib blocks; keep it off the event loop
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email send failed: {e}", extra={"to": to})
            return False

        logger.info("Email sent", extra={"to": to})
        return True


class TwilioSMSProvider(NotificationProvider):
    """
    Twilio SMS provider for sending text messages.
    """

    def __init__(self, client=None):
        from twilio.rest import Client

        self.from_number = settings.twilio_from_number
        self.client = client or Client(settings.twilio_account_sid, settings.twilio_auth_token)
        logger.info("Twilio SMS provider initialized")

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.SMS

    def recipient_for(self, user: User) -> Optional[str]:
        return user.phone

    async def send(self, to: str, subject: str, message: str) -> bool:
        try:
            msg = await asyncio.to_thread(
                self.client.messages.create,
                body=message,
                from_=self.from_number,
                to=to,
            )
        except Exception as e:
            logger.error(f"Failed to send SMS via Twilio: {e}", extra={"to": to})
            return False

        logger.info(f"SMS sent via Twilio: {msg.sid}", extra={"to": to})
        return True


def get_notification_provider() -> NotificationProvider:
    """Provider selected by settings.notification_provider, console as fallback."""
    provider = settings.notification_provider.lower()
    try:
        if provider == "email":
            return EmailNotificationProvider()
        if provider == "twilio" and settings.twilio_account_sid:
            return TwilioSMSProvider()
    except Exception as e:
        logger.error(f"Failed to initialize {provider} provider, using console: {e}")
    return ConsoleNotificationProvider()


class NotificationService:
    """
    Sends booking notifications and logs every attempt.

    Handles:
    - Recipient resolution per channel
    - notification_logs persistence
    - Delivery status tracking
    - Correlation ID propagation
    """

    def __init__(self, db: Session, provider: Optional[NotificationProvider] = None):
        self.db = db
        self.provider = provider or get_notification_provider()

    async def send_notification(
        self,
        recipient: User,
        subject: str,
        message_text: str,
        notification_type: NotificationType,
        booking_id: Optional[UUID] = None,
    ) -> NotificationLog:
        """
        Send one message and record the outcome.

        Args:
            recipient: User to notify
            subject: Message subject
            message_text: Message body
            notification_type: Purpose of the message
            booking_id: Booking the message is about

        Returns:
            The NotificationLog row (status sent or failed)
        """
        channel = self.provider.channel
        address = self.provider.recipient_for(recipient)

        log = NotificationLog(
            booking_id=booking_id,
            recipient_id=recipient.id,
            recipient=address,
            notification_type=notification_type,
            channel=channel,
            subject=subject,
            message_text=message_text,
            delivery_status=DeliveryStatus.PENDING,
            correlation_id=get_correlation_id(),
        )
        self.db.add(log)

        if not address:
            log.delivery_status = DeliveryStatus.FAILED
            log.error = f"Recipient has no {channel.value} address"
        else:
            try:
                sent = await self.provider.send(address, subject, message_text)
                if sent:
                    log.delivery_status = DeliveryStatus.SENT
                    log.sent_at = datetime.now(timezone.utc)
                else:
                    log.delivery_status = DeliveryStatus.FAILED
                    log.error = "Provider reported failure"
            except Exception as e:
                logger.error(
                    f"Error sending notification: {e}",
                    extra={"booking_id": str(booking_id), "channel": channel.value},
                    exc_info=True,
                )
                log.delivery_status = DeliveryStatus.FAILED
                log.error = str(e)

        self.db.commit()

        get_metrics_collector().increment_notifications(
            notification_type=notification_type.value,
            channel=channel.value,
            status=log.delivery_status.value,
        )
        logger.info(
            "Notification processed",
            extra={
                "notification_id": str(log.id),
                "booking_id": str(booking_id),
                "type": notification_type.value,
                "status": log.delivery_status.value,
            },
        )
        return log

    def _context(self, booking: Booking) -> dict:
        service = self.db.get(Service, booking.service_id)
        vendor = self.db.get(User, booking.vendor_id)
        staff = self.db.get(Staff, booking.staff_id) if booking.staff_id else None
        local_start = to_business_time(booking.scheduled_at)
        return {
            "service": service.name if service else "your service",
            "vendor": vendor.display_name if vendor else "the salon",
            "vendor_user": vendor,
            "staff": staff.full_name if staff else None,
            "when": local_start.strftime("%A %d %B %Y at %H:%M"),
            "link": f"{settings.app_base_url}/bookings/{booking.id}",
        }

    async def send_booking_confirmation(self, booking: Booking) -> list[NotificationLog]:
        """Confirmation to the customer, new-booking notice to the vendor."""
        ctx = self._context(booking)
        customer = self.db.get(User, booking.customer_id)
        logs = []

        if customer:
            with_staff = f" with {ctx['staff']}" if ctx["staff"] else ""
            logs.append(await self.send_notification(
                customer,
                f"Booking received: {ctx['service']}",
                f"Hi {customer.name}, your booking for {ctx['service']} at {ctx['vendor']}"
                f"{with_staff} on {ctx['when']} has been received. Details: {ctx['link']}",
                NotificationType.BOOKING_CONFIRMATION,
                booking.id,
            ))
        if ctx["vendor_user"]:
            customer_name = customer.name if customer else "A customer"
            logs.append(await self.send_notification(
                ctx["vendor_user"],
                f"New booking: {ctx['service']}",
                f"{customer_name} booked {ctx['service']} on {ctx['when']}. Details: {ctx['link']}",
                NotificationType.BOOKING_CONFIRMATION,
                booking.id,
            ))
        return logs

    async def send_booking_cancellation(self, booking: Booking) -> list[NotificationLog]:
        """Cancellation notice to the customer and the vendor."""
        ctx = self._context(booking)
        customer = self.db.get(User, booking.customer_id)
        logs = []

        for user in (customer, ctx["vendor_user"]):
            if user is None:
                continue
            logs.append(await self.send_notification(
                user,
                f"Booking cancelled: {ctx['service']}",
                f"The booking for {ctx['service']} on {ctx['when']} has been cancelled.",
                NotificationType.BOOKING_CANCELLATION,
                booking.id,
            ))
        return logs

    async def send_booking_reminder(self, booking: Booking) -> Optional[NotificationLog]:
        """Reminder to the customer ahead of the appointment."""
        ctx = self._context(booking)
        customer = self.db.get(User, booking.customer_id)
        if customer is None:
            return None
        return await self.send_notification(
            customer,
            f"Reminder: {ctx['service']} on {ctx['when']}",
            f"Hi {customer.name}, this is a reminder of your {ctx['service']} appointment at "
            f"{ctx['vendor']} on {ctx['when']}. Details: {ctx['link']}",
            NotificationType.BOOKING_REMINDER,
            booking.id,
        )

    async def send_refund_initiated(self, booking: Booking) -> Optional[NotificationLog]:
        """Tell the customer a refund has been requested."""
        customer = self.db.get(User, booking.customer_id)
        if customer is None:
            return None
        return await self.send_notification(
            customer,
            "Your refund is on its way",
            f"A refund of {booking.total_price} for your cancelled booking has been initiated.",
            NotificationType.REFUND_INITIATED,
            booking.id,
        )


_DISPATCH = {
    NotificationType.BOOKING_CONFIRMATION: NotificationService.send_booking_confirmation,
    NotificationType.BOOKING_CANCELLATION: NotificationService.send_booking_cancellation,
    NotificationType.BOOKING_REMINDER: NotificationService.send_booking_reminder,
    NotificationType.REFUND_INITIATED: NotificationService.send_refund_initiated,
}


async def dispatch_booking_notification(
    booking_id: UUID,
    notification_type: NotificationType,
    correlation_id: Optional[str] = None,
) -> None:
    """
    Best-effort notification for a committed booking, in its own session.

    Meant to run as a background task after the response is decided; every
    error is logged and swallowed.
    """
    if correlation_id:
        set_correlation_id(correlation_id)
    try:
        with get_db_context() as db:
            booking = db.get(Booking, booking_id)
            if booking is None:
                logger.warning("Booking vanished before notification", extra={"booking_id": str(booking_id)})
                return
            await _DISPATCH[notification_type](NotificationService(db), booking)
    except Exception as e:
        logger.error(
            f"Booking notification failed: {e}",
            extra={
                "booking_id": str(booking_id),
                "type": notification_type.value,
                "correlation_id": correlation_id,
            },
            exc_info=True,
        )

