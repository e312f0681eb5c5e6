"""
Booking Reminder Job - notify customers ahead of their appointments.

Execution flow:
1. Acquire advisory lock (via @with_advisory_lock decorator)
2. Find pending/confirmed bookings starting within reminder_lead_hours
   that have not had a reminder yet
3. Send a reminder per booking and set reminder_sent on success
4. Log a summary with the run's correlation_id

Each booking is handled on its own; a failure never stops the run, and a
booking whose reminder failed is picked up again by the next run.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import select

from salonbook.jobs.scheduler import with_advisory_lock
from salonbook.lib.db import get_db_context
from salonbook.lib.logging import get_logger, set_correlation_id
from salonbook.lib.metrics import get_metrics_collector
from salonbook.lib.settings import settings
from salonbook.lib.timeutils import ensure_utc, utcnow
from salonbook.models.bookings import Booking, ACTIVE_STATUSES
from salonbook.models.notifications import DeliveryStatus
from salonbook.services.notification_service import NotificationProvider, NotificationService

logger = get_logger(__name__)

REMINDER_JOB_ID = "booking_reminders"


async def send_due_reminders(
    now: Optional[datetime] = None,
    lead_hours: Optional[int] = None,
    provider: Optional[NotificationProvider] = None,
) -> Dict[str, Any]:
    """
    Send reminders for bookings starting in (now, now + lead_hours].

    Args:
        now: Current instant (defaults to the wall clock)
        lead_hours: Look-ahead window (defaults to settings.reminder_lead_hours)
        provider: Notification provider override

    Returns:
        {"correlation_id", "due", "sent", "failed"}
    """
    correlation_id = str(uuid4())
    set_correlation_id(correlation_id)
    now = ensure_utc(now) if now else utcnow()
    horizon = now + timedelta(hours=lead_hours or settings.reminder_lead_hours)

    result = {"correlation_id": correlation_id, "due": 0, "sent": 0, "failed": 0}

    with get_db_context() as db:
        stmt = (
            select(Booking)
            .where(
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.reminder_sent.is_(False),
                Booking.scheduled_at > now,
                Booking.scheduled_at <= horizon,
            )
            .order_by(Booking.scheduled_at)
        )
        bookings = list(db.execute(stmt).scalars().all())
        result["due"] = len(bookings)

        service = NotificationService(db, provider)
        for booking in bookings:
            try:
                log = await service.send_booking_reminder(booking)
                if log is None or log.delivery_status != DeliveryStatus.SENT:
                    result["failed"] += 1
                    continue
                booking.reminder_sent = True
                db.commit()
                result["sent"] += 1
                get_metrics_collector().increment_reminders()
            except Exception as e:
                db.rollback()
                result["failed"] += 1
                logger.error(
                    f"Reminder failed for booking {booking.id}: {e}",
                    extra={"booking_id": str(booking.id)},
                    exc_info=True,
                )

    logger.info(
        "Booking reminders run completed",
        extra={"due": result["due"], "sent": result["sent"], "failed": result["failed"]},
    )
    return result


@with_advisory_lock(REMINDER_JOB_ID)
def run_reminders_sync(*args, **kwargs):
    """
    Synchronous wrapper for APScheduler compatibility.

    APScheduler runs jobs in worker threads, so this wrapper
    creates an event loop and runs the async reminder function.
    """
    return asyncio.run(send_due_reminders(*args, **kwargs))


def register_reminder_jobs(scheduler_manager) -> None:
    """
    Register the reminder job with the scheduler.

    Args:
        scheduler_manager: SchedulerManager instance from get_scheduler()
    """
    scheduler_manager.add_interval_job(
        func=run_reminders_sync,
        job_id=REMINDER_JOB_ID,
        minutes=settings.reminder_interval_minutes,
    )
    logger.info("Booking reminder job registered")
