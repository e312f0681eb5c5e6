"""
Conflict detection for staff bookings.

A booking occupies the half-open interval [scheduled_at, scheduled_at + duration).
Two intervals overlap iff each starts before the other ends, so back-to-back
bookings never conflict. Only pending/confirmed bookings occupy time.
"""
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from salonbook.lib.logging import get_logger
from salonbook.lib.timeutils import ensure_utc
from salonbook.models.bookings import Booking, ACTIVE_STATUSES
from salonbook.models.services import MAX_DURATION_MINUTES


logger = get_logger(__name__)


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """Half-open overlap test for [start_a, end_a) and [start_b, end_b)."""
    return start_a < end_b and start_b < end_a


class ConflictService:
    """Read-only queries over a staff member's active bookings."""

    def __init__(self, db: Session):
        self.db = db

    def active_bookings_in_window(
        self,
        staff_id: UUID,
        window_start: datetime,
        window_end: datetime,
    ) -> list[Booking]:
        """
        Active bookings of a staff member that could overlap [window_start, window_end).

        The query narrows by start time only: anything starting before
        window_start - MAX_DURATION_MINUTES has ended by window_start. Callers
        apply intervals_overlap for the exact answer.
        """
        window_start = ensure_utc(window_start)
        window_end = ensure_utc(window_end)
        earliest = window_start - timedelta(minutes=MAX_DURATION_MINUTES)

        stmt = (
            select(Booking)
            .where(
                Booking.staff_id == staff_id,
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.scheduled_at < window_end,
                Booking.scheduled_at > earliest,
            )
            .order_by(Booking.scheduled_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def find_conflicts(
        self,
        staff_id: UUID,
        start: datetime,
        duration_minutes: int,
    ) -> list[Booking]:
        """
        Active bookings overlapping [start, start + duration_minutes).

        Args:
            staff_id: Staff member to check
            start: Candidate start instant
            duration_minutes: Candidate duration

        Returns:
            Conflicting bookings ordered by start time
        """
        start = ensure_utc(start)
        end = start + timedelta(minutes=duration_minutes)

        conflicts = []
        for booking in self.active_bookings_in_window(staff_id, start, end):
            if intervals_overlap(booking.starts_at, booking.ends_at, start, end):
                conflicts.append(booking)

        if conflicts:
            logger.info(
                "Booking conflict detected",
                extra={
                    "staff_id": str(staff_id),
                    "start": start.isoformat(),
                    "duration_minutes": duration_minutes,
                    "conflicting_booking_ids": [str(b.id) for b in conflicts],
                },
            )
        return conflicts

    def has_conflict(self, staff_id: UUID, start: datetime, duration_minutes: int) -> bool:
        """Whether any active booking of the staff member overlaps the candidate interval."""
        return bool(self.find_conflicts(staff_id, start, duration_minutes))
