"""
Staff availability evaluation.

Decides whether a staff member works on a date and which start times can
host a service of a given duration. Slot generation is a pure function of
the weekly schedule, the date and the duration; the service layer then
removes slots taken by active bookings, using the same overlap rule as the
booking write path.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from salonbook.lib.logging import get_logger
from salonbook.lib.settings import settings
from salonbook.lib.timeutils import (
    combine_local,
    format_minutes,
    local_day_bounds,
    parse_time_of_day,
    to_business_time,
)
from salonbook.models.staff import DayOfWeek, Staff
from salonbook.services.conflict_service import ConflictService, intervals_overlap


logger = get_logger(__name__)


@dataclass(frozen=True)
class DaySchedule:
    """One day of a weekly schedule, times as minutes after midnight."""
    is_available: bool
    start: int
    end: int
    breaks: tuple[tuple[int, int], ...] = ()


@dataclass
class StaffAvailability:
    staff_id: UUID
    staff_name: str
    day: date
    is_available: bool
    available_slots: list[str] = field(default_factory=list)


@dataclass
class VendorAvailability:
    vendor_id: UUID
    day: date
    is_open: bool
    opens_at: Optional[str] = None
    closes_at: Optional[str] = None
    available_slots: list[str] = field(default_factory=list)
    staff_count: int = 0


def get_day_schedule(schedule: Optional[dict], day: date) -> Optional[DaySchedule]:
    """
    Parse the weekly schedule entry for the weekday of `day`.

    Returns None when the day is missing or malformed; such a day is treated
    as not working.
    """
    entry = (schedule or {}).get(DayOfWeek.from_weekday(day.weekday()).value)
    if not entry:
        return None
    try:
        start = parse_time_of_day(entry.get("start_time"))
        end = parse_time_of_day(entry.get("end_time"))
        breaks = tuple(
            (parse_time_of_day(b.get("start_time")), parse_time_of_day(b.get("end_time")))
            for b in entry.get("breaks") or []
        )
    except (ValueError, AttributeError, TypeError):
        logger.warning("Ignoring malformed schedule entry", extra={"day": day.isoformat()})
        return None
    return DaySchedule(
        is_available=bool(entry.get("is_available")),
        start=start,
        end=end,
        breaks=breaks,
    )


def works_on(staff: Staff, day: date) -> bool:
    """Whether the staff member works on the given calendar date."""
    if not staff.is_active:
        return False
    day_schedule = get_day_schedule(staff.schedule, day)
    return day_schedule is not None and day_schedule.is_available and day_schedule.start < day_schedule.end


def works_at(staff: Staff, start: datetime) -> bool:
    """Date-level availability for a booking instant, read in business time."""
    return works_on(staff, to_business_time(start).date())


def generate_slots(
    day_schedule: Optional[DaySchedule],
    duration_minutes: int,
    interval_minutes: Optional[int] = None,
) -> list[str]:
    """
    Start times ("HH:MM") where [slot, slot + duration) fits the working window.

    Slots step by interval_minutes from the day's start; a slot whose interval
    overlaps a break is skipped.
    """
    if day_schedule is None or not day_schedule.is_available or duration_minutes <= 0:
        return []
    interval = interval_minutes or settings.slot_interval_minutes

    slots = []
    current = day_schedule.start
    while current + duration_minutes <= day_schedule.end:
        slot_end = current + duration_minutes
        on_break = any(
            current < break_end and break_start < slot_end
            for break_start, break_end in day_schedule.breaks
        )
        if not on_break:
            slots.append(format_minutes(current))
        current += interval
    return slots


class AvailabilityService:
    """Availability queries combining schedules with existing bookings."""

    def __init__(self, db: Session):
        self.db = db
        self.conflicts = ConflictService(db)

    def get_staff_availability(
        self,
        staff: Staff,
        day: date,
        duration_minutes: int,
    ) -> StaffAvailability:
        """
        Bookable start times of one staff member on a date.

        Args:
            staff: Staff member
            day: Calendar date in business time
            duration_minutes: Length of the service to fit

        Returns:
            StaffAvailability with slots that are inside working hours,
            outside breaks, and free of active bookings
        """
        result = StaffAvailability(
            staff_id=staff.id,
            staff_name=staff.full_name,
            day=day,
            is_available=works_on(staff, day),
        )
        if not result.is_available:
            return result

        candidates = generate_slots(get_day_schedule(staff.schedule, day), duration_minutes)
        if not candidates:
            return result

        day_start, day_end = local_day_bounds(day)
        booked = self.conflicts.active_bookings_in_window(
            staff.id,
            day_start,
            day_end + timedelta(minutes=duration_minutes),
        )

        for slot in candidates:
            slot_start = combine_local(day, slot)
            slot_end = slot_start + timedelta(minutes=duration_minutes)
            if not any(intervals_overlap(b.starts_at, b.ends_at, slot_start, slot_end) for b in booked):
                result.available_slots.append(slot)

        logger.info(
            "Staff availability checked",
            extra={
                "staff_id": str(staff.id),
                "date": day.isoformat(),
                "duration_minutes": duration_minutes,
                "candidate_slots": len(candidates),
                "available_slots": len(result.available_slots),
            },
        )
        return result

    def get_vendor_availability(
        self,
        vendor_id: UUID,
        day: date,
        duration_minutes: int,
        service_id: Optional[UUID] = None,
    ) -> VendorAvailability:
        """
        Union of bookable start times across a vendor's active staff.

        A slot is listed when at least one working staff member (qualified for
        service_id, if given) can take it.
        """
        stmt = select(Staff).where(Staff.vendor_id == vendor_id, Staff.is_active.is_(True))
        staff_members = list(self.db.execute(stmt).scalars().all())
        if service_id is not None:
            staff_members = [s for s in staff_members if s.can_perform(service_id)]

        working = [s for s in staff_members if works_on(s, day)]
        result = VendorAvailability(vendor_id=vendor_id, day=day, is_open=bool(working))
        if not working:
            return result

        schedules = [get_day_schedule(s.schedule, day) for s in working]
        result.opens_at = format_minutes(min(d.start for d in schedules))
        result.closes_at = format_minutes(max(d.end for d in schedules))
        result.staff_count = len(working)

        slots: set[str] = set()
        for staff in working:
            slots.update(self.get_staff_availability(staff, day, duration_minutes).available_slots)
        result.available_slots = sorted(slots)
        return result
