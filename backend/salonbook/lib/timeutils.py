"""
Time helpers shared by the availability and booking code.

Booking instants are stored in UTC. Staff schedules are times of day with no
zone; they are read in the business timezone from settings.
"""
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from salonbook.lib.settings import settings


_TIME_OF_DAY = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def business_tz() -> tzinfo:
    """Timezone in which staff schedules are expressed."""
    name = settings.business_timezone
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalize aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_business_time(value: datetime) -> datetime:
    """Convert an instant to the business timezone."""
    return ensure_utc(value).astimezone(business_tz())


def parse_time_of_day(value: str) -> int:
    """
    Parse "HH:MM" into minutes after midnight.

    Raises:
        ValueError: If the string is not a valid 24h time
    """
    match = _TIME_OF_DAY.match(value or "")
    if not match:
        raise ValueError(f"Invalid time of day: {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes(minutes: int) -> str:
    """Minutes after midnight as zero-padded "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def combine_local(day: date, time_of_day: str) -> datetime:
    """The UTC instant of a schedule time of day on a given date."""
    minutes = parse_time_of_day(time_of_day)
    local = datetime.combine(day, time(0, 0), tzinfo=business_tz()) + timedelta(minutes=minutes)
    return local.astimezone(timezone.utc)


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC instants of [start of day, start of next day) in the business timezone."""
    tz = business_tz()
    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
