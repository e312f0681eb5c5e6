"""Small helpers shared by the test modules."""
from datetime import date, datetime, time, timedelta, timezone

from salonbook.lib.jwt import create_access_token
from salonbook.models.users import User


def next_monday(weeks_ahead: int = 1) -> date:
    """A Monday at least a week in the future."""
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) % 7 + 7 * weeks_ahead)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC instant on a day (the test business timezone is UTC)."""
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


def auth_headers(user: User) -> dict:
    token = create_access_token(str(user.id), user.role.value)
    return {"Authorization": f"Bearer {token}"}
