"""
Civil time-of-day helpers.

All slot boundaries are `datetime.time` values without a date or timezone.
Two windows are compared with `windows_overlap` and nothing else.
"""
import re
from datetime import date, datetime, time

from scheduling.errors import ValidationError

_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])(?::(00))?$")

# 0 = Sunday ... 6 = Saturday
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def parse_time(value, field: str = "time") -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValidationError(f"{field} is required (HH:MM format)", {"field": field})
    m = _TIME_RE.match(value.strip())
    if not m:
        raise ValidationError(
            f"Invalid {field}. Use HH:MM e.g. 18:00",
            {"field": field, "value": value},
        )
    return time(int(m.group(1)), int(m.group(2)))


def parse_date(value, field: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required (YYYY-MM-DD)", {"field": field})
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(
            f"Invalid {field}. Use YYYY-MM-DD",
            {"field": field, "value": value},
        )


def parse_window(start, end, start_field: str = "start_time", end_field: str = "end_time"):
    """Parse a [start, end) pair; end must be strictly after start."""
    st = parse_time(start, start_field)
    et = parse_time(end, end_field)
    if et <= st:
        raise ValidationError(
            f"{end_field} must be after {start_field}",
            {start_field: format_time(st), end_field: format_time(et)},
        )
    return st, et


def format_time(t: time) -> str:
    return t.strftime("%H:%M")


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def from_minutes(total: int) -> time:
    if total < 0 or total >= 24 * 60:
        raise ValueError(f"{total} minutes is outside a single day")
    return time(total // 60, total % 60)


def add_minutes(t: time, minutes: int) -> time:
    return from_minutes(to_minutes(t) + minutes)


def minutes_between(start: time, end: time) -> int:
    return to_minutes(end) - to_minutes(start)


def weekday_index(day: date) -> int:
    # Python's weekday() is Monday=0; the schedule uses Sunday=0.
    return (day.weekday() + 1) % 7


def day_name(day_of_week: int) -> str:
    return DAY_NAMES[day_of_week]


def windows_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """Half-open [a_start, a_end) and [b_start, b_end) intersect."""
    return a_start < b_end and a_end > b_start
