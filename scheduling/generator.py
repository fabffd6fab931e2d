from datetime import time
from typing import Iterable, List, Tuple

from scheduling.errors import ValidationError
from scheduling.timeofday import add_minutes, minutes_between

ALL_WEEKDAYS = (0, 1, 2, 3, 4, 5, 6)


def normalize_weekdays(weekdays: Iterable) -> List[int]:
    """Validate 0..6 weekday numbers; duplicates are dropped, order is ascending."""
    if weekdays is None:
        return list(ALL_WEEKDAYS)
    out = set()
    for day in weekdays:
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            raise ValidationError(
                "day_of_week must be an integer between 0 (Sunday) and 6 (Saturday)",
                {"day_of_week": day},
            )
        out.add(day)
    if not out:
        raise ValidationError("At least one weekday is required")
    return sorted(out)


def build_windows(start: time, end: time, duration_minutes: int) -> List[Tuple[time, time]]:
    """
    Cut [start, end) into back-to-back windows of `duration_minutes`.
    A trailing remainder shorter than the duration is dropped.
    """
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
        raise ValidationError("slot_duration must be a positive number of minutes",
                              {"slot_duration": duration_minutes})
    if end <= start:
        raise ValidationError("Operating hours end must be after start")

    windows = []
    cursor = start
    while minutes_between(cursor, end) >= duration_minutes:
        nxt = add_minutes(cursor, duration_minutes)
        windows.append((cursor, nxt))
        cursor = nxt
    return windows


def generate_templates(start: time, end: time, duration_minutes: int, weekdays=None):
    """(day_of_week, start_time, end_time) for every weekday requested."""
    days = normalize_weekdays(weekdays)
    windows = build_windows(start, end, duration_minutes)
    return [(day, st, et) for day in days for st, et in windows]
