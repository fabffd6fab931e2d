from typing import Iterable, List

from scheduling.timeofday import windows_overlap
from scheduling.transitions import WINDOW_HOLDING_STATUSES


def conflicting_bookings(bookings: Iterable, start, end, exclude_booking_id=None) -> list:
    """Non-cancelled bookings whose window intersects [start, end)."""
    return [
        b for b in bookings
        if b.status in WINDOW_HOLDING_STATUSES
        and b.id != exclude_booking_id
        and windows_overlap(start, end, b.start_time, b.end_time)
    ]


def resolve_open_windows(templates: Iterable, bookings: Iterable) -> List:
    """
    Open templates for one (court, weekday) that no non-cancelled booking on the
    target date intersects. Templates with an identical (start, end) pair are
    reported once. Result is ordered by start time.
    """
    holding = [b for b in bookings if b.status in WINDOW_HOLDING_STATUSES]
    seen = set()
    out = []
    for tpl in sorted(templates, key=lambda t: (t.start_time, t.end_time)):
        if not tpl.is_available:
            continue
        key = (tpl.start_time, tpl.end_time)
        if key in seen:
            continue
        if conflicting_bookings(holding, tpl.start_time, tpl.end_time):
            continue
        seen.add(key)
        out.append(tpl)
    return out
