"""
Input validation for slot templates and booking windows.

Nothing in here touches storage; every function either returns parsed values
or raises a `SchedulingError` subclass.
"""
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from scheduling.errors import ConflictError, ValidationError
from scheduling.timeofday import day_name, format_time, parse_window, to_minutes, windows_overlap

MAX_NOTES_LENGTH = 500
MAX_REASON_LENGTH = 500


def parse_day_of_week(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
        raise ValidationError(
            "day_of_week must be an integer between 0 (Sunday) and 6 (Saturday)",
            {"day_of_week": value},
        )
    return value


def parse_template(raw: dict) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError("Each time slot must be an object")
    day = parse_day_of_week(raw.get("day_of_week"))
    st, et = parse_window(raw.get("start_time"), raw.get("end_time"))
    is_available = raw.get("is_available", True)
    if not isinstance(is_available, bool):
        raise ValidationError("is_available must be a boolean")
    return {"day_of_week": day, "start_time": st, "end_time": et, "is_available": is_available}


def find_overlap(windows: Iterable):
    """
    First pair of windows sharing a weekday whose intervals intersect, or None.
    Accepts dicts or objects carrying day_of_week/start_time/end_time.
    """
    items = list(windows)
    for i, a in enumerate(items):
        for b in items[i + 1:]:
            if _get(a, "day_of_week") != _get(b, "day_of_week"):
                continue
            if windows_overlap(_get(a, "start_time"), _get(a, "end_time"),
                               _get(b, "start_time"), _get(b, "end_time")):
                return a, b
    return None


def find_overlap_with(candidates: Iterable, existing: Iterable):
    """First (candidate, existing) pair on the same weekday that intersects, or None."""
    existing = list(existing)
    for a in candidates:
        for b in existing:
            if _get(a, "day_of_week") != _get(b, "day_of_week"):
                continue
            if windows_overlap(_get(a, "start_time"), _get(a, "end_time"),
                               _get(b, "start_time"), _get(b, "end_time")):
                return a, b
    return None


def ensure_no_overlap(windows: Iterable, existing: Iterable = None) -> None:
    """
    Reject overlapping windows within `windows`, and, when `existing` is
    given, between `windows` and the already stored templates.
    """
    windows = list(windows)
    pair = find_overlap(windows)
    if pair is None and existing is not None:
        pair = find_overlap_with(windows, existing)
    if pair:
        a, b = pair
        day = _get(a, "day_of_week")
        raise ConflictError(
            f"Overlapping time slots on {day_name(day)}",
            {
                "day_of_week": day,
                "first": _describe(a),
                "second": _describe(b),
            },
        )


def validate_template_batch(raw_templates) -> List[dict]:
    """All-or-nothing: parse every candidate, then reject any overlapping pair."""
    if not isinstance(raw_templates, list) or not raw_templates:
        raise ValidationError("time_slots must be a non-empty list")
    parsed = [parse_template(raw) for raw in raw_templates]
    ensure_no_overlap(parsed)
    return parsed


def parse_amount(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("total_amount must be a number")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("total_amount must be a number", {"total_amount": value})
    if not amount.is_finite() or amount < 0:
        raise ValidationError("total_amount must be zero or positive", {"total_amount": value})
    return amount.quantize(Decimal("0.01"))


def parse_notes(value) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("notes must be a string")
    notes = value.strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes must be at most {MAX_NOTES_LENGTH} characters")
    return notes


def parse_reason(value, default: str = None, required: bool = False) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValidationError("reason must be a string")
    reason = (value or "").strip() or default
    if required and not reason:
        raise ValidationError("A cancellation reason is required")
    if reason and len(reason) > MAX_REASON_LENGTH:
        raise ValidationError(f"reason must be at most {MAX_REASON_LENGTH} characters")
    return reason


def ensure_not_past(day: date, today: date, field: str = "booking_date") -> None:
    if day < today:
        raise ValidationError(
            "Cannot book for past dates",
            {field: day.isoformat(), "today": today.isoformat()},
        )


def window_matches(template_start: time, template_end: time, start: time, end: time,
                   tolerance_minutes: int = 0) -> bool:
    if tolerance_minutes <= 0:
        return template_start == start and template_end == end
    return (abs(to_minutes(template_start) - to_minutes(start)) <= tolerance_minutes
            and abs(to_minutes(template_end) - to_minutes(end)) <= tolerance_minutes)


def _get(item, key):
    if isinstance(item, dict):
        return item[key]
    return getattr(item, key)


def _describe(item) -> dict:
    out = {
        "start_time": format_time(_get(item, "start_time")),
        "end_time": format_time(_get(item, "end_time")),
    }
    item_id = item.get("id") if isinstance(item, dict) else getattr(item, "id", None)
    if item_id is not None:
        out["id"] = item_id
    return out
