from decimal import Decimal

from scheduling.timeofday import day_name, format_time, minutes_between


def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return float(Decimal(str(value or 0)))


def time_slot_to_dict(s) -> dict:
    return {
        "id": s.id,
        "venue_id": s.venue_id,
        "court_id": s.court_id,
        "day_of_week": s.day_of_week,
        "day_name": day_name(s.day_of_week),
        "start_time": format_time(s.start_time),
        "end_time": format_time(s.end_time),
        "duration_minutes": minutes_between(s.start_time, s.end_time),
        "is_available": s.is_available,
        "blocked_reason": s.blocked_reason,
    }


def window_to_dict(s, price_per_hour=None) -> dict:
    out = {
        "slot_id": s.id,
        "start_time": format_time(s.start_time),
        "end_time": format_time(s.end_time),
        "duration_minutes": minutes_between(s.start_time, s.end_time),
    }
    if price_per_hour is not None:
        hours = Decimal(out["duration_minutes"]) / Decimal(60)
        out["price"] = _money((Decimal(str(price_per_hour)) * hours).quantize(Decimal("0.01")))
    return out


def booking_to_dict(b) -> dict:
    return {
        "id": b.id,
        "court_id": b.court_id,
        "venue_id": b.venue_id,
        "user_id": b.user_id,
        "booking_date": b.booking_date.isoformat(),
        "start_time": format_time(b.start_time),
        "end_time": format_time(b.end_time),
        "status": b.status,
        "payment_status": b.payment_status,
        "total_amount": _money(b.total_amount),
        "notes": b.notes,
        "cancellation_reason": b.cancellation_reason,
        "confirmed_at": _iso(b.confirmed_at),
        "cancelled_at": _iso(b.cancelled_at),
        "completed_at": _iso(b.completed_at),
        "rescheduled_at": _iso(b.rescheduled_at),
        "created_at": _iso(b.created_at),
    }
