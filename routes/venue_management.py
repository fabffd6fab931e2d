from flask import Blueprint, request, jsonify, g

from scheduling.errors import ValidationError
from utils.auth_context import login_required
from utils.audit import log_event
from utils.engine import get_engine
from utils.serializers import booking_to_dict, time_slot_to_dict

venue_bp = Blueprint("venue_management", __name__, url_prefix="/venue-management")

COURT_PATH = "/venues/<int:venue_id>/courts/<int:court_id>"


def _bool_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    value = raw.strip().lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    raise ValidationError(f"{name} must be true or false", {name: raw})


# ---------- OWNER: slot templates ----------
@venue_bp.get(COURT_PATH + "/time-slots")
@login_required
def list_time_slots(venue_id: int, court_id: int):
    engine = get_engine()
    engine.authorize_court(g.user_id, venue_id, court_id)
    slots = engine.list_slot_templates(
        court_id,
        day_of_week=request.args.get("day_of_week"),
        available=_bool_arg("is_available"),
    )
    return jsonify(time_slots=[time_slot_to_dict(s) for s in slots]), 200


@venue_bp.post(COURT_PATH + "/time-slots")
@login_required
def create_time_slots(venue_id: int, court_id: int):
    data = request.get_json(silent=True) or {}
    slots = get_engine().create_slot_templates(g.user_id, venue_id, court_id, data.get("time_slots"))

    log_event("SLOT_CREATE", user_id=g.user_id, entity="court", entity_id=court_id,
              metadata={"count": len(slots)})
    return jsonify(time_slots=[time_slot_to_dict(s) for s in slots]), 201


@venue_bp.put(COURT_PATH + "/time-slots/<int:slot_id>")
@login_required
def update_time_slot(venue_id: int, court_id: int, slot_id: int):
    data = request.get_json(silent=True) or {}
    slot = get_engine().update_slot_template(g.user_id, venue_id, court_id, slot_id, data)

    log_event("SLOT_UPDATE", user_id=g.user_id, entity="time_slot", entity_id=slot.id)
    return jsonify(time_slot=time_slot_to_dict(slot)), 200


@venue_bp.delete(COURT_PATH + "/time-slots/<int:slot_id>")
@login_required
def delete_time_slot(venue_id: int, court_id: int, slot_id: int):
    get_engine().delete_slot_template(g.user_id, venue_id, court_id, slot_id)

    log_event("SLOT_DELETE", user_id=g.user_id, entity="time_slot", entity_id=slot_id)
    return jsonify(message="Time slot deleted"), 200


@venue_bp.post(COURT_PATH + "/time-slots/generate-default")
@login_required
def generate_default_time_slots(venue_id: int, court_id: int):
    data = request.get_json(silent=True) or {}
    hours = data.get("operating_hours") or {}
    if not isinstance(hours, dict):
        raise ValidationError("operating_hours must be an object with start and end")

    count = get_engine().generate_default_slots(
        g.user_id, venue_id, court_id,
        start=hours.get("start"),
        end=hours.get("end"),
        duration_minutes=data.get("slot_duration"),
        weekdays=data.get("days_of_week"),
    )

    log_event("SLOT_GENERATE", user_id=g.user_id, entity="court", entity_id=court_id,
              metadata={"count": count, "operating_hours": hours})
    return jsonify(message=f"Generated {count} time slots", count=count), 201


@venue_bp.get(COURT_PATH + "/blocked-slots")
@login_required
def list_blocked_slots(venue_id: int, court_id: int):
    slots = get_engine().list_blocked_slots(
        g.user_id, venue_id, court_id, day_of_week=request.args.get("day_of_week")
    )
    return jsonify(blocked_slots=[time_slot_to_dict(s) for s in slots]), 200


@venue_bp.post(COURT_PATH + "/block-slots")
@login_required
def block_slots(venue_id: int, court_id: int):
    data = request.get_json(silent=True) or {}
    slots = get_engine().block_slots(g.user_id, venue_id, court_id, data.get("slot_ids"), data.get("reason"))

    log_event("SLOT_BLOCK", user_id=g.user_id, entity="court", entity_id=court_id,
              metadata={"slot_ids": [s.id for s in slots], "reason": data.get("reason")})
    return jsonify(message=f"Blocked {len(slots)} time slots",
                   time_slots=[time_slot_to_dict(s) for s in slots]), 200


@venue_bp.post(COURT_PATH + "/unblock-slots")
@login_required
def unblock_slots(venue_id: int, court_id: int):
    data = request.get_json(silent=True) or {}
    slots = get_engine().unblock_slots(g.user_id, venue_id, court_id, data.get("slot_ids"))

    log_event("SLOT_UNBLOCK", user_id=g.user_id, entity="court", entity_id=court_id,
              metadata={"slot_ids": [s.id for s in slots]})
    return jsonify(message=f"Unblocked {len(slots)} time slots",
                   time_slots=[time_slot_to_dict(s) for s in slots]), 200


# ---------- OWNER: bookings at my venues ----------
@venue_bp.get("/bookings")
@login_required
def list_venue_bookings():
    rows, total = get_engine().list_owner_bookings(
        g.user_id,
        status=request.args.get("status"),
        venue_id=request.args.get("venue_id", type=int),
        court_id=request.args.get("court_id", type=int),
        on_date=request.args.get("date"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        limit=request.args.get("limit", 50),
        offset=request.args.get("offset", 0),
    )
    return jsonify(bookings=[booking_to_dict(b) for b in rows], total=total), 200


@venue_bp.patch("/bookings/<int:booking_id>/status")
@login_required
def update_booking_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    engine = get_engine()

    if status == "confirmed":
        booking = engine.confirm_booking(g.user_id, booking_id)
    elif status == "cancelled":
        booking = engine.owner_cancel_booking(g.user_id, booking_id, data.get("reason"))
    else:
        raise ValidationError("status must be confirmed or cancelled", {"status": status})

    log_event("OWNER_BOOKING_" + status.upper(), user_id=g.user_id, entity="booking", entity_id=booking.id,
              metadata={"reason": data.get("reason")} if status == "cancelled" else None)
    return jsonify(booking=booking_to_dict(booking)), 200


@venue_bp.post("/bookings/<int:booking_id>/complete")
@login_required
def complete_booking(booking_id: int):
    booking = get_engine().complete_booking(g.user_id, booking_id)

    log_event("OWNER_BOOKING_COMPLETE", user_id=g.user_id, entity="booking", entity_id=booking.id)
    return jsonify(booking=booking_to_dict(booking)), 200
