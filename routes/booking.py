from flask import Blueprint, request, jsonify, g

from utils.auth_context import login_required
from utils.audit import log_event
from utils.engine import get_engine
from utils.serializers import booking_to_dict

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


# ---------- PLAYERS: book a court window (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    booking = get_engine().create_booking(
        g.user_id,
        data.get("court_id"),
        data.get("booking_date"),
        data.get("start_time"),
        data.get("end_time"),
        total_amount=data.get("total_amount"),
        notes=data.get("notes"),
    )

    log_event("BOOKING_CREATE", user_id=g.user_id, entity="booking", entity_id=booking.id,
              metadata={"court_id": booking.court_id, "booking_date": booking.booking_date})
    return jsonify(booking=booking_to_dict(booking)), 201


# ---------- PLAYERS: view my bookings ----------
@booking_bp.get("")
@login_required
def my_bookings():
    upcoming = (request.args.get("upcoming") or "").strip().lower() in ("true", "1", "yes")
    rows, total = get_engine().list_user_bookings(
        g.user_id,
        status=request.args.get("status"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        upcoming=upcoming,
        limit=request.args.get("limit", 20),
        offset=request.args.get("offset", 0),
    )
    return jsonify(bookings=[booking_to_dict(b) for b in rows], total=total), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def booking_details(booking_id: int):
    details = get_engine().get_booking_details(g.user_id, booking_id)
    return jsonify(
        booking=booking_to_dict(details["booking"]),
        can_cancel=details["can_cancel"],
        can_reschedule=details["can_reschedule"],
    ), 200


# ---------- PLAYERS: cancel booking (policy window) ----------
@booking_bp.patch("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = get_engine().cancel_booking(g.user_id, booking_id, data.get("reason"))

    log_event("BOOKING_CANCEL", user_id=g.user_id, entity="booking", entity_id=booking.id,
              metadata={"reason": booking.cancellation_reason})
    return jsonify(message="Booking cancelled", booking=booking_to_dict(booking)), 200


@booking_bp.patch("/<int:booking_id>/reschedule")
@login_required
def reschedule_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    result = get_engine().reschedule_booking(
        g.user_id,
        booking_id,
        data.get("new_date"),
        data.get("new_start_time"),
        data.get("new_end_time"),
    )
    booking = result["booking"]
    difference = float(result["price_difference"])

    log_event("BOOKING_RESCHEDULE", user_id=g.user_id, entity="booking", entity_id=booking.id,
              metadata={"booking_date": booking.booking_date, "start_time": booking.start_time,
                        "price_difference": difference})
    return jsonify(
        message="Booking rescheduled",
        booking=booking_to_dict(booking),
        previous_amount=float(result["previous_amount"]),
        price_difference=difference,
    ), 200
