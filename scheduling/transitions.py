"""Booking lifecycle: allowed status changes and the helpers that apply them."""
from datetime import datetime

from scheduling.errors import InvalidTransitionError

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"

BOOKING_STATUSES = (PENDING, CONFIRMED, CANCELLED, COMPLETED)

# Bookings still open to changes by the customer or owner.
ACTIVE_STATUSES = frozenset({PENDING, CONFIRMED})
RESCHEDULABLE_STATUSES = ACTIVE_STATUSES
# Every booking except a cancelled one keeps its court window.
WINDOW_HOLDING_STATUSES = frozenset({PENDING, CONFIRMED, COMPLETED})

ALLOWED_TRANSITIONS = {
    PENDING: frozenset({CONFIRMED, CANCELLED}),
    CONFIRMED: frozenset({CANCELLED, COMPLETED}),
    CANCELLED: frozenset(),
    COMPLETED: frozenset(),
}

PAYMENT_PENDING = "pending"


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(booking, target: str) -> None:
    if can_transition(booking.status, target):
        return
    if booking.status == CANCELLED:
        message = "Booking is already cancelled"
    elif booking.status == COMPLETED:
        message = "Booking is already completed"
    else:
        message = f"Cannot change booking from {booking.status} to {target}"
    raise InvalidTransitionError(message, {"booking_id": booking.id, "status": booking.status, "target": target})


def apply_status(booking, target: str, now: datetime = None, **updates):
    """Move `booking` to `target`, stamping the matching timestamp in place."""
    ensure_transition(booking, target)
    now = now or datetime.utcnow()
    booking.status = target
    if target == CONFIRMED:
        booking.confirmed_at = now
    elif target == CANCELLED:
        booking.cancelled_at = now
    elif target == COMPLETED:
        booking.completed_at = now
    for key, value in updates.items():
        setattr(booking, key, value)
    booking.updated_at = now
    return booking
