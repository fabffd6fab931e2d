from datetime import date, time
from decimal import Decimal

import pytest

from scheduling.errors import AuthorizationError, ConflictError, InvalidTransitionError, ValidationError
from tests.conftest import BOOKING_DAY, COURT_ID, CUSTOMER_ID, OTHER_CUSTOMER_ID


@pytest.fixture()
def booking(hourly_engine):
    return hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")


def test_reschedule_moves_booking_and_frees_old_window(hourly_engine, booking):
    result = hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, "2025-06-12", "17:00", "18:30")
    moved = result["booking"]

    assert (moved.booking_date, moved.start_time, moved.end_time) == (date(2025, 6, 12), time(17), time(18, 30))
    assert moved.total_amount == Decimal("60.00")
    assert moved.rescheduled_at is not None

    other = hourly_engine.create_booking(OTHER_CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")
    assert other.status == "confirmed"


def test_reschedule_reports_price_difference(hourly_engine, booking):
    longer = hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, BOOKING_DAY, "12:00", "13:30")
    assert longer["previous_amount"] == Decimal("40.00")
    assert longer["price_difference"] == Decimal("20.00")

    shorter = hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, BOOKING_DAY, "12:00", "12:30")
    assert shorter["previous_amount"] == Decimal("60.00")
    assert shorter["price_difference"] == Decimal("-40.00")


def test_own_window_is_not_a_conflict(hourly_engine, booking):
    moved = hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, BOOKING_DAY, "09:30", "10:30")["booking"]
    assert moved.start_time == time(9, 30)


def test_conflict_leaves_booking_where_it_was(hourly_engine, booking):
    hourly_engine.create_booking(OTHER_CUSTOMER_ID, COURT_ID, BOOKING_DAY, "11:00", "12:00")

    with pytest.raises(ConflictError):
        hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, BOOKING_DAY, "10:30", "11:30")

    assert (booking.start_time, booking.end_time) == (time(9), time(10))
    assert booking.rescheduled_at is None


def test_only_owner_of_booking_can_reschedule(hourly_engine, booking):
    with pytest.raises(AuthorizationError):
        hourly_engine.reschedule_booking(OTHER_CUSTOMER_ID, booking.id, BOOKING_DAY, "12:00", "13:00")


def test_terminal_booking_cannot_move(hourly_engine, booking):
    hourly_engine.cancel_booking(CUSTOMER_ID, booking.id)
    with pytest.raises(InvalidTransitionError):
        hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, BOOKING_DAY, "12:00", "13:00")


def test_new_window_is_validated(hourly_engine, booking):
    with pytest.raises(ValidationError):
        hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, "2025-05-01", "12:00", "13:00")
    with pytest.raises(ValidationError):
        hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, BOOKING_DAY, "13:00", "12:00")


def test_cannot_move_to_earlier_time_today(hourly_engine, booking):
    # clock reads 2025-06-01 08:00
    with pytest.raises(ValidationError) as exc:
        hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, "2025-06-01", "06:00", "07:00")
    assert exc.value.message == "Cannot reschedule to past dates and times"
    with pytest.raises(ValidationError):
        hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, "2025-06-01", "08:00", "09:00")

    assert booking.booking_date == date(2025, 6, 10)

    later_today = hourly_engine.reschedule_booking(CUSTOMER_ID, booking.id, "2025-06-01", "09:00", "10:00")
    assert later_today["booking"].booking_date == date(2025, 6, 1)
