from datetime import datetime, time
from decimal import Decimal

import pytest

from scheduling.errors import ConflictError, NotFoundError, ValidationError
from tests.conftest import BOOKING_DAY, COURT_ID, CUSTOMER_ID, OTHER_CUSTOMER_ID, seed_templates


@pytest.fixture()
def tuesday_engine(engine, repo):
    # legacy data: overlapping templates entered before batch validation existed
    seed_templates(repo, ("09:00", "10:00"), ("09:30", "10:30"), ("10:00", "11:00"))
    return engine


def test_overlap_rejected_adjacent_accepted(tuesday_engine, repo):
    first = tuesday_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")
    assert first.status == "confirmed"
    assert first.payment_status == "pending"

    with pytest.raises(ConflictError) as exc:
        tuesday_engine.create_booking(OTHER_CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:30", "10:30")
    assert exc.value.kind == "conflict"
    assert exc.value.details["conflicts"] == [{"start_time": "09:00", "end_time": "10:00"}]

    third = tuesday_engine.create_booking(OTHER_CUSTOMER_ID, COURT_ID, BOOKING_DAY, "10:00", "11:00")
    assert third.start_time == time(10)
    assert len(repo.bookings) == 2


def test_amount_defaults_to_hourly_price(hourly_engine):
    booking = hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")
    assert booking.total_amount == Decimal("40.00")


def test_explicit_amount_and_notes_kept(hourly_engine):
    booking = hourly_engine.create_booking(
        CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00", total_amount="35.5", notes="  bring bibs "
    )
    assert booking.total_amount == Decimal("35.50")
    assert booking.notes == "bring bibs"


@pytest.mark.parametrize("start,end", [("10:00", "09:00"), ("9h", "10:00"), (None, "10:00")])
def test_malformed_window_is_validation_error(hourly_engine, start, end):
    with pytest.raises(ValidationError):
        hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, start, end)


def test_past_date_rejected_but_today_allowed(hourly_engine, clock):
    with pytest.raises(ValidationError):
        hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, "2025-05-31", "09:00", "10:00")

    # date-only comparison: an earlier hour today still passes
    clock.now = datetime(2025, 6, 10, 12, 0)
    booking = hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")
    assert booking.id is not None


def test_inactive_court_or_unapproved_venue(hourly_engine, repo):
    repo.venues[1].is_approved = False
    with pytest.raises(NotFoundError):
        hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")

    repo.venues[1].is_approved = True
    repo.courts[COURT_ID].is_active = False
    with pytest.raises(NotFoundError):
        hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")


def test_window_must_match_a_template(hourly_engine):
    with pytest.raises(ValidationError) as exc:
        hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:15", "10:15")
    assert "No time slot" in exc.value.message


def test_tolerance_accepts_one_minute_slack(hourly_engine):
    hourly_engine.settings.template_match_tolerance_minutes = 1
    booking = hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:01", "10:00")
    assert booking.start_time == time(9, 1)


def test_blocked_template_refuses_booking(hourly_engine, repo):
    nine = next(s for s in repo.list_time_slots(COURT_ID, day_of_week=2) if s.start_time == time(9))
    hourly_engine.block_slots(100, 1, COURT_ID, [nine.id])

    with pytest.raises(ValidationError) as exc:
        hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")
    assert "blocked" in exc.value.message


def test_validation_is_read_only_and_repeatable(hourly_engine, repo):
    for _ in range(3):
        request = hourly_engine.validate_booking_request(COURT_ID, BOOKING_DAY, "09:00", "10:00")
    assert request.start_time == time(9)
    assert repo.bookings == {}

    hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")
    for _ in range(2):
        with pytest.raises(ConflictError):
            hourly_engine.validate_booking_request(COURT_ID, BOOKING_DAY, "09:00", "10:00")


def test_cancelled_booking_does_not_conflict(hourly_engine):
    first = hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")
    hourly_engine.cancel_booking(CUSTOMER_ID, first.id)

    again = hourly_engine.create_booking(OTHER_CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")
    assert again.id != first.id


def test_notes_too_long(hourly_engine):
    with pytest.raises(ValidationError):
        hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00", notes="x" * 501)


def test_list_user_bookings_filters(hourly_engine):
    a = hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")
    b = hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, "2025-06-11", "09:00", "10:00")
    hourly_engine.create_booking(OTHER_CUSTOMER_ID, COURT_ID, BOOKING_DAY, "11:00", "12:00")
    hourly_engine.cancel_booking(CUSTOMER_ID, a.id)

    rows, total = hourly_engine.list_user_bookings(CUSTOMER_ID)
    assert total == 2
    assert [r.id for r in rows] == [b.id, a.id]

    rows, total = hourly_engine.list_user_bookings(CUSTOMER_ID, status="cancelled")
    assert [r.id for r in rows] == [a.id]

    with pytest.raises(ValidationError):
        hourly_engine.list_user_bookings(CUSTOMER_ID, status="lost")
    with pytest.raises(ValidationError):
        hourly_engine.list_user_bookings(CUSTOMER_ID, limit=0)


def test_owner_sees_bookings_of_own_venues_only(hourly_engine, repo):
    hourly_engine.create_booking(CUSTOMER_ID, COURT_ID, BOOKING_DAY, "09:00", "10:00")

    rows, total = hourly_engine.list_owner_bookings(100, on_date=BOOKING_DAY)
    assert total == 1
    rows, total = hourly_engine.list_owner_bookings(300)
    assert (rows, total) == ([], 0)
