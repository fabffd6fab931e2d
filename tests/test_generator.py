from datetime import time

import pytest

from scheduling.errors import AuthorizationError, ValidationError
from scheduling.generator import build_windows, generate_templates, normalize_weekdays
from tests.conftest import COURT_ID, OWNER_ID, VENUE_ID


def test_sixty_minute_slots_fill_the_window():
    assert generate_templates(time(9), time(11), 60, [1]) == [
        (1, time(9), time(10)),
        (1, time(10), time(11)),
    ]


def test_short_remainder_is_dropped():
    assert generate_templates(time(9), time(11), 90, [1]) == [(1, time(9), time(10, 30))]


def test_duplicate_weekdays_are_ignored():
    assert normalize_weekdays([3, 1, 3]) == [1, 3]
    assert normalize_weekdays(None) == [0, 1, 2, 3, 4, 5, 6]


@pytest.mark.parametrize("days", [[7], [-1], ["1"], [True], []])
def test_invalid_weekdays_rejected(days):
    with pytest.raises(ValidationError):
        normalize_weekdays(days)


@pytest.mark.parametrize("duration", [0, -30, "60", None])
def test_duration_must_be_positive_int(duration):
    with pytest.raises(ValidationError):
        build_windows(time(9), time(11), duration)


def test_start_must_precede_end():
    with pytest.raises(ValidationError):
        build_windows(time(11), time(9), 60)


def test_generate_default_slots_uses_configured_hours(engine, repo):
    count = engine.generate_default_slots(OWNER_ID, VENUE_ID, COURT_ID)

    assert count == 16 * 7
    monday = repo.list_time_slots(COURT_ID, day_of_week=1)
    assert monday[0].start_time == time(6) and monday[-1].end_time == time(22)


def test_regenerate_replaces_existing_templates(engine, repo):
    engine.generate_default_slots(OWNER_ID, VENUE_ID, COURT_ID)
    count = engine.generate_default_slots(OWNER_ID, VENUE_ID, COURT_ID, "09:00", "11:00", 60, [1])

    assert count == 2
    slots = repo.list_time_slots(COURT_ID)
    assert [(s.day_of_week, s.start_time, s.end_time) for s in slots] == [
        (1, time(9), time(10)),
        (1, time(10), time(11)),
    ]


def test_regenerate_keeps_existing_bookings(hourly_engine, repo):
    booking = hourly_engine.create_booking(200, COURT_ID, "2025-06-10", "09:00", "10:00")
    hourly_engine.generate_default_slots(OWNER_ID, VENUE_ID, COURT_ID, "12:00", "14:00", 60)

    assert repo.get_booking(booking.id).status == "confirmed"


def test_only_owner_can_generate(engine, repo):
    with pytest.raises(AuthorizationError):
        engine.generate_default_slots(999, VENUE_ID, COURT_ID)
    assert repo.list_time_slots(COURT_ID) == []
