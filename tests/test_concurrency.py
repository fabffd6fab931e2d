import threading

import pytest

from scheduling.errors import ConflictError, SchedulingError
from tests.conftest import BOOKING_DAY, COURT_ID


def _race(target, workers):
    barrier = threading.Barrier(workers)
    results, errors = [], []

    def run(n):
        barrier.wait()
        try:
            results.append(target(n))
        except SchedulingError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=run, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


@pytest.mark.parametrize("workers", [2, 8])
def test_only_one_of_many_racing_requests_wins(hourly_engine, repo, workers):
    results, errors = _race(
        lambda n: hourly_engine.create_booking(1000 + n, COURT_ID, BOOKING_DAY, "09:00", "10:00"),
        workers,
    )

    assert len(results) == 1
    assert len(errors) == workers - 1
    assert all(isinstance(e, ConflictError) for e in errors)
    assert len(repo.bookings) == 1


def test_different_windows_all_succeed(hourly_engine, repo):
    starts = ["08:00", "09:00", "10:00", "11:00"]
    ends = ["09:00", "10:00", "11:00", "12:00"]

    results, errors = _race(
        lambda n: hourly_engine.create_booking(1000 + n, COURT_ID, BOOKING_DAY, starts[n], ends[n]),
        len(starts),
    )

    assert errors == []
    assert len(results) == 4


def test_failed_atomic_block_leaves_no_partial_write(hourly_engine, repo):
    first = hourly_engine.create_booking(1, COURT_ID, BOOKING_DAY, "09:00", "10:00")

    # a second active row on the same start would break the storage rule
    with pytest.raises(ConflictError):
        with repo.atomic(COURT_ID):
            first.status = "cancelled"
            repo.add_booking(repo.new_booking(
                court_id=COURT_ID, venue_id=1, user_id=2, booking_date=first.booking_date,
                start_time=first.start_time, end_time=first.end_time, status="confirmed",
            ))
            first.status = "confirmed"

    assert len(repo.bookings) == 1
    assert repo.get_booking(first.id).status == "confirmed"
