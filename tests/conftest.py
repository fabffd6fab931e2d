"""
Shared test fixtures.

Provides:
  • an engine over the in-memory repository with a settable clock
  • a Flask app + test client on a temporary SQLite database

All dates are pinned: "today" is Sunday 2025-06-01 08:00, so 2025-06-10
(a Tuesday, day_of_week 2) is in the future.
"""
from datetime import datetime, time
from decimal import Decimal

import pytest

from scheduling.engine import SchedulingEngine
from scheduling.memory_repository import InMemoryRepository

OWNER_ID = 100
CUSTOMER_ID = 200
OTHER_CUSTOMER_ID = 201
VENUE_ID = 1
COURT_ID = 5
TUESDAY = 2
BOOKING_DAY = "2025-06-10"

FIXED_NOW = datetime(2025, 6, 1, 8, 0)


class FakeClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ── In-memory engine ──────────────────────────────────────────────────────


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def repo():
    r = InMemoryRepository()
    r.add_venue(VENUE_ID, OWNER_ID, name="Riverside", is_approved=True)
    r.add_court(COURT_ID, VENUE_ID, name="Court A", sport_type="futsal", price_per_hour=Decimal("40.00"))
    return r


@pytest.fixture()
def engine(repo, clock):
    return SchedulingEngine(repo, clock=clock)


@pytest.fixture()
def hourly_engine(engine):
    """Engine whose court offers 06:00-22:00 in one-hour windows every day."""
    engine.generate_default_slots(OWNER_ID, VENUE_ID, COURT_ID)
    return engine


def seed_templates(repo, *windows, day_of_week=TUESDAY, court_id=COURT_ID, venue_id=VENUE_ID):
    """Write templates straight into storage, bypassing the batch validator."""
    slots = [
        repo.new_time_slot(
            venue_id=venue_id,
            court_id=court_id,
            day_of_week=day_of_week,
            start_time=time.fromisoformat(st),
            end_time=time.fromisoformat(et),
        )
        for st, et in windows
    ]
    repo.add_time_slots(slots)
    return slots


# ── Flask app on SQLite ───────────────────────────────────────────────────


@pytest.fixture()
def app(tmp_path):
    from app import create_app
    from models import db
    from models.court import Court
    from models.venue import Venue
    from utils.engine import EXTENSION_KEY

    application = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
    })
    application.extensions[EXTENSION_KEY].clock = FakeClock()

    with application.app_context():
        db.create_all()
        db.session.add(Venue(id=VENUE_ID, name="Riverside", owner_user_id=OWNER_ID, is_approved=True))
        db.session.add(Court(id=COURT_ID, venue_id=VENUE_ID, name="Court A", sport_type="futsal",
                             price_per_hour=Decimal("40.00")))
        db.session.commit()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def as_user(user_id: int) -> dict:
    return {"X-User-Id": str(user_id)}
