"""
Process-local repository backed by plain dataclasses.

Used by the engine tests and handy for tooling that needs the scheduling rules
without a database. All atomic blocks share one lock, and a failing block
restores the state it started from.
"""
import copy
import itertools
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from scheduling.errors import ConflictError
from scheduling.repository import BookingFilter, SchedulingRepository
from scheduling.transitions import WINDOW_HOLDING_STATUSES


@dataclass
class VenueRecord:
    id: int
    owner_user_id: int
    name: str = ""
    is_approved: bool = True


@dataclass
class CourtRecord:
    id: int
    venue_id: int
    name: str = ""
    sport_type: str = ""
    price_per_hour: Decimal = Decimal("0")
    is_active: bool = True


@dataclass
class TimeSlotRecord:
    venue_id: int
    court_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_available: bool = True
    blocked_reason: Optional[str] = None
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class BookingRecord:
    court_id: int
    venue_id: int
    user_id: int
    booking_date: date
    start_time: time
    end_time: time
    status: str = "pending"
    payment_status: str = "pending"
    total_amount: Decimal = Decimal("0")
    notes: str = ""
    cancellation_reason: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rescheduled_at: Optional[datetime] = None
    id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


class InMemoryRepository(SchedulingRepository):
    def __init__(self):
        self.venues = {}
        self.courts = {}
        self.time_slots = {}
        self.bookings = {}
        self._slot_ids = itertools.count(1)
        self._booking_ids = itertools.count(1)
        self._lock = threading.RLock()

    # ---------- seeding ----------
    def add_venue(self, venue_id, owner_user_id, **fields) -> VenueRecord:
        venue = VenueRecord(id=venue_id, owner_user_id=owner_user_id, **fields)
        self.venues[venue_id] = venue
        return venue

    def add_court(self, court_id, venue_id, **fields) -> CourtRecord:
        court = CourtRecord(id=court_id, venue_id=venue_id, **fields)
        self.courts[court_id] = court
        return court

    # ---------- venues / courts ----------
    def get_venue(self, venue_id):
        return self.venues.get(venue_id)

    def get_court(self, court_id):
        return self.courts.get(court_id)

    # ---------- slot templates ----------
    def list_time_slots(self, court_id, day_of_week=None, available=None):
        rows = [
            s for s in self.time_slots.values()
            if s.court_id == court_id
            and (day_of_week is None or s.day_of_week == day_of_week)
            and (available is None or s.is_available == available)
        ]
        return sorted(rows, key=lambda s: (s.day_of_week, s.start_time))

    def get_time_slot(self, slot_id):
        return self.time_slots.get(slot_id)

    def get_time_slots(self, court_id, slot_ids):
        wanted = set(slot_ids or [])
        rows = [s for s in self.time_slots.values() if s.court_id == court_id and s.id in wanted]
        return sorted(rows, key=lambda s: (s.day_of_week, s.start_time))

    def new_time_slot(self, **fields):
        return TimeSlotRecord(**fields)

    def add_time_slots(self, slots):
        for slot in slots:
            slot.id = next(self._slot_ids)
            self.time_slots[slot.id] = slot

    def delete_time_slot(self, slot):
        self.time_slots.pop(slot.id, None)

    def delete_time_slots_for_court(self, court_id):
        doomed = [sid for sid, s in self.time_slots.items() if s.court_id == court_id]
        for sid in doomed:
            del self.time_slots[sid]
        return len(doomed)

    # ---------- bookings ----------
    def get_booking(self, booking_id):
        return self.bookings.get(booking_id)

    def new_booking(self, **fields):
        return BookingRecord(**fields)

    def add_booking(self, booking):
        booking.id = next(self._booking_ids)
        self.bookings[booking.id] = booking

    def list_court_bookings(self, court_id, on_date, statuses):
        rows = [
            b for b in self.bookings.values()
            if b.court_id == court_id and b.booking_date == on_date and b.status in statuses
        ]
        return sorted(rows, key=lambda b: b.start_time)

    def list_court_bookings_from(self, court_id, from_date, statuses):
        rows = [
            b for b in self.bookings.values()
            if b.court_id == court_id and b.booking_date >= from_date and b.status in statuses
        ]
        return sorted(rows, key=lambda b: (b.booking_date, b.start_time))

    def list_bookings_by_status(self, status, until_date):
        rows = [b for b in self.bookings.values() if b.status == status and b.booking_date <= until_date]
        return sorted(rows, key=lambda b: (b.booking_date, b.start_time))

    def list_bookings(self, flt: BookingFilter):
        rows = [b for b in self.bookings.values() if self._matches(b, flt)]
        rows.sort(key=lambda b: (b.booking_date, b.start_time), reverse=True)
        return rows[flt.offset:flt.offset + flt.limit], len(rows)

    def _matches(self, b, flt: BookingFilter) -> bool:
        if flt.owner_user_id is not None or flt.venue_id is not None:
            court = self.courts.get(b.court_id)
            venue = self.venues.get(court.venue_id) if court else None
            if venue is None:
                return False
            if flt.owner_user_id is not None and venue.owner_user_id != flt.owner_user_id:
                return False
            if flt.venue_id is not None and venue.id != flt.venue_id:
                return False
        if flt.user_id is not None and b.user_id != flt.user_id:
            return False
        if flt.court_id is not None and b.court_id != flt.court_id:
            return False
        if flt.status and b.status != flt.status:
            return False
        if flt.on_date is not None and b.booking_date != flt.on_date:
            return False
        if flt.start_date is not None and b.booking_date < flt.start_date:
            return False
        if flt.end_date is not None and b.booking_date > flt.end_date:
            return False
        if flt.upcoming_after is not None:
            today, now = flt.upcoming_after
            if not (b.booking_date > today or (b.booking_date == today and b.start_time > now)):
                return False
        return True

    # ---------- transactions ----------
    @contextmanager
    def atomic(self, court_id=None):
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield
                self._check_unique_active_windows()
            except BaseException:
                self._restore(snapshot)
                raise

    def _snapshot(self):
        return {
            name: {key: copy.copy(obj) for key, obj in getattr(self, name).items()}
            for name in ("time_slots", "bookings")
        }

    def _restore(self, snapshot):
        for name, saved in snapshot.items():
            store = getattr(self, name)
            for key, original in saved.items():
                live = store.get(key)
                if live is not None:
                    # callers may still hold the live object; roll its fields back
                    live.__dict__.update(original.__dict__)
                    saved[key] = live
            store.clear()
            store.update(saved)

    def _check_unique_active_windows(self):
        # same rule as the partial unique index on the bookings table
        seen = set()
        for b in self.bookings.values():
            if b.status not in WINDOW_HOLDING_STATUSES:
                continue
            key = (b.court_id, b.booking_date, b.start_time)
            if key in seen:
                raise ConflictError(
                    "Conflicts with an existing booking or time slot on this court",
                    {"court_id": b.court_id},
                )
            seen.add(key)
