"""
Storage interface used by the scheduling engine.

The engine never talks to a database directly. Everything it reads or writes
goes through a `SchedulingRepository`, and every write that must not race
with another request runs inside `atomic(court_id)`.
"""
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, time
from typing import List, Optional, Tuple


@dataclass
class BookingFilter:
    user_id: Optional[int] = None
    owner_user_id: Optional[int] = None
    venue_id: Optional[int] = None
    court_id: Optional[int] = None
    status: Optional[str] = None
    on_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    # (today, now) - only bookings starting after this moment
    upcoming_after: Optional[Tuple[date, time]] = None
    limit: int = 20
    offset: int = 0


class CourtLocks:
    """One mutex per court id, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def get(self, court_id) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(court_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[court_id] = lock
            return lock


class SchedulingRepository(ABC):

    # ---------- venues / courts ----------
    @abstractmethod
    def get_venue(self, venue_id):
        ...

    @abstractmethod
    def get_court(self, court_id):
        ...

    # ---------- slot templates ----------
    @abstractmethod
    def list_time_slots(self, court_id, day_of_week: int = None, available: bool = None) -> List:
        """Templates of a court ordered by (day_of_week, start_time)."""

    @abstractmethod
    def get_time_slot(self, slot_id):
        ...

    @abstractmethod
    def get_time_slots(self, court_id, slot_ids) -> List:
        """Only the templates among `slot_ids` that belong to `court_id`."""

    @abstractmethod
    def new_time_slot(self, **fields):
        """Build an unsaved template record."""

    @abstractmethod
    def add_time_slots(self, slots) -> None:
        ...

    @abstractmethod
    def delete_time_slot(self, slot) -> None:
        ...

    @abstractmethod
    def delete_time_slots_for_court(self, court_id) -> int:
        ...

    # ---------- bookings ----------
    @abstractmethod
    def get_booking(self, booking_id):
        ...

    @abstractmethod
    def new_booking(self, **fields):
        """Build an unsaved booking record."""

    @abstractmethod
    def add_booking(self, booking) -> None:
        ...

    @abstractmethod
    def list_court_bookings(self, court_id, on_date: date, statuses) -> List:
        """Bookings of a court on one date whose status is in `statuses`."""

    @abstractmethod
    def list_court_bookings_from(self, court_id, from_date: date, statuses) -> List:
        """Bookings of a court dated `from_date` or later, status in `statuses`."""

    @abstractmethod
    def list_bookings_by_status(self, status: str, until_date: date) -> List:
        """All bookings in `status` dated `until_date` or earlier."""

    @abstractmethod
    def list_bookings(self, flt: BookingFilter) -> Tuple[List, int]:
        """(page of bookings, total matching) newest booking_date first."""

    # ---------- transactions ----------
    @abstractmethod
    def atomic(self, court_id=None):
        """
        Context manager. Writes made inside are committed together when the
        block exits normally and discarded when it raises. When `court_id` is
        given, no other atomic block for the same court runs concurrently.
        """
