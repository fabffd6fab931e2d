import logging
from contextlib import contextmanager, nullcontext

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.booking import Booking
from models.court import Court
from models.time_slot import TimeSlot
from models.venue import Venue
from scheduling.errors import ConflictError, InternalError, SchedulingError
from scheduling.repository import BookingFilter, CourtLocks, SchedulingRepository

logger = logging.getLogger(__name__)

# Shared by every repository in the process so two handlers racing for the
# same court queue up even when the database ignores FOR UPDATE (SQLite).
_court_locks = CourtLocks()


class SqlAlchemyRepository(SchedulingRepository):
    def __init__(self, session, court_locks: CourtLocks = None):
        self.session = session
        self.court_locks = court_locks or _court_locks

    # ---------- venues / courts ----------
    def get_venue(self, venue_id):
        return self.session.get(Venue, venue_id)

    def get_court(self, court_id):
        return self.session.get(Court, court_id)

    # ---------- slot templates ----------
    def list_time_slots(self, court_id, day_of_week=None, available=None):
        q = select(TimeSlot).where(TimeSlot.court_id == court_id)
        if day_of_week is not None:
            q = q.where(TimeSlot.day_of_week == day_of_week)
        if available is not None:
            q = q.where(TimeSlot.is_available.is_(available))
        q = q.order_by(TimeSlot.day_of_week.asc(), TimeSlot.start_time.asc())
        return list(self.session.scalars(q))

    def get_time_slot(self, slot_id):
        return self.session.get(TimeSlot, slot_id)

    def get_time_slots(self, court_id, slot_ids):
        if not slot_ids:
            return []
        q = (
            select(TimeSlot)
            .where(TimeSlot.court_id == court_id, TimeSlot.id.in_(list(slot_ids)))
            .order_by(TimeSlot.day_of_week.asc(), TimeSlot.start_time.asc())
        )
        return list(self.session.scalars(q))

    def new_time_slot(self, **fields):
        return TimeSlot(**fields)

    def add_time_slots(self, slots):
        self.session.add_all(slots)

    def delete_time_slot(self, slot):
        self.session.delete(slot)

    def delete_time_slots_for_court(self, court_id):
        return (
            self.session.query(TimeSlot)
            .filter(TimeSlot.court_id == court_id)
            .delete(synchronize_session="fetch")
        )

    # ---------- bookings ----------
    def get_booking(self, booking_id):
        return self.session.get(Booking, booking_id)

    def new_booking(self, **fields):
        return Booking(**fields)

    def add_booking(self, booking):
        self.session.add(booking)

    def list_court_bookings(self, court_id, on_date, statuses):
        q = (
            select(Booking)
            .where(
                Booking.court_id == court_id,
                Booking.booking_date == on_date,
                Booking.status.in_(list(statuses)),
            )
            .order_by(Booking.start_time.asc())
        )
        return list(self.session.scalars(q))

    def list_court_bookings_from(self, court_id, from_date, statuses):
        q = (
            select(Booking)
            .where(
                Booking.court_id == court_id,
                Booking.booking_date >= from_date,
                Booking.status.in_(list(statuses)),
            )
            .order_by(Booking.booking_date.asc(), Booking.start_time.asc())
        )
        return list(self.session.scalars(q))

    def list_bookings_by_status(self, status, until_date):
        q = (
            select(Booking)
            .where(Booking.status == status, Booking.booking_date <= until_date)
            .order_by(Booking.booking_date.asc(), Booking.start_time.asc())
        )
        return list(self.session.scalars(q))

    def list_bookings(self, flt: BookingFilter):
        q = self.session.query(Booking)
        if flt.owner_user_id is not None or flt.venue_id is not None:
            q = q.join(Court, Booking.court_id == Court.id).join(Venue, Court.venue_id == Venue.id)
        if flt.owner_user_id is not None:
            q = q.filter(Venue.owner_user_id == flt.owner_user_id)
        if flt.venue_id is not None:
            q = q.filter(Venue.id == flt.venue_id)
        if flt.user_id is not None:
            q = q.filter(Booking.user_id == flt.user_id)
        if flt.court_id is not None:
            q = q.filter(Booking.court_id == flt.court_id)
        if flt.status:
            q = q.filter(Booking.status == flt.status)
        if flt.on_date is not None:
            q = q.filter(Booking.booking_date == flt.on_date)
        if flt.start_date is not None:
            q = q.filter(Booking.booking_date >= flt.start_date)
        if flt.end_date is not None:
            q = q.filter(Booking.booking_date <= flt.end_date)
        if flt.upcoming_after is not None:
            today, now = flt.upcoming_after
            q = q.filter(or_(
                Booking.booking_date > today,
                and_(Booking.booking_date == today, Booking.start_time > now),
            ))

        total = q.count()
        rows = (
            q.order_by(Booking.booking_date.desc(), Booking.start_time.desc())
            .limit(flt.limit)
            .offset(flt.offset)
            .all()
        )
        return rows, total

    # ---------- transactions ----------
    @contextmanager
    def atomic(self, court_id=None):
        lock = self.court_locks.get(court_id) if court_id is not None else nullcontext()
        with lock:
            try:
                if court_id is not None:
                    # Row lock on the court serialises writers across processes (PostgreSQL).
                    self.session.execute(
                        select(Court.id).where(Court.id == court_id).with_for_update()
                    )
                yield
                self.session.commit()
            except IntegrityError as exc:
                self.session.rollback()
                logger.warning("Integrity violation on court %s: %s", court_id, exc.orig)
                raise ConflictError(
                    "Conflicts with an existing booking or time slot on this court",
                    {"court_id": court_id},
                ) from exc
            except SchedulingError:
                self.session.rollback()
                raise
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.exception("Storage failure on court %s", court_id)
                raise InternalError("Storage failure, please retry") from exc
            except Exception:
                self.session.rollback()
                raise
