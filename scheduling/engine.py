"""
Court scheduling engine.

Owns the rules for weekly slot templates and concrete bookings:

* slot templates per (court, weekday), generated in bulk or created in
  validated batches, blocked/unblocked by the venue owner;
* availability for a (court, date) = open templates minus active bookings;
* booking creation with conflict check and insert in one atomic unit;
* the booking lifecycle (confirm, cancel, complete, reschedule).

Storage is reached only through a `SchedulingRepository`.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from scheduling.availability import conflicting_bookings, resolve_open_windows
from scheduling.errors import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from scheduling.generator import generate_templates
from scheduling.repository import BookingFilter, SchedulingRepository
from scheduling.timeofday import (
    format_time,
    minutes_between,
    parse_date,
    parse_window,
    weekday_index,
    windows_overlap,
)
from scheduling.transitions import (
    ACTIVE_STATUSES,
    BOOKING_STATUSES,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    PAYMENT_PENDING,
    RESCHEDULABLE_STATUSES,
    WINDOW_HOLDING_STATUSES,
    apply_status,
    can_transition,
    ensure_transition,
)
from scheduling.validators import (
    ensure_no_overlap,
    ensure_not_past,
    parse_amount,
    parse_day_of_week,
    parse_notes,
    parse_reason,
    validate_template_batch,
    window_matches,
)

logger = logging.getLogger(__name__)

TEMPLATE_PATCH_FIELDS = ("day_of_week", "start_time", "end_time", "is_available")
CUSTOMER_CANCEL_REASON = "Cancelled by customer"


@dataclass
class EngineSettings:
    cancel_cutoff_hours: float = 2
    template_match_tolerance_minutes: int = 0
    default_operating_start: str = "06:00"
    default_operating_end: str = "22:00"
    default_slot_duration_minutes: int = 60
    booking_list_max_limit: int = 100

    @classmethod
    def from_config(cls, config) -> "EngineSettings":
        return cls(
            cancel_cutoff_hours=config.get("CANCEL_CUTOFF_HOURS", 2),
            template_match_tolerance_minutes=config.get("TEMPLATE_MATCH_TOLERANCE_MINUTES", 0),
            default_operating_start=config.get("DEFAULT_OPERATING_START", "06:00"),
            default_operating_end=config.get("DEFAULT_OPERATING_END", "22:00"),
            default_slot_duration_minutes=config.get("DEFAULT_SLOT_DURATION_MINUTES", 60),
            booking_list_max_limit=config.get("BOOKING_LIST_MAX_LIMIT", 100),
        )


@dataclass
class BookingRequest:
    """A booking request that passed every check short of being written."""
    court: object
    venue: object
    booking_date: date
    start_time: object
    end_time: object


class SchedulingEngine:
    def __init__(self, repo: SchedulingRepository, settings: EngineSettings = None, clock=None):
        self.repo = repo
        self.settings = settings or EngineSettings()
        # civil local time; only the date and time-of-day are used
        self.clock = clock or datetime.now

    def _now(self) -> datetime:
        return self.clock()

    def _today(self) -> date:
        return self._now().date()

    # ------------------------------------------------------------------
    # ownership guards
    # ------------------------------------------------------------------
    def authorize_court(self, owner_user_id, venue_id, court_id):
        """(venue, court) if `owner_user_id` manages the venue the court belongs to."""
        venue = self.repo.get_venue(venue_id)
        if venue is None:
            raise NotFoundError("Venue not found", {"venue_id": venue_id})
        if venue.owner_user_id != owner_user_id:
            raise AuthorizationError("Access denied", {"venue_id": venue_id})
        court = self.repo.get_court(court_id)
        if court is None or court.venue_id != venue.id:
            raise NotFoundError("Court not found", {"court_id": court_id})
        return venue, court

    def _owned_booking(self, owner_user_id, booking_id):
        booking = self.repo.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", {"booking_id": booking_id})
        court = self.repo.get_court(booking.court_id)
        venue = self.repo.get_venue(court.venue_id) if court else None
        if venue is None or venue.owner_user_id != owner_user_id:
            raise AuthorizationError("Access denied", {"booking_id": booking_id})
        return booking

    def _customer_booking(self, user_id, booking_id, action: str):
        booking = self.repo.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found", {"booking_id": booking_id})
        if booking.user_id != user_id:
            raise AuthorizationError(f"You can only {action} your own bookings", {"booking_id": booking_id})
        return booking

    def _slot_of_court(self, court, slot_id):
        slot = self.repo.get_time_slot(slot_id)
        if slot is None or slot.court_id != court.id:
            raise NotFoundError("Time slot not found", {"slot_id": slot_id})
        return slot

    # ------------------------------------------------------------------
    # slot templates
    # ------------------------------------------------------------------
    def generate_default_slots(self, owner_user_id, venue_id, court_id, start=None, end=None,
                               duration_minutes=None, weekdays=None) -> int:
        """
        Replace every template of the court with back-to-back windows of
        `duration_minutes` between `start` and `end` on each weekday.

        Existing bookings are left untouched; they no longer depend on the
        templates once made.
        """
        venue, court = self.authorize_court(owner_user_id, venue_id, court_id)
        st, et = parse_window(
            start if start is not None else self.settings.default_operating_start,
            end if end is not None else self.settings.default_operating_end,
            "operating_hours.start",
            "operating_hours.end",
        )
        if duration_minutes is None:
            duration_minutes = self.settings.default_slot_duration_minutes
        windows = generate_templates(st, et, duration_minutes, weekdays)

        with self.repo.atomic(court.id):
            upcoming = self._upcoming_active_bookings(court.id)
            if upcoming:
                logger.warning(
                    "Regenerating slots for court %s with %d upcoming bookings in place",
                    court.id, len(upcoming),
                )
            removed = self.repo.delete_time_slots_for_court(court.id)
            slots = [
                self.repo.new_time_slot(
                    venue_id=venue.id,
                    court_id=court.id,
                    day_of_week=day,
                    start_time=w_start,
                    end_time=w_end,
                    is_available=True,
                )
                for day, w_start, w_end in windows
            ]
            self.repo.add_time_slots(slots)

        logger.info("Generated %d slots for court %s (replaced %d)", len(slots), court.id, removed)
        return len(slots)

    def create_slot_templates(self, owner_user_id, venue_id, court_id, raw_templates) -> List:
        """Validate and insert a batch; nothing is stored unless every template passes."""
        venue, court = self.authorize_court(owner_user_id, venue_id, court_id)
        parsed = validate_template_batch(raw_templates)

        with self.repo.atomic(court.id):
            ensure_no_overlap(parsed, existing=self.repo.list_time_slots(court.id))
            slots = [self.repo.new_time_slot(venue_id=venue.id, court_id=court.id, **p) for p in parsed]
            self.repo.add_time_slots(slots)

        logger.info("Created %d slots for court %s", len(slots), court.id)
        return slots

    def list_slot_templates(self, court_id, day_of_week=None, available=None) -> List:
        if self.repo.get_court(court_id) is None:
            raise NotFoundError("Court not found", {"court_id": court_id})
        if day_of_week is not None:
            day_of_week = parse_day_of_week(_parse_int(day_of_week, "day_of_week"))
        return self.repo.list_time_slots(court_id, day_of_week=day_of_week, available=available)

    def list_blocked_slots(self, owner_user_id, venue_id, court_id, day_of_week=None) -> List:
        _, court = self.authorize_court(owner_user_id, venue_id, court_id)
        return self.list_slot_templates(court.id, day_of_week=day_of_week, available=False)

    def update_slot_template(self, owner_user_id, venue_id, court_id, slot_id, patch: dict):
        _, court = self.authorize_court(owner_user_id, venue_id, court_id)
        slot = self._slot_of_court(court, slot_id)
        changes = {k: v for k, v in (patch or {}).items() if k in TEMPLATE_PATCH_FIELDS and v is not None}
        if not changes:
            raise ValidationError("No valid fields to update", {"allowed": list(TEMPLATE_PATCH_FIELDS)})

        day = parse_day_of_week(changes.get("day_of_week", slot.day_of_week))
        st, et = parse_window(changes.get("start_time", slot.start_time), changes.get("end_time", slot.end_time))
        is_available = changes.get("is_available", slot.is_available)
        if not isinstance(is_available, bool):
            raise ValidationError("is_available must be a boolean")

        with self.repo.atomic(court.id):
            others = [s for s in self.repo.list_time_slots(court.id, day_of_week=day) if s.id != slot.id]
            ensure_no_overlap([{"day_of_week": day, "start_time": st, "end_time": et}], existing=others)
            slot.day_of_week = day
            slot.start_time = st
            slot.end_time = et
            slot.is_available = is_available
            if is_available:
                slot.blocked_reason = None
            slot.updated_at = datetime.utcnow()
        return slot

    def delete_slot_template(self, owner_user_id, venue_id, court_id, slot_id) -> None:
        """Refused while an upcoming active booking sits inside this template's weekly window."""
        _, court = self.authorize_court(owner_user_id, venue_id, court_id)
        slot = self._slot_of_court(court, slot_id)

        with self.repo.atomic(court.id):
            blocking = [
                b for b in self._upcoming_active_bookings(court.id)
                if weekday_index(b.booking_date) == slot.day_of_week
                and windows_overlap(slot.start_time, slot.end_time, b.start_time, b.end_time)
            ]
            if blocking:
                raise ConflictError(
                    "Cannot delete a time slot with upcoming bookings",
                    {"slot_id": slot.id, "booking_ids": [b.id for b in blocking]},
                )
            self.repo.delete_time_slot(slot)
        logger.info("Deleted slot %s of court %s", slot_id, court.id)

    def block_slots(self, owner_user_id, venue_id, court_id, slot_ids, reason=None) -> List:
        """Mark templates unavailable. Bookings already made in those windows stay as they are."""
        reason = parse_reason(reason)
        return self._set_availability(owner_user_id, venue_id, court_id, slot_ids, False, reason)

    def unblock_slots(self, owner_user_id, venue_id, court_id, slot_ids) -> List:
        return self._set_availability(owner_user_id, venue_id, court_id, slot_ids, True, None)

    def _set_availability(self, owner_user_id, venue_id, court_id, slot_ids, available: bool, reason):
        _, court = self.authorize_court(owner_user_id, venue_id, court_id)
        ids = _parse_id_list(slot_ids, "slot_ids")

        with self.repo.atomic(court.id):
            slots = self.repo.get_time_slots(court.id, ids)
            missing = sorted(set(ids) - {s.id for s in slots})
            if missing:
                raise NotFoundError("Time slot(s) not found for this court", {"slot_ids": missing})
            now = datetime.utcnow()
            for slot in slots:
                slot.is_available = available
                slot.blocked_reason = reason
                slot.updated_at = now

        logger.info("%s %d slots on court %s", "Unblocked" if available else "Blocked", len(slots), court.id)
        return slots

    # ------------------------------------------------------------------
    # availability
    # ------------------------------------------------------------------
    def get_available_windows(self, court_id, on_date) -> List:
        """Open templates of the court's weekday not intersected by an active booking that day."""
        day = parse_date(on_date)
        court = self.repo.get_court(court_id)
        if court is None or not court.is_active:
            raise NotFoundError("Court not found or not available", {"court_id": court_id})
        templates = self.repo.list_time_slots(court.id, day_of_week=weekday_index(day), available=True)
        bookings = self.repo.list_court_bookings(court.id, day, WINDOW_HOLDING_STATUSES)
        return resolve_open_windows(templates, bookings)

    # ------------------------------------------------------------------
    # booking creation
    # ------------------------------------------------------------------
    def validate_booking_request(self, court_id, booking_date, start_time, end_time,
                                 exclude_booking_id=None) -> BookingRequest:
        """Every creation check, in order, without writing anything."""
        request = self._check_booking_request(court_id, booking_date, start_time, end_time)
        self._ensure_no_conflict(request, exclude_booking_id)
        return request

    def _check_booking_request(self, court_id, booking_date, start_time, end_time) -> BookingRequest:
        court_id = _parse_int(court_id, "court_id")
        st, et = parse_window(start_time, end_time)
        day = parse_date(booking_date, "booking_date")
        ensure_not_past(day, self._today())

        court = self.repo.get_court(court_id)
        if court is None or not court.is_active:
            raise NotFoundError("Court not found or not available", {"court_id": court_id})
        venue = self.repo.get_venue(court.venue_id)
        if venue is None or not venue.is_approved:
            raise NotFoundError("Venue not available for booking", {"venue_id": court.venue_id})

        tolerance = self.settings.template_match_tolerance_minutes
        matches = [
            t for t in self.repo.list_time_slots(court.id, day_of_week=weekday_index(day))
            if window_matches(t.start_time, t.end_time, st, et, tolerance)
        ]
        if not matches:
            raise ValidationError(
                "No time slot is offered for the requested window",
                {"day_of_week": weekday_index(day), "start_time": format_time(st), "end_time": format_time(et)},
            )
        if not any(t.is_available for t in matches):
            raise ValidationError(
                "The requested time slot is blocked by the venue",
                {"start_time": format_time(st), "end_time": format_time(et)},
            )
        return BookingRequest(court=court, venue=venue, booking_date=day, start_time=st, end_time=et)

    def _ensure_no_conflict(self, request: BookingRequest, exclude_booking_id=None) -> None:
        existing = self.repo.list_court_bookings(request.court.id, request.booking_date, WINDOW_HOLDING_STATUSES)
        clashes = conflicting_bookings(existing, request.start_time, request.end_time, exclude_booking_id)
        if clashes:
            raise ConflictError(
                "The requested time slot is not available",
                {
                    "court_id": request.court.id,
                    "booking_date": request.booking_date.isoformat(),
                    "conflicts": [
                        {"start_time": format_time(b.start_time), "end_time": format_time(b.end_time)}
                        for b in clashes
                    ],
                },
            )

    def create_booking(self, user_id, court_id, booking_date, start_time, end_time,
                       total_amount=None, notes=None):
        """Create a confirmed booking; the conflict check and the insert are one atomic unit."""
        amount = parse_amount(total_amount)
        notes = parse_notes(notes)
        request = self._check_booking_request(court_id, booking_date, start_time, end_time)
        if amount is None:
            amount = self._price(request.court, request.start_time, request.end_time)

        now = datetime.utcnow()
        with self.repo.atomic(request.court.id):
            self._ensure_no_conflict(request)
            booking = self.repo.new_booking(
                court_id=request.court.id,
                venue_id=request.venue.id,
                user_id=user_id,
                booking_date=request.booking_date,
                start_time=request.start_time,
                end_time=request.end_time,
                status=CONFIRMED,
                payment_status=PAYMENT_PENDING,
                total_amount=amount,
                notes=notes,
                confirmed_at=now,
                created_at=now,
                updated_at=now,
            )
            self.repo.add_booking(booking)

        logger.info(
            "Booking %s created for court %s on %s %s-%s",
            booking.id, request.court.id, request.booking_date,
            format_time(request.start_time), format_time(request.end_time),
        )
        return booking

    # ------------------------------------------------------------------
    # booking lifecycle
    # ------------------------------------------------------------------
    def confirm_booking(self, owner_user_id, booking_id):
        booking = self._owned_booking(owner_user_id, booking_id)
        with self.repo.atomic(booking.court_id):
            apply_status(booking, CONFIRMED)
        logger.info("Booking %s confirmed by owner %s", booking.id, owner_user_id)
        return booking

    def owner_cancel_booking(self, owner_user_id, booking_id, reason):
        reason = parse_reason(reason, required=True)
        booking = self._owned_booking(owner_user_id, booking_id)
        with self.repo.atomic(booking.court_id):
            apply_status(booking, CANCELLED, cancellation_reason=reason)
        logger.info("Booking %s cancelled by owner %s", booking.id, owner_user_id)
        return booking

    def complete_booking(self, owner_user_id, booking_id):
        """Only once the booked window has ended."""
        booking = self._owned_booking(owner_user_id, booking_id)
        ensure_transition(booking, COMPLETED)
        ends_at = datetime.combine(booking.booking_date, booking.end_time)
        if ends_at > self._now():
            raise ValidationError(
                "Cannot complete a booking before it has ended",
                {"booking_id": booking.id, "ends_at": ends_at.isoformat(timespec="minutes")},
            )
        with self.repo.atomic(booking.court_id):
            apply_status(booking, COMPLETED)
        return booking

    def complete_elapsed_bookings(self, now: datetime = None) -> int:
        """Mark confirmed bookings whose end time has passed as completed."""
        now = now or self._now()
        today, current = now.date(), now.time()
        with self.repo.atomic():
            elapsed = [
                b for b in self.repo.list_bookings_by_status(CONFIRMED, today)
                if b.booking_date < today or b.end_time <= current
            ]
            for booking in elapsed:
                apply_status(booking, COMPLETED)
        if elapsed:
            logger.info("Completed %d elapsed bookings", len(elapsed))
        return len(elapsed)

    def cancel_booking(self, user_id, booking_id, reason=None):
        """Customer cancellation of their own booking."""
        reason = parse_reason(reason, default=CUSTOMER_CANCEL_REASON)
        booking = self._customer_booking(user_id, booking_id, "cancel")
        if booking.status == COMPLETED:
            raise InvalidTransitionError("Cannot cancel completed booking", {"booking_id": booking.id})

        cutoff = self.settings.cancel_cutoff_hours
        if cutoff and can_transition(booking.status, CANCELLED):
            hours_left = self._hours_until(booking)
            if hours_left < cutoff:
                raise ValidationError(
                    f"Cannot cancel booking less than {cutoff:g} hours before start time",
                    {"booking_id": booking.id, "hours_until_start": round(hours_left, 2)},
                )

        with self.repo.atomic(booking.court_id):
            apply_status(booking, CANCELLED, cancellation_reason=reason)
        logger.info("Booking %s cancelled by customer %s", booking.id, user_id)
        return booking

    def reschedule_booking(self, user_id, booking_id, new_date, new_start, new_end) -> dict:
        """
        Move a pending/confirmed booking to a new (date, start, end) on the
        same court. The booking's own current window does not count as a
        conflict; the move is checked and written under the court lock.

        Returns the booking with the previous amount and the price difference
        (new minus previous) the customer owes or is owed.
        """
        st, et = parse_window(new_start, new_end, "new_start_time", "new_end_time")
        day = parse_date(new_date, "new_date")
        booking = self._customer_booking(user_id, booking_id, "reschedule")
        if booking.status not in RESCHEDULABLE_STATUSES:
            raise InvalidTransitionError(
                "Only confirmed or pending bookings can be rescheduled",
                {"booking_id": booking.id, "status": booking.status},
            )
        if datetime.combine(day, st) <= self._now():
            raise ValidationError(
                "Cannot reschedule to past dates and times",
                {"new_date": day.isoformat(), "new_start_time": format_time(st)},
            )

        court = self.repo.get_court(booking.court_id)
        if court is None or not court.is_active:
            raise NotFoundError("Court not available", {"court_id": booking.court_id})

        request = BookingRequest(court=court, venue=None, booking_date=day, start_time=st, end_time=et)
        previous = (booking.booking_date, booking.start_time, booking.end_time)
        previous_amount = Decimal(str(booking.total_amount or 0))
        new_amount = self._price(court, st, et)
        with self.repo.atomic(court.id):
            self._ensure_no_conflict(request, exclude_booking_id=booking.id)
            now = datetime.utcnow()
            booking.booking_date = day
            booking.start_time = st
            booking.end_time = et
            booking.total_amount = new_amount
            booking.rescheduled_at = now
            booking.updated_at = now

        logger.info(
            "Booking %s moved from %s %s-%s to %s %s-%s",
            booking.id, previous[0], format_time(previous[1]), format_time(previous[2]),
            day, format_time(st), format_time(et),
        )
        return {
            "booking": booking,
            "previous_amount": previous_amount,
            "price_difference": new_amount - previous_amount,
        }

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get_booking_details(self, user_id, booking_id) -> dict:
        booking = self.repo.get_booking(booking_id)
        if booking is None or booking.user_id != user_id:
            raise NotFoundError("Booking not found", {"booking_id": booking_id})
        return {
            "booking": booking,
            "can_cancel": booking.status in ACTIVE_STATUSES,
            "can_reschedule": booking.status in RESCHEDULABLE_STATUSES,
        }

    def list_user_bookings(self, user_id, status=None, start_date=None, end_date=None,
                           upcoming=False, limit=20, offset=0):
        flt = BookingFilter(
            user_id=user_id,
            status=_parse_status(status),
            start_date=parse_date(start_date, "start_date") if start_date else None,
            end_date=parse_date(end_date, "end_date") if end_date else None,
            limit=self._parse_limit(limit),
            offset=_parse_offset(offset),
        )
        if upcoming:
            now = self._now()
            flt.upcoming_after = (now.date(), now.time().replace(second=0, microsecond=0))
        return self.repo.list_bookings(flt)

    def list_owner_bookings(self, owner_user_id, status=None, venue_id=None, court_id=None,
                            on_date=None, start_date=None, end_date=None, limit=50, offset=0):
        flt = BookingFilter(
            owner_user_id=owner_user_id,
            venue_id=venue_id,
            court_id=court_id,
            status=_parse_status(status),
            limit=self._parse_limit(limit),
            offset=_parse_offset(offset),
        )
        if on_date:
            flt.on_date = parse_date(on_date)
        elif start_date and end_date:
            flt.start_date = parse_date(start_date, "start_date")
            flt.end_date = parse_date(end_date, "end_date")
        return self.repo.list_bookings(flt)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _upcoming_active_bookings(self, court_id) -> List:
        now = self._now()
        today, current = now.date(), now.time()
        return [
            b for b in self.repo.list_court_bookings_from(court_id, today, ACTIVE_STATUSES)
            if b.booking_date > today or b.end_time > current
        ]

    def _hours_until(self, booking) -> float:
        starts_at = datetime.combine(booking.booking_date, booking.start_time)
        return (starts_at - self._now()) / timedelta(hours=1)

    def _price(self, court, start, end) -> Decimal:
        rate = Decimal(str(court.price_per_hour or 0))
        hours = Decimal(minutes_between(start, end)) / Decimal(60)
        return (rate * hours).quantize(Decimal("0.01"))

    def _parse_limit(self, value) -> int:
        limit = _parse_int(value, "limit")
        if not 1 <= limit <= self.settings.booking_list_max_limit:
            raise ValidationError(f"limit must be between 1 and {self.settings.booking_list_max_limit}")
        return limit


def _parse_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", {field: value})


def _parse_offset(value) -> int:
    offset = _parse_int(value, "offset")
    if offset < 0:
        raise ValidationError("offset must be zero or positive")
    return offset


def _parse_status(value) -> Optional[str]:
    if not value:
        return None
    if value not in BOOKING_STATUSES:
        raise ValidationError("Invalid status", {"status": value, "allowed": list(BOOKING_STATUSES)})
    return value


def _parse_id_list(values, field: str) -> List[int]:
    if not isinstance(values, list) or not values:
        raise ValidationError(f"{field} must be a non-empty list")
    ids = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, int) or v < 1:
            raise ValidationError(f"Each entry of {field} must be a positive integer", {field: v})
        ids.append(v)
    return ids
