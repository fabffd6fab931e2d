from datetime import datetime
from sqlalchemy import text
from models.db import db

HOLDING_STATUS_SQL = "status != 'cancelled'"

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    booking_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    status = db.Column(db.String(20), nullable=False, default="pending")
    # status values: pending, confirmed, cancelled, completed
    payment_status = db.Column(db.String(20), nullable=False, default="pending")
    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)
    cancellation_reason = db.Column(db.String(500), nullable=True)

    confirmed_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    rescheduled_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        # Backstop against double booking: one non-cancelled booking per court/date/start
        db.Index(
            "uq_bookings_active_start",
            "court_id",
            "booking_date",
            "start_time",
            unique=True,
            sqlite_where=text(HOLDING_STATUS_SQL),
            postgresql_where=text(HOLDING_STATUS_SQL),
        ),
        db.Index("ix_bookings_court_date", "court_id", "booking_date"),
        db.CheckConstraint("end_time > start_time", name="ck_bookings_window"),
    )
