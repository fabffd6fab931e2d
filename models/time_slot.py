from datetime import datetime
from models.db import db

class TimeSlot(db.Model):
    """Recurring weekly window of a court (day_of_week: 0 = Sunday ... 6 = Saturday)."""
    __tablename__ = "time_slots"

    id = db.Column(db.Integer, primary_key=True)

    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)
    day_of_week = db.Column(db.Integer, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    # False = blocked by the venue owner
    is_available = db.Column(db.Boolean, default=True, nullable=False)
    blocked_reason = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        # Prevent duplicate windows for the same court and weekday
        db.UniqueConstraint("court_id", "day_of_week", "start_time", "end_time", name="uq_court_weekday_window"),
        db.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_time_slots_day_of_week"),
        db.CheckConstraint("end_time > start_time", name="ck_time_slots_window"),
        db.Index("ix_time_slots_court_day", "court_id", "day_of_week"),
    )
