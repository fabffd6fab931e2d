from datetime import datetime
from models.db import db

class Court(db.Model):
    __tablename__ = "courts"

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    sport_type = db.Column(db.String(40), nullable=False)

    price_per_hour = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    venue = db.relationship("Venue", back_populates="courts")
