from datetime import datetime
from models.db import db

class Venue(db.Model):
    __tablename__ = "venues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(160), nullable=True)

    # users live in the identity service; only the id is kept here
    owner_user_id = db.Column(db.Integer, nullable=False, index=True)

    # only approved venues take bookings
    is_approved = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    courts = db.relationship("Court", back_populates="venue")
