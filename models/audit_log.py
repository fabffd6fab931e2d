from datetime import datetime
from models.db import db

class AuditLog(db.Model):
    """Append-only trail of scheduling writes (slot changes, booking lifecycle)."""
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True)  # None for CLI / system jobs
    action = db.Column(db.String(80), nullable=False, index=True)  # e.g. BOOKING_CREATE, SLOT_BLOCK
    entity = db.Column(db.String(40), nullable=True)   # booking, time_slot, court
    entity_id = db.Column(db.String(40), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        # history of one booking / slot / court
        db.Index("ix_audit_logs_entity", "entity", "entity_id"),
    )
