import json
import logging

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)

def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None) -> bool:
    """
    Append an audit row. Runs after the scheduling write has been committed,
    so a failure here is logged and rolled back on its own.
    """
    ip = None
    user_agent = ""
    if has_request_context():
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None
    )
    try:
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Audit write failed for %s %s=%s", action, entity, entity_id)
        return False
    return True
