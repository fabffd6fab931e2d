from functools import wraps
from flask import current_app, g, jsonify, request

def load_current_user():
    """
    Sessions are issued by the upstream auth gateway, which forwards the
    authenticated user id in a trusted header.
    """
    header = current_app.config.get("AUTH_USER_HEADER", "X-User-Id")
    raw = (request.headers.get(header) or "").strip()
    g.user_id = int(raw) if raw.isdigit() and int(raw) > 0 else None

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user_id", None) is None:
            return jsonify(error="Authentication required", kind="unauthenticated"), 401
        return fn(*args, **kwargs)
    return wrapper
