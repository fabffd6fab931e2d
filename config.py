import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to app.py as courtslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "courtslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Identity comes from the upstream auth gateway in this header
    AUTH_USER_HEADER = os.getenv("AUTH_USER_HEADER", "X-User-Id")

    # Cancellation policy (customers only; owners may cancel any time)
    CANCEL_CUTOFF_HOURS = float(os.getenv("CANCEL_CUTOFF_HOURS", "2"))

    # 0 = requested window must equal a slot template exactly.
    # Set to 1 to accept the legacy one-minute slack on template boundaries.
    TEMPLATE_MATCH_TOLERANCE_MINUTES = int(os.getenv("TEMPLATE_MATCH_TOLERANCE_MINUTES", "0"))

    # Slot generator defaults
    DEFAULT_OPERATING_START = os.getenv("DEFAULT_OPERATING_START", "06:00")
    DEFAULT_OPERATING_END = os.getenv("DEFAULT_OPERATING_END", "22:00")
    DEFAULT_SLOT_DURATION_MINUTES = int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "60"))

    # Booking listings
    BOOKING_LIST_MAX_LIMIT = 100

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
