from routes.health import health_bp
from routes.courts import court_bp
from routes.booking import booking_bp
from routes.venue_management import venue_bp

__all__ = ["health_bp", "court_bp", "booking_bp", "venue_bp"]
