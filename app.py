import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import Config
from routes import health_bp, court_bp, booking_bp, venue_bp

from models import db
from models.court import Court
from flask_migrate import Migrate
from scheduling import EngineSettings, SchedulingEngine, SchedulingError
from scheduling.errors import InternalError
from scheduling.sql_repository import SqlAlchemyRepository
from utils.audit import log_event
from utils.auth_context import load_current_user
from utils.engine import EXTENSION_KEY, get_engine

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(court_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(venue_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # One engine per app; the scoped session resolves per request/thread
    app.extensions[EXTENSION_KEY] = SchedulingEngine(
        SqlAlchemyRepository(db.session),
        EngineSettings.from_config(app.config),
    )

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(SchedulingError)
    def _scheduling_error(err):
        if err.status_code >= 500:
            logger.error("Scheduling failure: %s", err.message)
        return jsonify(**err.to_dict()), err.status_code

    @app.errorhandler(Exception)
    def _unexpected_error(err):
        if isinstance(err, HTTPException):
            return err
        logger.exception("Unhandled error")
        db.session.rollback()
        failure = InternalError("Internal server error")
        return jsonify(**failure.to_dict()), failure.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def _parse_days(value):
    if not value:
        return None
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise click.BadParameter("days must be comma separated numbers 0-6 (0 = Sunday)")


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables (use `flask db upgrade` for managed databases)."""
        db.create_all()
        click.echo("Database tables created")

    @app.cli.command("generate-slots")
    @click.argument("court_id", type=int)
    @click.option("--start", default=None, help="Opening time HH:MM")
    @click.option("--end", default=None, help="Closing time HH:MM")
    @click.option("--duration", type=int, default=None, help="Slot length in minutes")
    @click.option("--days", default=None, help="Weekdays, e.g. 1,2,3,4,5 (0 = Sunday)")
    def generate_slots(court_id, start, end, duration, days):
        """Replace a court's weekly slots on behalf of its venue owner."""
        court = db.session.get(Court, court_id)
        if not court:
            click.echo("Court not found")
            return

        venue = court.venue
        try:
            count = get_engine().generate_default_slots(
                venue.owner_user_id, venue.id, court.id,
                start=start, end=end, duration_minutes=duration, weekdays=_parse_days(days),
            )
        except SchedulingError as err:
            raise click.ClickException(err.message)

        log_event("SLOT_GENERATE", entity="court", entity_id=court.id, metadata={"count": count, "source": "cli"})
        click.echo(f"Generated {count} time slots for court {court.id}")

    @app.cli.command("complete-bookings")
    def complete_bookings():
        """Mark confirmed bookings whose end time has passed as completed."""
        count = get_engine().complete_elapsed_bookings()
        if count:
            log_event("BOOKING_AUTO_COMPLETE", entity="booking", metadata={"count": count})
        click.echo(f"Completed {count} bookings")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
