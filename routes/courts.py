from flask import Blueprint, request, jsonify

from scheduling.errors import ValidationError
from scheduling.timeofday import day_name, parse_date, weekday_index
from utils.engine import get_engine
from utils.serializers import window_to_dict

court_bp = Blueprint("court", __name__, url_prefix="/courts")


@court_bp.get("/<int:court_id>/availability")
def court_availability(court_id: int):
    date_str = request.args.get("date")
    if not date_str:
        raise ValidationError("date query parameter is required (YYYY-MM-DD)")

    engine = get_engine()
    day = parse_date(date_str)
    windows = engine.get_available_windows(court_id, day)
    court = engine.repo.get_court(court_id)

    return jsonify(
        court_id=court_id,
        date=day.isoformat(),
        day_of_week=weekday_index(day),
        day_name=day_name(weekday_index(day)),
        slots=[window_to_dict(w, court.price_per_hour) for w in windows],
    ), 200
