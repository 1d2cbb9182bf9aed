"""
Flask web application for the school days & periods calendar.

JSON endpoints for the dashboard and the per-date override store:
- GET    /api/dashboard             today's snapshot (optional ?now=)
- GET    /api/days/<date>           classification of a date
- GET    /api/schedule/<date>       resolved bell schedule for a date
- GET    /api/remaining/<date>      countdown from a date
- GET    /api/events                marking periods, early releases, conferences (?mode=upcoming|past|all)
- GET    /api/overrides             all overrides
- PUT    /api/overrides/<date>      set an override ({"value": "WED_LATE"} or {"periods": [...]})
- DELETE /api/overrides/<date>      remove one override
- DELETE /api/overrides             remove all overrides

Dates in URLs are YYYY-MM-DD and are read as calendar dates in the school's
time zone.
"""

import os
from datetime import datetime
from typing import Any, Dict

from flask import Flask, jsonify, request
from werkzeug.exceptions import BadRequest, HTTPException

from .calendar_service import SchoolCalendar
from .config import configure_logging, load_school_config
from .models import (
    deserialize_date, deserialize_period, serialize_classification,
    serialize_dashboard, serialize_date, serialize_event, serialize_remaining,
    serialize_resolved_schedule,
)
from .override_store import encode_custom_override, get_override_store

# Initialize Flask app
app = Flask(__name__)
app.secret_key = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')


def get_school() -> SchoolCalendar:
    """Return the configured SchoolCalendar, building it on first use.

    Tests (or an embedding service) may place their own instance in
    app.config['SCHOOL'].
    """
    school = app.config.get('SCHOOL')
    if school is None:
        school = SchoolCalendar(load_school_config(), get_override_store())
        app.config['SCHOOL'] = school
    return school


def parse_path_date(value: str):
    """Parse a YYYY-MM-DD URL segment, answering 400 when it is not one."""
    try:
        return deserialize_date(value)
    except ValueError:
        raise BadRequest(f"Invalid date '{value}', expected YYYY-MM-DD")


@app.route('/api/dashboard')
def dashboard():
    """Today's countdown, schedule and period status.

    Query parameters:
        now: Optional ISO datetime to report on instead of the current time
    """
    school = get_school()
    now = None
    if request.args.get('now'):
        try:
            now = datetime.fromisoformat(request.args['now'])
        except ValueError:
            raise BadRequest("Invalid 'now', expected an ISO datetime")
    snapshot = school.dashboard(now)
    return jsonify(serialize_dashboard(snapshot))


@app.route('/api/days/<day>')
def day_status(day: str):
    day = parse_path_date(day)
    payload = serialize_classification(get_school().classify_day(day))
    payload['date'] = serialize_date(day)
    return jsonify(payload)


@app.route('/api/schedule/<day>')
def schedule(day: str):
    day = parse_path_date(day)
    return jsonify(serialize_resolved_schedule(get_school().resolve_schedule(day)))


@app.route('/api/remaining/<day>')
def remaining(day: str):
    day = parse_path_date(day)
    return jsonify(serialize_remaining(get_school().compute_remaining(day)))


@app.route('/api/events')
def events():
    """Marking periods, early releases and conferences.

    Query parameters:
        from: Reference date (default: today)
        mode: upcoming (default), past or all
        kind: marking_period, early_release or pt_event
    """
    school = get_school()
    from_date = parse_path_date(request.args['from']) if request.args.get('from') else school.today()
    try:
        items = school.list_events(
            from_date,
            mode=request.args.get('mode', 'upcoming'),
            kind=request.args.get('kind'),
        )
    except ValueError as e:
        raise BadRequest(str(e))
    return jsonify([serialize_event(e) for e in items])


@app.route('/api/overrides', methods=['GET'])
def list_overrides():
    overrides = get_school().overrides()
    return jsonify({serialize_date(day): value for day, value in overrides.items()})


@app.route('/api/overrides', methods=['DELETE'])
def clear_overrides():
    get_school().clear_overrides()
    return '', 204


@app.route('/api/overrides/<day>', methods=['PUT'])
def set_override(day: str):
    """Set the override for a date.

    Body: {"value": "<schedule name>"} or {"periods": [{"start": "09:40", ...}]}
    """
    day = parse_path_date(day)
    body: Dict[str, Any] = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        raise BadRequest("Override body must be a JSON object")

    if 'periods' in body:
        items = body['periods']
        if not isinstance(items, list) or not all(isinstance(p, dict) for p in items):
            raise BadRequest("'periods' must be a list of period objects")
        try:
            periods = [deserialize_period(p, i) for i, p in enumerate(items)]
        except (KeyError, TypeError, ValueError) as e:
            raise BadRequest(f"Invalid custom schedule: {e}")
        value = encode_custom_override(periods)
    else:
        value = body.get('value')
        if value is not None and not isinstance(value, str):
            raise BadRequest("'value' must be a schedule name")

    try:
        get_school().set_override(day, value)
    except ValueError as e:
        raise BadRequest(str(e))

    return jsonify({'date': serialize_date(day), 'value': value})


@app.route('/api/overrides/<day>', methods=['DELETE'])
def remove_override(day: str):
    get_school().remove_override(parse_path_date(day))
    return '', 204


@app.errorhandler(HTTPException)
def http_error(error):
    """Answer HTTP errors as JSON."""
    return jsonify({'error': error.description}), error.code


if __name__ == '__main__':
    configure_logging()
    # Run development server
    app.run(debug=True, host='0.0.0.0', port=5000)
