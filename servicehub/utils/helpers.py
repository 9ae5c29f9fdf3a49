"""Shared helpers for blueprints and services.

parse_calendar_date:  date/datetime/ISO string -> UTC calendar date, None on bad input
parse_int:            free-form query value -> int, None on bad input
api_success:          standard success envelope
"""
import logging
from datetime import date, datetime, timezone

from flask import jsonify

logger = logging.getLogger(__name__)


def parse_calendar_date(value):
    """Reduce a date-like value to the calendar day it falls on.

    Accepts ``date``, ``datetime`` and ISO-8601 strings (a trailing ``Z`` is
    read as UTC). Aware datetimes are converted to UTC first; naive ones are
    taken as already being UTC. Returns None for empty or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def parse_int(value):
    """Parse a query-string value as an int. Returns None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def api_success(data, message=None, status=200):
    """Return the ``{"success": true, "data": ..., "message": ...}`` envelope."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status
