# handover_pkg/utils.py
import datetime
import logging

from flask import current_app, has_app_context


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(dt_str):
    """Helper: Parse ISO string, returns None on failure."""
    if isinstance(dt_str, datetime.datetime):
        return dt_str
    if isinstance(dt_str, datetime.date):
        return datetime.datetime.combine(dt_str, datetime.time.min)
    if not dt_str or not isinstance(dt_str, str):
        return None
    try:
        parsed = datetime.datetime.fromisoformat(dt_str.replace('Z', '+00:00'))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return parsed


def isoformat_or_none(value):
    return value.isoformat() if value else None


def get_logger(name):
    """Flask's app logger inside an app context, a module logger otherwise."""
    if has_app_context():
        return current_app.logger
    return logging.getLogger(name)
