"""Shared utility functions used by services and blueprints.

parse_date_input:  strict date parsing (raises ValueError on bad input)
commit_or_raise:   commit the session, translating store failures to TransportError
"""
import logging
from datetime import date, datetime

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from app.core.exceptions import TransportError
from app.models import db

logger = logging.getLogger(__name__)


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Supports: YYYY-MM-DD, YYYY-MM-DDTHH:MM:SS (→ date part), DD.MM.YYYY,
    date objects. Empty input returns None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY.")
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(value, "%d.%m.%Y").date()
    except ValueError as exc:
        raise ValueError(
            "Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY."
        ) from exc


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise():
    """Commit the current SQLAlchemy session.

    IntegrityError is re-raised unchanged (after rollback) so callers can map
    it to a conflict. Connection / driver failures become TransportError; the
    full detail goes to the log, never to the client.

    Usage::

        db.session.add(task)
        commit_or_raise()
    """
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    except OperationalError as exc:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        raise TransportError("Database unavailable") from exc
    except DBAPIError as exc:
        db.session.rollback()
        logger.exception("Database driver error on commit")
        raise TransportError("Database error") from exc
