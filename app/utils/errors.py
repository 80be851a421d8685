"""Standardised API error responses.

Usage
-----
    from app.utils.errors import api_error, E

    return api_error(E.PROJECT_NOT_FOUND, "Project not found")
    return api_error(E.VALIDATION, "text is required", details={"text": "missing"})

Every error body has the same shape::

    {"success": false, "error": "<CODE>", "message": "...", "details": {...}}
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Validation – HTTP 400 / 415 / 422
    BAD_REQUEST = "BAD_REQUEST"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    VALIDATION = "VALIDATION_ERROR"
    TASK_ERROR = "TASK_ERROR"

    # Not-found – HTTP 404
    NOT_FOUND = "NOT_FOUND"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    TEMPLATE_TASK_NOT_SEEDED = "TEMPLATE_TASK_NOT_SEEDED"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "CONFLICT_DUPLICATE"
    AMBIGUOUS_TASK_MATCH = "AMBIGUOUS_TASK_MATCH"

    # Permissions – HTTP 403
    TASK_DELETE_FORBIDDEN = "TASK_DELETE_FORBIDDEN"

    # Protocol – HTTP 405 / 429
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    RATE_LIMITED = "RATE_LIMITED"

    # Server – HTTP 500
    DATABASE = "DATABASE_ERROR"
    INTERNAL = "INTERNAL_SERVER_ERROR"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.BAD_REQUEST: 400,
    E.UNSUPPORTED_MEDIA_TYPE: 415,
    E.PAYLOAD_TOO_LARGE: 413,
    E.VALIDATION: 422,
    E.TASK_ERROR: 400,
    E.NOT_FOUND: 404,
    E.PROJECT_NOT_FOUND: 404,
    E.TASK_NOT_FOUND: 404,
    E.TEMPLATE_TASK_NOT_SEEDED: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.AMBIGUOUS_TASK_MATCH: 409,
    E.TASK_DELETE_FORBIDDEN: 403,
    E.METHOD_NOT_ALLOWED: 405,
    E.RATE_LIMITED: 429,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, seeding hint, ...).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views and
        error handlers.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "success": False,
        "error": code,
        "message": message,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status
