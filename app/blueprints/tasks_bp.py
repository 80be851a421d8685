"""
Project Checklist
Tasks blueprint — project-scoped checklist task endpoints.

Endpoints summary:
    TASKS    /api/v1/projects/<pid>/tasks                 GET, POST
             /api/v1/projects/<pid>/tasks/<task_id>       GET, PUT, DELETE
             /api/v1/projects/<pid>/tasks/seed            POST  (clone templates)

``task_id`` may be any reference the resolver understands (row id, legacy
compound id, UUID prefix, canonical template id). Resolver-backed responses
carry ``X-Task-Resolved-Id`` / ``X-Task-Resolved-Via``.
"""

import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    AmbiguousMatchError,
    ConflictError,
    NotFoundError,
    TaskError,
    TransportError,
    ValidationError,
)
from app.services import task_service
from app.services.template_seeding import clone_templates_to_project
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/v1")


# ── Error handlers ───────────────────────────────────────────────────────────


@tasks_bp.errorhandler(TaskError)
def _handle_task_error(error: TaskError):
    if isinstance(error, AmbiguousMatchError):
        logger.error(
            "Ambiguous task reference %s in project %s: %s",
            error.raw_id,
            error.project_id,
            error.details.get("task_ids"),
            extra={"project_id": error.project_id, "raw_id": error.raw_id,
                   "event_type": "task_ambiguous_match"},
        )
    return api_error(error.code, error.message, status=error.status, details=error.details)


@tasks_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    code = E.PROJECT_NOT_FOUND if error.resource == "Project" else E.NOT_FOUND
    return api_error(code, str(error), status=404)


@tasks_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION, str(error), status=422, details=error.details)


@tasks_bp.errorhandler(ConflictError)
def _handle_conflict(error: ConflictError):
    return api_error(
        E.CONFLICT_DUPLICATE,
        str(error),
        status=409,
        details={"field": error.field, "value": error.value},
    )


@tasks_bp.errorhandler(TransportError)
@tasks_bp.errorhandler(SQLAlchemyError)
def _handle_database(error: Exception):
    logger.error("Database failure on %s %s: %s", request.method, request.path, error)
    return api_error(E.DATABASE, "Database error", status=500)


# ── Helpers ──────────────────────────────────────────────────────────────────


def _with_resolution(response, record):
    response.headers["X-Task-Resolved-Id"] = record.matched_id
    response.headers["X-Task-Resolved-Via"] = record.matched_via
    return response


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _parse_bool_arg(name):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    lowered = raw.lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"Invalid {name} filter", details={name: "must be true or false"})


# ═══════════════════════════════════════════════════════════════════════════
#  TASK CRUD
# ═══════════════════════════════════════════════════════════════════════════


@tasks_bp.route("/projects/<project_id>/tasks", methods=["GET"])
def list_tasks(project_id):
    """List tasks, filterable by stage / origin / completed."""
    tasks = task_service.list_tasks(
        project_id,
        stage=request.args.get("stage"),
        origin=request.args.get("origin"),
        completed=_parse_bool_arg("completed"),
    )
    return jsonify(tasks), 200


@tasks_bp.route("/projects/<project_id>/tasks", methods=["POST"])
def create_task(project_id):
    task = task_service.create_task(project_id, _json_body())
    return jsonify(task), 201


@tasks_bp.route("/projects/<project_id>/tasks/seed", methods=["POST"])
def seed_tasks(project_id):
    """Clone canonical template items the project is missing."""
    inserted = clone_templates_to_project(project_id)
    return jsonify({"success": True, "inserted": inserted}), 200


@tasks_bp.route("/projects/<project_id>/tasks/<task_id>", methods=["GET"])
def get_task(project_id, task_id):
    task, record = task_service.get_task(project_id, task_id)
    return _with_resolution(jsonify(task), record), 200


@tasks_bp.route("/projects/<project_id>/tasks/<task_id>", methods=["PUT"])
def update_task(project_id, task_id):
    """Partial update; identity fields in the body are ignored."""
    task, record = task_service.update_task(project_id, task_id, _json_body())
    return _with_resolution(jsonify(task), record), 200


@tasks_bp.route("/projects/<project_id>/tasks/<task_id>", methods=["DELETE"])
def delete_task(project_id, task_id):
    _, record = task_service.delete_task(project_id, task_id)
    return _with_resolution(jsonify({"success": True}), record), 200
