"""
Task mutation service — create, update, delete and read checklist tasks.

Functions:
    - create_task:  Insert a task; origin defaults to "custom", source mirrors origin
    - update_task:  Resolve a raw id, apply a partial update, keep identity fields intact
    - delete_task:  Resolve a raw id and delete, refusing non-deletable variants
    - get_task:     Resolve a raw id and return the row
    - list_tasks:   Project tasks with optional stage/origin/completed filters

Write rules:
    Only ``completed``, ``notes``, ``priority``, ``due_date`` and ``text`` are
    writable after creation. ``id``, ``origin``, ``source`` and ``source_id``
    in an update payload are ignored, never applied.

Transaction policy: every mutating function commits through
``commit_or_raise`` so store failures surface as TransportError.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.models import db
from app.models.project import Project
from app.models.task import (
    IDENTITY_FIELDS,
    TASK_ORIGINS,
    TASK_PRIORITIES,
    TASK_STAGES,
    ProjectTask,
    task_class_for_origin,
)
from app.services.task_resolver import ResolutionRecord, resolve_task
from app.services.template_catalog import get_catalog
from app.utils.helpers import commit_or_raise, parse_date_input

logger = logging.getLogger(__name__)

# camelCase spellings sent by older clients
_FIELD_ALIASES = {
    "dueDate": "due_date",
    "sourceId": "source_id",
    "projectId": "project_id",
}


# ── Payload helpers ──────────────────────────────────────────────────────────


def _canonical_keys(data: dict) -> dict:
    """Rename camelCase aliases; an explicit snake_case key wins."""
    out = {}
    for key, value in data.items():
        target = _FIELD_ALIASES.get(key, key)
        if target != key and target in data:
            continue
        out[target] = value
    return out


def _require_project(project_id: str) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def _check_text(value, errors: dict):
    if not isinstance(value, str) or not value.strip():
        errors["text"] = "must be a non-empty string"
        return None
    return value.strip()


def _check_stage(value, errors: dict):
    stage = value.lower() if isinstance(value, str) else None
    if stage not in TASK_STAGES:
        errors["stage"] = f"must be one of: {', '.join(TASK_STAGES)}"
        return None
    return stage


def _check_priority(value, errors: dict):
    if value is None:
        return None
    priority = value.lower() if isinstance(value, str) else None
    if priority not in TASK_PRIORITIES:
        errors["priority"] = f"must be null or one of: {', '.join(TASK_PRIORITIES)}"
        return None
    return priority


def _check_due_date(value, errors: dict):
    try:
        return parse_date_input(value)
    except ValueError as exc:
        errors["due_date"] = str(exc)
        return None


def _check_notes(value, errors: dict):
    if value is not None and not isinstance(value, str):
        errors["notes"] = "must be a string or null"
        return None
    return value


def _check_completed(value, errors: dict):
    if not isinstance(value, bool):
        errors["completed"] = "must be true or false"
        return None
    return value


def _validate_updates(payload: dict) -> dict:
    """Return the writable fields present in ``payload``, validated.

    Raises:
        ValidationError: With a field → problem map when any value is invalid.
    """
    errors: dict[str, str] = {}
    changes: dict = {}

    ignored = sorted(k for k in payload if k in IDENTITY_FIELDS)
    if ignored:
        logger.debug("Ignoring immutable fields in task update: %s", ignored)

    if "completed" in payload:
        changes["completed"] = _check_completed(payload["completed"], errors)
    if "text" in payload:
        changes["text"] = _check_text(payload["text"], errors)
    if "notes" in payload:
        changes["notes"] = _check_notes(payload["notes"], errors)
    if "priority" in payload:
        changes["priority"] = _check_priority(payload["priority"], errors)
    if "due_date" in payload:
        changes["due_date"] = _check_due_date(payload["due_date"], errors)

    if errors:
        raise ValidationError("Invalid task update", details=errors)
    return changes


def _jsonable(value):
    return value.isoformat() if hasattr(value, "isoformat") else value


# ── Create ───────────────────────────────────────────────────────────────────


def create_task(project_id: str, data: dict) -> dict:
    """Create a task in ``project_id``.

    Business rules:
      - origin defaults to "custom"; source is always set equal to origin
      - custom tasks never carry a source_id
      - template-backed origins need a source_id naming an existing template
        item whose category equals the origin
      - at most one task per (project_id, source_id)

    Args:
        project_id: Owning project.
        data: Task fields (text, stage, origin, source_id, completed, notes,
              priority, due_date). ``source`` and ``id`` are ignored.

    Returns:
        Serialized task dict.

    Raises:
        NotFoundError: Unknown project.
        ValidationError: Missing/invalid fields or unknown template item.
        ConflictError: The project already has a task for this source_id.
    """
    _require_project(project_id)
    if not isinstance(data, dict):
        raise ValidationError("Task payload must be a JSON object")
    data = _canonical_keys(data)

    errors: dict[str, str] = {}
    origin = data.get("origin") or "custom"
    if origin not in TASK_ORIGINS:
        errors["origin"] = f"must be one of: {', '.join(TASK_ORIGINS)}"

    text = _check_text(data.get("text"), errors)
    stage = _check_stage(data.get("stage"), errors)
    completed = _check_completed(data.get("completed", False), errors)
    notes = _check_notes(data.get("notes"), errors)
    priority = _check_priority(data.get("priority"), errors)
    due_date = _check_due_date(data.get("due_date"), errors)

    source_id = data.get("source_id") or None
    if source_id is not None and not isinstance(source_id, str):
        errors["source_id"] = "must be a string"
        source_id = None

    if errors:
        raise ValidationError("Invalid task", details=errors)

    task_cls = task_class_for_origin(origin)
    if not task_cls.requires_source:
        # Template slots belong to seeded rows only
        if source_id is not None:
            raise ValidationError(
                "custom tasks cannot reference a template item",
                details={"source_id": "must be omitted when origin is custom"},
            )
    else:
        if source_id is None:
            raise ValidationError(
                f"source_id is required for {origin} tasks",
                details={"source_id": "required when origin is not custom"},
            )
        item = get_catalog().get(source_id)
        if item is None:
            raise ValidationError(
                f"source_id {source_id} does not reference a canonical template item",
                details={"source_id": "unknown template item"},
            )
        if item["category"] != origin:
            raise ValidationError(
                f"template item {source_id} is a {item['category']} item, not {origin}",
                details={"origin": f"must be {item['category']} for this source_id"},
            )

    if source_id is not None:
        existing = db.session.execute(
            select(ProjectTask.id).where(
                ProjectTask.project_id == project_id,
                ProjectTask.source_id == source_id,
            )
        ).first()
        if existing is not None:
            raise ConflictError(resource="ProjectTask", field="source_id", value=source_id)

    task = task_cls(
        project_id=project_id,
        text=text,
        stage=stage,
        completed=completed,
        notes=notes,
        priority=priority,
        due_date=due_date,
        source_id=source_id,
    )
    db.session.add(task)
    try:
        commit_or_raise()
    except IntegrityError as exc:
        logger.warning("Task insert rejected by constraint: %s", exc.orig)
        raise ConflictError(resource="ProjectTask", field="source_id", value=source_id) from exc

    logger.info(
        "Task created",
        extra={"project_id": project_id, "task_id": task.id, "event_type": "task_created"},
    )
    return task.to_dict()


# ── Update / delete ──────────────────────────────────────────────────────────


def update_task(project_id: str, raw_id: str, updates: dict) -> tuple[dict, ResolutionRecord]:
    """Apply a partial update to the task ``raw_id`` resolves to.

    Only fields present in ``updates`` are touched. An explicit null clears
    ``notes``, ``priority`` or ``due_date``. The returned ``id``, ``origin``
    and ``source_id`` always equal the stored values before the update,
    whichever resolution strategy matched.

    Returns:
        (serialized task, resolution record)

    Raises:
        NotFoundError: Unknown project.
        ValidationError: Malformed payload.
        TaskError subclasses from the resolver.
    """
    _require_project(project_id)
    if not isinstance(updates, dict):
        raise ValidationError("Task update must be a JSON object")
    changes = _validate_updates(_canonical_keys(updates))

    resolved = resolve_task(project_id, raw_id)
    task = resolved.task

    field_changes = {}
    for field, value in changes.items():
        old = getattr(task, field)
        if old != value:
            field_changes[field] = {"before": _jsonable(old), "after": _jsonable(value)}
        setattr(task, field, value)

    commit_or_raise()

    logger.debug(
        "Task %s updated via %s: %s",
        task.id,
        resolved.record.matched_via,
        field_changes or "no changes",
        extra={"project_id": project_id, "task_id": task.id, "event_type": "task_updated"},
    )
    return task.to_dict(), resolved.record


def delete_task(project_id: str, raw_id: str) -> tuple[bool, ResolutionRecord]:
    """Delete the task ``raw_id`` resolves to.

    Raises:
        PermissionDeniedError: The resolved variant is not deletable (factor
            tasks). Raised before the session is touched.
    """
    _require_project(project_id)
    resolved = resolve_task(project_id, raw_id)
    task = resolved.task

    if not task.is_deletable:
        logger.warning(
            "Refused delete of %s task %s",
            task.origin,
            task.id,
            extra={"project_id": project_id, "task_id": task.id, "event_type": "task_delete_denied"},
        )
        raise PermissionDeniedError(
            f"{task.origin} tasks cannot be deleted",
            project_id=project_id,
            raw_id=raw_id,
            details={"task_id": task.id, "origin": task.origin},
        )

    db.session.delete(task)
    commit_or_raise()
    logger.info(
        "Task deleted",
        extra={"project_id": project_id, "task_id": resolved.record.matched_id, "event_type": "task_deleted"},
    )
    return True, resolved.record


# ── Reads ────────────────────────────────────────────────────────────────────


def get_task(project_id: str, raw_id: str) -> tuple[dict, ResolutionRecord]:
    """Return the serialized task ``raw_id`` resolves to, with its record."""
    _require_project(project_id)
    resolved = resolve_task(project_id, raw_id)
    return resolved.task.to_dict(), resolved.record


def list_tasks(
    project_id: str,
    stage: str | None = None,
    origin: str | None = None,
    completed: bool | None = None,
) -> list[dict]:
    """List a project's tasks ordered by stage order, then creation time.

    Raises:
        NotFoundError: Unknown project.
        ValidationError: Unknown stage or origin filter.
    """
    _require_project(project_id)

    stmt = select(ProjectTask).where(ProjectTask.project_id == project_id)
    if stage:
        errors: dict[str, str] = {}
        stage = _check_stage(stage, errors)
        if errors:
            raise ValidationError("Invalid stage filter", details=errors)
        stmt = stmt.where(ProjectTask.stage == stage)
    if origin:
        if origin not in TASK_ORIGINS:
            raise ValidationError(
                "Invalid origin filter",
                details={"origin": f"must be one of: {', '.join(TASK_ORIGINS)}"},
            )
        stmt = stmt.where(ProjectTask.origin == origin)
    if completed is not None:
        stmt = stmt.where(ProjectTask.completed == completed)
    stmt = stmt.order_by(ProjectTask.created_at, ProjectTask.id)

    tasks = db.session.execute(stmt).scalars().all()
    tasks.sort(key=lambda t: TASK_STAGES.index(t.stage) if t.stage in TASK_STAGES else len(TASK_STAGES))
    return [t.to_dict() for t in tasks]
