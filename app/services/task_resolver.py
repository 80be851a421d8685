"""Project-scoped task identity resolution.

Callers reference tasks by whatever id they hold: the row id, a legacy
compound id (``<uuid>-<suffix>``), a UUID prefix, or the canonical template
id the task was cloned from. ``resolve_task`` turns that reference into the
single stored row, trying strategies in a fixed priority order:

    1. exact      id == raw_id
    2. source_id  source_id == raw_id (more than one row is a data defect)
    3. prefix     normalised id match, or id prefix for partial UUIDs

Each strategy returns a row or None; the first hit wins. Every hit produces a
``ResolutionRecord`` that is logged and handed back to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import select

from app.core.exceptions import (
    AmbiguousMatchError,
    SourceIdWithoutRowError,
    TaskNotFoundError,
)
from app.models import db
from app.models.task import ProjectTask
from app.utils.task_ids import is_partial_uuid, looks_like_template_id, normalize_task_id

logger = logging.getLogger(__name__)

MATCHED_VIA_EXACT = "exact"
MATCHED_VIA_SOURCE_ID = "source_id"
MATCHED_VIA_PREFIX = "prefix"


@dataclass(frozen=True)
class ResolutionRecord:
    """Which stored row a raw id resolved to, and by which strategy."""

    raw_id: str
    matched_id: str
    matched_via: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ResolvedTask:
    task: ProjectTask
    record: ResolutionRecord


# ── Strategies ───────────────────────────────────────────────────────────────


def _match_exact(project_id: str, raw_id: str) -> ProjectTask | None:
    stmt = select(ProjectTask).where(
        ProjectTask.project_id == project_id,
        ProjectTask.id == raw_id,
    )
    return db.session.execute(stmt).scalar_one_or_none()


def _match_source_id(project_id: str, raw_id: str) -> ProjectTask | None:
    stmt = (
        select(ProjectTask)
        .where(ProjectTask.project_id == project_id, ProjectTask.source_id == raw_id)
        .order_by(ProjectTask.created_at, ProjectTask.id)
    )
    rows = db.session.execute(stmt).scalars().all()
    if len(rows) > 1:
        logger.error(
            "DATA INTEGRITY: %d tasks share source_id=%s in project=%s",
            len(rows),
            raw_id,
            project_id,
            extra={
                "project_id": project_id,
                "raw_id": raw_id,
                "event_type": "task_source_id_duplicate",
            },
        )
        raise AmbiguousMatchError(
            f"{len(rows)} tasks share source_id {raw_id}",
            project_id=project_id,
            raw_id=raw_id,
            details={"task_ids": [row.id for row in rows]},
        )
    return rows[0] if rows else None


def _match_prefix(project_id: str, raw_id: str) -> ProjectTask | None:
    """O(n) scan of the project's tasks, oldest first."""
    wanted = normalize_task_id(raw_id).lower()
    prefix = raw_id.lower() if is_partial_uuid(raw_id) else None

    stmt = (
        select(ProjectTask)
        .where(ProjectTask.project_id == project_id)
        .order_by(ProjectTask.created_at, ProjectTask.id)
    )
    for row in db.session.execute(stmt).scalars():
        row_id = row.id.lower()
        if normalize_task_id(row_id) == wanted:
            return row
        if prefix is not None and row_id.startswith(prefix):
            return row
    return None


_STRATEGIES = (
    (MATCHED_VIA_EXACT, _match_exact),
    (MATCHED_VIA_SOURCE_ID, _match_source_id),
    (MATCHED_VIA_PREFIX, _match_prefix),
)


def _is_template_reference(raw_id: str, catalog) -> bool:
    if looks_like_template_id(raw_id):
        return True
    if catalog is None:
        from app.services.template_catalog import get_catalog
        catalog = get_catalog()
    return catalog.contains(raw_id)


# ── Entry point ──────────────────────────────────────────────────────────────


def resolve_task(project_id: str, raw_id: str, *, catalog=None) -> ResolvedTask:
    """Locate the single stored task for ``raw_id`` within ``project_id``.

    Args:
        project_id: Owning project; every strategy is scoped to it.
        raw_id: Caller-supplied task reference.
        catalog: Optional TemplateCatalog; defaults to the current app's.

    Returns:
        ResolvedTask with the row and its ResolutionRecord.

    Raises:
        AmbiguousMatchError: Several rows share ``raw_id`` as source_id.
        SourceIdWithoutRowError: ``raw_id`` names a template the project has no row for.
        TaskNotFoundError: Nothing matched.
    """
    if not raw_id:
        raise TaskNotFoundError("Task id is required", project_id=project_id, raw_id=raw_id)

    for matched_via, strategy in _STRATEGIES:
        task = strategy(project_id, raw_id)
        if task is None:
            continue
        record = ResolutionRecord(raw_id=raw_id, matched_id=task.id, matched_via=matched_via)
        logger.info(
            "task_resolved raw_id=%s matched_id=%s matched_via=%s",
            record.raw_id,
            record.matched_id,
            record.matched_via,
            extra={
                "project_id": project_id,
                "raw_id": record.raw_id,
                "task_id": record.matched_id,
                "matched_via": record.matched_via,
            },
        )
        return ResolvedTask(task=task, record=record)

    if _is_template_reference(raw_id, catalog):
        logger.warning(
            "task_unresolved_template raw_id=%s project=%s (project not seeded?)",
            raw_id,
            project_id,
            extra={"project_id": project_id, "raw_id": raw_id},
        )
        raise SourceIdWithoutRowError(
            f"No task in project {project_id} was seeded from template {raw_id}",
            project_id=project_id,
            raw_id=raw_id,
            details={
                "hint": "Seed the project's template tasks, then retry.",
                "seed_endpoint": f"/api/v1/projects/{project_id}/tasks/seed",
            },
        )

    logger.info(
        "task_unresolved raw_id=%s project=%s",
        raw_id,
        project_id,
        extra={"project_id": project_id, "raw_id": raw_id},
    )
    raise TaskNotFoundError(
        f"Task {raw_id} not found in project {project_id}",
        project_id=project_id,
        raw_id=raw_id,
    )
