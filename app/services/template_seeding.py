"""
Canonical template seeding — clone template items into a project's task set.

Safe to run multiple times and from concurrent first-load requests: the
``uq_project_tasks_project_source`` constraint guarantees one row per
(project_id, source_id); each insert runs in its own SAVEPOINT so a row
already written by a concurrent seeder is skipped instead of failing the
whole batch.

Functions:
    - clone_templates_to_project: insert missing template tasks, return count
    - register_template_items:    idempotent upsert of template items
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.project import Project
from app.models.task import TASK_STAGES, ProjectTask, task_class_for_origin
from app.models.template import TEMPLATE_CATEGORIES, CanonicalTemplateItem
from app.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)


def clone_templates_to_project(project_id: str, catalog=None) -> int:
    """Insert one task per canonical template item the project lacks.

    New rows get ``origin`` from the item's category, ``source_id`` = item id
    and ``completed = False``.

    Args:
        project_id: Target project.
        catalog: Optional TemplateCatalog; defaults to the current app's.

    Returns:
        Number of rows inserted by this call (0 when already seeded).

    Raises:
        NotFoundError: Unknown project.
    """
    if db.session.get(Project, project_id) is None:
        raise NotFoundError(resource="Project", resource_id=project_id)

    if catalog is None:
        from app.services.template_catalog import get_catalog
        catalog = get_catalog()

    existing = set(
        db.session.execute(
            select(ProjectTask.source_id).where(
                ProjectTask.project_id == project_id,
                ProjectTask.source_id.isnot(None),
            )
        ).scalars()
    )

    inserted = 0
    skipped = 0
    for item in catalog.items():
        if item["id"] in existing:
            continue
        if item["stage"] not in TASK_STAGES:
            logger.warning("Skipping template %s with invalid stage %r", item["id"], item["stage"])
            continue

        task_cls = task_class_for_origin(item["category"])
        try:
            with db.session.begin_nested():
                db.session.add(task_cls(
                    project_id=project_id,
                    text=item["text"],
                    stage=item["stage"],
                    completed=False,
                    source_id=item["id"],
                ))
        except IntegrityError:
            # A concurrent seeder inserted this (project_id, source_id) first.
            skipped += 1
            continue
        inserted += 1

    commit_or_raise()

    logger.info(
        "Seeded %d template tasks into project %s (%d already present concurrently)",
        inserted,
        project_id,
        skipped,
        extra={"project_id": project_id, "event_type": "templates_cloned"},
    )
    return inserted


def register_template_items(items: list[dict]) -> int:
    """Insert or update canonical template items; returns the number inserted.

    Collaborator entry point for framework loaders. Existing ids get their
    text/stage/category refreshed; the app's catalog is invalidated afterwards.

    Raises:
        ValidationError: An item lacks an id or has an unknown stage/category.
    """
    created = 0
    for raw in items:
        item_id = raw.get("id")
        stage = (raw.get("stage") or "").lower()
        category = raw.get("category", "factor")
        if not item_id:
            raise ValidationError("Template item id is required")
        if stage not in TASK_STAGES:
            raise ValidationError(f"Template item {item_id} has invalid stage {stage!r}")
        if category not in TEMPLATE_CATEGORIES:
            raise ValidationError(f"Template item {item_id} has invalid category {category!r}")

        row = db.session.get(CanonicalTemplateItem, item_id)
        if row is None:
            db.session.add(CanonicalTemplateItem(
                id=item_id,
                code=raw.get("code") or item_id.split("-", 1)[0],
                stage=stage,
                text=raw.get("text") or "",
                category=category,
            ))
            created += 1
        else:
            row.stage = stage
            row.text = raw.get("text") or row.text
            row.category = category

    commit_or_raise()

    from app.services.template_catalog import get_catalog
    get_catalog().invalidate()

    if created:
        logger.info("Registered %d canonical template items", created)
    return created
