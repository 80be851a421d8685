"""
Project Checklist
Task domain model — one row per checklist task in ``project_tasks``.

Models:
    - ProjectTask: single-table-inheritance base, discriminated by ``origin``
    - CustomTask / FactorTask / HeuristicTask / PolicyTask / FrameworkTask:
      the concrete variants

Provenance rules enforced here:
    - ``source`` always mirrors ``origin`` (set by the constructor, never by callers)
    - template-backed variants require ``source_id``
    - ``origin`` and ``source_id`` cannot be reassigned once the row is stored
    - one row per (project_id, source_id)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import validates

from app.core.exceptions import ProvenanceError
from app.models import db

# ── Constants ────────────────────────────────────────────────────────────────

TASK_STAGES = ("identification", "definition", "delivery", "closure")
TASK_ORIGINS = ("heuristic", "factor", "policy", "framework", "custom")
TEMPLATE_ORIGINS = ("heuristic", "factor", "policy", "framework")
TASK_PRIORITIES = ("low", "medium", "high")
TASK_STATUSES = ("pending", "completed")

# Fields a caller may change after creation.
MUTABLE_FIELDS = ("completed", "notes", "priority", "due_date", "text")
# Fields no mutation path may change.
IDENTITY_FIELDS = ("id", "project_id", "origin", "source", "source_id")


def derive_status(completed) -> str:
    """Display status is a pure function of ``completed``."""
    return "completed" if completed else "pending"


class ProjectTask(db.Model):
    """A checklist task owned by a project.

    Do not instantiate directly — pick the variant with
    :func:`task_class_for_origin` so the discriminator and ``source`` are set
    consistently.
    """

    __tablename__ = "project_tasks"
    __table_args__ = (
        db.UniqueConstraint("project_id", "source_id", name="uq_project_tasks_project_source"),
        db.CheckConstraint("source = origin", name="ck_project_tasks_source_matches_origin"),
        db.CheckConstraint(
            "origin = 'custom' OR source_id IS NOT NULL",
            name="ck_project_tasks_source_id_required",
        ),
        db.Index("ix_project_tasks_project_created", "project_id", "created_at"),
    )

    # Legacy rows may carry a compound id (<uuid>-<suffix>), hence > 36 chars.
    id = db.Column(db.String(80), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text = db.Column(db.Text, nullable=False)
    stage = db.Column(
        db.String(20), nullable=False,
        comment="identification | definition | delivery | closure",
    )
    completed = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(20), nullable=False, default="pending", comment="pending | completed")
    notes = db.Column(db.Text, nullable=True)
    priority = db.Column(db.String(10), nullable=True, comment="low | medium | high")
    due_date = db.Column(db.Date, nullable=True)

    origin = db.Column(
        db.String(20), nullable=False,
        comment="heuristic | factor | policy | framework | custom",
    )
    source = db.Column(db.String(20), nullable=False)
    source_id = db.Column(db.String(100), nullable=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"polymorphic_on": origin}

    # Variant behaviour, overridden below.
    is_deletable = True
    requires_source = True

    def __init__(self, **kwargs):
        identity = self.__mapper__.polymorphic_identity
        if identity is None:
            raise TypeError("ProjectTask is abstract; use task_class_for_origin(origin)")
        # origin/source come from the variant, never from the caller
        kwargs.pop("origin", None)
        kwargs.pop("source", None)
        kwargs.setdefault("completed", False)
        super().__init__(**kwargs)
        self.origin = identity
        self.source = identity

    # ── Attribute guards ─────────────────────────────────────────────────

    def _is_stored(self) -> bool:
        return sa_inspect(self).has_identity

    @validates("origin", "source", "source_id")
    def _guard_provenance(self, key, value):
        if self._is_stored() and value != getattr(self, key):
            raise ProvenanceError(
                f"{key} is write-once and cannot change on task {self.id}"
            )
        return value

    @validates("completed")
    def _sync_status(self, key, value):
        self.status = derive_status(value)
        return value

    @validates("stage")
    def _normalise_stage(self, key, value):
        return value.lower() if isinstance(value, str) else value

    # ── Serialisation ────────────────────────────────────────────────────

    def identity(self) -> dict:
        """The fields every mutation must leave untouched."""
        return {
            "id": self.id,
            "origin": self.origin,
            "source_id": self.source_id,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "text": self.text,
            "stage": self.stage,
            "completed": bool(self.completed),
            "status": derive_status(self.completed),
            "notes": self.notes,
            "priority": self.priority,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "origin": self.origin,
            "source": self.source,
            "source_id": self.source_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<{type(self).__name__} {self.id} project={self.project_id} source_id={self.source_id}>"


class CustomTask(ProjectTask):
    """Task added directly by a user; has no template behind it."""

    __mapper_args__ = {"polymorphic_identity": "custom"}
    requires_source = False


class FactorTask(ProjectTask):
    """Task cloned from a success-factor template. Never deletable."""

    __mapper_args__ = {"polymorphic_identity": "factor"}
    is_deletable = False


class HeuristicTask(ProjectTask):
    __mapper_args__ = {"polymorphic_identity": "heuristic"}


class PolicyTask(ProjectTask):
    __mapper_args__ = {"polymorphic_identity": "policy"}


class FrameworkTask(ProjectTask):
    __mapper_args__ = {"polymorphic_identity": "framework"}


_VARIANTS = {
    "custom": CustomTask,
    "factor": FactorTask,
    "heuristic": HeuristicTask,
    "policy": PolicyTask,
    "framework": FrameworkTask,
}


def task_class_for_origin(origin: str):
    """Return the ProjectTask variant for ``origin``.

    Raises:
        ValueError: If ``origin`` is not one of TASK_ORIGINS.
    """
    try:
        return _VARIANTS[origin]
    except KeyError:
        raise ValueError(
            f"origin must be one of: {', '.join(TASK_ORIGINS)}"
        ) from None
