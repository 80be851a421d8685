"""
Project Checklist
Canonical template items — framework-defined task descriptions.

A template item exists independently of any project. Seeding clones items
into a project's task set; the clone keeps the item id in
``ProjectTask.source_id``.

Item ids combine a framework code and a stage, e.g. ``1.1-identification``
(optionally with a numeric suffix when one code/stage pair defines several
tasks: ``1.1-identification-2``).
"""

from datetime import datetime, timezone

from app.models import db

# ── Constants ────────────────────────────────────────────────────────────────

TEMPLATE_CATEGORIES = ("heuristic", "factor", "policy", "framework")


class CanonicalTemplateItem(db.Model):
    """Read-only (from this service's perspective) canonical task definition."""

    __tablename__ = "canonical_template_items"

    id = db.Column(db.String(100), primary_key=True)
    code = db.Column(db.String(30), nullable=False, index=True)
    stage = db.Column(db.String(20), nullable=False)
    text = db.Column(db.Text, nullable=False)
    category = db.Column(
        db.String(20), nullable=False, default="factor",
        comment="heuristic | factor | policy | framework",
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "stage": self.stage,
            "text": self.text,
            "category": self.category,
        }

    def __repr__(self):
        return f"<CanonicalTemplateItem {self.id} ({self.category})>"
