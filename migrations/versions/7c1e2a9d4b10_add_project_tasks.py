"""add_project_tasks

Create `projects`, `canonical_template_items` and `project_tasks`.

project_tasks carries the provenance constraints:
  - one row per (project_id, source_id)
  - source always equals origin
  - source_id required unless origin = 'custom'

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e2a9d4b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if "canonical_template_items" not in existing_tables:
        op.create_table(
            "canonical_template_items",
            sa.Column("id", sa.String(length=100), nullable=False),
            sa.Column("code", sa.String(length=30), nullable=False),
            sa.Column("stage", sa.String(length=20), nullable=False),
            sa.Column("text", sa.Text(), nullable=False),
            sa.Column("category", sa.String(length=20), nullable=False, server_default="factor"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_canonical_template_items_code", "canonical_template_items", ["code"])

    if "project_tasks" not in existing_tables:
        op.create_table(
            "project_tasks",
            sa.Column("id", sa.String(length=80), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("text", sa.Text(), nullable=False),
            sa.Column("stage", sa.String(length=20), nullable=False),
            sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("priority", sa.String(length=10), nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("origin", sa.String(length=20), nullable=False),
            sa.Column("source", sa.String(length=20), nullable=False),
            sa.Column("source_id", sa.String(length=100), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "source_id", name="uq_project_tasks_project_source"),
            sa.CheckConstraint("source = origin", name="ck_project_tasks_source_matches_origin"),
            sa.CheckConstraint(
                "origin = 'custom' OR source_id IS NOT NULL",
                name="ck_project_tasks_source_id_required",
            ),
        )

        op.create_index("ix_project_tasks_project_id", "project_tasks", ["project_id"])
        op.create_index("ix_project_tasks_source_id", "project_tasks", ["source_id"])
        op.create_index("ix_project_tasks_project_created", "project_tasks", ["project_id", "created_at"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "project_tasks" in existing_tables:
        op.drop_index("ix_project_tasks_project_created", table_name="project_tasks")
        op.drop_index("ix_project_tasks_source_id", table_name="project_tasks")
        op.drop_index("ix_project_tasks_project_id", table_name="project_tasks")
        op.drop_table("project_tasks")
    if "canonical_template_items" in existing_tables:
        op.drop_index("ix_canonical_template_items_code", table_name="canonical_template_items")
        op.drop_table("canonical_template_items")
    if "projects" in existing_tables:
        op.drop_table("projects")
