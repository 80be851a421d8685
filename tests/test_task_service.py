"""
Tests for app/services/task_service.py

Covers:
    - create: origin default, source == origin, template-backed source_id rules,
      duplicate source_id conflict, validation details
    - update: identity preservation across every resolver strategy,
      idempotence, explicit null clears, immutable fields ignored,
      validation before resolution
    - delete: factor guard leaves the row in place, custom rows removed
    - list: ordering and filters
"""

import pytest

from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TaskNotFoundError,
    ValidationError,
)
from app.models import db
from app.models.task import CustomTask, FactorTask, ProjectTask
from app.services import task_service

UUID = "2f565bf9-70c7-5c41-93e7-c6c4cde32312"


def _count(project_id):
    return db.session.execute(
        db.select(db.func.count()).select_from(ProjectTask).where(ProjectTask.project_id == project_id)
    ).scalar_one()


def _factor(project, source_id="1.1-identification", **kw):
    kw.setdefault("text", "Identify the business need")
    kw.setdefault("stage", "identification")
    task = FactorTask(project_id=project.id, source_id=source_id, **kw)
    db.session.add(task)
    db.session.commit()
    return task


# ═════════════════════════════════════════════════════════════════════════════
# CREATE
# ═════════════════════════════════════════════════════════════════════════════


class TestCreateTask:
    def test_origin_defaults_to_custom(self, project):
        task = task_service.create_task(project.id, {"text": "Write charter", "stage": "Identification"})
        assert task["origin"] == "custom"
        assert task["source"] == "custom"
        assert task["source_id"] is None
        assert task["stage"] == "identification"
        assert task["completed"] is False
        assert task["status"] == "pending"

    def test_source_always_equals_origin(self, project, templates):
        task = task_service.create_task(project.id, {
            "text": "Lessons", "stage": "closure", "origin": "heuristic",
            "source": "custom", "sourceId": "2.3-closure",
        })
        assert task["origin"] == "heuristic"
        assert task["source"] == "heuristic"
        assert task["source_id"] == "2.3-closure"

    def test_caller_id_is_ignored(self, project):
        task = task_service.create_task(project.id, {"id": UUID, "text": "t", "stage": "closure"})
        assert task["id"] != UUID

    def test_template_origin_requires_source_id(self, project):
        with pytest.raises(ValidationError) as exc_info:
            task_service.create_task(project.id, {"text": "t", "stage": "closure", "origin": "policy"})
        assert "source_id" in exc_info.value.details

    def test_unknown_template_item_rejected(self, project, templates):
        with pytest.raises(ValidationError):
            task_service.create_task(project.id, {
                "text": "t", "stage": "closure", "origin": "factor", "source_id": "9.9-closure",
            })

    def test_custom_task_cannot_take_template_slot(self, project, templates):
        from app.services.template_seeding import clone_templates_to_project

        with pytest.raises(ValidationError) as exc_info:
            task_service.create_task(project.id, {
                "text": "mine", "stage": "identification", "sourceId": "1.1-identification",
            })
        assert "source_id" in exc_info.value.details
        assert _count(project.id) == 0

        assert clone_templates_to_project(project.id) == 4
        with pytest.raises(PermissionDeniedError):
            task_service.delete_task(project.id, "1.1-identification")

    def test_custom_task_with_arbitrary_source_id_rejected(self, project):
        with pytest.raises(ValidationError):
            task_service.create_task(project.id, {
                "text": "mine", "stage": "closure", "origin": "custom", "source_id": "not-a-template",
            })
        assert _count(project.id) == 0

    def test_origin_must_match_template_category(self, project, templates):
        with pytest.raises(ValidationError) as exc_info:
            task_service.create_task(project.id, {
                "text": "t", "stage": "closure", "origin": "policy", "source_id": "2.3-closure",
            })
        assert "origin" in exc_info.value.details
        assert _count(project.id) == 0

    def test_duplicate_source_id_conflicts(self, project, templates):
        payload = {"text": "t", "stage": "delivery", "origin": "factor", "source_id": "1.1-delivery"}
        task_service.create_task(project.id, payload)
        with pytest.raises(ConflictError):
            task_service.create_task(project.id, payload)
        assert _count(project.id) == 1

    def test_invalid_fields_collected(self, project):
        with pytest.raises(ValidationError) as exc_info:
            task_service.create_task(project.id, {
                "text": "", "stage": "planning", "priority": "urgent", "due_date": "31/12/2026",
            })
        assert set(exc_info.value.details) == {"text", "stage", "priority", "due_date"}

    def test_unknown_project(self):
        with pytest.raises(NotFoundError):
            task_service.create_task("no-such-project", {"text": "t", "stage": "closure"})


# ═════════════════════════════════════════════════════════════════════════════
# UPDATE
# ═════════════════════════════════════════════════════════════════════════════


class TestUpdateTask:
    @pytest.mark.parametrize("raw_id_of", [
        lambda t: t.id,                       # exact
        lambda t: t.source_id,                # source_id
        lambda t: t.id[:8],                   # prefix
        lambda t: f"{t.id}-dfd5e65a",         # legacy compound
    ])
    def test_identity_preserved_for_every_strategy(self, project, raw_id_of):
        task = _factor(project, id=UUID)
        before = task.identity()

        result, record = task_service.update_task(project.id, raw_id_of(task), {"completed": True})

        assert {k: result[k] for k in ("id", "origin", "source_id")} == before
        assert record.matched_id == UUID

    def test_completed_update_is_idempotent(self, project):
        task = _factor(project)
        first, _ = task_service.update_task(project.id, task.id, {"completed": True})
        second, _ = task_service.update_task(project.id, task.id, {"completed": True})
        for key in ("id", "origin", "source", "source_id"):
            assert first[key] == second[key]
        assert second["completed"] is True
        assert second["status"] == "completed"

    def test_only_present_fields_change(self, project):
        task = _factor(project, notes="keep me", priority="high")
        result, _ = task_service.update_task(project.id, task.id, {"completed": True})
        assert result["notes"] == "keep me"
        assert result["priority"] == "high"
        assert result["text"] == "Identify the business need"

    def test_explicit_null_clears(self, project):
        task = _factor(project, priority="high", notes="n")
        task_service.update_task(project.id, task.id, {"due_date": "2026-12-31"})
        result, _ = task_service.update_task(
            project.id, task.id, {"dueDate": None, "priority": None, "notes": None},
        )
        assert result["due_date"] is None
        assert result["priority"] is None
        assert result["notes"] is None

    def test_provenance_fields_in_payload_ignored(self, project):
        task = _factor(project)
        result, _ = task_service.update_task(project.id, task.id, {
            "origin": "custom", "source": "custom", "sourceId": "2.3-closure",
            "id": UUID, "completed": True,
        })
        assert result["id"] == task.id
        assert result["origin"] == "factor"
        assert result["source"] == "factor"
        assert result["source_id"] == "1.1-identification"
        assert result["completed"] is True

    def test_due_date_formats(self, project):
        task = _factor(project)
        result, _ = task_service.update_task(project.id, task.id, {"due_date": "31.12.2026"})
        assert result["due_date"] == "2026-12-31"

    def test_validation_runs_before_resolution(self, project):
        with pytest.raises(ValidationError) as exc_info:
            task_service.update_task(project.id, "missing-task", {"completed": "yes"})
        assert exc_info.value.details == {"completed": "must be true or false"}

    def test_unresolvable_id(self, project):
        with pytest.raises(TaskNotFoundError):
            task_service.update_task(project.id, UUID, {"completed": True})


# ═════════════════════════════════════════════════════════════════════════════
# DELETE
# ═════════════════════════════════════════════════════════════════════════════


class TestDeleteTask:
    def test_factor_task_never_deleted(self, project):
        task = _factor(project)
        before = _count(project.id)
        with pytest.raises(PermissionDeniedError) as exc_info:
            task_service.delete_task(project.id, task.source_id)
        assert exc_info.value.status == 403
        assert exc_info.value.details == {"task_id": task.id, "origin": "factor"}
        assert _count(project.id) == before
        assert db.session.get(ProjectTask, task.id) is not None

    def test_custom_task_deleted(self, project):
        task = CustomTask(project_id=project.id, text="t", stage="closure")
        db.session.add(task)
        db.session.commit()
        task_id = task.id

        ok, record = task_service.delete_task(project.id, task_id)

        assert ok is True
        assert record.matched_via == "exact"
        assert db.session.get(ProjectTask, task_id) is None

    def test_delete_unknown(self, project):
        with pytest.raises(TaskNotFoundError):
            task_service.delete_task(project.id, UUID)


# ═════════════════════════════════════════════════════════════════════════════
# READ
# ═════════════════════════════════════════════════════════════════════════════


class TestListTasks:
    def test_ordered_by_stage(self, project):
        for stage in ("closure", "identification", "delivery"):
            task_service.create_task(project.id, {"text": stage, "stage": stage})
        stages = [t["stage"] for t in task_service.list_tasks(project.id)]
        assert stages == ["identification", "delivery", "closure"]

    def test_filters(self, project):
        _factor(project)
        done = task_service.create_task(project.id, {"text": "c", "stage": "closure", "completed": True})
        assert [t["id"] for t in task_service.list_tasks(project.id, completed=True)] == [done["id"]]
        assert len(task_service.list_tasks(project.id, origin="factor")) == 1
        assert len(task_service.list_tasks(project.id, stage="Closure")) == 1

    def test_bad_filter(self, project):
        with pytest.raises(ValidationError):
            task_service.list_tasks(project.id, origin="imported")

    def test_get_task_returns_record(self, project):
        task = _factor(project)
        data, record = task_service.get_task(project.id, "1.1-identification")
        assert data["id"] == task.id
        assert record.matched_via == "source_id"
