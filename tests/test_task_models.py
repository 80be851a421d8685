"""
Tests for app/models/task.py — tagged task variants and provenance guards.

Covers:
    - source always mirrors origin, whatever the caller passes
    - origin / source_id are write-once after the row is stored
    - status follows completed
    - storage constraints (unique project+source_id, source_id required)
"""

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ProvenanceError
from app.models import db
from app.models.task import (
    CustomTask,
    FactorTask,
    HeuristicTask,
    ProjectTask,
    derive_status,
    task_class_for_origin,
)


class TestVariants:
    @pytest.mark.parametrize("origin", ["heuristic", "factor", "policy", "framework", "custom"])
    def test_source_mirrors_origin(self, project, origin):
        cls = task_class_for_origin(origin)
        task = cls(project_id=project.id, text="t", stage="definition",
                   source_id=None if origin == "custom" else "1.1-definition")
        db.session.add(task)
        db.session.commit()
        assert task.origin == origin
        assert task.source == task.origin

    def test_caller_supplied_source_and_origin_ignored(self, project):
        task = CustomTask(project_id=project.id, text="t", stage="closure",
                          origin="factor", source="policy")
        assert task.origin == "custom"
        assert task.source == "custom"

    def test_base_class_is_abstract(self, project):
        with pytest.raises(TypeError):
            ProjectTask(project_id=project.id, text="t", stage="closure")

    def test_unknown_origin(self):
        with pytest.raises(ValueError):
            task_class_for_origin("imported")

    def test_variant_flags(self):
        assert FactorTask.is_deletable is False
        assert HeuristicTask.is_deletable is True
        assert CustomTask.requires_source is False

    def test_polymorphic_load(self, project):
        db.session.add(FactorTask(project_id=project.id, text="f", stage="delivery",
                                  source_id="1.1-delivery"))
        db.session.commit()
        db.session.expunge_all()
        loaded = db.session.execute(db.select(ProjectTask)).scalar_one()
        assert isinstance(loaded, FactorTask)


class TestProvenanceGuards:
    def _stored_factor(self, project):
        task = FactorTask(project_id=project.id, text="f", stage="delivery",
                          source_id="1.1-delivery")
        db.session.add(task)
        db.session.commit()
        return task

    def test_source_id_is_write_once(self, project):
        task = self._stored_factor(project)
        with pytest.raises(ProvenanceError):
            task.source_id = "2.3-closure"

    def test_origin_is_write_once(self, project):
        task = self._stored_factor(project)
        with pytest.raises(ProvenanceError):
            task.origin = "custom"

    def test_same_value_reassignment_allowed(self, project):
        task = self._stored_factor(project)
        task.source_id = "1.1-delivery"
        db.session.commit()
        assert task.source_id == "1.1-delivery"


class TestStatusAndStage:
    def test_status_follows_completed(self, project):
        task = CustomTask(project_id=project.id, text="t", stage="closure")
        assert task.status == "pending"
        task.completed = True
        assert task.status == "completed"
        assert task.to_dict()["status"] == derive_status(True)

    def test_stage_lowercased(self, project):
        task = CustomTask(project_id=project.id, text="t", stage="Delivery")
        assert task.stage == "delivery"


class TestStorageConstraints:
    def test_duplicate_source_id_rejected(self, project):
        db.session.add(FactorTask(project_id=project.id, text="a", stage="delivery",
                                  source_id="1.1-delivery"))
        db.session.commit()
        db.session.add(FactorTask(project_id=project.id, text="b", stage="delivery",
                                  source_id="1.1-delivery"))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_template_origin_requires_source_id(self, project):
        db.session.add(HeuristicTask(project_id=project.id, text="h", stage="closure"))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_custom_tasks_may_share_null_source_id(self, project):
        db.session.add(CustomTask(project_id=project.id, text="a", stage="closure"))
        db.session.add(CustomTask(project_id=project.id, text="b", stage="closure"))
        db.session.commit()
        assert project.tasks.count() == 2
