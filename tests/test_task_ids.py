"""
Tests for app/utils/task_ids.py — task id normalisation and shape checks.
"""

import pytest

from app.utils.task_ids import (
    is_partial_uuid,
    looks_like_template_id,
    normalize_task_id,
)

UUID = "2f565bf9-70c7-5c41-93e7-c6c4cde32312"


class TestNormalizeTaskId:
    def test_plain_uuid_unchanged(self):
        assert normalize_task_id(UUID) == UUID

    def test_compound_id_reduced_to_uuid(self):
        assert normalize_task_id(f"{UUID}-dfd5e65a") == UUID

    def test_multiple_suffixes_reduced(self):
        assert normalize_task_id(f"{UUID}-a-b-c") == UUID

    def test_empty_string(self):
        assert normalize_task_id("") == ""

    def test_fewer_than_five_segments_unchanged(self):
        assert normalize_task_id("1.1-identification") == "1.1-identification"
        assert normalize_task_id("a-b-c-d") == "a-b-c-d"

    def test_non_uuid_with_five_segments_is_still_cut(self):
        # Purely positional; the server never trusts the result.
        assert normalize_task_id("a-b-c-d-e-f") == "a-b-c-d-e"

    def test_short_suffix_reduced(self):
        assert normalize_task_id(f"{UUID}-x1") == UUID


class TestIsPartialUuid:
    @pytest.mark.parametrize("value", [
        UUID[:8],
        UUID[:9],
        UUID[:13],
        UUID[:20],
        UUID,
        UUID.upper(),
    ])
    def test_accepts_uuid_prefixes(self, value):
        assert is_partial_uuid(value)

    @pytest.mark.parametrize("value", [
        "",
        "2",
        "2f565bf",            # shorter than one hex group
        "2f565bfz",           # non-hex
        "2f565bf9x70c7",      # wrong separator position
        "2f565bf-970c7",      # hyphen in the wrong slot
        f"{UUID}-dfd5e65a",   # longer than a UUID
        "1.1-identification",
    ])
    def test_rejects_other_shapes(self, value):
        assert not is_partial_uuid(value)


class TestLooksLikeTemplateId:
    @pytest.mark.parametrize("value", [
        "1.1-identification",
        "12-closure",
        "3.2.1-Delivery",
        "1.1-delivery-2",
    ])
    def test_template_shapes(self, value):
        assert looks_like_template_id(value)

    @pytest.mark.parametrize("value", ["", UUID, "1.1", "identification", "1.1-planning"])
    def test_non_template_shapes(self, value):
        assert not looks_like_template_id(value)
