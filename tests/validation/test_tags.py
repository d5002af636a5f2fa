"""Tests for tag normalization and validation."""

from __future__ import annotations

import pytest

from pincho.validation.tags import (
    MAX_TAG_LENGTH,
    MAX_TAGS,
    TagValidationError,
    merge_tags,
    normalize_and_validate_tags,
)


class TestNormalize:
    def test_trims_lowercases_and_dedupes(self):
        assert normalize_and_validate_tags(["Production", " DEPLOY ", "production"]) == [
            "production",
            "deploy",
        ]

    def test_empty_and_none(self):
        assert normalize_and_validate_tags(None) == []
        assert normalize_and_validate_tags(["", "   "]) == []

    def test_allowed_characters(self):
        assert normalize_and_validate_tags(["a-b_c-123"]) == ["a-b_c-123"]

    def test_duplicates_do_not_count_towards_limit(self):
        tags = [f"t{i}" for i in range(MAX_TAGS)] + ["T0", "t1 "]
        assert len(normalize_and_validate_tags(tags)) == MAX_TAGS


class TestValidate:
    @pytest.mark.parametrize("tag", ["has space", "dot.tag", "emoji✓", "slash/tag"])
    def test_invalid_characters(self, tag):
        with pytest.raises(TagValidationError, match="invalid characters"):
            normalize_and_validate_tags([tag])

    def test_too_long(self):
        with pytest.raises(TagValidationError, match="exceeds maximum length of 50"):
            normalize_and_validate_tags(["a" * (MAX_TAG_LENGTH + 1)])

    def test_exactly_max_length(self):
        assert normalize_and_validate_tags(["a" * MAX_TAG_LENGTH]) == ["a" * MAX_TAG_LENGTH]

    def test_too_many(self):
        with pytest.raises(TagValidationError, match="maximum of 10 tags allowed, got 11"):
            normalize_and_validate_tags([f"t{i}" for i in range(11)])

    def test_is_value_error(self):
        assert issubclass(TagValidationError, ValueError)


class TestMergeTags:
    def test_provided_first_then_defaults(self):
        assert merge_tags(["release"], ["production", "release"]) == ["release", "production"]

    def test_only_defaults(self):
        assert merge_tags([], ["ci"]) == ["ci"]

    def test_nothing(self):
        assert merge_tags(None, None) == []
