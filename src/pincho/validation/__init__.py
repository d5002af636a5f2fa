"""Client-side input validation."""

from pincho.validation.tags import (
    MAX_TAG_LENGTH,
    MAX_TAGS,
    TagValidationError,
    merge_tags,
    normalize_and_validate_tags,
)

__all__ = [
    "MAX_TAGS",
    "MAX_TAG_LENGTH",
    "TagValidationError",
    "merge_tags",
    "normalize_and_validate_tags",
]
