"""Tag normalization and validation.

Mirrors the API's tag rules so bad tags fail locally with a clear
message instead of a 400 round trip:

- at most 10 tags per notification
- at most 50 characters per tag
- lowercase letters, digits, ``-`` and ``_`` only

Tags are trimmed, lowercased and deduplicated before validation::

    normalize_and_validate_tags(["Production", "DEPLOY ", "production"])
    # ["production", "deploy"]
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

MAX_TAGS = 10
MAX_TAG_LENGTH = 50

_TAG_RE = re.compile(r"^[a-z0-9_-]+$")


class TagValidationError(ValueError):
    """Raised when a tag list breaks the API's tag rules."""


def normalize_and_validate_tags(tags: Iterable[str] | None) -> list[str]:
    """Return the normalized tags, preserving first-seen order.

    Raises
    ------
    TagValidationError
        If a tag is too long, contains invalid characters, or there are
        more than :data:`MAX_TAGS` tags after deduplication.

    """
    normalized: list[str] = []
    seen: set[str] = set()

    for raw in tags or ():
        tag = raw.strip().lower()
        if not tag or tag in seen:
            continue
        seen.add(tag)

        if len(tag) > MAX_TAG_LENGTH:
            msg = f"tag '{tag}' exceeds maximum length of {MAX_TAG_LENGTH} characters"
            raise TagValidationError(msg)
        if not _TAG_RE.match(tag):
            msg = (
                f"tag '{tag}' contains invalid characters "
                "(only lowercase letters, numbers, hyphens, and underscores allowed)"
            )
            raise TagValidationError(msg)
        normalized.append(tag)

    if len(normalized) > MAX_TAGS:
        msg = f"maximum of {MAX_TAGS} tags allowed, got {len(normalized)}"
        raise TagValidationError(msg)

    return normalized


def merge_tags(provided: Iterable[str] | None, defaults: Iterable[str] | None) -> list[str]:
    """Merge explicit tags with configured defaults, explicit ones first."""
    merged: list[str] = []
    for tag in [*(provided or ()), *(defaults or ())]:
        if tag not in merged:
            merged.append(tag)
    return merged
