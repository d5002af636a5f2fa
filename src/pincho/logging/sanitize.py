"""Secret redaction for log output.

API tokens and encryption passphrases must never reach a log line.
:func:`mask_secret` shortens a secret for display, :func:`redact_headers`
scrubs credential headers, and :func:`redact_text` rewrites bearer
credentials embedded in free text.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

REDACTED = "[REDACTED]"

_SENSITIVE_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie"})

_BEARER_RE = re.compile(r"(Bearer\s+)([^\s\"',]+)", re.IGNORECASE)

# Short secrets are fully hidden; longer ones keep a 4-char prefix/suffix.
_MASK_MIN_LENGTH = 8
_MASK_KEEP = 4


def mask_secret(value: str | None) -> str:
    """Return ``abcd...wxyz`` for long secrets, ``****`` otherwise.

    An empty or missing value renders as ``(not set)``.
    """
    if not value:
        return "(not set)"
    if len(value) <= _MASK_MIN_LENGTH:
        return "****"
    return f"{value[:_MASK_KEEP]}...{value[-_MASK_KEEP:]}"


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of *headers* with credential values replaced."""
    return {
        name: REDACTED if name.lower() in _SENSITIVE_HEADERS else value
        for name, value in headers.items()
    }


def redact_text(text: str, secrets: tuple[str, ...] = ()) -> str:
    """Scrub bearer credentials and any of *secrets* from *text*."""
    result = _BEARER_RE.sub(lambda m: f"{m.group(1)}{REDACTED}", text)
    for secret in secrets:
        if secret:
            result = result.replace(secret, REDACTED)
    return result
