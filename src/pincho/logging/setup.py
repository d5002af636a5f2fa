"""Logging configuration for the Pincho CLI.

Provides JSON and text formatters, a redacting filter that keeps API
tokens and encryption passphrases out of every log record, and a
one-call ``configure_logging`` function driven by config settings.

All log output goes to stderr; stdout is reserved for command output
(``--json`` included).
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pincho.logging.sanitize import redact_text

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pincho.config.settings import LoggingSettings

# Attributes that are part of the standard LogRecord; everything
# else is considered "extra" and gets included in structured output.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter.

    Every record becomes a single JSON object on one line containing
    the standard fields plus any *extra* attributes passed by the
    caller.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        # Caller-supplied extra fields
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class RedactingFilter(logging.Filter):
    """Scrub credentials from every log record.

    The formatted message is rendered once, redacted, and stored back
    on the record with the arguments cleared.  Bearer credentials are
    always removed; *secrets* adds exact values (the configured token,
    an encryption passphrase) to scrub as well.
    """

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self.secrets = tuple(s for s in secrets if s)

    def add_secret(self, secret: str) -> None:
        if secret and secret not in self.secrets:
            self.secrets = (*self.secrets, secret)

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        message = record.getMessage()
        redacted = redact_text(message, self.secrets)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(
    settings: LoggingSettings,
    *,
    verbose: bool = False,
    secrets: Iterable[str] = (),
) -> logging.Logger:
    """Configure the ``pincho`` logger hierarchy from settings.

    Replaces any bootstrap handlers with properly formatted output.
    *verbose* forces ``DEBUG`` regardless of the configured level.

    Returns the root ``pincho`` logger.
    """
    level = logging.DEBUG if verbose else getattr(logging, settings.level.upper(), logging.WARNING)

    root = logging.getLogger("pincho")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(RedactingFilter(secrets))
    root.addHandler(console)

    return root
