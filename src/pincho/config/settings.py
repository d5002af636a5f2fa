"""Typed, frozen dataclasses for the CLI configuration.

This module is the **single source of truth** for default values.
The YAML file is flat (``token``, ``api_url``, ``timeout`` ...); the
builders below turn it into a typed tree.

Access pattern::

    from pincho.config import load_settings

    settings = load_settings()
    print(settings.api_url, settings.timeout)
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_API_URL = "https://api.pincho.app/send"
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 3


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """CLI logging configuration (level, format)."""

    level: str
    format: str


def _build_logging(d: dict) -> LoggingSettings:
    return LoggingSettings(
        level=str(d.get("log_level") or "WARNING"),
        format=str(d.get("log_format") or "text"),
    )


# ---------------------------------------------------------------------------
# Top-level
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PinchoSettings:
    """Resolved CLI settings (file, environment and defaults merged)."""

    token: str
    api_url: str
    timeout: int
    max_retries: int
    default_type: str
    default_tags: tuple[str, ...]
    logging: LoggingSettings


def _build_tags(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(t.strip() for t in value.split(",") if t.strip())
    if isinstance(value, list):
        return tuple(str(t) for t in value if t is not None)
    return ()


def build_settings(data: dict | None) -> PinchoSettings:
    """Build the typed settings from an already validated raw dict."""
    d = data or {}
    timeout = d.get("timeout")
    max_retries = d.get("max_retries")
    return PinchoSettings(
        token=str(d.get("token") or ""),
        api_url=str(d.get("api_url") or DEFAULT_API_URL),
        timeout=timeout if timeout is not None else DEFAULT_TIMEOUT,
        max_retries=max_retries if max_retries is not None else DEFAULT_MAX_RETRIES,
        default_type=str(d.get("default_type") or ""),
        default_tags=_build_tags(d.get("default_tags")),
        logging=_build_logging(d),
    )
