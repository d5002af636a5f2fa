"""Config file storage and settings resolution.

Lifecycle::

    # 1. Persist a value (``pincho config set``)
    ConfigStore().set("token", "abc123")

    # 2. Resolve effective settings (file < environment)
    settings = load_settings()

    # 3. CLI flags are applied on top by the command layer

The file lives at ``~/.pincho/config.yaml``.  The directory is created
owner-only (0700) and the file is written owner read/write (0600) since
it holds the API token.  String values may reference the environment
with ``${VAR}`` or ``${VAR:-default}``.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from pincho.config.settings import PinchoSettings, build_settings

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".pincho"
CONFIG_FILE_NAME = "config.yaml"

_DIR_MODE = 0o700
_FILE_MODE = 0o600

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

STRING_KEYS = frozenset({"token", "api_url", "default_type"})
INT_KEYS = frozenset({"timeout", "max_retries"})
VALID_KEYS = (
    "token",
    "api_url",
    "timeout",
    "max_retries",
    "default_type",
    "default_tags",
    "log_level",
    "log_format",
)

_LOG_FORMATS = frozenset({"text", "json"})
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# Environment variable -> config key
ENV_VARS = {
    "PINCHO_TOKEN": "token",
    "PINCHO_API_URL": "api_url",
    "PINCHO_TIMEOUT": "timeout",
    "PINCHO_MAX_RETRIES": "max_retries",
}


def config_dir() -> Path:
    """Return ``~/.pincho``."""
    return Path.home() / CONFIG_DIR_NAME


def config_path() -> Path:
    """Return ``~/.pincho/config.yaml``."""
    return config_dir() / CONFIG_FILE_NAME


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str, environ: Mapping[str, str]) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    environ: Mapping[str, str],
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path, environ)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], environ, child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path, environ)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, environ, child_path)


# ---------------------------------------------------------------------------
# Value checks
# ---------------------------------------------------------------------------


def parse_int(key: str, value: Any) -> int:  # noqa: ANN401
    """Coerce *value* to an int valid for *key*.

    ``timeout`` must be positive, ``max_retries`` non-negative.

    Raises
    ------
    ValueError
        With a message naming the key.

    """
    if isinstance(value, bool):
        msg = f"invalid value for {key}: must be an integer"
        raise ValueError(msg)
    try:
        number = int(value)
    except (TypeError, ValueError):
        msg = f"invalid value for {key}: must be an integer"
        raise ValueError(msg) from None
    if isinstance(value, float) and value != number:
        msg = f"invalid value for {key}: must be an integer"
        raise ValueError(msg)
    if key == "timeout" and number <= 0:
        msg = f"invalid value for {key}: must be positive"
        raise ValueError(msg)
    if number < 0:
        msg = f"invalid value for {key}: must be non-negative"
        raise ValueError(msg)
    return number


def _validate(data: dict) -> list[str]:
    """Return every problem found in a raw config dict."""
    errors: list[str] = []
    for key, value in data.items():
        if key not in VALID_KEYS:
            log.warning("Config warning: unknown key '%s' ignored", key)
            continue
        if value is None:
            continue
        if key in INT_KEYS:
            try:
                data[key] = parse_int(key, value)
            except ValueError as exc:
                errors.append(str(exc))
        elif key == "default_tags":
            if not isinstance(value, (list, str)):
                errors.append("default_tags must be a list of strings")
        elif key == "log_format":
            if str(value).lower() not in _LOG_FORMATS:
                errors.append(f"log_format must be one of: {', '.join(sorted(_LOG_FORMATS))}")
        elif key == "log_level":
            if str(value).upper() not in _LOG_LEVELS:
                errors.append(f"log_level must be one of: {', '.join(sorted(_LOG_LEVELS))}")
        elif not isinstance(value, (str, int, float)):
            errors.append(f"{key} must be a string")
    return errors


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class ConfigStore:
    """Reads and writes the YAML config file.

    Parameters
    ----------
    path:
        Config file location; defaults to :func:`config_path`.

    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else config_path()

    def load(self) -> dict:
        """Return the raw config mapping; a missing file is empty.

        Raises
        ------
        ConfigValidationError
            If the file cannot be read or is not a YAML mapping.

        """
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            msg = f"cannot read config file {self.path}: {exc}"
            raise ConfigValidationError([msg]) from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            msg = f"config file {self.path} must contain a mapping"
            raise ConfigValidationError([msg])
        return data

    def get(self, key: str) -> Any:  # noqa: ANN401
        return self.load().get(key)

    def all(self) -> dict:
        return dict(self.load())

    def set(self, key: str, value: str) -> Any:  # noqa: ANN401
        """Validate, coerce and persist one value; return the stored value.

        Raises
        ------
        ConfigValidationError
            For an unknown key or an invalid value.

        """
        if key not in VALID_KEYS:
            msg = f"invalid key '{key}' (supported: {', '.join(VALID_KEYS)})"
            raise ConfigValidationError([msg])

        stored: Any
        if key in INT_KEYS:
            try:
                stored = parse_int(key, value)
            except ValueError as exc:
                raise ConfigValidationError([str(exc)]) from exc
        elif key == "default_tags":
            stored = [t.strip() for t in value.split(",") if t.strip()]
        else:
            stored = value
            errors = _validate({key: value})
            if errors:
                raise ConfigValidationError(errors)

        data = self.load()
        data[key] = stored
        self.save(data)
        log.debug("Set config key '%s' in %s", key, self.path)
        return stored

    def save(self, data: dict) -> None:
        """Write *data* with owner-only permissions."""
        self.path.parent.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        # O_CREAT honours the mode only for new files.
        self.path.chmod(_FILE_MODE)


# ---------------------------------------------------------------------------
# Settings resolution
# ---------------------------------------------------------------------------


def _apply_environment(data: dict, environ: Mapping[str, str]) -> None:
    """Overlay ``PINCHO_*`` variables; invalid numbers are ignored."""
    for var, key in ENV_VARS.items():
        raw = environ.get(var)
        if not raw:
            continue
        if key in INT_KEYS:
            try:
                data[key] = parse_int(key, raw)
            except ValueError as exc:
                log.warning("Ignoring %s: %s", var, exc)
                continue
        else:
            data[key] = raw


def load_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> PinchoSettings:
    """Resolve settings from the config file and the environment.

    Environment variables take precedence over the file.

    Raises
    ------
    ConfigValidationError
        If the file holds invalid values or unresolvable references.

    """
    env = os.environ if environ is None else environ
    data = ConfigStore(path).load()
    _resolve_env_vars(data, env)

    errors = _validate(data)
    if errors:
        raise ConfigValidationError(errors)

    _apply_environment(data, env)
    return build_settings(data)
