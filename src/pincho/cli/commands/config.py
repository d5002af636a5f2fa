"""``pincho config``: inspect and edit ``~/.pincho/config.yaml``."""

from __future__ import annotations

import logging
import sys

from pincho.cli import output
from pincho.config.store import ConfigStore, ConfigValidationError
from pincho.core.errors import ExitCode
from pincho.logging.sanitize import mask_secret

log = logging.getLogger(__name__)

_SECRET_KEYS = frozenset({"token"})


def _display(key: str, value) -> str:
    if value is None or value == "":
        return "(not set)"
    if isinstance(value, list):
        value = ", ".join(str(v) for v in value)
    text = str(value)
    if key in _SECRET_KEYS and len(text) > 8:  # noqa: PLR2004
        return mask_secret(text)
    return text


def run_config(args) -> int:
    """Handle config subcommands; return the process exit code."""
    store = ConfigStore(args.config)
    try:
        if args.config_command == "set":
            store.set(args.key, args.value)
            sys.stdout.write(f"✓ Set {args.key} in {store.path}\n")
        elif args.config_command == "get":
            sys.stdout.write(f"{args.key}: {_display(args.key, store.get(args.key))}\n")
        elif args.config_command == "list":
            _config_list(store)
        else:
            output.print_message("missing config subcommand (set, get, list)")
            return ExitCode.USAGE
    except ConfigValidationError as exc:
        output.print_message("; ".join(exc.errors))
        return ExitCode.USAGE
    except OSError as exc:
        output.print_message(f"cannot write config file {store.path}: {exc}")
        return ExitCode.SYSTEM
    return ExitCode.SUCCESS


def _config_list(store: ConfigStore) -> None:
    values = store.all()
    if not values:
        sys.stdout.write("No configuration set\n\nTo get started:\n  pincho config set token YOUR_TOKEN\n")
        return
    sys.stdout.write(f"Configuration from {store.path}:\n\n")
    for key, value in values.items():
        sys.stdout.write(f"  {key}: {_display(key, value)}\n")
