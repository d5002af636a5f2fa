"""``pincho version``."""

from __future__ import annotations

import platform
import sys

from pincho.core.errors import ExitCode


def version_info() -> str:
    from pincho import __version__

    return f"pincho version {__version__}\npython: {platform.python_version()} ({sys.platform})"


def run_version(args) -> int:
    sys.stdout.write(version_info() + "\n")
    return ExitCode.SUCCESS
