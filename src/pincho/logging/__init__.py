"""Logging subsystem for the Pincho CLI.

Public API::

    from pincho.logging import configure_logging

    configure_logging(settings.logging)
"""

from pincho.logging.setup import configure_logging

__all__ = ["configure_logging"]
