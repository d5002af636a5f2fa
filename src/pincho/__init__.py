"""Pincho command-line client.

Public API::

    from pincho import PinchoClient, SendOptions

    client = PinchoClient(token="...")
    result = client.send(SendOptions(title="Build complete"))
"""

__version__ = "1.0.0"

from pincho.client import (  # noqa: E402
    NotifAIOptions,
    PinchoClient,
    SendOptions,
)
from pincho.core.errors import ErrorKind, PushError  # noqa: E402

__all__ = [
    "ErrorKind",
    "NotifAIOptions",
    "PinchoClient",
    "PushError",
    "SendOptions",
    "__version__",
]
