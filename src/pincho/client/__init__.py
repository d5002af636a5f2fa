"""Resilient request pipeline for the Pincho API.

Public API::

    from pincho.client import PinchoClient, SendOptions

    client = PinchoClient(token="...", max_retries=3)
    result = client.send(SendOptions(title="Deploy", message="v1.2.3"))
"""

from pincho.client.backoff import compute_backoff
from pincho.client.client import (
    DEFAULT_API_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_NOTIFAI_URL,
    DEFAULT_TIMEOUT,
    PinchoClient,
)
from pincho.client.context import CallContext
from pincho.client.executor import RequestExecutor, RetryState
from pincho.client.models import (
    NotifAIOptions,
    NotifAIResult,
    RateLimitInfo,
    SendOptions,
    SendResult,
)
from pincho.client.transport import (
    HttpRequest,
    HttpResponse,
    Transport,
    TransportError,
    UrllibTransport,
)

__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_NOTIFAI_URL",
    "DEFAULT_TIMEOUT",
    "CallContext",
    "HttpRequest",
    "HttpResponse",
    "NotifAIOptions",
    "NotifAIResult",
    "PinchoClient",
    "RateLimitInfo",
    "RequestExecutor",
    "RetryState",
    "SendOptions",
    "SendResult",
    "Transport",
    "TransportError",
    "UrllibTransport",
    "compute_backoff",
]
