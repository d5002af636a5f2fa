"""Shared plumbing for commands that call the API.

Builds a :class:`~pincho.client.PinchoClient` from resolved settings
and CLI flags (flag > environment > file > default), and ties Ctrl-C
to the in-flight :class:`~pincho.client.CallContext`.
"""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

from pincho.client import CallContext, PinchoClient
from pincho.client.backoff import DEFAULT_INITIAL_BACKOFF
from pincho.logging.sanitize import mask_secret

if TYPE_CHECKING:
    import argparse
    from collections.abc import Iterator
    from typing import TextIO

    from pincho.config.settings import PinchoSettings

log = logging.getLogger(__name__)


def resolve_token(settings: PinchoSettings, args: argparse.Namespace) -> str:
    return getattr(args, "token", None) or settings.token


def resolve_timeout(settings: PinchoSettings, args: argparse.Namespace) -> float:
    timeout = getattr(args, "timeout", None)
    if timeout is not None and timeout > 0:
        return float(timeout)
    return float(settings.timeout)


def resolve_max_retries(settings: PinchoSettings, args: argparse.Namespace) -> int:
    retries = getattr(args, "max_retries", None)
    if retries is not None and retries >= 0:
        return retries
    return settings.max_retries


def build_client(settings: PinchoSettings, args: argparse.Namespace) -> PinchoClient:
    """Create a client configured from *settings* overridden by *args*."""
    client = PinchoClient(api_url=settings.api_url)
    client.set_token(resolve_token(settings, args))
    client.set_timeout(resolve_timeout(settings, args))
    client.set_retry_config(resolve_max_retries(settings, args), DEFAULT_INITIAL_BACKOFF)
    log.debug(
        "Client configured: api_url=%s token=%s timeout=%.0fs max_retries=%d",
        client.api_url,
        mask_secret(client.token),
        client.timeout,
        client.max_retries,
    )
    return client


@contextmanager
def cancel_on_interrupt(ctx: CallContext) -> Iterator[CallContext]:
    """Cancel *ctx* on SIGINT for the duration of the block.

    Signal handlers can only be installed from the main thread;
    elsewhere the context is yielded unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield ctx
        return

    def _handler(signum, frame) -> None:
        log.warning("Interrupted, cancelling request")
        ctx.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield ctx
    finally:
        signal.signal(signal.SIGINT, previous)


def read_stdin(stream: TextIO) -> str:
    """Read all of *stream*, joining lines with ``\\n`` (no trailing newline)."""
    return "\n".join(stream.read().splitlines())
