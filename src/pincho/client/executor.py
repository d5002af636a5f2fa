"""Retrying request executor.

Owns one logical HTTP call: sends the request, classifies failures with
:func:`~pincho.core.errors.classify_response`, and retries retryable
ones with :func:`~pincho.client.backoff.compute_backoff` delays.

Attempts run strictly one after another, ``0..max_retries`` inclusive:

- status < 400: success, the open response is returned
- non-retryable failure: the classified :class:`PushError` is raised
- retryable failure with attempts left: close, back off, try again
- retryable failure on the last attempt: a network error naming the
  retry count is raised, chained to the last classified error

The :class:`~pincho.client.context.CallContext` is checked before each
attempt, handed to the transport so cancelling it aborts an in-flight
round trip, and interrupts backoff sleeps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pincho.client.backoff import DEFAULT_INITIAL_BACKOFF, compute_backoff
from pincho.client.context import CallContext
from pincho.client.transport import TransportError
from pincho.core.errors import PushError, classify_response
from pincho.logging.sanitize import redact_headers

if TYPE_CHECKING:
    from collections.abc import Callable

    from pincho.client.transport import HttpRequest, HttpResponse, Transport

log = logging.getLogger(__name__)

_ERROR_STATUS = 400


@dataclass
class RetryState:
    """Bookkeeping for one logical call; never shared between calls."""

    attempt: int = 0
    last_error: PushError | None = None
    last_status: int = 0
    last_retry_after: str | None = None


class RequestExecutor:
    """Sends an :class:`HttpRequest` with retries and backoff.

    Parameters
    ----------
    transport:
        Performs a single round trip.
    max_retries:
        Retries after the first attempt; ``0`` means one attempt total.
    initial_backoff:
        Base backoff unit in seconds for non-rate-limit failures.
    timeout:
        Per-attempt socket timeout in seconds, further bounded by the
        call's remaining deadline.
    sleep:
        ``sleep(seconds, context) -> interrupted``.  Defaults to
        :meth:`CallContext.wait`; tests inject a recorder.

    """

    def __init__(
        self,
        transport: Transport,
        *,
        max_retries: int = 3,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        timeout: float = 30.0,
        sleep: Callable[[float, CallContext], bool] | None = None,
    ) -> None:
        if max_retries < 0:
            msg = f"max_retries must be >= 0, got {max_retries}"
            raise ValueError(msg)
        self._transport = transport
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.timeout = timeout
        self._sleep = sleep or _context_sleep
        self.last_state: RetryState | None = None

    def execute(
        self,
        request: HttpRequest,
        context: CallContext | None = None,
    ) -> HttpResponse:
        """Run the retry loop and return a successful response.

        Raises
        ------
        PushError
            The classified failure, or a network error on cancellation,
            deadline expiry or retry exhaustion.

        """
        ctx = context or CallContext()
        state = RetryState()
        self.last_state = state

        for attempt in range(self.max_retries + 1):
            state.attempt = attempt
            if ctx.done:
                raise PushError.network(ctx.reason, state.last_error) from state.last_error

            log.debug(
                "%s %s (attempt %d/%d) headers=%s",
                request.method,
                request.url,
                attempt + 1,
                self.max_retries + 1,
                redact_headers(request.headers),
            )
            response, error = self._attempt(request, ctx)
            if error is None:
                return response  # type: ignore[return-value]

            state.last_error = error
            state.last_status = error.status_code
            state.last_retry_after = response.header("Retry-After") if response is not None else None
            if response is not None:
                response.close()

            if not error.retryable:
                raise error

            if ctx.done:
                raise PushError.network(ctx.reason, error) from error

            if attempt == self.max_retries:
                break

            delay = compute_backoff(
                attempt,
                state.last_status,
                state.last_retry_after,
                initial_backoff=self.initial_backoff,
            )
            log.warning(
                "Attempt %d/%d failed (%s), retrying in %.1fs",
                attempt + 1,
                self.max_retries + 1,
                error,
                delay,
            )
            if self._sleep(delay, ctx):
                msg = f"{ctx.reason or 'request cancelled'} during retry backoff"
                raise PushError.network(msg, error) from error

        msg = f"request failed after {self.max_retries} retries"
        raise PushError.network(msg, state.last_error) from state.last_error

    def _attempt(
        self,
        request: HttpRequest,
        ctx: CallContext,
    ) -> tuple[HttpResponse | None, PushError | None]:
        """One round trip: ``(response, None)`` on success, else an error."""
        timeout = self.timeout
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)

        try:
            response = self._transport.send(request, timeout, context=ctx)
        except TransportError as exc:
            return None, PushError.network("request failed", exc)

        if response.status < _ERROR_STATUS:
            return response, None

        # A transport failure while reading the error body wins over
        # the status line already received.
        try:
            body = response.read()
        except TransportError as exc:
            return response, PushError.network("failed to read response", exc)
        return response, classify_response(response.status, body, response.headers)


def _context_sleep(seconds: float, ctx: CallContext) -> bool:
    return ctx.wait(seconds)
