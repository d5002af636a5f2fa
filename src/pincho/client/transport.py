"""HTTP transport for the Pincho client.

The executor talks to a :class:`Transport`; the default
:class:`UrllibTransport` sends requests with :mod:`urllib.request`.

Request bodies are immutable ``bytes`` so the very same
:class:`HttpRequest` can be sent on every retry attempt.  HTTP error
statuses are *returned* as :class:`HttpResponse` objects; only
socket-level failures raise :class:`TransportError`.
"""

from __future__ import annotations

import contextlib
import http.client
import io
import logging
import socket
import ssl
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from typing import BinaryIO

    from pincho.client.context import CallContext

log = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when a request fails below the HTTP layer.

    Covers refused/reset connections, DNS failures, timeouts and
    responses that end before the body is complete.
    """


@dataclass(frozen=True)
class HttpRequest:
    """An outgoing request whose body can be re-sent verbatim."""

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def body_stream(self) -> BinaryIO:
        """Return a fresh reader positioned at the start of the body."""
        return io.BytesIO(self.body)


class HttpResponse:
    """A received HTTP response.

    The body is read lazily and cached.  Always :meth:`close` the
    response (or use it as a context manager) once done with it.
    """

    def __init__(
        self,
        status: int,
        headers: Mapping[str, str] | None = None,
        stream: BinaryIO | None = None,
        *,
        body: bytes | None = None,
    ) -> None:
        self.status = status
        self._headers = {k.lower(): v for k, v in (headers or {}).items()}
        self._stream = stream
        self._body = body
        self._error: TransportError | None = None
        self.closed = False

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        return self._headers.get(name.lower(), default)

    @property
    def headers(self) -> _HeaderView:
        return _HeaderView(self._headers)

    def read(self) -> bytes:
        """Return the full body.

        Raises
        ------
        TransportError
            If the connection drops while the body is being read.

        """
        if self._error is not None:
            raise self._error
        if self._body is None:
            if self._stream is None:
                self._body = b""
            else:
                try:
                    self._body = self._stream.read()
                except (OSError, http.client.HTTPException) as exc:
                    msg = f"failed to read response body: {exc}"
                    self._error = TransportError(msg)
                    raise self._error from exc
        return self._body

    def preload(self) -> None:
        """Read the body now; a failure is kept and raised by :meth:`read`."""
        with contextlib.suppress(TransportError):
            self.read()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._stream is not None:
            self._stream.close()

    def __enter__(self) -> HttpResponse:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class _HeaderView:
    """Read-only, case-insensitive mapping over response headers."""

    def __init__(self, data: dict[str, str]) -> None:
        self._data = data

    def get(self, name: str, default: str | None = None) -> str | None:
        return self._data.get(name.lower(), default)

    def __getitem__(self, name: str) -> str:
        return self._data[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._data


class Transport(Protocol):
    """Sends one request and returns its response.

    When *context* is given, cancelling it aborts the round trip with a
    :class:`TransportError`.
    """

    def send(
        self,
        request: HttpRequest,
        timeout: float,
        context: CallContext | None = None,
    ) -> HttpResponse: ...


# ---------------------------------------------------------------------------
# Connection tracking
# ---------------------------------------------------------------------------


def _tracked(
    conn_class: type[http.client.HTTPConnection],
    req: urllib.request.Request,
) -> Callable[..., http.client.HTTPConnection]:
    """Wrap *conn_class* so connections opened for *req* are recorded on it."""

    def factory(*args, **kwargs) -> http.client.HTTPConnection:
        conn = conn_class(*args, **kwargs)
        connections = getattr(req, "pincho_connections", None)
        if connections is not None:
            connections.append(conn)
        return conn

    return factory


class _TrackingHTTPHandler(urllib.request.HTTPHandler):
    def http_open(self, req: urllib.request.Request) -> http.client.HTTPResponse:
        return self.do_open(_tracked(http.client.HTTPConnection, req), req)


class _TrackingHTTPSHandler(urllib.request.HTTPSHandler):
    def https_open(self, req: urllib.request.Request) -> http.client.HTTPResponse:
        return self.do_open(
            _tracked(http.client.HTTPSConnection, req),
            req,
            context=self._context,
        )


def _abort_connections(connections: list[http.client.HTTPConnection]) -> None:
    """Shut down sockets so a blocked read in another thread returns."""
    for conn in connections:
        sock = conn.sock
        if sock is not None:
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
        with contextlib.suppress(OSError):
            conn.close()


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class UrllibTransport:
    """:class:`Transport` built on :mod:`urllib.request`.

    The body is read before :meth:`send` returns, so a cancellable send
    covers the whole round trip.  With a context, the round trip runs in
    a worker thread; the caller returns as soon as the context is
    cancelled or its deadline passes, and the socket is shut down.

    Parameters
    ----------
    ssl_context:
        Optional TLS context (custom trust anchors, client certs).

    """

    def __init__(self, ssl_context: ssl.SSLContext | None = None) -> None:
        self._opener = urllib.request.build_opener(
            _TrackingHTTPHandler(),
            _TrackingHTTPSHandler(context=ssl_context),
        )

    def send(
        self,
        request: HttpRequest,
        timeout: float,
        context: CallContext | None = None,
    ) -> HttpResponse:
        try:
            req = urllib.request.Request(  # noqa: S310
                request.url,
                data=request.body_stream().read() if request.body else None,
                method=request.method,
                headers=dict(request.headers),
            )
        except ValueError as exc:
            msg = f"failed to create request for {request.url!r}: {exc}"
            raise TransportError(msg) from exc

        if context is None:
            return self._round_trip(request, req, timeout)
        return self._cancellable_round_trip(request, req, timeout, context)

    def _round_trip(
        self,
        request: HttpRequest,
        req: urllib.request.Request,
        timeout: float,
    ) -> HttpResponse:
        try:
            resp = self._opener.open(req, timeout=timeout)
        except urllib.error.HTTPError as exc:
            # HTTPError doubles as the response object for 4xx/5xx.
            response = HttpResponse(exc.code, dict(exc.headers or {}), exc)
        except (urllib.error.URLError, OSError, http.client.HTTPException) as exc:
            reason = getattr(exc, "reason", exc)
            msg = f"{request.method} {request.url} failed: {reason}"
            raise TransportError(msg) from exc
        else:
            log.debug("%s %s -> HTTP %d", request.method, request.url, resp.status)
            response = HttpResponse(resp.status, dict(resp.headers), resp)

        response.preload()
        return response

    def _cancellable_round_trip(
        self,
        request: HttpRequest,
        req: urllib.request.Request,
        timeout: float,
        context: CallContext,
    ) -> HttpResponse:
        req.pincho_connections = []
        lock = threading.Lock()
        wake = threading.Event()
        outcome: dict[str, object] = {}

        def run() -> None:
            try:
                response = self._round_trip(request, req, timeout)
            except Exception as exc:  # noqa: BLE001
                # Re-raised on the calling thread.
                result: dict[str, object] = {"error": exc}
            else:
                result = {"response": response}
            with lock:
                if outcome.get("abandoned"):
                    if "response" in result:
                        response.close()
                    return
                outcome.update(result)
            wake.set()

        worker = threading.Thread(target=run, name="pincho-http", daemon=True)
        unregister = context.on_cancel(wake.set)
        try:
            worker.start()
            wake.wait(context.remaining())
        finally:
            unregister()

        with lock:
            if "response" in outcome:
                return outcome["response"]  # type: ignore[return-value]
            if "error" in outcome:
                raise outcome["error"]  # type: ignore[misc]
            outcome["abandoned"] = True

        _abort_connections(req.pincho_connections)
        reason = context.reason or "request aborted"
        log.debug("%s %s aborted: %s", request.method, request.url, reason)
        msg = f"{request.method} {request.url} failed: {reason}"
        raise TransportError(msg)
