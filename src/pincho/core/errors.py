"""Error taxonomy for the Pincho client.

Every failure the client can report is a :class:`PushError` tagged with
one of five :class:`ErrorKind` values.  Retryability and the CLI exit
code are total functions of the kind, so callers branch on
``err.kind`` instead of on exception subclasses or message text.

Usage::

    raise PushError.validation("title is required", param="title", local=True)

    try:
        client.send(options)
    except PushError as exc:
        if exc.retryable:
            ...
        sys.exit(exit_code_for(exc))
"""

from __future__ import annotations

import json
import logging
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    NETWORK = "network"


_RETRYABLE: dict[ErrorKind, bool] = {
    ErrorKind.VALIDATION: False,
    ErrorKind.AUTHENTICATION: False,
    ErrorKind.RATE_LIMIT: True,
    ErrorKind.SERVER: True,
    ErrorKind.NETWORK: True,
}

_DEFAULT_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.SERVER: 500,
    ErrorKind.NETWORK: 0,
}


class PushError(Exception):
    """A classified failure of a Pincho API call.

    Prefer the named constructors (:meth:`validation`, :meth:`network`,
    ...) over calling the class directly.

    Parameters
    ----------
    kind:
        The error category.
    message:
        Human-readable description of the failure.
    status:
        HTTP-equivalent status code; defaults per kind (0 for network).
    param:
        Name of the offending request parameter, if the API reported one.
    code:
        Machine-readable error code from the API error envelope.
    retry_after:
        Seconds the server asked us to wait (rate limit only).
    cause:
        Underlying exception (network only), also set as ``__cause__``
        when raised with ``from``.
    local:
        ``True`` when raised before any network round trip.

    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status: int | None = None,
        param: str | None = None,
        code: str | None = None,
        retry_after: int | None = None,
        cause: BaseException | None = None,
        local: bool = False,
    ) -> None:
        self.kind = kind
        self.message = message
        self._status = _DEFAULT_STATUS[kind] if status is None else status
        self.param = param or None
        self.code = code or None
        self.retry_after = retry_after
        self.cause = cause
        self.local = local
        super().__init__(self._render())

    # -- constructors -------------------------------------------------------

    @classmethod
    def validation(
        cls,
        message: str,
        *,
        param: str | None = None,
        code: str | None = None,
        status: int = 400,
        local: bool = False,
    ) -> PushError:
        return cls(
            ErrorKind.VALIDATION,
            message,
            status=status,
            param=param,
            code=code,
            local=local,
        )

    @classmethod
    def authentication(
        cls,
        message: str,
        *,
        status: int = 401,
        local: bool = False,
    ) -> PushError:
        return cls(ErrorKind.AUTHENTICATION, message, status=status, local=local)

    @classmethod
    def rate_limit(cls, message: str, *, retry_after: int | None = None) -> PushError:
        return cls(ErrorKind.RATE_LIMIT, message, retry_after=retry_after)

    @classmethod
    def server(cls, message: str, *, status: int = 500) -> PushError:
        return cls(ErrorKind.SERVER, message, status=status)

    @classmethod
    def network(cls, message: str, cause: BaseException | None = None) -> PushError:
        return cls(ErrorKind.NETWORK, message, cause=cause)

    # -- accessors ----------------------------------------------------------

    @property
    def status_code(self) -> int:
        """HTTP-equivalent status code (0 for pure transport failures)."""
        return self._status

    @property
    def retryable(self) -> bool:
        return _RETRYABLE[self.kind]

    def _render(self) -> str:
        msg = self.message
        if self.kind is ErrorKind.VALIDATION:
            if self.param:
                msg = f"{msg} (parameter: {self.param})"
            if self.code:
                msg = f"{msg} [{self.code}]"
        elif self.kind is ErrorKind.RATE_LIMIT:
            if self.retry_after and self.retry_after > 0:
                msg = f"{msg} (retry after {self.retry_after} seconds)"
        elif self.kind is ErrorKind.NETWORK and self.cause is not None:
            msg = f"{msg}: {self.cause}"
        return msg

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable view for ``--json`` output."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
            "status": self.status_code,
            "retryable": self.retryable,
        }
        if self.param:
            data["param"] = self.param
        if self.code:
            data["code"] = self.code
        if self.retry_after:
            data["retry_after"] = self.retry_after
        return data

    def __repr__(self) -> str:
        return f"PushError(kind={self.kind.value!r}, status={self.status_code}, message={self.message!r})"


# ---------------------------------------------------------------------------
# Response classification
# ---------------------------------------------------------------------------


def parse_retry_after(value: str | None) -> int | None:
    """Return *value* as positive integer seconds, or ``None``."""
    if not value:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def _parse_envelope(body: bytes) -> dict | None:
    """Extract the nested ``error`` object from an API error body."""
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    if not isinstance(message, str) or not message:
        return None
    return error


def classify_response(
    status: int,
    body: bytes,
    headers: Mapping[str, str] | None = None,
) -> PushError:
    """Turn an HTTP error response into exactly one :class:`PushError`.

    Uses the ``{"status": "error", "error": {...}}`` envelope when present,
    otherwise falls back to the status code with the raw body as message.
    """
    retry_after = None
    if status == 429 and headers is not None:
        retry_after = parse_retry_after(headers.get("Retry-After"))

    envelope = _parse_envelope(body)
    if envelope is not None:
        message = envelope["message"]
        param = envelope.get("param") if isinstance(envelope.get("param"), str) else None
        code = envelope.get("code") if isinstance(envelope.get("code"), str) else None
        if status in (400, 404):
            return PushError.validation(message, param=param, code=code, status=status)
        if status in (401, 403):
            return PushError.authentication(message, status=status)
        if status == 429:
            return PushError.rate_limit(message, retry_after=retry_after)
        if status >= 500:
            return PushError.server(message, status=status)
        return PushError.validation(message, param=param, code=code, status=status)

    text = body.decode("utf-8", errors="replace")
    log.debug("Unstructured error body for HTTP %d", status)
    if status in (400, 404):
        return PushError.validation(f"validation error: {text}", status=status)
    if status in (401, 403):
        return PushError.authentication(f"authentication error: {text}", status=status)
    if status == 429:
        return PushError.rate_limit(f"rate limit exceeded: {text}", retry_after=retry_after)
    if status >= 500:
        return PushError.server(f"server error: {text}", status=status)
    return PushError.validation(f"API error ({status}): {text}", status=status)


# ---------------------------------------------------------------------------
# CLI exit codes
# ---------------------------------------------------------------------------


class ExitCode(IntEnum):
    SUCCESS = 0
    USAGE = 1
    API = 2
    SYSTEM = 3


_EXIT_CODES: dict[ErrorKind, ExitCode] = {
    ErrorKind.VALIDATION: ExitCode.API,
    ErrorKind.AUTHENTICATION: ExitCode.USAGE,
    ErrorKind.RATE_LIMIT: ExitCode.API,
    ErrorKind.SERVER: ExitCode.API,
    ErrorKind.NETWORK: ExitCode.SYSTEM,
}


def exit_code_for(exc: BaseException) -> ExitCode:
    """Map an exception to the CLI exit-code contract.

    Locally raised validation errors are usage errors; the same kind
    returned by the API is an API rejection.  Anything that is not a
    :class:`PushError` is a system error.
    """
    if not isinstance(exc, PushError):
        return ExitCode.SYSTEM
    if exc.kind is ErrorKind.VALIDATION and exc.local:
        return ExitCode.USAGE
    return _EXIT_CODES[exc.kind]
