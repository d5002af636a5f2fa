r"""Pincho API client.

Two endpoints are supported:

**Send** - ``POST {api_url}``

Request body (JSON)::

    {
        "title": "Build complete",
        "message": "v1.2.3 deployed",
        "type": "deploy",
        "tags": ["production"],
        "imageURL": "https://...",
        "actionURL": "https://...",
        "iv": "0123...cdef"
    }

``iv`` is only present when the message was encrypted locally; the
encryption password itself never leaves the machine.

**NotifAI** - ``POST {notifai_url}`` with ``{"text": ..., "type": ...}``.
The server turns free-form text into a notification.

Authentication is ``Authorization: Bearer <token>``.  Success responses
carry ``RateLimit-Limit``/``-Remaining``/``-Reset`` headers.  Errors use
the envelope ``{"status": "error", "error": {type, code, message, param}}``.

A client instance is not synchronised: reconfiguring it (timeout,
token, retries) while a call is in flight is the caller's problem.
"""

from __future__ import annotations

import json
import logging
import os
import urllib.parse
from typing import TYPE_CHECKING

from pincho.client.backoff import DEFAULT_INITIAL_BACKOFF
from pincho.client.executor import RequestExecutor
from pincho.client.models import (
    NotifAIOptions,
    NotifAIResponse,
    NotifAIResult,
    RateLimitInfo,
    SendOptions,
    SendResponse,
    SendResult,
)
from pincho.client.transport import HttpRequest, TransportError, UrllibTransport
from pincho.core.crypto import EncryptionError, encrypt_message, generate_iv
from pincho.core.errors import PushError
from pincho.logging.sanitize import mask_secret
from pincho.validation.tags import TagValidationError, normalize_and_validate_tags

if TYPE_CHECKING:
    from collections.abc import Callable

    from pincho.client.context import CallContext
    from pincho.client.transport import HttpResponse, Transport

log = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.pincho.app/send"
DEFAULT_NOTIFAI_URL = "https://api.pincho.app/notifai"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3

NOTIFAI_MIN_LENGTH = 5
NOTIFAI_MAX_LENGTH = 2500

_URL_SCHEMES = frozenset({"http", "https"})


def _default_user_agent() -> str:
    from pincho import __version__

    return f"pincho-cli/{__version__}"


class PinchoClient:
    """Sends notifications to the Pincho API with retries.

    Parameters
    ----------
    token:
        API token, sent as a bearer credential.
    api_url:
        ``/send`` endpoint.  A custom URL also moves the NotifAI
        endpoint (``/send`` is replaced by ``/notifai``).
    timeout:
        Per-attempt timeout in seconds.
    max_retries:
        Retries after the first attempt.
    initial_backoff:
        Base backoff unit in seconds.
    user_agent:
        Identifying ``User-Agent`` header.
    transport:
        Round-trip implementation; defaults to :class:`UrllibTransport`.
    random_source:
        Byte source for encryption IVs; defaults to :func:`os.urandom`.
    sleep:
        Backoff sleep hook forwarded to :class:`RequestExecutor`.

    """

    def __init__(  # noqa: PLR0913
        self,
        token: str | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        user_agent: str | None = None,
        transport: Transport | None = None,
        random_source: Callable[[int], bytes] = os.urandom,
        sleep: Callable[[float, CallContext], bool] | None = None,
    ) -> None:
        self.token = token or ""
        self.api_url = api_url or DEFAULT_API_URL
        self.timeout = timeout
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.user_agent = user_agent or _default_user_agent()
        self._transport = transport or UrllibTransport()
        self._random_source = random_source
        self._sleep = sleep

    # -- configuration ------------------------------------------------------

    def set_timeout(self, timeout: float) -> None:
        """Update the per-attempt timeout; non-positive values are ignored."""
        if timeout > 0:
            self.timeout = timeout

    def set_token(self, token: str) -> None:
        self.token = token

    def set_retry_config(self, max_retries: int, initial_backoff: float) -> None:
        """Update retry settings; out-of-range values are ignored."""
        if max_retries >= 0:
            self.max_retries = max_retries
        if initial_backoff > 0:
            self.initial_backoff = initial_backoff

    @property
    def notifai_url(self) -> str:
        if self.api_url and self.api_url != DEFAULT_API_URL:
            return self.api_url.replace("/send", "/notifai", 1)
        return DEFAULT_NOTIFAI_URL

    # -- endpoints ----------------------------------------------------------

    def send(
        self,
        options: SendOptions,
        context: CallContext | None = None,
    ) -> SendResult:
        """Send a notification.

        Raises
        ------
        PushError
            Locally for invalid input (no network call is made), or the
            classified API/transport failure.

        """
        if not options.title:
            msg = "title is required"
            raise PushError.validation(msg, param="title", local=True)
        self._require_token()

        try:
            tags = normalize_and_validate_tags(options.tags)
        except TagValidationError as exc:
            msg = f"tag validation failed: {exc}"
            raise PushError.validation(
                msg,
                param="tags",
                code="invalid_tags",
                local=True,
            ) from exc

        message, iv_hex = self._encrypt_if_requested(options)

        payload: dict = {"title": options.title, "message": message}
        if options.type:
            payload["type"] = options.type
        if tags:
            payload["tags"] = tags
        if options.image_url:
            payload["imageURL"] = options.image_url
        if options.action_url:
            payload["actionURL"] = options.action_url
        if iv_hex:
            payload["iv"] = iv_hex

        log.debug(
            "Sending notification: title=%r tags=%s encrypted=%s",
            options.title,
            tags,
            bool(iv_hex),
        )
        data, rate_limit = self._post(self.api_url, payload, context)
        return SendResult(response=SendResponse.from_dict(data), rate_limit=rate_limit)

    def notifai(
        self,
        options: NotifAIOptions,
        context: CallContext | None = None,
    ) -> NotifAIResult:
        """Ask the API to build a notification from free-form text."""
        if not options.text:
            msg = "text is required"
            raise PushError.validation(msg, param="text", local=True)
        self._require_token()
        if len(options.text) < NOTIFAI_MIN_LENGTH:
            msg = f"text must be at least {NOTIFAI_MIN_LENGTH} characters long"
            raise PushError.validation(msg, param="text", local=True)
        if len(options.text) > NOTIFAI_MAX_LENGTH:
            msg = f"text must be at most {NOTIFAI_MAX_LENGTH} characters long"
            raise PushError.validation(msg, param="text", local=True)

        payload: dict = {"text": options.text}
        if options.type:
            payload["type"] = options.type

        data, rate_limit = self._post(self.notifai_url, payload, context)
        return NotifAIResult(response=NotifAIResponse.from_dict(data), rate_limit=rate_limit)

    # -- internals ----------------------------------------------------------

    def _require_token(self) -> None:
        if not self.token:
            msg = "token is required"
            raise PushError.authentication(msg, local=True)

    def _encrypt_if_requested(self, options: SendOptions) -> tuple[str, str]:
        """Return ``(message, iv_hex)``; ``iv_hex`` is empty when unencrypted."""
        if not options.encryption_password or not options.message:
            return options.message, ""

        try:
            iv, iv_hex = generate_iv(self._random_source)
        except EncryptionError as exc:
            msg = "failed to generate IV"
            raise PushError.network(msg, exc) from exc
        try:
            encrypted = encrypt_message(options.message, options.encryption_password, iv)
        except EncryptionError as exc:
            msg = "failed to encrypt message"
            raise PushError.network(msg, exc) from exc
        return encrypted, iv_hex

    def _build_request(self, url: str, payload: dict) -> HttpRequest:
        parts = urllib.parse.urlsplit(url)
        if parts.scheme not in _URL_SCHEMES or not parts.netloc:
            cause = ValueError(f"unsupported API URL {url!r}")
            msg = "failed to create request"
            raise PushError.network(msg, cause) from cause
        return HttpRequest(
            method="POST",
            url=url,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Authorization": f"Bearer {self.token}",
                "User-Agent": self.user_agent,
            },
            body=json.dumps(payload).encode("utf-8"),
        )

    def _post(
        self,
        url: str,
        payload: dict,
        context: CallContext | None,
    ) -> tuple[dict, RateLimitInfo]:
        """Run one call through the executor and decode the success body."""
        executor = RequestExecutor(
            self._transport,
            max_retries=self.max_retries,
            initial_backoff=self.initial_backoff,
            timeout=self.timeout,
            sleep=self._sleep,
        )
        log.debug("POST %s (token %s)", url, mask_secret(self.token))
        response = executor.execute(self._build_request(url, payload), context)
        with response:
            return self._decode(response), RateLimitInfo.from_headers(response.headers)

    @staticmethod
    def _decode(response: HttpResponse) -> dict:
        try:
            body = response.read()
        except TransportError as exc:
            msg = "failed to read response"
            raise PushError.network(msg, exc) from exc
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            msg = "failed to parse response"
            raise PushError.network(msg, exc) from exc
        if not isinstance(data, dict):
            msg = "failed to parse response"
            raise PushError.network(msg, ValueError("expected a JSON object"))
        return data
