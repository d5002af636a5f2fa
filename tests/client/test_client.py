"""Tests for PinchoClient.send / notifai."""

from __future__ import annotations

import json

import pytest

from pincho import __version__
from pincho.client.client import DEFAULT_API_URL, DEFAULT_NOTIFAI_URL, PinchoClient
from pincho.client.context import CallContext
from pincho.client.models import NotifAIOptions, SendOptions
from pincho.client.transport import HttpRequest, HttpResponse, TransportError
from pincho.core.crypto import decrypt_message
from pincho.core.errors import ErrorKind, PushError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SUCCESS = {
    "status": "success",
    "message": "Notification sent",
    "receivedNotification": {"notificationID": "n-1", "title": "Deploy"},
}

RATE_HEADERS = {
    "RateLimit-Limit": "30",
    "RateLimit-Remaining": "28",
    "RateLimit-Reset": "1700000000",
}


class RecordingTransport:
    """Returns queued responses and keeps every request it was given."""

    def __init__(self, *responses: HttpResponse | Exception) -> None:
        self.responses = list(responses)
        self.requests: list[HttpRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def send(
        self,
        request: HttpRequest,
        timeout: float,
        context: CallContext | None = None,
    ) -> HttpResponse:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    def payload(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].body)


def _json_response(status: int, data, headers: dict | None = None) -> HttpResponse:
    return HttpResponse(status, headers or {}, body=json.dumps(data).encode())


def _client(transport: RecordingTransport, **kwargs) -> PinchoClient:
    kwargs.setdefault("token", "tok_1234567890")
    return PinchoClient(
        transport=transport,
        sleep=lambda seconds, ctx: False,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Local validation
# ---------------------------------------------------------------------------


class TestLocalValidation:
    def test_missing_title_never_reaches_transport(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        with pytest.raises(PushError) as exc_info:
            _client(transport).send(SendOptions(title=""))
        assert transport.calls == 0
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert exc_info.value.param == "title"
        assert exc_info.value.local is True

    def test_missing_token(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        with pytest.raises(PushError) as exc_info:
            _client(transport, token="").send(SendOptions(title="t"))
        assert transport.calls == 0
        assert exc_info.value.kind is ErrorKind.AUTHENTICATION
        assert exc_info.value.local is True

    def test_invalid_tags(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        with pytest.raises(PushError) as exc_info:
            _client(transport).send(SendOptions(title="t", tags=["bad tag!"]))
        err = exc_info.value
        assert transport.calls == 0
        assert err.param == "tags"
        assert err.code == "invalid_tags"
        assert "invalid characters" in err.message

    def test_too_many_tags(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        with pytest.raises(PushError, match="maximum of 10 tags"):
            _client(transport).send(SendOptions(title="t", tags=[f"t{i}" for i in range(11)]))


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------


class TestSendRequest:
    def test_minimal_payload(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        _client(transport).send(SendOptions(title="Deploy"))
        assert transport.payload() == {"title": "Deploy", "message": ""}

    def test_full_payload(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        _client(transport).send(
            SendOptions(
                title="Deploy",
                message="v1.2.3",
                type="deploy",
                tags=["Production", " release", "production"],
                image_url="https://img.example.com/a.png",
                action_url="https://ci.example.com/1",
            ),
        )
        assert transport.payload() == {
            "title": "Deploy",
            "message": "v1.2.3",
            "type": "deploy",
            "tags": ["production", "release"],
            "imageURL": "https://img.example.com/a.png",
            "actionURL": "https://ci.example.com/1",
        }

    def test_headers(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        _client(transport, token="secret-token").send(SendOptions(title="t"))
        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url == DEFAULT_API_URL
        assert request.headers["Authorization"] == "Bearer secret-token"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["User-Agent"] == f"pincho-cli/{__version__}"
        assert b"secret-token" not in request.body

    def test_custom_user_agent(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        _client(transport, user_agent="my-bot/2").send(SendOptions(title="t"))
        assert transport.requests[0].headers["User-Agent"] == "my-bot/2"


class TestEncryption:
    def test_payload_has_iv_and_ciphertext_but_no_password(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        client = _client(transport, random_source=lambda n: b"\x01" * n)
        client.send(SendOptions(title="t", message="top secret", encryption_password="hunter2"))

        payload = transport.payload()
        assert payload["iv"] == "01" * 16
        assert payload["message"] != "top secret"
        assert "hunter2" not in transport.requests[0].body.decode()
        assert decrypt_message(payload["message"], "hunter2", b"\x01" * 16) == "top secret"

    def test_empty_message_is_not_encrypted(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        _client(transport).send(SendOptions(title="t", encryption_password="hunter2"))
        assert "iv" not in transport.payload()

    def test_iv_failure_is_network_error_without_request(self):
        def broken(n):
            raise OSError("no entropy")

        transport = RecordingTransport(_json_response(200, SUCCESS))
        with pytest.raises(PushError) as exc_info:
            _client(transport, random_source=broken).send(
                SendOptions(title="t", message="m", encryption_password="pw"),
            )
        assert exc_info.value.kind is ErrorKind.NETWORK
        assert exc_info.value.message == "failed to generate IV"
        assert transport.calls == 0

    def test_fresh_iv_per_send(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        client = _client(transport)
        opts = SendOptions(title="t", message="m", encryption_password="pw")
        client.send(opts)
        client.send(opts)
        assert transport.payload(0)["iv"] != transport.payload(1)["iv"]


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class TestSendResponses:
    def test_success_with_rate_limit(self):
        transport = RecordingTransport(_json_response(200, SUCCESS, RATE_HEADERS))
        result = _client(transport).send(SendOptions(title="t"))
        assert result.response.received_notification.notification_id == "n-1"
        assert result.rate_limit.limit == "30"
        assert result.rate_limit.remaining == "28"
        assert result.rate_limit.reset == "1700000000"

    def test_unparsable_success_body(self):
        transport = RecordingTransport(HttpResponse(200, {}, body=b"<html>ok</html>"))
        with pytest.raises(PushError) as exc_info:
            _client(transport).send(SendOptions(title="t"))
        assert exc_info.value.kind is ErrorKind.NETWORK
        assert exc_info.value.message == "failed to parse response"

    def test_non_object_success_body(self):
        transport = RecordingTransport(HttpResponse(200, {}, body=b"[]"))
        with pytest.raises(PushError, match="failed to parse response"):
            _client(transport).send(SendOptions(title="t"))

    def test_api_validation_error_propagates(self):
        body = {"status": "error", "error": {"message": "bad url", "param": "imageURL", "code": "invalid"}}
        transport = RecordingTransport(_json_response(400, body))
        with pytest.raises(PushError) as exc_info:
            _client(transport).send(SendOptions(title="t"))
        err = exc_info.value
        assert err.kind is ErrorKind.VALIDATION
        assert err.param == "imageURL"
        assert err.local is False
        assert transport.calls == 1

    def test_server_error_then_success(self):
        transport = RecordingTransport(
            _json_response(503, {"status": "error", "error": {"message": "busy"}}),
            _json_response(200, SUCCESS),
        )
        result = _client(transport).send(SendOptions(title="t"))
        assert transport.calls == 2
        assert result.response.status == "success"

    def test_network_failure_exhausts_retries(self):
        transport = RecordingTransport(TransportError("connection refused"))
        with pytest.raises(PushError) as exc_info:
            _client(transport, max_retries=2).send(SendOptions(title="t"))
        assert transport.calls == 3
        assert exc_info.value.kind is ErrorKind.NETWORK

    @pytest.mark.parametrize("api_url", ["api.example.com/send", "ftp://api.example.com/send", "https://"])
    def test_unusable_api_url_is_network_error_without_request(self, api_url):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        with pytest.raises(PushError) as exc_info:
            _client(transport, api_url=api_url).send(SendOptions(title="t"))
        assert transport.calls == 0
        assert exc_info.value.kind is ErrorKind.NETWORK
        assert exc_info.value.message == "failed to create request"
        assert api_url in str(exc_info.value)


# ---------------------------------------------------------------------------
# Configuration setters
# ---------------------------------------------------------------------------


class TestSetters:
    def test_set_timeout_ignores_non_positive(self):
        client = _client(RecordingTransport(_json_response(200, SUCCESS)))
        client.set_timeout(0)
        assert client.timeout == 30.0
        client.set_timeout(5)
        assert client.timeout == 5

    def test_set_retry_config_ignores_invalid(self):
        client = _client(RecordingTransport(_json_response(200, SUCCESS)))
        client.set_retry_config(-1, 0)
        assert client.max_retries == 3
        assert client.initial_backoff == 1.0
        client.set_retry_config(0, 0.5)
        assert client.max_retries == 0
        assert client.initial_backoff == 0.5

    def test_set_token_used_by_next_call(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        client = _client(transport)
        client.set_token("other")
        client.send(SendOptions(title="t"))
        assert transport.requests[0].headers["Authorization"] == "Bearer other"

    def test_zero_retries_single_attempt(self):
        transport = RecordingTransport(_json_response(500, {}))
        client = _client(transport)
        client.set_retry_config(0, 1.0)
        with pytest.raises(PushError):
            client.send(SendOptions(title="t"))
        assert transport.calls == 1


# ---------------------------------------------------------------------------
# NotifAI
# ---------------------------------------------------------------------------


class TestNotifAI:
    def test_default_url_and_payload(self):
        body = {**SUCCESS, "summary": {"title": "Generated", "tags": ["ai"]}}
        transport = RecordingTransport(_json_response(200, body))
        result = _client(transport).notifai(NotifAIOptions(text="deploy finished fine", type="deploy"))
        assert transport.requests[0].url == DEFAULT_NOTIFAI_URL
        assert transport.payload() == {"text": "deploy finished fine", "type": "deploy"}
        assert result.response.summary.title == "Generated"

    def test_custom_api_url_derives_notifai_url(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        client = _client(transport, api_url="https://self.example.com/api/send")
        client.notifai(NotifAIOptions(text="hello world"))
        assert transport.requests[0].url == "https://self.example.com/api/notifai"

    @pytest.mark.parametrize(
        ("text", "match"),
        [("", "text is required"), ("abcd", "at least 5"), ("x" * 2501, "at most 2500")],
    )
    def test_length_validation(self, text, match):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        with pytest.raises(PushError, match=match) as exc_info:
            _client(transport).notifai(NotifAIOptions(text=text))
        assert exc_info.value.local is True
        assert transport.calls == 0

    def test_boundary_lengths_accepted(self):
        transport = RecordingTransport(_json_response(200, SUCCESS))
        client = _client(transport)
        client.notifai(NotifAIOptions(text="x" * 5))
        client.notifai(NotifAIOptions(text="x" * 2500))
        assert transport.calls == 2
