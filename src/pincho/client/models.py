"""Request options and typed API results.

Options are plain dataclasses filled in by the caller.  Results are
frozen dataclasses built from the API's JSON with ``from_dict`` so
missing or mistyped fields degrade to defaults instead of raising.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import UTC, datetime
from typing import Any

# ---------------------------------------------------------------------------
# Request options
# ---------------------------------------------------------------------------


@dataclass
class SendOptions:
    """Parameters for ``POST /send``.

    ``encryption_password`` is used locally to encrypt ``message`` and
    is never transmitted.
    """

    title: str
    message: str = ""
    type: str = ""
    tags: list[str] = field(default_factory=list)
    image_url: str = ""
    action_url: str = ""
    encryption_password: str = field(default="", repr=False)


@dataclass
class NotifAIOptions:
    """Parameters for ``POST /notifai`` (AI-generated notification)."""

    text: str
    type: str = ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _int(data: dict, key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool):
        return 0
    return value if isinstance(value, int) else 0


def _str_list(data: dict, key: str) -> tuple[str, ...]:
    value = data.get(key)
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, str))


def _dict(data: dict, key: str) -> dict | None:
    value = data.get(key)
    return value if isinstance(value, dict) else None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FirestoreTimestamp:
    """``{"_seconds": ..., "_nanoseconds": ...}`` as returned by the API."""

    seconds: int = 0
    nanoseconds: int = 0

    @classmethod
    def from_dict(cls, data: dict | None) -> FirestoreTimestamp:
        d = data or {}
        return cls(seconds=_int(d, "_seconds"), nanoseconds=_int(d, "_nanoseconds"))

    def to_datetime(self) -> datetime | None:
        if self.seconds <= 0:
            return None
        return datetime.fromtimestamp(self.seconds + self.nanoseconds / 1e9, tz=UTC)


@dataclass(frozen=True)
class NotificationDetails:
    """One delivered notification."""

    notification_id: str = ""
    user_id: str = ""
    title: str = ""
    body: str = ""
    type: str = ""
    image_url: str = ""
    action_url: str = ""
    timestamp: str = ""
    tags: tuple[str, ...] = ()
    team_id: str = ""
    team_name: str = ""
    endpoint: str = ""
    iv: str = ""
    expires_at: FirestoreTimestamp = field(default_factory=FirestoreTimestamp)

    @classmethod
    def from_dict(cls, data: dict) -> NotificationDetails:
        return cls(
            notification_id=_str(data, "notificationID"),
            user_id=_str(data, "userID"),
            title=_str(data, "title"),
            body=_str(data, "body"),
            type=_str(data, "type"),
            image_url=_str(data, "imageURL"),
            action_url=_str(data, "actionURL"),
            timestamp=_str(data, "timestamp"),
            tags=_str_list(data, "tags"),
            team_id=_str(data, "teamId"),
            team_name=_str(data, "teamName"),
            endpoint=_str(data, "endpoint"),
            iv=_str(data, "iv"),
            expires_at=FirestoreTimestamp.from_dict(_dict(data, "expiresAt")),
        )


def _notifications(data: dict) -> tuple[NotificationDetails, ...]:
    value = data.get("notifications")
    if not isinstance(value, list):
        return ()
    return tuple(NotificationDetails.from_dict(n) for n in value if isinstance(n, dict))


def _received(data: dict) -> NotificationDetails | None:
    received = _dict(data, "receivedNotification")
    return NotificationDetails.from_dict(received) if received is not None else None


@dataclass(frozen=True)
class SendResponse:
    """Success envelope of ``/send``.

    Personal tokens fill ``received_notification``; team tokens fill
    ``team_id``, ``member_count`` and ``notifications``.
    """

    status: str = ""
    message: str = ""
    received_notification: NotificationDetails | None = None
    team_id: str = ""
    member_count: int = 0
    notifications: tuple[NotificationDetails, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> SendResponse:
        return cls(
            status=_str(data, "status"),
            message=_str(data, "message"),
            received_notification=_received(data),
            team_id=_str(data, "teamId"),
            member_count=_int(data, "memberCount"),
            notifications=_notifications(data),
        )


@dataclass(frozen=True)
class NotifAISummary:
    """The notification the AI generated from free-form text."""

    title: str = ""
    message: str = ""
    action_url: str = ""
    tags: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> NotifAISummary:
        return cls(
            title=_str(data, "title"),
            message=_str(data, "message"),
            action_url=_str(data, "actionURL"),
            tags=_str_list(data, "tags"),
        )


@dataclass(frozen=True)
class NotifAIResponse(SendResponse):
    """Success envelope of ``/notifai``: a send response plus a summary."""

    summary: NotifAISummary | None = None

    @classmethod
    def from_dict(cls, data: dict) -> NotifAIResponse:
        base = SendResponse.from_dict(data)
        summary = _dict(data, "summary")
        return cls(
            **{f.name: getattr(base, f.name) for f in fields(base)},
            summary=NotifAISummary.from_dict(summary) if summary is not None else None,
        )


@dataclass(frozen=True)
class RateLimitInfo:
    """``RateLimit-*`` response headers; empty strings when absent."""

    limit: str = ""
    remaining: str = ""
    reset: str = ""

    @classmethod
    def from_headers(cls, headers: Any) -> RateLimitInfo:  # noqa: ANN401
        return cls(
            limit=headers.get("RateLimit-Limit") or "",
            remaining=headers.get("RateLimit-Remaining") or "",
            reset=headers.get("RateLimit-Reset") or "",
        )

    @property
    def present(self) -> bool:
        return bool(self.limit)


@dataclass(frozen=True)
class SendResult:
    response: SendResponse
    rate_limit: RateLimitInfo

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NotifAIResult:
    response: NotifAIResponse
    rate_limit: RateLimitInfo

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
