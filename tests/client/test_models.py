"""Tests for typed API results built from JSON."""

from __future__ import annotations

import json
from datetime import UTC, datetime

from pincho.client.models import (
    FirestoreTimestamp,
    NotifAIResponse,
    NotifAIResult,
    RateLimitInfo,
    SendOptions,
    SendResponse,
    SendResult,
)
from pincho.client.transport import HttpResponse

PERSONAL = {
    "status": "success",
    "message": "Notification sent",
    "receivedNotification": {
        "notificationID": "n-1",
        "userID": "u-1",
        "title": "Deploy",
        "body": "v1.2.3",
        "type": "deploy",
        "tags": ["production", 7],
        "imageURL": "https://img.example.com/a.png",
        "actionURL": "https://ci.example.com/1",
        "expiresAt": {"_seconds": 1700000000, "_nanoseconds": 500000000},
    },
}

TEAM = {
    "status": "success",
    "message": "Team notified",
    "teamId": "team-9",
    "memberCount": 4,
    "notifications": [{"notificationID": "a"}, {"notificationID": "b"}, "junk"],
}


class TestSendResponse:
    def test_personal_response(self):
        resp = SendResponse.from_dict(PERSONAL)
        notif = resp.received_notification
        assert resp.status == "success"
        assert notif.notification_id == "n-1"
        assert notif.tags == ("production",)
        assert notif.image_url == "https://img.example.com/a.png"
        assert notif.expires_at == FirestoreTimestamp(1700000000, 500000000)
        assert resp.team_id == ""

    def test_team_response(self):
        resp = SendResponse.from_dict(TEAM)
        assert resp.team_id == "team-9"
        assert resp.member_count == 4
        assert [n.notification_id for n in resp.notifications] == ["a", "b"]
        assert resp.received_notification is None

    def test_mistyped_fields_degrade_to_defaults(self):
        resp = SendResponse.from_dict({"status": 1, "memberCount": "4", "notifications": {}})
        assert resp.status == ""
        assert resp.member_count == 0
        assert resp.notifications == ()

    def test_boolean_is_not_an_int(self):
        assert SendResponse.from_dict({"memberCount": True}).member_count == 0


class TestFirestoreTimestamp:
    def test_to_datetime(self):
        ts = FirestoreTimestamp(1700000000, 0)
        assert ts.to_datetime() == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_unset_is_none(self):
        assert FirestoreTimestamp().to_datetime() is None
        assert FirestoreTimestamp.from_dict(None) == FirestoreTimestamp()


class TestNotifAIResponse:
    def test_summary_and_base_fields(self):
        data = {
            **PERSONAL,
            "summary": {
                "title": "API deployed",
                "message": "All checks green",
                "actionURL": "https://ci.example.com",
                "tags": ["deploy"],
            },
        }
        resp = NotifAIResponse.from_dict(data)
        assert resp.summary.title == "API deployed"
        assert resp.summary.tags == ("deploy",)
        assert resp.received_notification.notification_id == "n-1"

    def test_missing_summary(self):
        assert NotifAIResponse.from_dict(TEAM).summary is None


class TestRateLimitInfo:
    def test_from_response_headers(self):
        resp = HttpResponse(
            200,
            {"RateLimit-Limit": "30", "RateLimit-Remaining": "29", "RateLimit-Reset": "1700000000"},
        )
        info = RateLimitInfo.from_headers(resp.headers)
        assert info == RateLimitInfo("30", "29", "1700000000")
        assert info.present is True

    def test_absent_headers(self):
        info = RateLimitInfo.from_headers({})
        assert info == RateLimitInfo()
        assert info.present is False


class TestResults:
    def test_send_result_is_json_serialisable(self):
        result = SendResult(SendResponse.from_dict(PERSONAL), RateLimitInfo("30", "1", ""))
        data = json.loads(json.dumps(result.to_dict()))
        assert data["response"]["received_notification"]["notification_id"] == "n-1"
        assert data["rate_limit"]["remaining"] == "1"

    def test_notifai_result_to_dict(self):
        result = NotifAIResult(NotifAIResponse.from_dict(TEAM), RateLimitInfo())
        assert result.to_dict()["response"]["summary"] is None


class TestSendOptions:
    def test_password_hidden_from_repr(self):
        opts = SendOptions(title="t", encryption_password="hunter2")
        assert "hunter2" not in repr(opts)

    def test_tag_lists_are_not_shared(self):
        a, b = SendOptions(title="a"), SendOptions(title="b")
        a.tags.append("x")
        assert b.tags == []
