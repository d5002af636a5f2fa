"""Terminal rendering for command results and errors.

Results go to stdout (human text or JSON); errors go to stderr with a
short actionable suggestion.  Nothing here touches the network.
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, TextIO

from pincho.core.errors import ErrorKind, PushError

if TYPE_CHECKING:
    from pincho.client.models import (
        NotifAIResult,
        NotificationDetails,
        RateLimitInfo,
        SendResponse,
        SendResult,
    )

TOKEN_HELP = (
    "Get your token: Open Pincho app → Settings → Help → Copy token\n"
    "Or set it: pincho config set token YOUR_TOKEN"
)
NETWORK_HELP = "Please check your internet connection and try again."

# Requests per hour, per endpoint.
RATE_LIMITS = {"send": 30, "notifai": 50}

_TITLES = {
    ErrorKind.VALIDATION: "Invalid input",
    ErrorKind.AUTHENTICATION: "Authentication failed",
    ErrorKind.RATE_LIMIT: "Rate limit exceeded",
    ErrorKind.SERVER: "Server error",
    ErrorKind.NETWORK: "Network error",
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def print_json(result: SendResult | NotifAIResult, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    out.write(json.dumps(result.to_dict(), indent=2, default=str))
    out.write("\n")


def _format_expiry(notif: NotificationDetails) -> str | None:
    expires = notif.expires_at.to_datetime()
    return expires.isoformat(timespec="seconds").replace("+00:00", "Z") if expires else None


def _print_delivery(
    response: SendResponse,
    out: TextIO,
    *,
    detailed: bool,
) -> None:
    if response.team_id:
        out.write(f"Team: {response.team_id}\n")
        out.write(f"Members notified: {response.member_count}\n")
        return

    notif = response.received_notification
    if notif is None:
        return
    out.write(f"Notification ID: {notif.notification_id}\n")
    if detailed:
        out.write(f"Title: {notif.title}\n")
        if notif.body:
            out.write(f"Message: {notif.body}\n")
        if notif.type:
            out.write(f"Type: {notif.type}\n")
        if notif.tags:
            out.write(f"Tags: {', '.join(notif.tags)}\n")
    expires = _format_expiry(notif)
    if expires:
        out.write(f"Expires: {expires}\n")


def _print_rate_limit(rate_limit: RateLimitInfo, out: TextIO) -> None:
    if not rate_limit.present:
        return
    line = f"Rate Limit: {rate_limit.remaining}/{rate_limit.limit} remaining"
    if rate_limit.reset:
        line += f" (resets at {rate_limit.reset})"
    out.write(f"\n{line}\n")


def print_send_result(result: SendResult, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    out.write("✓ Notification sent successfully\n\n")
    _print_delivery(result.response, out, detailed=True)
    _print_rate_limit(result.rate_limit, out)


def print_notifai_result(result: NotifAIResult, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    out.write("✓ AI-generated notification sent successfully\n\n")

    summary = result.response.summary
    if summary is not None:
        out.write("AI Summary:\n")
        out.write(f"  Title: {summary.title}\n")
        if summary.message:
            out.write(f"  Message: {summary.message}\n")
        if summary.tags:
            out.write(f"  Tags: {', '.join(summary.tags)}\n")
        if summary.action_url:
            out.write(f"  Action URL: {summary.action_url}\n")
        out.write("\n")

    _print_delivery(result.response, out, detailed=False)
    _print_rate_limit(result.rate_limit, out)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def suggestion_for(exc: BaseException, endpoint: str = "send") -> str | None:
    """Return a hint for the user, or ``None`` when there is nothing to add.

    Exhausted retries surface as a network error; the hint follows the
    last classified failure behind it.
    """
    if not isinstance(exc, PushError):
        return None
    if exc.kind is ErrorKind.NETWORK and isinstance(exc.cause, PushError):
        exc = exc.cause
    if exc.kind is ErrorKind.AUTHENTICATION:
        return TOKEN_HELP
    if exc.kind is ErrorKind.RATE_LIMIT:
        per_hour = RATE_LIMITS.get(endpoint, RATE_LIMITS["send"])
        return (
            f"The {endpoint} endpoint allows {per_hour} requests per hour. "
            "Please wait before trying again."
        )
    if exc.kind is ErrorKind.NETWORK:
        return NETWORK_HELP
    return None


def print_error(
    exc: BaseException,
    *,
    endpoint: str = "send",
    stream: TextIO | None = None,
) -> None:
    """Write ``Error:``/``Cause:``/``Suggestion:`` lines to stderr."""
    out = stream or sys.stderr
    if isinstance(exc, PushError):
        out.write(f"Error: {_TITLES[exc.kind]}\n")
        out.write(f"Cause: {exc}\n")
    else:
        out.write(f"Error: {exc}\n")
    suggestion = suggestion_for(exc, endpoint)
    if suggestion:
        out.write(f"\nSuggestion: {suggestion}\n")


def print_message(message: str, stream: TextIO | None = None) -> None:
    """Write a plain ``Error:`` line (argument and config problems)."""
    out = stream or sys.stderr
    out.write(f"Error: {message}\n")
