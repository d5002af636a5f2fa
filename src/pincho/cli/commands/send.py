"""``pincho send``: deliver a notification."""

from __future__ import annotations

import logging
import sys

from pincho.cli import output
from pincho.cli.session import build_client, cancel_on_interrupt, read_stdin
from pincho.client import CallContext, SendOptions
from pincho.core.errors import ExitCode, PushError, exit_code_for
from pincho.validation.tags import merge_tags

log = logging.getLogger(__name__)


def run_send(settings, args) -> int:
    """Handle ``send``; return the process exit code."""
    title = args.title
    message = args.message or ""
    if args.stdin:
        try:
            message = read_stdin(sys.stdin)
        except OSError as exc:
            output.print_message(f"failed to read from stdin: {exc}")
            return ExitCode.USAGE

    options = SendOptions(
        title=title,
        message=message,
        type=args.type or settings.default_type,
        tags=merge_tags(args.tag or [], list(settings.default_tags)),
        image_url=args.image_url or "",
        action_url=args.action_url or "",
        encryption_password=args.encryption_password or "",
    )
    log.debug(
        "Notification options: type=%r tags=%s encrypted=%s message_length=%d",
        options.type,
        options.tags,
        bool(options.encryption_password),
        len(options.message),
    )

    client = build_client(settings, args)
    with cancel_on_interrupt(CallContext(timeout=client.timeout)) as ctx:
        try:
            result = client.send(options, ctx)
        except PushError as exc:
            log.debug("Send failed: %r", exc)
            output.print_error(exc, endpoint="send")
            return exit_code_for(exc)

    if args.json:
        output.print_json(result)
    else:
        output.print_send_result(result)
    return ExitCode.SUCCESS
