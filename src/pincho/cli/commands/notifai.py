"""``pincho notifai``: let the API write the notification from free text."""

from __future__ import annotations

import logging
import sys

from pincho.cli import output
from pincho.cli.session import build_client, cancel_on_interrupt, read_stdin
from pincho.client import CallContext, NotifAIOptions
from pincho.core.errors import ExitCode, PushError, exit_code_for

log = logging.getLogger(__name__)


def run_notifai(settings, args) -> int:
    """Handle ``notifai``; return the process exit code."""
    if args.stdin:
        try:
            text = read_stdin(sys.stdin)
        except OSError as exc:
            output.print_message(f"failed to read from stdin: {exc}")
            return ExitCode.USAGE
        if not text:
            output.print_message("text cannot be empty when using --stdin")
            return ExitCode.USAGE
    elif args.text:
        text = args.text
    else:
        output.print_message("text is required (or use --stdin)")
        return ExitCode.USAGE

    options = NotifAIOptions(text=text, type=args.type or settings.default_type)
    log.debug("NotifAI options: type=%r text_length=%d", options.type, len(text))

    client = build_client(settings, args)
    with cancel_on_interrupt(CallContext(timeout=client.timeout)) as ctx:
        try:
            result = client.notifai(options, ctx)
        except PushError as exc:
            log.debug("NotifAI failed: %r", exc)
            output.print_error(exc, endpoint="notifai")
            return exit_code_for(exc)

    if args.json:
        output.print_json(result)
    else:
        output.print_notifai_result(result)
    return ExitCode.SUCCESS
