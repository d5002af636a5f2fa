"""Pincho command-line entry point.

Usage::

    pincho send "Build complete" "v1.2.3 deployed" --tag production
    pincho send "Report" --stdin --encryption-password secret < report.txt
    pincho notifai "deploy of api finished in 3 minutes, all checks green"
    pincho config set token abc123
    pincho config list
    pincho version
    python -m pincho send "Hello"

Exit codes: 0 success, 1 usage/authentication, 2 API rejection,
3 network or unexpected failure.
"""

from __future__ import annotations

import argparse
import logging
import sys

from pincho.core.errors import ExitCode, exit_code_for

log = logging.getLogger(__name__)


def _get_version() -> str:
    from pincho import __version__

    return __version__


def _add_global_options(parser: argparse.ArgumentParser, *, suppress: bool) -> None:
    """Register the flags accepted before and after the subcommand.

    On subparsers the defaults are suppressed so a flag given before the
    subcommand is not reset by the subparser.
    """

    def default(value):
        return argparse.SUPPRESS if suppress else value

    parser.add_argument(
        "-t",
        "--token",
        default=default(None),
        help="Pincho API token (env: PINCHO_TOKEN).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=default(False),
        help="Enable verbose (debug) logging on stderr.",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=default(None),
        metavar="SECONDS",
        help="HTTP request timeout in seconds (env: PINCHO_TIMEOUT, default: 30).",
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=default(None),
        metavar="N",
        help="Maximum number of retry attempts (env: PINCHO_MAX_RETRIES, default: 3).",
    )
    parser.add_argument(
        "--config",
        default=default(None),
        metavar="PATH",
        help="Path to the configuration file (default: ~/.pincho/config.yaml).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pincho",
        description="Send push notifications via the Pincho API.",
    )
    _add_global_options(parser, suppress=False)
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    common = argparse.ArgumentParser(add_help=False)
    _add_global_options(common, suppress=True)

    subparsers = parser.add_subparsers(dest="command")

    # send
    send = subparsers.add_parser("send", parents=[common], help="Send a push notification")
    send.add_argument("title", help="Notification title")
    send.add_argument("message", nargs="?", default="", help="Notification message (optional)")
    send.add_argument("--type", default="", help="Notification type (e.g. alert, info, deploy)")
    send.add_argument(
        "--tag",
        action="append",
        default=[],
        help="Tag for categorization (repeatable, lowercased, max 10)",
    )
    send.add_argument("--image-url", default="", help="Image URL to display with the notification")
    send.add_argument("--action-url", default="", help="URL opened when the notification is tapped")
    send.add_argument("--stdin", action="store_true", help="Read the message from stdin")
    send.add_argument(
        "--encryption-password",
        default="",
        help="Encrypt the message with AES-128-CBC (must match the type's password in the app)",
    )
    send.add_argument("--json", action="store_true", help="Output the response as JSON")

    # notifai
    notifai = subparsers.add_parser(
        "notifai",
        parents=[common],
        help="Generate a notification from free-form text with AI",
    )
    notifai.add_argument("text", nargs="?", default="", help="Free-form text (5-2500 characters)")
    notifai.add_argument("--type", default="", help="Notification type (optional)")
    notifai.add_argument("--stdin", action="store_true", help="Read the text from stdin")
    notifai.add_argument("--json", action="store_true", help="Output the response as JSON")

    # config
    config = subparsers.add_parser("config", parents=[common], help="Manage CLI configuration")
    config_sub = config.add_subparsers(dest="config_command")
    config_set = config_sub.add_parser("set", help="Set a configuration value")
    config_set.add_argument("key", help="token, api_url, timeout, max_retries, default_type, ...")
    config_set.add_argument("value", help="Value to store")
    config_get = config_sub.add_parser("get", help="Get a configuration value")
    config_get.add_argument("key", help="Configuration key")
    config_sub.add_parser("list", help="List all configuration values")

    # version
    subparsers.add_parser("version", parents=[common], help="Print version information")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs a command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    command = args.command
    if command is None:
        parser.print_help(sys.stderr)
        sys.exit(ExitCode.USAGE)

    if command == "version":
        from pincho.cli.commands.version import run_version

        sys.exit(run_version(args))

    if command == "config":
        from pincho.cli.commands.config import run_config

        sys.exit(run_config(args))

    # -- load & validate config ---
    from pincho.cli.output import print_message
    from pincho.config import ConfigValidationError, load_settings

    try:
        settings = load_settings(args.config)
    except ConfigValidationError as exc:
        print_message(str(exc))
        sys.exit(ExitCode.USAGE)

    # -- replace bootstrap logging with configured logging ---
    from pincho.logging import configure_logging

    configure_logging(
        settings.logging,
        verbose=args.verbose,
        secrets=(
            args.token or settings.token,
            getattr(args, "encryption_password", ""),
        ),
    )

    # -- dispatch subcommand ---
    from pincho.cli.output import print_error

    try:
        if command == "send":
            from pincho.cli.commands.send import run_send

            code = run_send(settings, args)
        else:
            from pincho.cli.commands.notifai import run_notifai

            code = run_notifai(settings, args)
    except Exception as exc:
        log.debug("%s failed unexpectedly", command, exc_info=True)
        print_error(exc, endpoint=command)
        sys.exit(exit_code_for(exc))
    sys.exit(code)
