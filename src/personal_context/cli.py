"""Command-line interface for running and inspecting personal context learning.

Gmail access for ``learn`` and ``test-connection`` comes from the cached
OAuth token (``GMAIL_TOKEN_PATH``), refreshed or created through the
installed-app flow when needed, unless ``--access-token`` is given.  Every
command prints JSON to stdout; logs go to stderr.

Usage::

    personal-context learn --user-id u1 --time-range last_6months --depth basic
    personal-context profile --user-id u1
    personal-context stats --user-id u1
    personal-context delete --user-id u1
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import structlog
from pydantic import SecretStr

from personal_context.app import configure_logging, initialize_services
from personal_context.auth.credentials import get_gmail_credentials
from personal_context.config import Settings, get_settings
from personal_context.domain.models import LearningInput, LearningOptions
from personal_context.domain.types import AnalysisDepth, TimeRange
from personal_context.email.source import GmailThreadSource
from personal_context.store.schema import close_profile_db

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with one subcommand per operation.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Learn and inspect a user's personal context")
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Path to the profile database (default: PROFILE_DB_PATH setting)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    learn = subparsers.add_parser("learn", help="Run a full learning pass")
    learn.add_argument("--user-id", required=True)
    learn.add_argument(
        "--time-range",
        choices=[t.value for t in TimeRange],
        default=TimeRange.LAST_3_MONTHS.value,
    )
    learn.add_argument(
        "--depth",
        choices=[d.value for d in AnalysisDepth],
        default=AnalysisDepth.STANDARD.value,
        dest="analysis_depth",
    )
    learn.add_argument("--include-promotional", action="store_true")
    learn.add_argument("--min-thread-length", type=int, default=2)
    learn.add_argument("--access-token", default=None, help="Use this Gmail bearer token")

    for name, help_text in (
        ("progress", "Show the stored learning progress"),
        ("profile", "Show the stored personal context profile"),
        ("stats", "Show summary statistics"),
        ("delete", "Delete all personal context data"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--user-id", required=True)

    connection = subparsers.add_parser("test-connection", help="Check Gmail access")
    connection.add_argument("--access-token", default=None, help="Use this Gmail bearer token")

    return parser


def format_json(payload: Any) -> str:
    """Pretty-print *payload*, rendering pydantic models in JSON mode."""
    if hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json")
    return json.dumps(payload, indent=2)


def resolve_access_token(args: argparse.Namespace, settings: Settings) -> str:
    """Return ``--access-token`` or a token from the cached OAuth credentials."""
    if args.access_token:
        return str(args.access_token)
    creds = get_gmail_credentials(settings.gmail_token_path, settings.gmail_credentials_path)
    return str(creds.token)


def _run_learn(args: argparse.Namespace, settings: Settings, services: dict[str, Any]) -> int:
    coordinator = services.get("coordinator")
    if coordinator is None:
        print(format_json({"success": False, "error": "ANTHROPIC_API_KEY is not set"}))
        return 1

    options = LearningOptions(
        time_range=TimeRange(args.time_range),
        analysis_depth=AnalysisDepth(args.analysis_depth),
        include_promotional=args.include_promotional,
        min_thread_length=args.min_thread_length,
    )
    learning_input = LearningInput(
        user_id=args.user_id,
        access_token=SecretStr(resolve_access_token(args, settings)),
        options=options,
    )
    logger.info("cli_learn_started", user_id=args.user_id, time_range=args.time_range)
    result = asyncio.run(coordinator.learn_personal_context(learning_input))
    print(format_json(result))
    return 0 if result.success else 1


def _run_test_connection(args: argparse.Namespace, settings: Settings) -> int:
    token = resolve_access_token(args, settings)
    connected = asyncio.run(GmailThreadSource().test_connection(token))
    print(format_json({"success": connected}))
    return 0 if connected else 1


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the requested command, and print JSON.

    Returns:
        The process exit code: 0 on success, 1 on failure.
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    if args.db:
        settings = settings.model_copy(update={"profile_db_path": Path(args.db)})
    configure_logging(production=settings.production, stream=sys.stderr)

    if args.command == "test-connection":
        return _run_test_connection(args, settings)

    services = initialize_services(settings)
    store = services["profile_store"]
    try:
        if args.command == "learn":
            return _run_learn(args, settings, services)
        if args.command == "progress":
            print(format_json(store.get_learning_progress(args.user_id)))
            return 0
        if args.command == "profile":
            profile = store.get_profile(args.user_id)
            print(format_json(profile))
            return 0 if profile is not None else 1
        if args.command == "stats":
            print(format_json(store.get_statistics(args.user_id)))
            return 0
        if args.command == "delete":
            store.delete_all_data(args.user_id)
            print(format_json({"success": True, "user_id": args.user_id}))
            return 0
    finally:
        close_profile_db(services["profile_conn"])

    # argparse rejects unknown subcommands before this point
    raise AssertionError(f"unhandled command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
