"""
MagicApp Import CLI

Usage:
    magicapp-import <shortname>
    magicapp-import <shortname> --output guideline.json
    magicapp-import --mine

Credentials come from --username or MAGICAPP_USERNAME and from
MAGICAPP_PASSWORD.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import httpx
import structlog

from magicapp_import.config import MagicAppSettings, get_settings
from magicapp_import.exceptions import MagicAppError
from magicapp_import.fetcher import AggregationFetcher, fetch_guideline_with_details
from magicapp_import.observability.logging import configure_logging
from magicapp_import.session import Session

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="magicapp-import",
        description="Import a MAGICapp guideline with its PICOs and codes",
    )
    parser.add_argument("shortname", nargs="?", help="Shortname of the published guideline")
    parser.add_argument("--mine", action="store_true", help="List your own guidelines instead")
    parser.add_argument("--username", type=str, help="MAGICapp username (default: MAGICAPP_USERNAME)")
    parser.add_argument("--base-url", type=str, help="API base URL")
    parser.add_argument("--auth-url", type=str, help="Authentication URL")
    parser.add_argument("--output", type=str, help="Write the JSON document to a file")
    parser.add_argument("--log-level", type=str, help="Log level (default: MAGICAPP_LOG_LEVEL)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    return parser


async def run_import(
    args: argparse.Namespace,
    settings: MagicAppSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """Run the requested import and return a JSON-serializable result."""
    if args.mine:
        session = Session.from_settings(settings, username=args.username, transport=transport)
        fetcher = AggregationFetcher(session, csrf_cookie_name=settings.csrf_cookie_name)
        await fetcher.authenticator.authenticate()
        guidelines = await fetcher.list_my_guidelines()
        return [g.to_document() for g in guidelines]

    guideline = await fetch_guideline_with_details(
        args.shortname,
        username=args.username,
        settings=settings,
        transport=transport,
    )
    return guideline.to_document()


def main(
    argv: Optional[List[str]] = None,
    settings: Optional[MagicAppSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.mine and not args.shortname:
        parser.error("a guideline shortname is required unless --mine is given")
    if args.mine and args.shortname:
        parser.error("--mine lists your guidelines and takes no shortname")

    settings = settings or get_settings()
    overrides = {
        key: value
        for key, value in (("base_url", args.base_url), ("auth_url", args.auth_url))
        if value
    }
    if overrides:
        settings = settings.model_copy(update=overrides)

    configure_logging(args.log_level or settings.log_level, args.json_logs or settings.log_json)

    try:
        result = asyncio.run(run_import(args, settings, transport=transport))
    except MagicAppError as e:
        logger.error("Import failed", error_type=type(e).__name__, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    text = json.dumps(result, indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        print(f"Saved to {args.output}")
    else:
        print(text)
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
