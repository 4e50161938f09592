"""Command line entry point for the UniFi authentication test."""

import argparse
import asyncio
import logging
import sys

import jsonpickle

from .client import Client
from .config import Settings, timeout_or_none
from .prompt import prompt_password
from .workflow import AuthTest


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser; unset options fall back to the environment."""
    parser = argparse.ArgumentParser(
        description="Test session authentication against a UniFi controller."
    )
    parser.add_argument(
        "mac",
        nargs="?",
        help="Hardware address to authorize as a guest. Skipped when omitted.",
    )
    parser.add_argument("--controller", help="Controller hostname or IP.")
    parser.add_argument("--port", type=int, help="Controller HTTPS port.")
    parser.add_argument("--username", help="Admin username.")
    parser.add_argument("--site", help="Site name used for guest authorization.")
    parser.add_argument(
        "--insecure",
        action="store_true",
        default=None,
        help="Skip TLS certificate validation.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request timeout in seconds, 0 to wait forever.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Also print the outcome as JSON.",
    )
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Replace settings with any option given on the command line."""
    for name in ("controller", "port", "username", "site", "insecure"):
        value = getattr(args, name)
        if value is not None:
            setattr(settings, name, value)
    if args.timeout is not None:
        settings.timeout = timeout_or_none(args.timeout)
    return settings


async def run(settings: Settings, mac: str | None):
    """Run one test; the client is closed however the run ends."""
    async with Client(settings.endpoint(), timeout=settings.timeout) as client:
        test = AuthTest(client, settings.username, settings.site, prompt_password)
        return await test.run(mac)


def main(argv=None) -> int:
    """Run the test and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig()
        logging.getLogger("unifiauth").setLevel(logging.DEBUG)
        logging.getLogger("httpx").setLevel(logging.DEBUG)

    try:
        settings = apply_overrides(Settings(), args)
    except ValueError as e:
        parser.error(str(e))

    outcome = asyncio.run(run(settings, args.mac))

    if outcome.error is not None:
        print("\nTest failed! ❌", file=sys.stderr)
        print(f"{type(outcome.error).__name__}: {outcome.error}", file=sys.stderr)

    if args.json:
        print(jsonpickle.dumps(outcome.summary(), indent=2, unpicklable=False))

    return outcome.exit_code


def entrypoint():
    """Console script entry point."""
    sys.exit(main())
