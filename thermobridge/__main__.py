"""Command line entry point: ``python -m thermobridge``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from . import async_run
from .api import AuthError
from .config import ConfigError, load_config

_LOGGER = logging.getLogger(__name__)

EXIT_AUTH_ERROR = 1
EXIT_CONFIG_ERROR = 2
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="thermobridge",
        description="Adjust a Skyport thermostat from a remote Awair sensor.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default="thermobridge.toml",
        help="path to the TOML configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="enable debug logging"
    )
    parser.add_argument(
        "--once", action="store_true", help="run a single control tick and exit"
    )
    return parser.parse_args(argv)


async def _main(args: argparse.Namespace) -> int:
    config = load_config(args.config)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        # The pending tick finishes; the loop exits before the next one
        loop.add_signal_handler(signum, stop_event.set)

    try:
        await async_run(config, stop_event, once=args.once)
    except AuthError:
        _LOGGER.exception("Authentication failed, fix the credentials and restart")
        return EXIT_AUTH_ERROR
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the bridge and return the process exit code."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    try:
        return asyncio.run(_main(args))
    except ConfigError as err:
        _LOGGER.error("%s", err)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
