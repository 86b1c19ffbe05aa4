"""Entry point for polling a quote endpoint and printing each quote."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Mapping, Optional, Sequence, TextIO

from quotepoll.data.polling import QuotePoller
from quotepoll.data.quotes_client import FatalResponseError, QuoteClient
from quotepoll.infra.config import ConfigError, Settings, load_endpoint
from quotepoll.infra.logging import configure_logging
from quotepoll.infra.metrics import MetricsSink


def run(
    settings: Settings,
    environ: Optional[Mapping[str, str]] = None,
    output: Optional[TextIO] = None,
) -> None:
    """Resolve the endpoint once, then poll until the lifetime elapses.

    :class:`FatalResponseError` propagates to the caller.
    """

    endpoint = load_endpoint(settings, environ)
    metrics = MetricsSink()
    client = QuoteClient(endpoint, metrics_callback=metrics.incr)
    try:
        poller = QuotePoller(client, settings.schedule, output=output, metrics=metrics)
        asyncio.run(poller.run())
    finally:
        client.close()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="quotepoll", description="Print quotes from an HTTP endpoint on a schedule")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between polls (default 10)")
    parser.add_argument("--lifetime", type=float, default=None, help="Seconds before stopping (default 100)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging()
    logger = logging.getLogger("quotepoll")

    try:
        settings = Settings.from_env().with_schedule(interval=args.interval, lifetime=args.lifetime)
    except ConfigError as exc:
        logger.critical("invalid schedule: %s", exc, extra={"event": "schedule_error"})
        sys.exit(2)

    try:
        run(settings)
    except FatalResponseError as exc:
        logger.critical("%s", exc, extra={"event": "fatal_response", "status_code": exc.status_code})
        sys.exit(1)


if __name__ == "__main__":
    main()
