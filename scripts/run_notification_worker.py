"""Run the notification outbox worker as a standalone process."""

from __future__ import annotations

import argparse
import logging
import signal
import threading
from functools import partial

from app.application.use_cases.notifications import OutboxWorker, build_dispatcher
from app.config import get_settings
from app.infrastructure.database import SessionLocal, initialize_database
from app.infrastructure.notifications import FirebasePushClient


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the worker."""

    parser = argparse.ArgumentParser(
        description="Deliver queued notifications from the outbox.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Process a single batch and exit instead of polling forever.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser.parse_args()


def main() -> None:
    """Start polling the outbox until interrupted."""

    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    initialize_database()
    settings = get_settings()
    worker = OutboxWorker(
        SessionLocal,
        partial(build_dispatcher, push_client=FirebasePushClient(settings), settings=settings),
        settings=settings,
    )

    if args.once:
        processed = worker.run_once()
        print(f"Processed {processed} outbox entries")
        return

    stop_event = threading.Event()
    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, lambda *_: stop_event.set())
    worker.run_forever(stop_event)


if __name__ == "__main__":
    main()
