"""Run the notification delivery worker as a standalone process."""

from __future__ import annotations

import argparse
import logging
import signal

from notifier.config import get_settings
from notifier.infrastructure.broker import create_connection
from notifier.infrastructure.database import initialize_database
from notifier.infrastructure.worker import create_worker
from notifier.logging_config import configure_logging

logger = logging.getLogger("notifier.worker")


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the worker."""

    parser = argparse.ArgumentParser(
        description="Consume notification jobs and deliver them through their channels.",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Número máximo de trabajos simultáneos (por defecto: WORKER_CONCURRENCY)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Nivel de log (por defecto: LOG_LEVEL)",
    )
    return parser.parse_args()


def main() -> None:
    """Start the worker and stop it gracefully on SIGINT/SIGTERM."""

    args = parse_args()
    configure_logging(args.log_level)

    settings = get_settings()
    if args.concurrency is not None:
        if args.concurrency < 1:
            raise SystemExit("La concurrencia debe ser un entero positivo.")
        settings = settings.model_copy(update={"worker_concurrency": args.concurrency})

    initialize_database()

    connection = create_connection(settings)
    worker = create_worker(connection, settings=settings)

    def _request_stop(signum, _frame) -> None:
        logger.info("Received signal %s; finishing in-flight jobs", signum)
        worker.stop()

    signal.signal(signal.SIGTERM, _request_stop)
    signal.signal(signal.SIGINT, _request_stop)

    try:
        worker.start()
    finally:
        connection.release()


if __name__ == "__main__":
    main()
