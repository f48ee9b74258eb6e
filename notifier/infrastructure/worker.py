"""Broker consumer that feeds notification jobs to a bounded worker pool."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Any

from kombu import Connection, Queue
from kombu.message import Message
from kombu.mixins import ConsumerMixin
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notifier.application.delivery import JobOutcome, NotificationProcessor, RetryScheduler
from notifier.config import Settings, get_settings
from notifier.infrastructure.broker import JobPublisher
from notifier.infrastructure.channels import ChannelRegistry, build_channel_registry
from notifier.infrastructure.database import SessionLocal

logger = logging.getLogger(__name__)


class NotificationWorker(ConsumerMixin):
    """Consume jobs from ``job_queue`` and process at most ``concurrency`` at once.

    Jobs run on a thread pool; acknowledgements are settled back on the
    consumer thread, which also releases due retries on every loop iteration.
    """

    def __init__(
        self,
        connection: Connection,
        processor: NotificationProcessor,
        scheduler: RetryScheduler,
        *,
        job_queue: Queue,
        concurrency: int = 4,
        poll_interval: float = 1.0,
    ) -> None:
        self.connection = connection
        self.processor = processor
        self.scheduler = scheduler
        self._queue = job_queue
        self._concurrency = concurrency
        self._poll_interval = poll_interval
        self._executor = ThreadPoolExecutor(
            max_workers=concurrency, thread_name_prefix="notifier-job"
        )
        self._slots = threading.BoundedSemaphore(concurrency)
        self._completed: "queue.Queue[tuple[Message, Future[JobOutcome]]]" = queue.Queue()
        self._stop_requested = threading.Event()
        self._last_poll = 0.0

    def get_consumers(self, Consumer: Any, channel: Any) -> list[Any]:
        return [
            Consumer(
                queues=[self._queue],
                callbacks=[self.on_message],
                accept=["json"],
                prefetch_count=self._concurrency,
            )
        ]

    def on_consume_ready(
        self, connection: Any, channel: Any, consumers: Any, **kwargs: Any
    ) -> None:
        logger.info(
            "Consuming queue %s with concurrency %s", self._queue.name, self._concurrency
        )

    def on_connection_error(self, exc: Exception, interval: float) -> None:
        logger.warning("Broker connection error: %s; retrying in %ss", exc, interval)

    def on_message(self, body: Any, message: Message) -> None:
        """Hand the job to the pool, blocking while every slot is busy."""

        self._slots.acquire()
        try:
            future = self._executor.submit(self.processor.process_payload, body)
        except RuntimeError:
            self._slots.release()
            # Left unsettled; the broker redelivers it once the channel closes.
            logger.info("Worker is stopping; job %r not started", body)
            return
        future.add_done_callback(partial(self._on_job_done, message))

    def _on_job_done(self, message: Message, future: "Future[JobOutcome]") -> None:
        self._slots.release()
        self._completed.put((message, future))

    def on_iteration(self) -> None:
        if self._stop_requested.is_set():
            self.drain()
            self.should_stop = True
            return
        self.settle_completed()
        self._release_due_retries()

    def settle_completed(self) -> int:
        """Ack terminal outcomes, reject the rest without requeue; return the count."""

        settled = 0
        while True:
            try:
                message, future = self._completed.get_nowait()
            except queue.Empty:
                return settled
            try:
                outcome = future.result()
            except Exception:
                logger.exception("Unhandled error while processing job %r", message.payload)
                message.reject(requeue=False)
            else:
                if outcome.acknowledge:
                    message.ack()
                else:
                    message.reject(requeue=False)
            settled += 1

    def _release_due_retries(self) -> None:
        now = time.monotonic()
        if now - self._last_poll < self._poll_interval:
            return
        self._last_poll = now
        try:
            self.scheduler.release_due()
        except SQLAlchemyError:
            # Already logged by the scheduler; try again on the next poll.
            pass

    def start(self) -> None:
        """Run the consume loop until :meth:`stop` is called."""

        logger.info("Notification worker starting")
        try:
            self.run(safety_interval=self._poll_interval)
        finally:
            # Unsettled messages are redelivered by the broker once the channel closes.
            self._executor.shutdown(wait=True)
            logger.info("Notification worker stopped")

    def stop(self) -> None:
        """Ask the loop to finish in-flight jobs and exit."""

        self._stop_requested.set()

    def drain(self) -> None:
        """Wait for in-flight jobs and settle their messages."""

        self._executor.shutdown(wait=True)
        self.settle_completed()


def create_worker(
    connection: Connection,
    *,
    settings: Settings | None = None,
    session_factory: Callable[[], Session] | None = None,
    channels: ChannelRegistry | None = None,
) -> NotificationWorker:
    """Wire publisher, scheduler, processor and consumer for ``connection``."""

    settings = settings or get_settings()
    session_factory = session_factory or SessionLocal
    publisher = JobPublisher(connection, queue_name=settings.notification_queue)
    scheduler = RetryScheduler(
        session_factory,
        publisher,
        base=settings.retry_backoff_base,
        max_retry_count=settings.max_retry_count,
    )
    processor = NotificationProcessor(
        session_factory,
        channels if channels is not None else build_channel_registry(settings),
        scheduler,
    )
    return NotificationWorker(
        connection,
        processor,
        scheduler,
        job_queue=publisher.queue,
        concurrency=settings.worker_concurrency,
        poll_interval=settings.retry_poll_interval_seconds,
    )


__all__ = ["NotificationWorker", "create_worker"]
