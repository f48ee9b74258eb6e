"""Exponential-backoff retry scheduling backed by a durable timer table.

A failed attempt increments the notification's retry count and records a
``scheduled_retry`` row in the same transaction. Any worker polling
:meth:`RetryScheduler.release_due` republishes the job once the row is due,
so pending retries survive process restarts. Attempts that could not be
recorded at all are deferred in memory and republished a bounded number of
times.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notifier.domain.entities import (
    MAX_RETRY_COUNT,
    Notification,
    NotificationStatus,
    ScheduledRetry,
)
from notifier.domain.errors import JobPublishError, RetrySchedulingError
from notifier.infrastructure.broker import JobPublisher
from notifier.infrastructure.repositories import (
    NotificationRepository,
    ScheduledRetryRepository,
)
from notifier.utils import utc_now

logger = logging.getLogger(__name__)

RETRY_BACKOFF_BASE = 5


class RetryScheduler:
    """Compute backoff delays, record attempts and republish due jobs."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        publisher: JobPublisher,
        *,
        base: int = RETRY_BACKOFF_BASE,
        max_retry_count: int = MAX_RETRY_COUNT,
        clock: Callable[[], datetime] = utc_now,
        batch_size: int = 100,
        max_deferrals: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._publisher = publisher
        self._base = base
        self._max_retry_count = max_retry_count
        self._clock = clock
        self._batch_size = batch_size
        self._max_deferrals = max_retry_count if max_deferrals is None else max_deferrals
        self._lock = threading.Lock()
        # Deferred jobs live in memory only; timer rows need a working store.
        self._deferred: dict[int, datetime] = {}
        self._deferral_counts: dict[int, int] = {}

    @property
    def max_retry_count(self) -> int:
        return self._max_retry_count

    def compute_delay(self, retry_count: int) -> timedelta:
        """Return the wait before the attempt that follows ``retry_count`` retries."""

        return timedelta(seconds=self._base ** (retry_count + 1))

    def schedule_retry(
        self, session: Session, notification: Notification
    ) -> ScheduledRetry | None:
        """Record the next retry of ``notification`` and return its timer.

        Returns ``None`` when the record changed since it was loaded (another
        consumer already handled it). Raises :class:`RetrySchedulingError` if
        the store write fails.
        """

        if notification.id is None:
            raise ValueError("Only persisted notifications can be retried")
        if not notification.can_retry(self._max_retry_count):
            msg = (
                f"Notification {notification.id} has no retries left "
                f"({notification.retry_count}/{self._max_retry_count})"
            )
            raise ValueError(msg)

        next_attempt = notification.retry_count + 1
        delay = self.compute_delay(notification.retry_count)
        try:
            updated = NotificationRepository(session).transition(
                notification.id,
                expected_status=notification.status,
                expected_retry_count=notification.retry_count,
                status=NotificationStatus.PENDING,
                retry_count=next_attempt,
                commit=False,
            )
            if updated is None:
                session.rollback()
                logger.info(
                    "Notification %s changed concurrently; retry %s not scheduled",
                    notification.id,
                    next_attempt,
                )
                return None
            retry = ScheduledRetryRepository(session).add(
                ScheduledRetry(
                    id=None,
                    notification_id=notification.id,
                    attempt=next_attempt,
                    due_at=self._clock() + delay,
                )
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception(
                "Could not record retry %s for notification %s",
                next_attempt,
                notification.id,
            )
            raise RetrySchedulingError(
                f"Could not schedule retry for notification {notification.id}"
            ) from exc

        logger.info(
            "Retry %s/%s for notification %s scheduled in %.0fs",
            next_attempt,
            self._max_retry_count,
            notification.id,
            delay.total_seconds(),
        )
        return retry

    def defer(self, notification_id: int) -> bool:
        """Republish ``notification_id`` after a backoff without touching the store.

        Used when an attempt could not be recorded because the store failed.
        The n-th deferral waits ``compute_delay(n)``; returns ``False`` once
        ``max_deferrals`` is reached and the job is dropped.
        """

        with self._lock:
            count = self._deferral_counts.get(notification_id, 0)
            if count >= self._max_deferrals:
                self._deferred.pop(notification_id, None)
                self._deferral_counts.pop(notification_id, None)
                return False
            self._deferral_counts[notification_id] = count + 1
            delay = self.compute_delay(count)
            self._deferred[notification_id] = self._clock() + delay
        logger.warning(
            "Notification %s deferred (%s/%s); republishing in %.0fs",
            notification_id,
            count + 1,
            self._max_deferrals,
            delay.total_seconds(),
        )
        return True

    def forget(self, notification_id: int) -> None:
        """Drop deferral bookkeeping once an attempt was recorded."""

        with self._lock:
            self._deferral_counts.pop(notification_id, None)
            self._deferred.pop(notification_id, None)

    def _release_deferred(self, now: datetime) -> int:
        with self._lock:
            due = sorted(
                (due_at, notification_id)
                for notification_id, due_at in self._deferred.items()
                if due_at <= now
            )
        released = 0
        for _, notification_id in due:
            try:
                self._publisher.publish(notification_id)
            except JobPublishError:
                logger.warning(
                    "Deferred republish of notification %s postponed to the next poll",
                    notification_id,
                )
                break
            with self._lock:
                self._deferred.pop(notification_id, None)
            released += 1
        return released

    def release_due(self, now: datetime | None = None) -> int:
        """Republish every retry whose delay has elapsed; return how many were sent.

        Deferred jobs go first. Each timer row is deleted and its job published
        in one transaction, so a publish failure leaves the row in place for
        the next poll.
        """

        now = now or self._clock()
        released = self._release_deferred(now)
        session = self._session_factory()
        try:
            repository = ScheduledRetryRepository(session)
            for retry in repository.list_due(now, limit=self._batch_size):
                if not repository.claim(retry.id):
                    session.rollback()
                    continue
                try:
                    self._publisher.publish(retry.notification_id)
                except JobPublishError:
                    session.rollback()
                    logger.warning(
                        "Republish of notification %s deferred to the next poll",
                        retry.notification_id,
                    )
                    break
                session.commit()
                released += 1
                logger.info(
                    "Republished notification %s for retry %s",
                    retry.notification_id,
                    retry.attempt,
                )
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to release due retries")
            raise
        finally:
            session.close()
        return released


__all__ = ["RETRY_BACKOFF_BASE", "RetryScheduler"]
