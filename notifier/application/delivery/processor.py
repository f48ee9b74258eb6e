"""Per-job delivery logic executed by the notification worker."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notifier.domain.entities import Notification, NotificationStatus, User
from notifier.domain.errors import (
    DeliveryError,
    MissingDestinationError,
    RetrySchedulingError,
)
from notifier.infrastructure.broker import decode_job
from notifier.infrastructure.channels import ChannelRegistry, DeliveryChannel
from notifier.infrastructure.repositories import NotificationRepository, UserRepository

from .retry_scheduler import RetryScheduler

logger = logging.getLogger(__name__)


class JobOutcome(str, Enum):
    """Result of processing one job and how the broker message is settled."""

    DELIVERED = "delivered"
    RETRY_SCHEDULED = "retry_scheduled"
    EXHAUSTED = "exhausted"
    USER_MISSING = "user_missing"
    NOTIFICATION_MISSING = "notification_missing"
    MALFORMED = "malformed"
    ALREADY_RESOLVED = "already_resolved"
    CONFLICT = "conflict"
    SCHEDULING_ERROR = "scheduling_error"
    STORE_ERROR = "store_error"

    @property
    def acknowledge(self) -> bool:
        """``True`` when a terminal result was recorded and the message is acked."""

        return self in _ACKNOWLEDGED


_ACKNOWLEDGED = frozenset(
    {
        JobOutcome.DELIVERED,
        JobOutcome.EXHAUSTED,
        JobOutcome.USER_MISSING,
        JobOutcome.ALREADY_RESOLVED,
    }
)


class NotificationProcessor:
    """Load a notification, dispatch it to its channel and decide what comes next.

    The job payload only carries the notification id; status and retry count
    are always re-read from the store. Every error on the dispatch path is
    handled here and reported as a :class:`JobOutcome`; no outcome asks the
    broker to requeue. Attempts lost to a store error before the channel was
    called are handed back to :meth:`RetryScheduler.defer`.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        channels: ChannelRegistry,
        scheduler: RetryScheduler,
    ) -> None:
        self._session_factory = session_factory
        self._channels = channels
        self._scheduler = scheduler

    def process_payload(self, body: Any) -> JobOutcome:
        """Decode a raw broker payload and process the referenced notification."""

        try:
            notification_id = decode_job(body)
        except ValueError as exc:
            logger.error("Discarding malformed job %r: %s", body, exc)
            return JobOutcome.MALFORMED
        return self.process(notification_id)

    def process(self, notification_id: int) -> JobOutcome:
        session = self._session_factory()
        try:
            outcome = self._process(session, notification_id)
        finally:
            session.close()
        if outcome.acknowledge or outcome is JobOutcome.RETRY_SCHEDULED:
            self._scheduler.forget(notification_id)
        return outcome

    def _process(self, session: Session, notification_id: int) -> JobOutcome:
        try:
            loaded = self._load(session, notification_id)
        except SQLAlchemyError:
            session.rollback()
            logger.critical(
                "Store error while loading notification %s", notification_id, exc_info=True
            )
            return self._defer(notification_id, JobOutcome.STORE_ERROR)
        if isinstance(loaded, JobOutcome):
            return loaded

        notification, user = loaded
        delivered = self._deliver(notification, user)
        try:
            return self._record_attempt(session, notification, delivered)
        except SQLAlchemyError:
            # The channel was already called; this job is never republished.
            session.rollback()
            logger.critical(
                "Result of attempt %s for notification %s was not recorded; it stays pending",
                notification.retry_count + 1,
                notification_id,
                exc_info=True,
            )
            return JobOutcome.STORE_ERROR

    def _load(
        self, session: Session, notification_id: int
    ) -> tuple[Notification, User] | JobOutcome:
        notifications = NotificationRepository(session)
        notification = notifications.get(notification_id)
        if notification is None:
            logger.error("Notification %s not found; discarding job", notification_id)
            return JobOutcome.NOTIFICATION_MISSING

        if notification.status.is_terminal:
            logger.info(
                "Notification %s is already %s; ignoring duplicate job",
                notification_id,
                notification.status.value,
            )
            return JobOutcome.ALREADY_RESOLVED

        user = UserRepository(session).get(notification.user_id)
        if user is None:
            logger.warning(
                "User %s of notification %s no longer exists; marking as failed",
                notification.user_id,
                notification_id,
            )
            return self._finish(
                notifications, notification, NotificationStatus.FAILED, JobOutcome.USER_MISSING
            )
        return notification, user

    def _record_attempt(
        self, session: Session, notification: Notification, delivered: bool
    ) -> JobOutcome:
        notifications = NotificationRepository(session)
        if delivered:
            return self._finish(
                notifications, notification, NotificationStatus.SENT, JobOutcome.DELIVERED
            )
        return self._handle_failure(session, notifications, notification)

    def _defer(self, notification_id: int, outcome: JobOutcome) -> JobOutcome:
        """Hand the job back to the scheduler for a delayed republish."""

        if not self._scheduler.defer(notification_id):
            logger.critical(
                "Notification %s stays pending; deferred attempts are exhausted",
                notification_id,
            )
        return outcome

    def _channel_for(self, notification: Notification) -> DeliveryChannel:
        channel = self._channels.get(notification.type)
        if channel is None:
            raise DeliveryError(f"No channel registered for {notification.type.value}")
        return channel

    @staticmethod
    def _destination_for(channel: DeliveryChannel, user: User, notification: Notification) -> str:
        destination = channel.destination_for(user)
        if not destination:
            raise MissingDestinationError(
                f"User {user.id} has no {notification.type.value} destination"
            )
        return destination

    def _deliver(self, notification: Notification, user: User) -> bool:
        try:
            channel = self._channel_for(notification)
            destination = self._destination_for(channel, user, notification)
        except DeliveryError as exc:
            logger.warning("Notification %s cannot be dispatched: %s", notification.id, exc)
            return False

        try:
            delivered = channel.send(destination, notification.content, notification.subject)
        except Exception:
            logger.exception(
                "%s channel raised while delivering notification %s",
                notification.type.value,
                notification.id,
            )
            return False

        if not delivered:
            logger.warning(
                "%s channel could not deliver notification %s (attempt %s)",
                notification.type.value,
                notification.id,
                notification.retry_count + 1,
            )
        return bool(delivered)

    def _handle_failure(
        self,
        session: Session,
        notifications: NotificationRepository,
        notification: Notification,
    ) -> JobOutcome:
        if not notification.can_retry(self._scheduler.max_retry_count):
            logger.warning(
                "Notification %s failed after %s retries",
                notification.id,
                notification.retry_count,
            )
            return self._finish(
                notifications, notification, NotificationStatus.FAILED, JobOutcome.EXHAUSTED
            )

        try:
            retry = self._scheduler.schedule_retry(session, notification)
        except RetrySchedulingError:
            logger.critical(
                "Retry for notification %s was not recorded; republishing it after a delay",
                notification.id,
            )
            return self._defer(notification.id, JobOutcome.SCHEDULING_ERROR)
        if retry is None:
            return JobOutcome.CONFLICT
        return JobOutcome.RETRY_SCHEDULED

    @staticmethod
    def _finish(
        notifications: NotificationRepository,
        notification: Notification,
        status: NotificationStatus,
        outcome: JobOutcome,
    ) -> JobOutcome:
        updated = notifications.transition(
            notification.id,
            expected_status=notification.status,
            expected_retry_count=notification.retry_count,
            status=status,
        )
        if updated is None:
            logger.info(
                "Notification %s changed concurrently; %s not recorded",
                notification.id,
                status.value,
            )
            return JobOutcome.CONFLICT
        logger.info(
            "Notification %s marked %s (retries: %s)",
            notification.id,
            status.value,
            updated.retry_count,
        )
        return outcome


__all__ = ["JobOutcome", "NotificationProcessor"]
