"""Use case that records a notification and enqueues its delivery job."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from notifier.domain.entities import Notification, NotificationType
from notifier.domain.errors import UserNotFoundError
from notifier.infrastructure.broker import JobPublisher
from notifier.infrastructure.repositories import NotificationRepository, UserRepository
from notifier.utils import utc_now

logger = logging.getLogger(__name__)


def create_notification(
    session: Session,
    publisher: JobPublisher,
    *,
    user_id: int,
    type: NotificationType | str,
    content: str,
    subject: str | None = None,
) -> Notification:
    """Persist a pending notification and publish exactly one job for it.

    Nothing is written or published when the user does not exist. The record
    and the job are two separate operations: if publishing fails the record is
    left ``pending`` and :class:`~notifier.domain.errors.JobPublishError`
    propagates to the caller.
    """

    try:
        notification_type = NotificationType(type)
    except ValueError as exc:
        raise ValueError(f"Invalid notification type: {type}") from exc
    if not content or not content.strip():
        raise ValueError("Notification content is required")

    if not UserRepository(session).exists(user_id):
        raise UserNotFoundError(user_id)

    notification = Notification(
        id=None,
        user_id=user_id,
        type=notification_type,
        content=content,
        subject=subject,
        created_at=utc_now(),
    )
    saved = NotificationRepository(session).create(notification)
    publisher.publish(saved.id)
    logger.info(
        "Queued %s notification %s for user %s", saved.type.value, saved.id, user_id
    )
    return saved
