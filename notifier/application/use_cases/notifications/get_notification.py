"""Use case for retrieving a single notification."""

from sqlalchemy.orm import Session

from notifier.domain.entities import Notification
from notifier.domain.errors import NotificationNotFoundError
from notifier.infrastructure.repositories import NotificationRepository


def get_notification(session: Session, notification_id: int) -> Notification:
    """Return the requested notification or raise if it does not exist."""

    notification = NotificationRepository(session).get(notification_id)
    if notification is None:
        raise NotificationNotFoundError(notification_id)
    return notification
