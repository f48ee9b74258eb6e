"""Use case for listing the notifications addressed to a user."""

from collections.abc import Sequence

from sqlalchemy.orm import Session

from notifier.domain.entities import Notification
from notifier.domain.errors import UserNotFoundError
from notifier.infrastructure.repositories import NotificationRepository, UserRepository


def list_user_notifications(
    session: Session, user_id: int, *, limit: int | None = 50
) -> Sequence[Notification]:
    """Return the user's notifications, newest first."""

    if not UserRepository(session).exists(user_id):
        raise UserNotFoundError(user_id)
    return NotificationRepository(session).list_for_user(user_id, limit=limit)
