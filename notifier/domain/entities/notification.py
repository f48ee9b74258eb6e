"""Domain entity representing a notification and its delivery state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

MAX_RETRY_COUNT = 3


class NotificationType(str, Enum):
    """Delivery channel a notification is addressed to."""

    EMAIL = "email"
    SMS = "sms"
    IN_APP = "in_app"


class NotificationStatus(str, Enum):
    """Lifecycle status of a notification."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not NotificationStatus.PENDING


@dataclass
class Notification:
    """A message addressed to a single user through one channel."""

    id: int | None
    user_id: int
    type: NotificationType
    content: str
    subject: str | None = None
    status: NotificationStatus = NotificationStatus.PENDING
    retry_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def can_retry(self, max_retry_count: int = MAX_RETRY_COUNT) -> bool:
        """Return ``True`` while another delivery attempt may be scheduled."""

        return not self.status.is_terminal and self.retry_count < max_retry_count


__all__ = [
    "MAX_RETRY_COUNT",
    "Notification",
    "NotificationStatus",
    "NotificationType",
]
