"""Domain entities exposed by the application."""

from .notification import (
    MAX_RETRY_COUNT,
    Notification,
    NotificationStatus,
    NotificationType,
)
from .scheduled_retry import ScheduledRetry
from .user import User

__all__ = [
    "MAX_RETRY_COUNT",
    "Notification",
    "NotificationStatus",
    "NotificationType",
    "ScheduledRetry",
    "User",
]
