"""Repository implementations for infrastructure layer."""

from .notification_repository import NotificationRepository
from .scheduled_retry_repository import ScheduledRetryRepository
from .user_repository import UserRepository

__all__ = [
    "NotificationRepository",
    "ScheduledRetryRepository",
    "UserRepository",
]
