"""ORM models used by the application infrastructure."""

from .notification import NotificationModel
from .scheduled_retry import ScheduledRetryModel
from .user import UserModel

__all__ = [
    "NotificationModel",
    "ScheduledRetryModel",
    "UserModel",
]
