"""Use cases for creating and reading notifications."""

from .create_notification import create_notification
from .get_notification import get_notification
from .list_user_notifications import list_user_notifications

__all__ = [
    "create_notification",
    "get_notification",
    "list_user_notifications",
]
