"""Aggregate application use cases."""

from .notifications import create_notification, get_notification, list_user_notifications

__all__ = [
    "create_notification",
    "get_notification",
    "list_user_notifications",
]
