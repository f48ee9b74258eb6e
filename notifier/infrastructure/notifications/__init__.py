"""Realtime push helpers for in-app notifications."""

from .manager import NotificationConnectionManager, notification_manager

__all__ = [
    "NotificationConnectionManager",
    "notification_manager",
]
