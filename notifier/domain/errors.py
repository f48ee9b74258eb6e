"""Exceptions raised by the notification domain and use cases."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for notification service errors."""


class UserNotFoundError(NotificationError, LookupError):
    """Raised when a notification references a user that does not exist."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User with id {user_id} not found")
        self.user_id = user_id


class NotificationNotFoundError(NotificationError, LookupError):
    """Raised when a notification id does not resolve to a record."""

    def __init__(self, notification_id: int) -> None:
        super().__init__(f"Notification with id {notification_id} not found")
        self.notification_id = notification_id


class InvalidStatusTransition(NotificationError, ValueError):
    """Raised when a status change is not allowed by the state machine."""


class DeliveryError(NotificationError):
    """Raised when a notification cannot be handed to its channel."""


class MissingDestinationError(DeliveryError):
    """The user has no address for the requested channel."""


class JobPublishError(NotificationError):
    """Raised when a job could not be published to the broker."""


class RetrySchedulingError(NotificationError):
    """Raised when a retry could not be recorded in the store."""


__all__ = [
    "DeliveryError",
    "InvalidStatusTransition",
    "JobPublishError",
    "MissingDestinationError",
    "NotificationError",
    "NotificationNotFoundError",
    "RetrySchedulingError",
    "UserNotFoundError",
]
