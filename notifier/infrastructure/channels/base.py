"""Contract shared by every delivery channel."""

from __future__ import annotations

from abc import ABC, abstractmethod

from notifier.domain.entities import NotificationType, User


class DeliveryChannel(ABC):
    """Perform a single delivery attempt over one transport."""

    notification_type: NotificationType

    @abstractmethod
    def destination_for(self, user: User) -> str | None:
        """Return the address ``user`` is reached at, or ``None`` if unknown."""

    @abstractmethod
    def send(self, destination: str, content: str, subject: str | None = None) -> bool:
        """Attempt delivery and return ``True`` on success."""


__all__ = ["DeliveryChannel"]
