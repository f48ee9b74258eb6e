"""In-app delivery channel.

The persisted notification is the user's inbox entry, so an in-app delivery
succeeds once the user id is known. When the worker runs inside the API
process the message is also pushed to the user's open websockets through an
anyio portal bound to the server event loop.
"""

from __future__ import annotations

import logging

from anyio.from_thread import BlockingPortal

from notifier.domain.entities import NotificationType, User
from notifier.infrastructure.notifications import (
    NotificationConnectionManager,
    notification_manager,
)

from .base import DeliveryChannel

logger = logging.getLogger(__name__)


class InAppChannel(DeliveryChannel):
    """Deliver notifications to the in-app inbox and live websocket sessions."""

    notification_type = NotificationType.IN_APP

    def __init__(
        self,
        manager: NotificationConnectionManager | None = None,
        portal: BlockingPortal | None = None,
    ) -> None:
        self._manager = manager or notification_manager
        self._portal = portal

    def destination_for(self, user: User) -> str | None:
        return str(user.id) if user.id is not None else None

    def send(self, destination: str, content: str, subject: str | None = None) -> bool:
        user_id = int(destination)
        if self._portal is None:
            logger.debug("No event loop attached; in-app notification for %s stored only", user_id)
            return True

        message = {
            "type": "notification",
            "data": {"user_id": user_id, "subject": subject, "content": content},
        }
        try:
            reached = self._portal.call(self._manager.send_to_user, user_id, message)
        except RuntimeError as exc:
            # Portal closed while the API process shuts down.
            logger.warning("Could not push in-app notification to user %s: %s", user_id, exc)
            return True
        logger.debug("In-app notification pushed to %s connection(s) of user %s", reached, user_id)
        return True


__all__ = ["InAppChannel"]
