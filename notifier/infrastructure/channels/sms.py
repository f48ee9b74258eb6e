"""SMS delivery channel backed by Twilio."""

from __future__ import annotations

import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from notifier.domain.entities import NotificationType, User

from .base import DeliveryChannel

logger = logging.getLogger(__name__)

MAX_SMS_LENGTH = 1600


class SmsChannel(DeliveryChannel):
    """Send notifications as text messages through the Twilio REST API."""

    notification_type = NotificationType.SMS

    def __init__(
        self,
        account_sid: str | None,
        auth_token: str | None,
        from_number: str | None,
    ) -> None:
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from_number = from_number
        self._client: TwilioClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self._account_sid and self._auth_token and self._from_number)

    def destination_for(self, user: User) -> str | None:
        return (user.phone or "").strip() or None

    def _get_client(self) -> TwilioClient:
        if self._client is None:
            self._client = TwilioClient(self._account_sid, self._auth_token)
        return self._client

    def send(self, destination: str, content: str, subject: str | None = None) -> bool:
        if not self.configured:
            logger.info("Twilio configuration incomplete; skipping SMS delivery")
            return False

        if len(content) > MAX_SMS_LENGTH:
            logger.warning(
                "SMS body for %s is %s characters long; Twilio accepts at most %s",
                destination,
                len(content),
                MAX_SMS_LENGTH,
            )
            return False

        try:
            message = self._get_client().messages.create(
                body=content,
                from_=self._from_number,
                to=destination,
            )
        except TwilioException as exc:
            logger.error("Twilio rejected SMS to %s: %s", destination, exc)
            return False

        logger.debug("Twilio accepted SMS %s for %s", getattr(message, "sid", None), destination)
        return True


__all__ = ["MAX_SMS_LENGTH", "SmsChannel"]
