"""Email delivery channel backed by the SendGrid REST API."""

from __future__ import annotations

import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from notifier.domain.entities import NotificationType, User

from .base import DeliveryChannel

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Notification"


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        messages: list[str] = []
        for item in parsed.get("errors") or []:
            if not isinstance(item, dict) or not item.get("message"):
                continue
            if item.get("help"):
                messages.append(f"{item['message']} (help: {item['help']})")
            else:
                messages.append(str(item["message"]))
        if messages:
            return "; ".join(messages)
        return json.dumps(parsed, default=str)

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _log_sendgrid_failure(status_code: Any, body: Any, recipient: str) -> None:
    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        logger.error(
            "SendGrid rejected email to %s with status %s: %s",
            recipient,
            status_code,
            details,
        )
    elif status_code:
        logger.error("SendGrid rejected email to %s with status %s", recipient, status_code)
    elif details:
        logger.error("SendGrid request for %s failed: %s", recipient, details)
    else:
        logger.error("SendGrid request for %s failed without details", recipient)


class EmailChannel(DeliveryChannel):
    """Send notifications as plain-text emails through SendGrid."""

    notification_type = NotificationType.EMAIL

    def __init__(self, api_key: str | None, sender: str | None) -> None:
        self._api_key = api_key
        self._sender = sender

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._sender)

    def destination_for(self, user: User) -> str | None:
        return (user.email or "").strip() or None

    def send(self, destination: str, content: str, subject: str | None = None) -> bool:
        if not self.configured:
            logger.info("SendGrid configuration incomplete; skipping email delivery")
            return False

        message = Mail(
            from_email=self._sender,
            to_emails=destination,
            subject=subject or DEFAULT_SUBJECT,
            plain_text_content=content,
        )

        try:
            client = SendGridAPIClient(self._api_key)
            response = client.send(message)
        except Exception as exc:  # pragma: no cover - network failures depend on environment
            _log_sendgrid_failure(
                getattr(exc, "status_code", None), getattr(exc, "body", None), destination
            )
            return False

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            _log_sendgrid_failure(status_code, getattr(response, "body", None), destination)
            return False

        return True


__all__ = ["EmailChannel"]
