"""Delivery channels and the lookup table that selects them by type."""

from __future__ import annotations

from collections.abc import Mapping

from anyio.from_thread import BlockingPortal

from notifier.config import Settings, get_settings
from notifier.domain.entities import NotificationType
from notifier.infrastructure.notifications import NotificationConnectionManager

from .base import DeliveryChannel
from .email import EmailChannel
from .in_app import InAppChannel
from .sms import SmsChannel

ChannelRegistry = Mapping[NotificationType, DeliveryChannel]


def build_channel_registry(
    settings: Settings | None = None,
    *,
    manager: NotificationConnectionManager | None = None,
    portal: BlockingPortal | None = None,
) -> ChannelRegistry:
    """Return one configured channel per :class:`NotificationType`."""

    settings = settings or get_settings()
    channels: list[DeliveryChannel] = [
        EmailChannel(settings.sendgrid_api_key, settings.sendgrid_sender),
        SmsChannel(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_from_number,
        ),
        InAppChannel(manager=manager, portal=portal),
    ]
    return {channel.notification_type: channel for channel in channels}


__all__ = [
    "ChannelRegistry",
    "DeliveryChannel",
    "EmailChannel",
    "InAppChannel",
    "SmsChannel",
    "build_channel_registry",
]
