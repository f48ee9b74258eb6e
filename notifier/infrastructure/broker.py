"""Broker plumbing: queue declaration, job codec and the job publisher."""

from __future__ import annotations

import json
import logging
from typing import Any

from kombu import Connection, Exchange, Queue
from kombu.entity import PERSISTENT_DELIVERY_MODE
from kombu.exceptions import KombuError
from kombu.pools import producers

from notifier.config import Settings, get_settings
from notifier.domain.errors import JobPublishError

logger = logging.getLogger(__name__)

DEFAULT_PUBLISH_RETRY_POLICY: dict[str, Any] = {
    "max_retries": 3,
    "interval_start": 0,
    "interval_step": 0.5,
    "interval_max": 2,
}


def build_notification_queue(name: str) -> Queue:
    """Return the durable queue (and its direct exchange) carrying jobs."""

    exchange = Exchange(name, type="direct", durable=True)
    return Queue(name, exchange=exchange, routing_key=name, durable=True)


def create_connection(settings: Settings | None = None) -> Connection:
    """Open (lazily) a broker connection using the configured URL."""

    settings = settings or get_settings()
    return Connection(settings.broker_url)


def encode_job(notification_id: int) -> dict[str, int]:
    """Return the broker payload referencing ``notification_id``."""

    return {"id": int(notification_id)}


def decode_job(body: Any) -> int:
    """Extract the notification id from a job payload.

    Raises :class:`ValueError` for payloads that are not ``{"id": <int>}``.
    """

    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except json.JSONDecodeError as exc:
            raise ValueError("Job payload is not valid JSON") from exc
    if not isinstance(body, dict) or "id" not in body:
        raise ValueError("Job payload must be an object with an 'id' field")
    notification_id = body["id"]
    if isinstance(notification_id, bool):
        raise ValueError("Job id must be an integer")
    try:
        return int(notification_id)
    except (TypeError, ValueError) as exc:
        raise ValueError("Job id must be an integer") from exc


class JobPublisher:
    """Publish persistent, reference-only jobs onto the notification queue."""

    def __init__(
        self,
        connection: Connection,
        *,
        queue_name: str | None = None,
        retry_policy: dict[str, Any] | None = None,
    ) -> None:
        self._connection = connection
        self._queue = build_notification_queue(
            queue_name or get_settings().notification_queue
        )
        self._retry_policy = retry_policy or DEFAULT_PUBLISH_RETRY_POLICY

    @property
    def queue(self) -> Queue:
        return self._queue

    def publish(self, notification_id: int) -> None:
        """Publish a job for ``notification_id`` or raise :class:`JobPublishError`."""

        payload = encode_job(notification_id)
        try:
            with producers[self._connection].acquire(block=True) as producer:
                producer.publish(
                    payload,
                    exchange=self._queue.exchange,
                    routing_key=self._queue.routing_key,
                    declare=[self._queue],
                    serializer="json",
                    delivery_mode=PERSISTENT_DELIVERY_MODE,
                    retry=True,
                    retry_policy=self._retry_policy,
                )
        except (KombuError, OSError) as exc:
            logger.error(
                "Failed to publish job for notification %s to queue %s: %s",
                notification_id,
                self._queue.name,
                exc,
            )
            raise JobPublishError(
                f"Could not publish job for notification {notification_id}"
            ) from exc
        logger.debug("Published job for notification %s", notification_id)


__all__ = [
    "JobPublisher",
    "build_notification_queue",
    "create_connection",
    "decode_job",
    "encode_job",
]
