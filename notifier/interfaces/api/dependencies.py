"""FastAPI dependency utilities."""

from functools import lru_cache

from kombu import Connection

from notifier.config import get_settings
from notifier.infrastructure.broker import JobPublisher, create_connection


@lru_cache
def get_broker_connection() -> Connection:
    """Return the process-wide broker connection used for publishing."""

    return create_connection(get_settings())


def get_job_publisher() -> JobPublisher:
    """Return a publisher bound to the configured notification queue."""

    return JobPublisher(
        get_broker_connection(), queue_name=get_settings().notification_queue
    )
