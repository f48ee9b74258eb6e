"""Shared fixtures: in-memory store, recording publisher and scripted channels."""

from __future__ import annotations

import os
from collections.abc import Iterable
from datetime import datetime, timezone

import pytest

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BROKER_URL"] = "memory://"

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from notifier.application.delivery import NotificationProcessor, RetryScheduler
from notifier.domain.entities import NotificationType, User
from notifier.domain.errors import JobPublishError
from notifier.infrastructure.channels import DeliveryChannel
from notifier.infrastructure.database import initialize_database
from notifier.infrastructure.repositories import UserRepository

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class RecordingPublisher:
    """Publisher double that remembers every job instead of talking to a broker."""

    def __init__(self) -> None:
        self.published: list[int] = []
        self.fail = False

    def publish(self, notification_id: int) -> None:
        if self.fail:
            raise JobPublishError(f"Could not publish job for notification {notification_id}")
        self.published.append(notification_id)


class ScriptedChannel(DeliveryChannel):
    """Channel returning pre-programmed results; ``Exception`` instances are raised."""

    def __init__(
        self,
        notification_type: NotificationType,
        results: Iterable[bool | Exception] = (True,),
    ) -> None:
        self.notification_type = notification_type
        self._results = list(results)
        self.calls: list[tuple[str, str, str | None]] = []

    def destination_for(self, user: User) -> str | None:
        if self.notification_type is NotificationType.EMAIL:
            return user.email
        if self.notification_type is NotificationType.SMS:
            return user.phone
        return str(user.id)

    def send(self, destination: str, content: str, subject: str | None = None) -> bool:
        self.calls.append((destination, content, subject))
        result = self._results.pop(0) if len(self._results) > 1 else self._results[0]
        if isinstance(result, Exception):
            raise result
        return result


class Clock:
    """Controllable clock for the retry scheduler."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def scheduler(session_factory, publisher, clock) -> RetryScheduler:
    return RetryScheduler(session_factory, publisher, clock=clock)


@pytest.fixture()
def channels() -> dict[NotificationType, ScriptedChannel]:
    return {
        NotificationType.EMAIL: ScriptedChannel(NotificationType.EMAIL),
        NotificationType.SMS: ScriptedChannel(NotificationType.SMS),
        NotificationType.IN_APP: ScriptedChannel(NotificationType.IN_APP),
    }


@pytest.fixture()
def processor(session_factory, channels, scheduler) -> NotificationProcessor:
    return NotificationProcessor(session_factory, channels, scheduler)


@pytest.fixture()
def user(session) -> User:
    return UserRepository(session).create(
        User(id=None, name="Test User", email="test@example.com", phone="+12345678901")
    )


@pytest.fixture()
def user_without_phone(session) -> User:
    return UserRepository(session).create(
        User(id=None, name="No Phone", email="nophone@example.com", phone=None)
    )
