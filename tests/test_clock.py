"""Tests for the UTC storage conversions."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from notifier.domain.entities import Notification, NotificationType, ScheduledRetry
from notifier.infrastructure.repositories import NotificationRepository, ScheduledRetryRepository
from notifier.utils import as_utc, to_naive_utc, utc_now

BOGOTA = timezone(timedelta(hours=-5))


def test_aware_values_are_converted_to_naive_utc():
    assert to_naive_utc(datetime(2026, 1, 15, 7, 0, tzinfo=BOGOTA)) == datetime(2026, 1, 15, 12, 0)
    assert to_naive_utc(datetime(2026, 1, 15, 12, 0)) == datetime(2026, 1, 15, 12, 0)
    assert to_naive_utc(None) is None


def test_stored_values_are_read_back_as_utc():
    restored = as_utc(datetime(2026, 1, 15, 12, 0))

    assert restored.tzinfo is timezone.utc
    assert restored == datetime(2026, 1, 15, 7, 0, tzinfo=BOGOTA)
    assert as_utc(None) is None
    assert utc_now().tzinfo is timezone.utc


def test_due_timers_compare_in_utc_regardless_of_caller_offset(session, user):
    notification = NotificationRepository(session).create(
        Notification(id=None, user_id=user.id, type=NotificationType.EMAIL, content="Hola")
    )
    repository = ScheduledRetryRepository(session)
    repository.add(
        ScheduledRetry(
            id=None,
            notification_id=notification.id,
            attempt=1,
            due_at=datetime(2026, 1, 15, 12, 0, 5, tzinfo=timezone.utc),
        )
    )
    session.commit()

    # 07:00:04 in Bogota is one second before the timer fires.
    assert repository.list_due(datetime(2026, 1, 15, 7, 0, 4, tzinfo=BOGOTA)) == []
    (due,) = repository.list_due(datetime(2026, 1, 15, 7, 0, 5, tzinfo=BOGOTA))
    assert due.due_at == datetime(2026, 1, 15, 12, 0, 5, tzinfo=timezone.utc)
