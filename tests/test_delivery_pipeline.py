"""End-to-end behaviour of enqueue, processing and retry scheduling."""

from __future__ import annotations

from datetime import timedelta

import pytest

from notifier.application.delivery import JobOutcome
from notifier.application.use_cases.notifications import create_notification
from notifier.domain.entities import MAX_RETRY_COUNT, NotificationStatus, NotificationType
from notifier.domain.errors import UserNotFoundError
from notifier.infrastructure.repositories import (
    NotificationRepository,
    ScheduledRetryRepository,
    UserRepository,
)

from conftest import ScriptedChannel


def _run_until_resolved(processor, scheduler, publisher, clock, notification_id, session):
    """Process jobs, firing each scheduled retry when due, until the record is terminal."""

    outcomes = []
    delays = []
    while True:
        outcomes.append(processor.process(notification_id))
        stored = NotificationRepository(session).get(notification_id)
        if stored.status.is_terminal:
            return outcomes, delays
        (retry,) = ScheduledRetryRepository(session).list_for_notification(notification_id)
        delays.append(retry.due_at - clock.now)
        clock.now = retry.due_at
        assert scheduler.release_due() == 1


def test_email_delivered_on_first_attempt(session, processor, publisher, channels, user):
    """A successful first attempt marks the notification sent without retries."""

    notification = create_notification(
        session,
        publisher,
        user_id=user.id,
        type=NotificationType.EMAIL,
        content="Test notification content",
        subject="Test Subject",
    )
    assert publisher.published == [notification.id]

    outcome = processor.process_payload({"id": notification.id})

    assert outcome is JobOutcome.DELIVERED
    assert channels[NotificationType.EMAIL].calls == [
        ("test@example.com", "Test notification content", "Test Subject")
    ]
    stored = NotificationRepository(session).get(notification.id)
    assert stored.status is NotificationStatus.SENT
    assert stored.retry_count == 0


def test_delivery_succeeds_on_second_attempt(
    session, processor, scheduler, publisher, channels, clock, user
):
    """One failure schedules a 5s retry; the retried job then succeeds."""

    channels[NotificationType.IN_APP] = ScriptedChannel(NotificationType.IN_APP, [False, True])
    notification = create_notification(
        session, publisher, user_id=user.id, type="in_app", content="Hola"
    )

    outcomes, delays = _run_until_resolved(
        processor, scheduler, publisher, clock, notification.id, session
    )

    assert outcomes == [JobOutcome.RETRY_SCHEDULED, JobOutcome.DELIVERED]
    assert delays == [timedelta(seconds=5)]
    stored = NotificationRepository(session).get(notification.id)
    assert stored.status is NotificationStatus.SENT
    assert stored.retry_count == 1
    assert publisher.published == [notification.id, notification.id]


def test_sms_without_phone_exhausts_retries(
    session, processor, scheduler, publisher, channels, clock, user_without_phone
):
    """Missing contact info is retried at 5s, 25s and 125s, then marked failed."""

    notification = create_notification(
        session,
        publisher,
        user_id=user_without_phone.id,
        type=NotificationType.SMS,
        content="Your code is 1234",
    )

    outcomes, delays = _run_until_resolved(
        processor, scheduler, publisher, clock, notification.id, session
    )

    assert outcomes == [
        JobOutcome.RETRY_SCHEDULED,
        JobOutcome.RETRY_SCHEDULED,
        JobOutcome.RETRY_SCHEDULED,
        JobOutcome.EXHAUSTED,
    ]
    assert [delay.total_seconds() * 1000 for delay in delays] == [5000, 25000, 125000]
    assert channels[NotificationType.SMS].calls == []
    stored = NotificationRepository(session).get(notification.id)
    assert stored.status is NotificationStatus.FAILED
    assert stored.retry_count == MAX_RETRY_COUNT
    # Retries republish the same id and never create new records.
    assert publisher.published == [notification.id] * 4
    assert len(NotificationRepository(session).list_for_user(user_without_phone.id)) == 1


def test_provider_exception_counts_as_failed_attempt(
    session, processor, publisher, channels, user
):
    """A provider that raises is handled like any other failed attempt."""

    channels[NotificationType.EMAIL] = ScriptedChannel(
        NotificationType.EMAIL, [ConnectionError("smtp down")]
    )
    notification = create_notification(
        session, publisher, user_id=user.id, type="email", content="Body"
    )

    assert processor.process(notification.id) is JobOutcome.RETRY_SCHEDULED

    stored = NotificationRepository(session).get(notification.id)
    assert stored.status is NotificationStatus.PENDING
    assert stored.retry_count == 1


def test_create_for_unknown_user_persists_nothing(session, publisher):
    """Enqueuing for a missing user fails before writing or publishing."""

    with pytest.raises(UserNotFoundError):
        create_notification(session, publisher, user_id=999, type="email", content="Body")

    assert publisher.published == []
    assert NotificationRepository(session).list_for_user(999) == []


def test_create_rejects_invalid_type_and_blank_content(session, publisher, user):
    """Input that cannot describe a notification is rejected."""

    with pytest.raises(ValueError):
        create_notification(session, publisher, user_id=user.id, type="fax", content="Body")
    with pytest.raises(ValueError):
        create_notification(session, publisher, user_id=user.id, type="sms", content="   ")
    assert publisher.published == []


def test_user_deleted_before_dispatch_fails_without_retry(
    engine, session, processor, publisher, channels, user
):
    """A user that disappears after enqueue makes the notification fail at once."""

    with engine.connect() as connection:
        connection.exec_driver_sql("PRAGMA foreign_keys=ON")
        assert connection.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    notification = create_notification(
        session, publisher, user_id=user.id, type="email", content="Body"
    )
    UserRepository(session).delete(user.id)

    assert processor.process(notification.id) is JobOutcome.USER_MISSING

    stored = NotificationRepository(session).get(notification.id)
    assert stored.status is NotificationStatus.FAILED
    assert stored.retry_count == 0
    assert ScheduledRetryRepository(session).list_for_notification(notification.id) == []
    assert channels[NotificationType.EMAIL].calls == []


def test_duplicate_job_for_resolved_notification_is_ignored(
    session, processor, publisher, channels, user
):
    """Redelivered jobs for sent notifications do not send twice."""

    notification = create_notification(
        session, publisher, user_id=user.id, type="email", content="Body"
    )
    assert processor.process(notification.id) is JobOutcome.DELIVERED

    assert processor.process(notification.id) is JobOutcome.ALREADY_RESOLVED
    assert len(channels[NotificationType.EMAIL].calls) == 1


def test_missing_and_malformed_jobs_are_discarded(processor):
    """Jobs that reference nothing are rejected without requeue."""

    missing = processor.process_payload({"id": 12345})
    malformed = processor.process_payload(b"not json")

    assert missing is JobOutcome.NOTIFICATION_MISSING
    assert malformed is JobOutcome.MALFORMED
    for outcome in (missing, malformed):
        assert outcome.acknowledge is False


@pytest.mark.parametrize(
    ("outcome", "acknowledge"),
    [
        (JobOutcome.DELIVERED, True),
        (JobOutcome.EXHAUSTED, True),
        (JobOutcome.USER_MISSING, True),
        (JobOutcome.ALREADY_RESOLVED, True),
        (JobOutcome.RETRY_SCHEDULED, False),
        (JobOutcome.CONFLICT, False),
        (JobOutcome.SCHEDULING_ERROR, False),
        (JobOutcome.STORE_ERROR, False),
        (JobOutcome.MALFORMED, False),
        (JobOutcome.NOTIFICATION_MISSING, False),
    ],
)
def test_outcome_settlement(outcome, acknowledge):
    """Only recorded terminal results are acked; the rest are rejected."""

    assert outcome.acknowledge is acknowledge
