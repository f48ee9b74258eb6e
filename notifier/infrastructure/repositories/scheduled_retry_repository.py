"""Persistence helpers for durable retry timers."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.orm import Session

from notifier.domain.entities import ScheduledRetry
from notifier.infrastructure.models import ScheduledRetryModel
from notifier.utils import as_utc, to_naive_utc


class ScheduledRetryRepository:
    """Timer table polled by every worker to republish due retries.

    Writes are not committed here; callers decide the transaction boundary so
    a timer row can be created together with the retry-count increment.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, retry: ScheduledRetry) -> ScheduledRetry:
        model = ScheduledRetryModel(
            notification_id=retry.notification_id,
            attempt=retry.attempt,
            due_at=to_naive_utc(retry.due_at),
        )
        self.session.add(model)
        self.session.flush()
        return self._to_entity(model)

    def list_due(self, now: datetime, *, limit: int = 100) -> Sequence[ScheduledRetry]:
        query = (
            self.session.query(ScheduledRetryModel)
            .filter(ScheduledRetryModel.due_at <= to_naive_utc(now))
            .order_by(ScheduledRetryModel.due_at.asc(), ScheduledRetryModel.id.asc())
            .limit(limit)
        )
        return [self._to_entity(model) for model in query.all()]

    def list_for_notification(self, notification_id: int) -> Sequence[ScheduledRetry]:
        query = (
            self.session.query(ScheduledRetryModel)
            .filter(ScheduledRetryModel.notification_id == notification_id)
            .order_by(ScheduledRetryModel.due_at.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def claim(self, retry_id: int) -> bool:
        """Delete the timer row, returning ``False`` if another worker got it first."""

        result = self.session.execute(
            delete(ScheduledRetryModel)
            .where(ScheduledRetryModel.id == retry_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def _to_entity(model: ScheduledRetryModel) -> ScheduledRetry:
        return ScheduledRetry(
            id=model.id,
            notification_id=model.notification_id,
            attempt=model.attempt,
            due_at=as_utc(model.due_at),
            created_at=as_utc(model.created_at),
        )


__all__ = ["ScheduledRetryRepository"]
