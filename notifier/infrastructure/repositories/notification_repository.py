"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import update
from sqlalchemy.orm import Session

from notifier.domain.entities import Notification, NotificationStatus, NotificationType
from notifier.domain.status import ensure_transition
from notifier.infrastructure.models import NotificationModel
from notifier.utils import as_utc, to_naive_utc, utc_now_naive


class NotificationRepository:
    """Store of :class:`Notification` records.

    Status and retry-count changes go through :meth:`transition`, a conditional
    update keyed on the expected prior ``(status, retry_count)``. Concurrent
    consumers racing on the same record therefore never lose an increment:
    the loser gets ``None`` back and must re-read.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, notification: Notification) -> Notification:
        now = utc_now_naive()
        model = NotificationModel(
            user_id=notification.user_id,
            type=NotificationType(notification.type).value,
            content=notification.content,
            subject=notification.subject,
            status=NotificationStatus.PENDING.value,
            retry_count=0,
            created_at=to_naive_utc(notification.created_at) or now,
            updated_at=now,
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id, populate_existing=True)
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: int,
        *,
        limit: int | None = 50,
    ) -> Sequence[Notification]:
        query = self.session.query(NotificationModel)
        query = query.filter(NotificationModel.user_id == user_id)
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def update_status(
        self,
        notification_id: int,
        status: NotificationStatus,
        retry_count: int | None = None,
    ) -> Notification | None:
        """Move the record to ``status`` based on its current stored values.

        Returns ``None`` when the record does not exist or changed underneath.
        """

        current = self.get(notification_id)
        if current is None:
            return None
        return self.transition(
            notification_id,
            expected_status=current.status,
            expected_retry_count=current.retry_count,
            status=status,
            retry_count=retry_count,
        )

    def transition(
        self,
        notification_id: int,
        *,
        expected_status: NotificationStatus,
        expected_retry_count: int,
        status: NotificationStatus,
        retry_count: int | None = None,
        commit: bool = True,
    ) -> Notification | None:
        """Apply a status/retry change only if the record still matches.

        Raises :class:`~notifier.domain.errors.InvalidStatusTransition` for
        changes the state machine forbids and :class:`ValueError` when the
        retry count would decrease.
        """

        target = ensure_transition(expected_status, status)
        new_retry_count = expected_retry_count if retry_count is None else retry_count
        if new_retry_count < expected_retry_count:
            msg = "The retry count of a notification cannot decrease"
            raise ValueError(msg)

        statement = (
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .where(NotificationModel.status == NotificationStatus(expected_status).value)
            .where(NotificationModel.retry_count == expected_retry_count)
            .values(
                status=target.value,
                retry_count=new_retry_count,
                updated_at=utc_now_naive(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        if result.rowcount != 1:
            if commit:
                self.session.rollback()
            return None
        if commit:
            self.session.commit()
        return self.get(notification_id)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            content=model.content,
            subject=model.subject,
            status=NotificationStatus(model.status),
            retry_count=model.retry_count,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )


__all__ = ["NotificationRepository"]
