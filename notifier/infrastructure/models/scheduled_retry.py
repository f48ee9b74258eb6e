"""SQLAlchemy model for durable retry timers."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer

from notifier.infrastructure.database import Base
from notifier.utils import utc_now_naive


class ScheduledRetryModel(Base):
    """A notification job waiting to be republished once ``due_at`` passes."""

    __tablename__ = "scheduled_retry"

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(
        Integer,
        ForeignKey("notification.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attempt = Column(Integer, nullable=False)
    due_at = Column(DateTime(), nullable=False, index=True)
    created_at = Column(DateTime(), nullable=False, default=utc_now_naive)


__all__ = ["ScheduledRetryModel"]
