"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text

from notifier.infrastructure.database import Base
from notifier.utils import utc_now_naive


class NotificationModel(Base):
    """Database representation of a notification and its delivery state."""

    __tablename__ = "notification"
    __table_args__ = (
        CheckConstraint("retry_count >= 0", name="ck_notification_retry_count"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # No foreign key: notifications outlive deleted users and fail at dispatch.
    user_id = Column(Integer, nullable=False, index=True)
    type = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    subject = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    retry_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(), nullable=False, default=utc_now_naive)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=utc_now_naive,
        onupdate=utc_now_naive,
    )


__all__ = ["NotificationModel"]
