"""SQLAlchemy model for the user table."""

from sqlalchemy import Column, DateTime, Integer, String

from notifier.infrastructure.database import Base
from notifier.utils import utc_now_naive


class UserModel(Base):
    """Database representation of a notification recipient."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(120), nullable=True, index=True)
    phone = Column(String(32), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=utc_now_naive)
