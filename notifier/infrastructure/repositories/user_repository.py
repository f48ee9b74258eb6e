"""Persistence layer for user data."""

from __future__ import annotations

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from notifier.domain.entities import User
from notifier.infrastructure.models import UserModel
from notifier.utils import as_utc, to_naive_utc


class UserRepository:
    """Provide lookups and creation for notification recipients."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def exists(self, user_id: int) -> bool:
        statement = select(exists().where(UserModel.id == user_id))
        return bool(self.session.execute(statement).scalar())

    def create(self, user: User) -> User:
        model = UserModel(
            name=user.name,
            email=user.email,
            phone=user.phone,
        )
        if user.created_at is not None:
            model.created_at = to_naive_utc(user.created_at)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def delete(self, user_id: int) -> None:
        model = self.session.get(UserModel, user_id)
        if model is None:
            msg = f"User with id {user_id} not found"
            raise ValueError(msg)
        self.session.delete(model)
        self.session.commit()

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            phone=model.phone,
            created_at=as_utc(model.created_at),
        )
