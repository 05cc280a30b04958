"""Read access to user contact data."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.domain.entities import User
from app.infrastructure.models import UserModel


class UserRepository:
    """Look up the attributes the delivery channels need."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_email(self, user_id: int) -> str | None:
        """Return the email of an active user, or ``None`` when unknown."""

        model = self.session.get(UserModel, user_id)
        if model is None or not model.is_active:
            return None
        email = (model.email or "").strip()
        return email or None

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(id=model.id, email=model.email, is_active=bool(model.is_active))


__all__ = ["UserRepository"]
