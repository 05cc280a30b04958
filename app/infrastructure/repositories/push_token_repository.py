"""Persistence helpers for user push tokens."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.domain.entities import PushToken
from app.infrastructure.models import PushTokenModel
from app.utils import ensure_app_timezone, now_in_app_naive_datetime

logger = logging.getLogger(__name__)


class PushTokenRepository:
    """Map each user to the single device token used by the push channel."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> PushToken | None:
        model = self.session.get(PushTokenModel, user_id)
        return self._to_entity(model) if model else None

    def get_token(self, user_id: int) -> str | None:
        model = self.session.get(PushTokenModel, user_id)
        return model.token if model else None

    def save(self, user_id: int, token: str) -> PushToken:
        """Register ``token`` for ``user_id``, replacing any previous one."""

        token = token.strip()
        if not token:
            raise ValueError("Push token must not be empty")

        model = self.session.get(PushTokenModel, user_id)
        if model is None:
            model = PushTokenModel(user_id=user_id)
        model.token = token
        model.updated_at = now_in_app_naive_datetime()
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        logger.info("Push token registered for user %s", user_id)
        return self._to_entity(model)

    def delete(self, user_id: int) -> bool:
        deleted = (
            self.session.query(PushTokenModel)
            .filter(PushTokenModel.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        if deleted:
            logger.info("Push token removed for user %s", user_id)
        return deleted > 0

    @staticmethod
    def _to_entity(model: PushTokenModel) -> PushToken:
        return PushToken(
            user_id=model.user_id,
            token=model.token,
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["PushTokenRepository"]
