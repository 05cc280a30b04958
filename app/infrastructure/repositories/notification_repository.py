"""Persistence helpers for notification entities."""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.domain.entities import Notification, NotificationPriority
from app.infrastructure.models import NotificationModel
from app.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class NotificationRepository:
    """Read and create the notifications handed to the dispatcher."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model else None

    def create(
        self,
        *,
        title: str,
        content: str,
        notification_type: str,
        priority: NotificationPriority | int | str | None = None,
        image_url: str | None = None,
        action_url: str | None = None,
        action_data: dict | None = None,
    ) -> Notification:
        model = NotificationModel(
            title=title,
            content=content,
            notification_type=notification_type,
            priority=int(NotificationPriority.parse(priority)),
            image_url=image_url,
            action_url=action_url,
            action_data=dict(action_data or {}),
            created_at=ensure_app_naive_datetime(now_in_app_timezone()),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            title=model.title,
            content=model.content,
            notification_type=model.notification_type,
            priority=NotificationPriority.parse(model.priority),
            image_url=model.image_url,
            action_url=model.action_url,
            action_data=dict(model.action_data or {}),
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["NotificationRepository"]
