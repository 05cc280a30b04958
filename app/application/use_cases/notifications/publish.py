"""Producer-facing helper creating a notification and queueing its delivery."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import Channel, Notification, NotificationPriority, OutboxEntry
from app.infrastructure.repositories import NotificationRepository

from .factory import build_dispatcher


def publish_notification(
    session: Session,
    *,
    title: str,
    content: str,
    notification_type: str,
    user_ids: Iterable[int],
    channels: Iterable[Channel | str] | None = None,
    priority: NotificationPriority | int | str | None = None,
    image_url: str | None = None,
    action_url: str | None = None,
    action_data: dict[str, Any] | None = None,
) -> tuple[Notification, list[OutboxEntry]]:
    """Persist a notification and enqueue it for ``user_ids``."""

    targets = list(dict.fromkeys(user_ids))
    if not targets:
        raise ValueError("At least one user id is required to publish a notification")
    if not title.strip():
        raise ValueError("Notification title must not be empty")

    notification = NotificationRepository(session).create(
        title=title,
        content=content,
        notification_type=notification_type,
        priority=priority,
        image_url=image_url,
        action_url=action_url,
        action_data=action_data,
    )
    entries = build_dispatcher(session).enqueue(notification, targets, channels)
    return notification, entries


__all__ = ["publish_notification"]
