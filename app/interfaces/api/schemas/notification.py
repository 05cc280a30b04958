"""Pydantic models describing notification dispatch payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.entities import Channel, NotificationPriority


class NotificationPublishRequest(BaseModel):
    """Notification created by a producer together with its audience."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    notification_type: str = Field(..., min_length=1, max_length=50)
    priority: NotificationPriority = NotificationPriority.NORMAL
    image_url: str | None = None
    action_url: str | None = None
    action_data: dict[str, Any] = Field(default_factory=dict)
    user_ids: list[int] = Field(..., min_length=1, description="Recipients of the notification")
    channels: list[Channel] | None = Field(
        default=None, description="Channels to attempt; all channels when omitted"
    )


class OutboxEntryRead(BaseModel):
    """Durable work item state exposed to operators."""

    id: int
    notification_id: int
    user_id: int
    channels: list[Channel]
    status: str
    attempts: int
    next_attempt_at: datetime | None = None
    last_error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class NotificationPublishResponse(BaseModel):
    notification_id: int
    outbox: list[OutboxEntryRead]


class DeliveryRead(BaseModel):
    """Delivery status of one notification for one user over one channel."""

    notification_id: int
    user_id: int
    channel: Channel
    status: str
    sent_at: datetime | None = None
    error: str | None = None
    updated_at: datetime | None = None


__all__ = [
    "DeliveryRead",
    "NotificationPublishRequest",
    "NotificationPublishResponse",
    "OutboxEntryRead",
]
