"""Domain entity tracking the delivery of a notification over one channel."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .channel import Channel

DELIVERY_STATUS_QUEUED = "queued"
DELIVERY_STATUS_SENT = "sent"
DELIVERY_STATUS_SKIPPED = "skipped"
DELIVERY_STATUS_FAILED = "failed"


@dataclass
class DeliveryRecord:
    """Status of ``(notification_id, user_id, channel)``, the dedupe key."""

    id: int | None
    notification_id: int
    user_id: int
    channel: Channel
    status: str = DELIVERY_STATUS_QUEUED
    sent_at: datetime | None = None
    error: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def dedupe_key(self) -> tuple[int, int, Channel]:
        return (self.notification_id, self.user_id, self.channel)


__all__ = [
    "DeliveryRecord",
    "DELIVERY_STATUS_QUEUED",
    "DELIVERY_STATUS_SENT",
    "DELIVERY_STATUS_SKIPPED",
    "DELIVERY_STATUS_FAILED",
]
