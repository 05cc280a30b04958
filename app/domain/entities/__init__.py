"""Domain entities exposed by the application."""

from .channel import Channel, DEFAULT_CHANNELS, DeliveryOutcome, normalize_channels
from .delivery import (
    DELIVERY_STATUS_FAILED,
    DELIVERY_STATUS_QUEUED,
    DELIVERY_STATUS_SENT,
    DELIVERY_STATUS_SKIPPED,
    DeliveryRecord,
)
from .notification import Notification, NotificationPriority
from .outbox_entry import (
    OUTBOX_STATUS_FAILED,
    OUTBOX_STATUS_PENDING,
    OUTBOX_STATUS_PROCESSING,
    OUTBOX_STATUS_SENT,
    OUTBOX_TERMINAL_STATUSES,
    OutboxEntry,
)
from .push_token import PushToken
from .user import User

__all__ = [
    "Channel",
    "DEFAULT_CHANNELS",
    "DeliveryOutcome",
    "normalize_channels",
    "DeliveryRecord",
    "DELIVERY_STATUS_QUEUED",
    "DELIVERY_STATUS_SENT",
    "DELIVERY_STATUS_SKIPPED",
    "DELIVERY_STATUS_FAILED",
    "Notification",
    "NotificationPriority",
    "OutboxEntry",
    "OUTBOX_STATUS_PENDING",
    "OUTBOX_STATUS_PROCESSING",
    "OUTBOX_STATUS_SENT",
    "OUTBOX_STATUS_FAILED",
    "OUTBOX_TERMINAL_STATUSES",
    "PushToken",
    "User",
]
