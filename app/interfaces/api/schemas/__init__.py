from .notification import (
    DeliveryRead,
    NotificationPublishRequest,
    NotificationPublishResponse,
    OutboxEntryRead,
)
from .push_token import PushTokenRead, PushTokenWrite

__all__ = [
    "DeliveryRead",
    "NotificationPublishRequest",
    "NotificationPublishResponse",
    "OutboxEntryRead",
    "PushTokenRead",
    "PushTokenWrite",
]
