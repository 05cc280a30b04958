"""Repository implementations for infrastructure layer."""

from .notification_delivery_repository import NotificationDeliveryRepository
from .notification_outbox_repository import NotificationOutboxRepository
from .notification_repository import NotificationRepository
from .push_token_repository import PushTokenRepository
from .user_repository import UserRepository

__all__ = [
    "NotificationDeliveryRepository",
    "NotificationOutboxRepository",
    "NotificationRepository",
    "PushTokenRepository",
    "UserRepository",
]
