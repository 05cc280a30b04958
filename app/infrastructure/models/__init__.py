"""ORM models used by the application infrastructure."""

from .notification import NotificationModel
from .notification_delivery import NotificationDeliveryModel
from .notification_outbox import NotificationOutboxModel
from .push_token import PushTokenModel
from .user import UserModel

__all__ = [
    "NotificationModel",
    "NotificationDeliveryModel",
    "NotificationOutboxModel",
    "PushTokenModel",
    "UserModel",
]
